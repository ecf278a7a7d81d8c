"""
User profiles for LoanMatch: sign-up, validation, id allocation and edits.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Iterable, Optional

logger = logging.getLogger(__name__)


class ProfileValidationError(ValueError):
    """Raised when a profile fails validation; .problems lists each issue."""

    def __init__(self, problems: List[str]):
        self.problems = problems
        super().__init__("Invalid profile: " + "; ".join(problems))


EMPLOYMENT_TYPES = ("salaried", "self-employed")

REQUIRED_FIELDS = ["name", "monthly_income", "credit_score", "employment_type"]

EDITABLE_FIELDS = [
    "name", "email", "phone", "city", "age", "monthly_income",
    "employment_type", "years_employed", "credit_score", "existing_emi",
    "pan", "aadhar",
]

FLOAT_FIELDS = ["monthly_income", "existing_emi"]
INT_FIELDS = ["credit_score", "years_employed", "age"]

CREDIT_SCORE_RANGE = (300, 900)
AGE_RANGE = (18, 100)


def generate_profile_id(existing_ids: Iterable[str]) -> str:
    """Lowest unused id of the form U001, U002, ..."""
    taken = set(existing_ids)
    n = 1
    while f"U{n:03d}" in taken:
        n += 1
    return f"U{n:03d}"


def _coerce(profile: Dict) -> List[str]:
    """Convert numeric fields in place; returns problems for unparseable values."""
    problems = []
    for field in FLOAT_FIELDS + INT_FIELDS:
        value = profile.get(field)
        if value is None or value == "":
            continue
        try:
            profile[field] = int(float(value)) if field in INT_FIELDS else float(value)
        except (TypeError, ValueError):
            problems.append(f"{field} must be a number, got {value!r}")
    return problems


def validate_profile(profile: Dict) -> List[str]:
    """Return a list of problems (empty if the profile is valid)."""
    problems = []

    for field in FLOAT_FIELDS + ["years_employed"]:
        value = profile.get(field)
        if isinstance(value, (int, float)) and value < 0:
            problems.append(f"{field} must be non-negative, got {value}")

    score = profile.get("credit_score")
    if isinstance(score, (int, float)):
        low, high = CREDIT_SCORE_RANGE
        if not low <= score <= high:
            problems.append(f"credit_score must be between {low} and {high}, got {score}")

    age = profile.get("age")
    if isinstance(age, (int, float)):
        low, high = AGE_RANGE
        if not low <= age <= high:
            problems.append(f"age must be between {low} and {high}, got {age}")

    employment = profile.get("employment_type")
    if employment and str(employment).lower() not in EMPLOYMENT_TYPES:
        problems.append(
            f"employment_type must be one of {list(EMPLOYMENT_TYPES)}, got {employment!r}"
        )

    return problems


def build_profile(user_data: Dict, existing_ids: Iterable[str] = (),
                  auth_id: Optional[str] = None) -> Dict:
    """
    Create a new profile from sign-up data.

    Args:
        user_data: Form fields (name, monthly_income, credit_score, ...)
        existing_ids: Profile ids already taken
        auth_id: Identity of the auth account backing this profile

    Returns:
        Profile dict with profile_id and created_at filled in
    """
    profile = {k: v for k, v in user_data.items() if k in EDITABLE_FIELDS}
    profile.setdefault("existing_emi", 0.0)
    profile.setdefault("years_employed", 0)

    problems = [f"Missing field: {f}" for f in REQUIRED_FIELDS
                if profile.get(f) in (None, "")]
    problems += _coerce(profile)
    if not problems:
        problems += validate_profile(profile)
    if problems:
        raise ProfileValidationError(problems)

    profile["profile_id"] = generate_profile_id(existing_ids)
    profile["auth_id"] = auth_id
    profile["created_at"] = datetime.now(timezone.utc).isoformat()
    logger.info("Created profile %s", profile["profile_id"])
    return profile


def update_profile(profile: Dict, changes: Dict) -> Dict:
    """Apply editable changes to a copy of profile; identity fields never change."""
    updated = dict(profile)
    ignored = [k for k in changes if k not in EDITABLE_FIELDS]
    if ignored:
        logger.debug("Ignoring non-editable fields: %s", ignored)

    for field in EDITABLE_FIELDS:
        if field in changes:
            updated[field] = changes[field]

    problems = _coerce(updated)
    if not problems:
        problems = validate_profile(updated)
    if problems:
        raise ProfileValidationError(problems)
    return updated
