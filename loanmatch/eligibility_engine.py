"""
Eligibility Engine for LoanMatch
================================
Maps a user's financial profile + a loan catalog → eligibility result:
  - Hard eligibility filter (income & credit score gates)
  - Maximum eligible amount (60× income rule, capped by best product)
  - Ranking (lowest interest rate first, then largest max amount)
  - Eligibility score (0–100) over four independent bands
  - Human-readable reasons
  - Per-product recommendation (amount, tenure, EMI, reason)

Every function here is pure: no I/O, no shared state. The caller fetches the
catalog and persists the recommendations.
"""

import math
import logging
from typing import Dict, List, Any, Optional

from loanmatch import config

logger = logging.getLogger(__name__)


class InvalidInputError(ValueError):
    """Raised for a profile or loan product that cannot be scored."""


LOAN_REQUIRED_FIELDS = [
    "loan_id", "bank_name", "loan_type", "interest_rate",
    "min_amount", "max_amount", "min_tenure_months", "max_tenure_months",
    "min_income", "min_credit_score",
]

PROFILE_NUMERIC_FIELDS = [
    "monthly_income", "credit_score", "years_employed", "existing_emi",
]


# ─── Input Validation ───────────────────────────────────────────────────────

def validate_loan_product(loan: Dict) -> List[str]:
    """Return a list of problems with a loan product (empty if valid)."""
    missing = [f for f in LOAN_REQUIRED_FIELDS if loan.get(f) is None]
    if missing:
        return [f"Missing field: {f}" for f in missing]

    problems = []
    if loan["interest_rate"] < 0:
        problems.append(f"Negative interest rate: {loan['interest_rate']}")
    if loan["min_amount"] <= 0:
        problems.append(f"Minimum amount must be positive: {loan['min_amount']}")
    if loan["min_amount"] > loan["max_amount"]:
        problems.append(
            f"Amount bounds not monotonic: {loan['min_amount']} > {loan['max_amount']}"
        )
    if loan["min_tenure_months"] <= 0:
        problems.append(f"Tenure must be positive: {loan['min_tenure_months']}")
    if loan["min_tenure_months"] > loan["max_tenure_months"]:
        problems.append(
            f"Tenure bounds not monotonic: "
            f"{loan['min_tenure_months']} > {loan['max_tenure_months']}"
        )
    if loan["min_income"] < 0:
        problems.append(f"Negative minimum income: {loan['min_income']}")
    if loan["min_credit_score"] < 0:
        problems.append(f"Negative minimum credit score: {loan['min_credit_score']}")
    return problems


def validate_user_profile(user: Dict) -> List[str]:
    """Return a list of problems with the numeric part of a profile."""
    problems = []
    for field in PROFILE_NUMERIC_FIELDS:
        value = user.get(field)
        if value is None:
            problems.append(f"Missing field: {field}")
        elif value < 0:
            problems.append(f"{field} must be non-negative, got {value}")
    return problems


# ─── EMI Calculator ─────────────────────────────────────────────────────────

def calculate_emi(principal: float, annual_rate: float,
                  tenure_months: int) -> float:
    """
    Standard EMI formula: EMI = P × r × (1+r)^n / ((1+r)^n - 1)
    Zero-interest loans repay P / n per month.
    """
    if tenure_months <= 0:
        raise InvalidInputError(f"Tenure must be positive, got {tenure_months}")
    if principal <= 0:
        return 0.0
    if annual_rate <= 0:
        return principal / tenure_months

    r = annual_rate / 100 / 12  # monthly rate
    n = tenure_months
    growth = math.pow(1 + r, n)
    return principal * r * growth / (growth - 1)


def calculate_total_interest(principal: float, annual_rate: float,
                             tenure_months: int) -> float:
    """Total interest payable over the loan tenure."""
    emi = calculate_emi(principal, annual_rate, tenure_months)
    return round(emi * tenure_months - principal, 2)


def emi_ratio(user: Dict) -> float:
    """Existing EMI / monthly income; infinite when there is no income."""
    income = user.get("monthly_income", 0) or 0
    if income <= 0:
        return math.inf
    return (user.get("existing_emi", 0) or 0) / income


# ─── Filtering, Sizing, Ranking ─────────────────────────────────────────────

def filter_eligible_loans(user: Dict, catalog: List[Dict]) -> List[Dict]:
    """
    Products whose income and credit-score gates the user clears, in
    catalog order. Invalid products are skipped with a warning.
    """
    eligible = []
    for loan in catalog:
        problems = validate_loan_product(loan)
        if problems:
            logger.warning("Skipping loan %s: %s",
                           loan.get("loan_id", "?"), "; ".join(problems))
            continue
        if (user["monthly_income"] >= loan["min_income"]
                and user["credit_score"] >= loan["min_credit_score"]):
            eligible.append(loan)
    return eligible


def compute_max_eligible_amount(user: Dict, eligible_loans: List[Dict]) -> float:
    """min(income × 60, largest product max_amount); 0 when nothing is eligible."""
    if not eligible_loans:
        return 0
    best_product = max(loan["max_amount"] for loan in eligible_loans)
    return min(user["monthly_income"] * config.INCOME_MULTIPLIER, best_product)


def rank_loans(eligible_loans: List[Dict]) -> List[Dict]:
    """Lowest interest rate first; ties go to the larger max_amount."""
    return sorted(
        eligible_loans,
        key=lambda loan: (loan["interest_rate"], -loan["max_amount"]),
    )


# ─── Eligibility Score (0–100) ──────────────────────────────────────────────

def _band_points(value: float, bands) -> int:
    for threshold, points in bands:
        if value >= threshold:
            return points
    return bands[-1][1]


def _emi_ratio_points(ratio: float) -> int:
    for bound, points in config.EMI_RATIO_BANDS:
        if ratio <= bound:
            return points
    return config.EMI_RATIO_FLOOR_POINTS


def get_score_breakdown(user: Dict) -> Dict[str, int]:
    """Points earned per band."""
    return {
        "credit_score": _band_points(user["credit_score"], config.CREDIT_SCORE_BANDS),
        "income": _band_points(user["monthly_income"], config.INCOME_BANDS),
        "employment": _band_points(user["years_employed"], config.EMPLOYMENT_YEARS_BANDS),
        "emi_burden": _emi_ratio_points(emi_ratio(user)),
    }


def compute_eligibility_score(user: Dict) -> int:
    """
    Weighted sum of four bands:
      credit score (40) + income (30) + employment years (20) + EMI burden (10)
    """
    total = sum(get_score_breakdown(user).values())
    return min(config.MAX_ELIGIBILITY_SCORE, total)


# ─── Reasons ────────────────────────────────────────────────────────────────

def generate_reasons(user: Dict, is_eligible: bool) -> List[str]:
    """Display strings for the thresholds the user crossed (or missed)."""
    reasons = []
    credit = user["credit_score"]
    income = user["monthly_income"]
    ratio = emi_ratio(user)

    if is_eligible:
        if credit >= config.EXCELLENT_CREDIT:
            reasons.append(f"Excellent credit score of {credit}")
        elif credit >= config.GOOD_CREDIT:
            reasons.append(f"Good credit score of {credit}")

        if income >= config.STRONG_INCOME:
            reasons.append(f"Strong monthly income of ₹{income:,.0f}")

        if user["years_employed"] >= config.STABLE_YEARS:
            reasons.append(f"{user['years_employed']} years of employment stability")

        if str(user.get("employment_type", "")).lower() == "salaried":
            reasons.append("Salaried employment provides stability")

        if ratio <= config.LOW_EMI_RATIO:
            reasons.append("Low existing EMI burden")
    else:
        if credit < config.MIN_CREDIT:
            reasons.append(f"Credit score of {credit} is below minimum requirement")

        if income < config.MIN_INCOME:
            reasons.append("Monthly income is below minimum threshold")

        if ratio > config.HIGH_EMI_RATIO:
            reasons.append("High existing EMI burden reduces eligibility")

        if not reasons:
            reasons.append("No loan products match your current profile")

    return reasons


# ─── Recommendation Projection ──────────────────────────────────────────────

def project_recommendation(loan: Dict, profile_id: Optional[str] = None,
                           eligibility_score: Optional[int] = None) -> Dict:
    """
    Recommended amount (60% of product max), mid-range tenure and EMI for
    one product. Amount and EMI are rounded to whole rupees.
    """
    problems = validate_loan_product(loan)
    if problems:
        raise InvalidInputError(
            f"Cannot project loan {loan.get('loan_id', '?')}: {'; '.join(problems)}"
        )

    # min() is redundant while the fraction stays <= 1
    amount = min(loan["max_amount"] * config.RECOMMENDED_AMOUNT_FRACTION,
                 loan["max_amount"])
    tenure = (int(loan["min_tenure_months"]) + int(loan["max_tenure_months"])) // 2
    emi = calculate_emi(amount, loan["interest_rate"], tenure)

    if eligibility_score is None:
        eligibility_score = config.DEFAULT_RECO_SCORE

    return {
        "profile_id": profile_id,
        "loan_id": loan["loan_id"],
        "eligibility_score": eligibility_score,
        "recommended_amount": round(amount),
        "recommended_tenure_months": tenure,
        "estimated_emi": round(emi),
        "recommendation_reason": (
            f"Best rate of {loan['interest_rate']}% from {loan['bank_name']}"
        ),
    }


# ─── Orchestration ──────────────────────────────────────────────────────────

def find_eligible_loans(user: Dict, catalog: List[Dict]) -> Dict[str, Any]:
    """
    Full eligibility pass for one user against a catalog.

    Returns:
        Dict with eligible, max_eligible_amount, eligibility_score,
        recommended_loans (top 5) and reasons.
    """
    problems = validate_user_profile(user)
    if problems:
        raise InvalidInputError("Invalid profile: " + "; ".join(problems))

    eligible = filter_eligible_loans(user, catalog)
    max_amount = compute_max_eligible_amount(user, eligible)
    ranked = rank_loans(eligible)
    score = compute_eligibility_score(user)
    reasons = generate_reasons(user, len(eligible) > 0)

    logger.debug("Profile %s: %d of %d products eligible, score %d",
                 user.get("profile_id", "?"), len(eligible), len(catalog), score)

    return {
        "eligible": len(eligible) > 0,
        "max_eligible_amount": max_amount,
        "eligibility_score": score,
        "recommended_loans": ranked[:config.TOP_N_RECOMMENDATIONS],
        "reasons": reasons,
    }


# ─── Application Form Helpers ───────────────────────────────────────────────

def max_form_amount(user: Optional[Dict]) -> float:
    """Largest amount the application form offers: min(income × 60, 50L)."""
    if not user:
        return 0
    return min(user.get("monthly_income", 0) * config.INCOME_MULTIPLIER,
               config.MAX_FORM_AMOUNT)


def filter_loans_for_request(result_or_loans, loan_type: str,
                             requested_amount: Optional[float] = None) -> List[Dict]:
    """
    Narrow recommended loans to one product type and, optionally, to the
    products whose amount bounds contain the requested amount.
    """
    if isinstance(result_or_loans, dict):
        loans = result_or_loans.get("recommended_loans", [])
    else:
        loans = result_or_loans or []

    wanted = (loan_type or "").lower()
    matches = [l for l in loans if str(l.get("loan_type", "")).lower() == wanted]

    if requested_amount:
        matches = [
            l for l in matches
            if l["min_amount"] <= requested_amount <= l["max_amount"]
        ]

    return sorted(matches, key=lambda l: l["interest_rate"])
