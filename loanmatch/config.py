"""
Configuration for LoanMatch
Scoring bands, recommendation constants and environment-driven settings.
"""

import os
import logging


# ─── Paths & Environment ────────────────────────────────────────────────────

CATALOG_PATH_ENV = "LOANMATCH_CATALOG_PATH"
LOG_LEVEL_ENV = "LOANMATCH_LOG_LEVEL"


# ─── Recommendation Constants ───────────────────────────────────────────────

TOP_N_RECOMMENDATIONS = 5
INCOME_MULTIPLIER = 60            # × monthly income
MAX_FORM_AMOUNT = 5000000         # cap shown on the application form
RECOMMENDED_AMOUNT_FRACTION = 0.6
DEFAULT_RECO_SCORE = 85
DEFAULT_SANCTIONED_AMOUNT = 500000
MAX_ELIGIBILITY_SCORE = 100


# ─── Eligibility Score Bands ────────────────────────────────────────────────
# (threshold, points), checked top-down; the last entry is the floor.

CREDIT_SCORE_BANDS = [(750, 40), (700, 35), (650, 25), (600, 15), (0, 5)]
INCOME_BANDS = [(100000, 30), (75000, 25), (50000, 20), (30000, 15), (0, 10)]
EMPLOYMENT_YEARS_BANDS = [(5, 20), (3, 15), (2, 10), (0, 5)]
# EMI ratio bands are upper bounds: ratio <= bound
EMI_RATIO_BANDS = [(0.3, 10), (0.4, 7), (0.5, 5)]
EMI_RATIO_FLOOR_POINTS = 2


# ─── Reason Thresholds ──────────────────────────────────────────────────────

EXCELLENT_CREDIT = 750
GOOD_CREDIT = 700
MIN_CREDIT = 600
STRONG_INCOME = 75000
MIN_INCOME = 25000
STABLE_YEARS = 3
LOW_EMI_RATIO = 0.3
HIGH_EMI_RATIO = 0.5


# ─── Application Statuses ───────────────────────────────────────────────────

APPLICATION_STATUSES = [
    "pending", "in_progress", "processing", "approved", "sanctioned", "rejected",
]
IN_PROGRESS_STATUSES = {"pending", "in_progress", "processing"}
APPROVED_STATUSES = {"approved", "sanctioned"}


def get_catalog_path():
    """Catalog CSV path from the environment, or None."""
    return os.environ.get(CATALOG_PATH_ENV) or None


def setup_logging(level=None):
    """Configure root logging; level defaults to LOANMATCH_LOG_LEVEL or INFO."""
    level = level or os.environ.get(LOG_LEVEL_ENV, "INFO")
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )
    return level
