"""
Loan Product Catalog for LoanMatch
==================================
Built-in sample catalog plus loading from CSV / DataFrame.

Each product is a dict:
  loan_id, bank_name, loan_type, interest_rate,
  min_amount, max_amount, min_tenure_months, max_tenure_months,
  min_income, min_credit_score, processing_fee, features
"""

import os
import logging
from typing import Dict, List, Iterable, Optional

import pandas as pd

from loanmatch import config
from loanmatch.eligibility_engine import validate_loan_product, LOAN_REQUIRED_FIELDS

logger = logging.getLogger(__name__)


LOAN_TYPES = ["personal", "home", "auto", "business", "education", "gold"]

NUMERIC_FIELDS = [
    "interest_rate", "min_amount", "max_amount", "min_income",
]
INTEGER_FIELDS = ["min_tenure_months", "max_tenure_months", "min_credit_score"]


# ─── Sample Catalog ─────────────────────────────────────────────────────────

SAMPLE_LOANS = {
    "PL001": {
        "bank_name": "HDFC Bank",
        "loan_type": "personal",
        "interest_rate": 10.5,
        "min_amount": 50000,
        "max_amount": 4000000,
        "min_tenure_months": 12,
        "max_tenure_months": 60,
        "min_income": 25000,
        "min_credit_score": 700,
        "processing_fee": 1.0,
        "features": ["Instant disbursal", "No collateral"],
    },
    "PL002": {
        "bank_name": "ICICI Bank",
        "loan_type": "personal",
        "interest_rate": 10.75,
        "min_amount": 50000,
        "max_amount": 2500000,
        "min_tenure_months": 12,
        "max_tenure_months": 72,
        "min_income": 30000,
        "min_credit_score": 720,
        "processing_fee": 1.5,
        "features": ["Pre-approved offers", "Flexible tenure"],
    },
    "PL003": {
        "bank_name": "Bajaj Finserv",
        "loan_type": "personal",
        "interest_rate": 13.0,
        "min_amount": 30000,
        "max_amount": 3500000,
        "min_tenure_months": 12,
        "max_tenure_months": 84,
        "min_income": 22000,
        "min_credit_score": 650,
        "processing_fee": 2.0,
        "features": ["Part-prepayment allowed"],
    },
    "HL001": {
        "bank_name": "State Bank of India",
        "loan_type": "home",
        "interest_rate": 8.5,
        "min_amount": 500000,
        "max_amount": 10000000,
        "min_tenure_months": 60,
        "max_tenure_months": 360,
        "min_income": 40000,
        "min_credit_score": 700,
        "processing_fee": 0.35,
        "features": ["Long tenure", "Tax benefits"],
    },
    "HL002": {
        "bank_name": "HDFC Bank",
        "loan_type": "home",
        "interest_rate": 8.75,
        "min_amount": 500000,
        "max_amount": 10000000,
        "min_tenure_months": 60,
        "max_tenure_months": 300,
        "min_income": 35000,
        "min_credit_score": 680,
        "processing_fee": 0.5,
        "features": ["Balance transfer", "Top-up available"],
    },
    "AL001": {
        "bank_name": "Axis Bank",
        "loan_type": "auto",
        "interest_rate": 9.25,
        "min_amount": 100000,
        "max_amount": 1500000,
        "min_tenure_months": 12,
        "max_tenure_months": 84,
        "min_income": 25000,
        "min_credit_score": 650,
        "processing_fee": 1.0,
        "features": ["Up to 90% on-road funding"],
    },
    "BL001": {
        "bank_name": "Kotak Mahindra Bank",
        "loan_type": "business",
        "interest_rate": 14.0,
        "min_amount": 100000,
        "max_amount": 5000000,
        "min_tenure_months": 12,
        "max_tenure_months": 60,
        "min_income": 50000,
        "min_credit_score": 700,
        "processing_fee": 2.0,
        "features": ["Working capital", "Minimal documentation"],
    },
    "EL001": {
        "bank_name": "Bank of Baroda",
        "loan_type": "education",
        "interest_rate": 9.0,
        "min_amount": 100000,
        "max_amount": 2000000,
        "min_tenure_months": 60,
        "max_tenure_months": 180,
        "min_income": 20000,
        "min_credit_score": 600,
        "processing_fee": 0.0,
        "features": ["Moratorium period", "Vidya Lakshmi eligible"],
    },
    "GL001": {
        "bank_name": "Muthoot Finance",
        "loan_type": "gold",
        "interest_rate": 11.0,
        "min_amount": 10000,
        "max_amount": 2500000,
        "min_tenure_months": 3,
        "max_tenure_months": 36,
        "min_income": 10000,
        "min_credit_score": 550,
        "processing_fee": 0.5,
        "features": ["Same-day disbursal", "Gold as collateral"],
    },
}


def get_sample_catalog() -> List[Dict]:
    """Flat list of the built-in products, each tagged with its loan_id."""
    return [{**loan, "loan_id": loan_id} for loan_id, loan in SAMPLE_LOANS.items()]


# ─── DataFrame / CSV Loading ────────────────────────────────────────────────

def catalog_from_dataframe(df: pd.DataFrame) -> List[Dict]:
    """
    Convert a catalog table to product dicts, keeping row order.
    Rows with missing or out-of-bounds fields are dropped and logged.
    """
    missing_cols = [c for c in LOAN_REQUIRED_FIELDS if c not in df.columns]
    if missing_cols:
        raise ValueError(f"Catalog is missing columns: {missing_cols}")

    df = df.copy()
    for col in NUMERIC_FIELDS + INTEGER_FIELDS:
        df[col] = pd.to_numeric(df[col], errors="coerce")

    incomplete = df[LOAN_REQUIRED_FIELDS].isna().any(axis=1)
    if incomplete.any():
        logger.warning("Dropping %d catalog rows with missing values",
                       int(incomplete.sum()))
    df = df[~incomplete]

    catalog = []
    for record in df.to_dict(orient="records"):
        for col in INTEGER_FIELDS:
            record[col] = int(record[col])
        for col in NUMERIC_FIELDS:
            record[col] = float(record[col])
        record["loan_id"] = str(record["loan_id"])
        features = record.get("features")
        if isinstance(features, str):
            record["features"] = [f.strip() for f in features.split("|") if f.strip()]
        elif isinstance(features, float):  # NaN from an empty cell
            record["features"] = []

        problems = validate_loan_product(record)
        if problems:
            logger.warning("Dropping loan %s: %s", record["loan_id"], "; ".join(problems))
            continue
        catalog.append(record)

    return catalog


def catalog_to_dataframe(loans: List[Dict]) -> pd.DataFrame:
    """Product dicts → DataFrame (features joined with '|')."""
    rows = []
    for loan in loans:
        row = dict(loan)
        if isinstance(row.get("features"), (list, tuple)):
            row["features"] = "|".join(row["features"])
        rows.append(row)
    return pd.DataFrame(rows, columns=_column_order(rows))


def _column_order(rows: List[Dict]) -> List[str]:
    columns = list(LOAN_REQUIRED_FIELDS)
    for row in rows:
        for key in row:
            if key not in columns:
                columns.append(key)
    return columns


def load_catalog(path: Optional[str] = None) -> List[Dict]:
    """
    Load products from a CSV file.
    Falls back to LOANMATCH_CATALOG_PATH, then to the built-in sample.
    """
    path = path or config.get_catalog_path()
    if not path:
        logger.info("No catalog path configured, using built-in sample catalog")
        return get_sample_catalog()

    if not os.path.isfile(path):
        raise FileNotFoundError(f"Catalog file not found: {path}")

    df = pd.read_csv(path)
    catalog = catalog_from_dataframe(df)
    logger.info("Loaded %d loan products from %s", len(catalog), path)
    return catalog


# ─── Lookups ────────────────────────────────────────────────────────────────

def get_loans_by_type(catalog: List[Dict], loan_type: str) -> List[Dict]:
    """Products of one type, cheapest first."""
    wanted = (loan_type or "").strip().lower()
    matches = [l for l in catalog if str(l.get("loan_type", "")).lower() == wanted]
    return sorted(matches, key=lambda l: l["interest_rate"])


def get_loans_by_ids(catalog: List[Dict], loan_ids: Iterable[str]) -> List[Dict]:
    """Products whose loan_id is in loan_ids, in catalog order."""
    wanted = set(loan_ids)
    return [l for l in catalog if l["loan_id"] in wanted]


def get_loan_types(catalog: List[Dict]) -> List[str]:
    """Sorted unique loan types present in a catalog."""
    return sorted({l["loan_type"] for l in catalog})
