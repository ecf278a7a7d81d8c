"""
Synthetic Loan Catalog Generator for LoanMatch
Generates a realistic catalog of bank loan products and sample user profiles.
"""

import numpy as np
import pandas as pd
import os

# ── Configuration ───────────────────────────────────────────────────────────
SEED = 42
PRODUCTS_PER_TYPE = 5
NUM_PROFILES = 200
BANKS = ["HDFC Bank", "ICICI Bank", "State Bank of India", "Axis Bank",
         "Kotak Mahindra Bank", "Bank of Baroda", "Bajaj Finserv",
         "Punjab National Bank", "IDFC First Bank", "Muthoot Finance"]

# loan_type → (rate range %, amount range, tenure range in months, income floor range)
PRODUCT_SHAPES = {
    "personal":  ((10.5, 16.0), (30000, 4000000), (12, 84), (15000, 35000)),
    "home":      ((8.4, 10.0), (500000, 10000000), (60, 360), (25000, 50000)),
    "auto":      ((8.8, 12.5), (100000, 2000000), (12, 84), (20000, 35000)),
    "business":  ((12.0, 18.0), (100000, 5000000), (12, 60), (30000, 60000)),
    "education": ((8.5, 12.0), (100000, 2500000), (60, 180), (0, 25000)),
    "gold":      ((9.0, 15.0), (10000, 2500000), (3, 36), (0, 15000)),
}
CREDIT_FLOORS = [550, 600, 650, 700, 750]


def _product(rng, loan_type: str, idx: int) -> dict:
    """One product of the given type with monotonic bounds."""
    (rate_lo, rate_hi), (amt_lo, amt_hi), (ten_lo, ten_hi), (inc_lo, inc_hi) = \
        PRODUCT_SHAPES[loan_type]

    min_amount = int(rng.integers(amt_lo, amt_lo * 3) // 1000 * 1000)
    max_amount = int(rng.integers(max(min_amount * 2, amt_hi // 4), amt_hi) // 10000 * 10000)
    min_tenure = int(rng.integers(ten_lo, ten_lo * 2 + 1))
    max_tenure = int(rng.integers(max(min_tenure, ten_hi // 2), ten_hi + 1))

    return {
        "loan_id": f"{loan_type[0].upper()}L{idx:03d}",
        "bank_name": str(rng.choice(BANKS)),
        "loan_type": loan_type,
        "interest_rate": round(float(rng.uniform(rate_lo, rate_hi)), 2),
        "min_amount": min_amount,
        "max_amount": max(max_amount, min_amount),
        "min_tenure_months": min_tenure,
        "max_tenure_months": max_tenure,
        "min_income": int(rng.integers(inc_lo, inc_hi + 1) // 1000 * 1000),
        "min_credit_score": int(rng.choice(CREDIT_FLOORS)),
        "processing_fee": round(float(rng.uniform(0, 2.5)), 2),
        "features": "",
    }


def generate_catalog(per_type: int = PRODUCTS_PER_TYPE, seed: int = SEED) -> pd.DataFrame:
    """Catalog DataFrame with per_type products for every loan type."""
    rng = np.random.default_rng(seed)
    records = []
    for loan_type in PRODUCT_SHAPES:
        for i in range(per_type):
            records.append(_product(rng, loan_type, i + 1))
    return pd.DataFrame(records)


def generate_profiles(n: int = NUM_PROFILES, seed: int = SEED) -> pd.DataFrame:
    """Sample user profiles spanning the eligibility score bands."""
    rng = np.random.default_rng(seed)
    income = rng.lognormal(mean=10.6, sigma=0.6, size=n).clip(8000, 400000).round(-2)
    emi_share = rng.uniform(0, 0.7, size=n)

    return pd.DataFrame({
        "profile_id": [f"U{i+1:03d}" for i in range(n)],
        "name": [f"User {i+1}" for i in range(n)],
        "age": rng.integers(21, 60, size=n),
        "monthly_income": income,
        "employment_type": rng.choice(["salaried", "self-employed"], size=n, p=[0.7, 0.3]),
        "years_employed": rng.integers(0, 15, size=n),
        "credit_score": rng.normal(690, 70, size=n).clip(300, 900).astype(int),
        "existing_emi": (income * emi_share).round(-2),
    })


def main():
    out_dir = os.path.dirname(__file__)
    catalog = generate_catalog()
    catalog_path = os.path.join(out_dir, "loan_catalog.csv")
    catalog.to_csv(catalog_path, index=False)
    print(f"[LoanMatch] Generated {len(catalog)} loan products → {catalog_path}")
    print(f"  Types: {catalog['loan_type'].value_counts().to_dict()}")

    users = generate_profiles()
    users_path = os.path.join(out_dir, "sample_profiles.csv")
    users.to_csv(users_path, index=False)
    print(f"[LoanMatch] Generated {len(users)} user profiles → {users_path}")


if __name__ == "__main__":
    main()
