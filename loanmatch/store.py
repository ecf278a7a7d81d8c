"""
In-memory table store for LoanMatch
===================================
Stands in for the hosted relational database the app talks to. Tables:
  - users               (profile documents keyed by profile_id)
  - loans               (loan catalog)
  - user_loan_reco      (one row per (profile_id, loan_id))
  - user_applications   (loan applications with status)

Recommendation writes are "insert, ignore on conflict" on the composite key
(profile_id, loan_id), so recomputing a user's recommendations never
duplicates rows.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

import pandas as pd

from loanmatch.catalog import catalog_from_dataframe, catalog_to_dataframe

logger = logging.getLogger(__name__)


RECO_COLUMNS = [
    "reco_id", "profile_id", "loan_id", "eligibility_score",
    "recommended_amount", "recommended_tenure_months", "estimated_emi",
    "recommendation_reason", "recommended_at",
]

APPLICATION_COLUMNS = [
    "application_id", "profile_id", "loan_id", "status",
    "requested_amount", "requested_tenure_months", "estimated_emi",
    "sanctioned_amount", "applied_at",
]


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _records(df: pd.DataFrame) -> List[Dict]:
    """DataFrame → list of dicts with NaN replaced by None."""
    if df.empty:
        return []
    clean = df.astype(object).where(df.notna(), None)
    return clean.to_dict(orient="records")


class LoanStore:
    """pandas-backed tables with the query shapes the service layer needs."""

    def __init__(self, clock: Optional[Callable[[], str]] = None):
        self._clock = clock or _utc_now
        self._users = {}
        self._loans = pd.DataFrame()
        self._recos = pd.DataFrame(columns=RECO_COLUMNS)
        self._apps = pd.DataFrame(columns=APPLICATION_COLUMNS)
        self._reco_seq = 0
        self._app_seq = 0
        self._lock = threading.Lock()

    # ── users ──

    def add_user(self, profile: Dict) -> Dict:
        profile_id = profile["profile_id"]
        with self._lock:
            if profile_id in self._users:
                raise ValueError(f"Profile already exists: {profile_id}")
            self._users[profile_id] = dict(profile)
        return dict(profile)

    def get_user(self, profile_id: str) -> Dict:
        if profile_id not in self._users:
            raise KeyError(f"Unknown profile: {profile_id}")
        return dict(self._users[profile_id])

    def update_user(self, profile: Dict) -> Dict:
        profile_id = profile["profile_id"]
        if profile_id not in self._users:
            raise KeyError(f"Unknown profile: {profile_id}")
        self._users[profile_id] = dict(profile)
        return dict(profile)

    def list_profile_ids(self) -> List[str]:
        return sorted(self._users)

    # ── loans ──

    def load_loans(self, catalog: List[Dict]) -> int:
        """Replace the loans table. Returns the number of products stored."""
        self._loans = catalog_to_dataframe(catalog)
        logger.info("Loaded %d loans into store", len(self._loans))
        return len(self._loans)

    def list_loans(self) -> List[Dict]:
        """All products, cheapest first."""
        if self._loans.empty:
            return []
        ordered = self._loans.sort_values("interest_rate", kind="stable")
        return catalog_from_dataframe(ordered)

    # ── recommendations ──

    def upsert_recommendations(self, rows: List[Dict]) -> int:
        """
        Insert recommendation rows; pairs already present are left as they are.
        Returns the number of inserted rows.
        """
        with self._lock:
            existing = set(zip(self._recos["profile_id"], self._recos["loan_id"]))
            fresh = []
            for row in rows:
                key = (row["profile_id"], row["loan_id"])
                if key in existing:
                    continue
                existing.add(key)
                self._reco_seq += 1
                record = {col: row.get(col) for col in RECO_COLUMNS}
                record["reco_id"] = f"R{self._reco_seq:06d}"
                record["recommended_at"] = self._clock()
                fresh.append(record)

            if fresh:
                new_rows = pd.DataFrame(fresh, columns=RECO_COLUMNS)
                if self._recos.empty:
                    self._recos = new_rows
                else:
                    self._recos = pd.concat([self._recos, new_rows], ignore_index=True)

        logger.debug("Upserted %d of %d recommendation rows", len(fresh), len(rows))
        return len(fresh)

    def get_recommendations(self, profile_id: str) -> pd.DataFrame:
        """Recommendations for one profile, newest first."""
        rows = self._recos[self._recos["profile_id"] == profile_id]
        return rows.sort_values(["recommended_at", "reco_id"], ascending=False,
                                ignore_index=True)

    def delete_recommendation(self, profile_id: str, loan_id: str) -> bool:
        with self._lock:
            recos = self._recos
            mask = (recos["profile_id"] == profile_id) & (recos["loan_id"] == loan_id)
            if not mask.any():
                return False
            self._recos = recos[~mask].reset_index(drop=True)
            return True

    def clear_recommendations(self, profile_id: str) -> int:
        with self._lock:
            mask = self._recos["profile_id"] == profile_id
            removed = int(mask.sum())
            self._recos = self._recos[~mask].reset_index(drop=True)
            return removed

    # ── applications ──

    def add_application(self, row: Dict) -> Dict:
        with self._lock:
            self._app_seq += 1
            record = {col: row.get(col) for col in APPLICATION_COLUMNS}
            record["application_id"] = f"A{self._app_seq:06d}"
            record["status"] = record["status"] or "pending"
            record["applied_at"] = self._clock()

            new_row = pd.DataFrame([record], columns=APPLICATION_COLUMNS)
            if self._apps.empty:
                self._apps = new_row
            else:
                self._apps = pd.concat([self._apps, new_row], ignore_index=True)
        return record

    def get_applications(self, profile_id: str) -> pd.DataFrame:
        """Applications for one profile, newest first."""
        rows = self._apps[self._apps["profile_id"] == profile_id]
        return rows.sort_values(["applied_at", "application_id"], ascending=False,
                                ignore_index=True)

    def set_application_status(self, application_id: str, status: str,
                               sanctioned_amount: Optional[float] = None) -> Dict:
        with self._lock:
            mask = self._apps["application_id"] == application_id
            if not mask.any():
                raise KeyError(f"Unknown application: {application_id}")
            self._apps = self._apps.astype({"status": object, "sanctioned_amount": object})
            self._apps.loc[mask, "status"] = status
            if sanctioned_amount is not None:
                self._apps.loc[mask, "sanctioned_amount"] = sanctioned_amount
            return _records(self._apps[mask])[0]

    @staticmethod
    def to_records(df: pd.DataFrame) -> List[Dict]:
        return _records(df)
