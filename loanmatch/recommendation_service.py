"""
Loan Recommendation Service for LoanMatch
=========================================
Ties the eligibility engine to a store and an event bus:
  - Eligibility lookups against the stored catalog
  - Saving / listing / dismissing recommendations
  - Loan applications and their status
  - Sign-up and profile edits
  - Dashboard statistics
"""

import logging
from typing import Dict, List, Optional, Set

from loanmatch import config
from loanmatch import profiles
from loanmatch.catalog import get_loans_by_ids, get_loans_by_type
from loanmatch.eligibility_engine import (
    find_eligible_loans, filter_eligible_loans, project_recommendation,
)
from loanmatch.events import (
    EventBus, RECOMMENDATIONS_UPDATED, APPLIED_LOANS_UPDATED, PROFILE_UPDATED,
)

logger = logging.getLogger(__name__)


class RecommendationServiceError(Exception):
    """A store operation behind the service failed."""


class DuplicateApplicationError(ValueError):
    """The profile has already applied for this loan."""


class LoanRecommendationService:

    def __init__(self, store, events: Optional[EventBus] = None):
        self.store = store
        self.events = events or EventBus()

    # ─── Eligibility ────────────────────────────────────────────────────────

    def find_eligible_loans(self, user: Dict) -> Dict:
        """Run the eligibility engine for user over the stored catalog."""
        try:
            catalog = self.store.list_loans()
        except Exception as e:
            logger.error("Error finding eligible loans: %s", e)
            raise RecommendationServiceError("Failed to fetch loan recommendations") from e
        return find_eligible_loans(user, catalog)

    def refresh_recommendations(self, profile_id: str) -> Dict:
        """Recompute a profile's result and save its top recommendations."""
        user = self.store.get_user(profile_id)
        result = self.find_eligible_loans(user)
        if result["eligible"] and result["recommended_loans"]:
            loan_ids = [loan["loan_id"] for loan in result["recommended_loans"]]
            self.save_recommendations(profile_id, loan_ids, result["eligibility_score"])
        return result

    # ─── Recommendations ────────────────────────────────────────────────────

    def save_recommendations(self, profile_id: str, loan_ids: List[str],
                             eligibility_score: Optional[int] = None) -> int:
        """
        Project and store a recommendation per loan id. Pairs that are
        already recommended are left untouched. Returns rows inserted.
        """
        try:
            loans = get_loans_by_ids(self.store.list_loans(), loan_ids)
            unknown = set(loan_ids) - {loan["loan_id"] for loan in loans}
            if unknown:
                logger.warning("Skipping unknown loan ids: %s", sorted(unknown))

            rows = [project_recommendation(loan, profile_id, eligibility_score)
                    for loan in loans]
            inserted = self.store.upsert_recommendations(rows)
        except Exception as e:
            logger.error("Error saving recommendations: %s", e)
            raise RecommendationServiceError("Failed to save loan recommendations") from e

        self.events.publish(RECOMMENDATIONS_UPDATED,
                            {"profile_id": profile_id, "inserted": inserted})
        return inserted

    def get_user_recommendations(self, profile_id: str) -> List[Dict]:
        """Stored recommendations joined with their loan, newest first."""
        try:
            rows = self.store.to_records(self.store.get_recommendations(profile_id))
            loans = {loan["loan_id"]: loan for loan in self.store.list_loans()}
        except Exception as e:
            logger.error("Error fetching recommendations: %s", e)
            raise RecommendationServiceError("Failed to fetch recommendation history") from e

        joined = []
        for row in rows:
            loan = loans.get(row["loan_id"])
            if loan is None:
                continue
            joined.append({
                **loan,
                **row,
                "loan_name": f"{loan['loan_type']} - {loan['bank_name']}",
            })
        return joined

    def dismiss_recommendation(self, profile_id: str, loan_id: str) -> bool:
        removed = self.store.delete_recommendation(profile_id, loan_id)
        if removed:
            self.events.publish(RECOMMENDATIONS_UPDATED, {"profile_id": profile_id})
        return removed

    def clear_recommendations(self, profile_id: str) -> int:
        removed = self.store.clear_recommendations(profile_id)
        self.events.publish(RECOMMENDATIONS_UPDATED, {"profile_id": profile_id})
        return removed

    def get_loans_by_type(self, loan_type: str) -> List[Dict]:
        """Catalog products of one type; empty on store failure."""
        try:
            return get_loans_by_type(self.store.list_loans(), loan_type)
        except Exception as e:
            logger.error("Error fetching loans by type: %s", e)
            return []

    # ─── Applications ───────────────────────────────────────────────────────

    def apply_for_loan(self, profile_id: str, loan_id: str) -> Dict:
        """
        Turn a loan (usually a recommended one) into a pending application
        and drop its recommendation.
        """
        self.store.get_user(profile_id)
        if loan_id in self.get_applied_loan_ids(profile_id):
            raise DuplicateApplicationError(
                f"Profile {profile_id} has already applied for {loan_id}"
            )
        if not get_loans_by_ids(self.store.list_loans(), [loan_id]):
            raise KeyError(f"Unknown loan: {loan_id}")

        recos = self.store.get_recommendations(profile_id)
        reco = recos[recos["loan_id"] == loan_id]
        row = {"profile_id": profile_id, "loan_id": loan_id, "status": "pending"}
        if not reco.empty:
            first = self.store.to_records(reco.head(1))[0]
            row["requested_amount"] = first["recommended_amount"]
            row["requested_tenure_months"] = first["recommended_tenure_months"]
            row["estimated_emi"] = first["estimated_emi"]

        application = self.store.add_application(row)
        self.store.delete_recommendation(profile_id, loan_id)
        logger.info("Profile %s applied for %s (%s)",
                    profile_id, loan_id, application["application_id"])

        self.events.publish(APPLIED_LOANS_UPDATED,
                            {"profile_id": profile_id, "loan_id": loan_id})
        self.events.publish(RECOMMENDATIONS_UPDATED, {"profile_id": profile_id})
        return application

    def get_applied_loans(self, profile_id: str) -> List[Dict]:
        return self.store.to_records(self.store.get_applications(profile_id))

    def get_applied_loan_ids(self, profile_id: str) -> Set[str]:
        return {row["loan_id"] for row in self.get_applied_loans(profile_id)}

    def update_application_status(self, application_id: str, status: str,
                                  sanctioned_amount: Optional[float] = None) -> Dict:
        if status not in config.APPLICATION_STATUSES:
            raise ValueError(
                f"Unknown status: {status}. Must be one of {config.APPLICATION_STATUSES}"
            )
        application = self.store.set_application_status(
            application_id, status, sanctioned_amount
        )
        self.events.publish(APPLIED_LOANS_UPDATED, {
            "profile_id": application["profile_id"],
            "loan_id": application["loan_id"],
        })
        return application

    # ─── Profiles ───────────────────────────────────────────────────────────

    def sign_up(self, user_data: Dict, auth_id: Optional[str] = None) -> Dict:
        """Create and store a profile under the lowest free U-number."""
        profile = profiles.build_profile(
            user_data, existing_ids=self.store.list_profile_ids(), auth_id=auth_id,
        )
        self.store.add_user(profile)
        return profile

    def update_profile(self, profile_id: str, changes: Dict) -> Dict:
        updated = profiles.update_profile(self.store.get_user(profile_id), changes)
        self.store.update_user(updated)
        self.events.publish(PROFILE_UPDATED, {"profile_id": profile_id})
        return updated

    # ─── Dashboard ──────────────────────────────────────────────────────────

    def get_dashboard_stats(self, profile_id: str) -> Dict:
        """Application counts and total sanctioned amount for a profile."""
        applications = self.get_applied_loans(profile_id)

        in_progress = [a for a in applications if a["status"] in config.IN_PROGRESS_STATUSES]
        approved = [a for a in applications if a["status"] in config.APPROVED_STATUSES]
        sanctioned = [a for a in applications if a["status"] == "sanctioned"]
        total_sanctioned = sum(
            a["sanctioned_amount"] or config.DEFAULT_SANCTIONED_AMOUNT for a in sanctioned
        )

        return {
            "total_applications": len(applications),
            "in_progress": len(in_progress),
            "approved": len(approved),
            "total_sanctioned": total_sanctioned,
        }

    def get_recommendation_stats(self, profile_id: str) -> Dict:
        """Summary of the stored recommendations plus live eligibility."""
        recommendations = self.get_user_recommendations(profile_id)
        user = self.store.get_user(profile_id)
        result = self.find_eligible_loans(user)
        eligible = filter_eligible_loans(user, self.store.list_loans())

        rates = [r["interest_rate"] for r in recommendations]
        average_rate = round(sum(rates) / len(rates), 2) if rates else 0.0

        return {
            "total_recommendations": len(recommendations),
            "eligible_loans": len(eligible),
            "max_eligible_amount": result["max_eligible_amount"],
            "average_interest_rate": average_rate,
        }
