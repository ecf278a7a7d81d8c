"""
Test Suite for the Eligibility Engine
=====================================
Tests filtering, max amount, ranking, eligibility score bands, reasons,
EMI calculation, recommendation projection and the full eligibility pass.
"""

import sys, os
import math
sys.path.insert(0, os.path.dirname(__file__))

from loanmatch.eligibility_engine import (
    calculate_emi, calculate_total_interest, emi_ratio,
    filter_eligible_loans, compute_max_eligible_amount, rank_loans,
    compute_eligibility_score, get_score_breakdown, generate_reasons,
    project_recommendation, find_eligible_loans, validate_loan_product,
    max_form_amount, filter_loans_for_request, InvalidInputError,
)
from loanmatch.catalog import get_sample_catalog


def _loan(loan_id, rate=10.0, max_amount=1000000, min_income=20000,
          min_credit=650, loan_type="personal", **overrides):
    loan = {
        "loan_id": loan_id,
        "bank_name": f"Bank {loan_id}",
        "loan_type": loan_type,
        "interest_rate": rate,
        "min_amount": 50000,
        "max_amount": max_amount,
        "min_tenure_months": 12,
        "max_tenure_months": 60,
        "min_income": min_income,
        "min_credit_score": min_credit,
    }
    loan.update(overrides)
    return loan


HIGH_PROFILE = {
    "profile_id": "U001",
    "monthly_income": 120000,
    "credit_score": 780,
    "years_employed": 6,
    "existing_emi": 10000,
    "employment_type": "salaried",
}

BORDERLINE = {
    "profile_id": "U002",
    "monthly_income": 28000,
    "credit_score": 610,
    "years_employed": 1,
    "existing_emi": 15000,
    "employment_type": "self-employed",
}


def test_emi_calculation():
    """EMI formula with known values."""
    # ₹1,20,000 at 12% for 12 months, r = 0.01 → ≈ ₹10,662
    emi = calculate_emi(120000, 12.0, 12)
    assert 10600 < emi < 10700, f"EMI should be ~₹10,662, got {emi}"

    # ₹5,00,000 at 10% for 60 months → EMI ≈ ₹10,624
    emi2 = calculate_emi(500000, 10.0, 60)
    assert 10600 < emi2 < 10650, f"EMI should be ~₹10,624, got {emi2}"

    # Zero rate → simple division, exact
    assert calculate_emi(120000, 0, 12) == 10000

    assert calculate_emi(0, 12, 12) == 0.0
    try:
        calculate_emi(100000, 12, 0)
        assert False, "Zero tenure should be rejected"
    except InvalidInputError:
        pass

    print("  ✓ EMI calculation: PASS")


def test_total_interest():
    interest = calculate_total_interest(100000, 12.0, 12)
    assert 6000 < interest < 7000, f"Interest should be ~₹6,619, got {interest}"
    assert calculate_total_interest(100000, 0, 12) == 0.0
    print("  ✓ Total interest: PASS")


def test_emi_ratio_zero_income():
    assert emi_ratio({"monthly_income": 0, "existing_emi": 5000}) == math.inf
    assert emi_ratio({"monthly_income": 0, "existing_emi": 0}) == math.inf
    assert emi_ratio({"monthly_income": 50000, "existing_emi": 10000}) == 0.2
    print("  ✓ EMI ratio: PASS")


def test_filter_eligible_loans():
    catalog = [
        _loan("A", min_income=100000),          # income too low
        _loan("B", min_credit=700),
        _loan("C", min_credit=800),             # credit too low
        _loan("D", min_income=28000, min_credit=610),  # exact thresholds pass
    ]
    eligible = filter_eligible_loans(BORDERLINE, catalog)
    assert [l["loan_id"] for l in eligible] == ["D"]

    eligible_high = filter_eligible_loans(HIGH_PROFILE, catalog)
    assert [l["loan_id"] for l in eligible_high] == ["A", "B", "D"], "Catalog order kept"

    for loan in eligible_high:
        assert HIGH_PROFILE["monthly_income"] >= loan["min_income"]
        assert HIGH_PROFILE["credit_score"] >= loan["min_credit_score"]

    print("  ✓ Eligibility filter: PASS")


def test_filter_skips_invalid_products():
    catalog = [
        _loan("BAD1", min_amount=900000, max_amount=100000),    # non-monotonic
        _loan("BAD2", min_tenure_months=0),                      # zero tenure
        _loan("BAD3", interest_rate=-1),
        _loan("OK"),
    ]
    assert validate_loan_product(catalog[0])
    assert validate_loan_product(catalog[3]) == []
    eligible = filter_eligible_loans(HIGH_PROFILE, catalog)
    assert [l["loan_id"] for l in eligible] == ["OK"]
    print("  ✓ Invalid products skipped: PASS")


def test_max_eligible_amount():
    loans = [_loan("A", max_amount=2000000), _loan("B", max_amount=9000000)]
    # 120000 × 60 = 72L < 90L
    assert compute_max_eligible_amount(HIGH_PROFILE, loans) == 7200000
    # 28000 × 60 = 16.8L > 10L
    assert compute_max_eligible_amount(BORDERLINE, [_loan("C", max_amount=1000000)]) == 1000000
    # Empty → 0, never -inf/NaN
    assert compute_max_eligible_amount(HIGH_PROFILE, []) == 0
    print("  ✓ Max eligible amount: PASS")


def test_rank_loans():
    loans = [
        _loan("A", rate=11.0, max_amount=500000),
        _loan("B", rate=9.5, max_amount=300000),
        _loan("C", rate=11.0, max_amount=900000),
        _loan("D", rate=9.5, max_amount=300000),
        _loan("E", rate=8.0, max_amount=100000),
    ]
    ranked = rank_loans(loans)
    assert [l["loan_id"] for l in ranked] == ["E", "B", "D", "C", "A"]

    for a, b in zip(ranked, ranked[1:]):
        assert a["interest_rate"] <= b["interest_rate"]
        if a["interest_rate"] == b["interest_rate"]:
            assert a["max_amount"] >= b["max_amount"]

    assert [l["loan_id"] for l in loans] == ["A", "B", "C", "D", "E"], "Input not mutated"
    print("  ✓ Ranking: PASS")


def test_eligibility_score_scenarios():
    assert compute_eligibility_score(HIGH_PROFILE) == 100
    assert get_score_breakdown(BORDERLINE) == {
        "credit_score": 15, "income": 10, "employment": 5, "emi_burden": 2,
    }
    assert compute_eligibility_score(BORDERLINE) == 32
    print("  ✓ Score scenarios: PASS")


def test_eligibility_score_bands():
    base = {"monthly_income": 60000, "credit_score": 720, "years_employed": 3,
            "existing_emi": 21000}
    # 35 + 20 + 15 + ratio 0.35 → 7
    assert compute_eligibility_score(base) == 77

    # Credit band edges
    for credit, points in [(750, 40), (749, 35), (700, 35), (650, 25), (600, 15), (599, 5)]:
        assert get_score_breakdown({**base, "credit_score": credit})["credit_score"] == points

    # EMI ratio edges
    for emi, points in [(18000, 10), (24000, 7), (30000, 5), (30001, 2)]:
        assert get_score_breakdown({**base, "existing_emi": emi})["emi_burden"] == points

    # Zero income → worst EMI band, no crash
    broke = {"monthly_income": 0, "credit_score": 300, "years_employed": 0, "existing_emi": 0}
    assert compute_eligibility_score(broke) == 5 + 10 + 5 + 2

    print("  ✓ Score bands: PASS")


def test_score_bounds():
    for income in [0, 10000, 30000, 50000, 75000, 100000, 500000]:
        for credit in [300, 600, 650, 700, 750, 900]:
            for years in [0, 2, 3, 5, 20]:
                for emi in [0, 5000, 40000, 200000]:
                    user = {"monthly_income": income, "credit_score": credit,
                            "years_employed": years, "existing_emi": emi}
                    score = compute_eligibility_score(user)
                    assert 0 <= score <= 100
    print("  ✓ Score bounds: PASS")


def test_reasons_eligible():
    reasons = generate_reasons(HIGH_PROFILE, True)
    assert reasons == [
        "Excellent credit score of 780",
        "Strong monthly income of ₹120,000",
        "6 years of employment stability",
        "Salaried employment provides stability",
        "Low existing EMI burden",
    ]

    good = {**HIGH_PROFILE, "credit_score": 710, "monthly_income": 40000,
            "years_employed": 1, "existing_emi": 20000, "employment_type": "self-employed"}
    assert generate_reasons(good, True) == ["Good credit score of 710"]

    print("  ✓ Eligible reasons: PASS")


def test_reasons_eligible_mid_tier_empty():
    # Eligible for a lenient product, but no strength worth listing
    mid_tier = {"monthly_income": 45800, "credit_score": 561, "years_employed": 2,
                "existing_emi": 16700, "employment_type": "self-employed"}
    assert generate_reasons(mid_tier, True) == []
    print("  ✓ Mid-tier eligible reasons empty: PASS")


def test_reasons_ineligible():
    poor = {"monthly_income": 10000, "credit_score": 500, "years_employed": 0,
            "existing_emi": 6000, "employment_type": "salaried"}
    assert generate_reasons(poor, False) == [
        "Credit score of 500 is below minimum requirement",
        "Monthly income is below minimum threshold",
        "High existing EMI burden reduces eligibility",
    ]

    # Nothing specific failed → still a non-empty explanation
    fine = {**HIGH_PROFILE}
    assert generate_reasons(fine, False) == ["No loan products match your current profile"]

    print("  ✓ Ineligible reasons: PASS")


def test_project_recommendation():
    loan = _loan("PL9", rate=12.0, max_amount=200000,
                 min_tenure_months=12, max_tenure_months=13)
    reco = project_recommendation(loan, profile_id="U001", eligibility_score=90)
    assert reco["profile_id"] == "U001"
    assert reco["loan_id"] == "PL9"
    assert reco["recommended_amount"] == 120000
    assert reco["recommended_tenure_months"] == 12, "floor of mid tenure"
    assert 10600 < reco["estimated_emi"] < 10700
    assert reco["eligibility_score"] == 90
    assert reco["recommendation_reason"] == "Best rate of 12.0% from Bank PL9"

    zero = project_recommendation({**loan, "interest_rate": 0})
    assert zero["estimated_emi"] == 10000
    assert zero["eligibility_score"] == 85

    try:
        project_recommendation({**loan, "min_tenure_months": 0})
        assert False, "Zero tenure must be rejected"
    except InvalidInputError:
        pass

    print("  ✓ Recommendation projection: PASS")


def test_find_eligible_loans_empty():
    user = {"monthly_income": 10000, "credit_score": 500, "years_employed": 1,
            "existing_emi": 0, "employment_type": "salaried"}
    catalog = [_loan(f"L{i}", min_credit=600 + i * 10, min_income=0) for i in range(4)]
    result = find_eligible_loans(user, catalog)
    assert result["eligible"] is False
    assert result["recommended_loans"] == []
    assert result["max_eligible_amount"] == 0
    assert result["reasons"]
    assert any("Credit score of 500" in r for r in result["reasons"])
    print("  ✓ Empty eligibility: PASS")


def test_find_eligible_loans_top_five_and_determinism():
    catalog = [_loan(f"L{i}", rate=15 - i * 0.5, max_amount=100000 * (i + 1))
               for i in range(8)]
    first = find_eligible_loans(HIGH_PROFILE, catalog)
    second = find_eligible_loans(HIGH_PROFILE, catalog)
    assert first == second

    assert first["eligible"] is True
    assert len(first["recommended_loans"]) == 5
    assert first["recommended_loans"][0]["loan_id"] == "L7"
    assert first["eligibility_score"] == 100
    assert first["max_eligible_amount"] == 800000
    print("  ✓ Top five + determinism: PASS")


def test_find_eligible_loans_rejects_bad_profile():
    try:
        find_eligible_loans({**HIGH_PROFILE, "existing_emi": -1}, [])
        assert False, "Negative EMI should be rejected"
    except InvalidInputError as e:
        assert "existing_emi" in str(e)
    print("  ✓ Invalid profile rejected: PASS")


def test_sample_catalog_end_to_end():
    result = find_eligible_loans(HIGH_PROFILE, get_sample_catalog())
    assert result["eligible"]
    rates = [l["interest_rate"] for l in result["recommended_loans"]]
    assert rates == sorted(rates)
    assert result["recommended_loans"][0]["loan_id"] == "HL001"
    print("  ✓ Sample catalog end-to-end: PASS")


def test_form_helpers():
    assert max_form_amount(HIGH_PROFILE) == 5000000
    assert max_form_amount(BORDERLINE) == 1680000
    assert max_form_amount(None) == 0

    result = find_eligible_loans(HIGH_PROFILE, get_sample_catalog())
    personal = filter_loans_for_request(result, "personal")
    assert personal and all(l["loan_type"] == "personal" for l in personal)
    assert [l["interest_rate"] for l in personal] == sorted(l["interest_rate"] for l in personal)

    sized = filter_loans_for_request(result, "personal", requested_amount=3000000)
    assert all(l["min_amount"] <= 3000000 <= l["max_amount"] for l in sized)
    assert "PL002" not in [l["loan_id"] for l in sized]

    assert filter_loans_for_request([], "home") == []
    print("  ✓ Application form helpers: PASS")


# ─── Run All Tests ──────────────────────────────────────────────────────────

if __name__ == "__main__":
    print("=" * 60)
    print("Eligibility Engine — Test Suite")
    print("=" * 60)

    tests = [v for k, v in list(globals().items()) if k.startswith("test_")]
    passed = 0
    failed = 0
    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"  ✗ {test.__name__}: FAIL — {e}")
            failed += 1

    print()
    print("=" * 60)
    if failed == 0:
        print(f"✅ ALL {passed} TESTS PASSED!")
    else:
        print(f"❌ {failed} FAILED, {passed} passed")
    print("=" * 60)
