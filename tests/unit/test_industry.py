"""
Unit tests for the industry expert registry.
"""

from datalive.services.experts.industry import (
    GENERAL,
    available_industries,
    lookup,
    normalize_industry,
)


class TestNormalize:
    def test_known_keys(self):
        assert normalize_industry("fintech") == "fintech"
        assert normalize_industry("  Telco ") == "telco"

    def test_separators_are_normalized(self):
        assert normalize_industry("public_market") == "public-market"
        assert normalize_industry("Public Market") == "public-market"

    def test_unknown_and_empty_fall_back(self):
        assert normalize_industry("aerospace") == GENERAL
        assert normalize_industry("") == GENERAL
        assert normalize_industry(None) == GENERAL


class TestLookup:
    def test_lookup_never_fails(self):
        assert lookup("unknown").key == GENERAL

    def test_expert_carries_kpis_and_recommendations(self):
        expert = lookup("ecommerce")
        assert "conversion_rate" in expert.kpis
        assert expert.recommendations()
        assert expert.to_dict()["kpis"] == list(expert.kpis)

    def test_available_industries_excludes_general(self):
        industries = available_industries()
        assert GENERAL not in industries
        assert {"fintech", "telco", "mining", "banking", "ecommerce", "meta", "public-market"} <= set(industries)
