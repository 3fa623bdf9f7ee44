"""
Industry Expert Registry

Static domain vocabulary per business vertical: prompt context, KPI names and
recommendation lists. Used by the document analyzer and by the insight and
dashboard agents. Lookup never fails; unknown keys resolve to "general".
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

GENERAL = "general"


@dataclass(frozen=True)
class IndustryExpert:
    key: str
    name: str
    context: str
    kpis: tuple[str, ...]
    _recommendations: Callable[[Any], list[str]] = field(repr=False)

    def recommendations(self, data: Any = None) -> list[str]:
        return self._recommendations(data)

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "context": self.context,
            "kpis": list(self.kpis),
            "recommendations": self.recommendations(),
        }


def _fixed(items: list[str]) -> Callable[[Any], list[str]]:
    return lambda data: list(items)


INDUSTRY_EXPERTS: dict[str, IndustryExpert] = {
    "fintech": IndustryExpert(
        key="fintech",
        name="Fintech Expert",
        context=(
            "Expert in financial services and financial technology.\n"
            "Relevant KPIs: transactions per second, conversion rate, average transaction value, "
            "fraud rate, processing time.\n"
            "Key metrics: transaction volume, active users, average balance, retention rate.\n"
            "Focus: security, regulatory compliance, payment user experience."
        ),
        kpis=("transaction_volume", "conversion_rate", "fraud_rate", "processing_time", "user_retention"),
        _recommendations=_fixed([
            "Monitor fraud rates in real time",
            "Optimize payment flows to reduce abandonment",
            "Enforce two-factor authentication",
            "Analyze suspicious transaction patterns",
        ]),
    ),
    "telco": IndustryExpert(
        key="telco",
        name="Telecom Expert",
        context=(
            "Expert in telecommunications and mobile services.\n"
            "Relevant KPIs: ARPU (average revenue per user), churn rate, quality of service (QoS), "
            "activation time.\n"
            "Key metrics: network coverage, average speed, latency, availability.\n"
            "Focus: service quality, customer retention, network optimization."
        ),
        kpis=("arpu", "churn_rate", "network_quality", "activation_time", "customer_satisfaction"),
        _recommendations=_fixed([
            "Monitor quality of service per region",
            "Identify customers at risk of churning",
            "Optimize network capacity at peak hours",
            "Analyze usage patterns for personalized offers",
        ]),
    ),
    "mining": IndustryExpert(
        key="mining",
        name="Mining Expert",
        context=(
            "Expert in mining and natural resource extraction.\n"
            "Relevant KPIs: daily production, operational efficiency, cost per ton, downtime.\n"
            "Key metrics: tons processed, ore grade, recovery, energy consumption.\n"
            "Focus: operational efficiency, safety, environmental sustainability."
        ),
        kpis=("daily_production", "operational_efficiency", "cost_per_ton", "downtime", "recovery_rate"),
        _recommendations=_fixed([
            "Optimize processes to reduce downtime",
            "Monitor energy consumption per process",
            "Analyze efficiency of critical equipment",
            "Introduce predictive maintenance",
        ]),
    ),
    "banking": IndustryExpert(
        key="banking",
        name="Banking Expert",
        context=(
            "Expert in traditional banking and financial services.\n"
            "Relevant KPIs: ROA (return on assets), non-performing loan ratio, net interest margin, "
            "operating efficiency.\n"
            "Key metrics: loan portfolio, deposits, liquidity, regulatory capital.\n"
            "Focus: risk management, regulatory compliance, profitability."
        ),
        kpis=("roa", "npl_ratio", "net_interest_margin", "efficiency_ratio", "capital_adequacy"),
        _recommendations=_fixed([
            "Monitor non-performing loans per segment",
            "Optimize liquidity management",
            "Analyze profitability per product",
            "Introduce credit scoring models",
        ]),
    ),
    "ecommerce": IndustryExpert(
        key="ecommerce",
        name="eCommerce Expert",
        context=(
            "Expert in e-commerce and digital retail.\n"
            "Relevant KPIs: conversion rate, average order value (AOV), cart abandonment rate, "
            "CAC (customer acquisition cost).\n"
            "Key metrics: web traffic, sessions, time on site, best-selling products.\n"
            "Focus: user experience, conversion optimization, logistics."
        ),
        kpis=("conversion_rate", "aov", "cart_abandonment", "cac", "ltv"),
        _recommendations=_fixed([
            "Streamline checkout to reduce abandonment",
            "Analyze products with the highest margin",
            "Offer personalized recommendations",
            "Monitor delivery times",
        ]),
    ),
    "meta": IndustryExpert(
        key="meta",
        name="Meta/WhatsApp Expert",
        context=(
            "Expert in Meta platforms (Facebook, Instagram, WhatsApp).\n"
            "Relevant KPIs: engagement rate, reach, impressions, response rate, response time.\n"
            "Key metrics: messages sent and received, active users, campaign conversion rate.\n"
            "Focus: engagement, automation, customer service."
        ),
        kpis=("engagement_rate", "reach", "response_rate", "response_time", "conversion_rate"),
        _recommendations=_fixed([
            "Automate answers to frequent questions",
            "Analyze hours of peak activity",
            "Segment audiences for campaigns",
            "Monitor customer satisfaction",
        ]),
    ),
    "public-market": IndustryExpert(
        key="public-market",
        name="Public Market Expert",
        context=(
            "Expert in public procurement and government tenders.\n"
            "Relevant KPIs: award rate, tender response time, average awarded amount.\n"
            "Key metrics: active tenders, submitted proposals, current contracts.\n"
            "Focus: regulatory compliance, competitiveness, contract management."
        ),
        kpis=("award_rate", "response_time", "average_contract_value", "active_contracts", "compliance_rate"),
        _recommendations=_fixed([
            "Watch for new tenders in real time",
            "Analyze success rates per tender type",
            "Shorten proposal preparation time",
            "Track contract expiry dates",
        ]),
    ),
    GENERAL: IndustryExpert(
        key=GENERAL,
        name="General Expert",
        context=(
            "Generalist expert in API and data analysis.\n"
            "Relevant KPIs: availability, response time, error rate, request volume.\n"
            "Key metrics: active users, sessions, events, conversions.\n"
            "Focus: performance, reliability, user experience."
        ),
        kpis=("uptime", "response_time", "error_rate", "request_volume", "user_satisfaction"),
        _recommendations=_fixed([
            "Monitor service availability",
            "Improve response times",
            "Analyze usage patterns",
            "Set up proactive alerts",
        ]),
    ),
}


def normalize_industry(industry: str | None) -> str:
    """Canonical registry key for a free-form industry tag."""
    key = (industry or "").strip().lower().replace("_", "-").replace(" ", "-")
    return key if key in INDUSTRY_EXPERTS else GENERAL


def lookup(industry: str | None) -> IndustryExpert:
    return INDUSTRY_EXPERTS[normalize_industry(industry)]


def available_industries() -> list[str]:
    return [key for key in INDUSTRY_EXPERTS if key != GENERAL]
