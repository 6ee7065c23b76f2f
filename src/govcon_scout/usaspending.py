"""Subcontracting leads from recent federal contract awards.

Large primes that do not self-perform automation work are the likeliest
buyers of robotics and controls subcontracts, so awards are scored on the
prime's profile as much as on the award scope.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any

import httpx
import structlog

from .config import AppConfig
from .models import Award, SubcontractLead
from .normalize import to_award
from .proposal import outreach_email
from .qualify import DEFAULT_WEIGHTS, SUBCONTRACT_PLAN_THRESHOLD, ScoringWeights, value_tier

log = structlog.get_logger(__name__)

SCOPE_POINTS = 8
SCOPE_CAP = 30
NON_SPECIALIST_POINTS = 25
GENERAL_CONTRACTOR_POINTS = 20
LOCATION_POINTS = 10
NAICS_POINTS = 10
HOT_THRESHOLD = 65
WARM_THRESHOLD = 45

AWARD_FIELDS = [
    "Award ID",
    "Recipient Name",
    "Recipient UEI",
    "Award Amount",
    "Description",
    "Awarding Agency",
    "Awarding Sub Agency",
    "Place of Performance City",
    "Place of Performance State Code",
    "NAICS Code",
    "NAICS Description",
    "Contract Award Type",
    "Start Date",
    "End Date",
]


def fetch_awards(config: AppConfig, today: date | None = None) -> list[Award]:
    payload = _build_payload(config, today or date.today())
    headers = {"User-Agent": config.user_agent, "Accept": "application/json"}
    with httpx.Client(timeout=config.usaspending.timeout, headers=headers) as client:
        resp = client.post(config.usaspending.base_url, json=payload)
        resp.raise_for_status()
        data = resp.json()
    results = data.get("results") if isinstance(data, dict) else None
    if not isinstance(results, list):
        return []
    return [to_award(item) for item in results if isinstance(item, dict)]


def _build_payload(config: AppConfig, today: date) -> dict[str, Any]:
    settings = config.usaspending
    start = today - timedelta(days=settings.days_back)
    return {
        "filters": {
            "time_period": [{"start_date": start.isoformat(), "end_date": today.isoformat()}],
            # contracts only
            "award_type_codes": ["A", "B", "C", "D"],
            "award_amounts": [
                {"lower_bound": settings.min_amount, "upper_bound": settings.max_amount}
            ],
            "naics_codes": list(config.profile.naics_codes),
        },
        "fields": AWARD_FIELDS,
        "limit": min(settings.limit, 100),
        "page": 1,
        "sort": "Award Amount",
        "order": "desc",
    }


def score_award(
    award: Award, config: AppConfig, weights: ScoringWeights = DEFAULT_WEIGHTS
) -> tuple[int, str, list[str]]:
    settings = config.usaspending
    description = award.description.lower()
    name = award.recipient_name.lower()
    score = 0
    signals: list[str] = []

    scope = [kw for kw in settings.scope_keywords if kw.lower() in description]
    if scope:
        score += min(len(scope) * SCOPE_POINTS, SCOPE_CAP)
        signals.append(f"Scope: {', '.join(scope[:3])}")

    if not any(term.lower() in name for term in settings.specialist_terms):
        score += NON_SPECIALIST_POINTS
        signals.append("Prime is not automation specialist")

    if any(term.lower() in name for term in settings.non_specialist_terms):
        score += GENERAL_CONTRACTOR_POINTS
        signals.append("General/facilities contractor")

    tier_points, tier_label = value_tier(award.award_amount, weights)
    if tier_points:
        score += tier_points
        signals.append(tier_label)

    if award.state and award.state in config.profile.preferred_regions:
        score += LOCATION_POINTS
        signals.append(f"Location: {award.state}")

    if award.naics_code and award.naics_code in config.profile.naics_codes:
        score += NAICS_POINTS
        signals.append(f"NAICS: {award.naics_code}")

    if award.award_amount >= SUBCONTRACT_PLAN_THRESHOLD:
        score += weights.subcontract_plan
        signals.append("Sub plan likely required")

    score = min(score, 100)
    if score >= HOT_THRESHOLD:
        tier = "hot"
    elif score >= WARM_THRESHOLD:
        tier = "warm"
    else:
        tier = "cold"
    return score, tier, signals


def build_leads(awards: list[Award], config: AppConfig) -> list[SubcontractLead]:
    weights = config.scoring_weights()
    leads: list[SubcontractLead] = []
    for award in awards:
        score, tier, signals = score_award(award, config, weights)
        if score < config.usaspending.min_score:
            continue
        subject, body = outreach_email(award, config.company, config.profile.naics_codes)
        leads.append(
            SubcontractLead(
                award=award,
                score=score,
                tier=tier,
                signals=signals,
                subject=subject,
                body=body,
            )
        )
    leads.sort(key=lambda lead: lead.score, reverse=True)
    return leads


def find_subcontract_leads(config: AppConfig) -> list[SubcontractLead]:
    awards = fetch_awards(config)
    leads = build_leads(awards, config)
    log.info("subcontract_leads_scored", awards=len(awards), leads=len(leads))
    return leads
