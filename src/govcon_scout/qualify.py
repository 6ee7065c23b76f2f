"""Opportunity qualification engine.

Turns one normalized opportunity record into a GO / REVIEW / NO-GO
recommendation for the operating company. Evaluation runs in two phases:

1. Hard exclusions, first match wins: a set-aside the company can never
   satisfy, or a solicitation limited to holders of a named contract vehicle.
2. Additive scoring over NAICS, keywords, set-aside compatibility, value
   tier, place of performance and subcontracting-plan likelihood.

Only phase 1 produces NO-GO. A low score is a REVIEW with a low number.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .models import GO, NO_GO, REVIEW, EligibilityProfile, OpportunityRecord, QualificationResult

HOLDERS_ONLY_PHRASES = (
    "holders only",
    "contract holders",
    "existing contract",
    "task order under",
    "issued under",
    "vehicle holders",
)

VALUE_TIER_10M = 10_000_000
VALUE_TIER_5M = 5_000_000
VALUE_TIER_1M = 1_000_000
SUBCONTRACT_PLAN_THRESHOLD = 750_000
KEYWORD_BREAKDOWN_LIMIT = 5
MAX_SCORE = 100


@dataclass(frozen=True, slots=True)
class ScoringWeights:
    naics_match: int = 30
    keyword_match: int = 5
    set_aside_compatible: int = 20
    value_10m: int = 20
    value_5m: int = 15
    value_1m: int = 10
    region_match: int = 10
    subcontract_plan: int = 5
    go_threshold: int = 65
    review_threshold: int = 25


DEFAULT_WEIGHTS = ScoringWeights()
# Older rule table with a flatter mid-size bonus.
ALTERNATE_WEIGHTS = ScoringWeights(value_5m=12, value_1m=8)

WEIGHT_TABLES = {
    "default": DEFAULT_WEIGHTS,
    "alternate": ALTERNATE_WEIGHTS,
}

_STATUS_ORDER = {GO: 0, REVIEW: 1, NO_GO: 2}


def qualify(
    opportunity: OpportunityRecord,
    profile: EligibilityProfile,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> QualificationResult:
    set_aside = opportunity.set_aside.strip()
    keywords = matched_keywords(opportunity, profile)
    naics_match = _naics_matches(opportunity, profile)
    base = _base_breakdown(opportunity, naics_match, keywords)

    disqualifier = _first_contained(set_aside, profile.disqualifying_set_asides)
    if disqualifier:
        return QualificationResult(
            status=NO_GO,
            reason=f"{disqualifier} set-aside: company is not eligible to bid",
            score=0,
            breakdown={
                **base,
                "setAside": f"{set_aside} (not eligible)",
                "restriction": disqualifier,
                "restrictions": f"{disqualifier} set-aside",
            },
        )

    vehicle = restricted_vehicle(opportunity, profile)
    if vehicle:
        return QualificationResult(
            status=NO_GO,
            reason=f"Restricted to existing {vehicle} contract holders",
            score=0,
            breakdown={
                **base,
                "setAside": _set_aside_note(
                    set_aside, _first_contained(set_aside, profile.compatible_set_asides)
                ),
                "restriction": vehicle,
                "restrictions": f"{vehicle} holders only",
            },
        )

    score = 0
    signals: list[str] = []

    if naics_match:
        score += weights.naics_match
        signals.append(f"NAICS: {opportunity.naics_code.strip()}")

    if keywords:
        score += len(keywords) * weights.keyword_match
        signals.append(f"Scope: {', '.join(keywords[:3])}")

    compatible = _first_contained(set_aside, profile.compatible_set_asides)
    if compatible:
        score += weights.set_aside_compatible
        signals.append(f"Set-aside: {set_aside}")

    value = opportunity.award_value
    tier_points, tier_label = value_tier(value, weights)
    if tier_points:
        score += tier_points
        signals.append(tier_label)

    region_match = _region_matches(opportunity, profile)
    if region_match:
        score += weights.region_match
        signals.append(f"Location: {opportunity.place_of_performance_state.strip().upper()}")

    if value >= SUBCONTRACT_PLAN_THRESHOLD:
        score += weights.subcontract_plan
        signals.append("Sub plan likely required")

    score = max(0, min(score, MAX_SCORE))

    breakdown = {
        **base,
        "setAside": _set_aside_note(set_aside, compatible),
        "value": _value_note(value, tier_label),
        "region": _region_note(opportunity, region_match),
    }

    if score >= weights.go_threshold:
        status = GO
        reason = _go_reason(keywords, compatible)
    elif score >= weights.review_threshold:
        status = REVIEW
        reason = "Scope may be adjacent to core capabilities; confirm requirements manually"
    else:
        status = REVIEW
        reason = "Limited keyword match; manual review recommended"

    return QualificationResult(
        status=status,
        reason=reason,
        score=score,
        breakdown=breakdown,
        signals=tuple(signals),
    )


def rank(
    records: Iterable[OpportunityRecord],
    profile: EligibilityProfile,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> list[tuple[OpportunityRecord, QualificationResult]]:
    """Qualify a batch, best candidates first."""
    pairs = [(record, qualify(record, profile, weights)) for record in records]
    return sorted(pairs, key=lambda pair: (_STATUS_ORDER[pair[1].status], -pair[1].score))


def matched_keywords(opportunity: OpportunityRecord, profile: EligibilityProfile) -> list[str]:
    text = f"{opportunity.title} {opportunity.description}".lower()
    matched: list[str] = []
    seen: set[str] = set()
    for keyword in profile.match_keywords:
        lowered = keyword.lower().strip()
        if not lowered or lowered in seen:
            continue
        if lowered in text:
            matched.append(keyword)
            seen.add(lowered)
    return matched


def restricted_vehicle(opportunity: OpportunityRecord, profile: EligibilityProfile) -> str | None:
    """Name of a vehicle the text limits to existing holders, if any."""
    text = " ".join(
        (opportunity.title, opportunity.description, opportunity.extended_description)
    ).lower()
    if not any(phrase in text for phrase in HOLDERS_ONLY_PHRASES):
        return None
    for vehicle in profile.restricted_vehicles:
        name = vehicle.lower().strip()
        if name and name in text:
            return vehicle
    return None


def value_tier(value: float, weights: ScoringWeights = DEFAULT_WEIGHTS) -> tuple[int, str | None]:
    if value >= VALUE_TIER_10M:
        return weights.value_10m, "Large contract ($10M+)"
    if value >= VALUE_TIER_5M:
        return weights.value_5m, "Large contract ($5M+)"
    if value >= VALUE_TIER_1M:
        return weights.value_1m, "Mid-size contract ($1M+)"
    return 0, None


def _first_contained(text: str, labels: Iterable[str]) -> str | None:
    lowered = text.lower()
    if not lowered:
        return None
    for label in labels:
        needle = label.lower().strip()
        if needle and needle in lowered:
            return label
    return None


def _naics_matches(opportunity: OpportunityRecord, profile: EligibilityProfile) -> bool:
    code = opportunity.naics_code.strip()
    return bool(code) and code in profile.eligible_naics_codes


def _region_matches(opportunity: OpportunityRecord, profile: EligibilityProfile) -> bool:
    state = opportunity.place_of_performance_state.strip().upper()
    return bool(state) and state in {region.upper() for region in profile.preferred_regions}


def _base_breakdown(
    opportunity: OpportunityRecord, naics_match: bool, keywords: list[str]
) -> dict[str, str]:
    code = opportunity.naics_code.strip()
    if naics_match:
        naics = f"{code} – matches"
    else:
        naics = code or "not specified"
    return {
        "naics": naics,
        "setAside": opportunity.set_aside.strip() or "not specified",
        "keywords": ", ".join(keywords[:KEYWORD_BREAKDOWN_LIMIT]) or "Limited matches",
        "restrictions": "None detected",
    }


def _set_aside_note(set_aside: str, compatible: str | None) -> str:
    if not set_aside:
        return "not specified (full and open assumed)"
    if compatible:
        return f"{set_aside} (eligible)"
    return f"{set_aside} (eligibility unconfirmed)"


def _value_note(value: float, tier_label: str | None) -> str:
    if value <= 0:
        return "not specified"
    note = f"${value:,.0f}"
    return f"{note} ({tier_label})" if tier_label else note


def _region_note(opportunity: OpportunityRecord, region_match: bool) -> str:
    state = opportunity.place_of_performance_state.strip().upper()
    if not state:
        return "not specified"
    return f"{state} (preferred)" if region_match else state


def _go_reason(keywords: list[str], compatible: str | None) -> str:
    scope = f"matched {', '.join(keywords[:3])}" if keywords else "NAICS and contract profile align"
    eligibility = (
        f"{compatible} set-aside compatible" if compatible else "set-aside eligibility to confirm"
    )
    return f"Strong fit: {scope}; {eligibility}"
