from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

Status = Literal["GO", "REVIEW", "NO-GO"]

GO: Status = "GO"
REVIEW: Status = "REVIEW"
NO_GO: Status = "NO-GO"


@dataclass(frozen=True, slots=True)
class OpportunityRecord:
    title: str = ""
    agency: str = ""
    description: str = ""
    naics_code: str = ""
    set_aside: str = ""
    award_value: float = 0.0
    place_of_performance_state: str = ""
    extended_description: str = ""
    notice_id: str = ""
    solicitation_number: str = ""
    source: str = ""
    close_date: str = ""
    url: str = ""


@dataclass(frozen=True, slots=True)
class EligibilityProfile:
    eligible_naics_codes: tuple[str, ...] = ()
    match_keywords: tuple[str, ...] = ()
    disqualifying_set_asides: tuple[str, ...] = ()
    restricted_vehicles: tuple[str, ...] = ()
    compatible_set_asides: tuple[str, ...] = ()
    preferred_regions: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class QualificationResult:
    status: Status
    reason: str
    score: int
    breakdown: dict[str, str] = field(default_factory=dict)
    signals: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Award:
    award_id: str = ""
    recipient_name: str = ""
    description: str = ""
    award_amount: float = 0.0
    agency: str = ""
    sub_agency: str = ""
    state: str = ""
    city: str = ""
    naics_code: str = ""
    naics_description: str = ""
    start_date: str = ""
    end_date: str = ""


@dataclass(slots=True)
class SubcontractLead:
    award: Award
    score: int
    tier: str
    signals: list[str]
    subject: str
    body: str
