"""Map registry JSON onto the canonical record shapes.

Upstream payloads name the same field many ways (SAM.gov camelCase,
SBIR.gov snake_case, USASpending display labels, hand-entered records).
Every helper here substitutes a safe default instead of raising.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from .models import Award, OpportunityRecord

_TITLE_KEYS = ("title", "solicitation_title", "Title", "name")
_AGENCY_KEYS = (
    "agency",
    "fullParentPathName",
    "departmentName",
    "department",
    "awarding_agency",
    "awarding_agency_name",
    "Awarding Agency",
    "funding_agency",
)
_DESCRIPTION_KEYS = (
    "description",
    "award_description",
    "Description",
    "contract_description",
    "summary",
)
_EXTENDED_KEYS = ("extendedDescription", "extended_description", "fullDescription", "topic_description")
_NAICS_KEYS = ("naicsCode", "naics_code", "naics", "NAICS Code", "NAICS")
_SET_ASIDE_KEYS = (
    "setAside",
    "typeOfSetAsideDescription",
    "typeOfSetAside",
    "set_aside",
    "Set Aside",
)
_VALUE_KEYS = (
    "value",
    "awardValue",
    "award_value",
    "awardAmount",
    "award_amount",
    "Award Amount",
    "amount",
    "total_obligation",
    "totalObligation",
    "contract_value",
)
_STATE_KEYS = (
    "placeOfPerformanceState",
    "place_of_performance_state",
    "pop_state",
    "Place of Performance State Code",
    "state",
)
_NOTICE_KEYS = ("noticeId", "noticeID", "id", "award_id", "Award ID")
_SOLICITATION_KEYS = ("solicitationNumber", "solicitation_number", "solicitation")
_CLOSE_KEYS = (
    "responseDeadLine",
    "reponseDeadLine",
    "responseDeadline",
    "closeDate",
    "close_date",
    "deadline",
)
_URL_KEYS = ("uiLink", "link", "url", "additionalInfoLink")

_TAG_RE = re.compile(r"<[^>]*>")
_SPACE_RE = re.compile(r"\s+")
_NAICS_RE = re.compile(r"\d{2,6}")


def to_record(raw: Mapping[str, Any], source: str | None = None) -> OpportunityRecord:
    return OpportunityRecord(
        title=_first_str(raw, _TITLE_KEYS),
        agency=_first_str(raw, _AGENCY_KEYS),
        description=clean_text(_first_str(raw, _DESCRIPTION_KEYS)),
        naics_code=_naics(_first(raw, _NAICS_KEYS)),
        set_aside=_first_str(raw, _SET_ASIDE_KEYS),
        award_value=_value(raw),
        place_of_performance_state=_state(raw),
        extended_description=clean_text(_first_str(raw, _EXTENDED_KEYS)),
        notice_id=_first_str(raw, _NOTICE_KEYS),
        solicitation_number=_first_str(raw, _SOLICITATION_KEYS),
        source=source or _to_str(raw.get("source")),
        close_date=_first_str(raw, _CLOSE_KEYS),
        url=_first_str(raw, _URL_KEYS),
    )


def to_award(raw: Mapping[str, Any]) -> Award:
    return Award(
        award_id=_first_str(raw, ("Award ID", "award_id", "awardId", "generated_internal_id")),
        recipient_name=_first_str(
            raw,
            (
                "Recipient Name",
                "recipient_name",
                "recipientName",
                "prime_contractor",
                "vendor_name",
                "awardee",
            ),
        )
        or "Unknown Contractor",
        description=clean_text(_first_str(raw, _DESCRIPTION_KEYS)),
        award_amount=_value(raw),
        agency=_first_str(raw, _AGENCY_KEYS) or "Federal Agency",
        sub_agency=_first_str(raw, ("Awarding Sub Agency", "awarding_sub_agency", "subAgency")),
        state=_state(raw),
        city=_first_str(raw, ("Place of Performance City", "pop_city_name", "pop_city", "city")),
        naics_code=_naics(_first(raw, _NAICS_KEYS)),
        naics_description=_first_str(raw, ("NAICS Description", "naics_description")),
        start_date=_first_str(raw, ("Start Date", "start_date", "startDate")),
        end_date=_first_str(raw, ("End Date", "end_date", "endDate")),
    )


def parse_money(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if value > 0 else 0.0
    digits = re.sub(r"[^0-9.]", "", str(value))
    try:
        return float(digits)
    except ValueError:
        return 0.0


def clean_text(value: str) -> str:
    if not value:
        return ""
    return _SPACE_RE.sub(" ", _TAG_RE.sub(" ", value)).strip()


def _value(raw: Mapping[str, Any]) -> float:
    award = raw.get("award")
    if isinstance(award, Mapping):
        amount = parse_money(award.get("amount"))
        if amount:
            return amount
    for key in _VALUE_KEYS:
        amount = parse_money(raw.get(key))
        if amount:
            return amount
    return 0.0


def _state(raw: Mapping[str, Any]) -> str:
    place = raw.get("placeOfPerformance")
    if isinstance(place, Mapping):
        state = place.get("state")
        code = state.get("code") if isinstance(state, Mapping) else state
        if _is_state_code(code):
            return str(code).strip().upper()
    for key in _STATE_KEYS:
        value = raw.get(key)
        if isinstance(value, Mapping):
            value = value.get("code")
        if _is_state_code(value):
            return str(value).strip().upper()
    return ""


def _is_state_code(value: Any) -> bool:
    return isinstance(value, str) and len(value.strip()) == 2 and value.strip().isalpha()


def _naics(value: Any) -> str:
    text = _to_str(value)
    match = _NAICS_RE.search(text)
    return match.group(0) if match else text


def _first(raw: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = raw.get(key)
        if value not in (None, "", [], {}):
            return value
    return None


def _first_str(raw: Mapping[str, Any], keys: tuple[str, ...]) -> str:
    return _to_str(_first(raw, keys))


def _to_str(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value).strip()
