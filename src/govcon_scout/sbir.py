from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from .config import AppConfig
from .models import OpportunityRecord
from .normalize import clean_text

log = structlog.get_logger(__name__)

PLACEHOLDER_TITLE = "SBIR/STTR Opportunity"

PHASE_VALUES = {
    "phase i": 275_000.0,
    "phase ii": 1_500_000.0,
}
DEFAULT_PHASE_VALUE = 250_000.0


@dataclass(slots=True)
class ApiResponse:
    records: list[dict]
    source_url: str


def fetch_sbir_opportunities(config: AppConfig) -> list[OpportunityRecord]:
    seen: set[str] = set()
    opportunities: list[OpportunityRecord] = []

    for keyword in config.sbir.keywords or [""]:
        params: dict[str, Any] = {"open": 1, "rows": max(1, min(config.sbir.rows, 50))}
        if keyword:
            params["keyword"] = keyword

        response = _fetch_page(config.sbir.base_url, params, config)
        for solicitation in response.records:
            opportunity = to_opportunity(solicitation)
            key = _dedup_key(solicitation, opportunity)
            if key is not None:
                if key in seen:
                    continue
                seen.add(key)
            opportunities.append(opportunity)
        log.debug("sbir_keyword_searched", keyword=keyword, returned=len(response.records))

    return opportunities


def _fetch_page(base_url: str, params: dict[str, Any], config: AppConfig) -> ApiResponse:
    headers = {"User-Agent": config.user_agent}
    with httpx.Client(timeout=config.sbir.timeout, headers=headers) as client:
        resp = client.get(base_url, params=params)
        resp.raise_for_status()
        data = resp.json()
    return ApiResponse(records=_extract_records(data), source_url=str(resp.url))


def _extract_records(data: Any) -> list[dict]:
    if isinstance(data, list):
        return [item for item in data if isinstance(item, dict)]
    if isinstance(data, dict):
        for key in ("solicitations", "results", "data", "items"):
            value = data.get(key)
            if isinstance(value, list):
                return [item for item in value if isinstance(item, dict)]
    return []


def to_opportunity(solicitation: dict[str, Any]) -> OpportunityRecord:
    topics = solicitation.get("solicitation_topics") or []
    if not isinstance(topics, list):
        topics = []
    topics = [topic for topic in topics if isinstance(topic, dict)]

    program = _to_str(solicitation.get("program")) or "SBIR"
    phase = _to_str(solicitation.get("phase"))
    agency = _to_str(solicitation.get("agency"))
    number = _to_str(solicitation.get("solicitation_number"))
    raw_id = _to_str(solicitation.get("solicitation_id") or solicitation.get("id"))
    title = _to_str(solicitation.get("solicitation_title")) or PLACEHOLDER_TITLE

    description = f"{program} {phase or 'Phase I'} - {agency or 'Federal'}"
    if topics:
        description = clean_text(_to_str(topics[0].get("topic_description"))) or description

    extended = " ".join(
        clean_text(f"{_to_str(topic.get('topic_title'))} {_to_str(topic.get('topic_description'))}")
        for topic in topics
    )

    return OpportunityRecord(
        title=title,
        agency=agency or "Federal Agency",
        description=description,
        set_aside=f"{program} {phase}".strip(),
        award_value=PHASE_VALUES.get(phase.lower(), DEFAULT_PHASE_VALUE),
        extended_description=extended,
        notice_id=f"sbir-{number or raw_id or title}",
        solicitation_number=number,
        source="sbir",
        close_date=_close_date(solicitation),
        url=_best_url(solicitation, topics[0] if topics else None),
    )


def _dedup_key(solicitation: dict[str, Any], opportunity: OpportunityRecord) -> str | None:
    # Untitled, unnumbered solicitations cannot be told apart; keep them all.
    raw_id = _to_str(solicitation.get("solicitation_id") or solicitation.get("id"))
    if raw_id:
        return f"id:{raw_id}"
    if opportunity.solicitation_number:
        return f"number:{opportunity.solicitation_number}"
    if opportunity.title != PLACEHOLDER_TITLE:
        return f"title:{opportunity.title}"
    return None


def _close_date(solicitation: dict[str, Any]) -> str:
    due = solicitation.get("application_due_date")
    if isinstance(due, list) and due:
        return _to_str(due[0])
    return _to_str(solicitation.get("close_date"))


def _best_url(solicitation: dict[str, Any], topic: dict[str, Any] | None) -> str:
    for source in (topic, solicitation):
        if not source:
            continue
        for key in (
            "sbir_topic_link",
            "sbir_solicitation_link",
            "solicitation_agency_url",
        ):
            value = _to_str(source.get(key))
            if value:
                return value
    return "https://www.sbir.gov/topics"


def _to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value).strip()
