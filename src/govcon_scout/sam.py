from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import structlog

from .config import AppConfig
from .models import OpportunityRecord
from .normalize import to_record

log = structlog.get_logger(__name__)


@dataclass(slots=True)
class SamResponse:
    records: list[dict]


def fetch_sam_opportunities(config: AppConfig, now: datetime | None = None) -> list[OpportunityRecord]:
    if not config.sam.api_key:
        raise RuntimeError("SAM.gov API key not configured (set SAM_API_KEY)")

    records = _fetch_sam_records(config, now or datetime.now(timezone.utc))
    opportunities: list[OpportunityRecord] = []
    for record in records:
        opportunity = _to_opportunity(record)
        if opportunity:
            opportunities.append(opportunity)
    return opportunities


def _fetch_sam_records(config: AppConfig, now: datetime) -> list[dict]:
    seen: set[str] = set()
    records: list[dict] = []

    for keyword in config.sam.keywords or [""]:
        params = _build_params(config, keyword, now)
        response = _fetch_page(config.sam.base_url, params, config)
        added = 0
        for record in response.records:
            notice_id = str(record.get("noticeId") or record.get("solicitationNumber") or "")
            if notice_id and notice_id in seen:
                continue
            if notice_id:
                seen.add(notice_id)
            records.append(record)
            added += 1
        log.debug("sam_keyword_searched", keyword=keyword, returned=len(response.records), added=added)

    return records


def _build_params(config: AppConfig, keyword: str, now: datetime) -> dict[str, Any]:
    posted_to = now.strftime("%m/%d/%Y")
    # SAM.gov API requires date range <= 1 year
    days = min(config.sam.posted_days, 364)
    posted_from = (now - timedelta(days=days)).strftime("%m/%d/%Y")

    params: dict[str, Any] = {
        "api_key": config.sam.api_key,
        "postedFrom": posted_from,
        "postedTo": posted_to,
        "limit": config.sam.limit,
    }
    if keyword:
        params["title"] = keyword
    if config.sam.ptype:
        params["ptype"] = config.sam.ptype
    return params


def _fetch_page(base_url: str, params: dict[str, Any], config: AppConfig) -> SamResponse:
    headers = {"User-Agent": config.user_agent, "Accept": "application/json"}
    with httpx.Client(timeout=config.sam.timeout, headers=headers) as client:
        resp = client.get(base_url, params=params)
        resp.raise_for_status()
        data = resp.json()
    records = _extract_records(data)
    return SamResponse(records=records)


def _extract_records(data: Any) -> list[dict]:
    if isinstance(data, dict):
        for key in ("opportunitiesData", "opportunities", "data", "items"):
            value = data.get(key)
            if isinstance(value, list):
                return [item for item in value if isinstance(item, dict)]
    return []


def _to_opportunity(record: dict[str, Any]) -> OpportunityRecord | None:
    opportunity = to_record(record, source="sam")
    if not opportunity.title:
        return None
    # v2 search returns a link to the notice description, not the text.
    if opportunity.description.startswith("http"):
        opportunity = replace(opportunity, description="")
    if not opportunity.url and opportunity.notice_id:
        opportunity = replace(opportunity, url=f"https://sam.gov/opp/{opportunity.notice_id}/view")
    return opportunity
