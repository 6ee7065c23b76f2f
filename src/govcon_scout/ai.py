from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Protocol

import anthropic
import structlog

from .config import AiConfig, CompanyConfig
from .models import GO, NO_GO, REVIEW, EligibilityProfile, OpportunityRecord

log = structlog.get_logger(__name__)

_JSON_RE = re.compile(r"\{.*\}", re.DOTALL)
_CHECK_STATUSES = {"PASS", "WARN", "FAIL"}


class GenerationError(RuntimeError):
    """The hosted text-generation call failed or returned nothing."""


class TextGenerator(Protocol):
    def generate(self, prompt: str, max_tokens: int | None = None) -> str: ...


class ClaudeGenerator:
    def __init__(self, config: AiConfig, client: anthropic.Anthropic | None = None) -> None:
        if client is None and not config.api_key:
            raise GenerationError("Anthropic API key not configured (set ANTHROPIC_API_KEY)")
        self.config = config
        self.client = client or anthropic.Anthropic(
            api_key=config.api_key, timeout=config.timeout
        )

    def generate(self, prompt: str, max_tokens: int | None = None) -> str:
        try:
            response = self.client.messages.create(
                model=self.config.model,
                max_tokens=max_tokens or self.config.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as exc:
            raise GenerationError(f"Claude API error: {exc}") from exc

        text = "".join(getattr(block, "text", "") for block in response.content or [])
        if not text.strip():
            raise GenerationError("Claude API returned an empty response")
        log.debug(
            "text_generated",
            model=self.config.model,
            input_tokens=getattr(response.usage, "input_tokens", 0),
            output_tokens=getattr(response.usage, "output_tokens", 0),
        )
        return text


@dataclass(slots=True)
class Check:
    name: str
    status: str
    detail: str


@dataclass(slots=True)
class Assessment:
    recommendation: str
    confidence: int
    checks: list[Check] = field(default_factory=list)
    summary: str = ""
    risks: list[str] = field(default_factory=list)
    next_steps: list[str] = field(default_factory=list)
    method: str = "ai"


def assess_opportunity(
    opportunity: OpportunityRecord,
    profile: EligibilityProfile,
    company: CompanyConfig,
    generator: TextGenerator,
) -> Assessment:
    prompt = build_assessment_prompt(opportunity, profile, company)
    text = generator.generate(prompt, max_tokens=2000)
    return parse_assessment(text)


def build_assessment_prompt(
    opp: OpportunityRecord, profile: EligibilityProfile, company: CompanyConfig
) -> str:
    value = f"${opp.award_value:,.0f}" if opp.award_value else "Not specified"
    identifiers = " | ".join(
        part
        for part in (
            f"CAGE: {company.cage}" if company.cage else "",
            f"UEI: {company.uei}" if company.uei else "",
        )
        if part
    )
    return f"""You are a government contracting advisor for {company.name}. Analyze this opportunity and provide a GO/REVIEW/NO-GO recommendation.

## Company Profile
- Name: {company.name}
- Identifiers: {identifiers or 'N/A'}
- NAICS Codes: {', '.join(profile.eligible_naics_codes)}
- Certifications: {', '.join(company.certifications) or 'N/A'}
- Locations: {', '.join(part for part in (company.headquarters, company.sales_office) if part) or 'N/A'}
- Capabilities: {', '.join(company.capabilities) or ', '.join(profile.match_keywords)}
- NOT eligible for: {', '.join(profile.disqualifying_set_asides)} set-asides

## Opportunity Details
- Title: {opp.title}
- Agency: {opp.agency}
- Solicitation: {opp.solicitation_number or opp.notice_id or 'N/A'}
- Value: {value}
- NAICS: {opp.naics_code or 'Not specified'}
- Set-Aside: {opp.set_aside or 'Full & Open'}
- Close Date: {opp.close_date or 'Not specified'}
- Description: {opp.description or 'No description provided'}

## Instructions
Respond in this EXACT JSON format:
{{
    "recommendation": "GO" or "REVIEW" or "NO-GO",
    "confidence": 0-100,
    "checks": [
        {{"name": "NAICS Code Match", "status": "PASS/WARN/FAIL", "detail": "explanation"}},
        {{"name": "Set-Aside Eligibility", "status": "PASS/WARN/FAIL", "detail": "explanation"}},
        {{"name": "Timeline Feasibility", "status": "PASS/WARN/FAIL", "detail": "explanation"}},
        {{"name": "Geographic Scope", "status": "PASS/WARN/FAIL", "detail": "explanation"}},
        {{"name": "Capability Match", "status": "PASS/WARN/FAIL", "detail": "explanation"}},
        {{"name": "Competition Level", "status": "PASS/WARN/FAIL", "detail": "explanation"}}
    ],
    "summary": "2-3 sentence summary of recommendation",
    "risks": ["risk 1", "risk 2"],
    "nextSteps": ["step 1", "step 2", "step 3"]
}}

Respond ONLY with the JSON, no other text."""


def parse_assessment(text: str) -> Assessment:
    data = _extract_json(text)
    if data is None:
        log.warning("assessment_unparsable", length=len(text))
        return fallback_assessment()

    recommendation = str(data.get("recommendation") or REVIEW).strip().upper()
    if recommendation not in (GO, REVIEW, NO_GO):
        recommendation = REVIEW

    return Assessment(
        recommendation=recommendation,
        confidence=_confidence(data.get("confidence")),
        checks=[_check(item) for item in data.get("checks") or [] if isinstance(item, dict)],
        summary=str(data.get("summary") or ""),
        risks=[str(item) for item in data.get("risks") or []],
        next_steps=[str(item) for item in data.get("nextSteps") or []],
    )


def fallback_assessment() -> Assessment:
    return Assessment(
        recommendation=REVIEW,
        confidence=50,
        checks=[
            Check(
                name="Analysis",
                status="WARN",
                detail="Manual review required - automated analysis incomplete",
            )
        ],
        summary="Automated analysis could not be completed. Please review manually.",
        method="fallback",
    )


def _extract_json(text: str) -> dict[str, Any] | None:
    match = _JSON_RE.search(text or "")
    if not match:
        return None
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def _confidence(value: Any) -> int:
    try:
        confidence = int(float(value))
    except (TypeError, ValueError):
        return 70
    return max(0, min(confidence, 100))


def _check(item: dict[str, Any]) -> Check:
    status = str(item.get("status") or "WARN").upper()
    return Check(
        name=str(item.get("name") or "Check"),
        status=status if status in _CHECK_STATUSES else "WARN",
        detail=str(item.get("detail") or ""),
    )
