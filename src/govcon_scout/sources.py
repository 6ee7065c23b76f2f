from __future__ import annotations

from dataclasses import dataclass

import structlog

from .config import AppConfig
from .models import OpportunityRecord
from .sam import fetch_sam_opportunities
from .sbir import fetch_sbir_opportunities

log = structlog.get_logger(__name__)


@dataclass(slots=True)
class SourceReport:
    name: str
    count: int


def collect_opportunities(
    config: AppConfig,
) -> tuple[list[OpportunityRecord], list[SourceReport], list[str]]:
    opportunities: list[OpportunityRecord] = []
    reports: list[SourceReport] = []
    errors: list[str] = []

    if config.sam.enabled:
        try:
            sam_opps = fetch_sam_opportunities(config)
            opportunities.extend(sam_opps)
            reports.append(SourceReport(name="sam", count=len(sam_opps)))
        except Exception as exc:
            errors.append(f"SAM.gov: {exc}")
            log.warning("source_failed", source="sam", error=str(exc))

    if config.sbir.enabled:
        try:
            sbir_opps = fetch_sbir_opportunities(config)
            opportunities.extend(sbir_opps)
            reports.append(SourceReport(name="sbir", count=len(sbir_opps)))
        except Exception as exc:
            errors.append(f"SBIR.gov: {exc}")
            log.warning("source_failed", source="sbir", error=str(exc))

    for report in reports:
        log.info("source_collected", source=report.name, count=report.count)

    if not opportunities and errors and config.fail_on_no_results:
        raise RuntimeError("All sources failed: " + "; ".join(errors))

    return opportunities, reports, errors
