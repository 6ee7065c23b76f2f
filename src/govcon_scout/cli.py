from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict, dataclass
from datetime import date
from pathlib import Path
from typing import Any

import httpx
import structlog

from .ai import ClaudeGenerator, GenerationError, assess_opportunity
from .config import AppConfig, config_path, load_config
from .document import proposal_docx, proposal_filename
from .logs import configure_logging
from .models import NO_GO, OpportunityRecord, QualificationResult
from .normalize import to_record
from .proposal import SECTION_PROMPTS, Proposal, draft_proposal, draft_section
from .qualify import rank
from .sources import collect_opportunities
from .usaspending import find_subcontract_leads

log = structlog.get_logger(__name__)


class InputError(ValueError):
    """The record file could not be read."""


@dataclass(slots=True)
class RunSummary:
    total_opportunities: int
    go: int
    review: int
    no_go: int
    sources: list[str]
    errors: list[str]
    results: list[dict]


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(config_path(args.config))
        configure_logging(level=args.log_level or config.log_level)
        return args.handler(args, config)
    except InputError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except (GenerationError, RuntimeError, ValueError, OSError, httpx.HTTPError) as exc:
        log.error("command_failed", command=args.command, error=str(exc))
        print(f"error: {exc}", file=sys.stderr)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="govcon-scout",
        description="Government contract opportunity qualification",
    )
    parser.add_argument("--config", help="Path to config.toml")
    parser.add_argument("--log-level", help="Log level (overrides config)")
    commands = parser.add_subparsers(dest="command", required=True)

    scan = commands.add_parser("scan", help="Fetch listings and qualify them")
    scan.add_argument("--status", choices=["GO", "REVIEW", "NO-GO"], help="Only show this status")
    scan.add_argument("--limit", type=int, default=50, help="Maximum results to print")
    scan.set_defaults(handler=_cmd_scan)

    qualify_cmd = commands.add_parser("qualify", help="Qualify records from a JSON file")
    qualify_cmd.add_argument("file", help="JSON object or list of raw records ('-' for stdin)")
    qualify_cmd.set_defaults(handler=_cmd_qualify)

    assess = commands.add_parser("assess", help="AI go/no-go assessment of one record")
    assess.add_argument("file", help="JSON object with one raw record")
    assess.set_defaults(handler=_cmd_assess)

    propose = commands.add_parser("propose", help="Draft a proposal for one record")
    propose.add_argument("file", help="JSON object with one raw record")
    propose.add_argument("--ai", action="store_true", help="Draft with the hosted model")
    propose.add_argument(
        "--section",
        help=f"Draft only this section with the hosted model ({', '.join(SECTION_PROMPTS)})",
    )
    propose.add_argument(
        "--docx",
        nargs="?",
        const="",
        help="Write a .docx (optionally to this path)",
    )
    propose.set_defaults(handler=_cmd_propose)

    sub = commands.add_parser("subcontracting", help="Score recent awards as subcontract leads")
    sub.add_argument("--tier", choices=["hot", "warm", "cold"], help="Only show this tier")
    sub.set_defaults(handler=_cmd_subcontracting)

    health = commands.add_parser("health", help="Show which services are configured")
    health.set_defaults(handler=_cmd_health)
    return parser


def run(config: AppConfig, status: str | None = None, limit: int = 50) -> RunSummary:
    opportunities, reports, errors = collect_opportunities(config)
    ranked = rank(opportunities, config.eligibility_profile(), config.scoring_weights())

    counts = {"GO": 0, "REVIEW": 0, NO_GO: 0}
    for _, result in ranked:
        counts[result.status] += 1

    selected = [pair for pair in ranked if status is None or pair[1].status == status]
    return RunSummary(
        total_opportunities=len(opportunities),
        go=counts["GO"],
        review=counts["REVIEW"],
        no_go=counts[NO_GO],
        sources=[f"{report.name}:{report.count}" for report in reports],
        errors=errors,
        results=[result_payload(record, result) for record, result in selected[:limit]],
    )


def result_payload(record: OpportunityRecord, result: QualificationResult) -> dict[str, Any]:
    return {
        "id": record.notice_id or record.solicitation_number,
        "source": record.source,
        "title": record.title,
        "agency": record.agency,
        "close_date": record.close_date,
        "value": record.award_value,
        "status": result.status,
        "score": result.score,
        "reason": result.reason,
        "breakdown": result.breakdown,
        "signals": list(result.signals),
        "url": record.url,
    }


def _cmd_scan(args: argparse.Namespace, config: AppConfig) -> int:
    summary = run(config, status=args.status, limit=args.limit)
    if summary.errors:
        print("Warnings:", file=sys.stderr)
        for error in summary.errors:
            print(f"- {error}", file=sys.stderr)

    for payload in summary.results:
        print(json.dumps(payload, indent=2))

    print(
        "Scan complete: "
        f"opportunities={summary.total_opportunities} "
        f"go={summary.go} "
        f"review={summary.review} "
        f"no_go={summary.no_go} "
        f"sources={','.join(summary.sources)}"
    )
    return 0


def _cmd_qualify(args: argparse.Namespace, config: AppConfig) -> int:
    records = [to_record(raw) for raw in _load_raw(args.file)]
    ranked = rank(records, config.eligibility_profile(), config.scoring_weights())
    print(json.dumps([result_payload(record, result) for record, result in ranked], indent=2))
    return 0


def _cmd_assess(args: argparse.Namespace, config: AppConfig) -> int:
    record = _single_record(args.file)
    generator = ClaudeGenerator(config.ai)
    assessment = assess_opportunity(
        record, config.eligibility_profile(), config.company, generator
    )
    print(json.dumps(asdict(assessment), indent=2))
    return 0


def _cmd_propose(args: argparse.Namespace, config: AppConfig) -> int:
    record = _single_record(args.file)
    today = date.today()
    if args.section:
        text = draft_section(args.section, record, config.company, ClaudeGenerator(config.ai))
        proposal = Proposal(text=text, method="ai-generated")
    else:
        generator = ClaudeGenerator(config.ai) if args.ai else None
        proposal = draft_proposal(
            record,
            config.company,
            today,
            naics_codes=config.profile.naics_codes,
            generator=generator,
        )
    print(proposal.text)

    if args.docx is not None:
        path = Path(args.docx or proposal_filename(record, today))
        path.write_bytes(proposal_docx(proposal.text, record, config.company.name))
        log.info("proposal_written", path=str(path), method=proposal.method)
        print(f"Wrote {path} ({proposal.method})", file=sys.stderr)
    return 0


def _cmd_subcontracting(args: argparse.Namespace, config: AppConfig) -> int:
    leads = find_subcontract_leads(config)
    for lead in leads:
        if args.tier and lead.tier != args.tier:
            continue
        payload = {
            **asdict(lead.award),
            "score": lead.score,
            "tier": lead.tier,
            "signals": lead.signals,
            "outreach_subject": lead.subject,
            "outreach_body": lead.body,
            "usaspending_url": f"https://www.usaspending.gov/award/{lead.award.award_id}",
        }
        print(json.dumps(payload, indent=2))
    return 0


def _cmd_health(args: argparse.Namespace, config: AppConfig) -> int:
    services = {
        "sam": bool(config.sam.api_key) or not config.sam.enabled,
        "sbir": True,
        "usaspending": True,
        "claude": bool(config.ai.api_key),
    }
    status = "ok" if all(services.values()) else "degraded"
    print(json.dumps({"status": status, "services": services}, indent=2))
    return 0


def _load_raw(file: str) -> list[dict]:
    try:
        text = sys.stdin.read() if file == "-" else Path(file).read_text()
        data = json.loads(text)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InputError(f"cannot read records from {file}: {exc}") from exc
    items = data if isinstance(data, list) else [data]
    records = [item for item in items if isinstance(item, dict)]
    if not records:
        raise InputError(f"no JSON objects found in {file}")
    return records


def _single_record(file: str) -> OpportunityRecord:
    return to_record(_load_raw(file)[0])


if __name__ == "__main__":
    sys.exit(main())
