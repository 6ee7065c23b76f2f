from __future__ import annotations

from dataclasses import replace

import pytest
import structlog

from govcon_scout.ai import GenerationError
from govcon_scout.models import EligibilityProfile, OpportunityRecord


@pytest.fixture(autouse=True, scope="session")
def _stdlib_structlog():
    # Send structlog events through stdlib logging so pytest captures them
    # instead of structlog's default stdout printer.
    structlog.configure(
        processors=[structlog.stdlib.add_log_level, structlog.processors.KeyValueRenderer()],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture(autouse=True)
def _no_logging_setup(monkeypatch):
    monkeypatch.setattr("govcon_scout.cli.configure_logging", lambda **_: None)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("SAM_API_KEY", "ANTHROPIC_API_KEY", "GOVCON_SCOUT_CONFIG", "GOVCON_SCOUT_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def profile() -> EligibilityProfile:
    return EligibilityProfile(
        eligible_naics_codes=("333249", "541512"),
        match_keywords=("robotic", "conveyor", "plc", "machine vision", "welding", "scada"),
        disqualifying_set_asides=(
            "SDVOSB",
            "Service-Disabled Veteran",
            "VOSB",
            "Veteran-Owned",
            "8(a)",
            "HUBZone",
            "EDWOSB",
            "WOSB",
            "Women-Owned",
        ),
        restricted_vehicles=("SeaPort-NxG", "OASIS+"),
        compatible_set_asides=("small business", "full and open"),
        preferred_regions=("MI", "CA"),
    )


@pytest.fixture
def strong_record() -> OpportunityRecord:
    return OpportunityRecord(
        title="Depot modernization",
        agency="Department of the Army",
        description="Install a robotic cell with conveyor transfer",
        naics_code="333249",
        set_aside="Total Small Business",
        award_value=6_000_000,
        place_of_performance_state="MI",
        notice_id="W912DY-25-R-0001",
    )


@pytest.fixture
def make_record(strong_record):
    def _make(**changes) -> OpportunityRecord:
        return replace(strong_record, **changes)

    return _make


class StubGenerator:
    def __init__(self, reply: str | None = None, error: str | None = None) -> None:
        self.reply = reply
        self.error = error
        self.prompts: list[str] = []

    def generate(self, prompt: str, max_tokens: int | None = None) -> str:
        self.prompts.append(prompt)
        if self.error:
            raise GenerationError(self.error)
        return self.reply or ""


@pytest.fixture
def stub_generator():
    return StubGenerator
