from __future__ import annotations

import json
from datetime import date

import httpx
import pytest

from govcon_scout import usaspending
from govcon_scout.config import AppConfig
from govcon_scout.models import Award


@pytest.fixture
def config() -> AppConfig:
    config = AppConfig()
    config.company.name = "Lakeshore Robotics"
    return config


@pytest.fixture
def turner_award() -> Award:
    return Award(
        award_id="W9127S-26-C-0007",
        recipient_name="Turner Construction Company",
        description=(
            "Modernization of manufacturing facility including automated material handling "
            "systems and robotic assembly integration"
        ),
        award_amount=8_200_000,
        agency="Department of Defense",
        state="AL",
        naics_code="236220",
    )


@pytest.fixture
def specialist_award() -> Award:
    return Award(
        award_id="N00024-26-C-1111",
        recipient_name="Acme Robotics Inc",
        description="Spare parts",
        award_amount=6_000_000,
        agency="Department of the Navy",
        state="TX",
        naics_code="423830",
    )


def test_general_contractor_award_is_hot(turner_award, config):
    score, tier, signals = usaspending.score_award(turner_award, config)

    # 3 scope terms x 8 + 25 non-specialist + 20 general contractor + 15 tier + 5 sub plan
    assert score == 89
    assert tier == "hot"
    assert "General/facilities contractor" in signals
    assert "Prime is not automation specialist" in signals
    assert signals[0] == "Scope: robot, automat, material handling"


def test_specialist_prime_is_cold(specialist_award, config):
    score, tier, signals = usaspending.score_award(specialist_award, config)

    assert score == 20
    assert tier == "cold"
    assert "Prime is not automation specialist" not in signals


def test_preferred_region_and_naics_add_points(turner_award, config):
    local = Award(
        award_id=turner_award.award_id,
        recipient_name=turner_award.recipient_name,
        description=turner_award.description,
        award_amount=turner_award.award_amount,
        state="MI",
        naics_code="333249",
    )

    score, _, signals = usaspending.score_award(local, config)

    assert score == 100
    assert "Location: MI" in signals
    assert "NAICS: 333249" in signals


def test_scope_points_are_capped(config):
    award = Award(
        recipient_name="Acme Automation",
        description="robot conveyor plc scada palletizing warehouse machine vision",
    )

    score, _, _ = usaspending.score_award(award, config)

    assert score == usaspending.SCOPE_CAP


def test_build_leads_filters_and_sorts(turner_award, specialist_award, config):
    warm = Award(
        award_id="FA8601-26-C-0100",
        recipient_name="Atlas Facilities Group",
        description="Building maintenance services",
        award_amount=2_000_000,
        agency="Department of the Air Force",
    )

    leads = usaspending.build_leads([specialist_award, warm, turner_award], config)

    assert [lead.award.award_id for lead in leads] == [turner_award.award_id, warm.award_id]
    assert leads[1].score == 60
    assert leads[1].tier == "warm"
    assert leads[0].subject.startswith("Subcontracting Support")
    assert "Dear Turner Construction Company Team" in leads[0].body


def test_payload_window(config):
    payload = usaspending._build_payload(config, date(2026, 1, 31))

    period = payload["filters"]["time_period"][0]
    assert period == {"start_date": "2025-11-02", "end_date": "2026-01-31"}
    assert payload["filters"]["naics_codes"] == config.profile.naics_codes
    assert payload["filters"]["award_amounts"][0]["lower_bound"] == 500_000
    assert payload["limit"] == 50


def test_fetch_awards_posts_search(config, monkeypatch):
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "results": [
                    {
                        "Award ID": "W9127S-26-C-0007",
                        "Recipient Name": "Turner Construction Company",
                        "Award Amount": 8_200_000,
                        "Place of Performance State Code": "AL",
                    },
                    "junk",
                ]
            },
        )

    real_client = httpx.Client
    monkeypatch.setattr(
        usaspending.httpx,
        "Client",
        lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
    )

    awards = usaspending.fetch_awards(config, today=date(2026, 1, 31))

    assert [award.recipient_name for award in awards] == ["Turner Construction Company"]
    assert awards[0].state == "AL"
    assert captured["body"]["sort"] == "Award Amount"


def test_fetch_awards_raises_on_http_error(config, monkeypatch):
    real_client = httpx.Client
    monkeypatch.setattr(
        usaspending.httpx,
        "Client",
        lambda **kwargs: real_client(
            transport=httpx.MockTransport(lambda request: httpx.Response(503)), **kwargs
        ),
    )

    with pytest.raises(httpx.HTTPStatusError):
        usaspending.fetch_awards(config, today=date(2026, 1, 31))
