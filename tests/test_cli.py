from __future__ import annotations

import io
import json

import docx
import pytest

from govcon_scout import cli
from govcon_scout.config import AppConfig
from govcon_scout.models import Award
from govcon_scout.sources import SourceReport
from govcon_scout.usaspending import build_leads

STRONG = {
    "noticeId": "W912DY-25-R-0001",
    "title": "Depot modernization",
    "agency": "Department of the Army",
    "description": "Install a robotic cell with conveyor transfer",
    "naicsCode": "333249",
    "setAside": "Total Small Business",
    "value": 6_000_000,
    "placeOfPerformanceState": "MI",
}
EXCLUDED = {
    "noticeId": "N00024-26-R-0002",
    "title": "Robotic welding",
    "setAside": "HUBZone",
}


@pytest.fixture(autouse=True)
def _workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)


def _write(tmp_path, data) -> str:
    path = tmp_path / "records.json"
    path.write_text(json.dumps(data))
    return str(path)


def test_qualify_file_prints_ranked_results(tmp_path, capsys):
    code = cli.main(["qualify", _write(tmp_path, [EXCLUDED, STRONG])])

    assert code == 0
    results = json.loads(capsys.readouterr().out)
    assert [result["status"] for result in results] == ["GO", "NO-GO"]
    assert results[0]["id"] == "W912DY-25-R-0001"
    assert results[1]["reason"] == "HUBZone set-aside: company is not eligible to bid"


def test_qualify_uses_config_weights(tmp_path, capsys):
    config = tmp_path / "custom.toml"
    config.write_text('[weights]\ntable = "alternate"\n\n[profile]\nnaics_codes = ["333249"]\n')

    assert cli.main(["--config", str(config), "qualify", _write(tmp_path, STRONG)]) == 0
    (result,) = json.loads(capsys.readouterr().out)
    # alternate table gives 12 points for the $5M tier
    assert result["breakdown"]["value"] == "$6,000,000 (Large contract ($5M+))"
    assert result["status"] == "GO"


def test_qualify_reads_stdin(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO(json.dumps(STRONG)))

    assert cli.main(["qualify", "-"]) == 0
    assert json.loads(capsys.readouterr().out)[0]["status"] == "GO"


@pytest.mark.parametrize(
    "content", [b"not json", b"[1, 2]", b'{"title": "\xff\xfe robot"}']
)
def test_unreadable_input_exits_two(tmp_path, capsys, content):
    path = tmp_path / "bad.json"
    path.write_bytes(content)

    assert cli.main(["qualify", str(path)]) == 2
    assert "error:" in capsys.readouterr().err


def test_missing_file_exits_two(tmp_path):
    assert cli.main(["qualify", str(tmp_path / "nope.json")]) == 2


def test_health_reports_missing_keys(capsys):
    assert cli.main(["health"]) == 0

    report = json.loads(capsys.readouterr().out)
    assert report["status"] == "degraded"
    assert report["services"]["sam"] is False
    assert report["services"]["claude"] is False


def test_health_ok_with_keys(monkeypatch, capsys):
    monkeypatch.setenv("SAM_API_KEY", "sam-key")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")

    assert cli.main(["health"]) == 0
    assert json.loads(capsys.readouterr().out)["status"] == "ok"


def test_scan_summarizes_sources(monkeypatch, capsys):
    records = [cli.to_record(STRONG, source="sam"), cli.to_record(EXCLUDED, source="sam")]
    monkeypatch.setattr(
        cli,
        "collect_opportunities",
        lambda config: (records, [SourceReport(name="sam", count=2)], ["SBIR.gov: timed out"]),
    )

    assert cli.main(["scan", "--status", "GO"]) == 0

    captured = capsys.readouterr()
    assert "SBIR.gov: timed out" in captured.err
    assert '"status": "GO"' in captured.out
    assert '"NO-GO"' not in captured.out
    assert "opportunities=2 go=1 review=0 no_go=1 sources=sam:2" in captured.out


def test_run_limits_results(monkeypatch):
    records = [cli.to_record(STRONG), cli.to_record(EXCLUDED)]
    monkeypatch.setattr(cli, "collect_opportunities", lambda config: (records, [], []))

    summary = cli.run(AppConfig(), limit=1)

    assert summary.total_opportunities == 2
    assert len(summary.results) == 1
    assert summary.results[0]["status"] == "GO"


def test_scan_fails_when_all_sources_fail(capsys):
    config_path = "strict.toml"
    with open(config_path, "w") as handle:
        handle.write("fail_on_no_results = true\n\n[sbir]\nenabled = false\n")

    assert cli.main(["--config", config_path, "scan"]) == 1
    assert "All sources failed" in capsys.readouterr().err


def test_propose_writes_docx(tmp_path, capsys):
    out = tmp_path / "proposal.docx"

    assert cli.main(["propose", _write(tmp_path, STRONG), "--docx", str(out)]) == 0

    captured = capsys.readouterr()
    assert captured.out.startswith("# Technical Proposal for Depot modernization")
    assert "(template)" in captured.err
    document = docx.Document(str(out))
    first = next(paragraph for paragraph in document.paragraphs if paragraph.text)
    assert first.text == "Technical Proposal for Depot modernization"


def test_propose_default_docx_name(tmp_path):
    assert cli.main(["propose", _write(tmp_path, STRONG), "--docx"]) == 0

    (written,) = tmp_path.glob("Proposal_*.docx")
    assert written.name.startswith("Proposal_W912DY-25-R-0001_")


def test_propose_with_ai_requires_key(tmp_path, capsys):
    assert cli.main(["propose", _write(tmp_path, STRONG), "--ai"]) == 1
    assert "ANTHROPIC_API_KEY" in capsys.readouterr().err


def test_assess_prints_assessment(tmp_path, monkeypatch, capsys, stub_generator):
    reply = json.dumps({"recommendation": "NO-GO", "confidence": 90, "summary": "HUBZone only"})
    monkeypatch.setattr(cli, "ClaudeGenerator", lambda config: stub_generator(reply=reply))

    assert cli.main(["assess", _write(tmp_path, EXCLUDED)]) == 0

    assessment = json.loads(capsys.readouterr().out)
    assert assessment["recommendation"] == "NO-GO"
    assert assessment["confidence"] == 90
    assert assessment["method"] == "ai"


def test_subcontracting_filters_by_tier(monkeypatch, capsys):
    config = AppConfig()
    awards = [
        Award(
            award_id="W9127S-26-C-0007",
            recipient_name="Turner Construction Company",
            description="Automated material handling and robotic assembly integration",
            award_amount=8_200_000,
            agency="Department of Defense",
        ),
        Award(
            award_id="FA8601-26-C-0100",
            recipient_name="Atlas Facilities Group",
            description="Building maintenance services",
            award_amount=2_000_000,
            agency="Department of the Air Force",
        ),
    ]
    monkeypatch.setattr(cli, "find_subcontract_leads", lambda cfg: build_leads(awards, config))

    assert cli.main(["subcontracting", "--tier", "hot"]) == 0

    out = capsys.readouterr().out
    assert "W9127S-26-C-0007" in out
    assert "FA8601-26-C-0100" not in out
    assert "https://www.usaspending.gov/award/W9127S-26-C-0007" in out


def test_unknown_weights_override_exits_one(tmp_path, capsys):
    config = tmp_path / "custom.toml"
    config.write_text("[weights.overrides]\nnaics = 40\n")

    assert cli.main(["--config", str(config), "qualify", _write(tmp_path, STRONG)]) == 1
    assert "Unknown weights override(s): naics" in capsys.readouterr().err


def test_malformed_config_exits_one(tmp_path, capsys):
    config = tmp_path / "broken.toml"
    config.write_text("[profile\nnaics_codes = \n")

    assert cli.main(["--config", str(config), "health"]) == 1
    assert "error:" in capsys.readouterr().err


def test_propose_single_section(tmp_path, monkeypatch, capsys, stub_generator):
    generator = stub_generator(reply="## Risk Mitigation\n\n- Schedule slip")
    monkeypatch.setattr(cli, "ClaudeGenerator", lambda config: generator)
    out = tmp_path / "risk.docx"

    assert cli.main(["propose", _write(tmp_path, STRONG), "--section", "risk", "--docx", str(out)]) == 0

    captured = capsys.readouterr()
    assert captured.out.startswith("## Risk Mitigation")
    assert "(ai-generated)" in captured.err
    assert generator.prompts[0].startswith("Write a Risk Mitigation section")
    assert out.exists()


def test_propose_section_requires_key(tmp_path, capsys):
    assert cli.main(["propose", _write(tmp_path, STRONG), "--section", "technical"]) == 1
    assert "ANTHROPIC_API_KEY" in capsys.readouterr().err
