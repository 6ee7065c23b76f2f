from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from .models import EligibilityProfile
from .qualify import WEIGHT_TABLES, ScoringWeights


@dataclass(slots=True)
class ProfileConfig:
    naics_codes: list[str] = field(
        default_factory=lambda: ["333249", "333922", "541330", "541512", "541715", "238210"]
    )
    keywords: list[str] = field(
        default_factory=lambda: [
            "robot",
            "robotic",
            "automation",
            "automated",
            "manufacturing",
            "integration",
            "vision system",
            "machine vision",
            "material handling",
            "welding",
            "assembly",
            "plc",
            "scada",
            "controls",
            "conveyor",
        ]
    )
    # Checked in order; the first hit names the restriction.
    disqualifying_set_asides: list[str] = field(
        default_factory=lambda: [
            "SDVOSB",
            "Service-Disabled Veteran",
            "VOSB",
            "Veteran-Owned",
            "8(a)",
            "HUBZone",
            "EDWOSB",
            "WOSB",
            "Women-Owned",
        ]
    )
    restricted_vehicles: list[str] = field(
        default_factory=lambda: [
            "OASIS+",
            "OASIS",
            "SeaPort-NxG",
            "SEWP",
            "CIO-SP4",
            "CIO-SP3",
            "Alliant 2",
            "ITES-3S",
            "STARS III",
            "GSA MAS",
        ]
    )
    compatible_set_asides: list[str] = field(
        default_factory=lambda: [
            "small business",
            "full and open",
            "full & open",
            "unrestricted",
            "sbir",
            "sttr",
        ]
    )
    preferred_regions: list[str] = field(default_factory=lambda: ["MI", "CA"])


@dataclass(slots=True)
class WeightsConfig:
    table: str = "default"
    overrides: dict[str, int] = field(default_factory=dict)


@dataclass(slots=True)
class CompanyConfig:
    name: str = "Our Company"
    uei: str | None = None
    cage: str | None = None
    certifications: list[str] = field(default_factory=list)
    capabilities: list[str] = field(default_factory=list)
    headquarters: str = ""
    sales_office: str = ""
    phone: str = ""
    email: str = ""
    website: str = ""


@dataclass(slots=True)
class SamConfig:
    enabled: bool = True
    api_key: str | None = None
    keywords: list[str] = field(
        default_factory=lambda: [
            "robotic welding",
            "robotics",
            "automation",
            "conveyor",
            "warehouse automation",
            "PLC",
            "SCADA",
            "machine vision",
            "systems integration",
            "material handling",
        ]
    )
    posted_days: int = 60
    limit: int = 15
    ptype: str | None = None
    timeout: float = 15.0
    base_url: str = "https://api.sam.gov/opportunities/v2/search"


@dataclass(slots=True)
class SbirConfig:
    enabled: bool = True
    keywords: list[str] = field(
        default_factory=lambda: ["robot", "automation", "manufacturing", "machine", "vision"]
    )
    rows: int = 20
    timeout: float = 30.0
    base_url: str = "https://api.www.sbir.gov/public/api/solicitations"


@dataclass(slots=True)
class UsaSpendingConfig:
    enabled: bool = True
    days_back: int = 90
    min_amount: int = 500_000
    max_amount: int = 50_000_000
    limit: int = 50
    min_score: int = 25
    timeout: float = 30.0
    base_url: str = "https://api.usaspending.gov/api/v2/search/spending_by_award/"
    scope_keywords: list[str] = field(
        default_factory=lambda: [
            "robot",
            "automat",
            "vision system",
            "machine vision",
            "material handling",
            "conveyor",
            "autonomous mobile robot",
            "warehouse",
            "logistics automation",
            "manufacturing modernization",
            "cobot",
            "collaborative robot",
            "pick and place",
            "palletizing",
            "inspection system",
            "plc",
            "scada",
        ]
    )
    # Primes whose names suggest they self-perform automation work.
    specialist_terms: list[str] = field(
        default_factory=lambda: [
            "robot",
            "automat",
            "fanuc",
            "kuka",
            "abb",
            "yaskawa",
            "integrat",
            "motion",
            "servo",
        ]
    )
    non_specialist_terms: list[str] = field(
        default_factory=lambda: [
            "construction",
            "general contractor",
            "building",
            "facilities",
            "engineering",
            "logistics",
            "consulting",
            "management",
            "staffing",
            "support services",
        ]
    )


@dataclass(slots=True)
class AiConfig:
    api_key: str | None = None
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 4000
    timeout: float = 55.0


@dataclass(slots=True)
class AppConfig:
    profile: ProfileConfig = field(default_factory=ProfileConfig)
    weights: WeightsConfig = field(default_factory=WeightsConfig)
    company: CompanyConfig = field(default_factory=CompanyConfig)
    sam: SamConfig = field(default_factory=SamConfig)
    sbir: SbirConfig = field(default_factory=SbirConfig)
    usaspending: UsaSpendingConfig = field(default_factory=UsaSpendingConfig)
    ai: AiConfig = field(default_factory=AiConfig)
    user_agent: str = "govcon-scout/0.1"
    fail_on_no_results: bool = False
    log_level: str = "INFO"

    def eligibility_profile(self) -> EligibilityProfile:
        return EligibilityProfile(
            eligible_naics_codes=tuple(self.profile.naics_codes),
            match_keywords=tuple(self.profile.keywords),
            disqualifying_set_asides=tuple(self.profile.disqualifying_set_asides),
            restricted_vehicles=tuple(self.profile.restricted_vehicles),
            compatible_set_asides=tuple(self.profile.compatible_set_asides),
            preferred_regions=tuple(self.profile.preferred_regions),
        )

    def scoring_weights(self) -> ScoringWeights:
        try:
            base = WEIGHT_TABLES[self.weights.table]
        except KeyError:
            raise ValueError(
                f"Unknown weights table {self.weights.table!r} "
                f"(expected one of {', '.join(WEIGHT_TABLES)})"
            ) from None
        if not self.weights.overrides:
            return base
        known = {item.name for item in fields(ScoringWeights)}
        unknown = sorted(set(self.weights.overrides) - known)
        if unknown:
            raise ValueError(f"Unknown weights override(s): {', '.join(unknown)}")
        return replace(base, **self.weights.overrides)


def _merge(default: Any, override: Any) -> Any:
    if isinstance(default, dict) and isinstance(override, dict):
        merged: dict[str, Any] = {**default}
        for key, value in override.items():
            merged[key] = _merge(default.get(key), value)
        return merged
    return override if override is not None else default


def _normalize_regions(regions: list[str]) -> list[str]:
    return [region.strip().upper() for region in regions]


def load_config(path: Path) -> AppConfig:
    data: dict[str, Any] = {}
    if path.exists():
        data = _read_toml(path)

    merged = _merge(asdict(AppConfig()), data)

    try:
        config = _build_config(merged)
    except TypeError as exc:
        raise ValueError(f"Invalid config {path}: {exc}") from exc

    if env_sam := os.getenv("SAM_API_KEY"):
        config.sam.api_key = env_sam.strip()
    if env_anthropic := os.getenv("ANTHROPIC_API_KEY"):
        config.ai.api_key = env_anthropic.strip()
    if env_level := os.getenv("GOVCON_SCOUT_LOG_LEVEL"):
        config.log_level = env_level

    config.profile.preferred_regions = _normalize_regions(config.profile.preferred_regions)
    return config


def _build_config(merged: dict[str, Any]) -> AppConfig:
    return AppConfig(
        profile=ProfileConfig(**merged["profile"]),
        weights=WeightsConfig(**merged["weights"]),
        company=CompanyConfig(**merged["company"]),
        sam=SamConfig(**merged["sam"]),
        sbir=SbirConfig(**merged["sbir"]),
        usaspending=UsaSpendingConfig(**merged["usaspending"]),
        ai=AiConfig(**merged["ai"]),
        user_agent=merged.get("user_agent", "govcon-scout/0.1"),
        fail_on_no_results=merged.get("fail_on_no_results", False),
        log_level=merged.get("log_level", "INFO"),
    )


def config_path(cli_path: str | None) -> Path:
    if cli_path:
        return Path(cli_path).expanduser()
    if env_path := os.getenv("GOVCON_SCOUT_CONFIG"):
        return Path(env_path).expanduser()
    return Path("config.toml")


def _read_toml(path: Path) -> dict[str, Any]:
    import tomllib

    with path.open("rb") as handle:
        return tomllib.load(handle)
