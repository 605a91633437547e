"""TOML config loading and profiles."""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any

from outcomeguard.models.game import DURATIONS, GameKind

# Default config search path (project root or cwd)
_CONFIG_DIR = Path(__file__).resolve().parent.parent.parent.parent / "config"
_CWD_CONFIG = Path.cwd() / "config"


def _load_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base. Override values take precedence."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _find_config_dir() -> Path:
    if _CWD_CONFIG.exists():
        return _CWD_CONFIG
    return _CONFIG_DIR


def load_config(profile: str | None = None, config_dir: Path | None = None) -> dict[str, Any]:
    """Load merged config from default.toml and optional profile overlay.
    config_dir overrides the search path (cwd config/, then project root)."""
    config_dir = Path(config_dir) if config_dir is not None else _find_config_dir()
    default_path = config_dir / "default.toml"
    if not default_path.exists():
        return {}
    base = _load_toml(default_path)
    if profile:
        profile_path = config_dir / f"{profile}.toml"
        if profile_path.exists():
            overlay = _load_toml(profile_path)
            base = _deep_merge(base, overlay)
    return base


def get_settings(profile: str | None = None, config_dir: Path | None = None) -> Settings:
    """Return Settings instance from merged config."""
    raw = load_config(profile, config_dir)
    return Settings.from_dict(raw)


class Settings:
    """Application settings from TOML config."""

    def __init__(
        self,
        *,
        storage: dict[str, Any] | None = None,
        game: dict[str, Any] | None = None,
        api: dict[str, Any] | None = None,
        logging: dict[str, Any] | None = None,
    ):
        self.storage = storage or {}
        self.game = game or {}
        self.api = api or {}
        self.logging = logging or {}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Settings:
        return cls(
            storage=raw.get("storage"),
            game=raw.get("game"),
            api=raw.get("api"),
            logging=raw.get("logging"),
        )

    # Convenience accessors with defaults
    @property
    def db_path(self) -> str:
        return self.storage.get("db_path", "data/outcomeguard.duckdb")

    @property
    def enhanced_user_threshold(self) -> int:
        return int(self.game.get("enhanced_user_threshold", 2))

    @property
    def protected_share_pct(self) -> int:
        pct = int(self.game.get("protected_share_pct", 60))
        if not 0 <= pct <= 100:
            raise ValueError(f"game.protected_share_pct must be within 0..100, got {pct}")
        return pct

    @property
    def freeze_seconds(self) -> int:
        return int(self.game.get("freeze_seconds", 5))

    @property
    def enforce_bet_clock(self) -> bool:
        return bool(self.game.get("enforce_bet_clock", True))

    @property
    def retention_sec(self) -> int:
        return int(self.game.get("retention_sec", 3600))

    @property
    def timelines(self) -> list[str]:
        return list(self.game.get("timelines") or ["default"])

    @property
    def enabled_games(self) -> list[GameKind]:
        names = self.game.get("enabled") or [g.value for g in GameKind]
        return [GameKind.parse(n) for n in names]

    @property
    def schedule(self) -> list[tuple[GameKind, int, str]]:
        """Every (game, duration, timeline) the scheduler drives."""
        return [
            (game, duration, timeline)
            for game in self.enabled_games
            for duration in DURATIONS[game]
            for timeline in self.timelines
        ]

    @property
    def tick_interval_sec(self) -> float:
        return float(self.game.get("tick_interval_sec", 1.0))

    @property
    def api_host(self) -> str:
        return self.api.get("host", "127.0.0.1")

    @property
    def api_port(self) -> int:
        return int(self.api.get("port", 8000))

    @property
    def run_scheduler(self) -> bool:
        return bool(self.api.get("run_scheduler", False))

    @property
    def logging_level(self) -> str:
        return self.logging.get("level", "INFO").upper()

    @property
    def logging_format(self) -> str:
        return self.logging.get("format", "console")

    @property
    def logging_level_num(self) -> int:
        return getattr(logging, self.logging_level, logging.INFO)


def configure_logging(settings: Settings) -> None:
    """Configure structlog with settings. Call once at application entry."""
    import structlog

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if settings.logging_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(settings.logging_level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
