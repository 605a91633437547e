"""TOML config loading, profiles and the --config-dir option."""

import json

from typer.testing import CliRunner

from outcomeguard.cli.app import app
from outcomeguard.config import get_settings
from outcomeguard.config.settings import load_config


def _write_config(path, threshold, protected_share_pct=100):
    path.mkdir(parents=True, exist_ok=True)
    (path / "default.toml").write_text(
        f"[game]\nenhanced_user_threshold = {threshold}\nprotected_share_pct = {protected_share_pct}\n"
        '\n[logging]\nlevel = "WARNING"\n'
    )
    (path / "replay.toml").write_text("[game]\nenforce_bet_clock = false\n")


def test_load_config_from_explicit_dir(tmp_path):
    _write_config(tmp_path / "conf", threshold=7)
    raw = load_config(config_dir=tmp_path / "conf")
    assert raw["game"]["enhanced_user_threshold"] == 7
    assert "enforce_bet_clock" not in raw["game"]


def test_profile_overlays_explicit_dir(tmp_path):
    _write_config(tmp_path, threshold=3)
    settings = get_settings("replay", config_dir=tmp_path)
    assert settings.enhanced_user_threshold == 3
    assert settings.enforce_bet_clock is False
    assert settings.logging_level == "WARNING"


def test_missing_config_dir_gives_defaults(tmp_path):
    settings = get_settings(config_dir=tmp_path / "absent")
    assert settings.enhanced_user_threshold == 2
    assert settings.protected_share_pct == 60
    assert settings.enforce_bet_clock is True


def test_cli_config_dir_reaches_commands(tmp_path):
    # Threshold 3 with two users keeps protection on, so the protected branch is taken
    _write_config(tmp_path / "conf", threshold=3)
    bets = tmp_path / "bets.json"
    bets.write_text(
        json.dumps(
            [
                {"user_id": "u1", "bet_type": "COLOR", "bet_value": "red", "stake": 100, "payout_multiplier": 2},
                {"user_id": "u2", "bet_type": "NUMBER", "bet_value": 5, "stake": 10, "payout_multiplier": 9},
            ]
        )
    )
    result = CliRunner().invoke(
        app, ["--config-dir", str(tmp_path / "conf"), "period", "simulate", str(bets), "--game", "wingo", "-d", "30"]
    )
    assert result.exit_code == 0, result.output
    assert "Branch: protected" in result.output
    assert "Protection: True" in result.output
