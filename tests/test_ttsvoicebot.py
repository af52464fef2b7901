from __future__ import annotations

from pathlib import Path
from textwrap import dedent

import pytest

import ttsvoicebot
from config.environment import EnvironmentConfigError


@pytest.fixture
def ini_file(tmp_path: Path) -> Path:
    path: Path = tmp_path / "ttsvoicebot.ini"
    path.write_text(
        dedent(
            """
            [TTS]
            DEFAULT_VOICE = echo
            """
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def secrets_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    for key, value in {
        "DISCORD_TOKEN": "token",
        "OPENAI_API_KEY": "sk-test",
        "CLIENT_ID": "1",
        "GUILD_ID": "2",
    }.items():
        monkeypatch.setenv(key, value)
    monkeypatch.delenv("TTS_VOICE", raising=False)


def test_parse_arguments_defaults() -> None:
    args = ttsvoicebot.parse_arguments([])
    assert args.debug is False
    assert args.voice_file is None
    assert args.config == ttsvoicebot.CFG_FILE


def test_parse_arguments_rejects_unknown_option(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        ttsvoicebot.parse_arguments(["--owner", "x"])
    assert excinfo.value.code == 2
    assert "unrecognized arguments" in capsys.readouterr().err


@pytest.mark.usefixtures("secrets_env")
def test_load_config_applies_overrides(ini_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TTS_VOICE", "Shimmer")
    args = ttsvoicebot.parse_arguments(["--debug", "--voice-file", "prefs.txt", "--config", str(ini_file)])

    config = ttsvoicebot.load_config(args)

    assert config.GENERAL.DEBUG is True
    assert config.GENERAL.VERSION == ttsvoicebot.VERSION
    assert config.PREFERENCES.VOICE_FILE == "prefs.txt"
    assert config.TTS.DEFAULT_VOICE == "shimmer"
    assert config.SECRETS.OPENAI_API_KEY == "sk-test"


@pytest.mark.usefixtures("secrets_env")
def test_invalid_env_voice_keeps_configured_default(ini_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TTS_VOICE", "robot")
    config = ttsvoicebot.load_config(ttsvoicebot.parse_arguments(["--config", str(ini_file)]))
    assert config.TTS.DEFAULT_VOICE == "echo"


def test_load_config_requires_secrets(ini_file: Path, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(EnvironmentConfigError):
        ttsvoicebot.load_config(ttsvoicebot.parse_arguments(["--config", str(ini_file)]))
