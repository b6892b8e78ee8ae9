"""Tests for the command line entry point."""

from __future__ import annotations

from pathlib import Path

import pytest

from promptbank import __main__ as cli
from promptbank.config import Settings


@pytest.mark.unit
def test_init_db_creates_database_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    db_file = tmp_path / "promptbank.db"
    settings = Settings(database={"url": f"sqlite+aiosqlite:///{db_file}"})  # type: ignore[arg-type]
    monkeypatch.setattr(cli, "get_settings", lambda: settings)
    monkeypatch.setattr(cli, "configure_logging", lambda *args: None)

    assert cli.main(["init-db"]) == 0

    assert db_file.exists()
    assert "Tables ready" in capsys.readouterr().out


@pytest.mark.unit
def test_unknown_command_rejected() -> None:
    with pytest.raises(SystemExit):
        cli.main(["migrate"])
