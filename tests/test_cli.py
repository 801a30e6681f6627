from __future__ import annotations

import pytest

from tablewatch.cli import main


@pytest.fixture
def unconfigured(monkeypatch, tmp_path):
    for name in ("SUPABASE_URL", "SUPABASE_KEY", "SUPABASE_ANON_KEY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_missing_config_file_is_an_error(unconfigured):
    with pytest.raises(SystemExit) as exc:
        main(["--config", "nope.json"])
    assert exc.value.code == 2


def test_invalid_config_file_is_an_error(unconfigured, capsys):
    (unconfigured / "bad.json").write_text('{"poll_interval_ms": "soon"}', encoding="utf-8")
    with pytest.raises(SystemExit) as exc:
        main(["--config", "bad.json"])
    assert exc.value.code == 2
    assert "poll_interval_ms" in capsys.readouterr().err


def test_run_without_credentials_shows_configuration_panel(unconfigured, capsys):
    assert main(["run", "--no-screen"]) == 0
    assert "Configuration Needed" in capsys.readouterr().out


def test_poll_without_credentials_is_an_error(unconfigured):
    with pytest.raises(SystemExit) as exc:
        main(["poll", "--once"])
    assert exc.value.code == 2
