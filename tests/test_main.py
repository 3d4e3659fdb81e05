import json
import sys

import pytest

import main
import pipeline as pipeline_module
from tests.test_config import ALL_KEYS, REQUIRED


@pytest.fixture
def env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for key in ALL_KEYS:
        monkeypatch.delenv(key, raising=False)
    for key, value in REQUIRED.items():
        monkeypatch.setenv(key, value)
    monkeypatch.setenv("CHECKPOINT_DB_PATH", str(tmp_path / "checkpoint.db"))
    return monkeypatch


def test_handler_reports_config_error(env):
    env.delenv("WEBHOOK_KEY")
    result = main.handler({}, None)
    assert result["state"] == "failed"
    assert "WEBHOOK_KEY" in result["error"]


def test_handler_reports_failed_run(env):
    async def failing_load_feed(url, timeout=30, session=None):
        from errors import FetchError
        raise FetchError("HTTP 404")

    env.setattr(pipeline_module, "load_feed", failing_load_feed)
    result = main.handler({}, None)
    assert result["state"] == "failed"
    assert result["error"] == "HTTP 404"
    assert result["stats"]["checkpoint_committed"] is False


def test_segment_command(env, capsys):
    env.setattr(sys, "argv", ["feedrelay", "segment", "AAA====BBB"])
    assert main.main() == 0
    out = capsys.readouterr().out
    assert "segment 1/2" in out
    assert "AAA" in out and "BBB" in out


def test_status_command(env, capsys):
    env.setattr(sys, "argv", ["feedrelay", "status"])
    assert main.main() == 0
    out = capsys.readouterr().out
    status = json.loads(out[out.index("{\n"):])
    assert status["checkpoint"]["value"] is None
    assert status["config"]["webhook"]["key"] == "se***ey"


def test_run_requires_valid_config(env, capsys):
    env.delenv("RSS_FEED_URL")
    env.setattr(sys, "argv", ["feedrelay", "run"])
    assert main.main() == 1
    assert "RSS_FEED_URL" in capsys.readouterr().err
