from __future__ import annotations

import json
from pathlib import Path

import pytest

from endpoint_scout import main as cli
from endpoint_scout.collectors.processes import ProcessNotFoundError
from endpoint_scout.models import DominantEndpoint, Endpoint, InferenceResult, ProcessHandle
from endpoint_scout.ping import PingError

SERVER = Endpoint(address="203.0.113.7", port=4550)


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "config.toml"
    path.write_text("port_min = 4000\nport_max = 4999\nsample_seconds = 1\ntick_seconds = 0.25\n", encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "configure_logging", lambda verbose=False, json_lines=False: None)


def _patch_pipeline(monkeypatch: pytest.MonkeyPatch, handle: ProcessHandle, dominant: DominantEndpoint | None) -> dict:
    seen: dict = {}

    def _resolve(name: str, on_ambiguous: str = "first") -> ProcessHandle:
        seen["process"] = name
        return handle

    def _infer(config, h, **kwargs) -> InferenceResult:
        seen["config"] = config
        count = dominant.count if dominant else 0
        return InferenceResult(
            process=h,
            dominant=dominant,
            observation_total=count,
            distinct_endpoints=1 if dominant else 0,
            ticks=4,
        )

    monkeypatch.setattr(cli, "resolve_process", _resolve)
    monkeypatch.setattr(cli, "run_inference", _infer)
    return seen


def test_run_reports_server_and_ping(monkeypatch, capsys, config_path, handle) -> None:
    seen = _patch_pipeline(monkeypatch, handle, DominantEndpoint(endpoint=SERVER, count=4))
    monkeypatch.setattr(cli, "ping", lambda host, count, timeout: [20.0, 22.0, None, 24.0])

    code = cli.main(["run", "game.exe", "--config", str(config_path), "--json", "--port-max", "4600"])

    assert code == cli.EXIT_OK
    assert seen["process"] == "game.exe"
    assert seen["config"].port_max == 4600
    payload = json.loads(capsys.readouterr().out)
    assert payload["server"] == {"address": "203.0.113.7", "port": 4550}
    assert payload["observation_count"] == 4
    assert payload["ping"]["received"] == 3


def test_run_without_match_exits_one(monkeypatch, capsys, config_path, handle) -> None:
    _patch_pipeline(monkeypatch, handle, None)

    code = cli.main(["run", "game.exe", "--config", str(config_path)])

    assert code == cli.EXIT_NO_MATCH
    assert "no match found" in capsys.readouterr().out


def test_run_skips_ping_when_asked(monkeypatch, capsys, config_path, handle) -> None:
    _patch_pipeline(monkeypatch, handle, DominantEndpoint(endpoint=SERVER, count=4))

    def _fail(*args):
        raise AssertionError("ping must not run")

    monkeypatch.setattr(cli, "ping", _fail)

    assert cli.main(["run", "game.exe", "--config", str(config_path), "--no-ping"]) == cli.EXIT_OK
    assert "203.0.113.7:4550" in capsys.readouterr().out


def test_invalid_options_fail_before_sampling(monkeypatch, config_path, handle) -> None:
    _patch_pipeline(monkeypatch, handle, None)

    def _fail(*args, **kwargs):
        raise AssertionError("sampling must not start")

    monkeypatch.setattr(cli, "resolve_process", _fail)

    code = cli.main(["run", "game.exe", "--config", str(config_path), "--port-min", "5000"])
    assert code == cli.EXIT_CONFIG


def test_unknown_process_exits_three(monkeypatch, config_path) -> None:
    def _raise(name: str, on_ambiguous: str = "first") -> ProcessHandle:
        raise ProcessNotFoundError(name)

    monkeypatch.setattr(cli, "resolve_process", _raise)
    assert cli.main(["run", "nothing", "--config", str(config_path)]) == cli.EXIT_PROCESS


def test_ping_failure_exits_four(monkeypatch, config_path, handle) -> None:
    _patch_pipeline(monkeypatch, handle, DominantEndpoint(endpoint=SERVER, count=4))

    def _raise(host, count, timeout):
        raise PingError("ping not installed")

    monkeypatch.setattr(cli, "ping", _raise)
    assert cli.main(["run", "game.exe", "--config", str(config_path)]) == cli.EXIT_PING


def test_init_writes_default_config(tmp_path: Path, capsys) -> None:
    target = tmp_path / "fresh" / "config.toml"
    assert cli.main(["init", "--config", str(target)]) == cli.EXIT_OK
    assert target.exists()
    assert str(target.resolve()) in capsys.readouterr().out


def test_directory_as_config_exits_two(tmp_path: Path) -> None:
    assert cli.main(["run", "game", "--config", str(tmp_path)]) == cli.EXIT_CONFIG


def test_config_under_a_file_exits_two(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    target = blocker / "config.toml"

    assert cli.main(["run", "game", "--config", str(target)]) == cli.EXIT_CONFIG
    assert cli.main(["init", "--config", str(target)]) == cli.EXIT_CONFIG
