"""
edgenode CLI smoke contracts.

Purpose
- Exercise ``describe-device``, ``resolve``, ``list-services`` and ``show-config``
  end to end against files in a scratch directory.
- Verify exit codes (0 match, 1 no match, 2 config or model error) and that the
  device token never reaches stdout or the log files.
"""

from __future__ import annotations

import json
import os
import subprocess
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog

from edgenode.main import ExitCode, cli_entrypoint
from edgenode.observability import shutdown_logging

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = PROJECT_ROOT / "src"

TOKEN = "Zq9xWv7uTs5rQp3o"
GPS = "https://bluehorizon.network/services/gps"

_CATALOG = f"""
schema_version: 1
services:
  - url: {GPS}
    organization: e2edev
    name: gps-v1
    arch: amd64
    versionRange: "[1.0.0,2.0.0)"
    auto_upgrade: true
    active_upgrade: false
    attributes: []
  - url: {GPS}
    organization: e2edev
    name: gps-beta
    arch: amd64
    versionRange: "[1.5.0,3.0.0)"
"""


@pytest.fixture()
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("NO_COLOR", raising=False)
    for name in list(os.environ):
        if name.startswith("EDGENODE_"):
            monkeypatch.delenv(name)
    (tmp_path / "services.yaml").write_text(_CATALOG, encoding="utf-8")
    (tmp_path / "device.json").write_text(
        json.dumps(
            {
                "id": "an12345",
                "org": "myorg",
                "pattern": "netspeed-pattern",
                "name": "dev1",
                "token": TOKEN,
                "token_last_valid_time": 1700000000,
                "token_valid": True,
                "ha": False,
                "config": {"state": "", "last_update_time": 0},
            }
        ),
        encoding="utf-8",
    )
    yield tmp_path
    shutdown_logging()
    structlog.reset_defaults()


def _run_module(cwd: Path, *args: str) -> subprocess.CompletedProcess[str]:
    env = os.environ.copy()
    existing_pythonpath = env.get("PYTHONPATH")
    src_pythonpath = str(SRC_PATH)
    env["PYTHONPATH"] = (
        src_pythonpath if not existing_pythonpath else f"{src_pythonpath}:{existing_pythonpath}"
    )
    return subprocess.run(
        [sys.executable, "-m", "edgenode", *args],
        cwd=cwd,
        text=True,
        capture_output=True,
        check=False,
        env=env,
    )


def _log_text(workdir: Path) -> str:
    return "\n".join(
        path.read_text(encoding="utf-8") for path in sorted(workdir.glob("logs/**/*.jsonl"))
    )


def test_describe_device_hides_token(workdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli_entrypoint(["describe-device", "device.json"]) == ExitCode.SUCCESS

    out = capsys.readouterr().out
    assert out.startswith("Id: an12345, Org: myorg, Pattern: netspeed-pattern, Name: dev1")
    assert "Token: [not set]" in out
    assert "State: unconfigured, Time: not set" in out
    assert TOKEN not in out
    assert TOKEN not in _log_text(workdir)


def test_describe_device_json_with_transition(
    workdir: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    code = cli_entrypoint(
        ["describe-device", "device.json", "--transition", "configuring", "--json"]
    )

    assert code == ExitCode.SUCCESS
    payload = json.loads(capsys.readouterr().out)
    assert "token" not in payload
    assert payload["organization"] == "myorg"
    assert payload["configstate"]["state"] == "configuring"
    assert payload["configstate"]["last_update_time"] > 0


def test_describe_device_rejects_invalid_transition(
    workdir: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    code = cli_entrypoint(["describe-device", "device.json", "--transition", "configured"])

    assert code == ExitCode.CONFIG_ERROR
    assert "unconfigured -> configured" in capsys.readouterr().err


def test_describe_device_reports_malformed_record(
    workdir: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    (workdir / "broken.json").write_text('{"org": "myorg"}', encoding="utf-8")

    assert cli_entrypoint(["describe-device", "broken.json"]) == ExitCode.CONFIG_ERROR
    assert "missing required fields" in capsys.readouterr().err


def test_resolve_exit_codes(workdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    base = ["resolve", "--org", "e2edev", "--url", GPS, "--arch", "x86_64"]

    assert cli_entrypoint([*base, "--version", "1.2.0"]) == ExitCode.SUCCESS
    assert "Name: gps-v1" in capsys.readouterr().out

    assert cli_entrypoint([*base, "--version", "3.5.0"]) == ExitCode.NO_MATCH
    assert "no service configuration" in capsys.readouterr().out

    assert cli_entrypoint([*base, "--version", "1.7.0"]) == ExitCode.CONFIG_ERROR
    err = capsys.readouterr().err
    assert "ambiguous service configuration" in err
    assert "[1.0.0,2.0.0)" in err and "[1.5.0,3.0.0)" in err


def test_resolve_json_and_configured_synonyms(
    workdir: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    (workdir / "edgenode.toml").write_text(
        "[architecture]\nsynonyms = { pc = \"amd64\" }\n", encoding="utf-8"
    )

    code = cli_entrypoint(
        ["resolve", "--json", "--org", "e2edev", "--url", GPS, "--arch", "pc", "--version", "2.5.0"]
    )

    assert code == ExitCode.SUCCESS
    payload = json.loads(capsys.readouterr().out)
    assert payload["matched"] is True
    assert payload["service"]["name"] == "gps-beta"


def test_list_services_table_and_json(workdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli_entrypoint(["list-services", "--no-color"]) == ExitCode.SUCCESS
    table = capsys.readouterr().out
    assert "gps-v1" in table
    assert "[1.5.0,3.0.0)" in table

    assert cli_entrypoint(["list-services", "--json", "--org", "other"]) == ExitCode.SUCCESS
    assert json.loads(capsys.readouterr().out) == {"command": "list-services", "services": []}


def test_missing_catalog_is_a_config_error(
    workdir: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    code = cli_entrypoint(["list-services", "--catalog", "absent.yaml"])

    assert code == ExitCode.CONFIG_ERROR
    assert "does not exist" in capsys.readouterr().err


def test_show_config_json_is_redacted_effective_config(
    workdir: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    code = cli_entrypoint(["show-config", "--json", "--log-level", "DEBUG"])

    assert code == ExitCode.SUCCESS
    payload = json.loads(capsys.readouterr().out)
    assert payload["observability"]["log_level"] == "DEBUG"
    assert payload["paths"]["catalog"] == (workdir.resolve() / "services.yaml").as_posix()


def test_config_with_credentials_is_rejected(
    workdir: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    (workdir / "edgenode.toml").write_text(
        f'[node]\nnode_id = "n1"\ntoken = "{TOKEN}"\n', encoding="utf-8"
    )

    assert cli_entrypoint(["show-config"]) == ExitCode.CONFIG_ERROR
    err = capsys.readouterr().err
    assert "embedded credentials are forbidden" in err
    assert TOKEN not in err


def test_usage_errors_exit_two(workdir: Path) -> None:
    assert cli_entrypoint([]) == ExitCode.CONFIG_ERROR
    assert cli_entrypoint(["resolve", "--org", "e2edev"]) == ExitCode.CONFIG_ERROR


def test_module_entrypoint_subprocess(workdir: Path) -> None:
    completed = _run_module(
        workdir,
        "resolve",
        "--org",
        "e2edev",
        "--url",
        GPS,
        "--arch",
        "amd64",
        "--version",
        "9.0.0",
    )

    assert completed.returncode == ExitCode.NO_MATCH, completed.stderr
    assert "no service configuration" in completed.stdout
    assert (workdir / "logs" / "edgenode" / "edgenode.jsonl").is_file()


@pytest.mark.parametrize("token", ["k9Qx1700zz", "set", "myorgSecretValue"])
def test_describe_device_accepts_tokens_overlapping_output(
    workdir: Path, capsys: pytest.CaptureFixture[str], token: str
) -> None:
    (workdir / "overlap.json").write_text(
        json.dumps(
            {
                "id": "an12345",
                "org": "myorg",
                "token": token,
                "token_last_valid_time": 1700000000,
                "config": {"state": "configured", "last_update_time": 1700000100},
            }
        ),
        encoding="utf-8",
    )

    assert cli_entrypoint(["describe-device", "overlap.json"]) == ExitCode.SUCCESS
    assert "Token: [not set]" in capsys.readouterr().out

    assert cli_entrypoint(["describe-device", "overlap.json", "--json"]) == ExitCode.SUCCESS
    assert "token" not in json.loads(capsys.readouterr().out)


def test_describe_device_rejects_unstamped_configured_record(
    workdir: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    (workdir / "unstamped.json").write_text(
        json.dumps({"id": "an12345", "org": "myorg", "config": {"state": "configured"}}),
        encoding="utf-8",
    )

    assert cli_entrypoint(["describe-device", "unstamped.json"]) == ExitCode.CONFIG_ERROR
    assert "PersistedConfigstate.last_update_time" in capsys.readouterr().err
