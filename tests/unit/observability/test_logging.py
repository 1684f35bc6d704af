"""Unit tests for structured JSON-lines logging."""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog

from edgenode.domain.errors import AmbiguousConfiguration
from edgenode.domain.resolution import resolve_service_descriptor
from edgenode.domain.services import new_service_descriptor
from edgenode.observability import (
    LoggingConfig,
    correlation_scope,
    default_log_redactor,
    flush_logging,
    get_active_logging_handle,
    get_correlation_context,
    set_correlation_fields,
    setup_logging,
    setup_structured_logging,
    shutdown_logging,
)
from edgenode.security import REDACTED_VALUE


@pytest.fixture(autouse=True)
def _isolate_logging() -> Iterator[None]:
    yield
    shutdown_logging()
    structlog.reset_defaults()


def _read_events(path: Path) -> list[dict[str, object]]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line]


def _config(tmp_path: Path, **overrides: object) -> LoggingConfig:
    values: dict[str, object] = {
        "node_id": "edge-1",
        "base_log_dir": tmp_path,
        "logger_name": f"edgenode-test-{uuid.uuid4().hex}",
    }
    values.update(overrides)
    return LoggingConfig(**values)  # type: ignore[arg-type]


def test_records_are_canonical_json_lines(tmp_path: Path) -> None:
    handle = setup_structured_logging(_config(tmp_path))

    handle.logger.info("device registered", extra={"attempt": 2, "path": Path("/a/b")})
    shutdown_logging(handle)

    assert handle.log_path == tmp_path / "edge-1" / "edgenode.jsonl"
    [event] = _read_events(handle.log_path)
    assert event["message"] == "device registered"
    assert event["level"] == "INFO"
    assert event["node_id"] == "edge-1"
    assert event["fields"] == {"attempt": 2, "path": "/a/b"}
    assert str(event["timestamp"]).endswith("Z")


def test_level_filtering(tmp_path: Path) -> None:
    handle = setup_structured_logging(_config(tmp_path, level="WARNING"))

    handle.logger.info("dropped")
    handle.logger.warning("kept")
    shutdown_logging(handle)

    assert [event["message"] for event in _read_events(handle.log_path)] == ["kept"]


def test_credentials_are_redacted(tmp_path: Path) -> None:
    handle = setup_structured_logging(_config(tmp_path))

    handle.logger.info("register token=abcd1234", extra={"device": {"token": "abcd1234"}})
    shutdown_logging(handle)

    raw = handle.log_path.read_text(encoding="utf-8")
    assert "abcd1234" not in raw
    [event] = _read_events(handle.log_path)
    assert event["message"] == f"register token={REDACTED_VALUE}"
    assert event["fields"] == {"device": {"token": REDACTED_VALUE}}


def test_redaction_can_be_disabled(tmp_path: Path) -> None:
    handle = setup_structured_logging(_config(tmp_path, redact_secrets=False))

    handle.logger.info("token=abcd1234")
    shutdown_logging(handle)

    assert _read_events(handle.log_path)[0]["message"] == "token=abcd1234"


def test_correlation_scope_lifts_fields_to_top_level(tmp_path: Path) -> None:
    handle = setup_structured_logging(_config(tmp_path))

    with correlation_scope(device_id="an12345", org="myorg"):
        assert get_correlation_context() == {"device_id": "an12345", "org": "myorg"}
        with correlation_scope(org=None, request_id="r-1"):
            handle.logger.info("nested")
        handle.logger.info("outer")
    handle.logger.info("after")
    shutdown_logging(handle)

    nested, outer, after = _read_events(handle.log_path)
    assert nested["request_id"] == "r-1"
    assert "org" not in nested
    assert outer["org"] == "myorg"
    assert "device_id" not in after
    assert get_correlation_context() == {}


def test_unknown_correlation_key_is_rejected() -> None:
    with pytest.raises(ValueError, match="unsupported correlation key"):
        set_correlation_fields(token="abcd1234")


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"node_id": " "}, "node_id must not be empty"),
        ({"log_filename": "nested/out.jsonl"}, "path separators"),
        ({"queue_size": 0}, "queue_size"),
        ({"level": "CHATTY"}, "unsupported logging level"),
    ],
)
def test_invalid_logging_config(
    tmp_path: Path, overrides: dict[str, object], message: str
) -> None:
    with pytest.raises(ValueError, match=message):
        setup_structured_logging(_config(tmp_path, **overrides))


def test_new_setup_replaces_active_handle(tmp_path: Path) -> None:
    first = setup_structured_logging(_config(tmp_path))
    second = setup_structured_logging(_config(tmp_path, node_id="edge-2"))

    assert first.is_shutdown
    assert get_active_logging_handle() is second
    shutdown_logging()
    assert get_active_logging_handle() is None


def test_structlog_events_reach_json_sink(tmp_path: Path) -> None:
    handle = setup_logging(
        {"log_level": "DEBUG", "log_dir": str(tmp_path), "redact_secrets": True},
        node_id="edge-7",
    )
    url = "https://bluehorizon.network/services/gps"
    catalog = [
        new_service_descriptor(url, "e2edev", "a", "amd64", "[1.0.0,2.0.0)"),
        new_service_descriptor(url, "e2edev", "b", "amd64", "[1.5.0,3.0.0)"),
    ]

    with correlation_scope(org="e2edev"):
        resolve_service_descriptor(catalog, org="e2edev", url=url, arch="x86_64", version="1.2.0")
        with pytest.raises(AmbiguousConfiguration):
            resolve_service_descriptor(
                catalog, org="e2edev", url=url, arch="amd64", version="1.7.0"
            )
    shutdown_logging(handle)

    events = _read_events(tmp_path / "edge-7" / "edgenode.jsonl")
    by_message = {str(event["message"]): event for event in events}
    resolved = by_message["service_resolved"]
    ambiguous = by_message["service_resolution_ambiguous"]

    assert resolved["level"] == "DEBUG"
    assert resolved["logger"] == "edgenode.domain.resolution"
    assert resolved["org"] == "e2edev"
    assert resolved["fields"]["arch"] == "amd64"  # type: ignore[index]
    assert resolved["fields"]["matched"] is True  # type: ignore[index]
    ambiguous_fields = ambiguous["fields"]
    assert ambiguous["level"] == "WARNING"
    assert ambiguous_fields["matches"] == ["[1.0.0,2.0.0)", "[1.5.0,3.0.0)"]  # type: ignore[index]


def test_setup_logging_defaults_when_section_missing(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)

    handle = setup_logging(None, node_id="edge-9")
    logging.getLogger("edgenode").info("hello")
    shutdown_logging(handle)

    assert handle.log_path == Path("logs") / "edge-9" / "edgenode.jsonl"
    assert _read_events(tmp_path / "logs" / "edge-9" / "edgenode.jsonl")[0]["message"] == "hello"


def test_flush_logging_writes_pending_records(tmp_path: Path) -> None:
    handle = setup_structured_logging(_config(tmp_path))

    handle.logger.info("flushed before shutdown")
    flush_logging()

    assert [event["message"] for event in _read_events(handle.log_path)] == [
        "flushed before shutdown"
    ]
    assert not handle.is_shutdown


def test_default_log_redactor_redacts_keys_and_text() -> None:
    redacted = default_log_redactor(
        {"device": {"id": "an12345", "token": "abcd1234"}, "notes": ["token=abcd1234"]}
    )

    assert redacted == {
        "device": {"id": "an12345", "token": REDACTED_VALUE},
        "notes": [f"token={REDACTED_VALUE}"],
    }
