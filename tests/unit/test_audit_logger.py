"""Tests for the audit logger."""

from __future__ import annotations

import hashlib
import json
from pathlib import Path

from wechat_jsonbot.audit.logger import AuditLogger, rotated_backup, validate_audit_chain
from wechat_jsonbot.models import AuditEvent, AuditEventType, RiskLevel


def _make_event(**kwargs: object) -> AuditEvent:
    defaults: dict[str, object] = {
        "event_type": AuditEventType.WEBHOOK_AUTH_FAILURE,
        "action": "POST /webhook/wechat",
        "result": "failure",
        "risk_level": RiskLevel.HIGH,
    }
    defaults.update(kwargs)
    return AuditEvent(**defaults)  # type: ignore[arg-type]


def test_log_appends_json_line(tmp_path: Path) -> None:
    log_file = tmp_path / "audit.jsonl"
    AuditLogger(log_path=str(log_file)).log(_make_event(sender="Alice"))

    lines = log_file.read_text().strip().split("\n")
    assert len(lines) == 1
    parsed = json.loads(lines[0])
    assert parsed["event_type"] == "webhook_auth_failure"
    assert parsed["risk_level"] == "high"
    assert parsed["sender"] == "Alice"
    assert parsed["prev_hash"] is None


def test_log_creates_parent_dirs(tmp_path: Path) -> None:
    log_file = tmp_path / "nested" / "audit.jsonl"
    AuditLogger(log_path=str(log_file)).log(_make_event())
    assert log_file.exists()


def test_hash_chain_links_lines(tmp_path: Path) -> None:
    log_file = tmp_path / "audit.jsonl"
    logger = AuditLogger(log_path=str(log_file))
    for i in range(3):
        logger.log(_make_event(action=f"action_{i}"))

    lines = log_file.read_text().strip().split("\n")
    for previous, current in zip(lines, lines[1:]):
        assert json.loads(current)["prev_hash"] == hashlib.sha256(previous.encode()).hexdigest()
    assert validate_audit_chain(log_file).valid is True


def test_chain_continues_across_instances(tmp_path: Path) -> None:
    log_file = tmp_path / "audit.jsonl"
    AuditLogger(log_path=str(log_file)).log(_make_event())
    AuditLogger(log_path=str(log_file)).log(_make_event())
    assert validate_audit_chain(log_file).valid is True


def test_tampering_detected(tmp_path: Path) -> None:
    log_file = tmp_path / "audit.jsonl"
    logger = AuditLogger(log_path=str(log_file))
    for i in range(3):
        logger.log(_make_event(action=f"action_{i}"))

    lines = log_file.read_text().strip().split("\n")
    lines[1] = lines[1].replace("action_1", "action_X")
    log_file.write_text("\n".join(lines) + "\n")

    result = validate_audit_chain(log_file)
    assert result.valid is False
    assert result.broken_at_line == 3


def test_empty_log_is_valid(tmp_path: Path) -> None:
    log_file = tmp_path / "audit.jsonl"
    log_file.write_text("")
    assert validate_audit_chain(log_file).valid is True


def test_rotation(tmp_path: Path) -> None:
    log_file = tmp_path / "audit.jsonl"
    logger = AuditLogger(log_path=str(log_file), max_bytes=1, backup_count=2)
    for i in range(4):
        logger.log(_make_event(action=f"action_{i}"))

    assert json.loads(log_file.read_text())["action"] == "action_3"
    assert json.loads((tmp_path / "audit.jsonl.1").read_text())["action"] == "action_2"
    assert json.loads((tmp_path / "audit.jsonl.2").read_text())["action"] == "action_1"
    assert not (tmp_path / "audit.jsonl.3").exists()


def test_rotation_starts_fresh_chain(tmp_path: Path) -> None:
    log_file = tmp_path / "audit.jsonl"
    logger = AuditLogger(log_path=str(log_file), max_bytes=1, backup_count=2)
    for i in range(3):
        logger.log(_make_event(action=f"action_{i}"))

    backup = rotated_backup(log_file)
    live = json.loads(log_file.read_text())
    assert live["prev_hash"] is None
    assert live["rotated_from"] == hashlib.sha256(backup.read_text().strip().encode()).hexdigest()
    assert validate_audit_chain(log_file).valid is True
    assert validate_audit_chain(log_file, backup).valid is True
    assert validate_audit_chain(backup, tmp_path / "audit.jsonl.2").valid is True


def test_rotation_boundary_mismatch_detected(tmp_path: Path) -> None:
    log_file = tmp_path / "audit.jsonl"
    logger = AuditLogger(log_path=str(log_file), max_bytes=1, backup_count=2)
    for i in range(2):
        logger.log(_make_event(action=f"action_{i}"))

    backup = rotated_backup(log_file)
    backup.write_text(backup.read_text().replace("action_0", "action_X"))

    result = validate_audit_chain(log_file, backup)
    assert result.valid is False
    assert result.broken_at_line == 1


def test_chain_continues_after_rotation_boundary(tmp_path: Path) -> None:
    log_file = tmp_path / "audit.jsonl"
    logger = AuditLogger(log_path=str(log_file))
    logger.log(_make_event(action="before"))
    logger._max_bytes = 1
    logger.log(_make_event(action="boundary"))
    logger._max_bytes = 10_485_760
    for i in range(2):
        logger.log(_make_event(action=f"after_{i}"))

    actions = [json.loads(line)["action"] for line in log_file.read_text().strip().split("\n")]
    assert actions == ["boundary", "after_0", "after_1"]
    assert validate_audit_chain(log_file, rotated_backup(log_file)).valid is True


def test_from_env(monkeypatch, tmp_path: Path) -> None:  # noqa: ANN001
    monkeypatch.setenv("AUDIT_LOG_MAX_BYTES", "2048")
    monkeypatch.setenv("AUDIT_LOG_BACKUP_COUNT", "3")
    logger = AuditLogger.from_env(str(tmp_path / "audit.jsonl"))
    assert logger._max_bytes == 2048
    assert logger._backup_count == 3
