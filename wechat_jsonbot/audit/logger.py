"""Audit logger — append-only JSON Lines trail of webhook and delivery events.

Each line carries ``prev_hash``, the SHA-256 of the line before it. A rotated
file starts a fresh chain: its first line has ``prev_hash: null`` and records
``rotated_from``, the hash of the last line moved out to ``<name>.1``.
"""

from __future__ import annotations

import fcntl
import hashlib
import json
import os
from dataclasses import dataclass
from pathlib import Path

from wechat_jsonbot.models import AuditEvent


@dataclass
class ChainValidationResult:
    valid: bool
    broken_at_line: int | None = None


def _line_hash(line: str) -> str:
    return hashlib.sha256(line.encode()).hexdigest()


def _last_line(path: Path) -> str | None:
    if not path.exists():
        return None
    text = path.read_text().strip()
    return text.split("\n")[-1] if text else None


def rotated_backup(log_path: Path) -> Path:
    """Path of the most recent rotated-out file for ``log_path``."""
    return log_path.with_name(f"{log_path.name}.1")


def validate_audit_chain(
    log_path: Path, previous: Path | None = None,
) -> ChainValidationResult:
    """Check that every entry's ``prev_hash`` matches the line before it.

    When ``previous`` is given and the first entry marks a rotation, its
    ``rotated_from`` must match the last line of that file.
    """
    text = log_path.read_text().strip()
    if not text:
        return ChainValidationResult(valid=True)

    lines = text.split("\n")
    first = json.loads(lines[0])
    if first.get("prev_hash") is not None:
        return ChainValidationResult(valid=False, broken_at_line=1)
    if previous is not None and "rotated_from" in first:
        boundary = _last_line(previous)
        if boundary is None or first["rotated_from"] != _line_hash(boundary):
            return ChainValidationResult(valid=False, broken_at_line=1)

    for number, (before, line) in enumerate(zip(lines, lines[1:]), start=2):
        if json.loads(line).get("prev_hash") != _line_hash(before):
            return ChainValidationResult(valid=False, broken_at_line=number)
    return ChainValidationResult(valid=True)


class AuditLogger:
    """Records webhook and delivery events, one JSON object per line."""

    def __init__(
        self,
        log_path: str,
        max_bytes: int = 10_485_760,
        backup_count: int = 5,
    ) -> None:
        self.log_path = Path(log_path)
        self._max_bytes = max_bytes
        self._backup_count = backup_count
        self._last_line = _last_line(self.log_path)

    @classmethod
    def from_env(cls, log_path: str) -> AuditLogger:
        return cls(
            log_path=log_path,
            max_bytes=int(os.environ.get("AUDIT_LOG_MAX_BYTES", "10485760")),
            backup_count=int(os.environ.get("AUDIT_LOG_BACKUP_COUNT", "5")),
        )

    def _backup(self, index: int) -> Path:
        return self.log_path.with_name(f"{self.log_path.name}.{index}")

    def _maybe_rotate(self) -> bool:
        if not self.log_path.exists() or self.log_path.stat().st_size < self._max_bytes:
            return False
        self._backup(self._backup_count).unlink(missing_ok=True)
        for index in range(self._backup_count - 1, 0, -1):
            if self._backup(index).exists():
                self._backup(index).rename(self._backup(index + 1))
        self.log_path.rename(self._backup(1))
        return True

    def log(self, event: AuditEvent) -> None:
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        data = json.loads(event.model_dump_json())

        lock_path = self.log_path.with_name(f".{self.log_path.name}.lock")
        with open(lock_path, "w") as lock:
            fcntl.flock(lock, fcntl.LOCK_EX)
            try:
                if self._maybe_rotate():
                    boundary = _last_line(self._backup(1))
                    data["rotated_from"] = _line_hash(boundary) if boundary else None
                    self._last_line = None
                data["prev_hash"] = (
                    _line_hash(self._last_line) if self._last_line is not None else None
                )
                line = json.dumps(data, separators=(",", ":"))
                with open(self.log_path, "a") as f:
                    f.write(line + "\n")
            finally:
                fcntl.flock(lock, fcntl.LOCK_UN)

        self._last_line = line
