from __future__ import annotations

import json
from io import StringIO

from xtask.config import load_settings
from xtask.kernel.debug_log import LOG_FILE_NAME, DebugLogWriter
from xtask.kernel.registry import CoreRegistry


def _rows(logs_dir):
    text = (logs_dir / LOG_FILE_NAME).read_text(encoding="utf-8")
    return [json.loads(line) for line in text.strip().splitlines()]


def test_disabled_writer_writes_nothing(tmp_path):
    writer = DebugLogWriter(logs_dir=tmp_path / "logs", enabled=False)
    writer.write_entry(level="info", component="registry", kind="diagnostic", message="hidden")

    assert not (tmp_path / "logs").exists()
    assert writer.status()["logs_enabled"] is False


def test_default_registry_log_is_disabled():
    registry = CoreRegistry()

    assert registry.debug_log.enabled is False
    assert registry.debug_log.active_log_file is None


def test_rotation_respects_size_and_max_files(tmp_path):
    writer = DebugLogWriter(
        logs_dir=tmp_path / "logs",
        enabled=True,
        max_file_bytes=256,
        max_files=2,
        redaction="none",
    )

    for idx in range(40):
        writer.write_entry(
            level="info",
            component="registry",
            kind="diagnostic",
            message="rotation-{0}".format(idx),
            data={"blob": "x" * 80, "idx": idx},
        )

    status = writer.status()
    assert status["logs_enabled"] is True
    assert status["logs_active_size_bytes"] > 0
    assert status["logs_entries_written"] == 40
    assert len(status["logs_rotated_files"]) == 2
    assert not (tmp_path / "logs" / (LOG_FILE_NAME + ".3")).exists()


def test_write_errors_are_counted_not_raised(tmp_path):
    blocked_path = tmp_path / "not-a-dir"
    blocked_path.write_text("file", encoding="utf-8")
    writer = DebugLogWriter(logs_dir=blocked_path, enabled=True)

    writer.write_entry(level="info", component="registry", kind="diagnostic", message="lost")

    assert writer.status()["logs_write_errors"] == 1


def test_default_redaction_masks_sensitive_values(tmp_path):
    writer = DebugLogWriter(logs_dir=tmp_path / "logs", enabled=True)
    writer.write_entry(
        level="info",
        component="registry",
        kind="diagnostic",
        message="Authorization: Bearer top-secret token=abc123",
        data={"api_key": "k", "nested": {"password": "p", "normal": "ok"}},
    )

    row = _rows(tmp_path / "logs")[0]
    assert "top-secret" not in row["message"]
    assert "abc123" not in row["message"]
    assert row["data"]["api_key"] == "***REDACTED***"
    assert row["data"]["nested"]["password"] == "***REDACTED***"
    assert row["data"]["nested"]["normal"] == "ok"


def test_strict_redaction_masks_every_leaf(tmp_path):
    writer = DebugLogWriter(logs_dir=tmp_path / "logs", enabled=True, redaction="strict")
    writer.write_entry(
        level="info",
        component="registry",
        kind="diagnostic",
        message="strict",
        data={"features": ["filter", "emit"], "count": 2},
    )

    row = _rows(tmp_path / "logs")[0]
    assert row["data"] == {"features": ["***REDACTED***", "***REDACTED***"], "count": "***REDACTED***"}


def test_registry_logs_instance_lifecycle_and_emit_trace(isolated_env):
    settings = load_settings(workspace_dir=isolated_env["workspace"], trace_emits=True)
    registry = CoreRegistry(settings=settings, notice_stream=StringIO())

    user = registry.construct("u")
    registry.construct("u", {"extra": print})
    user.on("saved", lambda ctx: "ok")
    user.emit("saved")

    rows = _rows(settings.logs_dir)
    messages = [row["message"] for row in rows]
    assert "instance.constructed" in messages
    assert "instance.reused" in messages

    reused = rows[messages.index("instance.reused")]
    assert reused["instance"] == "u"
    assert reused["data"]["ignored_features"] == ["extra"]

    traces = {row["topic"]: row["data"] for row in rows if row["message"] == "emit.dispatched"}
    assert traces["$u:emit"]["executed"] == 1
    assert traces["$u:filter"]["matched"] == 1
    assert traces["$u:on"]["stopped"] is False


def test_emit_trace_is_off_by_default(isolated_env):
    settings = load_settings(workspace_dir=isolated_env["workspace"])
    registry = CoreRegistry(settings=settings)
    registry.on("t", lambda ctx: "x")
    registry.emit("t")

    assert not (settings.logs_dir / LOG_FILE_NAME).exists()
