# aicli/tests/test_trace.py
"""Tests for the trace file writer."""

import os
import tempfile

from aicli.trace import provider_trace, resolve_trace_path, trace, trace_write


class TestResolveTracePath:

    def test_empty_value_disables(self, monkeypatch):
        monkeypatch.setenv("AICLI_TRACE_LOG", "")
        assert resolve_trace_path("AICLI_TRACE_LOG", "x.log") is None

    def test_explicit_path(self, monkeypatch):
        monkeypatch.setenv("AICLI_TRACE_LOG", "/var/log/aicli.log")
        assert resolve_trace_path("AICLI_TRACE_LOG", "x.log") == "/var/log/aicli.log"

    def test_unset_uses_temp_dir(self, monkeypatch):
        monkeypatch.delenv("AICLI_TRACE_LOG", raising=False)
        assert resolve_trace_path("AICLI_TRACE_LOG", "x.log") == os.path.join(tempfile.gettempdir(), "x.log")


class TestTraceWrite:

    def test_writes_component_and_message(self, tmp_path, monkeypatch):
        path = tmp_path / "logs" / "trace.log"
        monkeypatch.setenv("AICLI_TRACE_LOG", str(path))
        trace("Pipeline", "turn started")
        trace("Pipeline", "turn finished")
        lines = path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        assert lines[0].endswith("[Pipeline] turn started")

    def test_provider_channel(self, tmp_path, monkeypatch):
        path = tmp_path / "provider.log"
        monkeypatch.setenv("AICLI_PROVIDER_TRACE", str(path))
        provider_trace("google_genai", "STREAM_START")
        assert "[google_genai] STREAM_START" in path.read_text(encoding="utf-8")

    def test_disabled_writes_nothing(self, tmp_path, monkeypatch):
        monkeypatch.setenv("AICLI_TRACE_LOG", "")
        monkeypatch.chdir(tmp_path)
        trace("X", "ignored")
        assert list(tmp_path.iterdir()) == []

    def test_traceback_included(self, tmp_path):
        path = tmp_path / "trace.log"
        try:
            raise ValueError("bad value")
        except ValueError:
            trace_write("X", "failed", str(path), include_traceback=True)
        content = path.read_text(encoding="utf-8")
        assert "Traceback:" in content
        assert "ValueError: bad value" in content

    def test_unwritable_path_never_raises(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        trace_write("X", "msg", str(blocker / "sub" / "trace.log"))
