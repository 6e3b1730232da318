"""Tests for the structured log line format."""

from __future__ import annotations

import json

from audit_sampling.logging_setup import _run_id_prefix_renderer


def test_renderer_prefixes_run_id() -> None:
    line = _run_id_prefix_renderer(
        None, "info", {"run_id": "run-1", "event": "SAMPLING_DONE", "n": 3}
    )
    prefix, payload = line.split(" ", 1)

    assert prefix == "run-1"
    assert json.loads(payload) == {
        "run_id": "run-1",
        "event": "SAMPLING_DONE",
        "n": 3,
    }


def test_renderer_without_run_id() -> None:
    line = _run_id_prefix_renderer(None, "info", {"event": "RAW_LOADED"})
    assert line.startswith("- {")
