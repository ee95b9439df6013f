"""Rendering of command payloads."""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any


def _format_value(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def _render_text(payload: Any) -> str:
    if not isinstance(payload, dict):
        return _format_value(payload)

    lines: list[str] = []
    for key, value in payload.items():
        if isinstance(value, list) and value and all(isinstance(v, dict) for v in value):
            lines.append(f"{key}:")
            for entry in value:
                lines.append("  - " + ", ".join(f"{k}={_format_value(v)}" for k, v in entry.items()))
        else:
            lines.append(f"{key}: {_format_value(value)}")
    return "\n".join(lines)


def emit(args: argparse.Namespace, payload: Any) -> None:
    """Print a payload as JSON or as `key: value` text, errors to stderr."""
    if getattr(args, "output", "text") == "json":
        text = json.dumps(payload, indent=2, ensure_ascii=False, default=str)
    else:
        text = _render_text(payload)

    stream = sys.stderr if isinstance(payload, dict) and payload.get("error") else sys.stdout
    print(text, file=stream)
