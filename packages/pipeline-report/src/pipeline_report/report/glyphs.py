"""Lookup tables from outcomes/severities to emoji. Unknown input maps to a default."""

from __future__ import annotations

from enum import Enum

DEFAULT_GLYPH = "⚪"

OUTCOME_GLYPHS: dict[str, str] = {
    "success": "✅",
    "failure": "❌",
    "skipped": "⏭️",
}

SEVERITY_GLYPHS: dict[str, str] = {
    "blocker": "🚫",
    "critical": "🔴",
    "major": "🟠",
    "minor": "🟡",
    "info": "ℹ️",
}

QUALITY_GATE_GLYPHS: dict[str, str] = {
    "OK": "✅",
    "WARN": "⚠️",
    "ERROR": "❌",
}


def _key(value: object) -> str:
    if isinstance(value, Enum):
        value = value.value
    return value if isinstance(value, str) else ""


def outcome_glyph(outcome: object) -> str:
    return OUTCOME_GLYPHS.get(_key(outcome), DEFAULT_GLYPH)


def severity_glyph(severity: object) -> str:
    return SEVERITY_GLYPHS.get(_key(severity).lower(), DEFAULT_GLYPH)


def quality_gate_glyph(status: object) -> str:
    return QUALITY_GATE_GLYPHS.get(_key(status).upper(), DEFAULT_GLYPH)
