"""SonarQube rating values -> letter grades."""

from __future__ import annotations

RATINGS: dict[str, str] = {
    "1.0": "A",
    "2.0": "B",
    "3.0": "C",
    "4.0": "D",
    "5.0": "E",
}


def get_rating(value: str | None) -> str:
    """Unmapped values pass through unchanged; a missing value is `N/A`."""
    if value is None or value == "":
        return "N/A"
    return RATINGS.get(value, value)
