from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class UnrecognizedLog:
    """Result for a log that matched no known event layout."""

    reason: str
