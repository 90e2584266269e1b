# /src/shared/utils/clock.py
"""
Time helpers. Everything stored or compared is timezone-aware UTC.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)

