# devaintart_app/services/clock.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import datetime, timezone


class SystemClock:
    """Relógio real (UTC, timezone-aware)."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Relógio parado num instante; usado em testes e scripts."""

    def __init__(self, instant: datetime):
        self.set(instant)

    def set(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self._now = instant

    def now(self) -> datetime:
        return self._now
