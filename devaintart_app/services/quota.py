# devaintart_app/services/quota.py
# -*- coding: utf-8 -*-
"""
Cota diária de upload por artista.

O dia de referência é o dia civil em America/Los_Angeles; cada (artista, dia)
tem um registro em `daily_quotas`, criado no primeiro upload aceito do dia.
Virar o dia no Pacífico zera a cota efetiva só pela troca de chave.

check_and_record_upload faz o "verifica e soma" em um único UPDATE
condicional no banco (compare-and-swap), então várias instâncias da app
podem aceitar uploads ao mesmo tempo sem estourar o limite.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from flask import current_app
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..exceptions import QuotaExceeded
from ..extensions import db
from ..models.daily_quota import DailyQuota
from .clock import SystemClock

PACIFIC_TZ = "America/Los_Angeles"
MB = 1024 * 1024


@dataclass
class QuotaInfo:
    daily_limit_bytes: int
    used_bytes: int
    remaining_bytes: int
    reset_time: str
    percent_used: float
    day: str = ""

    def to_dict(self) -> dict:
        d = asdict(self)
        return {
            "dailyLimitBytes": d["daily_limit_bytes"],
            "usedBytes": d["used_bytes"],
            "remainingBytes": d["remaining_bytes"],
            "resetTime": d["reset_time"],
            "percentUsed": d["percent_used"],
        }


# ------------------------------------------------------------------
# Datas no fuso da cota
# ------------------------------------------------------------------
def local_date(instant: datetime, tz: ZoneInfo) -> date:
    return instant.astimezone(tz).date()


def quota_date_key(instant: datetime, tz: ZoneInfo) -> str:
    """'YYYY-MM-DD' do instante no fuso da cota."""
    return local_date(instant, tz).isoformat()


def midnight_utc(day: date, tz: ZoneInfo) -> datetime:
    """Meia-noite local de `day` como instante UTC (07:00Z no horário de verão, 08:00Z no padrão)."""
    return datetime.combine(day, time.min, tzinfo=tz).astimezone(timezone.utc)


def next_reset(instant: datetime, tz: ZoneInfo) -> datetime:
    return midnight_utc(local_date(instant, tz) + timedelta(days=1), tz)


def format_instant(instant: datetime) -> str:
    """ISO-8601 em UTC com milissegundos e sufixo Z."""
    utc = instant.astimezone(timezone.utc).replace(tzinfo=None)
    return utc.isoformat(timespec="milliseconds") + "Z"


def format_bytes(n: int) -> str:
    if n < 1024:
        return f"{n}B"
    if n < MB:
        return f"{n / 1024:.1f}KB"
    return f"{n / MB:.1f}MB"


def format_time_until(delta: timedelta) -> str:
    total_minutes = max(0, int(delta.total_seconds() // 60))
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours}h {minutes}m" if hours > 0 else f"{minutes}m"


class QuotaTracker:
    """Limite diário de bytes enviados por artista."""

    def __init__(self, daily_limit_bytes: int, clock=None, tz_name: str = PACIFIC_TZ):
        self.daily_limit_bytes = int(daily_limit_bytes)
        self.clock = clock or SystemClock()
        self.tz = ZoneInfo(tz_name)

    # leitura
    def today_key(self) -> str:
        return quota_date_key(self.clock.now(), self.tz)

    def reset_time(self) -> datetime:
        return next_reset(self.clock.now(), self.tz)

    def _used(self, artist_id: str, day: str, lock: bool = False) -> int | None:
        stmt = select(DailyQuota.used_bytes).where(
            DailyQuota.artist_id == artist_id, DailyQuota.date == day
        )
        if lock:
            stmt = stmt.with_for_update()
        return db.session.execute(stmt).scalar_one_or_none()

    def _snapshot(self, used: int, now: datetime) -> QuotaInfo:
        limit = self.daily_limit_bytes
        percent = round(used / limit * 100, 2) if limit > 0 else 100.0
        return QuotaInfo(
            daily_limit_bytes=limit,
            used_bytes=used,
            remaining_bytes=max(0, limit - used),
            reset_time=format_instant(next_reset(now, self.tz)),
            percent_used=percent,
            day=quota_date_key(now, self.tz),
        )

    def get_quota_info(self, artist_id: str) -> QuotaInfo:
        now = self.clock.now()
        used = self._used(artist_id, quota_date_key(now, self.tz)) or 0
        return self._snapshot(used, now)

    # escrita
    def check_and_record_upload(self, artist_id: str, size_bytes: int) -> QuotaInfo:
        """
        Soma `size_bytes` à cota de hoje se couber no limite; senão levanta QuotaExceeded
        sem alterar nada. Faz commit (ou rollback) da sessão atual: chame antes de
        adicionar outros objetos à sessão.
        """
        if size_bytes < 0:
            raise ValueError("size_bytes must be >= 0")

        now = self.clock.now()
        day = quota_date_key(now, self.tz)
        limit = self.daily_limit_bytes
        session = db.session
        current = None

        # 2 tentativas: a segunda só acontece se outra instância criou o registro do dia
        for attempt in range(2):
            try:
                result = session.execute(
                    update(DailyQuota)
                    .where(
                        DailyQuota.artist_id == artist_id,
                        DailyQuota.date == day,
                        DailyQuota.used_bytes + size_bytes <= limit,
                    )
                    .values(used_bytes=DailyQuota.used_bytes + size_bytes)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 1:
                    used = self._used(artist_id, day)
                    session.commit()
                    current_app.logger.info("[QUOTA] artist=%s day=%s +%s -> %s/%s",
                                            artist_id, day, size_bytes, used, limit)
                    return self._snapshot(used, now)

                current = self._used(artist_id, day, lock=True)
                if current is None and size_bytes <= limit:
                    session.add(DailyQuota(artist_id=artist_id, date=day, used_bytes=size_bytes))
                    session.commit()
                    current_app.logger.info("[QUOTA] artist=%s day=%s first upload %s/%s",
                                            artist_id, day, size_bytes, limit)
                    return self._snapshot(size_bytes, now)
            except IntegrityError:
                # registro do dia criado em paralelo: refaz o UPDATE condicional
                session.rollback()
                if attempt == 1:
                    raise
                continue
            except SQLAlchemyError:
                session.rollback()
                raise

            session.rollback()
            break

        raise self._exceeded(size_bytes, current or 0, now)

    def release_upload(self, artist_id: str, day: str, size_bytes: int) -> bool:
        """
        Devolve bytes registrados por check_and_record_upload quando o upload não
        chegou a ser gravado. `day` é a chave do dia em que a cota foi cobrada
        (QuotaInfo.day), para não descontar do dia seguinte se a meia-noite passou.
        """
        if size_bytes <= 0:
            return False
        session = db.session
        try:
            result = session.execute(
                update(DailyQuota)
                .where(
                    DailyQuota.artist_id == artist_id,
                    DailyQuota.date == day,
                    DailyQuota.used_bytes >= size_bytes,
                )
                .values(used_bytes=DailyQuota.used_bytes - size_bytes)
                .execution_options(synchronize_session=False)
            )
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            raise
        released = result.rowcount == 1
        current_app.logger.info("[QUOTA] artist=%s day=%s released %s bytes (%s)",
                                artist_id, day, size_bytes, "ok" if released else "no match")
        return released

    def _exceeded(self, size_bytes: int, used: int, now: datetime) -> QuotaExceeded:
        info = self._snapshot(used, now)
        reset = next_reset(now, self.tz)
        reset_local = (reset.astimezone(self.tz)).date()
        hint = (
            f"You've used {used / MB:.1f}MB of your {self.daily_limit_bytes / MB:.0f}MB daily quota. "
            f"Quota resets at {reset_local.month}/{reset_local.day}/{reset_local.year} 00:00 Pacific "
            f"(in {format_time_until(reset - now)}). Your upload: {size_bytes / MB:.1f}MB."
        )
        current_app.logger.info("[QUOTA] rejected %s bytes (used %s/%s, resets %s)",
                                size_bytes, used, self.daily_limit_bytes, info.reset_time)
        return QuotaExceeded(
            used_bytes=used,
            limit_bytes=self.daily_limit_bytes,
            attempted_bytes=size_bytes,
            reset_time=info.reset_time,
            hint=hint,
            quota_info=info.to_dict(),
        )


def init_quota(app, clock=None):
    """Registra o tracker em app.extensions["quota"]."""
    app.extensions["quota"] = QuotaTracker(
        daily_limit_bytes=app.config.get("DAILY_QUOTA_BYTES", 45 * MB),
        clock=clock,
        tz_name=app.config.get("QUOTA_TIMEZONE", PACIFIC_TZ),
    )


def get_quota_tracker() -> QuotaTracker:
    tracker = current_app.extensions.get("quota")
    if tracker is None:
        init_quota(current_app)
        tracker = current_app.extensions["quota"]
    return tracker
