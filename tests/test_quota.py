# tests/test_quota.py
import threading
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from conftest import MB
from devaintart_app.exceptions import QuotaExceeded
from devaintart_app.models import DailyQuota
from devaintart_app.services.quota import (
    format_bytes, format_time_until, midnight_utc, next_reset, quota_date_key,
)

PACIFIC = ZoneInfo("America/Los_Angeles")


def _used_row(artist_id, day):
    row = DailyQuota.query.filter_by(artist_id=artist_id, date=day).first()
    return row.used_bytes if row else None


def test_scenario_rejects_then_accepts_smaller_upload(app, clock, quota_limit, artist):
    artist_id, _ = artist
    tracker = quota_limit(45 * MB)
    with app.app_context():
        tracker.check_and_record_upload(artist_id, 40 * MB)

        with pytest.raises(QuotaExceeded) as exc:
            tracker.check_and_record_upload(artist_id, 10 * MB)
        err = exc.value
        assert err.used_bytes == 40 * MB
        assert err.limit_bytes == 45 * MB
        assert err.attempted_bytes == 10 * MB
        assert err.quota_info["remainingBytes"] == 5 * MB
        assert err.reset_time == "2025-01-31T08:00:00.000Z"

        info = tracker.get_quota_info(artist_id)
        assert info.used_bytes == 40 * MB
        assert info.remaining_bytes == 5 * MB

        info = tracker.check_and_record_upload(artist_id, 4 * MB)
        assert info.used_bytes == 44 * MB
        assert info.remaining_bytes == 1 * MB
        assert _used_row(artist_id, "2025-01-30") == 44 * MB


def test_quota_exceeded_hint_text(app, clock, quota_limit, artist):
    artist_id, _ = artist
    tracker = quota_limit(45 * MB)
    with app.app_context():
        tracker.check_and_record_upload(artist_id, 40 * MB)
        with pytest.raises(QuotaExceeded) as exc:
            tracker.check_and_record_upload(artist_id, 10 * MB)
    # 20:48Z = 12:48 PST; meia-noite do Pacífico é 08:00Z do dia seguinte
    assert exc.value.hint == (
        "You've used 40.0MB of your 45MB daily quota. Quota resets at 1/31/2025 00:00 Pacific "
        "(in 11h 12m). Your upload: 10.0MB."
    )
    body = exc.value.to_dict()
    assert body["success"] is False
    assert body["error"] == "Daily upload quota exceeded"
    assert body["attemptedBytes"] == 10 * MB
    assert body["quota"]["usedBytes"] == 40 * MB


def test_upload_exactly_at_limit_is_accepted(app, clock, quota_limit, artist):
    artist_id, _ = artist
    tracker = quota_limit(10 * MB)
    with app.app_context():
        info = tracker.check_and_record_upload(artist_id, 10 * MB)
        assert info.remaining_bytes == 0
        assert info.percent_used == 100.0
        with pytest.raises(QuotaExceeded):
            tracker.check_and_record_upload(artist_id, 1)
        assert _used_row(artist_id, "2025-01-30") == 10 * MB


def test_first_upload_larger_than_limit_creates_nothing(app, clock, quota_limit, artist):
    artist_id, _ = artist
    tracker = quota_limit(1 * MB)
    with app.app_context():
        with pytest.raises(QuotaExceeded) as exc:
            tracker.check_and_record_upload(artist_id, 2 * MB)
        assert exc.value.used_bytes == 0
        assert _used_row(artist_id, "2025-01-30") is None


def test_negative_size_is_rejected(app, clock, artist):
    tracker = app.extensions["quota"]
    with app.app_context():
        with pytest.raises(ValueError):
            tracker.check_and_record_upload(artist[0], -1)


def test_get_quota_info_is_idempotent_and_read_only(app, clock, quota_limit, artist):
    artist_id, _ = artist
    tracker = quota_limit(45 * MB)
    with app.app_context():
        first = tracker.get_quota_info(artist_id)
        second = tracker.get_quota_info(artist_id)
        assert first == second
        assert first.used_bytes == 0
        assert first.remaining_bytes == 45 * MB
        assert first.percent_used == 0
        assert DailyQuota.query.filter_by(artist_id=artist_id).count() == 0


def test_percent_used_is_rounded_to_two_decimals(app, clock, quota_limit, artist):
    artist_id, _ = artist
    tracker = quota_limit(3000)
    with app.app_context():
        info = tracker.check_and_record_upload(artist_id, 1000)
    assert info.percent_used == 33.33
    assert info.to_dict() == {
        "dailyLimitBytes": 3000,
        "usedBytes": 1000,
        "remainingBytes": 2000,
        "resetTime": "2025-01-31T08:00:00.000Z",
        "percentUsed": 33.33,
    }


def test_pacific_day_boundary_resets_counter(app, clock, quota_limit, artist):
    artist_id, _ = artist
    tracker = quota_limit(45 * MB)
    with app.app_context():
        # 23:59:59 PST de 30/01
        clock.set(datetime(2025, 1, 31, 7, 59, 59, tzinfo=timezone.utc))
        assert tracker.today_key() == "2025-01-30"
        tracker.check_and_record_upload(artist_id, 44 * MB)
        with pytest.raises(QuotaExceeded):
            tracker.check_and_record_upload(artist_id, 2 * MB)

        # meia-noite PST de 31/01: chave nova, contador zerado
        clock.set(datetime(2025, 1, 31, 8, 0, tzinfo=timezone.utc))
        assert tracker.today_key() == "2025-01-31"
        assert tracker.get_quota_info(artist_id).used_bytes == 0
        info = tracker.check_and_record_upload(artist_id, 45 * MB)
        assert info.used_bytes == 45 * MB

        # o registro do dia anterior não é apagado
        assert _used_row(artist_id, "2025-01-30") == 44 * MB
        assert _used_row(artist_id, "2025-01-31") == 45 * MB


def test_quota_day_is_pacific_not_utc():
    # 2025-01-31 03:00Z ainda é 30/01 no Pacífico
    instant = datetime(2025, 1, 31, 3, 0, tzinfo=timezone.utc)
    assert quota_date_key(instant, PACIFIC) == "2025-01-30"


def test_reset_time_standard_vs_daylight(app, clock):
    tracker = app.extensions["quota"]
    clock.set(datetime(2025, 1, 15, 20, 0, tzinfo=timezone.utc))
    standard = tracker.reset_time()
    assert standard == datetime(2025, 1, 16, 8, 0, tzinfo=timezone.utc)

    clock.set(datetime(2025, 7, 15, 19, 0, tzinfo=timezone.utc))
    daylight = tracker.reset_time()
    assert daylight == datetime(2025, 7, 16, 7, 0, tzinfo=timezone.utc)

    assert standard.hour - daylight.hour == 1


def test_midnight_utc_differs_by_one_hour_across_dst():
    assert midnight_utc(date(2025, 1, 16), PACIFIC).hour == 8
    assert midnight_utc(date(2025, 7, 16), PACIFIC).hour == 7


def test_next_reset_on_transition_days():
    # 09/03/2025: entra o horário de verão (dia de 23h)
    spring = next_reset(datetime(2025, 3, 9, 9, 0, tzinfo=timezone.utc), PACIFIC)
    assert spring == datetime(2025, 3, 10, 7, 0, tzinfo=timezone.utc)
    # 02/11/2025: volta o horário padrão (dia de 25h)
    fall = next_reset(datetime(2025, 11, 2, 8, 0, tzinfo=timezone.utc), PACIFIC)
    assert fall == datetime(2025, 11, 3, 8, 0, tzinfo=timezone.utc)


def test_concurrent_uploads_never_exceed_limit(app, clock, quota_limit, artist):
    artist_id, _ = artist
    tracker = quota_limit(45 * MB)
    workers = 9
    barrier = threading.Barrier(workers)
    accepted, rejected, errors = [], [], []

    def upload():
        with app.app_context():
            barrier.wait()
            try:
                accepted.append(tracker.check_and_record_upload(artist_id, 10 * MB))
            except QuotaExceeded as e:
                rejected.append(e)
            except Exception as e:  # noqa: BLE001
                errors.append(e)

    threads = [threading.Thread(target=upload) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert errors == []
    assert len(accepted) == 4
    assert len(rejected) == 5
    with app.app_context():
        assert _used_row(artist_id, "2025-01-30") == 40 * MB
        assert tracker.get_quota_info(artist_id).remaining_bytes == 5 * MB


def test_format_bytes():
    assert format_bytes(512) == "512B"
    assert format_bytes(1536) == "1.5KB"
    assert format_bytes(10 * MB) == "10.0MB"


def test_format_time_until():
    assert format_time_until(timedelta(hours=3, minutes=12, seconds=40)) == "3h 12m"
    assert format_time_until(timedelta(minutes=12)) == "12m"
    assert format_time_until(timedelta(seconds=-5)) == "0m"


def test_release_upload_returns_bytes_to_charged_day(app, clock, quota_limit, artist):
    artist_id, _ = artist
    tracker = quota_limit(45 * MB)
    with app.app_context():
        info = tracker.check_and_record_upload(artist_id, 10 * MB)
        assert info.day == "2025-01-30"

        # meia-noite passou entre a cobrança e a falha: desconta do dia cobrado
        clock.set(datetime(2025, 1, 31, 8, 30, tzinfo=timezone.utc))
        tracker.check_and_record_upload(artist_id, 1 * MB)
        assert tracker.release_upload(artist_id, info.day, 10 * MB) is True
        assert _used_row(artist_id, "2025-01-30") == 0
        assert _used_row(artist_id, "2025-01-31") == 1 * MB

        # nunca fica negativo
        assert tracker.release_upload(artist_id, info.day, 1) is False
        assert _used_row(artist_id, "2025-01-30") == 0


def test_insert_collision_retries_conditional_update(app, clock, quota_limit, artist, monkeypatch):
    from sqlalchemy.orm import Session
    from devaintart_app.extensions import db

    artist_id, _ = artist
    tracker = quota_limit(45 * MB)
    original_used = tracker._used
    collided = []

    def _used(aid, day, lock=False):
        if lock and not collided:
            # outra instância cria o registro do dia entre o UPDATE e o INSERT
            db.session.rollback()
            with Session(db.engine) as other:
                other.add(DailyQuota(artist_id=aid, date=day, used_bytes=40 * MB))
                other.commit()
            collided.append(day)
            return None
        return original_used(aid, day, lock)

    monkeypatch.setattr(tracker, "_used", _used)
    with app.app_context():
        info = tracker.check_and_record_upload(artist_id, 4 * MB)
        assert collided == ["2025-01-30"]
        assert info.used_bytes == 44 * MB
        assert _used_row(artist_id, "2025-01-30") == 44 * MB


def test_repeated_insert_collision_raises_integrity_error(app, clock, quota_limit, artist, monkeypatch):
    from sqlalchemy.exc import IntegrityError

    artist_id, _ = artist
    tracker = quota_limit(45 * MB)
    with app.app_context():
        tracker.check_and_record_upload(artist_id, 44 * MB)

        original_used = tracker._used
        # leitura travada sempre "não vê" o registro: as duas tentativas colidem no INSERT
        monkeypatch.setattr(tracker, "_used",
                            lambda aid, day, lock=False: None if lock else original_used(aid, day))
        with pytest.raises(IntegrityError):
            tracker.check_and_record_upload(artist_id, 4 * MB)
        monkeypatch.undo()

        assert _used_row(artist_id, "2025-01-30") == 44 * MB


def test_persistence_failure_propagates_and_keeps_counter(app, clock, quota_limit, artist, monkeypatch):
    from sqlalchemy.exc import OperationalError
    from sqlalchemy.sql.dml import Update
    from devaintart_app.extensions import db

    artist_id, _ = artist
    tracker = quota_limit(45 * MB)
    with app.app_context():
        tracker.check_and_record_upload(artist_id, 5 * MB)

        original_execute = db.session.execute

        def _execute(stmt, *args, **kwargs):
            if isinstance(stmt, Update):
                raise OperationalError("UPDATE daily_quotas", {}, Exception("disk I/O error"))
            return original_execute(stmt, *args, **kwargs)

        monkeypatch.setattr(db.session, "execute", _execute)
        with pytest.raises(OperationalError):
            tracker.check_and_record_upload(artist_id, 1 * MB)
        monkeypatch.undo()

        assert _used_row(artist_id, "2025-01-30") == 5 * MB
        assert tracker.get_quota_info(artist_id).used_bytes == 5 * MB
