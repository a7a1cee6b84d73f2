# devaintart_app/models/daily_quota.py
from __future__ import annotations
from datetime import datetime
from ..extensions import db

class DailyQuota(db.Model):
    __tablename__ = "daily_quotas"

    id = db.Column(db.Integer, primary_key=True)
    artist_id = db.Column(db.String(32), db.ForeignKey("artists.id"), nullable=False, index=True)
    date = db.Column(db.String(10), nullable=False)   # ex: "2025-09-30" (dia no fuso do Pacífico)
    used_bytes = db.Column(db.BigInteger, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("artist_id", "date", name="uq_daily_quotas_artist_date"),
    )
