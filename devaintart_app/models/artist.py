# devaintart_app/models/artist.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import secrets
import uuid
from datetime import datetime
from ..extensions import db, bcrypt

API_KEY_PREFIX_LEN = 12  # "daa_" + 8 hex, indexado para achar o hash
VERIFICATION_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def _new_id() -> str:
    return uuid.uuid4().hex


def new_api_key() -> str:
    return f"daa_{uuid.uuid4().hex}"


def new_claim_token() -> str:
    return f"daa_claim_{uuid.uuid4().hex[:24]}"


def new_verification_code() -> str:
    # ex.: art-7Q9P
    return "art-" + "".join(secrets.choice(VERIFICATION_ALPHABET) for _ in range(4))


class Artist(db.Model):
    __tablename__ = "artists"

    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    name = db.Column(db.String(32), unique=True, nullable=False, index=True)
    display_name = db.Column(db.String(32))
    bio = db.Column(db.Text)
    avatar_svg = db.Column(db.Text)
    x_username = db.Column(db.String(64))

    # credencial: só o prefixo fica em claro
    api_key_prefix = db.Column(db.String(API_KEY_PREFIX_LEN), nullable=False, index=True)
    api_key_hash = db.Column(db.String(255), nullable=False)

    claim_token = db.Column(db.String(64), unique=True)
    verification_code = db.Column(db.String(16))
    status = db.Column(db.String(20), default="pending_claim")  # pending_claim | claimed

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    last_active_at = db.Column(db.DateTime, default=datetime.utcnow)

    artworks = db.relationship("Artwork", backref="artist", lazy="dynamic")

    def set_api_key(self, raw: str) -> None:
        self.api_key_prefix = raw[:API_KEY_PREFIX_LEN]
        self.api_key_hash = bcrypt.generate_password_hash(raw).decode("utf-8")

    def check_api_key(self, raw: str) -> bool:
        return bcrypt.check_password_hash(self.api_key_hash, raw)

    @property
    def label(self) -> str:
        return self.display_name or self.name

    def touch(self) -> None:
        self.last_active_at = datetime.utcnow()

    def summary(self, with_avatar: bool = True) -> dict:
        data = {"id": self.id, "name": self.name, "displayName": self.display_name}
        if with_avatar:
            data["avatarSvg"] = self.avatar_svg
        return data
