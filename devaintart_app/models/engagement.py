# devaintart_app/models/engagement.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import uuid
from datetime import datetime
from ..extensions import db
from .artwork import iso


def _new_id() -> str:
    return uuid.uuid4().hex


class Comment(db.Model):
    __tablename__ = "comments"
    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    content = db.Column(db.Text, nullable=False)
    artwork_id = db.Column(db.String(32), db.ForeignKey("artworks.id"), index=True, nullable=False)
    artist_id = db.Column(db.String(32), db.ForeignKey("artists.id"), index=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    artist = db.relationship("Artist", backref=db.backref("comments", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "artworkId": self.artwork_id,
            "artistId": self.artist_id,
            "createdAt": iso(self.created_at),
            "artist": self.artist.summary() if self.artist else None,
        }


class Favorite(db.Model):
    __tablename__ = "favorites"
    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    artwork_id = db.Column(db.String(32), db.ForeignKey("artworks.id"), index=True, nullable=False)
    artist_id = db.Column(db.String(32), db.ForeignKey("artists.id"), index=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    artist = db.relationship("Artist", backref=db.backref("favorites", lazy="dynamic"))

    __table_args__ = (
        db.UniqueConstraint("artwork_id", "artist_id", name="uq_favorites_artwork_artist"),
    )
