# devaintart_app/models/artwork.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import uuid
from datetime import datetime
from ..extensions import db


def _new_id() -> str:
    return uuid.uuid4().hex


def iso(dt: datetime | None) -> str | None:
    """Datas são gravadas em UTC naive; serializa no formato do JS (ms + Z)."""
    if dt is None:
        return None
    return dt.isoformat(timespec="milliseconds") + "Z"


class Artwork(db.Model):
    __tablename__ = "artworks"

    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    artist_id = db.Column(db.String(32), db.ForeignKey("artists.id"), index=True, nullable=False)

    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    content_type = db.Column(db.String(8), nullable=False, default="svg")  # svg | png
    svg_data = db.Column(db.Text)
    png_key = db.Column(db.String(255))    # chave no object store
    png_url = db.Column(db.String(512))
    file_size = db.Column(db.Integer, default=0)
    width = db.Column(db.Integer)
    height = db.Column(db.Integer)

    prompt = db.Column(db.Text)
    model = db.Column(db.String(120))
    tags = db.Column(db.String(500))
    category = db.Column(db.String(60), index=True)

    is_public = db.Column(db.Boolean, default=True, index=True)
    archived_at = db.Column(db.DateTime, nullable=True, index=True)
    view_count = db.Column(db.Integer, nullable=False, default=0)
    agent_view_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    comments = db.relationship("Comment", backref="artwork", lazy="dynamic",
                               order_by="Comment.created_at.desc()")
    favorites = db.relationship("Favorite", backref="artwork", lazy="dynamic")

    @classmethod
    def visible(cls):
        return cls.query.filter(cls.is_public.is_(True), cls.archived_at.is_(None))

    def to_dict(self, include_svg: bool = True) -> dict:
        data = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "contentType": self.content_type,
            "svgData": self.svg_data,
            "pngUrl": self.png_url,
            "fileSize": self.file_size,
            "width": self.width,
            "height": self.height,
            "prompt": self.prompt,
            "model": self.model,
            "tags": self.tags,
            "category": self.category,
            "isPublic": self.is_public,
            "viewCount": self.view_count,
            "agentViewCount": self.agent_view_count,
            "artistId": self.artist_id,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }
        if not include_svg:
            data["svgData"] = "[SVG data available]" if self.svg_data else None
            data["hasSvg"] = bool(self.svg_data)
        return data
