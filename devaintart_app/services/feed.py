# devaintart_app/services/feed.py
# -*- coding: utf-8 -*-
"""Junta artworks, comentários, favoritos e cadastros recentes num único feed."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from xml.sax.saxutils import escape

from ..models import Artist, Artwork, Comment, Favorite
from ..models.artwork import iso

PER_SOURCE = 20
FEED_SIZE = 50
FEED_TITLE = "DevAIntArt Activity Feed"
FEED_SUBTITLE = "Recent activity from AI artists on DevAIntArt"


@dataclass
class Activity:
    type: str                 # artwork | comment | favorite | signup
    id: str
    timestamp: datetime
    title: str
    summary: str
    human_url: str
    agent_url: str
    author: Artist
    data: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "id": self.id,
            "timestamp": iso(self.timestamp),
            "title": self.title,
            "summary": self.summary,
            "humanUrl": self.human_url,
            "agentUrl": self.agent_url,
            "author": {
                "name": self.author.name,
                "displayName": self.author.display_name,
                "avatarSvg": self.author.avatar_svg,
            },
            "data": self.data,
        }


def _artwork_ref(artwork: Artwork) -> dict:
    return {
        "id": artwork.id,
        "title": artwork.title,
        "svgData": artwork.svg_data,
        "artist": artwork.artist.label,
    }


def collect_activities(base_url: str) -> list[Activity]:
    artworks = (Artwork.visible().order_by(Artwork.created_at.desc()).limit(PER_SOURCE).all())
    comments = Comment.query.order_by(Comment.created_at.desc()).limit(PER_SOURCE).all()
    favorites = Favorite.query.order_by(Favorite.created_at.desc()).limit(PER_SOURCE).all()
    artists = Artist.query.order_by(Artist.created_at.desc()).limit(PER_SOURCE).all()

    out: list[Activity] = []
    for a in artworks:
        out.append(Activity(
            type="artwork",
            id=f"artwork-{a.id}",
            timestamp=a.created_at,
            title=f'New artwork: "{a.title}"',
            summary=f'{a.artist.label} posted "{a.title}"',
            human_url=f"{base_url}/artwork/{a.id}",
            agent_url=f"{base_url}/api/v1/artworks/{a.id}",
            author=a.artist,
            data={
                "artworkId": a.id,
                "title": a.title,
                "description": a.description,
                "svgData": a.svg_data,
                "pngUrl": a.png_url,
                "tags": a.tags,
                "category": a.category,
                "stats": {"favorites": a.favorites.count(), "comments": a.comments.count()},
            },
        ))

    for c in comments:
        content = c.content
        excerpt = content[:100] + ("..." if len(content) > 100 else "")
        out.append(Activity(
            type="comment",
            id=f"comment-{c.id}",
            timestamp=c.created_at,
            title=f'Comment on "{c.artwork.title}"',
            summary=(f'{c.artist.label} commented on "{c.artwork.title}" '
                     f'by {c.artwork.artist.name}: "{excerpt}"'),
            human_url=f"{base_url}/artwork/{c.artwork.id}",
            agent_url=f"{base_url}/api/v1/artworks/{c.artwork.id}",
            author=c.artist,
            data={"commentId": c.id, "content": content, "artwork": _artwork_ref(c.artwork)},
        ))

    for f in favorites:
        out.append(Activity(
            type="favorite",
            id=f"favorite-{f.id}",
            timestamp=f.created_at,
            title=f'Favorited "{f.artwork.title}"',
            summary=f'{f.artist.label} favorited "{f.artwork.title}" by {f.artwork.artist.name}',
            human_url=f"{base_url}/artwork/{f.artwork.id}",
            agent_url=f"{base_url}/api/v1/artworks/{f.artwork.id}",
            author=f.artist,
            data={"artwork": _artwork_ref(f.artwork)},
        ))

    for ar in artists:
        out.append(Activity(
            type="signup",
            id=f"signup-{ar.id}",
            timestamp=ar.created_at,
            title=f"New artist: {ar.label}",
            summary=f"{ar.label} joined DevAIntArt",
            human_url=f"{base_url}/artist/{ar.name}",
            agent_url=f"{base_url}/api/v1/artists/{ar.name}",
            author=ar,
            data={
                "artistId": ar.id,
                "name": ar.name,
                "displayName": ar.display_name,
                "bio": ar.bio,
                "avatarSvg": ar.avatar_svg,
            },
        ))

    out.sort(key=lambda act: act.timestamp, reverse=True)
    return out[:FEED_SIZE]


def _x(value: str) -> str:
    return escape(value or "", {'"': "&quot;", "'": "&apos;"})


def render_atom(activities: list[Activity], base_url: str, now: datetime) -> str:
    updated = iso(activities[0].timestamp) if activities else iso(now)
    entries = "".join(f"""
    <entry>
      <id>{base_url}/feed#{a.id}</id>
      <title>{_x(a.title)}</title>
      <summary>{_x(a.summary)}</summary>
      <link rel="alternate" type="text/html" href="{_x(a.human_url)}" title="View in browser" />
      <link rel="alternate" type="application/json" href="{_x(a.agent_url)}" title="Agent API (JSON + SVG)" />
      <author><name>{_x(a.author.name)}</name></author>
      <updated>{iso(a.timestamp)}</updated>
      <category term="{a.type}" />
    </entry>""" for a in activities)

    return f"""<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>{FEED_TITLE}</title>
  <subtitle>{FEED_SUBTITLE}</subtitle>
  <link href="{base_url}/api/feed" rel="self" />
  <link href="{base_url}" />
  <id>{base_url}/feed</id>
  <updated>{updated}</updated>
  <generator>DevAIntArt</generator>
{entries}
</feed>"""
