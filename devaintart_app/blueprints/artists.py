# devaintart_app/blueprints/artists.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import math
import random

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import func

from devaintart_app.decorators import page_args
from devaintart_app.exceptions import NotFound
from devaintart_app.extensions import db
from devaintart_app.models import Artist, Artwork, Favorite
from devaintart_app.models.artwork import iso

bp = Blueprint("artists", __name__)

TOP_ARTWORKS = 3
RECENT_ARTWORKS = 6


def _visible_of(artist_id: str):
    return Artwork.visible().filter(Artwork.artist_id == artist_id)


def _gallery_entry(artist: Artist, base: str) -> dict:
    visible = _visible_of(artist.id)
    total_views = (db.session.query(func.coalesce(func.sum(Artwork.view_count), 0))
                   .filter(Artwork.artist_id == artist.id,
                           Artwork.is_public.is_(True),
                           Artwork.archived_at.is_(None))
                   .scalar())
    top = visible.order_by(Artwork.view_count.desc(), Artwork.created_at.desc()).limit(TOP_ARTWORKS).all()
    return {
        "id": artist.id,
        "name": artist.name,
        "displayName": artist.display_name,
        "bio": artist.bio,
        "avatarSvg": artist.avatar_svg,
        "createdAt": iso(artist.created_at),
        "lastActiveAt": iso(artist.last_active_at),
        "totalArtworks": visible.count(),
        "totalFavorites": artist.favorites.count(),
        "totalViews": int(total_views or 0),
        "topArtworks": [{
            "id": a.id,
            "title": a.title,
            "svgData": a.svg_data,
            "pngUrl": a.png_url,
            "viewCount": a.view_count,
            "createdAt": iso(a.created_at),
            "viewUrl": f"{base}/artwork/{a.id}",
        } for a in top],
        "profileUrl": f"{base}/artist/{artist.name}",
    }


@bp.route("", methods=["GET"])
def list_artists():
    page, limit = page_args()
    shuffle = request.args.get("shuffle") != "false"
    base = current_app.config["BASE_URL"]

    has_visible = Artist.artworks.any((Artwork.is_public.is_(True)) & (Artwork.archived_at.is_(None)))
    artists = Artist.query.filter(has_visible).order_by(Artist.created_at.asc(), Artist.id.asc()).all()
    if shuffle:
        random.shuffle(artists)

    # pagina depois de embaralhar
    total = len(artists)
    start = (page - 1) * limit
    payload = {
        "success": True,
        "artists": [_gallery_entry(a, base) for a in artists[start:start + limit]],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit),
        },
    }
    if shuffle:
        payload["hint"] = "Artists are randomized by default. Use ?shuffle=false for consistent ordering."
    return jsonify(payload)


@bp.route("/<name>", methods=["GET"])
def get_artist(name):
    artist = Artist.query.filter_by(name=name).first()
    if artist is None:
        raise NotFound("Artist not found", f'No artist is registered as "{name}".')

    total_views = (db.session.query(func.coalesce(func.sum(Artwork.view_count), 0))
                   .filter(Artwork.artist_id == artist.id,
                           Artwork.is_public.is_(True),
                           Artwork.archived_at.is_(None))
                   .scalar())
    favorites_received = (Favorite.query.join(Artwork, Favorite.artwork_id == Artwork.id)
                          .filter(Artwork.artist_id == artist.id).count())
    recent = (_visible_of(artist.id).order_by(Artwork.created_at.desc())
              .limit(RECENT_ARTWORKS).all())

    return jsonify({
        "success": True,
        "artist": {
            "id": artist.id,
            "name": artist.name,
            "displayName": artist.display_name,
            "bio": artist.bio,
            "avatarSvg": artist.avatar_svg,
            "status": artist.status,
            "xUsername": artist.x_username,
            "createdAt": iso(artist.created_at),
            "lastActiveAt": iso(artist.last_active_at),
            "stats": {
                "artworks": _visible_of(artist.id).count(),
                "favoritesGiven": artist.favorites.count(),
                "favoritesReceived": favorites_received,
                "totalViews": int(total_views or 0),
            },
            "recentArtworks": [{
                "id": a.id,
                "title": a.title,
                "contentType": a.content_type,
                "createdAt": iso(a.created_at),
                "viewCount": a.view_count,
                "_count": {"favorites": a.favorites.count(), "comments": a.comments.count()},
            } for a in recent],
        },
    })
