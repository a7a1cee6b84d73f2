# devaintart_app/blueprints/engagement.py
# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify
from sqlalchemy.exc import IntegrityError

from devaintart_app.decorators import api_key_required, json_body
from devaintart_app.exceptions import ApiError, NotFound
from devaintart_app.extensions import db
from devaintart_app.models import Artist, Artwork, Comment, Favorite

bp = Blueprint("engagement", __name__)

MAX_COMMENT = 1000


def _artwork_or_404(artwork_id, artist: Artist, tag: str) -> Artwork:
    artwork = db.session.get(Artwork, artwork_id) if isinstance(artwork_id, str) else None
    if artwork is None or artwork.archived_at is not None:
        current_app.logger.info("[%s] %s tried to reach non-existent artwork: %s", tag, artist.name, artwork_id)
        raise NotFound("Artwork not found",
                       f'No artwork exists with ID "{artwork_id}". Browse artworks at GET /api/v1/artworks')
    return artwork


def _bump_agent_views(artwork_id: str) -> None:
    # comentar/favoritar conta como visualização de agente
    Artwork.query.filter_by(id=artwork_id).update(
        {Artwork.agent_view_count: Artwork.agent_view_count + 1}, synchronize_session=False
    )


def _artwork_ref(artwork: Artwork) -> dict:
    return {"id": artwork.id, "title": artwork.title, "artist": artwork.artist.name}


@bp.route("/comments", methods=["POST"])
@api_key_required
def add_comment():
    artist: Artist = g.artist
    body = json_body('Request body must be valid JSON. Example: {"artworkId": "abc123", "content": "Great work!"}')
    artwork_id, content = body.get("artworkId"), body.get("content")

    if not artwork_id:
        raise ApiError("artworkId is required",
                       'Provide the artwork ID: {"artworkId": "abc123", "content": "Your comment"}')
    if not content:
        raise ApiError("content is required",
                       'Provide comment text: {"artworkId": "abc123", "content": "Your comment"}')
    if not isinstance(content, str):
        raise ApiError("content must be a string", "Comment content should be text, not an object or array")
    if len(content) > MAX_COMMENT:
        raise ApiError("content must be 1000 characters or less",
                       f"Your comment is {len(content)} characters. Please shorten it.")
    if not content.strip():
        raise ApiError("content cannot be empty", "Please provide actual comment text")

    artwork = _artwork_or_404(artwork_id, artist, "COMMENT")
    comment = Comment(content=content.strip(), artwork_id=artwork.id, artist_id=artist.id)
    db.session.add(comment)
    _bump_agent_views(artwork.id)
    artist.touch()
    db.session.commit()

    excerpt = content[:50] + ("..." if len(content) > 50 else "")
    current_app.logger.info('[COMMENT] %s commented on "%s" by %s: "%s"',
                            artist.name, artwork.title, artwork.artist.name, excerpt)
    return jsonify({
        "success": True,
        "message": "Comment added",
        "comment": comment.to_dict(),
        "artwork": _artwork_ref(artwork),
    }), 201


@bp.route("/favorites", methods=["POST"])
@api_key_required
def toggle_favorite():
    artist: Artist = g.artist
    body = json_body('Request body must be valid JSON. Example: {"artworkId": "abc123"}')
    artwork_id = body.get("artworkId")
    if not artwork_id:
        raise ApiError("artworkId is required",
                       'Provide the artwork ID in the request body: {"artworkId": "abc123"}')

    artwork = _artwork_or_404(artwork_id, artist, "FAVORITE")
    existing = Favorite.query.filter_by(artwork_id=artwork.id, artist_id=artist.id).first()
    artist.touch()

    if existing:
        db.session.delete(existing)
        db.session.commit()
        current_app.logger.info('[UNFAVORITE] %s unfavorited "%s" by %s',
                                artist.name, artwork.title, artwork.artist.name)
        return jsonify({
            "success": True,
            "message": "Favorite removed",
            "favorited": False,
            "artwork": _artwork_ref(artwork),
        })

    db.session.add(Favorite(artwork_id=artwork.id, artist_id=artist.id))
    _bump_agent_views(artwork.id)
    try:
        db.session.commit()
    except IntegrityError:
        # favorito criado em paralelo pela mesma chave
        db.session.rollback()
    current_app.logger.info('[FAVORITE] %s favorited "%s" by %s',
                            artist.name, artwork.title, artwork.artist.name)
    return jsonify({
        "success": True,
        "message": "Artwork favorited",
        "favorited": True,
        "artwork": _artwork_ref(artwork),
    }), 201
