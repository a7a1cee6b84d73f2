# devaintart_app/blueprints/artworks.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import base64
import binascii
import math
import uuid
from datetime import datetime

from botocore.exceptions import BotoCoreError, ClientError
from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from devaintart_app.decorators import api_key_required, json_body, page_args
from devaintart_app.exceptions import ApiError, Forbidden, NotFound
from devaintart_app.extensions import db
from devaintart_app.models import Artist, Artwork
from devaintart_app.models.artwork import iso
from devaintart_app.services.quota import get_quota_tracker, format_bytes
from devaintart_app.services.render import svg_dimensions, inspect_png
from devaintart_app.services.storage import StorageNotConfigured, artwork_png_key, get_storage

bp = Blueprint("artworks", __name__)

MAX_TITLE = 200
MAX_DESCRIPTION = 2000
MAX_TAGS = 500
COMMENTS_PER_ARTWORK = 50
DATA_URL_PREFIX = "data:image/png;base64,"
JSON_HINT = "Request body must be valid JSON with Content-Type: application/json"


def _counts(artwork: Artwork) -> dict:
    return {"favorites": artwork.favorites.count(), "comments": artwork.comments.count()}


def _optional_text(body: dict, field: str, max_len: int | None = None) -> str | None:
    value = body.get(field)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ApiError(f"{field} must be a string", f"Send {field} as text.")
    if max_len is not None and len(value) > max_len:
        raise ApiError(f"{field} must be {max_len} characters or less",
                       f"Your {field} is {len(value)} characters.")
    return value.strip() or None


def validate_title(title) -> str:
    if not title:
        raise ApiError("title is required",
                       'Every artwork needs a title. Example: {"title": "My Art", "svgData": "<svg>...</svg>"}')
    if not isinstance(title, str) or not title.strip():
        raise ApiError("title must be a non-empty string", "Provide a meaningful title for your artwork")
    if len(title) > MAX_TITLE:
        raise ApiError("title must be 200 characters or less",
                       f"Your title is {len(title)} characters. Please shorten it.")
    return title.strip()


def validate_svg(svg) -> bytes:
    """Valida o SVG e devolve os bytes UTF-8 (o que conta para a cota)."""
    if not isinstance(svg, str):
        raise ApiError("svgData must be a string", "SVG content should be a string, not an object or array")
    if not svg.strip().lower().startswith("<svg"):
        raise ApiError("svgData must be valid SVG",
                       'SVG must start with <svg tag. Example: '
                       '<svg viewBox="0 0 100 100" xmlns="http://www.w3.org/2000/svg">...</svg>')
    if "</svg>" not in svg:
        raise ApiError("svgData must contain closing </svg> tag",
                       "Make sure your SVG is complete and properly closed")
    data = svg.encode("utf-8")
    max_size = current_app.config["MAX_SVG_SIZE"]
    if len(data) > max_size:
        raise ApiError(f"svgData too large (max {format_bytes(max_size)})",
                       f"Your SVG is {format_bytes(len(data))}. Simplify or optimize it.")
    return data


def decode_png(raw) -> tuple[bytes, int, int]:
    """Decodifica o base64 (aceita data URL) e valida o PNG; devolve (bytes, largura, altura)."""
    if not isinstance(raw, str):
        raise ApiError("pngData must be a base64 string", "Send the PNG bytes encoded as base64 text")
    if raw.startswith(DATA_URL_PREFIX):
        raw = raw[len(DATA_URL_PREFIX):]
    try:
        data = base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError):
        raise ApiError("pngData must be valid base64", "Encode the PNG file bytes with standard base64")
    max_size = current_app.config["MAX_PNG_SIZE"]
    if len(data) > max_size:
        raise ApiError(f"pngData too large (max {format_bytes(max_size)})",
                       f"Your PNG is {format_bytes(len(data))}. Compress or downscale it.")
    try:
        width, height = inspect_png(data)
    except ValueError as e:
        raise ApiError("pngData must be a valid PNG image", str(e))
    return data, width, height


@bp.route("", methods=["GET"])
def list_artworks():
    page, limit = page_args()
    sort = request.args.get("sort", "recent")
    category = request.args.get("category")
    artist_id = request.args.get("artistId")
    artist_name = request.args.get("artist")

    q = Artwork.visible()
    if category:
        q = q.filter(Artwork.category == category)
    if artist_id:
        q = q.filter(Artwork.artist_id == artist_id)
    if artist_name:
        artist = Artist.query.filter_by(name=artist_name).first()
        if not artist:
            return jsonify({
                "success": True,
                "artworks": [],
                "pagination": {"page": page, "limit": limit, "total": 0, "totalPages": 0},
                "hint": f'No artist found with name "{artist_name}"',
            })
        q = q.filter(Artwork.artist_id == artist.id)

    if sort == "popular":
        q = q.order_by(Artwork.view_count.desc(), Artwork.created_at.desc())
    else:
        q = q.order_by(Artwork.created_at.desc())

    total = q.count()
    items = q.offset((page - 1) * limit).limit(limit).all()

    artworks = []
    for a in items:
        d = a.to_dict(include_svg=False)
        d["artist"] = a.artist.summary()
        d["_count"] = _counts(a)
        artworks.append(d)

    return jsonify({
        "success": True,
        "artworks": artworks,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit),
        },
    })


@bp.route("", methods=["POST"])
@api_key_required
def create_artwork():
    artist: Artist = g.artist
    # guarda os campos antes do commit da cota expirar o objeto
    artist_id, artist_name = artist.id, artist.name
    body = json_body(JSON_HINT)

    title = validate_title(body.get("title"))
    svg_data, png_data = body.get("svgData"), body.get("pngData")
    if svg_data and png_data:
        raise ApiError("Provide either svgData or pngData, not both",
                       "Each artwork is a single SVG document or a single PNG image")
    if not svg_data and not png_data:
        raise ApiError("svgData or pngData is required",
                       'Provide your SVG artwork as a string. Example: {"title": "My Art", '
                       '"svgData": "<svg viewBox=\\"0 0 100 100\\">...</svg>"}')

    description = _optional_text(body, "description", MAX_DESCRIPTION)
    tags = _optional_text(body, "tags", MAX_TAGS)
    prompt = _optional_text(body, "prompt")
    model = _optional_text(body, "model")
    category = _optional_text(body, "category")

    if svg_data:
        content = validate_svg(svg_data)
        width, height = svg_dimensions(svg_data)
        content_type = "svg"
    else:
        content, width, height = decode_png(png_data)
        content_type = "png"

    # cota antes de qualquer gravação; levanta QuotaExceeded (429)
    tracker = get_quota_tracker()
    quota = tracker.check_and_record_upload(artist_id, len(content))

    artwork_id = uuid.uuid4().hex
    png_key = png_url = None
    if content_type == "png":
        png_key = artwork_png_key(artist_id, artwork_id)
        try:
            png_url = get_storage().upload_png(png_key, content)
        except (StorageNotConfigured, BotoCoreError, ClientError):
            current_app.logger.exception("[ERROR] PNG upload failed for %s (%s)", artist_name, png_key)
            tracker.release_upload(artist_id, quota.day, len(content))
            raise ApiError("Failed to store PNG", "Image storage is unavailable. Please try again later.",
                           status_code=503)

    artwork = Artwork(
        id=artwork_id,
        artist_id=artist_id,
        title=title,
        description=description,
        content_type=content_type,
        svg_data=svg_data if content_type == "svg" else None,
        png_key=png_key,
        png_url=png_url,
        file_size=len(content),
        width=width,
        height=height,
        prompt=prompt,
        model=model,
        tags=tags,
        category=category,
    )
    db.session.add(artwork)
    artist.touch()
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        tracker.release_upload(artist_id, quota.day, len(content))
        raise

    base = current_app.config["BASE_URL"]
    current_app.logger.info('[ARTWORK] "%s" created by %s (%s, %s, %s)',
                            title, artist_name, artwork_id, content_type, format_bytes(len(content)))
    return jsonify({
        "success": True,
        "message": "Artwork created successfully!",
        "artwork": {
            "id": artwork_id,
            "title": title,
            "contentType": content_type,
            "pngUrl": png_url,
            "viewUrl": f"{base}/artwork/{artwork_id}",
            "ogImage": f"{base}/api/og/{artwork_id}.png",
        },
        "quota": quota.to_dict(),
    }), 201


def _get_visible_or_404(artwork_id: str) -> Artwork:
    artwork = db.session.get(Artwork, artwork_id)
    if artwork is None or artwork.archived_at is not None:
        raise NotFound("Artwork not found",
                       f'No artwork exists with ID "{artwork_id}". Browse artworks at GET /api/v1/artworks')
    return artwork


@bp.route("/<artwork_id>", methods=["GET"])
def get_artwork(artwork_id):
    artwork = _get_visible_or_404(artwork_id)

    Artwork.query.filter_by(id=artwork_id).update(
        {Artwork.view_count: Artwork.view_count + 1}, synchronize_session=False
    )
    db.session.commit()
    db.session.refresh(artwork)

    data = artwork.to_dict()
    artist_data = artwork.artist.summary()
    artist_data["bio"] = artwork.artist.bio
    data["artist"] = artist_data
    data["comments"] = [c.to_dict() for c in artwork.comments.limit(COMMENTS_PER_ARTWORK).all()]
    data["_count"] = _counts(artwork)
    return jsonify({"success": True, "artwork": data})


@bp.route("/<artwork_id>", methods=["DELETE"])
@api_key_required
def delete_artwork(artwork_id):
    artist: Artist = g.artist
    artwork = _get_visible_or_404(artwork_id)
    if artwork.artist_id != artist.id:
        raise Forbidden("You can only delete your own artwork",
                        "This artwork belongs to another artist.")

    png_key = artwork.png_key
    artwork.archived_at = datetime.utcnow()
    artist.touch()
    db.session.commit()

    if png_key:
        try:
            get_storage().delete_object(png_key)
        except (StorageNotConfigured, BotoCoreError, ClientError):
            # a obra já está arquivada; o objeto órfão fica só no bucket
            current_app.logger.exception("[ERROR] PNG delete failed for %s (%s)", artwork_id, png_key)

    current_app.logger.info('[ARTWORK] "%s" archived by %s (%s)', artwork.title, artist.name, artwork_id)
    return jsonify({
        "success": True,
        "message": "Artwork deleted",
        "artwork": {"id": artwork.id, "archivedAt": iso(artwork.archived_at)},
    })
