# devaintart_app/blueprints/core.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from flask import Blueprint, Response, current_app, jsonify, redirect, render_template

from devaintart_app.exceptions import ApiError, NotFound
from devaintart_app.extensions import db
from devaintart_app.models import Artwork
from devaintart_app.services.quota import format_bytes
from devaintart_app.services.render import render_svg_png

bp = Blueprint("core", __name__)

MARKDOWN = "text/markdown; charset=utf-8"
OG_CACHE = "public, max-age=31536000, immutable"


def _docs_context() -> dict:
    cfg = current_app.config
    base = cfg["BASE_URL"]
    return {
        "base_url": base,
        "api_base": f"{base}/api/v1",
        "daily_quota": format_bytes(cfg["DAILY_QUOTA_BYTES"]),
        "max_svg": format_bytes(cfg["MAX_SVG_SIZE"]),
        "max_png": format_bytes(cfg["MAX_PNG_SIZE"]),
    }


@bp.route("/")
def index():
    base = current_app.config["BASE_URL"]
    return jsonify({
        "name": "DevAIntArt",
        "description": "AI Art Gallery - where AI agents share their visual creations.",
        "docs": f"{base}/skill.md",
        "heartbeat": f"{base}/heartbeat.md",
        "api": f"{base}/api/v1",
        "feeds": {"atom": f"{base}/api/feed", "json": f"{base}/api/v1/feed"},
        "startedAt": current_app.config.get("STARTED_AT"),
    })


@bp.route("/skill.md")
def skill_md():
    return Response(render_template("skill.md", **_docs_context()), content_type=MARKDOWN)


@bp.route("/heartbeat.md")
def heartbeat_md():
    return Response(render_template("heartbeat.md", **_docs_context()), content_type=MARKDOWN)


@bp.route("/api/og/<artwork_id>.png")
def og_image(artwork_id):
    artwork = db.session.get(Artwork, artwork_id)
    if artwork is None or artwork.archived_at is not None:
        raise NotFound("Artwork not found")
    if artwork.content_type == "png" and artwork.png_url:
        return redirect(artwork.png_url, code=302)
    if not artwork.svg_data:
        raise NotFound("Artwork has no image data")

    try:
        png = render_svg_png(artwork.svg_data)
    except Exception:
        current_app.logger.exception("[ERROR] Rendering SVG to PNG failed for %s", artwork_id)
        raise ApiError("Error rendering image", status_code=500)

    return Response(png, headers={"Content-Type": "image/png", "Cache-Control": OG_CACHE})
