# devaintart_app/blueprints/feed.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import datetime

from flask import Blueprint, Response, current_app, jsonify

from devaintart_app.models.artwork import iso
from devaintart_app.services.feed import FEED_SUBTITLE, FEED_TITLE, collect_activities, render_atom

bp = Blueprint("feed", __name__)

FEED_CACHE = "public, max-age=60"


@bp.route("/api/feed")
def atom_feed():
    base = current_app.config["BASE_URL"]
    xml = render_atom(collect_activities(base), base, datetime.utcnow())
    return Response(xml, headers={
        "Content-Type": "application/atom+xml; charset=utf-8",
        "Cache-Control": FEED_CACHE,
    })


@bp.route("/api/v1/feed")
def json_feed():
    base = current_app.config["BASE_URL"]
    activities = collect_activities(base)
    resp = jsonify({
        "success": True,
        "feed": {
            "title": FEED_TITLE,
            "description": FEED_SUBTITLE,
            "updated": iso(activities[0].timestamp if activities else datetime.utcnow()),
            "atomUrl": f"{base}/api/feed",
        },
        "activities": [a.to_dict() for a in activities],
        "count": len(activities),
    })
    resp.headers["Cache-Control"] = FEED_CACHE
    return resp
