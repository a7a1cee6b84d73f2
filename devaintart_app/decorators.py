# devaintart_app/decorators.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from functools import wraps
from flask import request, g, current_app

from .exceptions import ApiError, Unauthorized
from .models.artist import Artist, API_KEY_PREFIX_LEN


def client_ip() -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("X-Real-IP") or request.remote_addr or "unknown"


def extract_api_key() -> str | None:
    key = request.headers.get("Authorization")
    if key and key.startswith("Bearer "):
        key = key[7:]
    if not key:
        key = request.headers.get("X-API-Key")
    return key or None


def authenticated_artist() -> Artist | None:
    key = extract_api_key()
    if not key:
        return None
    for artist in Artist.query.filter_by(api_key_prefix=key[:API_KEY_PREFIX_LEN]).all():
        if artist.check_api_key(key):
            return artist
    return None


def api_key_required(view_func):
    @wraps(view_func)
    def wrapper(*args, **kwargs):
        artist = authenticated_artist()
        if artist is None:
            current_app.logger.info("[AUTH] Unauthorized %s %s (IP: %s)",
                                    request.method, request.path, client_ip())
            base = current_app.config.get("BASE_URL", "")
            raise Unauthorized(
                "Unauthorized - API key required",
                'Include your API key in the Authorization header: "Authorization: Bearer YOUR_API_KEY"',
                docs=f"{base}/skill.md",
            )
        g.artist = artist
        return view_func(*args, **kwargs)
    return wrapper


def json_body(hint: str) -> dict:
    """Corpo JSON da requisição; 400 "Invalid JSON body" se não for um objeto."""
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ApiError("Invalid JSON body", hint)
    return body


def page_args(default_limit: int = 20, max_limit: int = 50) -> tuple[int, int]:
    """(page, limit) da query string; valores inválidos caem no padrão."""
    def _int(name, default):
        try:
            return int(request.args.get(name, default))
        except (TypeError, ValueError):
            return default
    page = max(1, _int("page", 1))
    limit = min(max(1, _int("limit", default_limit)), max_limit)
    return page, limit
