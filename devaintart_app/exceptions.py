# devaintart_app/exceptions.py
# -*- coding: utf-8 -*-
"""
Erros da API do DevAIntArt.

ApiError leva o status HTTP e o par `error`/`hint` das respostas JSON;
quem renderiza é a factory da app. QuotaExceeded é a falha de negócio
recuperável (HTTP 429).
"""
from __future__ import annotations


class ApiError(Exception):
    """Requisição recusada com mensagem para o cliente."""

    status_code = 400

    def __init__(self, error: str, hint: str | None = None, status_code: int | None = None, **extra):
        super().__init__(error)
        self.error = error
        self.hint = hint
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.error}
        if self.hint:
            body["hint"] = self.hint
        body.update(self.extra)
        return body


class Unauthorized(ApiError):
    status_code = 401


class Forbidden(ApiError):
    status_code = 403


class NotFound(ApiError):
    status_code = 404


class Conflict(ApiError):
    status_code = 409


class QuotaExceeded(ApiError):
    """Upload passaria do limite diário de bytes do artista."""

    status_code = 429

    def __init__(self, used_bytes: int, limit_bytes: int, attempted_bytes: int,
                 reset_time: str, hint: str, quota_info: dict | None = None):
        super().__init__("Daily upload quota exceeded", hint)
        self.used_bytes = used_bytes
        self.limit_bytes = limit_bytes
        self.attempted_bytes = attempted_bytes
        self.reset_time = reset_time
        self.quota_info = quota_info or {}

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["quota"] = self.quota_info
        body["attemptedBytes"] = self.attempted_bytes
        return body
