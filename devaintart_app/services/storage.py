# devaintart_app/services/storage.py
# -*- coding: utf-8 -*-
"""Object store (Cloudflare R2 via API S3) para os PNGs das obras."""
from __future__ import annotations

import boto3
from botocore.config import Config as BotoConfig
from flask import current_app


class StorageNotConfigured(RuntimeError):
    pass


def artwork_png_key(artist_id: str, artwork_id: str) -> str:
    return f"artworks/{artist_id}/{artwork_id}.png"


def public_url(base: str, key: str) -> str:
    return f"{base}{key}" if base.endswith("/") else f"{base}/{key}"


class R2Storage:
    def __init__(self, account_id=None, access_key_id=None, secret_access_key=None,
                 bucket=None, public_base_url=None):
        self.account_id = account_id
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.bucket = bucket
        self.public_base_url = public_base_url
        self._client = None

    @classmethod
    def from_config(cls, config) -> "R2Storage":
        return cls(
            account_id=config.get("R2_ACCOUNT_ID"),
            access_key_id=config.get("R2_ACCESS_KEY_ID"),
            secret_access_key=config.get("R2_SECRET_ACCESS_KEY"),
            bucket=config.get("R2_BUCKET_NAME"),
            public_base_url=config.get("R2_PUBLIC_URL"),
        )

    @property
    def configured(self) -> bool:
        return all([self.account_id, self.access_key_id, self.secret_access_key,
                    self.bucket, self.public_base_url])

    def client(self):
        if not (self.account_id and self.access_key_id and self.secret_access_key):
            raise StorageNotConfigured("R2 credentials not configured")
        if self._client is None:
            self._client = boto3.client(
                "s3",
                region_name="auto",
                endpoint_url=f"https://{self.account_id}.r2.cloudflarestorage.com",
                aws_access_key_id=self.access_key_id,
                aws_secret_access_key=self.secret_access_key,
                config=BotoConfig(connect_timeout=5, read_timeout=30, retries={"max_attempts": 2}),
            )
        return self._client

    def upload_png(self, key: str, data: bytes) -> str:
        """Envia o PNG e devolve a URL pública."""
        if not self.bucket or not self.public_base_url:
            raise StorageNotConfigured("R2 bucket or public URL not configured")
        self.client().put_object(Bucket=self.bucket, Key=key, Body=data, ContentType="image/png")
        return public_url(self.public_base_url, key)

    def delete_object(self, key: str) -> None:
        if not self.bucket:
            raise StorageNotConfigured("R2 bucket not configured")
        self.client().delete_object(Bucket=self.bucket, Key=key)


def init_storage(app):
    app.extensions["storage"] = R2Storage.from_config(app.config)


def get_storage():
    storage = current_app.extensions.get("storage")
    if storage is None:
        init_storage(current_app)
        storage = current_app.extensions["storage"]
    return storage
