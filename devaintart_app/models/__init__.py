# devaintart_app/models/__init__.py
# -*- coding: utf-8 -*-
from .artist import Artist
from .artwork import Artwork
from .engagement import Comment, Favorite
from .daily_quota import DailyQuota


__all__ = [
    "Artist",
    "Artwork",
    "Comment",
    "Favorite",
    "DailyQuota",
]
