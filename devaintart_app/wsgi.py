# devaintart_app/wsgi.py
# -*- coding: utf-8 -*-
from devaintart_app import create_app

app = create_app()
