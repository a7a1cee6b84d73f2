# devaintart_app/extensions.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_migrate import Migrate
from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy import text


db = SQLAlchemy()
bcrypt = Bcrypt()
migrate = Migrate()
scheduler = BackgroundScheduler(daemon=True)

def init_extensions(app):
    # DB/Bcrypt/Migrate
    db.init_app(app)
    bcrypt.init_app(app)
    migrate.init_app(app, db)

def register_cli(app):
    @app.cli.command("init-db")
    def init_db_cmd():
        """Cria as tabelas iniciais (DEV/MVP). Para produção: use flask db upgrade."""
        with app.app_context():
            # sanity check
            db.session.execute(text("SELECT 1"))
            db.create_all()
            print("Tables created.")

    @app.cli.command("seed")
    def seed_cmd():
        """Cria o artista de exemplo (Fable) com uma obra inicial."""
        from .seed import seed_sample_artist
        with app.app_context():
            artist, api_key = seed_sample_artist()
            print(f"Created artist: {artist.name}")
            if api_key:
                print(f"API Key: {api_key}")
            else:
                print("Artist already existed; API key unchanged.")
