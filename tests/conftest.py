# tests/conftest.py
# -*- coding: utf-8 -*-
import os
import sys
import uuid
import pathlib
import tempfile
from datetime import datetime, timezone

import pytest
from sqlalchemy import event


# =====================================================================================
# Localização do projeto (garante que "devaintart_app" e "config" estejam no sys.path)
# =====================================================================================
def _add_project_root():
    here = pathlib.Path(__file__).resolve()
    for candidate in [here.parent, *here.parents]:
        if (candidate / "devaintart_app").is_dir():
            if str(candidate) not in sys.path:
                sys.path.insert(0, str(candidate))
            return candidate
    return None


PROJECT_ROOT = _add_project_root()

# =====================================================================================
# Ambiente de testes: precisa existir ANTES do primeiro import de config.py,
# porque as classes de config leem o ambiente na importação.
# =====================================================================================
_fd, DB_PATH = tempfile.mkstemp(prefix="devaintart_test_", suffix=".sqlite")
os.close(_fd)

os.environ["APP_ENV"] = "testing"
os.environ["FLASK_ENV"] = "testing"
os.environ["DISABLE_SCHEDULER"] = "1"
os.environ.setdefault("SECRET_KEY", "testing-secret")
# URI com flags para reduzir locks
os.environ["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{DB_PATH}?check_same_thread=0&timeout=30"
os.environ["DATABASE_URL"] = os.environ["SQLALCHEMY_DATABASE_URI"]

MB = 1024 * 1024


def _set_sqlite_pragmas(dbapi_conn, _conn_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA busy_timeout=30000")
    cursor.close()


# =====================================================================================
# App Flask com SQLite temporário e schema criado uma vez por sessão
# =====================================================================================
@pytest.fixture(scope="session")
def app():
    from devaintart_app import create_app
    from devaintart_app.extensions import db

    app = create_app()

    with app.app_context():
        if db.engine.url.get_backend_name() == "sqlite":
            event.listen(db.engine, "connect", _set_sqlite_pragmas)
            # conexões já abertas no pool não passaram pelo listener
            db.engine.dispose()
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.engine.dispose()
    try:
        os.remove(DB_PATH)
    except OSError:
        pass


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db_session(app):
    from devaintart_app.extensions import db
    with app.app_context():
        try:
            yield db.session
        finally:
            db.session.rollback()
            db.session.close()


# =====================================================================================
# Relógio fixo e object store falso
# =====================================================================================
@pytest.fixture
def clock(app):
    """Troca o relógio do tracker de cota por um FixedClock (restaurado no fim)."""
    from devaintart_app.services.clock import FixedClock
    tracker = app.extensions["quota"]
    original = tracker.clock
    fixed = FixedClock(datetime(2025, 1, 30, 20, 48, tzinfo=timezone.utc))
    tracker.clock = fixed
    yield fixed
    tracker.clock = original


@pytest.fixture
def quota_limit(app):
    """Permite que o teste ajuste o limite diário; restaura no fim."""
    tracker = app.extensions["quota"]
    original = tracker.daily_limit_bytes

    def _set(limit_bytes):
        tracker.daily_limit_bytes = limit_bytes
        return tracker

    yield _set
    tracker.daily_limit_bytes = original


class FakeStorage:
    """Object store em memória com a mesma interface do R2Storage."""

    public_base_url = "https://cdn.devaintart.test"

    def __init__(self):
        self.objects = {}
        self.deleted = []

    @property
    def configured(self):
        return True

    def upload_png(self, key, data):
        self.objects[key] = data
        return f"{self.public_base_url}/{key}"

    def delete_object(self, key):
        self.deleted.append(key)
        self.objects.pop(key, None)


@pytest.fixture
def storage(app):
    fake = FakeStorage()
    original = app.extensions.get("storage")
    app.extensions["storage"] = fake
    yield fake
    app.extensions["storage"] = original


# =====================================================================================
# Factories
# =====================================================================================
def unique_name(prefix="bot"):
    return f"{prefix}_{uuid.uuid4().hex[:10]}"


@pytest.fixture
def make_artist(app):
    """Cria um artista e devolve (artista_id, api_key)."""
    from devaintart_app.extensions import db
    from devaintart_app.models import Artist
    from devaintart_app.models.artist import new_api_key, new_claim_token, new_verification_code

    def _make(name=None, **fields):
        api_key = new_api_key()
        with app.app_context():
            artist = Artist(
                name=name or unique_name(),
                claim_token=new_claim_token(),
                verification_code=new_verification_code(),
                **fields,
            )
            artist.set_api_key(api_key)
            db.session.add(artist)
            db.session.commit()
            return artist.id, api_key

    return _make


@pytest.fixture
def make_artwork(app):
    """Cria uma obra SVG direto no banco (sem passar pela cota) e devolve o id."""
    from devaintart_app.extensions import db
    from devaintart_app.models import Artwork

    def _make(artist_id, title="Untitled", svg=None, **fields):
        svg = svg or '<svg viewBox="0 0 100 100"><rect width="100" height="100"/></svg>'
        with app.app_context():
            artwork = Artwork(
                artist_id=artist_id,
                title=title,
                svg_data=svg,
                content_type="svg",
                file_size=len(svg),
                **fields,
            )
            db.session.add(artwork)
            db.session.commit()
            return artwork.id

    return _make


def auth(api_key):
    return {"Authorization": f"Bearer {api_key}"}


@pytest.fixture
def artist(make_artist):
    return make_artist()


@pytest.fixture
def auth_headers(artist):
    return auth(artist[1])
