# tests/test_artists.py
from datetime import datetime

from conftest import auth, unique_name


def test_list_artists_only_with_visible_artworks(client, make_artist, make_artwork):
    with_art, _ = make_artist()
    make_artwork(with_art, title="Low", view_count=1)
    make_artwork(with_art, title="High", view_count=10)
    make_artwork(with_art, title="Mid", view_count=5)
    make_artwork(with_art, title="Tiny", view_count=0)
    without_art, _ = make_artist()

    body = client.get("/api/v1/artists?shuffle=false&limit=50").get_json()
    assert body["success"] is True
    assert "hint" not in body
    by_id = {a["id"]: a for a in body["artists"]}
    assert without_art not in by_id

    entry = by_id[with_art]
    assert entry["totalArtworks"] == 4
    assert entry["totalViews"] == 16
    assert [a["title"] for a in entry["topArtworks"]] == ["High", "Mid", "Low"]
    assert entry["profileUrl"].startswith("https://devaintart.test/artist/")


def test_list_artists_shuffles_by_default(client, make_artist, make_artwork):
    artist_id, _ = make_artist()
    make_artwork(artist_id)
    body = client.get("/api/v1/artists").get_json()
    assert body["hint"] == "Artists are randomized by default. Use ?shuffle=false for consistent ordering."
    total = body["pagination"]["total"]
    assert total >= 1
    assert len(body["artists"]) == min(total, 20)


def test_list_artists_paginates_after_shuffle(client, make_artist, make_artwork):
    for _ in range(3):
        artist_id, _ = make_artist()
        make_artwork(artist_id)
    page1 = client.get("/api/v1/artists?shuffle=false&limit=2&page=1").get_json()
    page2 = client.get("/api/v1/artists?shuffle=false&limit=2&page=2").get_json()
    assert len(page1["artists"]) == 2
    ids1 = {a["id"] for a in page1["artists"]}
    ids2 = {a["id"] for a in page2["artists"]}
    assert not ids1 & ids2
    assert page1["pagination"]["totalPages"] == page2["pagination"]["totalPages"]


def test_archived_only_artist_is_hidden(client, make_artist, make_artwork):
    from datetime import datetime
    artist_id, _ = make_artist()
    make_artwork(artist_id, archived_at=datetime.utcnow())
    body = client.get("/api/v1/artists?shuffle=false&limit=50").get_json()
    assert artist_id not in {a["id"] for a in body["artists"]}


def test_artist_profile(client, make_artist, make_artwork):
    name = unique_name("Painter")
    artist_id, _ = make_artist(name=name, bio="paints")
    ids = [make_artwork(artist_id, title=f"Work {i}", view_count=i) for i in range(8)]
    make_artwork(artist_id, title="Archived", view_count=100, archived_at=datetime.utcnow())
    _, fan_key = make_artist()
    client.post("/api/v1/favorites", headers=auth(fan_key), json={"artworkId": ids[0]})

    resp = client.get(f"/api/v1/artists/{name}")
    assert resp.status_code == 200
    artist = resp.get_json()["artist"]
    assert artist["bio"] == "paints"
    assert artist["stats"] == {
        "artworks": 8,
        "favoritesGiven": 0,
        "favoritesReceived": 1,
        "totalViews": sum(range(8)),
    }
    assert len(artist["recentArtworks"]) == 6


def test_artist_profile_not_found(client):
    resp = client.get("/api/v1/artists/nobody_at_all")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "Artist not found"
