"""Tests for zip code lookup endpoints (point lookup, name search)."""

from __future__ import annotations

from plz_api import helpers
from plz_proximity.sinks import MemorySink


class TestPointLookup:
    """GET /{zip_code}/{rng} — record with neighbors up to rng km."""

    def test_returns_record(self, client):
        resp = client.get("/10115/10")
        assert resp.status_code == 200
        data = resp.json()
        assert data["zip_code"] == "10115"
        assert data["name"] == "Berlin"
        assert data["lat"] == 52.5323
        assert data["lon"] == 13.3846

    def test_range_filters_neighbors(self, client):
        data = client.get("/10115/10").json()
        assert data["nearest"] == [{"zip_code": "10117", "dist": 2}]

    def test_wider_range(self, client):
        data = client.get("/10115/30").json()
        assert data["nearest"] == [
            {"zip_code": "10117", "dist": 2},
            {"zip_code": "14467", "dist": 26},
        ]

    def test_neighbors_sorted_and_capped(self, client):
        data = client.get("/10115/120.5").json()
        dists = [n["dist"] for n in data["nearest"]]
        assert dists == sorted(dists)
        assert all(d <= 120.5 for d in dists)

    def test_range_beyond_build_threshold_returns_stored_list(self, client, sample_sink):
        data = client.get("/10115/5000").json()
        assert data["nearest"] == sample_sink.get("10115")["nearest"]
        assert all(n["dist"] <= 200 for n in data["nearest"])

    def test_zero_range(self, client):
        assert client.get("/10115/0").json()["nearest"] == []

    def test_leading_zero_zip(self, client):
        resp = client.get("/01067/10")
        assert resp.status_code == 200
        assert resp.json()["nearest"] == [{"zip_code": "01069", "dist": 3}]

    def test_unknown_zip(self, client):
        resp = client.get("/99999/10")
        assert resp.status_code == 404

    def test_negative_range(self, client):
        assert client.get("/10115/-1").status_code == 422

    def test_non_numeric_range(self, client):
        assert client.get("/10115/far").status_code == 422

    def test_repeated_zip_returns_first_row(self, client):
        helpers.set_sink(MemorySink([
            {"zip_code": "99998", "row_num": 1, "name": "Oberdorf", "lat": 50.0, "lon": 10.0},
            {"zip_code": "99998", "row_num": 0, "name": "Unterdorf", "lat": 50.1, "lon": 10.0},
        ]))
        data = client.get("/99998/10").json()
        assert data["name"] == "Unterdorf"
        assert "row_num" not in data

    def test_store_not_mutated_by_filter(self, client, sample_sink):
        before = sample_sink.get("10115")["nearest"]
        client.get("/10115/1")
        assert sample_sink.get("10115")["nearest"] == before


class TestSearch:
    """GET /{search} — up to 5 records by name relevance."""

    def test_best_match_first(self, client):
        resp = client.get("/Berlin")
        assert resp.status_code == 200
        hits = resp.json()
        assert [h["zip_code"] for h in hits[:2]] == ["10115", "10117"]

    def test_neighbors_omitted(self, client):
        for hit in client.get("/Berlin").json():
            assert "nearest" not in hit
            assert set(hit) == {"zip_code", "name", "lat", "lon", "score"}

    def test_umlaut_spelling(self, client):
        hits = client.get("/Muenchen").json()
        assert hits[0]["zip_code"] == "80331"

    def test_at_most_five(self, client):
        helpers.set_sink(MemorySink([
            {"zip_code": f"1{i:04d}", "name": "Berlin", "lat": 52.5, "lon": 13.4, "nearest": []}
            for i in range(8)
        ]))
        assert len(client.get("/Berlin").json()) == 5

    def test_no_match(self, client):
        resp = client.get("/qqqqqq")
        assert resp.status_code == 200
        assert resp.json() == []

    def test_blank_search(self, client):
        assert client.get("/%20").status_code == 400


class TestMissingSegments:
    def test_root_is_bad_request(self, client):
        resp = client.get("/")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Bad Request"


class TestNoStore:
    def test_503_without_store(self, client):
        helpers.set_sink(None)
        assert client.get("/10115/10").status_code == 503
        assert client.get("/Berlin").status_code == 503
