"""Saved listings: /api/bookmarks (Bearer or session cookie)."""

from conftest import bearer


class TestBookmarks:
    def test_add_list_remove(self, client, user_token, make_car):
        car = make_car()
        resp = client.post("/api/bookmarks", json={"car_id": car["id"]}, headers=bearer(user_token))
        assert resp.status_code == 201
        assert resp.json()["car_id"] == car["id"]

        body = client.get("/api/bookmarks", headers=bearer(user_token)).json()
        assert body["car_ids"] == [car["id"]]
        assert body["cars"][0]["brand"] == car["brand"]

        resp = client.delete(f"/api/bookmarks/{car['id']}", headers=bearer(user_token))
        assert resp.status_code == 200
        assert client.get("/api/bookmarks", headers=bearer(user_token)).json()["car_ids"] == []

    def test_add_is_idempotent(self, client, user_token, make_car):
        car = make_car()
        for _ in range(2):
            resp = client.post("/api/bookmarks", json={"car_id": car["id"]}, headers=bearer(user_token))
            assert resp.status_code == 201
        assert client.get("/api/bookmarks", headers=bearer(user_token)).json()["car_ids"] == [car["id"]]

    def test_remove_missing_pair_is_noop(self, client, user_token):
        resp = client.delete("/api/bookmarks/never-saved", headers=bearer(user_token))
        assert resp.status_code == 200

    def test_bookmarks_are_per_user(self, client, user_token, other_user_token, make_car):
        car = make_car()
        client.post("/api/bookmarks", json={"car_id": car["id"]}, headers=bearer(user_token))
        assert client.get("/api/bookmarks", headers=bearer(other_user_token)).json()["car_ids"] == []

    def test_unknown_car_is_404(self, client, user_token):
        resp = client.post("/api/bookmarks", json={"car_id": "missing"}, headers=bearer(user_token))
        assert resp.status_code == 404
        assert resp.json() == {"error": "Car not found"}

    def test_car_id_required(self, client, user_token):
        resp = client.post("/api/bookmarks", json={}, headers=bearer(user_token))
        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing required field: car_id"}

    def test_session_cookie_is_accepted(self, client, user_token, make_car):
        car = make_car()
        client.cookies.set("dp_token", user_token)
        assert client.post("/api/bookmarks", json={"car_id": car["id"]}).status_code == 201
        assert client.get("/api/bookmarks").json()["car_ids"] == [car["id"]]

    def test_anonymous_is_401(self, client):
        assert client.get("/api/bookmarks").status_code == 401
        assert client.post("/api/bookmarks", json={"car_id": "x"}).status_code == 401

    def test_deleting_car_drops_bookmark(self, client, user_token, admin_token, make_car):
        car = make_car()
        client.post("/api/bookmarks", json={"car_id": car["id"]}, headers=bearer(user_token))
        client.delete(f"/api/cars/{car['id']}", headers=bearer(admin_token))
        assert client.get("/api/bookmarks", headers=bearer(user_token)).json()["car_ids"] == []
