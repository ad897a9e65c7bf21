"""Page-navigation guard."""

import pytest

from dealership_platform.api.middleware import (
    ADMIN_REQUIRED,
    AUTH_PAGE,
    PRINCIPAL_REQUIRED,
    PUBLIC,
    classify_path,
    decide,
    is_excluded,
)
from dealership_platform.models import Principal

ADMIN = Principal(user_id="a", email="admin@example.com", role="admin")
USER = Principal(user_id="u", email="buyer@example.com", role="user")


class TestClassification:
    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/login", AUTH_PAGE),
            ("/signup", AUTH_PAGE),
            ("/home", PRINCIPAL_REQUIRED),
            ("/car", PRINCIPAL_REQUIRED),
            ("/car/123", PRINCIPAL_REQUIRED),
            ("/careers", PUBLIC),
            ("/dashboard", ADMIN_REQUIRED),
            ("/dashboard/listed-cars/9", ADMIN_REQUIRED),
            ("/dashboards", PUBLIC),
            ("/", PUBLIC),
            ("/browse", PUBLIC),
            ("/login/help", PUBLIC),
        ],
    )
    def test_classify(self, path, expected):
        assert classify_path(path) == expected

    @pytest.mark.parametrize(
        "path", ["/api", "/api/cars", "/static/app.js", "/media/car-images/u/a.png", "/favicon.ico", "/logo.svg", "/x/Y.PNG"]
    )
    def test_excluded(self, path):
        assert is_excluded(path)

    @pytest.mark.parametrize("path", ["/apiary", "/home", "/dashboard"])
    def test_not_excluded(self, path):
        assert not is_excluded(path)


class TestDecisionTable:
    @pytest.mark.parametrize(
        "principal,target,location",
        [
            (None, PRINCIPAL_REQUIRED, "/login"),
            (None, ADMIN_REQUIRED, "/login"),
            (None, PUBLIC, None),
            (None, AUTH_PAGE, None),
            (USER, ADMIN_REQUIRED, "/home"),
            (USER, AUTH_PAGE, "/home"),
            (USER, PRINCIPAL_REQUIRED, None),
            (USER, PUBLIC, None),
            (ADMIN, AUTH_PAGE, "/dashboard"),
            (ADMIN, ADMIN_REQUIRED, None),
            (ADMIN, PRINCIPAL_REQUIRED, None),
            (ADMIN, PUBLIC, None),
        ],
    )
    def test_decide(self, principal, target, location):
        assert decide(principal, target) == location


class TestGuardMiddleware:
    def _get(self, client, path):
        return client.get(path, follow_redirects=False)

    def test_anonymous_protected_page_redirects_to_login(self, client):
        assert self._get(client, "/dashboard").headers["location"] == "/login"
        assert self._get(client, "/home").headers["location"] == "/login"
        resp = self._get(client, "/dashboard/inquiries?tab=open")
        assert resp.status_code == 307
        assert resp.headers["location"] == "/login"

    def test_anonymous_public_page_passes_through(self, client):
        # No frontend mounted in tests, so a passed-through page is a 404.
        assert self._get(client, "/careers").status_code == 404
        assert self._get(client, "/login").status_code == 404

    def test_user_is_kept_out_of_dashboard(self, client, user_token):
        client.cookies.set("dp_token", user_token)
        resp = self._get(client, "/dashboard")
        assert resp.status_code == 307
        assert resp.headers["location"] == "/home"
        assert self._get(client, "/car/42").status_code == 404

    def test_signed_in_users_skip_auth_pages(self, client, user_token, admin_token):
        client.cookies.set("dp_token", user_token)
        assert self._get(client, "/signup").headers["location"] == "/home"

        client.cookies.set("dp_token", admin_token)
        assert self._get(client, "/login").headers["location"] == "/dashboard"
        assert self._get(client, "/dashboard").status_code == 404

    def test_bad_cookie_is_anonymous(self, client):
        client.cookies.set("dp_token", "garbage")
        assert self._get(client, "/home").headers["location"] == "/login"
        assert self._get(client, "/login").status_code == 404

    def test_lookup_failure_is_anonymous(self, client, user_token, monkeypatch):
        def _no_driver(dsn):
            raise RuntimeError("Postgres selected but psycopg2 is not installed.")

        monkeypatch.setattr("dealership_platform.auth.deps.connect", _no_driver)
        client.cookies.set("dp_token", user_token)
        resp = self._get(client, "/home")
        assert resp.status_code == 307
        assert resp.headers["location"] == "/login"
        assert self._get(client, "/login").status_code == 404

    def test_bearer_header_does_not_count_for_pages(self, client, user_token):
        resp = client.get("/home", headers={"Authorization": f"Bearer {user_token}"}, follow_redirects=False)
        assert resp.status_code == 307

    def test_api_is_never_redirected(self, client):
        assert self._get(client, "/api/health").json() == {"status": "ok"}
        assert self._get(client, "/api/auth/me").status_code == 401


class TestFrontendMount:
    def test_allowed_pages_are_served(self, tmp_path, cfg):
        from dataclasses import replace

        from fastapi.testclient import TestClient

        from dealership_platform.api.server import create_app

        site = tmp_path / "site"
        (site / "home").mkdir(parents=True)
        (site / "index.html").write_text("<h1>landing</h1>")
        (site / "home" / "index.html").write_text("<h1>home</h1>")

        app = create_app(replace(cfg, FRONTEND_DIR=str(site)))
        with TestClient(app) as c:
            assert c.get("/").text == "<h1>landing</h1>"
            assert c.get("/home", follow_redirects=False).status_code == 307
            assert c.get("/api/health").status_code == 200
