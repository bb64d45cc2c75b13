"""Tests for auth.oauth claim extraction and URL helpers."""

from __future__ import annotations

import pytest

from auth import oauth
from core.config import Settings


def _settings(**overrides) -> Settings:
    values = {"SECRET_KEY": "s" * 40, "auth0_base_url": "https://tracker.example"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestGetOauthUserClaims:
    def test_returns_userinfo(self):
        claims = oauth.get_oauth_user_claims({"userinfo": {"sub": "auth0|1", "email": "a@example.com"}})
        assert claims == {"sub": "auth0|1", "email": "a@example.com"}

    def test_missing_userinfo(self):
        with pytest.raises(ValueError, match="no userinfo"):
            oauth.get_oauth_user_claims({"access_token": "x"})

    def test_missing_sub(self):
        with pytest.raises(ValueError, match="missing sub"):
            oauth.get_oauth_user_claims({"userinfo": {"email": "a@example.com"}})


class TestUrls:
    def test_callback_url(self, monkeypatch):
        monkeypatch.setattr(oauth, "get_settings", lambda: _settings(auth0_base_url="https://tracker.example/"))
        assert oauth.callback_url() == "https://tracker.example/callback"

    def test_logout_url_without_oidc(self, monkeypatch):
        monkeypatch.setattr(oauth, "get_settings", lambda: _settings())
        assert oauth.build_logout_url() == "https://tracker.example/"

    def test_logout_url_ends_provider_session(self, monkeypatch):
        cfg = _settings(auth0_client_id="abc", auth0_issuer_base_url="https://tenant.auth0.com/")
        monkeypatch.setattr(oauth, "get_settings", lambda: cfg)
        url = oauth.build_logout_url()
        assert url.startswith("https://tenant.auth0.com/v2/logout?")
        assert "client_id=abc" in url
        assert "returnTo=https%3A%2F%2Ftracker.example%2F" in url

    def test_logout_url_local_only_when_disabled(self, monkeypatch):
        cfg = _settings(
            auth0_client_id="abc",
            auth0_issuer_base_url="https://tenant.auth0.com",
            auth0_logout=False,
        )
        monkeypatch.setattr(oauth, "get_settings", lambda: cfg)
        assert oauth.build_logout_url() == "https://tracker.example/"
