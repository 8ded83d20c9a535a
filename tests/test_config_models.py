"""Tests for provider and cookie configuration models."""

import pytest
from pydantic import ValidationError

from oauth2_strategy.models.config import (
    FlowCookieSettings,
    PassThroughPolicy,
    ProviderConfig,
)

from conftest import COOKIE_SECRET


class TestProviderConfig:
    def setup_method(self):
        self.base = dict(
            authorization_endpoint="https://auth.example.com/authorize",
            token_endpoint="https://auth.example.com/oauth/token",
            client_id="client",
            client_secret="secret",
            redirect_uri="https://myapp.com/callback",
        )

    @pytest.mark.parametrize(
        "url",
        [
            "https://auth.example.com/authorize",
            "http://localhost:8080/authorize",
            "http://127.0.0.1/authorize",
        ],
    )
    def test_accepts_https_and_localhost(self, url):
        config = ProviderConfig(**{**self.base, "authorization_endpoint": url})

        assert config.authorization_endpoint == url

    @pytest.mark.parametrize(
        "field, url",
        [
            ("authorization_endpoint", "http://auth.example.com/authorize"),
            ("token_endpoint", "/oauth/token"),
            ("redirect_uri", "ftp://myapp.com/callback"),
        ],
    )
    def test_rejects_insecure_or_relative_urls(self, field, url):
        with pytest.raises(ValidationError):
            ProviderConfig(**{**self.base, field: url})

    def test_client_id_is_required(self):
        with pytest.raises(ValidationError):
            ProviderConfig(**{**self.base, "client_id": ""})

    def test_secret_is_hidden(self):
        config = ProviderConfig(**self.base)

        assert "secret" not in repr(config.client_secret)
        assert config.client_secret.get_secret_value() == "secret"

    def test_config_is_frozen(self):
        config = ProviderConfig(**self.base)

        with pytest.raises(ValidationError):
            config.client_id = "other"

    def test_resolve_scopes(self):
        config = ProviderConfig(**self.base, scopes=["openid", "email"])

        assert config.resolve_scopes() == ("openid", "email")
        assert config.resolve_scopes([]) == ("openid", "email")
        assert config.resolve_scopes(["custom"]) == ("custom",)

    def test_resolve_extra_params_drops_unset_values(self):
        config = ProviderConfig(
            **self.base,
            extra_params=lambda config, params: {"a": "1", "b": None, "c": ""},
        )

        assert config.resolve_extra_params({}) == {"a": "1"}


class TestPassThroughPolicy:
    PARAMS = [("test", "1"), ("ui_locales", "fr"), ("test", "2")]

    def test_allow_all_keeps_last_value(self):
        assert PassThroughPolicy.allow_all().select(self.PARAMS) == {
            "test": "2",
            "ui_locales": "fr",
        }

    def test_deny_all(self):
        assert PassThroughPolicy.deny_all().select(self.PARAMS) == {}

    def test_allow_only(self):
        policy = PassThroughPolicy.allow_only(["ui_locales"])

        assert policy.select(self.PARAMS) == {"ui_locales": "fr"}


class TestFlowCookieSettings:
    def test_defaults(self):
        settings = FlowCookieSettings(secret=COOKIE_SECRET)

        assert settings.name is None
        assert settings.path == "/"
        assert settings.max_age == 300
        assert settings.secure is None

    def test_lifetime_must_be_positive(self):
        with pytest.raises(ValidationError):
            FlowCookieSettings(secret=COOKIE_SECRET, max_age=0)
