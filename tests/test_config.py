"""Tests for settings loading and database URL handling."""

from bardeals.config import DEFAULT_ORIGINS, NOMINATIM_SEARCH_URL, load_settings
from bardeals.db import normalize_db_url


class TestLoadSettings:
    """Tests for load_settings()."""

    def test_defaults(self):
        s = load_settings({})
        assert s.admin_token == ""
        assert s.cors_origins == DEFAULT_ORIGINS
        assert s.geocoder_url == NOMINATIM_SEARCH_URL
        assert s.timezone == "America/New_York"
        assert s.port == 5000
        assert s.auto_migrate is False

    def test_from_env(self):
        s = load_settings({
            "DATABASE_URL": "postgres://u:p@db/deals",
            "ADMIN_TOKEN": " tok ",
            "FRONTEND_ORIGIN": "https://deals.example/",
            "EXTRA_CORS_ORIGINS": "https://a.example, https://deals.example",
            "GEOCODER_TIMEOUT": "2.5",
            "EVENTS_TIMEZONE": "America/Chicago",
            "AUTO_MIGRATE": "1",
            "PORT": "8080",
        })
        assert s.database_url == "postgres://u:p@db/deals"
        assert s.admin_token == "tok"
        assert s.cors_origins == ("https://deals.example", "https://a.example")
        assert s.geocoder_timeout == 2.5
        assert s.timezone == "America/Chicago"
        assert s.auto_migrate is True
        assert s.port == 8080

    def test_wildcard_origin(self):
        assert load_settings({"EXTRA_CORS_ORIGINS": "*"}).cors_origins == ("*",)


class TestNormalizeDbUrl:
    """Tests for normalize_db_url()."""

    def test_postgres_scheme(self):
        assert normalize_db_url("postgres://h/db") == "postgresql+psycopg2://h/db"

    def test_postgresql_scheme(self):
        assert normalize_db_url("postgresql://h/db") == "postgresql+psycopg2://h/db"

    def test_other_urls_untouched(self):
        assert normalize_db_url("sqlite://") == "sqlite://"
