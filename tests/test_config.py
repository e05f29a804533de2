"""
Tests for environment-driven settings.
"""

import pytest

from snappwd.config import MIN_BODY_LIMIT_BYTES, Settings, load_settings


class TestSettings:

    def test_defaults(self):
        settings = load_settings({})
        assert settings.redis_url == "redis://127.0.0.1:6379"
        assert settings.port == 8080
        assert settings.min_expiration_seconds == 60
        assert settings.max_expiration_seconds == 604800
        assert settings.max_file_size_bytes == 2 * 1024 * 1024
        assert settings.cors_allow_origins == ["*"]

    def test_environment_overrides(self):
        settings = load_settings({
            "REDIS_URL": "redis://cache:6379/2",
            "PORT": "9000",
            "MAX_FILE_SIZE_MB": "5",
            "MIN_EXPIRATION_SECONDS": "30",
            "MAX_EXPIRATION_SECONDS": "86400",
            "CORS_ALLOW_ORIGINS": "https://a.example, https://b.example",
            "LOG_LEVEL": "debug",
        })
        assert settings.redis_url == "redis://cache:6379/2"
        assert settings.port == 9000
        assert settings.max_file_size_mb == 5
        assert settings.min_expiration_seconds == 30
        assert settings.max_expiration_seconds == 86400
        assert settings.cors_allow_origins == ["https://a.example", "https://b.example"]
        assert settings.log_level == "DEBUG"

    def test_invalid_number_falls_back(self):
        settings = load_settings({"MAX_FILE_SIZE_MB": "lots", "REDIS_SOCKET_TIMEOUT": "soon"})
        assert settings.max_file_size_mb == 2
        assert settings.redis_socket_timeout == 5.0

    def test_inverted_range_rejected(self):
        with pytest.raises(ValueError):
            Settings(min_expiration_seconds=600, max_expiration_seconds=60)

    def test_non_positive_minimum_rejected(self):
        with pytest.raises(ValueError):
            Settings(min_expiration_seconds=0)

    @pytest.mark.parametrize("min_ttl,max_ttl", [(60, 604800), (1, 10), (300, 300)])
    def test_expiration_bounds_are_inclusive(self, min_ttl, max_ttl):
        settings = Settings(min_expiration_seconds=min_ttl, max_expiration_seconds=max_ttl)
        assert settings.expiration_allowed(min_ttl)
        assert settings.expiration_allowed(max_ttl)
        assert not settings.expiration_allowed(min_ttl - 1)
        assert not settings.expiration_allowed(max_ttl + 1)

    def test_body_limit(self):
        assert Settings(max_file_size_mb=1).body_limit_bytes == MIN_BODY_LIMIT_BYTES
        assert Settings(max_file_size_mb=20).body_limit_bytes == 40 * 1024 * 1024

    def test_encoded_size_limit(self):
        settings = Settings(max_file_size_mb=2)
        limit = 2 * 1024 * 1024 * 4 // 3 + 4
        assert settings.encoded_size_allowed(limit)
        assert not settings.encoded_size_allowed(limit + 1)
