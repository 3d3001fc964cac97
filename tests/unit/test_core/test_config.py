"""Unit tests for application settings."""

import pytest
from pydantic import ValidationError

from gig_api.core.config import Settings

BASE = {"database_url": "postgresql+asyncpg://u:p@localhost/gig", "jwt_secret_key": "k" * 32}


class TestSettings:
    def test_fraud_defaults(self) -> None:
        settings = Settings(**BASE)
        assert settings.fraud_detection_enabled is True
        assert settings.fraud_behavior_sample_rate == 0.1
        assert settings.fraud_high_value_amount == 50000.0
        assert settings.fraud_escalation_enabled is True
        assert settings.fraud_verified_dampening_enabled is False
        assert settings.debug is False

    @pytest.mark.parametrize("rate", [-0.1, 1.5])
    def test_sample_rate_bounds(self, rate: float) -> None:
        with pytest.raises(ValidationError):
            Settings(**BASE, fraud_behavior_sample_rate=rate)

    def test_short_secret_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(database_url=BASE["database_url"], jwt_secret_key="short")

    def test_schema_name_validated(self) -> None:
        assert Settings(**BASE, database_schema="pr_42").database_schema == "pr_42"
        with pytest.raises(ValidationError):
            Settings(**BASE, database_schema="Bad-Schema")

    def test_list_properties(self) -> None:
        settings = Settings(
            **BASE, cors_origins=" https://a.example.com, ,https://b.example.com ", trusted_proxy_headers=""
        )
        assert settings.cors_origin_list == ["https://a.example.com", "https://b.example.com"]
        assert settings.trusted_proxy_header_list == []

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASE_URL", BASE["database_url"])
        monkeypatch.setenv("JWT_SECRET_KEY", "e" * 40)
        monkeypatch.setenv("FRAUD_DETECTION_ENABLED", "false")
        monkeypatch.setenv("FRAUD_BEHAVIOR_SAMPLE_RATE", "0.5")
        settings = Settings()
        assert settings.fraud_detection_enabled is False
        assert settings.fraud_behavior_sample_rate == 0.5
