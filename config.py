"""
Configuration management for the Shiv Dhaba order lifecycle client.

Loads settings from .env via pydantic-settings.

Notes:
    - location_upload_gate picks ONE gate: "interval" or "displacement"
    - token_refresh_threshold_seconds drives proactive JWT refresh
    - validate_production_settings() enforces https in production
"""
import logging
from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

UPLOAD_GATES = ("interval", "displacement")


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    # ── Backend ─────────────────────────────────────────────────────
    api_base_url: str = "http://10.0.2.2:8080/api/v1"
    request_timeout_seconds: float = 30.0

    # ── Local device store ──────────────────────────────────────────
    local_db_url: str = "sqlite:///./data/shivdhaba_client.db"

    # ── Location tracking ───────────────────────────────────────────
    location_sample_interval_seconds: float = 1.0
    location_upload_gate: str = "interval"      # interval | displacement
    location_update_interval_seconds: float = 10.0
    location_min_displacement_meters: float = 10.0

    # ── Auth ────────────────────────────────────────────────────────
    token_refresh_threshold_seconds: int = 300  # 5 minutes before expiry

    # ── Restaurant defaults (backend validates the real values) ────
    restaurant_name: str = "Shiv Dhaba"
    delivery_city: str = "Meerut"
    min_order_amount: Decimal = Decimal("100.00")
    delivery_radius_km: float = 15.0
    restaurant_latitude: float = 28.9845
    restaurant_longitude: float = 77.7064

    # ── Application ─────────────────────────────────────────────────
    environment: str = "development"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def location_update_interval_ms(self) -> float:
        return self.location_update_interval_seconds * 1000

    def validate_production_settings(self):
        """
        Validate settings before the client starts talking to the backend.

        Production requires an https base URL and a known upload gate.
        Anything else only warns.
        """
        if self.location_upload_gate not in UPLOAD_GATES:
            raise ValueError(
                f"LOCATION_UPLOAD_GATE must be one of {UPLOAD_GATES}, "
                f"got {self.location_upload_gate!r}"
            )
        if self.environment == "production":
            if not self.api_base_url.startswith("https://"):
                raise ValueError(
                    "API_BASE_URL must use https in production. "
                    "Bearer tokens are sent on every request."
                )
            logger.info("Production settings validated")
        else:
            warnings = []
            if self.api_base_url.startswith("http://"):
                warnings.append(f"API_BASE_URL is plain http ({self.api_base_url})")
            if self.request_timeout_seconds > 60:
                warnings.append(
                    f"REQUEST_TIMEOUT_SECONDS={self.request_timeout_seconds} is unusually long"
                )
            for w in warnings:
                logger.warning(f"{w}")


# Default settings instance; components take an explicit Settings where it matters
settings = Settings()
