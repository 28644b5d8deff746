"""Storefront backend configuration."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Environment-driven settings for the storefront backend."""

    # Admin login
    admin_username: str = "admin"
    admin_password: str = "changeme"
    session_ttl_seconds: int = 8 * 3600
    cookie_secure: bool = True

    # Frontend origin (CORS + checkout redirects)
    client_url: str = "http://localhost:3000"

    # Stripe
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    webhook_tolerance_seconds: int = 300

    # Catalogue / pricing (amounts in cents)
    store_name: str = "Catfish Empire™"
    currency: str = "usd"
    unit_amount_cents: int = 1499
    shipping_amount_cents: int = 599
    allowed_countries: list[str] = ["US"]
    default_inventory: dict[str, int] = {
        "Black": 10,
        "Red": 10,
        "Blue": 10,
        "Green": 10,
        "Pink": 10,
        "White": 10,
    }

    # Order notifications
    notify_email: str = "orders@example.com"
    smtp_host: str = ""
    smtp_port: int = 465
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_use_ssl: bool = True

    # Webhook dedup ledger (in-memory when unset)
    redis_url: str = ""

    login_rate_limit: str = "10/minute"
    log_level: str = "INFO"

    model_config = {"env_prefix": "STOREFRONT_", "env_file": ".env", "extra": "ignore"}


settings = Settings()
