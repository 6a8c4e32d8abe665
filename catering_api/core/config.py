"""
Core configuration for the Air Gourmet catering API
"""
import os
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings"""

    # API Configuration
    PROJECT_NAME: str = "Air Gourmet Catering API"
    API_PREFIX: str = "/api"
    SECRET_KEY: str = os.getenv("SECRET_KEY", "change-me-in-production")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Database Configuration
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "sqlite:///./catering.db"  # SQLite for development
    )

    # CORS Configuration
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5000",
        "http://127.0.0.1:3000",
        "*",  # Allow all for development
    ]

    # Order defaults
    GUEST_USER_ID: int = 1
    ORDER_NUMBER_PREFIX: str = "AG"
    DELIVERY_FEE_CENTS: int = 15000  # EUR 150.00
    DEFAULT_DEPARTURE_AIRPORT: str = "Thessaloniki (SKG)"
    VAT_RATE: float = 0.13

    # Department mailboxes
    OPERATIONS_EMAIL: str = "ops@airgourmet.gr"
    KITCHEN_EMAIL_THESSALONIKI: str = "kitchen-thessaloniki@airgourmet.gr"
    KITCHEN_EMAIL_MYKONOS: str = "kitchen-mykonos@airgourmet.gr"
    DELIVERY_EMAIL: str = "delivery@airgourmet.gr"
    ADMIN_EMAIL: str = "admin@airgourmet.gr"
    FROM_EMAIL: str = "orders@airgourmet.gr"
    ADMIN_PANEL_URL: str = "https://airgourmet.gr/admin/orders"

    # Email Configuration
    SMTP_SERVER: str = os.getenv("SMTP_SERVER", "smtp.gmail.com")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME: str = os.getenv("SMTP_USERNAME", "")
    SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")

    # SMS Configuration (Twilio)
    TWILIO_ACCOUNT_SID: str = os.getenv("TWILIO_ACCOUNT_SID", "")
    TWILIO_AUTH_TOKEN: str = os.getenv("TWILIO_AUTH_TOKEN", "")
    TWILIO_PHONE_NUMBER: str = os.getenv("TWILIO_PHONE_NUMBER", "")

    # Outbound integrations
    SLACK_WEBHOOK_URL: str = os.getenv("SLACK_WEBHOOK_URL", "")
    ZAPIER_WEBHOOK_URL: str = os.getenv("ZAPIER_WEBHOOK_URL", "")
    ZAPIER_EVENTS: List[str] = ["order_created", "order_updated", "order_cancelled"]
    INTEGRATION_TIMEOUT: float = 10.0

    # Payment Configuration
    STRIPE_PUBLIC_KEY: str = os.getenv("STRIPE_PUBLIC_KEY", "")
    STRIPE_SECRET_KEY: str = os.getenv("STRIPE_SECRET_KEY", "")
    STRIPE_WEBHOOK_SECRET: str = os.getenv("STRIPE_WEBHOOK_SECRET", "")
    PAYMENT_CURRENCY: str = "eur"

    # Realtime
    WS_HEARTBEAT_INTERVAL: float = 30.0

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


# Global settings instance
settings = Settings()
