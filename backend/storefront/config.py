from pydantic_settings import BaseSettings
from typing import Dict, List

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./dev.db"
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 8000
    FRONTEND_ORIGINS: List[str] = ["http://localhost:5173"]
    CLIENT_URL: str = "http://localhost:5173"
    LOG_LEVEL: str = "INFO"

    # shop REST API consumed by the cart core
    API_BASE_URL: str = "http://127.0.0.1:8000"
    REMOTE_API_TIMEOUT_SECONDS: float = 10.0

    # guest carts live in session-scoped storage
    GUEST_CART_STORAGE_KEY: str = "guestCart"
    GUEST_SESSION_TTL_SECONDS: int = 60 * 60 * 24
    GUEST_SESSION_PURGE_INTERVAL_SECONDS: int = 600

    # delivery fees; tiers without sub-locations charge their base fee only
    SHIPPING_BASE_FEES: Dict[str, float] = {"kisumu": 220, "nairobi": 400}
    SHIPPING_SUBLOCATION_SURCHARGES: Dict[str, Dict[str, float]] = {
        "kisumu": {"CBD": 0, "Milimani": 30, "Mamboleo": 60, "Kondele": 40},
        "nairobi": {"CBD": 0, "Westlands": 50, "Kilimani": 50, "Karen": 150},
    }
    SHIPPING_OTHER_FLAT_FEE: float = 500
    SHIPPING_TIER_LABELS: Dict[str, str] = {
        "kisumu": "Kisumu & Environs",
        "nairobi": "Nairobi & Environs",
        "other": "Other Towns across Kenya",
    }

    PAYMENT_MOCK_DELAY_MS: int = 200

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
