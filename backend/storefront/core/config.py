from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List
import os


class Settings(BaseSettings):
    APP_NAME: str = "Storefront Checkout"
    DEBUG: bool = False

    DATABASE_PATH: str = os.getenv("DATABASE_PATH", "data/storefront.db")

    @property
    def DATABASE_URL(self) -> str:
        # Always resolve path relative to backend directory, not current working directory
        db_path = self.DATABASE_PATH
        if not os.path.isabs(db_path):
            backend_dir = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
            db_path = os.path.join(backend_dir, db_path)
        return f"sqlite:///{os.path.abspath(db_path)}"

    SECRET_KEY: str = os.getenv("SECRET_KEY", "storefront-dev-secret-change-me")
    ALGORITHM: str = "HS256"

    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:5173"]

    HOST: str = "127.0.0.1"
    PORT: int = 8000

    # Required in X-Admin-API-Key header for the pincode/promotion admin endpoints
    ADMIN_API_KEY: str = os.getenv("ADMIN_API_KEY", "")

    # Seconds the public pincode/promotion listings stay cached
    STOREFRONT_CACHE_TTL: int = 300
    DEFAULT_DELIVERY_DAYS: int = 3

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )


settings = Settings()
