from pathlib import Path

from pydantic_settings import BaseSettings


def _load_version() -> str:
    version_path = Path(__file__).resolve().parent / "VERSION"
    try:
        return version_path.read_text().strip()
    except FileNotFoundError:
        return "0.1.0"


class Settings(BaseSettings):
    """Application configuration using Pydantic settings."""

    # Database
    DATABASE_URL: str = "sqlite:///./data/spectra.db"

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list[str] = ["*"]
    CORS_ALLOW_HEADERS: list[str] = ["*"]

    # Application
    APP_NAME: str = "SPECTRA"
    APP_VERSION: str = _load_version()
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ── Topology engine ────────────────────────────────────────────────
    # Hard cap on trace length; also the cycle guard for looped splices
    TRACE_MAX_HOPS: int = 20

    # Pagination
    DEFAULT_PAGE_SIZE: int = 100
    MAX_PAGE_SIZE: int = 1000

    # Proximity search (HTTP radius is in meters, engine works in km)
    NEARBY_DEFAULT_RADIUS_M: float = 1000.0
    NEARBY_MAX_RADIUS_KM: float = 100.0

    NODE_DEFAULT_CAPACITY_PORTS: int = 8

    # False = a splice to an unknown core is still recorded (warning logged)
    STRICT_ENDPOINT_REFERENCES: bool = False

    # Seed a demo network on startup when the database is empty
    DEMO_MODE: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
