"""Application configuration via environment variables."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # App
    debug: bool = False
    environment: str = "development"

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:4321",
        "http://localhost:8000",
    ]

    # GitHub (issue source for the top-tasks dashboard)
    github_repo: str = ""
    github_token: str = ""

    # Classification
    classification_config_path: Path = Path("config/classification.yaml")
    profiles_dir: Path = Path("config/profiles")
    config_cache_ttl: float = 300  # seconds
    rule_time_budget_ms: float = 50.0
    top_tasks_limit: int = 3

    model_config = {"env_file": ".env", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
