from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

_PROCESSED_DIR = Path(__file__).resolve().parent / "data" / "processed"

SESSION_TTL_SECONDS = 30 * 24 * 60 * 60  # 30 days
SESSION_SWEEP_SECONDS = 24 * 60 * 60  # 1 day


@dataclass(frozen=True)
class AppConfig:
    session_secret: str = os.getenv("SESSION_SECRET", "comfort-bites-secret-change-in-production")
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///comfort_bites.db")
    recipes_path: Path = field(
        default_factory=lambda: Path(os.getenv("RECIPES_PATH", str(_PROCESSED_DIR / "recipes.json")))
    )
    session_ttl_seconds: int = int(os.getenv("SESSION_TTL_SECONDS", SESSION_TTL_SECONDS))
    session_sweep_seconds: int = int(os.getenv("SESSION_SWEEP_SECONDS", SESSION_SWEEP_SECONDS))
    recipe_result_limit: int = int(os.getenv("RECIPE_RESULT_LIMIT", 100))
    ingredient_sample_size: int = int(os.getenv("INGREDIENT_SAMPLE_SIZE", 1000))
    filter_options_ttl_seconds: int = int(os.getenv("FILTER_OPTIONS_TTL_SECONDS", 24 * 60 * 60))
    bcrypt_rounds: int = int(os.getenv("BCRYPT_ROUNDS", 10))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


DEFAULT_APP_CONFIG = AppConfig()
