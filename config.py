"""
Runtime configuration for the SplitSpace service, read from the environment
and from a .env file when one is present.
"""
import logging
import os
from functools import lru_cache
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator


class Settings(BaseModel):
    title: str = "SplitSpace"
    currency: str = "₹"
    log_level: str = "INFO"
    top_days: int = 5
    badge_categories: List[str] = Field(
        default_factory=lambda: ["Groceries", "Fuel", "Food"])
    host: str = "0.0.0.0"
    port: int = 5000

    @field_validator('top_days')
    @classmethod
    def top_days_positive(cls, v):
        if v < 1:
            raise ValueError('top_days must be at least 1')
        return v


def load_settings(environ=None, dotenv_path=None) -> Settings:
    """Build Settings from SPLITSPACE_* variables, falling back to defaults.

    Without an explicit ``environ`` the process environment is used, after
    loading any .env file. Variables already set take precedence over .env.
    """
    if environ is None:
        load_dotenv(dotenv_path)
    env = os.environ if environ is None else environ
    values = {}

    for field in ("title", "currency", "log_level", "top_days", "host", "port"):
        raw = env.get(f"SPLITSPACE_{field.upper()}")
        if raw is not None and raw.strip():
            values[field] = raw.strip()

    raw = env.get("SPLITSPACE_BADGE_CATEGORIES")
    if raw is not None:
        values["badge_categories"] = [c.strip() for c in raw.split(",") if c.strip()]

    return Settings(**values)


@lru_cache
def get_settings() -> Settings:
    return load_settings()


def configure_logging(level: str) -> None:
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
