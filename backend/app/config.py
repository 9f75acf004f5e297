import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

BASE_DIR = Path(__file__).resolve().parent.parent
INSTANCE_DIR = BASE_DIR / "instance"

DEFAULT_LLM_BASE_URL = "https://api.deepseek.com"
DEFAULT_LLM_MODEL = "deepseek-chat"
DEFAULT_LLM_TEMPERATURE = 0.3
MAX_REVIEW_CHARS = 500


def _env(key: str) -> Optional[str]:
    v = os.getenv(key)
    return v.strip() if isinstance(v, str) and v.strip() else None


def _default_database_url() -> str:
    return f"sqlite:///{INSTANCE_DIR / 'reviews.db'}"


@dataclass(frozen=True)
class Settings:
    llm_api_key: Optional[str]
    llm_base_url: str = DEFAULT_LLM_BASE_URL
    llm_model: str = DEFAULT_LLM_MODEL
    llm_temperature: float = DEFAULT_LLM_TEMPERATURE
    database_url: str = ""
    max_review_chars: int = MAX_REVIEW_CHARS


def load_settings() -> Settings:
    """
    Read settings from the environment:
      - DEEPSEEK_API_KEY
      - REVIEWS_LLM_BASE_URL
      - REVIEWS_LLM_MODEL
      - REVIEWS_LLM_TEMPERATURE
      - REVIEWS_DATABASE_URL
    Blank values are treated as unset.
    """
    temperature_raw = _env("REVIEWS_LLM_TEMPERATURE")
    if temperature_raw is None:
        temperature = DEFAULT_LLM_TEMPERATURE
    else:
        try:
            temperature = float(temperature_raw)
        except ValueError:
            raise ValueError(
                f"REVIEWS_LLM_TEMPERATURE must be a number, got {temperature_raw!r}"
            )

    return Settings(
        llm_api_key=_env("DEEPSEEK_API_KEY"),
        llm_base_url=_env("REVIEWS_LLM_BASE_URL") or DEFAULT_LLM_BASE_URL,
        llm_model=_env("REVIEWS_LLM_MODEL") or DEFAULT_LLM_MODEL,
        llm_temperature=temperature,
        database_url=_env("REVIEWS_DATABASE_URL") or _default_database_url(),
    )
