from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from loguru import logger

from .context import HISTORY_WINDOW


def load_env() -> None:
    """Load the first ``.env`` found in the project root or the cwd; never override."""
    here = Path(__file__).resolve().parents[1]
    for env_path in (here / ".env", Path.cwd() / ".env"):
        if env_path.is_file():
            load_dotenv(dotenv_path=str(env_path), override=False)
            return


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring malformed {name}={raw!r}; using {default}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring malformed {name}={raw!r}; using {default}")
        return default


def _history_window() -> int:
    window = _env_int("HISTORY_WINDOW", HISTORY_WINDOW)
    if window > HISTORY_WINDOW:
        logger.warning(f"HISTORY_WINDOW={window} exceeds the {HISTORY_WINDOW}-turn cap; using {HISTORY_WINDOW}")
        return HISTORY_WINDOW
    return window


@dataclass(frozen=True)
class EngineSettings:
    chat_model: str = "gpt-4o"
    vision_model: str = "gpt-4o"
    temperature: float = 0.7
    max_tokens: int = 1000
    vision_max_tokens: int = 500
    llm_timeout: float = 60.0
    history_window: int = 10
    session_ttl: int = 3600
    max_image_bytes: int = 10 * 1024 * 1024
    redis_url: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """Build settings from the environment (after loading ``.env``).

        Env vars:
          - OPENAI_MODEL, OPENAI_VISION_MODEL
          - OPENAI_TEMPERATURE, OPENAI_MAX_TOKENS, VISION_MAX_TOKENS
          - LLM_TIMEOUT_SECONDS, HISTORY_WINDOW, SESSION_TTL_SECONDS
          - MAX_IMAGE_BYTES, REDIS_URL, LOG_LEVEL
        """
        load_env()
        return cls(
            chat_model=os.getenv("OPENAI_MODEL", cls.chat_model),
            vision_model=os.getenv("OPENAI_VISION_MODEL", cls.vision_model),
            temperature=_env_float("OPENAI_TEMPERATURE", cls.temperature),
            max_tokens=_env_int("OPENAI_MAX_TOKENS", cls.max_tokens),
            vision_max_tokens=_env_int("VISION_MAX_TOKENS", cls.vision_max_tokens),
            llm_timeout=_env_float("LLM_TIMEOUT_SECONDS", cls.llm_timeout),
            history_window=_history_window(),
            session_ttl=_env_int("SESSION_TTL_SECONDS", cls.session_ttl),
            max_image_bytes=_env_int("MAX_IMAGE_BYTES", cls.max_image_bytes),
            redis_url=os.getenv("REDIS_URL") or None,
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    logger.remove()
    logger.add(sys.stdout, level=level.upper(), colorize=True, format="{time:HH:mm:ss} | {level} | {message}")
