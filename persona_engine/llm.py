from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from loguru import logger
from langchain_openai import ChatOpenAI

from .config import load_env
from .errors import ConfigurationError


# Load env early so OPENAI_API_KEY is visible to the first client build
load_env()


@lru_cache(maxsize=8)
def get_openai_chat(
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    timeout: Optional[float] = None,
) -> ChatOpenAI:
    """Return a cached LangChain ChatOpenAI client using env configuration.

    Env vars:
      - OPENAI_API_KEY (required)
      - OPENAI_MODEL (optional; default: gpt-4o)
    """
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        logger.error("OPENAI_API_KEY not set; cannot initialize OpenAI chat client")
        raise ConfigurationError("OPENAI_API_KEY not set")
    mdl = model or os.getenv("OPENAI_MODEL", "gpt-4o")
    logger.debug(f"Initializing OpenAI chat model={mdl} temperature={temperature} max_tokens={max_tokens}")
    kwargs = {"model": mdl, "api_key": api_key, "max_retries": 0}
    if temperature is not None:
        kwargs["temperature"] = temperature
    if max_tokens:
        kwargs["max_tokens"] = max_tokens
    if timeout:
        kwargs["timeout"] = timeout
    return ChatOpenAI(**kwargs)
