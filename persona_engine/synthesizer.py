from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, List, Optional

from loguru import logger
from langchain_core.messages import BaseMessage

from .errors import UpstreamFailure
from .models import Synthesis


def _token_usage(result: Any) -> Dict[str, Any]:
    usage = getattr(result, "usage_metadata", None)
    if usage:
        return dict(usage)
    meta = getattr(result, "response_metadata", None) or {}
    return dict(meta.get("token_usage") or {})


def _total_tokens(usage: Dict[str, Any]) -> int:
    total = usage.get("total_tokens")
    if total is None:
        total = (usage.get("input_tokens") or 0) + (usage.get("output_tokens") or 0)
    try:
        return int(total)
    except (TypeError, ValueError):
        return 0


class ResponseSynthesizer:
    """One generation call with fixed sampling parameters, timed."""

    def __init__(
        self,
        llm: Any,
        model_name: str = "gpt-4o",
        temperature: float = 0.7,
        max_tokens: int = 1000,
        timeout: Optional[float] = 60.0,
    ) -> None:
        self.llm = llm
        self.model_name = model_name
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

    async def synthesize(self, messages: List[BaseMessage]) -> Synthesis:
        t0 = time.perf_counter()
        try:
            result = await asyncio.wait_for(
                self.llm.ainvoke(messages, temperature=self.temperature, max_tokens=self.max_tokens),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"llm_timeout | model={self.model_name} after={self.timeout}s")
            raise UpstreamFailure("generation timed out") from e
        except Exception as e:
            logger.exception(f"llm_failed | model={self.model_name} messages={len(messages)}")
            raise UpstreamFailure(f"generation failed: {e}") from e
        dt = time.perf_counter() - t0

        text = getattr(result, "content", None)
        if not isinstance(text, str) or not text.strip():
            logger.error(f"llm_empty | model={self.model_name} dt={dt:.2f}s")
            raise UpstreamFailure("generation returned no text")

        usage = _token_usage(result)
        meta = getattr(result, "response_metadata", None) or {}
        model = meta.get("model_name") or self.model_name
        tokens = _total_tokens(usage)
        logger.info(f"llm_call | model={model} messages={len(messages)} tokens={tokens} dt={dt:.2f}s")
        return Synthesis(
            text=text.strip(),
            processing_time=int(round(dt * 1000)),
            tokens=tokens,
            model=model,
            usage=usage,
        )
