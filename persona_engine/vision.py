from __future__ import annotations

import asyncio
import base64
import time
from typing import Any, Optional

from loguru import logger
from langchain_core.messages import HumanMessage

from .errors import UpstreamFailure, ValidationError
from .models import ImageAttachment
from .prompts import IMAGE_ANALYSIS_PROMPT


MAX_IMAGE_BYTES = 10 * 1024 * 1024


def validate_image(image: ImageAttachment, max_bytes: int = MAX_IMAGE_BYTES) -> None:
    if not (image.mime_type or "").lower().startswith("image/"):
        raise ValidationError("Only image files are allowed")
    if image.size == 0:
        raise ValidationError("Image attachment is empty")
    if image.size > max_bytes:
        raise ValidationError(f"Image exceeds the {max_bytes // (1024 * 1024)} MB limit")


class VisionGrounding:
    """Describe an attached screenshot so the persona can react to it."""

    def __init__(
        self,
        llm: Any,
        max_bytes: int = MAX_IMAGE_BYTES,
        max_tokens: int = 500,
        timeout: Optional[float] = 60.0,
    ) -> None:
        self.llm = llm
        self.max_bytes = max_bytes
        self.max_tokens = max_tokens
        self.timeout = timeout

    def validate(self, image: ImageAttachment) -> None:
        validate_image(image, self.max_bytes)

    def build_message(self, image: ImageAttachment) -> HumanMessage:
        encoded = base64.b64encode(image.data).decode("ascii")
        return HumanMessage(
            content=[
                {"type": "text", "text": IMAGE_ANALYSIS_PROMPT},
                {"type": "image_url", "image_url": {"url": f"data:{image.mime_type};base64,{encoded}"}},
            ]
        )

    async def ground(self, image: ImageAttachment) -> str:
        self.validate(image)
        message = self.build_message(image)
        t0 = time.perf_counter()
        try:
            result = await asyncio.wait_for(
                self.llm.ainvoke([message], max_tokens=self.max_tokens), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            logger.error(f"vision_timeout | after={self.timeout}s")
            raise UpstreamFailure("image analysis timed out") from e
        except Exception as e:
            logger.exception(f"vision_failed | mime={image.mime_type} bytes={image.size}")
            raise UpstreamFailure(f"image analysis failed: {e}") from e
        dt = time.perf_counter() - t0
        caption = getattr(result, "content", None)
        if not isinstance(caption, str) or not caption.strip():
            raise UpstreamFailure("image analysis returned no text")
        logger.info(f"vision_call | mime={image.mime_type} bytes={image.size} dt={dt:.2f}s")
        return caption.strip()
