from __future__ import annotations

import random
import time
from typing import Any, Dict, List, Optional

from loguru import logger

from .agents import AgentRepository
from .config import EngineSettings
from .context import HISTORY_WINDOW, assemble
from .errors import PersonaEngineError, ValidationError
from .humanizer import humanize
from .llm import get_openai_chat
from .models import ChatReply, ChatRequest, ConversationTurn, SessionKey
from .prompts import unrecognized_fields
from .sessions import SessionStore, build_session_store
from .synthesizer import ResponseSynthesizer
from .vision import MAX_IMAGE_BYTES, VisionGrounding, validate_image


def _snippet(text: str, limit: int = 200) -> str:
    raw = text or ""
    one_line = " ".join(raw.split())
    return one_line if len(one_line) <= limit else one_line[:limit] + "..."


class PersonaChatEngine:
    """Runs one persona chat turn end to end.

    validate -> load profile -> prior history -> (image analysis) -> assemble ->
    generate -> humanize -> record. The session is written only after every
    external call has succeeded, so a failed turn leaves no trace in it.
    """

    def __init__(
        self,
        agents: AgentRepository,
        sessions: SessionStore,
        synthesizer: ResponseSynthesizer,
        grounding: Optional[VisionGrounding] = None,
        rng: Optional[Any] = None,
        history_window: int = HISTORY_WINDOW,
        max_image_bytes: Optional[int] = None,
    ) -> None:
        self.agents = agents
        self.sessions = sessions
        self.synthesizer = synthesizer
        self.grounding = grounding
        self.rng = rng if rng is not None else random.Random()
        self.history_window = history_window
        self.max_image_bytes = max_image_bytes or (grounding.max_bytes if grounding else None)

    def validate(self, request: ChatRequest) -> None:
        if not (request.agent_id or "").strip() or not (request.text or "").strip():
            raise ValidationError("Agent ID and text are required")
        if request.image is not None:
            if self.grounding is None:
                raise ValidationError("Image attachments are not supported by this engine")
            validate_image(request.image, self.max_image_bytes or MAX_IMAGE_BYTES)

    async def chat(self, request: ChatRequest) -> ChatReply:
        self.validate(request)
        key = request.session_key
        t_start = time.perf_counter()
        logger.info(
            f"chat_turn_start | agent={request.agent_id} caller={request.caller_id} "
            f"image={request.image is not None} | text='{_snippet(request.text)}'"
        )
        try:
            profile = await self.agents.get(request.agent_id)
            skipped = unrecognized_fields(profile)
            if skipped:
                logger.warning(f"profile_unrecognized_values | agent={profile.id} fields={','.join(skipped)}")

            if request.conversation_history is not None:
                prior = list(request.conversation_history)
            else:
                prior = await self.sessions.read_all(key)

            grounding_text = None
            if request.image is not None:
                grounding_text = await self.grounding.ground(request.image)

            messages = assemble(profile, prior, request.text, grounding_text, window=self.history_window)
            synthesis = await self.synthesizer.synthesize(messages)
            final_text = humanize(synthesis.text, profile, self.rng)

            user_turn = ConversationTurn.create(request.text, is_user=True, agent_id=request.agent_id)
            agent_turn = ConversationTurn.create(
                final_text, is_user=False, agent_id=request.agent_id, metadata=synthesis.metadata
            )
            await self.sessions.extend(key, [user_turn, agent_turn])
        except PersonaEngineError as e:
            logger.error(f"chat_turn_failed | agent={request.agent_id} kind={type(e).__name__} detail={e}")
            raise
        except Exception:
            logger.exception(f"chat_turn_failed | agent={request.agent_id} kind=unexpected")
            raise

        total = time.perf_counter() - t_start
        logger.info(
            f"chat_turn_done | agent={request.agent_id} tokens={synthesis.tokens} "
            f"llm_ms={synthesis.processing_time} total={total:.2f}s | msg='{_snippet(final_text)}'"
        )
        return ChatReply(
            message=agent_turn,
            agent_id=request.agent_id,
            processing_time=synthesis.processing_time,
            tokens=synthesis.tokens,
        )

    async def history(self, agent_id: str, caller_id: str) -> List[ConversationTurn]:
        return await self.sessions.read_all(SessionKey(agent_id, caller_id))

    async def clear_history(self, agent_id: str, caller_id: str) -> Dict[str, bool]:
        await self.sessions.clear(SessionKey(agent_id, caller_id))
        return {"success": True}


def build_engine(
    agents: AgentRepository,
    settings: Optional[EngineSettings] = None,
    sessions: Optional[SessionStore] = None,
    rng: Optional[Any] = None,
) -> PersonaChatEngine:
    """Wire the engine against OpenAI using env-driven settings."""
    settings = settings or EngineSettings.from_env()
    chat_llm = get_openai_chat(model=settings.chat_model, timeout=settings.llm_timeout)
    vision_llm = get_openai_chat(model=settings.vision_model, timeout=settings.llm_timeout)
    synthesizer = ResponseSynthesizer(
        chat_llm,
        model_name=settings.chat_model,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
        timeout=settings.llm_timeout,
    )
    grounding = VisionGrounding(
        vision_llm,
        max_bytes=settings.max_image_bytes,
        max_tokens=settings.vision_max_tokens,
        timeout=settings.llm_timeout,
    )
    return PersonaChatEngine(
        agents=agents,
        sessions=sessions or build_session_store(settings.redis_url, ttl=settings.session_ttl),
        synthesizer=synthesizer,
        grounding=grounding,
        rng=rng,
        history_window=settings.history_window,
        max_image_bytes=settings.max_image_bytes,
    )
