from __future__ import annotations

from typing import List, Optional, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from .models import AgentProfile, ConversationTurn
from .prompts import compile_instructions


HISTORY_WINDOW = 10


def merge_text_with_grounding(text: str, grounding_text: Optional[str]) -> str:
    if grounding_text is None:
        return text
    return f"{text}\n\nImage Analysis: {grounding_text}"


def to_message(turn: ConversationTurn) -> BaseMessage:
    if turn.is_user:
        return HumanMessage(content=turn.text)
    return AIMessage(content=turn.text)


def assemble(
    profile: AgentProfile,
    prior_history: Sequence[ConversationTurn],
    current_text: str,
    grounding_text: Optional[str] = None,
    window: int = HISTORY_WINDOW,
) -> List[BaseMessage]:
    """Build the message list for one generation call.

    System instruction first, then the last ``window`` prior turns oldest first
    (never more than ``HISTORY_WINDOW``), then the new user turn with the image
    analysis folded in when present.
    """
    window = min(window, HISTORY_WINDOW)
    messages: List[BaseMessage] = [SystemMessage(content=compile_instructions(profile))]
    recent = list(prior_history)[-window:] if window > 0 else []
    messages.extend(to_message(turn) for turn in recent)
    messages.append(HumanMessage(content=merge_text_with_grounding(current_text, grounding_text)))
    return messages
