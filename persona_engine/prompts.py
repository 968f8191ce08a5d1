from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List

from loguru import logger

from .models import AgentProfile


KNOWLEDGE_CLAUSES: Dict[str, str] = {
    "Novice": (
        "You have basic knowledge and often ask clarifying questions. "
        "You use simple terms and need explanations for technical concepts. "
    ),
    "Intermediate": (
        "You have moderate knowledge and can understand most concepts but may need "
        "some clarification on advanced topics. "
    ),
    "Advanced": "You have strong knowledge and can discuss complex topics with confidence. ",
    "Expert": "You are highly knowledgeable and can provide detailed, technical insights. ",
}

LANGUAGE_CLAUSES: Dict[str, str] = {
    "Formal": "Use formal, professional language. ",
    "Casual": "Use casual, friendly language with contractions. ",
    "Technical": "Use technical terminology and precise language. ",
    "Conversational": "Use conversational, approachable language. ",
}

EMOTION_CLAUSES: Dict[str, str] = {
    "Reserved": "Keep emotions minimal and responses measured. ",
    "Moderate": "Show moderate emotional expression. ",
    "Expressive": "Be expressive and show enthusiasm or concern as appropriate. ",
    "Highly Expressive": "Be very expressive with strong emotional reactions. ",
}

HESITATION_CLAUSES: Dict[str, str] = {
    "Low": "Respond confidently without hesitation. ",
    "Medium": 'Occasionally show uncertainty with phrases like "I think" or "maybe". ',
    "High": 'Frequently show hesitation with phrases like "um", "I\'m not sure", "let me think". ',
}

CLOSING_CLAUSE = (
    "Respond as this persona would in a UX research discussion. Be authentic to their "
    "character and provide realistic feedback on user interfaces, experiences, and design decisions."
)

# (profile attribute, clause table) in the order the clauses are emitted
_DIMENSIONS = (
    ("knowledge_level", KNOWLEDGE_CLAUSES),
    ("language_style", LANGUAGE_CLAUSES),
    ("emotional_range", EMOTION_CLAUSES),
    ("hesitation_level", HESITATION_CLAUSES),
)


def compile_instructions(profile: AgentProfile) -> str:
    """Turn a persona profile into the system instruction for the chat model.

    Deterministic: the same profile always compiles to the same text. A dimension
    whose value is not in its table contributes no clause.
    """
    parts = [f"You are {profile.name}, a {profile.persona} in a UX research context. "]
    for attr, table in _DIMENSIONS:
        clause = table.get(getattr(profile, attr))
        if clause:
            parts.append(clause)
    if profile.traits:
        parts.append(f"Your key traits include: {', '.join(profile.traits)}. ")
    parts.append(CLOSING_CLAUSE)
    if profile.prompt.strip():
        parts.append(f"\n\nAdditional instructions: {profile.prompt.strip()}")
    return "".join(parts)


def unrecognized_fields(profile: AgentProfile) -> List[str]:
    """Names of the dimensions :func:`compile_instructions` had to skip."""
    return [attr for attr, table in _DIMENSIONS if getattr(profile, attr) not in table]


_DEFAULT_IMAGE_PROMPT = (
    "Analyze this image from a UX research perspective. Describe what you see, identify "
    "potential usability issues, accessibility concerns, and user experience considerations. "
    "Be specific and detailed."
)


def _load_image_prompt() -> str:
    # Allow override via PROMPTS_DIR; else use the repo's prompts/image_analysis_prompt.md
    try:
        base_dir = os.getenv("PROMPTS_DIR")
        if base_dir:
            path = Path(base_dir) / "image_analysis_prompt.md"
        else:
            path = Path(__file__).resolve().parents[1] / "prompts" / "image_analysis_prompt.md"
        text = path.read_text(encoding="utf-8").strip()
        return text or _DEFAULT_IMAGE_PROMPT
    except OSError as e:
        logger.debug(f"Using built-in image analysis prompt: {e}")
        return _DEFAULT_IMAGE_PROMPT


IMAGE_ANALYSIS_PROMPT = _load_image_prompt()
