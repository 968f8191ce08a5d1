from __future__ import annotations

import random
from typing import Any, Optional

from .models import AgentProfile, EmotionalRange, HesitationLevel


FILLERS = ("um", "uh", "well", "you know", "I mean")
EXPRESSIONS = ("!", "...", "?")
CORRECTIONS = (
    " Actually, let me correct that.",
    " Wait, I think I meant...",
    " Sorry, let me rephrase that.",
)
EXPRESSION_PROBABILITY = 0.3
CORRECTION_PROBABILITY = 0.1

_EXPRESSIVE = {EmotionalRange.EXPRESSIVE.value, EmotionalRange.HIGHLY_EXPRESSIVE.value}


def insert_filler(text: str, rng: Any) -> str:
    filler = rng.choice(FILLERS)
    words = text.split()
    pos = rng.randrange(len(words)) if words else 0
    words.insert(pos, filler)
    return " ".join(words)


def add_expression(text: str, rng: Any) -> str:
    if rng.random() < EXPRESSION_PROBABILITY:
        return text + rng.choice(EXPRESSIONS)
    return text


def add_correction(text: str, rng: Any) -> str:
    if rng.random() < CORRECTION_PROBABILITY:
        return text + rng.choice(CORRECTIONS)
    return text


def humanize(raw_text: str, profile: AgentProfile, rng: Optional[Any] = None) -> str:
    """Roughen a model reply so it reads like a person talking.

    Fillers only for high hesitation, trailing punctuation only for expressive
    personas, and an occasional self-correction for anyone. ``rng`` needs
    ``choice``, ``randrange`` and ``random``; pass a seeded ``random.Random`` to
    make the output repeatable.
    """
    rng = rng if rng is not None else random.Random()
    text = raw_text
    if profile.hesitation_level == HesitationLevel.HIGH.value:
        text = insert_filler(text, rng)
    if profile.emotional_range in _EXPRESSIVE:
        text = add_expression(text, rng)
    return add_correction(text, rng)
