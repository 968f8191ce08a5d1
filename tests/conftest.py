import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from langchain_core.messages import AIMessage

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from persona_engine.agents import InMemoryAgentRepository
from persona_engine.models import AgentProfile, ConversationTurn
from persona_engine.service import PersonaChatEngine
from persona_engine.sessions import InMemorySessionStore
from persona_engine.synthesizer import ResponseSynthesizer
from persona_engine.vision import VisionGrounding


class FakeChatModel:
    """Stands in for ChatOpenAI: records every call and returns a canned reply."""

    def __init__(
        self,
        reply: str = "The login form looks clean.",
        usage: Optional[Dict[str, int]] = None,
        model_name: str = "gpt-4o-test",
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ) -> None:
        self.reply = reply
        self.usage = usage if usage is not None else {"input_tokens": 40, "output_tokens": 12, "total_tokens": 52}
        self.model_name = model_name
        self.error = error
        self.delay = delay
        self.calls: List[Dict[str, Any]] = []

    async def ainvoke(self, messages, **kwargs):
        self.calls.append({"messages": list(messages), "kwargs": kwargs})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return AIMessage(
            content=self.reply,
            usage_metadata=self.usage,
            response_metadata={"model_name": self.model_name},
        )


class ScriptedRng:
    """Deterministic stand-in for random.Random with scripted draws."""

    def __init__(self, randoms=(), choice_index: int = 0, position: int = 0) -> None:
        self._randoms = list(randoms)
        self.choice_index = choice_index
        self.position = position
        self.calls: List[str] = []

    def random(self) -> float:
        self.calls.append("random")
        return self._randoms.pop(0) if self._randoms else 0.99

    def choice(self, seq):
        self.calls.append("choice")
        return seq[self.choice_index % len(seq)]

    def randrange(self, n: int) -> int:
        self.calls.append("randrange")
        return min(self.position, n - 1)


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_turn(text: str, is_user: bool = True, agent_id: str = "agent-1") -> ConversationTurn:
    return ConversationTurn.create(text, is_user=is_user, agent_id=agent_id)


@pytest.fixture
def expert_profile() -> AgentProfile:
    return AgentProfile(
        id="agent-1",
        name="Dana",
        persona="senior product designer",
        knowledge_level="Expert",
        language_style="Formal",
        emotional_range="Reserved",
        hesitation_level="Low",
        traits=("detail-oriented", "skeptical"),
    )


@pytest.fixture
def nervous_profile() -> AgentProfile:
    return AgentProfile(
        id="agent-2",
        name="Sam",
        persona="first-time online shopper",
        knowledge_level="Novice",
        language_style="Casual",
        emotional_range="Highly Expressive",
        hesitation_level="High",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sessions(clock) -> InMemorySessionStore:
    return InMemorySessionStore(ttl=3600, clock=clock)


@pytest.fixture
def chat_model() -> FakeChatModel:
    return FakeChatModel()


@pytest.fixture
def vision_model() -> FakeChatModel:
    return FakeChatModel(reply="A login screen with a low-contrast submit button.")


@pytest.fixture
def engine(expert_profile, nervous_profile, sessions, chat_model, vision_model) -> PersonaChatEngine:
    return PersonaChatEngine(
        agents=InMemoryAgentRepository([expert_profile, nervous_profile]),
        sessions=sessions,
        synthesizer=ResponseSynthesizer(chat_model, model_name="gpt-4o", timeout=5),
        grounding=VisionGrounding(vision_model, timeout=5),
        rng=ScriptedRng(),
    )
