from __future__ import annotations

import json
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class KnowledgeLevel(str, Enum):
    NOVICE = "Novice"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"
    EXPERT = "Expert"


class LanguageStyle(str, Enum):
    FORMAL = "Formal"
    CASUAL = "Casual"
    TECHNICAL = "Technical"
    CONVERSATIONAL = "Conversational"


class EmotionalRange(str, Enum):
    RESERVED = "Reserved"
    MODERATE = "Moderate"
    EXPRESSIVE = "Expressive"
    HIGHLY_EXPRESSIVE = "Highly Expressive"


class HesitationLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _pick(obj: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for k in keys:
        if k in obj and obj[k] is not None:
            return obj[k]
    return default


def _parse_traits(raw: Any) -> List[str]:
    # Persisted records may carry traits as JSON text rather than a list
    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return [t.strip() for t in raw.split(",") if t.strip()]
    if isinstance(raw, (list, tuple)):
        return [str(t) for t in raw if str(t).strip()]
    return []


@dataclass(frozen=True)
class AgentProfile:
    """Read-only persona record.

    Enum dimensions are kept as plain strings so that values outside the known
    sets still load; the prompt compiler simply has no clause for them.
    """

    id: str
    name: str
    persona: str
    knowledge_level: str = ""
    language_style: str = ""
    emotional_range: str = EmotionalRange.MODERATE.value
    hesitation_level: str = HesitationLevel.MEDIUM.value
    traits: tuple = ()
    prompt: str = ""

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "AgentProfile":
        obj = obj or {}
        return cls(
            id=str(_pick(obj, "id", default="")),
            name=str(_pick(obj, "name", default="")),
            persona=str(_pick(obj, "persona", default="")),
            knowledge_level=str(_pick(obj, "knowledgeLevel", "knowledge_level", default="")),
            language_style=str(_pick(obj, "languageStyle", "language_style", default="")),
            emotional_range=str(
                _pick(obj, "emotionalRange", "emotional_range", default="") or EmotionalRange.MODERATE.value
            ),
            hesitation_level=str(
                _pick(obj, "hesitationLevel", "hesitation_level", default="") or HesitationLevel.MEDIUM.value
            ),
            traits=tuple(_parse_traits(obj.get("traits"))),
            prompt=str(_pick(obj, "prompt", default="") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "persona": self.persona,
            "knowledgeLevel": self.knowledge_level,
            "languageStyle": self.language_style,
            "emotionalRange": self.emotional_range,
            "hesitationLevel": self.hesitation_level,
            "traits": list(self.traits),
            "prompt": self.prompt,
        }


@dataclass(frozen=True)
class TurnMetadata:
    processing_time: int = 0
    tokens: int = 0
    model: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"processingTime": self.processing_time, "tokens": self.tokens, "model": self.model}

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "TurnMetadata":
        return cls(
            processing_time=int(_pick(obj, "processingTime", "processing_time", default=0)),
            tokens=int(_pick(obj, "tokens", "tokenCount", default=0)),
            model=str(_pick(obj, "model", "modelName", default="")),
        )


@dataclass(frozen=True)
class ConversationTurn:
    id: str
    text: str
    is_user: bool
    timestamp: str
    agent_id: str
    metadata: Optional[TurnMetadata] = None

    @classmethod
    def create(
        cls,
        text: str,
        is_user: bool,
        agent_id: str,
        metadata: Optional[TurnMetadata] = None,
    ) -> "ConversationTurn":
        turn_id = f"msg_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"
        return cls(
            id=turn_id,
            text=text,
            is_user=is_user,
            timestamp=_utc_now_iso(),
            agent_id=agent_id,
            metadata=metadata,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "text": self.text,
            "isUser": self.is_user,
            "timestamp": self.timestamp,
            "agentId": self.agent_id,
        }
        if self.metadata is not None:
            data["metadata"] = self.metadata.to_dict()
        return data

    @classmethod
    def from_dict(cls, obj: Dict[str, Any], agent_id: str = "") -> "ConversationTurn":
        meta = obj.get("metadata")
        return cls(
            id=str(obj.get("id") or f"msg_{uuid.uuid4().hex[:12]}"),
            text=str(obj.get("text") or ""),
            is_user=bool(_pick(obj, "isUser", "is_user", default=False)),
            timestamp=str(obj.get("timestamp") or _utc_now_iso()),
            agent_id=str(_pick(obj, "agentId", "agent_id", default=agent_id)),
            metadata=TurnMetadata.from_dict(meta) if isinstance(meta, dict) else None,
        )


@dataclass(frozen=True)
class SessionKey:
    agent_id: str
    caller_id: str

    def __str__(self) -> str:
        return f"chat_session_{self.agent_id}_{self.caller_id}"


@dataclass
class ImageAttachment:
    data: bytes
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.data or b"")


@dataclass
class ChatRequest:
    agent_id: str
    text: str
    caller_id: str = "anonymous"
    conversation_history: Optional[List[ConversationTurn]] = None
    image: Optional[ImageAttachment] = None

    @property
    def session_key(self) -> SessionKey:
        return SessionKey(self.agent_id, self.caller_id)


@dataclass
class ChatReply:
    message: ConversationTurn
    agent_id: str
    processing_time: int
    tokens: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message.to_dict(),
            "agentId": self.agent_id,
            "processingTime": self.processing_time,
            "tokens": self.tokens,
        }


@dataclass
class Synthesis:
    text: str
    processing_time: int
    tokens: int
    model: str
    usage: Dict[str, Any] = field(default_factory=dict)

    @property
    def metadata(self) -> TurnMetadata:
        return TurnMetadata(processing_time=self.processing_time, tokens=self.tokens, model=self.model)
