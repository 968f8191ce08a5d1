import re

from persona_engine.models import (
    AgentProfile,
    ChatReply,
    ConversationTurn,
    SessionKey,
    TurnMetadata,
)


def test_profile_from_camel_case_record():
    profile = AgentProfile.from_dict(
        {
            "id": "a1",
            "name": "Priya",
            "persona": "accessibility auditor",
            "knowledgeLevel": "Advanced",
            "languageStyle": "Technical",
            "traits": '["methodical", "blunt"]',
        }
    )
    assert profile.knowledge_level == "Advanced"
    assert profile.language_style == "Technical"
    assert profile.emotional_range == "Moderate"
    assert profile.hesitation_level == "Medium"
    assert profile.traits == ("methodical", "blunt")


def test_profile_from_snake_case_record_keeps_unknown_values():
    profile = AgentProfile.from_dict(
        {"id": "a2", "name": "Ola", "persona": "nurse", "knowledge_level": "Wizard", "traits": ["calm"]}
    )
    assert profile.knowledge_level == "Wizard"
    assert profile.traits == ("calm",)


def test_turn_create_shape():
    turn = ConversationTurn.create("hello", is_user=True, agent_id="a1")
    assert re.match(r"^msg_\d+_[0-9a-f]{9}$", turn.id)
    assert turn.timestamp.endswith("Z")
    assert turn.metadata is None


def test_turn_wire_format_round_trip():
    turn = ConversationTurn.create(
        "reply", is_user=False, agent_id="a1", metadata=TurnMetadata(processing_time=120, tokens=33, model="gpt-4o")
    )
    data = turn.to_dict()
    assert data["isUser"] is False
    assert data["agentId"] == "a1"
    assert data["metadata"] == {"processingTime": 120, "tokens": 33, "model": "gpt-4o"}
    assert ConversationTurn.from_dict(data) == turn


def test_caller_history_entry_without_id():
    turn = ConversationTurn.from_dict({"text": "earlier", "isUser": True, "timestamp": "t"}, agent_id="a9")
    assert turn.agent_id == "a9"
    assert turn.is_user is True
    assert turn.id


def test_reply_to_dict_matches_response_shape():
    turn = ConversationTurn.create(
        "ok", is_user=False, agent_id="a1", metadata=TurnMetadata(processing_time=5, tokens=7, model="m")
    )
    body = ChatReply(message=turn, agent_id="a1", processing_time=5, tokens=7).to_dict()
    assert set(body) == {"message", "agentId", "processingTime", "tokens"}
    assert set(body["message"]) == {"id", "text", "isUser", "timestamp", "agentId", "metadata"}


def test_session_key_name():
    assert str(SessionKey("a1", "10.0.0.7")) == "chat_session_a1_10.0.0.7"
