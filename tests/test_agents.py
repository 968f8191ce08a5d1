import json

import pytest

from persona_engine.agents import InMemoryAgentRepository, JsonAgentRepository
from persona_engine.errors import NotFound, StorageFailure


PERSONA = {
    "id": "ux-007",
    "name": "Morgan",
    "persona": "logistics coordinator",
    "knowledgeLevel": "Intermediate",
    "languageStyle": "Conversational",
    "traits": ["busy", "pragmatic"],
}


@pytest.mark.asyncio
async def test_in_memory_lookup(expert_profile):
    repo = InMemoryAgentRepository([expert_profile])
    assert await repo.get("agent-1") is expert_profile
    with pytest.raises(NotFound):
        await repo.get("agent-404")


@pytest.mark.asyncio
async def test_json_repository_direct_file(tmp_path):
    (tmp_path / "ux-007.json").write_text(json.dumps(PERSONA), encoding="utf-8")
    profile = await JsonAgentRepository(tmp_path).get("ux-007")
    assert profile.name == "Morgan"
    assert profile.traits == ("busy", "pragmatic")


@pytest.mark.asyncio
async def test_json_repository_scans_by_id(tmp_path):
    (tmp_path / "001__Morgan.json").write_text(json.dumps(PERSONA), encoding="utf-8")
    profile = await JsonAgentRepository(tmp_path).get("ux-007")
    assert profile.id == "ux-007"


@pytest.mark.asyncio
async def test_json_repository_fills_missing_id_from_filename(tmp_path):
    record = {k: v for k, v in PERSONA.items() if k != "id"}
    (tmp_path / "morgan.json").write_text(json.dumps(record), encoding="utf-8")
    assert (await JsonAgentRepository(tmp_path).get("morgan")).id == "morgan"


@pytest.mark.asyncio
@pytest.mark.parametrize("agent_id", ["missing", "../etc/passwd", ""])
async def test_json_repository_not_found(tmp_path, agent_id):
    with pytest.raises(NotFound):
        await JsonAgentRepository(tmp_path).get(agent_id)


@pytest.mark.asyncio
async def test_json_repository_unreadable_file(tmp_path):
    (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(StorageFailure):
        await JsonAgentRepository(tmp_path).get("broken")
