from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path
from typing import Dict, Iterable, Optional, Protocol

from loguru import logger

from .errors import NotFound, StorageFailure
from .models import AgentProfile


class AgentRepository(Protocol):
    async def get(self, agent_id: str) -> AgentProfile: ...


class InMemoryAgentRepository:
    def __init__(self, profiles: Optional[Iterable[AgentProfile]] = None) -> None:
        self._profiles: Dict[str, AgentProfile] = {p.id: p for p in (profiles or [])}

    def add(self, profile: AgentProfile) -> None:
        self._profiles[profile.id] = profile

    async def get(self, agent_id: str) -> AgentProfile:
        try:
            return self._profiles[agent_id]
        except KeyError:
            raise NotFound(f"agent {agent_id!r} not found") from None


class JsonAgentRepository:
    """Persona JSON files in one directory, looked up by their ``id`` field.

    Files are matched on ``<agent_id>.json`` first, then by scanning the folder.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _load(self, path: Path) -> AgentProfile:
        try:
            return AgentProfile.from_dict(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError) as e:
            logger.error(f"agent_load_failed | path={path} err={e}")
            raise StorageFailure(f"unreadable agent file {path.name}") from e

    async def get(self, agent_id: str) -> AgentProfile:
        if not agent_id or Path(agent_id).name != agent_id:
            raise NotFound(f"agent {agent_id!r} not found")
        direct = self.root / f"{agent_id}.json"
        if direct.is_file():
            profile = self._load(direct)
            if not profile.id:
                return replace(profile, id=agent_id)
            if profile.id == agent_id:
                return profile
        if self.root.is_dir():
            for path in sorted(self.root.glob("*.json")):
                if path == direct:
                    continue
                profile = self._load(path)
                if profile.id == agent_id:
                    return profile
        raise NotFound(f"agent {agent_id!r} not found in {self.root}")
