from __future__ import annotations

import argparse
import asyncio
import json
import mimetypes
import random
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from persona_engine.agents import InMemoryAgentRepository, JsonAgentRepository
from persona_engine.config import EngineSettings, configure_logging
from persona_engine.errors import ValidationError, error_payload
from persona_engine.models import AgentProfile, ChatRequest, ImageAttachment, SessionKey
from persona_engine.service import build_engine
from persona_engine.sessions import build_session_store


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Chat with a persona agent for simulated UX research feedback")
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--agent-json", type=str, help="Path to a persona JSON file")
    src.add_argument("--agents-dir", type=str, help="Directory of persona JSON files (use with --agent-id)")
    p.add_argument("--agent-id", type=str, default="", help="Agent id to load from --agents-dir")
    p.add_argument("--text", type=str, default="", help="Message to send to the persona")
    p.add_argument("--image", type=str, help="Optional screenshot to attach")
    p.add_argument("--caller", type=str, default="cli", help="Caller identity used for the session key")
    p.add_argument("--history", action="store_true", help="Print the session history (persists across runs only with REDIS_URL)")
    p.add_argument("--clear", action="store_true", help="Clear the session history")
    p.add_argument("--seed", type=int, help="Seed for the humanizer (repeatable output)")
    p.add_argument("--log-level", type=str, default=None, help="Log level (default: LOG_LEVEL or INFO)")
    return p.parse_args(argv)


def load_json_file(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_image(path: str) -> ImageAttachment:
    mime, _ = mimetypes.guess_type(path)
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise ValidationError(f"Cannot read image {path}") from e
    return ImageAttachment(data=data, mime_type=mime or "application/octet-stream")


async def run(args: argparse.Namespace) -> Dict[str, Any]:
    settings = EngineSettings.from_env()
    if args.agent_json:
        profile = AgentProfile.from_dict(load_json_file(args.agent_json))
        agents = InMemoryAgentRepository([profile])
        agent_id = profile.id
    else:
        agents = JsonAgentRepository(Path(args.agents_dir))
        agent_id = args.agent_id

    # history commands only touch the session store; no model client needed
    if args.clear or args.history:
        sessions = build_session_store(settings.redis_url, ttl=settings.session_ttl)
        key = SessionKey(agent_id, args.caller)
        if args.clear:
            await sessions.clear(key)
            return {"success": True}
        turns = await sessions.read_all(key)
        return {"conversation": [t.to_dict() for t in turns]}

    rng = random.Random(args.seed) if args.seed is not None else None
    engine = build_engine(agents, settings=settings, rng=rng)

    request = ChatRequest(
        agent_id=agent_id,
        text=args.text,
        caller_id=args.caller,
        image=load_image(args.image) if args.image else None,
    )
    reply = await engine.chat(request)
    return reply.to_dict()


def main(argv: Optional[list] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level or EngineSettings.from_env().log_level)
    try:
        result = asyncio.run(run(args))
    except Exception as e:
        logger.debug(f"cli_failed | {type(e).__name__}: {e}")
        body = error_payload(e)
        print(json.dumps({"error": body["error"]}, ensure_ascii=False, indent=2))
        return 1
    print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
