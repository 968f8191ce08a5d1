"""
Persona-conditioned chat engine for simulated UX research interviews.

Modules:
- models: AgentProfile, ConversationTurn, chat request/reply shapes
- prompts: profile -> system instruction compiler + image analysis prompt
- sessions: TTL-bound session stores (in-memory, Redis)
- vision: image analysis via a multimodal chat model
- context: message list assembly with a bounded history window
- synthesizer: timed generation call via LangChain
- humanizer: fillers, emotional punctuation, self-corrections
- service: PersonaChatEngine tying one chat turn together
"""
