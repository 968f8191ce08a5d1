from dataclasses import replace

from persona_engine.models import AgentProfile
from persona_engine.prompts import (
    CLOSING_CLAUSE,
    EMOTION_CLAUSES,
    HESITATION_CLAUSES,
    IMAGE_ANALYSIS_PROMPT,
    KNOWLEDGE_CLAUSES,
    LANGUAGE_CLAUSES,
    compile_instructions,
    unrecognized_fields,
)


def test_compile_is_deterministic(expert_profile, nervous_profile):
    for profile in (expert_profile, nervous_profile):
        assert compile_instructions(profile) == compile_instructions(profile)


def test_expert_formal_reserved_low_clauses(expert_profile):
    text = compile_instructions(expert_profile)
    assert text.startswith("You are Dana, a senior product designer in a UX research context. ")
    assert KNOWLEDGE_CLAUSES["Expert"] in text
    assert LANGUAGE_CLAUSES["Formal"] in text
    assert EMOTION_CLAUSES["Reserved"] in text
    assert HESITATION_CLAUSES["Low"] in text
    assert "clarifying questions" not in text
    assert '"um"' not in text
    assert text.endswith(CLOSING_CLAUSE)


def test_clauses_follow_dimension_order(nervous_profile):
    text = compile_instructions(nervous_profile)
    positions = [
        text.index(KNOWLEDGE_CLAUSES["Novice"]),
        text.index(LANGUAGE_CLAUSES["Casual"]),
        text.index(EMOTION_CLAUSES["Highly Expressive"]),
        text.index(HESITATION_CLAUSES["High"]),
        text.index(CLOSING_CLAUSE),
    ]
    assert positions == sorted(positions)


def test_traits_joined_with_commas(expert_profile):
    text = compile_instructions(expert_profile)
    assert "Your key traits include: detail-oriented, skeptical. " in text


def test_no_traits_no_traits_clause(nervous_profile):
    assert "key traits" not in compile_instructions(nervous_profile)


def test_unknown_enum_value_is_silently_skipped(expert_profile):
    odd = replace(expert_profile, knowledge_level="Guru", language_style="Pirate")
    text = compile_instructions(odd)
    for clause in list(KNOWLEDGE_CLAUSES.values()) + list(LANGUAGE_CLAUSES.values()):
        assert clause not in text
    assert EMOTION_CLAUSES["Reserved"] in text
    assert unrecognized_fields(odd) == ["knowledge_level", "language_style"]
    assert unrecognized_fields(expert_profile) == []


def test_defaults_apply_when_dimensions_missing():
    profile = AgentProfile.from_dict({"id": "a", "name": "Lee", "persona": "teacher"})
    text = compile_instructions(profile)
    assert EMOTION_CLAUSES["Moderate"] in text
    assert HESITATION_CLAUSES["Medium"] in text


def test_prompt_override_appended_after_closing(expert_profile):
    custom = replace(expert_profile, prompt="  Focus on checkout flows.  ")
    text = compile_instructions(custom)
    assert text.endswith("Additional instructions: Focus on checkout flows.")
    assert CLOSING_CLAUSE in text


def test_image_prompt_targets_usability():
    assert "usability" in IMAGE_ANALYSIS_PROMPT
    assert "accessibility" in IMAGE_ANALYSIS_PROMPT
