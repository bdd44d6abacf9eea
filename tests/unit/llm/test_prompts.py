"""Unit tests for translation prompt building and reply parsing."""

from __future__ import annotations

import pytest

from dualsub_core.timing import compute_duration_budgets
from dualsub_llm.prompts import (
    build_language_instruction,
    build_translation_prompt,
    parse_translation_output,
    visible_length,
)
from dualsub_schemas.config import ModelSettings
from dualsub_schemas.subtitles import Line
from dualsub_schemas.translation import TranslationRequest


def _request(**overrides: object) -> TranslationRequest:
    payload: dict[str, object] = {
        "lines": [
            Line(id=1, start_ms=0, end_ms=1000, source_text="Hello"),
            Line(id=2, start_ms=2000, end_ms=3000, source_text="Goodbye"),
        ],
        "target_language": "Vietnamese",
        "model": ModelSettings(),
        "duration_budget": {1: 1500},
    }
    payload.update(overrides)
    return TranslationRequest.model_validate(payload)


@pytest.mark.unit
def test_prompt_lists_lines_with_durations() -> None:
    prompt = build_translation_prompt(_request())

    assert "ID: 1 | Dur: 1500ms | Text: Hello" in prompt
    assert "ID: 2 | Dur: 2000ms | Text: Goodbye" in prompt
    assert "into Vietnamese" in prompt


@pytest.mark.unit
def test_prompt_keeps_zero_budget_for_dense_cues() -> None:
    lines = [
        Line(id=1, start_ms=1000, end_ms=1020, source_text="Hi"),
        Line(id=2, start_ms=1030, end_ms=2000, source_text="There"),
    ]
    budgets = compute_duration_budgets(lines)

    prompt = build_translation_prompt(
        _request(lines=lines, duration_budget=budgets)
    )

    assert budgets == {1: 0, 2: 6000}
    assert "ID: 1 | Dur: 0ms | Text: Hi" in prompt
    assert "ID: 2 | Dur: 6000ms | Text: There" in prompt


@pytest.mark.unit
def test_prompt_includes_previous_lines_as_context() -> None:
    previous = [Line(id=0, start_ms=0, end_ms=10, source_text="Earlier")]

    prompt = build_translation_prompt(_request(previous_lines=previous))

    assert "PREVIOUS LINES (Context only - DO NOT TRANSLATE):\n0 ||| Earlier" in prompt


@pytest.mark.unit
def test_condense_prompt_drops_context_and_limits_lines() -> None:
    previous = [Line(id=0, start_ms=0, end_ms=10, source_text="Earlier")]
    request = _request(previous_lines=previous)

    prompt = build_translation_prompt(request, [request.lines[1]], condense=True)

    assert "PREVIOUS LINES" not in prompt
    assert "CRITICAL RETRY INSTRUCTION" in prompt
    assert "Text: Hello" not in prompt
    assert "Text: Goodbye" in prompt


@pytest.mark.unit
def test_prompt_includes_glossary() -> None:
    prompt = build_translation_prompt(_request(glossary="Kaito = Kaito"))

    assert "GLOSSARY" in prompt
    assert "Kaito = Kaito" in prompt


@pytest.mark.unit
def test_language_instruction_varies_by_language() -> None:
    vietnamese = build_language_instruction("Vietnamese", "A family drama")
    french = build_language_instruction("French", None)

    assert "CONTEXT: A family drama." in vietnamese
    assert "PRONOUN GUIDANCE" in vietnamese
    assert "PRONOUN" not in french
    assert "Translate naturally" in french


@pytest.mark.unit
def test_parse_output_keeps_requested_rows() -> None:
    text = "\n".join([
        "Here you go:",
        "1 ||| Xin chào",
        "ID: 2 ||| Tạm biệt",
        "3 |||   ",
        "9 ||| Not requested",
        "abc ||| Not an id",
        "1 ||| Chào bạn",
    ])

    outcome = parse_translation_output(text, {1, 2, 3})

    assert outcome == {1: "Chào bạn", 2: "Tạm biệt"}


@pytest.mark.unit
def test_parse_output_keeps_separator_inside_text() -> None:
    outcome = parse_translation_output("4 ||| A ||| B", {4})

    assert outcome == {4: "A ||| B"}


@pytest.mark.unit
def test_visible_length_ignores_line_breaks() -> None:
    assert visible_length("abc[br]def") == 6
