"""Prompt construction and reply parsing for translation and helper requests."""

from __future__ import annotations

import re

from dualsub_schemas.subtitles import Line
from dualsub_schemas.translation import TranslationOutcome, TranslationRequest

SEPARATOR = "|||"
LINE_BREAK = "[br]"
MAX_CHARS_PER_ROW = 42
MAX_ROWS = 2
DEFAULT_DURATION_MS = 2000
SHORT_LINE_MS = 1500
LANGUAGE_SAMPLE_LINES = 20
LANGUAGE_SAMPLE_MIN_CHARS = 6

_ID_PATTERN = re.compile(r"^\D*?(\d+)\s*$")

SYSTEM_PROMPT = "You are a professional subtitle translator and formatter."
HELPER_SYSTEM_PROMPT = "You are a film and television research assistant."

_FORMATTING_RULES = f"""STRICT FORMATTING RULES:
1. MAX LENGTH: Each row must be at most {MAX_CHARS_PER_ROW} characters.
2. ROW COUNT: At most {MAX_ROWS} rows per subtitle.
3. TIMING AWARENESS: Each line carries its maximum display time in milliseconds.
   - If the duration is under {SHORT_LINE_MS}ms the translation MUST be very concise.
   - Do not pad a translation because the duration is long.
4. LINGUISTIC BREAKS: Never split a noun from its article or a preposition from its noun.
5. DIALOGUE: When a subtitle holds two speakers (rows starting with "- "), keep each speaker on its own row.
6. LINE BREAK TOKEN: Use "{LINE_BREAK}" for a line break inside a subtitle."""

_CONDENSE_RULES = f"""CRITICAL RETRY INSTRUCTION: The previous translations were TOO LONG. Condense the meaning.
- Sacrifice minor details for brevity.
- Use shorter synonyms.
- Strictly enforce the {MAX_CHARS_PER_ROW} character limit."""


def build_language_instruction(
    target_language: str, context: str | None, condense: bool = False
) -> str:
    """Return the style guidance block for the target language.

    Args:
        target_language: Target language name.
        context: Optional plot or setting summary.
        condense: Whether to add the condense instruction.

    Returns:
        str: Instruction block.
    """
    parts: list[str] = []
    if context:
        parts.append(f"CONTEXT: {context}.")
    if target_language.lower() == "vietnamese":
        if context:
            parts.append(
                "PRONOUN GUIDANCE: Speaker identity is unknown for individual lines, "
                "so default to neutral or polite pronouns (Tôi/Bạn, Anh/Chị). Use "
                "relational pronouns only when the dialogue makes the relationship "
                "unmistakable."
            )
        else:
            parts.append("Use natural Vietnamese. Default to neutral pronouns (Tôi/Bạn).")
    else:
        parts.append("Translate naturally and conversationally.")
    parts.append(_FORMATTING_RULES)
    if condense:
        parts.append(_CONDENSE_RULES)
    return "\n\n".join(parts)


def format_input_line(line: Line, duration_ms: int | None) -> str:
    """Return one ``ID | Dur | Text`` row.

    A zero budget is real (dense cues) and is passed through as ``0ms``.

    Returns:
        str: Formatted request row.
    """
    duration = DEFAULT_DURATION_MS if duration_ms is None else duration_ms
    return f"ID: {line.id} | Dur: {duration}ms | Text: {line.source_text}"


def build_translation_prompt(
    request: TranslationRequest,
    lines: list[Line] | None = None,
    condense: bool = False,
) -> str:
    """Build the user prompt for a translation request.

    Previous lines are included for continuity only and are omitted from
    condense retries.

    Args:
        request: Translation request.
        lines: Subset of the request's lines to translate.
        condense: Whether this is a condense retry.

    Returns:
        str: Prompt text.
    """
    to_translate = lines if lines is not None else request.lines
    instruction = build_language_instruction(
        request.target_language, request.context, condense=condense
    )
    sections = [
        f"Translate the subtitles below into {request.target_language}.",
        instruction,
        "\n".join([
            "Rules:",
            '1. Input format: "ID: <id> | Dur: <ms> | Text: <text>".',
            f'2. Output format: "<id> {SEPARATOR} <Translated Text>", one per row.',
            f'3. Keep the ID and " {SEPARATOR} " separator exactly as is.',
            "4. Preserve formatting tags (like <i>, <b>, <font>) exactly.",
            f'5. Insert "{LINE_BREAK}" where a break is needed to meet the '
            f"{MAX_CHARS_PER_ROW}-char/{MAX_ROWS}-row limit.",
        ]),
    ]
    if request.glossary:
        sections.append(f"GLOSSARY (keep these names and terms):\n{request.glossary}")
    if request.previous_lines and not condense:
        previous = "\n".join(
            f"{line.id} {SEPARATOR} {line.source_text}"
            for line in request.previous_lines
        )
        sections.append(f"PREVIOUS LINES (Context only - DO NOT TRANSLATE):\n{previous}")
    rows = "\n".join(
        format_input_line(line, request.duration_budget.get(line.id))
        for line in to_translate
    )
    sections.append(f"LINES TO TRANSLATE:\n{rows}")
    return "\n\n".join(sections)


def parse_translation_output(
    text: str, requested_ids: set[int] | frozenset[int]
) -> TranslationOutcome:
    """Parse ``<id> ||| <text>`` rows from a model reply.

    Rows without the separator, with a non-numeric id, an id that was not
    requested, or blank text are skipped. A later row for the same id wins.

    Args:
        text: Raw model output.
        requested_ids: Ids that were part of the request.

    Returns:
        TranslationOutcome: Parsed id to text mapping.
    """
    outcome: TranslationOutcome = {}
    for row in text.splitlines():
        head, separator, tail = row.partition(SEPARATOR)
        if not separator:
            continue
        match = _ID_PATTERN.match(head.strip())
        if match is None:
            continue
        line_id = int(match.group(1))
        translated = tail.strip()
        if line_id in requested_ids and translated:
            outcome[line_id] = translated
    return outcome


def visible_length(text: str) -> int:
    """Return the character count without line break tokens.

    Returns:
        int: Length used for the condense check.
    """
    return len(text.replace(LINE_BREAK, ""))


def build_context_prompt(file_name: str) -> str:
    """Build the prompt that summarizes a show's plot from its file name.

    Returns:
        str: Prompt text.
    """
    return "\n".join([
        f'Identify the movie or TV show from this filename: "{file_name}".',
        "",
        "Output ONLY a concise 2-3 sentence summary of the plot and main "
        "character dynamics.",
        "",
        "Rules:",
        '1. No "Based on the filename..." or "This appears to be...".',
        "2. No warnings about unreleased seasons or file discrepancies.",
        "3. No meta-commentary.",
        "4. Start directly with the plot description.",
    ])


def build_glossary_prompt(file_name: str, target_language: str) -> str:
    """Build the prompt that lists names and terms to keep consistent.

    Returns:
        str: Prompt text.
    """
    return "\n".join([
        f'Identify the movie or TV show from this filename: "{file_name}".',
        "",
        f"List the main character names, places and recurring terms, with how "
        f"each should be written in {target_language} subtitles.",
        "",
        "Rules:",
        '1. One entry per row: "<original> = <rendering>".',
        "2. At most 30 entries.",
        "3. No commentary before or after the list.",
    ])


def language_sample(lines: list[Line]) -> str:
    """Return up to twenty substantial source rows for language detection.

    Returns:
        str: Newline-joined sample, empty when no row is long enough.
    """
    rows = [
        line.source_text
        for line in lines
        if len(line.source_text) >= LANGUAGE_SAMPLE_MIN_CHARS
    ]
    return "\n".join(rows[:LANGUAGE_SAMPLE_LINES])


def build_language_prompt(sample: str) -> str:
    """Build the prompt that names the primary language of a sample.

    Returns:
        str: Prompt text.
    """
    return "\n".join([
        "Analyze the following text sample from a subtitle file.",
        "Identify the primary language.",
        "",
        'Respond with ONLY the language name (e.g. "English", "Vietnamese", '
        '"Spanish").',
        "",
        "TEXT SAMPLE:",
        sample,
    ])


def parse_language_name(text: str) -> str | None:
    """Return the language named in a detection reply.

    Returns:
        str | None: Language name without periods, or None for a blank reply.
    """
    name = text.strip().splitlines()[0] if text.strip() else ""
    name = name.replace(".", "").strip().strip('"').strip()
    return name or None
