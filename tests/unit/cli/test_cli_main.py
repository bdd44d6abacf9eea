"""Unit tests for the dualsub CLI."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from dualsub_cli.main import (
    EXIT_CONFIG_ERROR,
    EXIT_IO_ERROR,
    EXIT_RUN_INCOMPLETE,
    app,
)
from dualsub_core.ports.translator import TranslationError, TranslatorProtocol
from dualsub_schemas.llm import LanguageDetection
from dualsub_schemas.subtitles import Line
from dualsub_schemas.translation import (
    TranslationErrorInfo,
    TranslationErrorKind,
    TranslationOutcome,
    TranslationRequest,
)

runner = CliRunner()

CONFIG_TOML = """
[translation]
target_language = "Vietnamese"

[chunking]
chunk_size = 2
overlap_size = 1

[logging]
sinks = [{ type = "noop" }]
"""


class _StubTranslator(TranslatorProtocol):
    def __init__(
        self, never: set[int] | None = None, reject_text: str | None = None
    ) -> None:
        self.requests: list[TranslationRequest] = []
        self._never = never or set()
        self._reject_text = reject_text

    async def translate(self, request: TranslationRequest) -> TranslationOutcome:
        self.requests.append(request)
        if any(line.source_text == self._reject_text for line in request.lines):
            raise TranslationError(
                TranslationErrorInfo(
                    kind=TranslationErrorKind.AUTHENTICATION,
                    message="Invalid API key",
                    status_code=401,
                )
            )
        return {
            line.id: f"vi {line.source_text}"
            for line in request.lines
            if line.id not in self._never
        }



class _StubAssistant:
    def __init__(
        self, language: str = "English", context: str = "", glossary: str = ""
    ) -> None:
        self.calls: list[tuple[str, str]] = []
        self._language = language
        self._context = context
        self._glossary = glossary

    async def generate_context(self, file_name: str) -> str:
        self.calls.append(("context", file_name))
        return self._context

    async def generate_glossary(self, file_name: str, target_language: str) -> str:
        self.calls.append(("glossary", target_language))
        return self._glossary

    async def detect_language(self, lines: list[Line]) -> LanguageDetection:
        self.calls.append(("language", str(len(lines))))
        return LanguageDetection(
            language=self._language,
            is_english=self._language == "English",
        )

def _write_lines(path: Path, rows: list[dict[str, object]]) -> Path:
    path.write_text(
        "\n".join(json.dumps(row, ensure_ascii=False) for row in rows) + "\n",
        encoding="utf-8",
    )
    return path


def _source_rows() -> list[dict[str, object]]:
    return [
        {"id": 0, "start_ms": 0, "end_ms": 1500, "source_text": "Hello"},
        {"id": 1, "start_ms": 2000, "end_ms": 3500, "source_text": "How are you"},
        {"id": 2, "start_ms": 4000, "end_ms": 5500, "source_text": "Goodbye"},
    ]


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    """Write a minimal TOML config.

    Returns:
        Path: Config file path.
    """
    path = tmp_path / "dualsub.toml"
    path.write_text(CONFIG_TOML, encoding="utf-8")
    return path


@pytest.fixture
def api_key(monkeypatch: pytest.MonkeyPatch) -> str:
    """Provide the endpoint API key through the environment.

    Returns:
        str: API key value.
    """
    monkeypatch.setenv("DUALSUB_API_KEY", "sk-test")
    return "sk-test"


def _read_rows(path: Path) -> list[dict[str, object]]:
    return [json.loads(row) for row in path.read_text(encoding="utf-8").splitlines()]


@pytest.mark.unit
def test_version_command() -> None:
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert "dualsub v0.1.0" in result.output


@pytest.mark.unit
def test_translate_writes_translated_lines(
    tmp_path: Path, config_path: Path, api_key: str
) -> None:
    input_path = _write_lines(tmp_path / "source.jsonl", _source_rows())
    output_path = tmp_path / "out" / "translated.jsonl"
    translator = _StubTranslator()

    with patch("dualsub_cli.main.LlmTranslator", return_value=translator) as factory:
        result = runner.invoke(
            app,
            [
                "translate",
                "--input",
                str(input_path),
                "--output",
                str(output_path),
                "--config",
                str(config_path),
                "--target-language",
                "French",
            ],
        )

    assert result.exit_code == 0, result.output
    assert factory.call_args.kwargs["api_key"] == api_key
    assert [request.target_language for request in translator.requests] == [
        "French",
        "French",
    ]
    rows = _read_rows(output_path)
    assert [row["translated_text"] for row in rows] == [
        "vi Hello",
        "vi How are you",
        "vi Goodbye",
    ]
    assert rows[0]["end_ms"] == 1500


@pytest.mark.unit
def test_translate_writes_progress_file(
    tmp_path: Path, config_path: Path, api_key: str
) -> None:
    input_path = _write_lines(tmp_path / "source.jsonl", _source_rows())
    progress_path = tmp_path / "progress.jsonl"

    with patch("dualsub_cli.main.LlmTranslator", return_value=_StubTranslator()):
        result = runner.invoke(
            app,
            [
                "translate",
                "-i",
                str(input_path),
                "-o",
                str(tmp_path / "translated.jsonl"),
                "-c",
                str(config_path),
                "--progress-file",
                str(progress_path),
            ],
        )

    assert result.exit_code == 0, result.output
    updates = _read_rows(progress_path)
    assert updates[0]["event"] == "run_started"
    assert updates[-1]["event"] == "run_completed"
    assert updates[-1]["percent"] == 100


@pytest.mark.unit
def test_translate_incomplete_run_exits_non_zero(
    tmp_path: Path, config_path: Path, api_key: str
) -> None:
    input_path = _write_lines(tmp_path / "source.jsonl", _source_rows())
    output_path = tmp_path / "translated.jsonl"

    with patch(
        "dualsub_cli.main.LlmTranslator", return_value=_StubTranslator(never={1})
    ):
        result = runner.invoke(
            app,
            [
                "translate",
                "-i",
                str(input_path),
                "-o",
                str(output_path),
                "-c",
                str(config_path),
            ],
        )

    assert result.exit_code == EXIT_RUN_INCOMPLETE
    assert "1 (ids 1)" in result.output
    rows = _read_rows(output_path)
    assert "translated_text" not in rows[1]
    assert rows[0]["translated_text"] == "vi Hello"


@pytest.mark.unit
def test_translate_missing_api_key_is_config_error(
    tmp_path: Path, config_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("DUALSUB_API_KEY", raising=False)
    monkeypatch.setattr("dualsub_cli.main.load_dotenv", lambda *args, **kwargs: False)
    input_path = _write_lines(tmp_path / "source.jsonl", _source_rows())

    result = runner.invoke(
        app,
        [
            "translate",
            "-i",
            str(input_path),
            "-o",
            str(tmp_path / "translated.jsonl"),
            "-c",
            str(config_path),
        ],
    )

    assert result.exit_code == EXIT_CONFIG_ERROR
    assert "Missing API key" in result.output


@pytest.mark.unit
def test_translate_missing_config_is_config_error(tmp_path: Path, api_key: str) -> None:
    input_path = _write_lines(tmp_path / "source.jsonl", _source_rows())

    result = runner.invoke(
        app,
        [
            "translate",
            "-i",
            str(input_path),
            "-o",
            str(tmp_path / "translated.jsonl"),
            "-c",
            str(tmp_path / "missing.toml"),
        ],
    )

    assert result.exit_code == EXIT_CONFIG_ERROR


@pytest.mark.unit
def test_translate_invalid_input_is_io_error(
    tmp_path: Path, config_path: Path, api_key: str
) -> None:
    input_path = tmp_path / "broken.jsonl"
    input_path.write_text("{not json\n", encoding="utf-8")

    with patch("dualsub_cli.main.LlmTranslator", return_value=_StubTranslator()):
        result = runner.invoke(
            app,
            [
                "translate",
                "-i",
                str(input_path),
                "-o",
                str(tmp_path / "translated.jsonl"),
                "-c",
                str(config_path),
            ],
        )

    assert result.exit_code == EXIT_IO_ERROR
    assert "Ingest failed" in result.output


@pytest.mark.unit
def test_merge_attaches_translated_track(tmp_path: Path, config_path: Path) -> None:
    source_path = _write_lines(tmp_path / "source.jsonl", _source_rows())
    translated_path = _write_lines(
        tmp_path / "track.jsonl",
        [
            {"id": 0, "start_ms": 0, "end_ms": 1500, "source_text": "Xin chào"},
            {
                "id": 1,
                "start_ms": 2000,
                "end_ms": 3500,
                "source_text": "Bạn khỏe không",
            },
            {"id": 2, "start_ms": 4000, "end_ms": 5500, "source_text": "Tạm biệt"},
        ],
    )
    output_path = tmp_path / "merged.jsonl"

    result = runner.invoke(
        app,
        [
            "merge",
            "-i",
            str(source_path),
            "--translated",
            str(translated_path),
            "-o",
            str(output_path),
            "-c",
            str(config_path),
            "--no-optimize",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Merged 3 lines" in result.output
    rows = _read_rows(output_path)
    assert [row["translated_text"] for row in rows] == [
        "Xin chào",
        "Bạn khỏe không",
        "Tạm biệt",
    ]
    assert [row["end_ms"] for row in rows] == [1500, 3500, 5500]


@pytest.mark.unit
def test_translate_queue_isolates_terminal_failure(
    tmp_path: Path, config_path: Path, api_key: str
) -> None:
    broken = _write_lines(
        tmp_path / "episode1.jsonl",
        [{"id": 0, "start_ms": 0, "end_ms": 1500, "source_text": "Broken"}],
    )
    healthy = _write_lines(tmp_path / "episode2.jsonl", _source_rows())
    output_dir = tmp_path / "out"

    with patch(
        "dualsub_cli.main.LlmTranslator",
        return_value=_StubTranslator(reject_text="Broken"),
    ):
        result = runner.invoke(
            app,
            [
                "translate",
                "-i",
                str(broken),
                "-i",
                str(healthy),
                "--output-dir",
                str(output_dir),
                "-c",
                str(config_path),
            ],
        )

    assert result.exit_code == EXIT_RUN_INCOMPLETE
    assert "Stopped: Invalid API key" in result.output
    assert "Translated 1 of 2 files" in result.output
    first = _read_rows(output_dir / "episode1.translated.jsonl")
    assert "translated_text" not in first[0]
    second = _read_rows(output_dir / "episode2.translated.jsonl")
    assert [row["translated_text"] for row in second] == [
        "vi Hello",
        "vi How are you",
        "vi Goodbye",
    ]


@pytest.mark.unit
def test_translate_defaults_output_next_to_input(
    tmp_path: Path, config_path: Path, api_key: str
) -> None:
    input_path = _write_lines(tmp_path / "movie.jsonl", _source_rows())

    with patch("dualsub_cli.main.LlmTranslator", return_value=_StubTranslator()):
        result = runner.invoke(
            app, ["translate", "-i", str(input_path), "-c", str(config_path)]
        )

    assert result.exit_code == 0, result.output
    assert len(_read_rows(tmp_path / "movie.translated.jsonl")) == 3


@pytest.mark.unit
def test_translate_single_output_rejects_several_inputs(
    tmp_path: Path, config_path: Path, api_key: str
) -> None:
    first = _write_lines(tmp_path / "a.jsonl", _source_rows())
    second = _write_lines(tmp_path / "b.jsonl", _source_rows())

    result = runner.invoke(
        app,
        [
            "translate",
            "-i",
            str(first),
            "-i",
            str(second),
            "-o",
            str(tmp_path / "out.jsonl"),
            "-c",
            str(config_path),
        ],
    )

    assert result.exit_code == EXIT_CONFIG_ERROR


@pytest.mark.unit
def test_translate_auto_context_and_glossary(
    tmp_path: Path, config_path: Path, api_key: str
) -> None:
    input_path = _write_lines(tmp_path / "Heist.S01E01.jsonl", _source_rows())
    translator = _StubTranslator()
    assistant = _StubAssistant(
        context="A crew plans one last heist", glossary="Kaito = Kaito"
    )

    with (
        patch("dualsub_cli.main.LlmTranslator", return_value=translator),
        patch("dualsub_cli.main.SubtitleAssistant", return_value=assistant),
    ):
        result = runner.invoke(
            app,
            [
                "translate",
                "-i",
                str(input_path),
                "-c",
                str(config_path),
                "--auto-context",
                "--auto-glossary",
            ],
        )

    assert result.exit_code == 0, result.output
    assert assistant.calls == [
        ("context", "Heist.S01E01.jsonl"),
        ("glossary", "Vietnamese"),
    ]
    assert {request.context for request in translator.requests} == {
        "A crew plans one last heist"
    }
    assert {request.glossary for request in translator.requests} == {"Kaito = Kaito"}


@pytest.mark.unit
def test_translate_auto_context_keeps_explicit_context(
    tmp_path: Path, config_path: Path, api_key: str
) -> None:
    input_path = _write_lines(tmp_path / "source.jsonl", _source_rows())
    translator = _StubTranslator()
    assistant = _StubAssistant(context="Generated")

    with (
        patch("dualsub_cli.main.LlmTranslator", return_value=translator),
        patch("dualsub_cli.main.SubtitleAssistant", return_value=assistant),
    ):
        result = runner.invoke(
            app,
            [
                "translate",
                "-i",
                str(input_path),
                "-c",
                str(config_path),
                "--context",
                "A family drama",
                "--auto-context",
            ],
        )

    assert result.exit_code == 0, result.output
    assert assistant.calls == []
    assert translator.requests[0].context == "A family drama"


@pytest.mark.unit
def test_translate_declined_source_language_skips_file(
    tmp_path: Path, config_path: Path, api_key: str
) -> None:
    input_path = _write_lines(tmp_path / "source.jsonl", _source_rows())
    output_path = tmp_path / "translated.jsonl"
    translator = _StubTranslator()

    with (
        patch("dualsub_cli.main.LlmTranslator", return_value=translator),
        patch(
            "dualsub_cli.main.SubtitleAssistant",
            return_value=_StubAssistant(language="French"),
        ),
    ):
        result = runner.invoke(
            app,
            [
                "translate",
                "-i",
                str(input_path),
                "-o",
                str(output_path),
                "-c",
                str(config_path),
                "--detect-language",
            ],
            input="n\n",
        )

    assert result.exit_code == EXIT_RUN_INCOMPLETE
    assert "Cancelled (French)" in result.output
    assert translator.requests == []
    assert not output_path.exists()


@pytest.mark.unit
def test_translate_detected_language_accepted_with_yes(
    tmp_path: Path, config_path: Path, api_key: str
) -> None:
    input_path = _write_lines(tmp_path / "source.jsonl", _source_rows())
    output_path = tmp_path / "translated.jsonl"

    with (
        patch("dualsub_cli.main.LlmTranslator", return_value=_StubTranslator()),
        patch(
            "dualsub_cli.main.SubtitleAssistant",
            return_value=_StubAssistant(language="French"),
        ),
    ):
        result = runner.invoke(
            app,
            [
                "translate",
                "-i",
                str(input_path),
                "-o",
                str(output_path),
                "-c",
                str(config_path),
                "--detect-language",
                "--yes",
            ],
        )

    assert result.exit_code == 0, result.output
    assert len(_read_rows(output_path)) == 3


class _RejectingAssistant(_StubAssistant):
    async def generate_context(self, file_name: str) -> str:
        raise TranslationError(
            TranslationErrorInfo(
                kind=TranslationErrorKind.QUOTA, message="Quota exhausted"
            )
        )


@pytest.mark.unit
def test_translate_terminal_helper_error_stops_file(
    tmp_path: Path, config_path: Path, api_key: str
) -> None:
    input_path = _write_lines(tmp_path / "source.jsonl", _source_rows())
    translator = _StubTranslator()

    with (
        patch("dualsub_cli.main.LlmTranslator", return_value=translator),
        patch("dualsub_cli.main.SubtitleAssistant", return_value=_RejectingAssistant()),
    ):
        result = runner.invoke(
            app,
            [
                "translate",
                "-i",
                str(input_path),
                "-c",
                str(config_path),
                "--auto-context",
            ],
        )

    assert result.exit_code == EXIT_RUN_INCOMPLETE
    assert "Stopped: Quota exhausted" in result.output
    assert translator.requests == []
