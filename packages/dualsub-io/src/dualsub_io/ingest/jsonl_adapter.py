"""JSONL ingest adapter for timed Line records."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

from pydantic import ValidationError

from dualsub_core.ports.ingest import (
    IngestBatchError,
    IngestError,
    IngestErrorCode,
    IngestErrorDetails,
    IngestErrorInfo,
)
from dualsub_schemas.subtitles import Line

ALLOWED_KEYS = {"id", "start_ms", "end_ms", "source_text", "translated_text"}


class JsonlIngestAdapter:
    """Load one Line per JSONL row."""

    async def load_lines(self, path: Path) -> list[Line]:
        """Load JSONL content into Line records sorted by start time.

        Args:
            path: JSONL file path.

        Returns:
            list[Line]: Parsed lines in timeline order.
        """
        return await asyncio.to_thread(_load_jsonl_sync, path)


def _load_jsonl_sync(path: Path) -> list[Line]:
    source_path = str(path)
    lines: list[Line] = []
    errors: list[IngestErrorInfo] = []
    seen_ids: set[int] = set()
    try:
        with open(path, encoding="utf-8") as handle:
            for line_number, raw_line in enumerate(handle, start=1):
                if raw_line.strip() == "":
                    continue
                try:
                    parsed: object = json.loads(raw_line)
                except json.JSONDecodeError:
                    errors.append(
                        _error(
                            IngestErrorCode.PARSE_ERROR,
                            "JSONL line is not valid JSON",
                            line_number,
                            source_path,
                        )
                    )
                    continue

                if not isinstance(parsed, dict):
                    errors.append(
                        _error(
                            IngestErrorCode.VALIDATION_ERROR,
                            "JSONL line must be a JSON object",
                            line_number,
                            source_path,
                        )
                    )
                    continue

                unknown_keys = sorted(key for key in parsed if key not in ALLOWED_KEYS)
                if unknown_keys:
                    errors.append(
                        _error(
                            IngestErrorCode.VALIDATION_ERROR,
                            "JSONL object has unexpected fields",
                            line_number,
                            source_path,
                            field=", ".join(unknown_keys),
                        )
                    )
                    continue

                try:
                    line = Line.model_validate(parsed)
                except ValidationError as exc:
                    errors.append(
                        _error(
                            IngestErrorCode.VALIDATION_ERROR,
                            _summarize_validation(exc),
                            line_number,
                            source_path,
                        )
                    )
                    continue

                if line.id in seen_ids:
                    errors.append(
                        _error(
                            IngestErrorCode.DUPLICATE_ID,
                            "Line id appears more than once",
                            line_number,
                            source_path,
                            field="id",
                            provided=str(line.id),
                        )
                    )
                    continue
                seen_ids.add(line.id)
                lines.append(line)
    except OSError as exc:
        raise IngestError(
            IngestErrorInfo(
                code=IngestErrorCode.IO_ERROR,
                message=str(exc),
                details=IngestErrorDetails(source_path=source_path),
            )
        ) from exc

    if errors:
        raise IngestBatchError(errors)

    return sorted(lines, key=lambda line: line.start_ms)


def _error(
    code: IngestErrorCode,
    message: str,
    line_number: int,
    source_path: str,
    field: str | None = None,
    provided: str | None = None,
) -> IngestErrorInfo:
    return IngestErrorInfo(
        code=code,
        message=message,
        details=IngestErrorDetails(
            field=field,
            line_number=line_number,
            provided=provided,
            source_path=source_path,
        ),
    )


def _summarize_validation(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        parts.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "; ".join(parts) or str(exc)
