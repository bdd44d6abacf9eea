"""JSONL export adapter for timed Line records."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

from dualsub_core.ports.export import ExportError, ExportErrorCode, ExportErrorInfo
from dualsub_schemas.subtitles import Line


class JsonlExportAdapter:
    """Write one Line per JSONL row."""

    def __init__(self, allow_untranslated: bool = True) -> None:
        """Initialize the export adapter.

        Args:
            allow_untranslated: Whether lines without a translation may be
                written.
        """
        self._allow_untranslated = allow_untranslated

    async def write_lines(self, path: Path, lines: list[Line]) -> int:
        """Write lines to a JSONL file.

        Args:
            path: Output file path.
            lines: Lines to write.

        Returns:
            int: Number of rows written.
        """
        return await asyncio.to_thread(
            _write_jsonl_sync, path, lines, self._allow_untranslated
        )


def _write_jsonl_sync(path: Path, lines: list[Line], allow_untranslated: bool) -> int:
    if not allow_untranslated:
        missing = [line.id for line in lines if not line.is_resolved]
        if missing:
            raise ExportError(
                ExportErrorInfo(
                    code=ExportErrorCode.UNTRANSLATED_TEXT,
                    message=f"{len(missing)} lines have no translation",
                    output_path=str(path),
                    line_ids=missing,
                )
            )

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as handle:
            for line in lines:
                payload = line.model_dump(exclude_none=True)
                handle.write(json.dumps(payload, ensure_ascii=False) + "\n")
    except OSError as exc:
        raise ExportError(
            ExportErrorInfo(
                code=ExportErrorCode.IO_ERROR,
                message=str(exc),
                output_path=str(path),
            )
        ) from exc
    return len(lines)
