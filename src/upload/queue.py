from __future__ import annotations

import enum
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from src.extraction.documents import guess_mime_type, is_supported_document

logger = logging.getLogger(__name__)


class UploadStatus(enum.Enum):
    QUEUED = "queued"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class UploadTask:
    path: Path
    size: int
    mime_type: str
    status: UploadStatus = UploadStatus.QUEUED
    percent: int = 0
    response: dict[str, Any] | None = None

    @property
    def filename(self) -> str:
        return self.path.name

    @property
    def is_terminal(self) -> bool:
        return self.status in (UploadStatus.COMPLETED, UploadStatus.ERROR)


Uploader = Callable[[UploadTask], Awaitable[dict[str, Any]]]


class UploadQueue:
    """Uploads documents one at a time, in the order they were added."""

    def __init__(self, on_change: Callable[[UploadTask], None] | None = None) -> None:
        self.tasks: list[UploadTask] = []
        self._on_change = on_change

    def add(self, paths: Iterable[Path]) -> list[Path]:
        """Queue supported documents and return the paths that were skipped."""
        skipped: list[Path] = []
        for path in paths:
            mime_type = guess_mime_type(path.name)
            if not is_supported_document(path.name, mime_type):
                skipped.append(path)
                continue
            self.tasks.append(
                UploadTask(path=path, size=path.stat().st_size, mime_type=mime_type)
            )

        if skipped:
            logger.warning("Skipped %d unsupported file(s)", len(skipped))
        return skipped

    def _update(self, task: UploadTask, **changes: Any) -> None:
        for key, value in changes.items():
            setattr(task, key, value)
        if self._on_change is not None:
            self._on_change(task)

    async def run(self, uploader: Uploader) -> list[UploadTask]:
        """Upload every queued task. A failed upload does not stop the rest."""
        for task in self.tasks:
            if task.status is not UploadStatus.QUEUED:
                continue

            self._update(task, status=UploadStatus.UPLOADING, percent=50)
            try:
                response = await uploader(task)
            except Exception as exc:
                logger.exception("Upload failed for %s", task.filename)
                self._update(
                    task,
                    status=UploadStatus.ERROR,
                    percent=100,
                    response={"error": str(exc)},
                )
                continue

            self._update(
                task, status=UploadStatus.COMPLETED, percent=100, response=response
            )

        return self.tasks
