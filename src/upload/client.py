from __future__ import annotations

from typing import Any

import httpx

from src.upload.queue import UploadTask


class ExtractionUploader:
    """Posts one document to the server's extraction endpoint."""

    _PATH = "/maintenance/extract"

    def __init__(self, client: httpx.AsyncClient, token_id: int) -> None:
        self._client = client
        self._token_id = token_id

    async def __call__(self, task: UploadTask) -> dict[str, Any]:
        with task.path.open("rb") as document:
            response = await self._client.post(
                self._PATH,
                data={"token_id": str(self._token_id)},
                files={"document": (task.filename, document, task.mime_type)},
            )
        response.raise_for_status()
        result: dict[str, Any] = response.json()
        return result
