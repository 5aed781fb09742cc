"""Normalization of generative model answers to plain text and JSON."""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from langchain_core.utils.json import parse_json_markdown


@dataclass(frozen=True)
class PlainText:
    text: str


@dataclass(frozen=True)
class ChatChoice:
    """A chat completion message. Content may be a list of content blocks."""

    content: str | list[str | dict[str, Any]]
    usage: dict[str, Any] | None = None


@dataclass(frozen=True)
class FileResponseEnvelope:
    """A full response object, as returned for file-backed requests."""

    payload: dict[str, Any] = field(default_factory=dict)


ModelResponse = PlainText | ChatChoice | FileResponseEnvelope

_OBJECT_SPAN_PATTERN = re.compile(r"\{.*\}", re.DOTALL)


def _join_blocks(content: str | list[str | dict[str, Any]]) -> str:
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif block.get("type") in ("text", "output_text"):
            parts.append(str(block.get("text", "")))
    return "".join(parts)


def output_text(response: ModelResponse) -> str:
    """Return the raw text the model produced, whatever the response shape."""
    if isinstance(response, PlainText):
        return response.text
    if isinstance(response, ChatChoice):
        return _join_blocks(response.content)

    payload = response.payload
    text = payload.get("output_text")
    if isinstance(text, str):
        return text
    parts = [
        _join_blocks(item.get("content") or [])
        for item in payload.get("output") or []
        if isinstance(item, Mapping)
    ]
    if any(parts):
        return "".join(parts)
    return json.dumps(payload, default=str)


def parse_json_payload(text: str) -> Any | None:
    """Parse model text as JSON, optionally wrapped in a ```json fence.

    Falls back to the first ``{...}`` span. Returns None when neither
    attempt yields JSON.
    """
    try:
        return parse_json_markdown(text, parser=json.loads)
    except json.JSONDecodeError:
        pass

    match = _OBJECT_SPAN_PATTERN.search(text)
    if match is None:
        return None
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
