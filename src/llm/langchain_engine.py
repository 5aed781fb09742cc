from __future__ import annotations

import base64
import logging
import time
from collections.abc import Callable
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage

from src.llm.interface import Attachment, GenerativeModel
from src.llm.responses import ChatChoice, ModelResponse

logger = logging.getLogger(__name__)


class LangChainModel(GenerativeModel):
    """Generative model backed by a LangChain chat model (Google Gemini)."""

    def __init__(
        self,
        llm: BaseChatModel,
        name: str,
        factory: Callable[[str], BaseChatModel] | None = None,
    ) -> None:
        self._llm = llm
        self.name = name
        self._factory = factory

    def with_model(self, name: str) -> GenerativeModel:
        if name == self.name or self._factory is None:
            return super().with_model(name)
        logger.info("Switching model from %s to %s", self.name, name)
        return LangChainModel(self._factory(name), name, self._factory)

    async def generate(
        self, prompt: str, attachment: Attachment | None = None
    ) -> ModelResponse:
        message = HumanMessage(content=_build_content(prompt, attachment))

        start = time.monotonic()
        response = await self._llm.ainvoke([message])
        duration = time.monotonic() - start
        logger.info("Model %s answered in %.2fs", self.name, duration)

        usage = getattr(response, "usage_metadata", None)
        return ChatChoice(
            content=response.content,
            usage=dict(usage) if usage else None,
        )


def _build_content(
    prompt: str, attachment: Attachment | None
) -> list[str | dict[str, Any]]:
    content: list[str | dict[str, Any]] = [{"type": "text", "text": prompt}]
    if attachment is None:
        return content

    encoded = base64.b64encode(attachment.data).decode("ascii")
    if attachment.is_pdf:
        content.append(
            {"type": "media", "mime_type": attachment.mime_type, "data": encoded}
        )
    else:
        content.append(
            {
                "type": "image_url",
                "image_url": {"url": f"data:{attachment.mime_type};base64,{encoded}"},
            }
        )
    return content
