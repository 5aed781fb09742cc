from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass

from src.llm.responses import ModelResponse

NOT_CONFIGURED_MESSAGE = (
    "Generative model not configured. Set GOOGLE_API_KEY to enable AI features."
)


class FailureKind(enum.Enum):
    NOT_CONFIGURED = "not_configured"
    UPSTREAM = "upstream"
    PARSE = "parse"


@dataclass(frozen=True)
class Attachment:
    filename: str
    mime_type: str
    data: bytes

    @property
    def is_pdf(self) -> bool:
        return self.mime_type == "application/pdf"


class UnsupportedModelError(ValueError):
    pass


class GenerativeModel(ABC):
    name: str

    def with_model(self, name: str) -> GenerativeModel:
        """Return a model answering with ``name`` instead of the default."""
        if name == self.name:
            return self
        raise UnsupportedModelError(f"Model {name!r} is not available")

    @abstractmethod
    async def generate(
        self, prompt: str, attachment: Attachment | None = None
    ) -> ModelResponse: ...
