import os

from langchain_google_genai import ChatGoogleGenerativeAI

from src.llm.interface import GenerativeModel
from src.llm.langchain_engine import LangChainModel

MODEL_NAME = os.environ.get("ODOREPORT_MODEL", "gemini-2.5-flash")


def create_model() -> GenerativeModel | None:
    """Create the generative model, or None when no API key is configured.

    Requests may name another Gemini model; it is built with the same key.
    """
    api_key = os.environ.get("GOOGLE_API_KEY")
    if not api_key:
        return None

    def build(name: str) -> ChatGoogleGenerativeAI:
        return ChatGoogleGenerativeAI(
            model=name,
            google_api_key=api_key,
            temperature=0,
        )

    return LangChainModel(build(MODEL_NAME), MODEL_NAME, factory=build)
