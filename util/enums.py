# util/enums.py
from enum import Enum
from typing import NamedTuple
from fastapi import status


class Color(str, Enum):
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    BOLD = "\033[1m"

    def __str__(self):
        return self.value


class Environment(str, Enum):
    DEV = "dev"
    PROD = "prod"


class ProviderId(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"

    @classmethod
    def parse(cls, value: str | None) -> "ProviderId | None":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return None


class ErrorInfo(NamedTuple):
    message: str
    http_status: int


class ErrorMessage(Enum):
    MISSING_PROMPT_OR_TEXT = ErrorInfo(
        "Missing prompt or text", status.HTTP_400_BAD_REQUEST
    )
    INVALID_PROVIDER = ErrorInfo(
        "Invalid provider. Must be: openai, anthropic, or gemini",
        status.HTTP_400_BAD_REQUEST,
    )
    INVALID_API_KEY = ErrorInfo(
        "API key appears to be invalid (too short)", status.HTTP_400_BAD_REQUEST
    )
    UNAUTHORIZED = ErrorInfo(
        "Unauthorized. Please login first.", status.HTTP_401_UNAUTHORIZED
    )
    PROMPT_NOT_FOUND = ErrorInfo("Prompt not found", status.HTTP_404_NOT_FOUND)
