# config/settings.py
import os
import sys
from typing import Optional
from dotenv import load_dotenv
from pydantic import ValidationError, Field
from pydantic_settings import BaseSettings
from util.constants import ExternalURIs
from util.enums import Environment
import logging


if os.getenv("APP_ENV", Environment.DEV) == Environment.DEV:
    load_dotenv()

_log = logging.getLogger("config.settings")


class Settings(BaseSettings):
    # App
    APP_ENV: str = Field(default=Environment.DEV.value, validation_alias="APP_ENV")
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0", validation_alias="REDIS_URL"
    )
    REDIS_CONNECT_TIMEOUT_SECONDS: float = Field(
        default=5.0, validation_alias="REDIS_CONNECT_TIMEOUT_SECONDS"
    )

    # CORS & Limits
    ALLOWED_ORIGIN: str = Field(
        default="http://localhost:3000", validation_alias="ALLOWED_ORIGIN"
    )
    RATE_LIMIT_TIMES: int = Field(default=30, validation_alias="RATE_LIMIT_TIMES")
    RATE_LIMIT_SECONDS: int = Field(default=60, validation_alias="RATE_LIMIT_SECONDS")
    MAX_FILE_MB: int = Field(default=25, validation_alias="MAX_FILE_MB")
    MAX_BATCH_FILES: int = Field(default=20, validation_alias="MAX_BATCH_FILES")
    TRUST_PROXY: bool = Field(default=False, validation_alias="TRUST_PROXY")
    MIN_USER_KEY_LENGTH: int = 10

    # OpenAI
    OPENAI_API_URL: str = Field(
        default=ExternalURIs.OPENAI_CHAT, validation_alias="OPENAI_API_URL"
    )
    OPENAI_MODEL: str = Field(default="gpt-5.1", validation_alias="OPENAI_MODEL")
    OPENAI_API_KEY: Optional[str] = Field(default=None, validation_alias="OPENAI_API_KEY")

    # Anthropic
    ANTHROPIC_API_URL: str = Field(
        default=ExternalURIs.ANTHROPIC_MESSAGES, validation_alias="ANTHROPIC_API_URL"
    )
    ANTHROPIC_MODEL: str = Field(
        default="claude-sonnet-4-5-20250929", validation_alias="ANTHROPIC_MODEL"
    )
    ANTHROPIC_VERSION: str = Field(
        default="2023-06-01", validation_alias="ANTHROPIC_VERSION"
    )
    ANTHROPIC_API_KEY: Optional[str] = Field(
        default=None, validation_alias="ANTHROPIC_API_KEY"
    )

    # Gemini
    GEMINI_API_BASE: str = Field(
        default=ExternalURIs.GEMINI_MODELS, validation_alias="GEMINI_API_BASE"
    )
    GEMINI_MODEL: str = Field(
        default="gemini-3-pro-preview", validation_alias="GEMINI_MODEL"
    )
    GEMINI_API_KEY: Optional[str] = Field(default=None, validation_alias="GEMINI_API_KEY")

    # Generation (shared by every provider)
    LLM_MAX_OUTPUT_TOKENS: int = Field(
        default=16000, validation_alias="LLM_MAX_OUTPUT_TOKENS"
    )
    LLM_TEMPERATURE: float = Field(default=0.7, validation_alias="LLM_TEMPERATURE")
    LLM_CONNECT_TIMEOUT_SECONDS: float = Field(
        default=10.0, validation_alias="LLM_CONNECT_TIMEOUT_SECONDS"
    )
    # None keeps reads unbounded; a hung upstream is bounded by JOB_TIMEOUT_SECONDS.
    LLM_READ_TIMEOUT_SECONDS: Optional[float] = Field(
        default=None, validation_alias="LLM_READ_TIMEOUT_SECONDS"
    )
    JOB_TIMEOUT_SECONDS: Optional[float] = Field(
        default=None, validation_alias="JOB_TIMEOUT_SECONDS"
    )

    # Streaming backend used by the command-line client
    BACKEND_URL: str = Field(
        default="http://127.0.0.1:8000/api/v1/llm", validation_alias="BACKEND_URL"
    )

    # Logging knobs
    LOGGER_NAME: str = "transcript-parser"
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_TO_FILE: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    LOG_DIR: str = Field(default="logs", validation_alias="LOG_DIR")
    LOG_FILE_NAME: str = Field(default="app.log", validation_alias="LOG_FILE_NAME")
    LOG_MAX_BYTES: int = Field(
        default=50 * 1024 * 1024, validation_alias="LOG_MAX_BYTES"
    )
    LOG_BACKUP_COUNT: int = Field(default=5, validation_alias="LOG_BACKUP_COUNT")


try:
    settings = Settings()
except ValidationError as e:
    print("❌ Missing/invalid environment variables:", file=sys.stderr)
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "")
        print(f" - {loc}: {msg}", file=sys.stderr)
    sys.exit(1)
except Exception as e:
    print(f"❌ Settings initialization failed: {e}", file=sys.stderr)
    sys.exit(1)
