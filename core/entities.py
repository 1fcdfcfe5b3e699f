# core/entities.py
from dataclasses import dataclass
from typing import Optional, Union
from util.enums import ProviderId


@dataclass(frozen=True)
class TextIncrement:
    text: str


@dataclass(frozen=True)
class Done:
    pass


@dataclass(frozen=True)
class StreamError:
    message: str


# Normalized unit of provider output. A stream is zero or more
# TextIncrements followed by exactly one Done or StreamError.
StreamEvent = Union[TextIncrement, Done, StreamError]


@dataclass(frozen=True)
class ProviderConfig:
    """
    Provider selection for one batch. Resolved once at batch start.
    A blank model_name means "use the provider default".
    """

    provider: ProviderId
    model_name: Optional[str] = None

    @property
    def model_override(self) -> Optional[str]:
        name = (self.model_name or "").strip()
        return name or None


@dataclass(frozen=True)
class SourceFile:
    filename: str
    data: bytes
    content_type: Optional[str] = None


@dataclass(frozen=True)
class UpstreamRequest:
    url: str
    headers: dict
    body: dict
