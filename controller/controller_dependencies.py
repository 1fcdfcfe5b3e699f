# controller/controller_dependencies.py
from typing import List, Optional
from fastapi import File, Header, HTTPException, Request, UploadFile
from fastapi_limiter.depends import RateLimiter
from config.settings import settings
from core.entities import SourceFile
from repository.prompt_repository import PromptRepository
from repository.user_key_repository import UserKeyRepository
from service.batch_service import BatchService
from service.credential_service import CredentialService
from service.llm_service import LLMService
from service.prompt_service import PromptService
from util import functions

# Shared instance so tests can swap it out via app.dependency_overrides.
rate_limiter = RateLimiter(
    times=settings.RATE_LIMIT_TIMES, seconds=settings.RATE_LIMIT_SECONDS
)


def get_credential_service() -> CredentialService:
    return CredentialService(UserKeyRepository())


def get_llm_service() -> LLMService:
    return LLMService(get_credential_service())


def get_batch_service() -> BatchService:
    return BatchService(get_credential_service())


def get_prompt_service() -> PromptService:
    return PromptService(PromptRepository())


async def get_bearer_token(
    authorization: Optional[str] = Header(default=None),
) -> Optional[str]:
    # Absence means "use the shared configuration", never an error here.
    return functions.bearer_token(authorization)


def _too_large() -> HTTPException:
    return HTTPException(
        status_code=413,
        detail={
            "ok": False,
            "error": "file_too_large",
            "maxMb": settings.MAX_FILE_MB,
        },
    )


async def read_uploaded_files(
    request: Request, files: List[UploadFile] = File(default=[])
) -> List[SourceFile]:
    MAX_BYTES = settings.MAX_FILE_MB * 1024 * 1024
    # Fast pre-check via Content-Length covering the whole multipart body
    cl = request.headers.get("content-length")
    if cl and int(cl) > MAX_BYTES * max(1, settings.MAX_BATCH_FILES):
        raise _too_large()

    out: List[SourceFile] = []
    for upload in files:
        # Hard cap per file while reading (works even without Content-Length)
        blob = await upload.read(MAX_BYTES + 1)
        if len(blob) > MAX_BYTES:
            raise _too_large()
        out.append(
            SourceFile(
                filename=upload.filename or "document.pdf",
                data=blob,
                content_type=upload.content_type,
            )
        )
    return out
