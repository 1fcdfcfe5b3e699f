# service/prompt_service.py
import logging
from typing import List, Optional
from model.api import PromptItem
from repository.prompt_repository import PromptRepository
from util import functions
from util.enums import ErrorMessage
from util.errors import AppError

logger = logging.getLogger(__name__)


class PromptService:
    """
    Saved prompts, scoped to the signed-in caller or the shared namespace
    when there is no credential.
    """

    def __init__(self, prompts: PromptRepository) -> None:
        self._prompts = prompts

    async def list(self, token: Optional[str]) -> List[PromptItem]:
        return await self._prompts.list(functions.owner_id(token))

    async def save(self, token: Optional[str], name: str, text: str) -> str:
        name = name.strip()
        if not name or not text.strip():
            raise AppError("Please enter both a prompt name and prompt text")
        created = await self._prompts.upsert(functions.owner_id(token), name, text)
        logger.info("prompt.saved created=%s", created)
        return f'Prompt "{name}" {"saved" if created else "updated"}'

    async def delete(self, token: Optional[str], name: str) -> str:
        removed = await self._prompts.delete(functions.owner_id(token), name.strip())
        if not removed:
            raise AppError(
                f'No prompt named "{name}" found',
                ErrorMessage.PROMPT_NOT_FOUND.value.http_status,
            )
        logger.info("prompt.deleted")
        return f'Prompt "{name}" deleted'
