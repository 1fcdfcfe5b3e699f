# repository/namespaces.py
from typing import Final

ROOT: Final[str] = "transcriptparser"

PROMPTS: Final[str] = f"{ROOT}:prompts"  # hash per owner: name -> json
USER_KEYS: Final[str] = f"{ROOT}:userkeys"  # hash per owner: provider -> json
SHARED_OWNER: Final[str] = "shared"
