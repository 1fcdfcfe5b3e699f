# util/functions.py
import hashlib


def bearer_token(authorization: str | None) -> str | None:
    """
    - Return the credential from an `Authorization: Bearer <token>` header.
    - Anything else (missing header, other schemes, blank token) is None.
    """
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    return token or None


def owner_id(token: str | None) -> str | None:
    # Storage namespace for a caller; the raw credential is never persisted.
    if not token:
        return None
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def is_pdf(filename: str | None, content_type: str | None = None) -> bool:
    if (content_type or "").lower() == "application/pdf":
        return True
    return (filename or "").lower().endswith(".pdf")


def clean_output(text: str) -> str:
    """
    Strip the indentation of the first non-empty line from every line,
    then trim the whole text. Models sometimes indent their entire answer.
    """
    cleaned = text.strip("\n").rstrip()
    lines = cleaned.split("\n")
    for line in lines:
        if line.strip():
            indent = line[: len(line) - len(line.lstrip())]
            break
    else:
        return cleaned.strip()
    if not indent:
        return cleaned.strip()
    return "\n".join(
        ln[len(indent):] if ln.startswith(indent) else ln for ln in lines
    ).strip()
