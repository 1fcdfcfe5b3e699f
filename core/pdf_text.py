# core/pdf_text.py
import asyncio
from typing import List
import fitz
from core.entities import SourceFile
from util.errors import ExtractionError
from util.timing import timed
import logging

logger = logging.getLogger(__name__)

PAGE_SEP = "\n\n"


def extract_document_text(file_bytes: bytes, filename: str = "document") -> str:
    """
    Return the text of every page joined by blank lines, trimmed.
    A readable PDF without a text layer yields "" (not an error);
    an unreadable one raises ExtractionError.
    """
    try:
        pages: List[str] = []
        with timed(logger, "pdf.open", file=filename):
            with fitz.open(stream=file_bytes, filetype="pdf") as doc:
                with timed(logger, "pdf.parse", pages=doc.page_count):
                    for i in range(doc.page_count):
                        page = doc.load_page(i)
                        pages.append((page.get_text("text") or "").strip())
    except Exception as e:
        # do not log payloads
        logger.error("pdf.parse.error file=%s", filename, exc_info=True)
        raise ExtractionError(f"Failed to extract text from {filename}: {e}") from e

    text = PAGE_SEP.join(pages).strip()
    logger.info("pdf.pages file=%s count=%d chars=%d", filename, len(pages), len(text))
    return text


async def extract_source(source: SourceFile) -> str:
    # PyMuPDF is synchronous; keep the event loop free for the other jobs.
    return await asyncio.to_thread(
        extract_document_text, source.data, source.filename
    )
