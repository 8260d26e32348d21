"""
Source loading: web pages and uploaded files.

URLs are fetched with LangChain's WebBaseLoader (requests + BeautifulSoup
text extraction). The loader is synchronous, so each fetch runs on a
worker thread under its own deadline.

Uploaded files are decoded once, up front, into a single Document that
carries an upload_id. That id is what the index cache keys uploads by.

Usage:
    from rag_agent.indexing.loaders import WebSourceLoader, UploadedFile, decode_upload

    docs = await WebSourceLoader(timeout=20).fetch_all(["https://example.com"])
    doc = decode_upload(UploadedFile(file_name="notes.pdf", mime_type="application/pdf", data=raw))
"""

import asyncio
import hashlib
import logging
import os
import tempfile
from typing import Optional

from langchain_core.documents import Document
from pydantic import BaseModel, Field

from rag_agent.base.indexer import BaseSourceLoader
from rag_agent.errors import FetchFailure, InvalidInput, PipelineTimeout
from rag_agent.utils.helpers import run_with_timeout

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
TEXT_MIME_TYPES = {"text/plain", "text/markdown"}
SUPPORTED_MIME_TYPES = {PDF_MIME_TYPE} | TEXT_MIME_TYPES


class UploadedFile(BaseModel):
    """Raw bytes of a file a user uploaded, before decoding."""

    file_name: str
    mime_type: str
    data: bytes
    upload_id: Optional[str] = Field(
        default=None, description="Identifier assigned by the upload layer",
    )


class WebSourceLoader(BaseSourceLoader):
    """
    Fetches web pages as Documents.

    Any URL failing fails the whole fetch_all(): an index built from a
    subset of the requested URLs would be cached under the full URL set.
    """

    def __init__(self, timeout: float = 20.0, header_template: Optional[dict] = None):
        self._timeout = timeout
        self._header_template = header_template

    async def fetch(self, url: str) -> list[Document]:
        from langchain_community.document_loaders import WebBaseLoader

        loader = WebBaseLoader(url, header_template=self._header_template)
        try:
            documents = await run_with_timeout(
                asyncio.to_thread(loader.load), self._timeout, stage="fetch_sources",
            )
        except PipelineTimeout:
            raise
        except Exception as exc:
            raise FetchFailure(
                f"Could not load {url}", source=url, stage="fetch_sources", cause=exc,
            ) from exc

        documents = [doc for doc in documents if doc.page_content.strip()]
        if not documents:
            raise FetchFailure(
                f"No text content found at {url}", source=url, stage="fetch_sources",
            )

        for doc in documents:
            doc.metadata.setdefault("source", url)
            doc.metadata.setdefault("mime_type", "text/html")

        logger.info("Fetched %s (%d document(s))", url, len(documents))
        return documents


def decode_upload(upload: UploadedFile) -> Document:
    """
    Turn an uploaded file into one Document.

    PDFs are parsed page by page with PyPDFLoader and the pages joined
    with blank lines. Text files are decoded as UTF-8.

    Raises:
        InvalidInput: unsupported MIME type.
        FetchFailure: the file could not be parsed.
    """
    mime_type = upload.mime_type.split(";")[0].strip().lower()
    if mime_type not in SUPPORTED_MIME_TYPES:
        raise InvalidInput(
            f"Unsupported file type '{upload.mime_type}'. "
            f"Supported: {', '.join(sorted(SUPPORTED_MIME_TYPES))}.",
            stage="validate",
        )

    if mime_type == PDF_MIME_TYPE:
        content = _extract_pdf_text(upload)
    else:
        content = upload.data.decode("utf-8", errors="replace")

    upload_id = upload.upload_id or hashlib.sha256(upload.data).hexdigest()
    return Document(
        page_content=content,
        metadata={
            "source": upload.file_name,
            "file_name": upload.file_name,
            "mime_type": mime_type,
            "upload_id": upload_id,
        },
    )


def _extract_pdf_text(upload: UploadedFile) -> str:
    """PyPDFLoader needs a path, so the bytes go through a temp file."""
    from langchain_community.document_loaders import PyPDFLoader

    with tempfile.NamedTemporaryFile(suffix=".pdf", delete=False) as tmp:
        tmp.write(upload.data)
        path = tmp.name

    try:
        pages = PyPDFLoader(path).load()
    except Exception as exc:
        raise FetchFailure(
            f"Could not read PDF '{upload.file_name}'",
            source=upload.file_name,
            stage="decode_upload",
            cause=exc,
        ) from exc
    finally:
        os.unlink(path)

    return "\n\n".join(page.page_content for page in pages)
