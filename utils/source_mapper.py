# utils/source_mapper.py
"""Map semantic-search chunk metadata to web-accessible GitHub URLs"""
import os
from typing import Dict, Any
from urllib.parse import quote

from config import settings


def get_github_config() -> Dict[str, str]:
    return {
        "owner": settings.GITHUB_OWNER,
        "repo": settings.GITHUB_REPO,
        "branch": settings.GITHUB_BRANCH,
    }


def github_blob_url(path: str) -> str:
    """Blob URL for a repository-relative content path."""
    clean = path.replace("\\", "/")
    while clean.startswith("./"):
        clean = clean[2:]
    clean = clean.lstrip("/")
    return (
        f"https://github.com/{settings.GITHUB_OWNER}/{settings.GITHUB_REPO}"
        f"/blob/{settings.GITHUB_BRANCH}/{quote(clean)}"
    )


def _is_url(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(("http://", "https://"))


def chunk_source_url(chunk_id: str, metadata: Dict[str, Any]) -> str:
    """
    Resolve a chunk to a link the caller can open.

    Preference: explicit URL in metadata, then a content path mapped onto the
    GitHub repo, then the stable `rag:<chunk id>` identifier.
    """
    for key in ("source_url", "url"):
        if _is_url(metadata.get(key)):
            return metadata[key]

    for key in ("file_path", "path", "source"):
        value = metadata.get(key)
        if _is_url(value):
            return value
        if isinstance(value, str) and value.strip():
            return github_blob_url(value.strip())

    return f"rag:{chunk_id}"


def chunk_title(chunk_id: str, metadata: Dict[str, Any]) -> str:
    for key in ("title", "heading", "section"):
        if isinstance(metadata.get(key), str) and metadata[key].strip():
            return metadata[key].strip()
    for key in ("file_path", "path", "source"):
        value = metadata.get(key)
        if isinstance(value, str) and value.strip() and not _is_url(value):
            return os.path.splitext(os.path.basename(value.strip()))[0]
    return f"Chunk {chunk_id}"
