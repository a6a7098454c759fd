"""
Upload validation.

Runs in the HTTP layer before anything reaches the git service: size,
count and type limits.
"""
from pathlib import PurePosixPath
from typing import Optional

from fastapi import UploadFile

from app.config import Settings, get_settings
from app.services.git.results import UploadedFile

ALLOWED_CONTENT_TYPES = {
    "text/plain",
    "text/markdown",
    "text/x-markdown",
    "text/html",
    "text/css",
    "text/csv",
    "text/xml",
    "text/javascript",
    "text/x-python",
    "application/json",
    "application/javascript",
    "application/typescript",
    "application/xml",
    "application/pdf",
    "application/zip",
    "application/gzip",
    "application/x-tar",
    "application/x-gzip",
    "application/x-yaml",
    "image/png",
    "image/jpeg",
    "image/gif",
    "image/webp",
    "image/svg+xml",
}

ALLOWED_EXTENSIONS = {
    ".txt", ".md", ".markdown", ".rst",
    ".json", ".yaml", ".yml", ".toml", ".ini", ".cfg", ".env",
    ".js", ".mjs", ".jsx", ".ts", ".tsx",
    ".py", ".go", ".rs", ".java", ".c", ".h", ".cpp", ".sh",
    ".html", ".htm", ".css", ".scss", ".xml", ".svg", ".csv",
    ".png", ".jpg", ".jpeg", ".gif", ".webp", ".ico",
    ".pdf", ".zip", ".tar", ".gz", ".tgz",
}


class UploadRejected(Exception):
    """An upload failed validation; maps to HTTP 400."""
    pass


def is_allowed_type(filename: str, content_type: Optional[str]) -> bool:
    """Accepted when either the content type or the extension is allowed."""
    mime = (content_type or "").split(";")[0].strip().lower()
    if mime in ALLOWED_CONTENT_TYPES or mime.startswith("text/"):
        return True
    return PurePosixPath(filename).suffix.lower() in ALLOWED_EXTENSIONS


async def read_upload(upload: UploadFile, settings: Optional[Settings] = None) -> UploadedFile:
    """
    Read and validate one multipart file.

    Raises:
        UploadRejected: Missing name, too large, or type not allowed
    """
    settings = settings or get_settings()
    filename = upload.filename or ""
    if not filename:
        raise UploadRejected("Uploaded file has no name")
    if not is_allowed_type(filename, upload.content_type):
        raise UploadRejected(f"File type not allowed: {filename} ({upload.content_type})")

    # Read one byte past the limit to detect oversize uploads
    data = await upload.read(settings.max_upload_bytes + 1)
    if len(data) > settings.max_upload_bytes:
        raise UploadRejected(
            f"File too large: {filename} exceeds {settings.max_upload_bytes} bytes"
        )
    return UploadedFile(original_name=filename, data=data)


async def read_uploads(uploads: list[UploadFile], settings: Optional[Settings] = None) -> list[UploadedFile]:
    settings = settings or get_settings()
    if not uploads:
        raise UploadRejected("No files uploaded")
    if len(uploads) > settings.max_upload_files:
        raise UploadRejected(f"Too many files: at most {settings.max_upload_files} per upload")
    return [await read_upload(upload, settings) for upload in uploads]
