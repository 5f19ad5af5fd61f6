from __future__ import annotations

import uuid
from dataclasses import dataclass
from pathlib import Path

from fastapi import HTTPException, UploadFile, status

from epharmacy.config.settings import get_settings

ALLOWED_PRESCRIPTION_TYPES = frozenset(
    {
        "image/jpeg",
        "image/jpg",
        "image/png",
        "application/pdf",
    }
)


@dataclass(frozen=True)
class StoredFile:
    file_name: str
    file_path: Path
    original_name: str
    file_size: int
    mime_type: str


def prescriptions_dir() -> Path:
    path = get_settings().prescriptions_dir
    path.mkdir(parents=True, exist_ok=True)
    return path


def _extension(filename: str) -> str:
    suffix = Path(filename.replace("\\", "/")).suffix.lower()
    # Keep stored names predictable.
    return suffix if suffix.isascii() and len(suffix) <= 10 else ""


async def store_prescription_upload(file: UploadFile) -> StoredFile:
    if not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")

    mime_type = (file.content_type or "").lower()
    if mime_type not in ALLOWED_PRESCRIPTION_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid file type. Only JPEG, PNG, and PDF files are allowed",
        )

    max_bytes = get_settings().max_upload_bytes
    content = await file.read(max_bytes + 1)
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty")
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File size too large. Maximum {max_bytes // (1024 * 1024)}MB allowed",
        )

    file_name = f"{uuid.uuid4()}{_extension(file.filename)}"
    dest = prescriptions_dir() / file_name
    dest.write_bytes(content)

    return StoredFile(
        file_name=file_name,
        file_path=dest,
        original_name=file.filename,
        file_size=len(content),
        mime_type=mime_type,
    )


def resolve_stored_file(file_path: str) -> Path:
    """Resolve a stored path, refusing anything outside the prescriptions directory."""
    try:
        resolved = Path(file_path or "").resolve(strict=True)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found") from exc

    upload_root = prescriptions_dir().resolve(strict=False)
    if upload_root not in resolved.parents:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid file path")
    return resolved


def remove_stored_file(file_path: str) -> None:
    path = Path(file_path or "").resolve()
    upload_root = prescriptions_dir().resolve()
    if upload_root in path.parents and path.is_file():
        path.unlink()
