"""
Admin file uploads (course thumbnails and the like)
Files land in UPLOAD_DIR and are served back under /uploads
"""

import logging
import re
import time
from pathlib import Path
from typing import List, Tuple

import aiofiles
from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile

from examprep.core import config
from examprep.core.security import UserContext, admin_auth

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Uploads"])

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def sanitize_filename(filename: str) -> str:
    name = Path(filename or "").name
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    return name or "file"


async def read_upload_with_limit(file: UploadFile, max_bytes: int) -> Tuple[bytes, int]:
    chunks: List[bytes] = []
    total = 0
    while True:
        chunk = await file.read(1024 * 1024)
        if not chunk:
            break
        total += len(chunk)
        if total > max_bytes:
            raise HTTPException(status_code=413, detail=f"File too large. Max {max_bytes} bytes.")
        chunks.append(chunk)
    return b"".join(chunks), total


def public_url(request: Request, stored_name: str) -> str:
    base = config.PUBLIC_BASE_URL or str(request.base_url).rstrip("/")
    return f"{base}/uploads/{stored_name}"


@router.post("/upload")
async def upload_file(
    request: Request,
    file: UploadFile = File(...),
    admin: UserContext = Depends(admin_auth)
):
    if not file.filename:
        raise HTTPException(status_code=400, detail="No file provided")

    content, size = await read_upload_with_limit(file, config.MAX_UPLOAD_BYTES)

    upload_dir = Path(config.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    stored_name = f"{int(time.time() * 1000)}-{sanitize_filename(file.filename)}"

    async with aiofiles.open(upload_dir / stored_name, "wb") as f:
        await f.write(content)

    logger.info("Upload %s (%d bytes) by %s", stored_name, size, admin.user_id)
    return {"success": True, "url": public_url(request, stored_name), "filename": stored_name}
