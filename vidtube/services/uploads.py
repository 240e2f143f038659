from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from fastapi import UploadFile

from vidtube.exceptions import BadRequestError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def stage_upload(upload: UploadFile, temp_dir: Path, max_bytes: int) -> Path:
    temp_dir.mkdir(parents=True, exist_ok=True)
    original = Path(upload.filename or "upload").name or "upload"
    target = temp_dir / f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}-{original}"

    written = 0
    try:
        with target.open("wb") as handle:
            while chunk := upload.file.read(CHUNK_SIZE):
                written += len(chunk)
                if written > max_bytes:
                    raise BadRequestError(f"File too large: limit is {max_bytes} bytes")
                handle.write(chunk)
    except BaseException:
        discard(target)
        raise
    return target


def discard(*paths: Path | None) -> None:
    for path in paths:
        if path is None:
            continue
        try:
            path.unlink(missing_ok=True)
            logger.debug("Deleted local file: %s", path)
        except OSError as exc:
            logger.warning("Failed to delete local file %s: %s", path, exc)


@contextmanager
def staged_files(
    temp_dir: str | Path,
    max_bytes: int,
    *uploads: UploadFile | None,
) -> Iterator[list[Path | None]]:
    staged: list[Path | None] = []
    try:
        for upload in uploads:
            if upload is None or not upload.filename:
                staged.append(None)
                continue
            staged.append(stage_upload(upload, Path(temp_dir), max_bytes))
        yield staged
    finally:
        discard(*staged)
