from __future__ import annotations

import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Any

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from vidtube.config import get_settings

logger = logging.getLogger(__name__)

THUMBNAIL_TRANSFORM = "w_640,h_360,c_fill,q_auto,f_jpg"


class CloudStorage:
    def __init__(self, cloud_name: str | None, api_key: str | None, api_secret: str | None):
        cloudinary.config(
            cloud_name=cloud_name,
            api_key=api_key,
            api_secret=api_secret,
            secure=True,
        )

    def upload(self, local_path: str | Path) -> dict[str, Any] | None:
        try:
            response = cloudinary.uploader.upload(str(local_path), resource_type="auto")
        except (CloudinaryError, OSError) as exc:
            logger.error(
                "Cloud upload failed",
                extra={"path": str(local_path), "error": str(exc)},
            )
            return None
        logger.info(
            "Uploaded asset to cloud storage",
            extra={"public_id": response.get("public_id"), "resource_type": response.get("resource_type")},
        )
        return response

    def delete(self, public_id: str | None, resource_type: str = "image") -> bool:
        if not public_id:
            logger.info("No public id provided for cloud deletion")
            return False
        try:
            result = cloudinary.uploader.destroy(public_id, resource_type=resource_type, invalidate=True)
        except CloudinaryError as exc:
            logger.error(
                "Cloud deletion failed",
                extra={"public_id": public_id, "error": str(exc)},
            )
            return False

        outcome = result.get("result")
        if outcome == "ok":
            return True
        if outcome == "not found":
            logger.warning("Cloud asset not found during deletion", extra={"public_id": public_id})
        else:
            logger.warning(
                "Unexpected cloud deletion response",
                extra={"public_id": public_id, "response": result},
            )
        return False


def derive_thumbnail_url(video_url: str) -> str:
    thumbnail_url = re.sub(r"\.[^/.]+$", ".jpg", video_url)
    return thumbnail_url.replace("/upload/", f"/upload/{THUMBNAIL_TRANSFORM}/", 1)


@lru_cache(maxsize=1)
def get_storage() -> CloudStorage:
    settings = get_settings()
    return CloudStorage(
        cloud_name=settings.cloudinary_cloud_name,
        api_key=settings.cloudinary_api_key,
        api_secret=settings.cloudinary_api_secret,
    )
