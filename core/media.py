import logging
import os
import re
import uuid
from urllib.parse import unquote, urlparse

from vercel_blob import delete as del_, put

from .errors import Internal, ValidationError
from .tiers import media_kind

logger = logging.getLogger(__name__)

FILE_TYPES = {
    "image": re.compile(r"^(jpeg|jpg|png|webp)$"),
    "video": re.compile(r"^(mp4|webm|mov)$"),
}


def check_file_type(upload, allowed=("image", "video")):
    ext = upload.name.lower().rsplit(".", 1)[-1] if "." in upload.name else ""
    kind = (getattr(upload, "content_type", "") or "").split("/")[0]
    if kind in allowed and FILE_TYPES[kind].match(ext):
        return kind
    raise ValidationError(f"Only {'/'.join(allowed)} files are allowed")


def upload(file, folder):
    """Store an uploaded file in blob storage and return its public URL."""
    if not os.getenv("BLOB_READ_WRITE_TOKEN"):
        logger.error("[MEDIA] Vercel Blob token is missing")
    name = f"{folder}/{uuid.uuid4().hex}-{file.name}"
    try:
        blob = put(name, file.read())
    except Exception as e:
        logger.error(f"[MEDIA] Upload failed for {name}: {e}", exc_info=True)
        raise Internal(f"Upload failed: {e}")
    logger.info(f"[MEDIA] Uploaded {name}")
    return blob["url"]


def upload_many(files, folder, allowed=("image", "video")):
    for f in files:
        check_file_type(f, allowed)
    return [{"url": upload(f, folder), "type": media_kind(f)} for f in files]


def blob_path(url):
    return unquote(urlparse(url).path.lstrip("/"))


def delete(url):
    """Remove a stored file by its URL."""
    path = blob_path(url)
    del_(path)
    logger.info(f"[MEDIA] Deleted {path}")
