"""Storage service: site image assets in Supabase Storage (prod) or local disk (dev).

Assets are owned by exactly one site. Every path is namespaced
``<owner_id>/<site_id>/<file>`` so a site's assets can be purged as one
folder when the site is deleted, without touching any other site.

Supabase bucket: site-assets (SUPABASE_ASSET_BUCKET).
Local fallback: instance/uploads/ directory.
"""

import logging
import os
import shutil
import uuid

import requests
from flask import current_app
from werkzeug.utils import secure_filename

from sitesmith.errors import StorageError

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 5 * 1024 * 1024
# Supabase list endpoint page size
LIST_PAGE_SIZE = 1000

# extension -> the MIME type a browser should report for it
IMAGE_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
}


def _get_supabase_config():
    """Return Supabase storage config if available, else None."""
    url = current_app.config.get("SUPABASE_URL")
    key = current_app.config.get("SUPABASE_SERVICE_KEY")
    bucket = current_app.config.get("SUPABASE_ASSET_BUCKET", "site-assets")

    if url and key:
        return {"url": url.rstrip("/"), "key": key, "bucket": bucket}
    return None


def site_folder(owner_id, site_id):
    return f"{owner_id}/{site_id}"


def validate_file(file):
    """Validate an uploaded image (from request.files).

    Returns (ok: bool, error: str|None).
    """
    if not file or not file.filename:
        return False, "No file selected."

    ext = os.path.splitext(file.filename)[1].lower()
    if ext not in IMAGE_TYPES:
        return False, f"File type '{ext}' is not allowed. Site assets must be images."

    # .jpg sent as image/png is tolerated, text/html named .png is not
    if file.content_type and not file.content_type.startswith("image/"):
        return False, f"Content type '{file.content_type}' is not an image."

    file.seek(0, os.SEEK_END)
    size = file.tell()
    file.seek(0)

    if not size:
        return False, "File is empty."
    if size > MAX_FILE_SIZE:
        limit_mb = MAX_FILE_SIZE // (1024 * 1024)
        return False, f"Image is too large ({size / (1024 * 1024):.1f} MB, limit {limit_mb} MB)."

    return True, None


def upload_asset(file, owner_id, site_id):
    """Upload an image for a site and return metadata dict.

    Returns dict with:
        filename: original filename
        storage_path: path in bucket or on disk
        content_type: MIME type
        file_size: bytes
        public_url: URL to access the file
    """
    original_name = secure_filename(file.filename) or "upload"
    ext = os.path.splitext(file.filename)[1].lower()
    storage_path = f"{site_folder(owner_id, site_id)}/{uuid.uuid4().hex}{ext}"

    file_data = file.read()
    content_type = file.content_type or IMAGE_TYPES.get(ext, "application/octet-stream")

    supabase = _get_supabase_config()
    if supabase:
        public_url = _upload_supabase(supabase, storage_path, file_data, content_type)
    else:
        public_url = _upload_local(storage_path, file_data)

    return {
        "filename": original_name,
        "storage_path": storage_path,
        "content_type": content_type,
        "file_size": len(file_data),
        "public_url": public_url,
    }


def _upload_supabase(config, path, data, content_type):
    """Upload to Supabase Storage. Returns public URL."""
    url = f"{config['url']}/storage/v1/object/{config['bucket']}/{path}"

    headers = {
        "Authorization": f"Bearer {config['key']}",
        "Content-Type": content_type,
        "x-upsert": "false",
    }

    try:
        resp = requests.post(url, headers=headers, data=data, timeout=30)
        resp.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"Supabase upload failed for {path}: {e}")
        raise StorageError(f"Asset upload failed: {e}") from e

    logger.info(f"Uploaded to Supabase: {path}")
    return f"{config['url']}/storage/v1/object/public/{config['bucket']}/{path}"


def _local_root():
    return os.path.join(current_app.instance_path, "uploads")


def _upload_local(path, data):
    """Upload to local filesystem (dev fallback). Returns URL path."""
    filepath = os.path.join(_local_root(), path)
    os.makedirs(os.path.dirname(filepath), exist_ok=True)
    with open(filepath, "wb") as f:
        f.write(data)

    logger.info(f"Uploaded locally: {filepath}")
    return f"/uploads/{path}"


def purge_site_assets(owner_id, site_id):
    """Delete every asset stored under a site's folder.

    Returns the number of files removed. Raises StorageError when the
    backend cannot list or delete, so the caller can keep the site row
    instead of orphaning its files.
    """
    folder = site_folder(owner_id, site_id)
    supabase = _get_supabase_config()
    if supabase:
        return _purge_supabase(supabase, folder)
    return _purge_local(folder)


def _purge_supabase(config, folder):
    headers = {"Authorization": f"Bearer {config['key']}"}
    list_url = f"{config['url']}/storage/v1/object/list/{config['bucket']}"
    delete_url = f"{config['url']}/storage/v1/object/{config['bucket']}"

    try:
        paths = []
        offset = 0
        while True:
            resp = requests.post(
                list_url,
                headers=headers,
                json={"prefix": folder, "limit": LIST_PAGE_SIZE, "offset": offset},
                timeout=10,
            )
            resp.raise_for_status()
            page = resp.json() or []
            paths.extend(f"{folder}/{item['name']}" for item in page)
            if len(page) < LIST_PAGE_SIZE:
                break
            offset += LIST_PAGE_SIZE

        if not paths:
            return 0

        resp = requests.delete(
            delete_url, headers=headers, json={"prefixes": paths}, timeout=10
        )
        resp.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"Failed to purge Supabase folder {folder}: {e}")
        raise StorageError(f"Asset purge failed for {folder}: {e}") from e

    logger.info(f"Purged {len(paths)} assets from Supabase: {folder}")
    return len(paths)


def _purge_local(folder):
    path = os.path.join(_local_root(), folder)
    if not os.path.isdir(path):
        return 0
    count = sum(len(files) for _, _, files in os.walk(path))
    try:
        shutil.rmtree(path)
    except OSError as e:
        logger.error(f"Failed to purge local folder {path}: {e}")
        raise StorageError(f"Asset purge failed for {folder}: {e}") from e
    logger.info(f"Purged {count} local assets: {path}")
    return count
