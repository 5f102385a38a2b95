"""
Product image storage on Google Cloud Storage
Images are served back through /api/images/<path> so URLs never expire
"""
import json
import os
import uuid

from flask import current_app
from google.cloud import storage
from google.api_core import exceptions as gcs_exceptions
from werkzeug.utils import secure_filename

ALLOWED_IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "webp", "heic", "heif"}


def allowed_image(filename):
    return "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_IMAGE_EXTENSIONS


def get_storage_client():
    """
    Builds a Cloud Storage client.

    GOOGLE_APPLICATION_CREDENTIALS may hold the service account JSON itself
    (Railway/Vercel style) or a path to the key file.

    Returns:
        storage.Client or None when credentials are not configured
    """
    creds = (current_app.config.get("GOOGLE_APPLICATION_CREDENTIALS") or "").strip()
    if not creds:
        current_app.logger.warning("⚠️ [STORAGE] GOOGLE_APPLICATION_CREDENTIALS is not set")
        return None

    if creds.startswith("{"):
        try:
            info = json.loads(creds)
        except json.JSONDecodeError as e:
            current_app.logger.error(f"❌ [STORAGE] Credentials are not valid JSON: {e}")
            return None
        return storage.Client.from_service_account_info(info)

    if os.path.exists(creds):
        return storage.Client.from_service_account_json(creds)

    current_app.logger.error("❌ [STORAGE] Credentials are neither JSON nor an existing file")
    return None


def _get_bucket():
    client = get_storage_client()
    bucket_name = current_app.config.get("GCS_BUCKET_NAME")
    if not client or not bucket_name:
        return None
    return client.bucket(bucket_name)


def _blob_path(path, bucket_name):
    """Accepts gs://bucket/x, https://storage.googleapis.com/bucket/x or x"""
    marker = f"{bucket_name}/"
    if (path.startswith("gs://") or "storage.googleapis.com" in path) and marker in path:
        return path.split(marker, 1)[1]
    return path


def upload_file(file, folder="products"):
    """
    Uploads a Werkzeug FileStorage.

    Returns:
        str: /api/images/<folder>/<uuid>_<name>, or None when storage is unavailable
    """
    bucket = _get_bucket()
    if bucket is None:
        return None

    filename = secure_filename(file.filename)
    object_name = f"{folder}/{uuid.uuid4()}_{filename}"

    try:
        blob = bucket.blob(object_name)
        blob.upload_from_file(file, content_type=file.content_type)
    except gcs_exceptions.GoogleAPICallError as e:
        current_app.logger.error(f"❌ [STORAGE] Upload failed for {object_name}: {e}")
        return None

    current_app.logger.info(f"✅ [STORAGE] Uploaded {object_name}")
    return f"/api/images/{object_name}"


def get_file_content(path):
    """
    Returns:
        tuple: (bytes, content_type) or (None, None) when missing
    """
    bucket = _get_bucket()
    if bucket is None:
        return None, None

    blob = bucket.blob(_blob_path(path, bucket.name))
    try:
        if not blob.exists():
            return None, None
        content = blob.download_as_bytes()
    except gcs_exceptions.GoogleAPICallError as e:
        current_app.logger.error(f"❌ [STORAGE] Download failed for {path}: {e}")
        return None, None

    return content, blob.content_type or "application/octet-stream"


def delete_file(path):
    """Deletes a stored image; returns True on success"""
    bucket = _get_bucket()
    if bucket is None:
        return False

    if path.startswith("/api/images/"):
        path = path[len("/api/images/"):]

    try:
        bucket.blob(_blob_path(path, bucket.name)).delete()
    except gcs_exceptions.NotFound:
        return False
    return True
