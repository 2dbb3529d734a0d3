import logging
import os
import shutil
from pathlib import Path

import httpx
from django.conf import settings
from django.urls import reverse
from google.cloud import storage

logger = logging.getLogger(__name__)


def _gcs_client():
    if settings.GCP_SERVICE_ACCOUNT_FILE:
        return storage.Client.from_service_account_json(settings.GCP_SERVICE_ACCOUNT_FILE)
    return storage.Client()


def _parse_gs(gcs_uri: str):
    if not gcs_uri.startswith('gs://'):
        raise ValueError(f'Not a GCS URI: {gcs_uri}')
    bucket, _, key = gcs_uri[5:].partition('/')
    return bucket, key


def gcs_to_public_url(gcs_uri: str) -> str:
    bucket, key = _parse_gs(gcs_uri)
    return f'https://storage.googleapis.com/{bucket}/{key}' if key else f'https://storage.googleapis.com/{bucket}'


def upload_to_gcs(local_path: str, gcs_uri: str) -> str:
    bucket_name, blob_name = _parse_gs(gcs_uri)
    blob = _gcs_client().bucket(bucket_name).blob(blob_name)
    blob.upload_from_filename(local_path, content_type='video/mp4')
    return gcs_uri


def make_fetchable_url(gcs_uri: str, expiration_seconds: int = 7 * 24 * 3600) -> str:
    """Public URL when the object is readable anonymously, signed URL otherwise."""
    public = gcs_to_public_url(gcs_uri)
    try:
        r = httpx.head(public, timeout=15)
        if r.status_code == 200:
            return public
    except httpx.HTTPError as e:
        logger.info('Public URL check failed for %s: %s', public, e)
    bucket, key = _parse_gs(gcs_uri)
    blob = _gcs_client().bucket(bucket).blob(key)
    return blob.generate_signed_url(expiration=expiration_seconds, method='GET')


def merged_filename(job_id) -> str:
    return f'merged_{job_id}.mp4'


def merged_video_path(filename: str) -> Path:
    return Path(settings.MERGED_VIDEO_DIR) / filename


def publish_merged_video(local_path: str, job_id) -> str:
    """Move a freshly merged file to durable storage and return its URL.

    Uses GCS when ``GCS_BUCKET`` is set, otherwise the local media directory
    served by the clip endpoint. The temp file is consumed either way.
    """
    filename = merged_filename(job_id)
    if settings.GCS_BUCKET:
        gcs_uri = f'gs://{settings.GCS_BUCKET}/merged-videos/{filename}'
        try:
            upload_to_gcs(local_path, gcs_uri)
        finally:
            os.remove(local_path)
        logger.info('Uploaded merged video for job %s to %s', job_id, gcs_uri)
        return make_fetchable_url(gcs_uri)

    target = merged_video_path(filename)
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(local_path, target)
    logger.info('Stored merged video for job %s at %s', job_id, target)
    return reverse('video-clip', kwargs={'filename': filename})
