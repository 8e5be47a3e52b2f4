# manga_studio/lib/gcs_inventory.py
import os
from datetime import timedelta
from typing import Any, Dict, Optional

from google.cloud import storage

from manga_studio.config import config
from manga_studio import logger

log = logger.get_logger(__name__)

_storage = None
def _client():
    global _storage
    if _storage is None:
        _storage = storage.Client()
    return _storage

def _signing_creds():
    import google.auth
    from google.auth import impersonated_credentials
    # Base creds from runtime (Cloud Run SA token)
    base_creds, _ = google.auth.default(scopes=["https://www.googleapis.com/auth/cloud-platform"])
    # A key-file SA can sign by itself
    if getattr(base_creds, "signer", None):
        return base_creds
    # Otherwise impersonate a service account that CAN sign
    target_sa = os.getenv("GCS_SIGNING_SERVICE_ACCOUNT")
    if not target_sa:
        try:
            from google.auth.compute_engine import metadata
            target_sa = metadata.get_service_account_email()
        except Exception as e:
            log.debug(f"no default service account from metadata: {e}")
    if not target_sa:
        raise RuntimeError("Cannot sign URLs: set GCS_SIGNING_SERVICE_ACCOUNT to the service account email.")
    return impersonated_credentials.Credentials(
        source_credentials=base_creds,
        target_principal=target_sa,
        target_scopes=[
            "https://www.googleapis.com/auth/devstorage.read_write",
            "https://www.googleapis.com/auth/cloud-platform",
        ],
        lifetime=3600,
    )

def upload_to_gcs(
    local_path: str,
    *,
    object_name: str,
    content_type: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Upload a local file to config.gcs_bucket and return its gs:// URI plus a
    v4 signed download URL.
    """
    if not config.gcs_bucket:
        raise RuntimeError("GCS_BUCKET not configured")

    bucket = _client().bucket(config.gcs_bucket)
    blob = bucket.blob(object_name)
    blob.cache_control = "private, max-age=3600"
    blob.upload_from_filename(local_path, content_type=content_type)

    filename = os.path.basename(local_path)
    signed_url = blob.generate_signed_url(
        version="v4",
        expiration=timedelta(seconds=config.signed_url_ttl),
        method="GET",
        response_disposition=f'attachment; filename="{filename}"',
        response_type=content_type or "application/octet-stream",
        credentials=_signing_creds(),
    )

    return {
        "bucket": config.gcs_bucket,
        "object": object_name,
        "gs_uri": f"gs://{config.gcs_bucket}/{object_name}",
        "signed_url": signed_url,
        "expires_in": config.signed_url_ttl,
        "content_type": content_type or "application/octet-stream",
    }
