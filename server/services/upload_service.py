"""Image upload collaborator (Cloudinary-style unsigned upload) and loose asset ingest."""

import logging
from typing import Any, Dict, Optional

import httpx
from sqlalchemy.orm import Session as DBSession

from server.config import Settings
from server.db.models import AssetRow
from vault.errors import UpstreamError
from vault.models import Asset, clean_asset, new_id, to_iso, utc_now

logger = logging.getLogger("vault.upload")


def upload_image(
    settings: Settings,
    filename: str,
    content: bytes,
    content_type: str = "application/octet-stream",
    client: Optional[httpx.Client] = None,
) -> Asset:
    """
    Send one file to the upload provider and map its reply to an Asset.

    The provider must answer with at least secure_url; public_id, width and
    height are copied when present. The file name becomes the alt text.

    Raises:
        UpstreamError if the provider is not configured, unreachable, or
        answers with a non-2xx status or an unusable body.
    """
    if not settings.cloudinary_cloud or not settings.cloudinary_preset:
        raise UpstreamError(
            "Upload provider not configured: set CLOUDINARY_CLOUD and CLOUDINARY_PRESET"
        )

    url = f"{settings.cloudinary_base_url.rstrip('/')}/{settings.cloudinary_cloud}/image/upload"
    own_client = client is None
    if own_client:
        client = httpx.Client(timeout=settings.upload_timeout_s)
    try:
        resp = client.post(
            url,
            data={"upload_preset": settings.cloudinary_preset},
            files={"file": (filename, content, content_type)},
        )
        resp.raise_for_status()
        body = resp.json()
    except httpx.HTTPStatusError as e:
        logger.warning("Upload rejected: %s %s", e.response.status_code, e.response.reason_phrase)
        raise UpstreamError(
            f"Upload failed: {e.response.status_code} {e.response.reason_phrase}"
        )
    except httpx.HTTPError as e:
        logger.warning("Upload transport error: %s", e)
        raise UpstreamError(f"Failed to upload image: {e}")
    except ValueError:
        raise UpstreamError("Failed to upload image: provider returned invalid JSON")
    finally:
        if own_client:
            client.close()

    if not isinstance(body, dict) or not body.get("secure_url"):
        raise UpstreamError("Failed to upload image: no url in provider response")

    return Asset(
        id=body.get("public_id") or new_id(),
        kind="image",
        url=body["secure_url"],
        alt=filename,
        width=body.get("width"),
        height=body.get("height"),
    )


def ingest_asset(db: DBSession, payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Record asset metadata produced by an upload. The asset is not attached to any item.

    Raises:
        ValidationError if url is missing or a field has the wrong type.
    """
    asset = clean_asset(payload)
    row = AssetRow(
        id=asset["id"],
        kind=asset["kind"],
        url=asset["url"],
        alt=asset["alt"],
        width=asset["width"],
        height=asset["height"],
        created_at=utc_now(),
    )
    db.add(row)
    db.flush()
    logger.info("Ingested asset %s", row.id)
    return {
        "id": row.id,
        "kind": row.kind,
        "url": row.url,
        "alt": row.alt,
        "width": row.width,
        "height": row.height,
        "createdAt": to_iso(row.created_at),
    }
