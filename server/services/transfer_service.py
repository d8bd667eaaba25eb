"""Import/export gateway over the item store."""

import logging
from typing import Any, Dict

from sqlalchemy.orm import Session as DBSession

from server.services import item_service
from vault.transfer import export_bundle, parse_import_bundle

logger = logging.getLogger("vault.transfer")


def export_items(db: DBSession) -> Dict[str, Any]:
    return export_bundle(item_service.list_all(db))


def import_items(db: DBSession, payload: Any) -> Dict[str, Any]:
    """
    Replace the whole item collection with the bundle's items.

    The bundle is fully validated before the existing items are removed.
    Every imported item gets a fresh id and fresh timestamps. This is a
    destructive replace: items not in the bundle are gone afterwards.

    Raises:
        ValidationError for a malformed bundle (nothing is changed).
    """
    records = parse_import_bundle(payload)
    removed = item_service.delete_all(db)
    for fields in records:
        item_service.insert_item(db, fields)
    logger.info("Imported %d items (replaced %d)", len(records), removed)
    return {
        'message': f"Imported {len(records)} items",
        'count': len(records),
    }
