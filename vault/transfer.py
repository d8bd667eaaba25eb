"""Versioned import/export bundles for the item collection."""

from typing import Any, Dict, List, Sequence

from vault.errors import ValidationError
from vault.models import Item, clean_item_payload

BUNDLE_VERSION = '1.0'
EXPORT_FILENAME = 'design-vault-export.json'


def export_bundle(items: Sequence[Item]) -> Dict[str, Any]:
    """{"version": "1.0", "items": [...]} with every item as stored."""
    return {
        'version': BUNDLE_VERSION,
        'items': [item.to_dict() for item in items],
    }


def parse_import_bundle(payload: Any) -> List[Dict[str, Any]]:
    """
    Validate an import bundle and return the cleaned item field sets.

    Every entry is validated before anything is returned, so a malformed
    bundle never reaches the store. Incoming id/createdAt/updatedAt are
    dropped; version is accepted but not interpreted.

    Raises:
        ValidationError if the bundle is not an object, items is missing or
        not a list, or any entry is not a valid item.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid import format")
    entries = payload.get('items')
    if not isinstance(entries, list):
        raise ValidationError("Invalid import format")

    cleaned = []
    for index, entry in enumerate(entries):
        try:
            cleaned.append(clean_item_payload(entry))
        except ValidationError as e:
            raise ValidationError(f"Invalid import format: item {index}: {e.message}")
    return cleaned
