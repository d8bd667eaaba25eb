"""Item store: CRUD over catalogued items, plus the filtered listing."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session as DBSession

from server.db.models import ItemRow
from server.services import category_service
from vault.errors import NotFoundError
from vault.models import Asset, Item, clean_item_payload, new_id, to_iso, utc_now
from vault.query import ItemFilter, collect_tags, filter_items

logger = logging.getLogger("vault.items")


def _to_item(row: ItemRow) -> Item:
    return Item(
        id=row.id,
        name=row.name,
        kind=row.kind,
        description=row.description,
        cost=row.cost,
        currency=row.currency,
        dimensions=dict(row.dimensions or {}),
        attributes=dict(row.attributes or {}),
        categories=list(row.categories or []),
        tags=list(row.tags or []),
        assets=[Asset.from_dict(a) for a in (row.assets or [])],
        created_at=to_iso(row.created_at),
        updated_at=to_iso(row.updated_at),
    )


def _get_row(db: DBSession, item_id: str) -> ItemRow:
    row = db.query(ItemRow).filter(ItemRow.id == item_id).first()
    if row is None:
        raise NotFoundError("Item not found")
    return row


def insert_item(db: DBSession, fields: Dict[str, Any]) -> Item:
    """Insert already-cleaned fields with a fresh id and timestamps."""
    now = utc_now()
    row = ItemRow(id=new_id(), created_at=now, updated_at=now, **fields)
    db.add(row)
    db.flush()
    return _to_item(row)


def create_item(db: DBSession, payload: Dict[str, Any]) -> Item:
    """
    Create an item from a client payload.

    Raises:
        ValidationError if name is missing or a field is malformed.
    """
    item = insert_item(db, clean_item_payload(payload))
    logger.info("Created item %s (%s)", item.id, item.name)
    return item


def get_item(db: DBSession, item_id: str) -> Item:
    return _to_item(_get_row(db, item_id))


def update_item(db: DBSession, item_id: str, patch: Dict[str, Any]) -> Item:
    """
    Merge a partial patch. Keys present replace prior values, absent keys
    are kept, id and createdAt never change, updatedAt always refreshes.
    """
    row = _get_row(db, item_id)
    for key, value in clean_item_payload(patch, partial=True).items():
        setattr(row, key, value)
    row.updated_at = utc_now()
    db.flush()
    logger.info("Updated item %s", item_id)
    return _to_item(row)


def delete_item(db: DBSession, item_id: str) -> None:
    row = _get_row(db, item_id)
    db.delete(row)
    db.flush()
    logger.info("Deleted item %s", item_id)


def list_all(db: DBSession) -> List[Item]:
    """All items in insertion order."""
    return [_to_item(r) for r in db.query(ItemRow).order_by(ItemRow.pk).all()]


def delete_all(db: DBSession) -> int:
    count = db.query(ItemRow).delete()
    db.flush()
    return count


def query_items(
    db: DBSession,
    text: Optional[str] = None,
    category_id: Optional[str] = None,
    tags: Optional[str] = None,
) -> List[Item]:
    """Filtered listing; the category filter includes descendant categories."""
    return filter_items(
        list_all(db),
        category_service.list_flat(db),
        ItemFilter(text=text, category_id=category_id, tags=tags),
    )


def list_tags(db: DBSession) -> List[str]:
    return collect_tags(list_all(db))
