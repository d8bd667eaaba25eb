"""Category store: flat parent-pointer records with tree and descendant views."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session as DBSession

from server.db.models import CategoryRow, ItemRow
from vault import tree
from vault.errors import HasChildrenError, InUseError, NotFoundError, ValidationError
from vault.models import Category, new_id, to_iso, utc_now

logger = logging.getLogger("vault.categories")

UNSET: Any = object()


def _to_category(row: CategoryRow) -> Category:
    return Category(
        id=row.id,
        name=row.name,
        parent_id=row.parent_id,
        created_at=to_iso(row.created_at),
        updated_at=to_iso(row.updated_at),
    )


def _get_row(db: DBSession, category_id: str) -> CategoryRow:
    row = db.query(CategoryRow).filter(CategoryRow.id == category_id).first()
    if row is None:
        raise NotFoundError("Category not found")
    return row


def list_flat(db: DBSession) -> List[Category]:
    """All categories in insertion order."""
    return [_to_category(r) for r in db.query(CategoryRow).order_by(CategoryRow.pk).all()]


def create_category(
    db: DBSession,
    name: Optional[str],
    parent_id: Optional[str] = None,
    category_id: Optional[str] = None,
) -> Category:
    """
    Create a category. parent_id is stored as given, even if it does not
    resolve; such a category shows up as a root in the tree.

    category_id is only passed by seeding; normal creation gets a fresh id.
    """
    if not name or not name.strip():
        raise ValidationError("Category name is required")
    row = CategoryRow(
        id=category_id or new_id(),
        name=name,
        parent_id=parent_id or None,
        created_at=utc_now(),
    )
    db.add(row)
    db.flush()
    logger.info("Created category %s (%s) under %s", row.id, row.name, row.parent_id)
    return _to_category(row)


def update_category(
    db: DBSession,
    category_id: str,
    name: Optional[str] = None,
    parent_id: Optional[str] = UNSET,
) -> Category:
    """
    Partial update. An empty or blank name keeps the old one; parent_id=None moves
    the category to the root, leaving it UNSET keeps the current parent.

    Raises:
        NotFoundError for an unknown id.
        ValidationError if the new parent is the category itself or one of
        its descendants.
    """
    row = _get_row(db, category_id)
    if name and name.strip():
        row.name = name
    if parent_id is not UNSET:
        parent_id = parent_id or None
        if tree.would_create_cycle(list_flat(db), category_id, parent_id):
            raise ValidationError("Category cannot be moved under itself or its descendants")
        row.parent_id = parent_id
    row.updated_at = utc_now()
    db.flush()
    logger.info("Updated category %s", category_id)
    return _to_category(row)


def delete_category(db: DBSession, category_id: str) -> None:
    """
    Delete a leaf category that no item references. No cascade.

    The children check and the usage check are two separate reads.
    """
    row = _get_row(db, category_id)

    has_children = db.query(CategoryRow).filter(CategoryRow.parent_id == category_id).first() is not None
    if has_children:
        logger.info("Refused delete of category %s: has children", category_id)
        raise HasChildrenError()

    in_use = any(category_id in (cats or []) for (cats,) in db.query(ItemRow.categories).all())
    if in_use:
        logger.info("Refused delete of category %s: used by items", category_id)
        raise InUseError()

    db.delete(row)
    db.flush()
    logger.info("Deleted category %s", category_id)


def build_tree(db: DBSession) -> List[Dict]:
    return tree.build_tree(list_flat(db))


def descendants_of(db: DBSession, category_id: str) -> List[str]:
    return tree.descendants_of(list_flat(db), category_id)
