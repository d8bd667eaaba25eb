"""Catalogue query engine: text / category / tag filtering over an item list."""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Union

from vault.models import Category, Item
from vault.tree import descendants_of

# Category value meaning "no category filter".
GLOBAL_VIEW = 'global'


@dataclass
class ItemFilter:
    text: Optional[str] = None
    category_id: Optional[str] = None
    tags: Union[str, Iterable[str], None] = None


def parse_tags(tags: Union[str, Iterable[str], None]) -> List[str]:
    """Comma-joined string or iterable -> list of non-blank tags."""
    if not tags:
        return []
    if isinstance(tags, str):
        tags = tags.split(',')
    return [t.strip() for t in tags if t and t.strip()]


def _matches_text(item: Item, needle: str) -> bool:
    if needle in (item.name or '').lower():
        return True
    if item.description and needle in item.description.lower():
        return True
    return any(needle in tag.lower() for tag in item.tags)


def filter_items(
    items: Sequence[Item],
    categories: Sequence[Category],
    item_filter: ItemFilter,
) -> List[Item]:
    """
    Return the items matching every filter that is set.

    - text: case-insensitive substring of name, description or any tag
    - category_id: item lists the category or one of its descendants
      (GLOBAL_VIEW disables the filter)
    - tags: item carries at least one of the requested tags

    Pure: neither input is mutated.
    """
    result = list(items)

    if item_filter.text:
        needle = item_filter.text.lower()
        result = [item for item in result if _matches_text(item, needle)]

    if item_filter.category_id and item_filter.category_id != GLOBAL_VIEW:
        expanded = set(descendants_of(categories, item_filter.category_id))
        result = [item for item in result if expanded.intersection(item.categories)]

    wanted = set(parse_tags(item_filter.tags))
    if wanted:
        result = [item for item in result if wanted.intersection(item.tags)]

    return result


def collect_tags(items: Iterable[Item]) -> List[str]:
    """Distinct tags across items, sorted case-insensitively."""
    tags = {tag for item in items for tag in item.tags}
    return sorted(tags, key=lambda t: (t.lower(), t))
