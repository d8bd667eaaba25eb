"""Category hierarchy derived from the flat parent-pointer list.

The flat list is the only source of truth; the forest view and descendant
sets are rebuilt from it on every call.
"""

from typing import Dict, List, Optional, Sequence

from vault.models import Category


def build_tree(categories: Sequence[Category]) -> List[Dict]:
    """
    Two-pass forest reconstruction.

    Pass one indexes a fresh node per category by id; pass two attaches each
    node to its parent. A category whose parent_id is None or does not resolve
    is a root. Children keep the order of the flat list.
    """
    nodes: Dict[str, Dict] = {}
    for cat in categories:
        node = cat.to_dict()
        node['children'] = []
        nodes[cat.id] = node

    roots: List[Dict] = []
    for cat in categories:
        node = nodes[cat.id]
        parent = nodes.get(cat.parent_id) if cat.parent_id is not None else None
        if parent is None or parent is node:
            roots.append(node)
        else:
            parent['children'].append(node)
    return roots


def children_index(categories: Sequence[Category]) -> Dict[Optional[str], List[str]]:
    """parent_id -> ids of its direct children, in flat-list order."""
    index: Dict[Optional[str], List[str]] = {}
    for cat in categories:
        index.setdefault(cat.parent_id, []).append(cat.id)
    return index


def descendants_of(categories: Sequence[Category], category_id: str) -> List[str]:
    """
    Return category_id followed by every category whose parent chain reaches it.

    An unknown id yields an empty list.
    """
    if not any(cat.id == category_id for cat in categories):
        return []
    index = children_index(categories)
    result: List[str] = []
    seen = set()
    stack = [category_id]
    while stack:
        current = stack.pop()
        if current in seen:
            continue
        seen.add(current)
        result.append(current)
        # reversed so the walk visits children in list order
        stack.extend(reversed(index.get(current, [])))
    return result


def would_create_cycle(categories: Sequence[Category], category_id: str, new_parent_id: Optional[str]) -> bool:
    """True if re-parenting category_id under new_parent_id makes it its own ancestor."""
    if new_parent_id is None:
        return False
    if new_parent_id == category_id:
        return True
    return new_parent_id in descendants_of(categories, category_id)
