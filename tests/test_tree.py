"""Tests for vault.tree: forest reconstruction, descendants, cycle detection."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from vault.models import Category
from vault.tree import build_tree, children_index, descendants_of, would_create_cycle


def _cats():
    return [
        Category(id='root', name='Root'),
        Category(id='materials', name='Materials', parent_id='root'),
        Category(id='cabinetry', name='Cabinetry', parent_id='materials'),
        Category(id='countertops', name='Countertops', parent_id='materials'),
        Category(id='notes', name='Notes', parent_id='root'),
        Category(id='loose', name='Loose'),
    ]


# ============================================================================
# build_tree
# ============================================================================

def test_build_tree_roots_and_children():
    roots = build_tree(_cats())
    assert [r['id'] for r in roots] == ['root', 'loose']
    root = roots[0]
    assert [c['id'] for c in root['children']] == ['materials', 'notes']
    materials = root['children'][0]
    assert [c['id'] for c in materials['children']] == ['cabinetry', 'countertops']
    assert materials['children'][0]['children'] == []


def test_build_tree_nodes_use_wire_keys():
    roots = build_tree(_cats())
    node = roots[0]['children'][0]
    assert node['parentId'] == 'root'
    assert node['name'] == 'Materials'


def test_build_tree_dangling_parent_becomes_root():
    cats = [
        Category(id='a', name='A'),
        Category(id='orphan', name='Orphan', parent_id='gone'),
    ]
    roots = build_tree(cats)
    assert [r['id'] for r in roots] == ['a', 'orphan']


def test_build_tree_child_listed_before_parent():
    cats = [
        Category(id='child', name='Child', parent_id='parent'),
        Category(id='parent', name='Parent'),
    ]
    roots = build_tree(cats)
    assert [r['id'] for r in roots] == ['parent']
    assert [c['id'] for c in roots[0]['children']] == ['child']


def test_build_tree_self_parent_is_root():
    roots = build_tree([Category(id='x', name='X', parent_id='x')])
    assert [r['id'] for r in roots] == ['x']


def test_build_tree_empty():
    assert build_tree([]) == []


def test_build_tree_does_not_mutate_input():
    cats = _cats()
    build_tree(cats)
    assert cats == _cats()


# ============================================================================
# descendants_of
# ============================================================================

def test_descendants_include_self_first():
    ids = descendants_of(_cats(), 'materials')
    assert ids[0] == 'materials'
    assert set(ids) == {'materials', 'cabinetry', 'countertops'}


def test_descendants_of_root_covers_subtree():
    ids = descendants_of(_cats(), 'root')
    assert set(ids) == {'root', 'materials', 'cabinetry', 'countertops', 'notes'}
    assert 'loose' not in ids


def test_descendants_of_leaf_is_only_itself():
    assert descendants_of(_cats(), 'cabinetry') == ['cabinetry']


def test_descendants_of_unknown_is_empty():
    assert descendants_of(_cats(), 'nope') == []


def test_descendants_terminates_on_cycle():
    cats = [
        Category(id='a', name='A', parent_id='b'),
        Category(id='b', name='B', parent_id='a'),
    ]
    assert sorted(descendants_of(cats, 'a')) == ['a', 'b']


def test_children_index():
    index = children_index(_cats())
    assert index[None] == ['root', 'loose']
    assert index['materials'] == ['cabinetry', 'countertops']


# ============================================================================
# would_create_cycle
# ============================================================================

def test_cycle_when_parent_is_descendant():
    assert would_create_cycle(_cats(), 'materials', 'cabinetry')


def test_cycle_when_parent_is_self():
    assert would_create_cycle(_cats(), 'notes', 'notes')


def test_no_cycle_for_sibling_or_root():
    assert not would_create_cycle(_cats(), 'cabinetry', 'notes')
    assert not would_create_cycle(_cats(), 'cabinetry', None)
