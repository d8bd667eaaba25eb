"""Tests for vault.models: payload cleaning, wire conversion, timestamps."""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from vault.errors import ValidationError
from vault.models import (
    Category,
    Item,
    clean_asset,
    clean_dimensions,
    clean_item_payload,
    clean_string_set,
    grade_counts,
    parse_timestamp,
    to_iso,
)


# ============================================================================
# clean_item_payload
# ============================================================================

def test_full_payload_gets_defaults():
    out = clean_item_payload({'name': 'Walnut veneer'})
    assert out == {
        'name': 'Walnut veneer',
        'kind': 'material',
        'description': None,
        'cost': None,
        'currency': 'USD',
        'dimensions': {},
        'attributes': {},
        'categories': [],
        'tags': [],
        'assets': [],
    }


@pytest.mark.parametrize('name', [None, '', '   '])
def test_name_required(name):
    with pytest.raises(ValidationError) as exc:
        clean_item_payload({'name': name})
    assert exc.value.message == 'Item name is required'


def test_missing_name_on_create():
    with pytest.raises(ValidationError):
        clean_item_payload({'description': 'x'})


def test_partial_only_returns_present_keys():
    assert clean_item_payload({'tags': 'a,b'}, partial=True) == {'tags': ['a', 'b']}


def test_partial_rejects_blank_name():
    with pytest.raises(ValidationError):
        clean_item_payload({'name': ''}, partial=True)


def test_server_owned_keys_dropped():
    out = clean_item_payload({'name': 'X', 'id': 'forged', 'createdAt': 'then'})
    assert 'id' not in out and 'createdAt' not in out


def test_cost_parsing():
    assert clean_item_payload({'name': 'X', 'cost': '12.5'})['cost'] == 12.5
    assert clean_item_payload({'name': 'X', 'cost': 'abc'})['cost'] is None
    with pytest.raises(ValidationError):
        clean_item_payload({'name': 'X', 'cost': -1})


def test_assets_get_ids_and_require_url():
    out = clean_item_payload({'name': 'X', 'assets': [{'url': 'http://x/a.png'}]})
    asset = out['assets'][0]
    assert asset['id']
    assert asset['kind'] == 'image'
    with pytest.raises(ValidationError):
        clean_item_payload({'name': 'X', 'assets': [{'alt': 'no url'}]})


def test_clean_asset_coerces_sizes():
    asset = clean_asset({'url': 'http://x/a.png', 'width': '800', 'height': 600.0, 'alt': 'front'})
    assert asset['width'] == 800
    assert asset['height'] == 600
    assert asset['alt'] == 'front'
    assert clean_asset({'url': 'u', 'width': None, 'height': ''})['width'] is None


@pytest.mark.parametrize('entry', [
    {'url': 'u', 'width': 'wide'},
    {'url': 'u', 'height': -3},
    {'url': 'u', 'width': 'inf'},
    {'url': 'u', 'alt': 5},
    {'url': 'u', 'id': 123},
    {'url': 123},
    {'url': '  '},
    'u',
])
def test_clean_asset_rejects_bad_fields(entry):
    with pytest.raises(ValidationError):
        clean_asset(entry)


def test_description_must_be_text():
    assert clean_item_payload({'name': 'X', 'description': ''})['description'] is None
    with pytest.raises(ValidationError):
        clean_item_payload({'name': 'X', 'description': {'long': 'text'}})


def test_non_finite_numbers_are_dropped():
    assert clean_item_payload({'name': 'X', 'cost': '1e999'})['cost'] is None
    assert clean_dimensions({'width': float('nan'), 'unit': 'in'}) == {'unit': 'in'}


def test_clean_dimensions_numeric_keys():
    dims = clean_dimensions({'width': '30', 'height': 'tall', 'depth': 24, 'unit': 'in', 'finish': 'matte'})
    assert dims == {'width': 30.0, 'depth': 24, 'unit': 'in', 'finish': 'matte'}


def test_clean_string_set_dedupes_and_trims():
    assert clean_string_set([' a', 'b', 'a ', '', None], 'tags') == ['a', 'b']
    with pytest.raises(ValidationError):
        clean_string_set(5, 'tags')


# ============================================================================
# Wire conversion
# ============================================================================

def test_item_round_trip_keeps_assets_typed():
    item = Item.from_dict({'id': 'i', 'name': 'N', 'assets': [{'id': 'a', 'url': 'u'}], 'createdAt': 't'})
    assert item.assets[0].url == 'u'
    assert item.created_at == 't'
    d = item.to_dict()
    assert d['assets'] == [{'id': 'a', 'url': 'u', 'kind': 'image', 'alt': None, 'width': None, 'height': None}]
    assert 'createdAt' in d


def test_content_excludes_server_fields():
    content = Item(id='i', name='N', created_at='t', updated_at='t').content()
    assert 'id' not in content and 'createdAt' not in content and 'updatedAt' not in content


def test_category_to_dict():
    assert Category(id='c', name='C', parent_id='p').to_dict()['parentId'] == 'p'


# ============================================================================
# Timestamps and grades
# ============================================================================

def test_to_iso_format():
    dt = datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)
    assert to_iso(dt) == '2024-01-02T03:04:05.678Z'
    assert to_iso(datetime(2024, 1, 2)) == '2024-01-02T00:00:00.000Z'
    assert to_iso(None) is None


def test_parse_timestamp_z_suffix():
    dt = parse_timestamp('2024-01-02T03:04:05.678Z')
    assert dt == datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)


def test_parse_timestamp_invalid():
    with pytest.raises(ValidationError):
        parse_timestamp('yesterday')


def test_grade_counts_ignores_unknown():
    assert grade_counts(['good', 'good', 'easy', 'meh']) == {'again': 0, 'good': 2, 'easy': 1}
