"""Data models for the vault: Category, Item, Asset, GradeRecord and SessionStat."""

import math
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional
from uuid import uuid4

from vault.errors import ValidationError

DEFAULT_CURRENCY = 'USD'
DEFAULT_KIND = 'material'

# Dimension keys that get numeric parsing; every other key passes through.
NUMERIC_DIMENSIONS = ('width', 'height', 'depth', 'thickness')

# Item fields a client may write. id/createdAt/updatedAt are server-owned.
ITEM_FIELDS = (
    'name', 'kind', 'description', 'cost', 'currency',
    'dimensions', 'attributes', 'categories', 'tags', 'assets',
)


class Grade(str, Enum):
    """Recall quality for one study event."""
    AGAIN = "again"
    GOOD = "good"
    EASY = "easy"


def new_id() -> str:
    return str(uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    """Render a datetime as ISO-8601 UTC with a Z suffix. Naive values are taken as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 string (or pass a datetime through) into an aware UTC datetime."""
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"Invalid timestamp: {value!r}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _camel(name: str) -> str:
    head, *rest = name.split('_')
    return head + ''.join(part.title() for part in rest)


class _WireMixin:
    """to_dict/from_dict with camelCase keys on the wire."""

    def to_dict(self) -> Dict[str, Any]:
        return {_camel(f.name): getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        known = {}
        for f in fields(cls):
            for key in (_camel(f.name), f.name):
                if key in data:
                    known[f.name] = data[key]
                    break
        return cls(**known)


@dataclass
class Category(_WireMixin):
    """A named node in the parent-pointer hierarchy. parent_id None = root."""
    id: str
    name: str
    parent_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Asset(_WireMixin):
    """An image reference embedded in (and owned by) a single item."""
    id: str
    url: str
    kind: str = 'image'
    alt: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass
class Item(_WireMixin):
    """A catalogued material, object or note."""
    id: str
    name: str
    kind: str = DEFAULT_KIND
    description: Optional[str] = None
    cost: Optional[float] = None
    currency: str = DEFAULT_CURRENCY
    dimensions: Dict[str, Any] = field(default_factory=dict)
    attributes: Dict[str, Any] = field(default_factory=dict)
    categories: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    assets: List[Asset] = field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d['dimensions'] = dict(self.dimensions)
        d['attributes'] = dict(self.attributes)
        d['categories'] = list(self.categories)
        d['tags'] = list(self.tags)
        d['assets'] = [a.to_dict() for a in self.assets]
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Item':
        item = super().from_dict(data)
        item.assets = [
            Asset.from_dict(a) if isinstance(a, dict) else a
            for a in (item.assets or [])
        ]
        return item

    def content(self) -> Dict[str, Any]:
        """Wire dict without the server-owned id and timestamps."""
        d = self.to_dict()
        for key in ('id', 'createdAt', 'updatedAt'):
            d.pop(key, None)
        return d

    def has_images(self) -> bool:
        return any(a.kind == 'image' for a in self.assets)


@dataclass
class GradeRecord(_WireMixin):
    item_id: str
    grade: str
    timestamp: str


@dataclass
class SessionStat(_WireMixin):
    """Summary of one completed study session. accuracy is a 0..1 fraction."""
    mode: str
    total_cards: int = 0
    again: int = 0
    good: int = 0
    easy: int = 0
    accuracy: float = 0.0
    duration_seconds: float = 0.0
    coins_earned: int = 0
    timestamp: Optional[str] = None


# ---------------------------------------------------------------------------
# Payload cleaning
# ---------------------------------------------------------------------------

def _parse_number(value: Any) -> Optional[float]:
    """parseFloat-style: numbers pass through, numeric strings parse, NaN, infinities and anything else are None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if isinstance(value, int) or math.isfinite(value) else None
    text = str(value).strip()
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def clean_dimensions(raw: Any) -> Dict[str, Any]:
    if not raw:
        return {}
    if not isinstance(raw, dict):
        raise ValidationError("dimensions must be an object")
    out: Dict[str, Any] = {}
    for key, value in raw.items():
        if key in NUMERIC_DIMENSIONS:
            number = _parse_number(value)
            if number is not None:
                out[key] = number
        elif key == 'unit':
            if value:
                out[key] = str(value)
        else:
            out[key] = value
    return out


def clean_attributes(raw: Any) -> Dict[str, Any]:
    if not raw:
        return {}
    if not isinstance(raw, dict):
        raise ValidationError("attributes must be an object")
    return {str(k): v for k, v in raw.items()}


def clean_string_set(raw: Any, field_name: str) -> List[str]:
    """Accept a list or a comma-joined string; trim, drop blanks, dedupe keeping order."""
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = raw.split(',')
    if not isinstance(raw, (list, tuple, set)):
        raise ValidationError(f"{field_name} must be a list")
    out: List[str] = []
    for value in raw:
        if value is None:
            continue
        text = str(value).strip()
        if text and text not in out:
            out.append(text)
    return out


def clean_cost(raw: Any) -> Optional[float]:
    cost = _parse_number(raw)
    if cost is not None and cost < 0:
        raise ValidationError("cost must be non-negative")
    return cost


def _optional_text(value: Any, field_name: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be text")
    return value


def _pixel_size(value: Any, field_name: str) -> Optional[int]:
    """Width/height: a non-negative whole number (numeric strings accepted) or None."""
    if value is None or value == '':
        return None
    number = _parse_number(value)
    if number is None or number < 0:
        raise ValidationError(f"asset {field_name} must be a non-negative number")
    return int(number)


def clean_asset(entry: Any) -> Dict[str, Any]:
    """
    Validate one asset and return its wire dict.

    url must be non-empty text; id, kind and alt must be text when given
    (a missing id is generated); width/height are coerced to int.
    """
    if not isinstance(entry, dict):
        raise ValidationError("each asset must be an object")
    url = entry.get('url')
    if not isinstance(url, str) or not url.strip():
        raise ValidationError("asset url is required")
    asset = Asset(
        id=_optional_text(entry.get('id'), 'asset id') or new_id(),
        url=url,
        kind=_optional_text(entry.get('kind'), 'asset kind') or 'image',
        alt=_optional_text(entry.get('alt'), 'asset alt'),
        width=_pixel_size(entry.get('width'), 'width'),
        height=_pixel_size(entry.get('height'), 'height'),
    )
    return asset.to_dict()


def clean_assets(raw: Any) -> List[Dict[str, Any]]:
    if not raw:
        return []
    if not isinstance(raw, list):
        raise ValidationError("assets must be a list")
    return [clean_asset(entry) for entry in raw]


def clean_item_payload(payload: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """
    Validate and normalize client-writable item fields.

    With partial=False the result is a complete field set (defaults filled in);
    with partial=True only the keys present in the payload are returned.
    Server-owned keys (id, createdAt, updatedAt) are dropped.
    """
    if not isinstance(payload, dict):
        raise ValidationError("item must be an object")

    present = {k: v for k, v in payload.items() if k in ITEM_FIELDS}
    if not partial:
        present.setdefault('name', None)

    out: Dict[str, Any] = {}
    if 'name' in present:
        name = present['name']
        if name is None or not str(name).strip():
            raise ValidationError("Item name is required")
        out['name'] = str(name)
    if 'kind' in present:
        out['kind'] = str(present['kind']) if present['kind'] else DEFAULT_KIND
    if 'description' in present:
        out['description'] = _optional_text(present['description'], 'description') or None
    if 'cost' in present:
        out['cost'] = clean_cost(present['cost'])
    if 'currency' in present:
        out['currency'] = str(present['currency']) if present['currency'] else DEFAULT_CURRENCY
    if 'dimensions' in present:
        out['dimensions'] = clean_dimensions(present['dimensions'])
    if 'attributes' in present:
        out['attributes'] = clean_attributes(present['attributes'])
    if 'categories' in present:
        out['categories'] = clean_string_set(present['categories'], 'categories')
    if 'tags' in present:
        out['tags'] = clean_string_set(present['tags'], 'tags')
    if 'assets' in present:
        out['assets'] = clean_assets(present['assets'])

    if not partial:
        out.setdefault('kind', DEFAULT_KIND)
        out.setdefault('description', None)
        out.setdefault('cost', None)
        out.setdefault('currency', DEFAULT_CURRENCY)
        out.setdefault('dimensions', {})
        out.setdefault('attributes', {})
        out.setdefault('categories', [])
        out.setdefault('tags', [])
        out.setdefault('assets', [])
    return out


def grade_counts(grades: Iterable[str]) -> Dict[str, int]:
    counts = {g.value: 0 for g in Grade}
    for g in grades:
        if g in counts:
            counts[g] += 1
    return counts
