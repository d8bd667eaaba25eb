"""Per-user profile store: coins, background theme, collectibles, upgrades."""

import logging
from typing import Any, Dict

from sqlalchemy.orm import Session as DBSession

from server.db.models import Profile
from vault.errors import ValidationError

logger = logging.getLogger("vault.profile")

STANDARD_THEME = "standard"
# Always owned, never recorded as a collectible
STANDARD_BACKGROUND_ID = "bg_standard"


def _get_or_create(db: DBSession, user_id: str) -> Profile:
    profile = db.get(Profile, user_id)
    if profile is None:
        profile = Profile(
            user_id=user_id,
            coins=0,
            background_theme=STANDARD_THEME,
            collectibles=[],
            upgrades={},
        )
        db.add(profile)
        db.flush()
    return profile


def _to_dict(profile: Profile) -> Dict[str, Any]:
    return {
        "userId": profile.user_id,
        "coins": profile.coins,
        "backgroundTheme": profile.background_theme,
        "collectibles": list(profile.collectibles or []),
        "upgrades": dict(profile.upgrades or {}),
    }


def get_profile(db: DBSession, user_id: str) -> Dict[str, Any]:
    return _to_dict(_get_or_create(db, user_id))


def add_coins(db: DBSession, user_id: str, amount: int) -> Dict[str, Any]:
    """Credit (or, with a negative amount, spend) coins. The balance never goes below zero."""
    profile = _get_or_create(db, user_id)
    if profile.coins + amount < 0:
        raise ValidationError("Not enough coins")
    profile.coins = profile.coins + amount
    db.flush()
    logger.info("Coins for %s: %+d -> %d", user_id, amount, profile.coins)
    return _to_dict(profile)


def add_collectible(db: DBSession, user_id: str, collectible_id: str) -> Dict[str, Any]:
    if not collectible_id:
        raise ValidationError("Collectible id is required")
    profile = _get_or_create(db, user_id)
    owned = list(profile.collectibles or [])
    if collectible_id not in owned and collectible_id != STANDARD_BACKGROUND_ID:
        owned.append(collectible_id)
        profile.collectibles = owned
        db.flush()
    return _to_dict(profile)


def add_upgrade(db: DBSession, user_id: str, upgrade_id: str, value: Any = True) -> Dict[str, Any]:
    if not upgrade_id:
        raise ValidationError("Upgrade id is required")
    profile = _get_or_create(db, user_id)
    profile.upgrades = {**(profile.upgrades or {}), upgrade_id: value}
    db.flush()
    return _to_dict(profile)


def set_background_theme(db: DBSession, user_id: str, theme: str) -> Dict[str, Any]:
    if not theme:
        raise ValidationError("Theme is required")
    profile = _get_or_create(db, user_id)
    profile.background_theme = theme
    db.flush()
    return _to_dict(profile)


def owns(profile: Dict[str, Any], item_id: str) -> bool:
    """Ownership check used by the shop: upgrades, collectibles, and the free standard background."""
    if item_id == STANDARD_BACKGROUND_ID:
        return True
    return bool(profile["upgrades"].get(item_id)) or item_id in profile["collectibles"]
