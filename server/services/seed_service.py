"""Sample data for development: a small category tree and three items."""

import logging
from typing import Dict

from sqlalchemy.orm import Session as DBSession

from server.db.models import CategoryRow
from server.services import category_service, transfer_service
from vault.transfer import BUNDLE_VERSION

logger = logging.getLogger("vault.seed")

SEED_CATEGORIES = [
    {"id": "root", "name": "Root", "parentId": None},
    {"id": "materials", "name": "Materials", "parentId": "root"},
    {"id": "cabinetry", "name": "Cabinetry", "parentId": "materials"},
    {"id": "countertops", "name": "Countertops", "parentId": "materials"},
    {"id": "notes", "name": "Notes", "parentId": "root"},
]

SEED_ITEMS = [
    {
        "name": "White Oak – Shaker Door",
        "kind": "material",
        "description": "Rift-sawn white oak with clear finish",
        "dimensions": {"thickness": 0.75, "unit": "in"},
        "attributes": {"species": "white oak", "finish": "clear", "grade": "select"},
        "cost": 85,
        "currency": "USD",
        "categories": ["cabinetry"],
        "tags": ["white-oak", "shaker"],
        "assets": [
            {
                "kind": "image",
                "url": "https://res.cloudinary.com/demo/image/upload/w_800/sample.jpg",
                "alt": "Door panel",
                "width": 800,
                "height": 600,
            },
        ],
    },
    {
        "name": "Quartz Countertop – Calacatta",
        "kind": "material",
        "description": "Calacatta pattern quartz slab",
        "dimensions": {"thickness": 1.25, "unit": "in"},
        "attributes": {"brand": "Generic", "color": "white/gray"},
        "cost": 55,
        "currency": "USD",
        "categories": ["countertops"],
        "tags": ["quartz"],
        "assets": [
            {
                "kind": "image",
                "url": "https://res.cloudinary.com/demo/image/upload/w_800/bench.jpg",
                "alt": "Quartz slab",
                "width": 800,
                "height": 600,
            },
        ],
    },
    {
        "name": "Note – Base Cabinet Heights",
        "kind": "text",
        "description": "Base 34.5 in box height. 36 in to countertop. Toe kick 4 in.",
        "dimensions": {},
        "attributes": {},
        "cost": None,
        "currency": "USD",
        "categories": ["notes"],
        "tags": ["dimensions"],
        "assets": [],
    },
]


def seed(db: DBSession) -> Dict:
    """Replace all categories and items with the sample set."""
    db.query(CategoryRow).delete()
    db.flush()
    for cat in SEED_CATEGORIES:
        category_service.create_category(db, cat["name"], cat["parentId"], category_id=cat["id"])
    result = transfer_service.import_items(db, {"version": BUNDLE_VERSION, "items": SEED_ITEMS})
    logger.info("Seeded %d categories and %d items", len(SEED_CATEGORIES), result["count"])
    return {
        "message": f"Seeded {result['count']} items and {len(SEED_CATEGORIES)} categories",
        "count": result["count"],
    }
