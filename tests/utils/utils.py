import random
import string
from typing import Dict, Optional

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app import crud, models, schemas
from app.core.config import settings


def random_lower_string() -> str:
    return "".join(random.choices(string.ascii_lowercase, k=32))


def random_image_url() -> str:
    return f"https://img.example.com/{random_lower_string()}.jpg"


def get_admin_headers() -> Dict[str, str]:
    return {"X-Admin-Key": settings.ADMIN_API_KEY}


def session_headers(session_id: Optional[str] = None) -> Dict[str, str]:
    return {"X-Session-Id": session_id or random_lower_string()}


def create_random_item(
    db: Session,
    *,
    title: Optional[str] = None,
    description: str = "Test item",
    with_image: bool = True,
    **counters,
) -> models.Item:
    """
    Insert an item directly. Extra keyword arguments (``rating``,
    ``comparison_count``, ``wins`` ...) are written onto the row as given.
    """
    item_in = schemas.ItemCreate(
        title=title or random_lower_string(),
        description=description,
        image_url=random_image_url() if with_image else None,
    )
    item = crud.item.create(db, obj_in=item_in)
    if counters:
        item = crud.item.update(db, db_obj=item, obj_in=counters)
    return item


def create_item(client: TestClient, headers: Dict[str, str], **overrides) -> dict:
    """Create an item through the API and return its JSON representation."""
    data = {
        "title": random_lower_string(),
        "description": "A test item",
        "image_url": random_image_url(),
        **overrides,
    }
    r = client.post(f"{settings.API_V1_STR}/items/", headers=headers, json=data)
    assert r.status_code == 201, r.text
    return r.json()
