# guess_link/crud/crud_image_set.py
import logging
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from guess_link.schemas.image_set import ImageSet

logger = logging.getLogger("guess_link.crud.image_set")

DEFAULT_IMAGE_SETS: List[Dict[str, Any]] = [
    {
        "images": [
            "https://picsum.photos/300/300?random=1",
            "https://picsum.photos/300/300?random=2",
            "https://picsum.photos/300/300?random=3",
        ],
        "correct_answer": "nature",
        "hint": "Think about the outdoors",
        "category": "outdoors",
    },
    {
        "images": [
            "https://picsum.photos/300/300?random=4",
            "https://picsum.photos/300/300?random=5",
            "https://picsum.photos/300/300?random=6",
        ],
        "correct_answer": "technology",
        "hint": "Digital world",
        "category": "technology",
    },
    {
        "images": [
            "https://picsum.photos/300/300?random=7",
            "https://picsum.photos/300/300?random=8",
            "https://picsum.photos/300/300?random=9",
        ],
        "correct_answer": "food",
        "hint": "Something delicious",
        "category": "food",
    },
]

def get_image_sets(db: Session, category: str | None = None) -> List[ImageSet]:
    query = db.query(ImageSet)
    if category:
        query = query.filter(ImageSet.category == category)
    return query.order_by(ImageSet.id).all()

def get_image_set(db: Session, image_set_id: int) -> Optional[ImageSet]:
    return db.query(ImageSet).filter(ImageSet.id == image_set_id).first()

def count_image_sets(db: Session) -> int:
    return db.query(ImageSet).count()

def get_image_set_by_content(db: Session, images: List[str], correct_answer: str) -> Optional[ImageSet]:
    """Finds an existing set with the same answer and the same three images."""
    candidates = db.query(ImageSet).filter(ImageSet.correct_answer == correct_answer).all()
    for candidate in candidates:
        if list(candidate.images) == list(images):
            return candidate
    return None

def create_image_set(db: Session, images: List[str], correct_answer: str, hint: str | None = None, category: str | None = None) -> ImageSet:
    db_item = ImageSet(images=list(images), correct_answer=correct_answer, hint=hint, category=category)
    db.add(db_item)
    db.commit()
    db.refresh(db_item)
    logger.info(f"Created image set {db_item.id} (category: {category})")
    return db_item

def update_image_set(db: Session, db_item: ImageSet, updates: Dict[str, Any]) -> ImageSet:
    for field, value in updates.items():
        setattr(db_item, field, list(value) if field == "images" else value)
    db.add(db_item)
    db.commit()
    db.refresh(db_item)
    logger.info(f"Updated image set {db_item.id}: {sorted(updates.keys())}")
    return db_item

def delete_image_set(db: Session, db_item: ImageSet) -> None:
    image_set_id = db_item.id
    db.delete(db_item)
    db.commit()
    logger.info(f"Deleted image set {image_set_id}")

def seed_default_image_sets(db: Session) -> int:
    """Inserts the bundled image sets when the table is empty. Returns the number inserted."""
    if count_image_sets(db) > 0:
        return 0
    for item in DEFAULT_IMAGE_SETS:
        db.add(ImageSet(**item))
    db.commit()
    logger.info(f"Seeded {len(DEFAULT_IMAGE_SETS)} default image sets.")
    return len(DEFAULT_IMAGE_SETS)
