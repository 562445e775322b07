# guess_link/api/image_sets.py
import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session
from guess_link.api import deps
from guess_link.models.game import ImageSetCreate, ImageSetPublic, ImageSetUpdate
from guess_link.crud import crud_image_set

logger = logging.getLogger("guess_link.api.image_sets")  # Logger for this module
router = APIRouter()

def _get_or_404(db: Session, image_set_id: int):
    item = crud_image_set.get_image_set(db, image_set_id)
    if not item:
        raise HTTPException(status_code=404, detail=f"Image set {image_set_id} not found.")
    return item

@router.get("/", response_model=List[ImageSetPublic])
def list_image_sets(
    db: Session = Depends(deps.get_db),
    category: str | None = Query(None, description="Only return image sets of this category."),
):
    """List all image sets, optionally filtered by category."""
    return [ImageSetPublic.model_validate(item) for item in crud_image_set.get_image_sets(db, category=category)]

@router.get("/{image_set_id}", response_model=ImageSetPublic)
def get_image_set(image_set_id: int, db: Session = Depends(deps.get_db)):
    return ImageSetPublic.model_validate(_get_or_404(db, image_set_id))

@router.post("/", response_model=ImageSetPublic, status_code=201)
def create_image_set(image_set_data: ImageSetCreate, db: Session = Depends(deps.get_db)) -> ImageSetPublic:
    """
    Creates a new image set. Rooms created afterwards draw from the updated catalog;
    running rooms keep the catalog they started with.
    """
    existing = crud_image_set.get_image_set_by_content(
        db, images=image_set_data.images, correct_answer=image_set_data.correct_answer
    )
    if existing:
        logger.warning(f"Attempt to create duplicate image set for answer '{image_set_data.correct_answer}'.")
        raise HTTPException(
            status_code=409, # Conflict
            detail="An image set with these images and answer already exists."
        )

    created = crud_image_set.create_image_set(
        db,
        images=image_set_data.images,
        correct_answer=image_set_data.correct_answer,
        hint=image_set_data.hint,
        category=image_set_data.category,
    )
    return ImageSetPublic.model_validate(created)

@router.patch("/{image_set_id}", response_model=ImageSetPublic)
def update_image_set(image_set_id: int, updates: ImageSetUpdate, db: Session = Depends(deps.get_db)):
    item = _get_or_404(db, image_set_id)
    changes = updates.model_dump(exclude_unset=True)
    for required_field in ("images", "correct_answer"):
        if required_field in changes and changes[required_field] is None:
            raise HTTPException(status_code=400, detail=f"'{required_field}' cannot be null.")
    updated = crud_image_set.update_image_set(db, item, changes)
    return ImageSetPublic.model_validate(updated)

@router.delete("/{image_set_id}", status_code=204)
def delete_image_set(image_set_id: int, db: Session = Depends(deps.get_db)):
    item = _get_or_404(db, image_set_id)
    crud_image_set.delete_image_set(db, item)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
