# guess_link/services/round_catalog.py
import logging
import random
from typing import Callable, List, Sequence

from sqlalchemy.orm import Session, sessionmaker

from guess_link.core.exceptions import CatalogEmpty
from guess_link.crud import crud_image_set
from guess_link.models.game import ImageSetPublic

logger = logging.getLogger("guess_link.services.round_catalog")  # Logger for this module

# Picks one image set out of the ones not drawn yet
ImageSetPicker = Callable[[List[ImageSetPublic]], ImageSetPublic]


class RoundCatalog:
    """
    Hands out image sets in random order without repeats. Once every set has
    been drawn the pool is refilled and drawing starts over.

    ``picker`` decides which of the remaining sets comes next (``random.choice``
    by default); tests pass e.g. ``lambda available: available[0]``.
    """

    def __init__(self, image_sets: Sequence[ImageSetPublic], picker: ImageSetPicker | None = None):
        if not image_sets:
            raise CatalogEmpty("Cannot build a round catalog without image sets")
        self._image_sets = list(image_sets)
        self._picker = picker or random.choice
        self._used_ids: set[int] = set()

    def __len__(self):
        return len(self._image_sets)

    @property
    def remaining(self) -> int:
        return len(self._image_sets) - len(self._used_ids)

    def next(self) -> ImageSetPublic:
        if len(self._used_ids) >= len(self._image_sets):
            logger.debug(f"All {len(self._image_sets)} image sets used. Resetting pool.")
            self._used_ids.clear()

        available = [image_set for image_set in self._image_sets if image_set.id not in self._used_ids]
        selected = self._picker(available)
        self._used_ids.add(selected.id)
        return selected


def load_catalog(session_factory: sessionmaker, picker: ImageSetPicker | None = None) -> RoundCatalog:
    """Builds a fresh catalog from every image set in the database."""
    db: Session = session_factory()
    try:
        image_sets = [ImageSetPublic.model_validate(item) for item in crud_image_set.get_image_sets(db)]
    finally:
        db.close()
    logger.debug(f"Loaded {len(image_sets)} image sets into a new round catalog.")
    return RoundCatalog(image_sets, picker=picker)
