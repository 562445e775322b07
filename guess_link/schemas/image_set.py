# guess_link/schemas/image_set.py
from sqlalchemy import Column, String, Integer, JSON, DateTime
from sqlalchemy.sql import func
from guess_link.db.base_class import Base

class ImageSet(Base):
    __tablename__ = "image_sets"

    id = Column(Integer, primary_key=True, index=True)
    images = Column(JSON, nullable=False) # Exactly three image URLs
    correct_answer = Column(String, nullable=False)
    hint = Column(String, nullable=True)
    category = Column(String, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
