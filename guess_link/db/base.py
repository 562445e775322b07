# guess_link/db/base.py
# Import all the models, so that Base has them before create_all() is called
from guess_link.db.base_class import Base
from guess_link.schemas.image_set import ImageSet
