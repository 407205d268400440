"""CRUD operations for users."""

from clubhost import schemas
from clubhost.crud._base import CRUDBase
from clubhost.models import User


class CRUDUser(CRUDBase[User, schemas.UserCreate, schemas.UserCreate]):
    """CRUD operations for users."""


user = CRUDUser(User)
