"""Base CRUD class for club hosting tables."""

from typing import Any, Generic, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clubhost.db.field_updates import apply_field_updates
from clubhost.db.unit_of_work import UnitOfWork
from clubhost.models._base import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """Reads and writes shared by every table keyed by a string id.

    Writes take an optional ``UnitOfWork``. Without one they commit on their own; with
    one they only stage the change and the unit of work commits when it exits.
    """

    def __init__(self, model: Type[ModelType]):
        """Bind the CRUD object to its model."""
        self.model = model

    async def _commit_unless_staged(self, db: AsyncSession, uow: Optional[UnitOfWork]) -> None:
        if uow is None:
            await db.commit()

    async def get(self, db: AsyncSession, id: str) -> Optional[ModelType]:
        """Load a row by id.

        The row is always re-read from the database, so a retried transaction sees the
        version another writer committed in the meantime rather than the identity map copy.
        """
        query = select(self.model).where(self.model.id == id)
        result = await db.execute(query.execution_options(populate_existing=True))
        return result.unique().scalar_one_or_none()

    async def create(
        self,
        db: AsyncSession,
        *,
        obj_in: Union[CreateSchemaType, dict[str, Any]],
        uow: Optional[UnitOfWork] = None,
    ) -> ModelType:
        """Insert a row built from a schema or a plain dict."""
        values = obj_in if isinstance(obj_in, dict) else obj_in.model_dump(exclude_unset=True)
        db_obj = self.model(**values)
        db.add(db_obj)
        await self._commit_unless_staged(db, uow)
        return db_obj

    async def update(
        self,
        db: AsyncSession,
        *,
        db_obj: ModelType,
        obj_in: Union[UpdateSchemaType, dict[str, Any]],
        document_updates: Optional[Mapping[str, Mapping[str, Any]]] = None,
        uow: Optional[UnitOfWork] = None,
    ) -> ModelType:
        """Update plain columns and merge dotted-path changes into JSON document columns.

        Args:
        ----
            db (AsyncSession): The database session.
            db_obj (ModelType): The loaded row.
            obj_in (Union[UpdateSchemaType, dict[str, Any]]): New values for plain columns.
                Keys the model does not have are ignored.
            document_updates (Mapping[str, Mapping[str, Any]], optional): Field updates per
                JSON column, e.g. ``{"billing": {"usage.payingMembers": 3}}``. Values may be
                ``DELETE_FIELD`` or ``SERVER_TIMESTAMP``.
            uow (UnitOfWork, optional): Stage the change instead of committing it.

        Returns:
        -------
            ModelType: The updated row

        """
        values = obj_in if isinstance(obj_in, dict) else obj_in.model_dump(exclude_unset=True)
        for key, value in values.items():
            if hasattr(db_obj, key):
                setattr(db_obj, key, value)

        for column, updates in (document_updates or {}).items():
            # A new dict object, so the JSON column is detected as changed
            setattr(db_obj, column, apply_field_updates(getattr(db_obj, column), updates))

        db.add(db_obj)
        await self._commit_unless_staged(db, uow)
        return db_obj
