"""Unit of work for database transactions."""

from sqlalchemy.ext.asyncio import AsyncSession


class UnitOfWork:
    """Groups the writes of one transaction attempt on a session.

    CRUD writes that receive a unit of work only stage changes; the commit happens once, when
    the context manager exits cleanly. Any exception rolls the whole attempt back, which
    is what lets ``run_transaction`` retry a body from scratch.

    Usage:
    -----
    ```python
    async with UnitOfWork(db) as uow:
        user = await crud.user.get(db, id=uid)
        club = await crud.club.get(db, id=club_id)
        await crud.user.update(db, db_obj=user, obj_in={...}, uow=uow)
        await crud.club.update(db, db_obj=club, obj_in={...}, uow=uow)
    ```

    """

    def __init__(self, session: AsyncSession):
        """Bind the unit of work to a session."""
        self.session = session
        self._finished = False
        self._committed = False

    @property
    def committed(self) -> bool:
        """Whether this attempt reached a successful commit."""
        return self._committed

    async def commit(self) -> None:
        """Commit once.

        A failing commit (a stale version or a unique violation surfacing at flush)
        rolls the session back before the error propagates.
        """
        if self._finished:
            return
        try:
            await self.session.commit()
        except Exception:
            await self.rollback()
            raise
        self._finished = True
        self._committed = True

    async def rollback(self) -> None:
        """Roll back unless the attempt already finished."""
        if self._finished:
            return
        self._finished = True
        await self.session.rollback()

    async def __aenter__(self) -> "UnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is None:
            await self.commit()
        else:
            await self.rollback()
