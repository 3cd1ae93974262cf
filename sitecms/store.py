"""
Content store client.
Create/read/update/delete against named collections of the hosted database.
"""
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union
import logging

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sitecms.errors import FetchError, StoreError
from sitecms.models import GalleryImage, SiteSetting

logger = logging.getLogger(__name__)

COLLECTIONS = {
    "gallery_images": GalleryImage,
    "site_settings": SiteSetting,
}

Record = Any
Match = Mapping[str, Any]


class ContentStore:
    """
    Thin collection-oriented wrapper around an AsyncSession.

    Reads raise FetchError, writes raise StoreError; a failed write rolls the
    session back so nothing from the attempt is persisted.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    def _model(self, collection: str):
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise StoreError("Unknown collection", f"Collection '{collection}' does not exist")

    def _column(self, model, name: str):
        if name not in model.__table__.columns:
            raise StoreError("Unknown column", f"'{name}' is not a column of {model.__tablename__}")
        return getattr(model, name)

    def _where(self, model, match: Optional[Match]) -> list:
        clauses = []
        for name, value in (match or {}).items():
            column = self._column(model, name)
            if isinstance(value, (list, tuple, set)):
                clauses.append(column.in_(list(value)))
            elif value is None:
                clauses.append(column.is_(None))
            else:
                clauses.append(column == value)
        return clauses

    def _order_by(self, model, order_by: Optional[Sequence[str]]) -> list:
        terms = []
        for name in order_by or []:
            descending = name.startswith("-")
            column = self._column(model, name.lstrip("-"))
            terms.append(column.desc() if descending else column.asc())
        return terms

    async def list(
        self,
        collection: str,
        filters: Optional[Match] = None,
        order_by: Optional[Sequence[str]] = None,
    ) -> List[Record]:
        model = self._model(collection)
        query = (
            select(model)
            .where(*self._where(model, filters))
            .order_by(*self._order_by(model, order_by))
            .execution_options(populate_existing=True)
        )
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            logger.error(f"Failed to list {collection}: {str(e)}", exc_info=True)
            raise FetchError(f"Failed to retrieve {collection}", str(e)) from e
        return list(result.scalars().all())

    async def get(self, collection: str, match: Match) -> Optional[Record]:
        records = await self.list(collection, match)
        return records[0] if records else None

    async def max_value(self, collection: str, column: str) -> Optional[Any]:
        model = self._model(collection)
        try:
            result = await self.session.execute(select(func.max(self._column(model, column))))
        except SQLAlchemyError as e:
            raise FetchError(f"Failed to read {collection}.{column}", str(e)) from e
        return result.scalar()

    async def insert(
        self,
        collection: str,
        records: Union[Dict[str, Any], Iterable[Dict[str, Any]]],
    ) -> List[Record]:
        """Insert one or many records in a single transaction."""
        model = self._model(collection)
        if isinstance(records, Mapping):
            records = [records]
        created = [model(**dict(values)) for values in records]
        try:
            self.session.add_all(created)
            await self.session.flush()
            for record in created:
                await self.session.refresh(record)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Failed to insert into {collection}: {str(e)}", exc_info=True)
            raise StoreError(f"Failed to save {collection}", str(e)) from e
        logger.info(f"Inserted {len(created)} record(s) into {collection}")
        return created

    async def update(self, collection: str, match: Match, patch: Mapping[str, Any]) -> int:
        model = self._model(collection)
        clauses = self._where(model, match)
        if not clauses:
            raise StoreError("Refusing to update", "An unconstrained update is not allowed")
        if not patch:
            return 0
        values = {self._column(model, name).key: value for name, value in patch.items()}
        logger.debug(f"Updating {collection} where {dict(match)} with {sorted(values)}")
        try:
            result = await self.session.execute(
                update(model).where(*clauses).values(**values)
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Failed to update {collection}: {str(e)}", exc_info=True)
            raise StoreError(f"Failed to update {collection}", str(e)) from e
        return result.rowcount

    async def delete(self, collection: str, match: Match) -> int:
        model = self._model(collection)
        clauses = self._where(model, match)
        if not clauses:
            raise StoreError("Refusing to delete", "An unconstrained delete is not allowed")
        try:
            result = await self.session.execute(
                delete(model).where(*clauses)
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Failed to delete from {collection}: {str(e)}", exc_info=True)
            raise StoreError(f"Failed to delete {collection}", str(e)) from e
        return result.rowcount

    async def upsert(self, collection: str, record: Mapping[str, Any], key: str) -> Record:
        """Insert the record, or overwrite the row whose `key` column matches."""
        model = self._model(collection)
        self._column(model, key)
        try:
            merged = await self.session.merge(model(**dict(record)))
            await self.session.flush()
            await self.session.refresh(merged)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Failed to upsert into {collection}: {str(e)}", exc_info=True)
            raise StoreError(f"Failed to save {collection}", str(e)) from e
        return merged

    async def run_in_transaction(self, steps) -> None:
        """
        Run several update/delete statements atomically.
        `steps` is a list of ("update", collection, match, patch) or
        ("delete", collection, match) tuples.
        """
        try:
            for step in steps:
                action, collection = step[0], step[1]
                model = self._model(collection)
                if action == "update":
                    statement = update(model).where(*self._where(model, step[2])).values(**dict(step[3]))
                elif action == "delete":
                    statement = delete(model).where(*self._where(model, step[2]))
                else:
                    raise StoreError("Unknown store action", action)
                await self.session.execute(statement)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Transaction failed: {str(e)}", exc_info=True)
            raise StoreError("Failed to apply changes", str(e)) from e
