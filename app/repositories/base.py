"""
Generic soft-delete repository.

Every model handled here carries a ``deleted_at`` marker. Reads only see live
rows (marker NULL) unless ``with_deleted=True`` is passed, in which case they
only see soft-deleted rows. Hard deletes ignore the marker.

Filters can be given as:
    - a mapping ``{"field": value}``: equality, ``IN`` for list/tuple/set
      values, ``IS NULL`` for None
    - a SQLAlchemy boolean expression, e.g. ``User.username.ilike("a%")``
    - a list or tuple of the above, combined with AND

Every operation accepts an optional ``session``. A caller-supplied session is
only flushed; committing or rolling it back is up to the caller. Without one,
the repository opens a session from its factory and commits on success.
"""
import logging
from contextlib import asynccontextmanager
from typing import (
    Any,
    AsyncIterator,
    Dict,
    Generic,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Type,
    TypeVar,
    Union,
)
from sqlalchemy import Select, delete, func, inspect, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import load_only
from sqlalchemy.sql import ColumnElement
from sqlalchemy.sql.base import ExecutableOption
from app.core.dates import utcnow
from app.core.pagination import Paging, SortType

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType")

FilterCriteria = Union[
    Mapping[str, Any],
    ColumnElement,
    Sequence[Union[Mapping[str, Any], ColumnElement]],
]
JoinOption = Union[bool, Sequence[ExecutableOption]]

DELETED_AT_FIELD_NAME = "deleted_at"


class InvalidQueryShape(ValueError):
    """Raised before dispatch when a filter, projection or raw query is malformed."""


class DatabaseRepository(Generic[ModelType]):
    """CRUD over one model with the soft-delete convention applied uniformly."""

    def __init__(
        self,
        model: Type[ModelType],
        session_factory: async_sessionmaker,
        join_on_find: Optional[Sequence[ExecutableOption]] = None
    ):
        self._model = model
        self._mapper = inspect(model)
        self._session_factory = session_factory
        self._join_on_find = list(join_on_find or [])

    @property
    def model(self) -> Type[ModelType]:
        """The underlying model class, for queries the repository can't express."""
        return self._model

    # helpers

    @asynccontextmanager
    async def _session(self, session: Optional[AsyncSession]) -> AsyncIterator[AsyncSession]:
        if session is not None:
            yield session
            return

        async with self._session_factory() as db:
            try:
                yield db
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    def _column(self, field: str):
        if field not in self._mapper.column_attrs:
            raise InvalidQueryShape(f"{self._model.__name__} has no field '{field}'")
        return getattr(self._model, field)

    def _deleted_criteria(self, with_deleted: bool) -> ColumnElement:
        column = getattr(self._model, DELETED_AT_FIELD_NAME)
        if with_deleted:
            return column.is_not(None)
        return column.is_(None)

    def _build_criteria(self, find: Optional[FilterCriteria]) -> List[ColumnElement]:
        if find is None:
            return []

        if isinstance(find, Mapping):
            criteria = []
            for field, value in find.items():
                column = self._column(field)
                if isinstance(value, (list, tuple, set, frozenset)):
                    criteria.append(column.in_(list(value)))
                elif value is None:
                    criteria.append(column.is_(None))
                else:
                    criteria.append(column == value)
            return criteria

        if isinstance(find, ColumnElement):
            return [find]

        if isinstance(find, (list, tuple)):
            criteria = []
            for item in find:
                criteria.extend(self._build_criteria(item))
            return criteria

        raise InvalidQueryShape(
            f"Unsupported filter type {type(find).__name__}; "
            "expected a mapping, a SQLAlchemy expression or a list of them"
        )

    def _ids_criteria(self, record_ids: Iterable[str]) -> ColumnElement:
        return self._model.id.in_(list(record_ids))

    def _values(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        values = dict(data)
        for field in values:
            self._column(field)
        return values

    def _join_options(self, join: Optional[JoinOption]) -> List[ExecutableOption]:
        if not join:
            return []
        if join is True:
            return self._join_on_find
        return list(join)

    def _apply_join(self, query: Select, join: Optional[JoinOption]) -> Select:
        options = self._join_options(join)
        if options:
            query = query.options(*options)
        return query

    def _apply_projection(self, query: Select, fields: Optional[Sequence[str]]) -> Select:
        if fields:
            query = query.options(load_only(*[self._column(field) for field in fields]))
        return query

    def _apply_sort(self, query: Select, sort: Optional[Mapping[str, SortType]]) -> Select:
        if not sort:
            return query
        order_by = []
        for field, direction in sort.items():
            column = self._column(field)
            order_by.append(column.asc() if SortType(direction) == SortType.ASC else column.desc())
        return query.order_by(*order_by)

    def _query(self, criteria: List[ColumnElement]) -> Select:
        # populate_existing keeps objects fresh when a caller session is reused after updates
        return (
            select(self._model)
            .where(*criteria)
            .execution_options(populate_existing=True)
        )

    async def _reload(self, db: AsyncSession, record_id: str, join: Optional[JoinOption]) -> Optional[ModelType]:
        query = self._apply_join(self._query([self._model.id == record_id]), join)
        result = await db.execute(query)
        return result.scalars().first()

    async def _find_one_and_update(
        self,
        criteria: List[ColumnElement],
        values: Dict[str, Any],
        join: Optional[JoinOption],
        session: Optional[AsyncSession]
    ) -> Optional[ModelType]:
        async with self._session(session) as db:
            result = await db.execute(select(self._model.id).where(*criteria).limit(1))
            record_id = result.scalars().first()
            if record_id is None:
                return None

            # criteria repeated so a concurrent change between the two statements matches nothing
            result = await db.execute(
                update(self._model)
                .where(self._model.id == record_id, *criteria)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                return None

            return await self._reload(db, record_id, join)

    async def _update_many(
        self,
        criteria: List[ColumnElement],
        values: Dict[str, Any],
        session: Optional[AsyncSession]
    ) -> bool:
        async with self._session(session) as db:
            await db.execute(
                update(self._model)
                .where(*criteria)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
        return True

    async def _find_one_and_delete(
        self,
        criteria: List[ColumnElement],
        join: Optional[JoinOption],
        session: Optional[AsyncSession]
    ) -> Optional[ModelType]:
        async with self._session(session) as db:
            query = self._apply_join(self._query(criteria).limit(1), join)
            result = await db.execute(query)
            record = result.scalars().first()
            if record is None:
                return None

            await db.execute(
                delete(self._model)
                .where(self._model.id == record.id)
                .execution_options(synchronize_session=False)
            )
            logger.debug(f"Deleted {self._model.__name__} {record.id}")
            return record

    async def _delete_many(self, criteria: List[ColumnElement], session: Optional[AsyncSession]) -> bool:
        async with self._session(session) as db:
            result = await db.execute(
                delete(self._model)
                .where(*criteria)
                .execution_options(synchronize_session=False)
            )
            logger.debug(f"Deleted {result.rowcount} {self._model.__name__} record(s)")
        return True

    # find

    async def find_all(
        self,
        find: Optional[FilterCriteria] = None,
        *,
        with_deleted: bool = False,
        select: Optional[Sequence[str]] = None,
        paging: Optional[Paging] = None,
        sort: Optional[Mapping[str, SortType]] = None,
        join: Optional[JoinOption] = None,
        session: Optional[AsyncSession] = None
    ) -> List[ModelType]:
        criteria = self._build_criteria(find) + [self._deleted_criteria(with_deleted)]
        query = self._apply_projection(self._query(criteria), select)
        query = self._apply_sort(query, sort)
        if paging:
            query = query.limit(paging.limit).offset(paging.skip)
        query = self._apply_join(query, join)

        async with self._session(session) as db:
            result = await db.execute(query)
            return list(result.scalars().all())

    async def find_one(
        self,
        find: Optional[FilterCriteria] = None,
        *,
        with_deleted: bool = False,
        select: Optional[Sequence[str]] = None,
        sort: Optional[Mapping[str, SortType]] = None,
        join: Optional[JoinOption] = None,
        session: Optional[AsyncSession] = None
    ) -> Optional[ModelType]:
        criteria = self._build_criteria(find) + [self._deleted_criteria(with_deleted)]
        query = self._apply_projection(self._query(criteria), select)
        query = self._apply_sort(query, sort).limit(1)
        query = self._apply_join(query, join)

        async with self._session(session) as db:
            result = await db.execute(query)
            return result.scalars().first()

    async def find_one_by_id(
        self,
        record_id: str,
        *,
        with_deleted: bool = False,
        select: Optional[Sequence[str]] = None,
        join: Optional[JoinOption] = None,
        session: Optional[AsyncSession] = None
    ) -> Optional[ModelType]:
        return await self.find_one(
            self._model.id == record_id,
            with_deleted=with_deleted,
            select=select,
            join=join,
            session=session
        )

    async def get_total(
        self,
        find: Optional[FilterCriteria] = None,
        *,
        with_deleted: bool = False,
        join: Optional[JoinOption] = None,
        session: Optional[AsyncSession] = None
    ) -> int:
        """Count matching records. ``join`` is accepted for symmetry and has no effect on a count."""
        criteria = self._build_criteria(find) + [self._deleted_criteria(with_deleted)]
        query = select(func.count()).select_from(self._model).where(*criteria)

        async with self._session(session) as db:
            result = await db.execute(query)
            return result.scalar() or 0

    async def exists(
        self,
        find: Optional[FilterCriteria] = None,
        *,
        with_deleted: bool = False,
        exclude_id: Optional[Sequence[str]] = None,
        join: Optional[JoinOption] = None,
        session: Optional[AsyncSession] = None
    ) -> bool:
        criteria = self._build_criteria(find) + [self._deleted_criteria(with_deleted)]
        if exclude_id:
            criteria.append(self._model.id.not_in(list(exclude_id)))
        query = select(self._model.id).where(*criteria).limit(1)

        async with self._session(session) as db:
            result = await db.execute(query)
            return result.first() is not None

    async def raw(self, raw_operation: Select, *, session: Optional[AsyncSession] = None) -> List[Dict[str, Any]]:
        """
        Run a SELECT the other operations can't express (aggregates, GROUP BY, joins).

        The deletion marker is not applied; the statement runs as written.

        Raises:
            InvalidQueryShape if ``raw_operation`` is not a SQLAlchemy ``Select``
        """
        if not isinstance(raw_operation, Select):
            raise InvalidQueryShape(
                f"Raw operation must be a SELECT statement, got {type(raw_operation).__name__}"
            )

        async with self._session(session) as db:
            result = await db.execute(raw_operation)
            return [dict(row) for row in result.mappings().all()]

    # create

    async def create(
        self,
        data: Mapping[str, Any],
        *,
        record_id: Optional[str] = None,
        session: Optional[AsyncSession] = None
    ) -> ModelType:
        values = dict(data)
        if record_id is not None:
            values["id"] = record_id
        record = self._model(**values)

        async with self._session(session) as db:
            db.add(record)
            await db.flush()

        return record

    async def create_many(
        self,
        data: Sequence[Mapping[str, Any]],
        *,
        session: Optional[AsyncSession] = None
    ) -> bool:
        records = [self._model(**dict(item)) for item in data]

        async with self._session(session) as db:
            db.add_all(records)
            await db.flush()

        return True

    # update

    async def update_one_by_id(
        self,
        record_id: str,
        data: Mapping[str, Any],
        *,
        join: Optional[JoinOption] = None,
        session: Optional[AsyncSession] = None
    ) -> Optional[ModelType]:
        criteria = [self._model.id == record_id, self._deleted_criteria(False)]
        return await self._find_one_and_update(criteria, self._values(data), join, session)

    async def update_one(
        self,
        find: FilterCriteria,
        data: Mapping[str, Any],
        *,
        join: Optional[JoinOption] = None,
        session: Optional[AsyncSession] = None
    ) -> Optional[ModelType]:
        criteria = self._build_criteria(find) + [self._deleted_criteria(False)]
        return await self._find_one_and_update(criteria, self._values(data), join, session)

    async def update_many(
        self,
        find: FilterCriteria,
        data: Mapping[str, Any],
        *,
        session: Optional[AsyncSession] = None
    ) -> bool:
        criteria = self._build_criteria(find) + [self._deleted_criteria(False)]
        return await self._update_many(criteria, self._values(data), session)

    # hard delete

    async def delete_one_by_id(
        self,
        record_id: str,
        *,
        join: Optional[JoinOption] = None,
        session: Optional[AsyncSession] = None
    ) -> Optional[ModelType]:
        return await self._find_one_and_delete([self._model.id == record_id], join, session)

    async def delete_one(
        self,
        find: FilterCriteria,
        *,
        join: Optional[JoinOption] = None,
        session: Optional[AsyncSession] = None
    ) -> Optional[ModelType]:
        return await self._find_one_and_delete(self._build_criteria(find), join, session)

    async def delete_many(self, find: FilterCriteria, *, session: Optional[AsyncSession] = None) -> bool:
        return await self._delete_many(self._build_criteria(find), session)

    async def delete_many_by_ids(self, record_ids: Sequence[str], *, session: Optional[AsyncSession] = None) -> bool:
        return await self._delete_many([self._ids_criteria(record_ids)], session)

    # soft delete

    async def soft_delete_one_by_id(
        self,
        record_id: str,
        *,
        join: Optional[JoinOption] = None,
        session: Optional[AsyncSession] = None
    ) -> Optional[ModelType]:
        criteria = [self._model.id == record_id, self._deleted_criteria(False)]
        return await self._find_one_and_update(criteria, {DELETED_AT_FIELD_NAME: utcnow()}, join, session)

    async def soft_delete_one(
        self,
        find: FilterCriteria,
        *,
        join: Optional[JoinOption] = None,
        session: Optional[AsyncSession] = None
    ) -> Optional[ModelType]:
        criteria = self._build_criteria(find) + [self._deleted_criteria(False)]
        return await self._find_one_and_update(criteria, {DELETED_AT_FIELD_NAME: utcnow()}, join, session)

    async def soft_delete_many(self, find: FilterCriteria, *, session: Optional[AsyncSession] = None) -> bool:
        criteria = self._build_criteria(find) + [self._deleted_criteria(False)]
        return await self._update_many(criteria, {DELETED_AT_FIELD_NAME: utcnow()}, session)

    async def soft_delete_many_by_ids(
        self,
        record_ids: Sequence[str],
        *,
        session: Optional[AsyncSession] = None
    ) -> bool:
        criteria = [self._ids_criteria(record_ids), self._deleted_criteria(False)]
        return await self._update_many(criteria, {DELETED_AT_FIELD_NAME: utcnow()}, session)

    # restore

    async def restore_one_by_id(
        self,
        record_id: str,
        *,
        join: Optional[JoinOption] = None,
        session: Optional[AsyncSession] = None
    ) -> Optional[ModelType]:
        criteria = [self._model.id == record_id, self._deleted_criteria(True)]
        return await self._find_one_and_update(criteria, {DELETED_AT_FIELD_NAME: None}, join, session)

    async def restore_one(
        self,
        find: FilterCriteria,
        *,
        join: Optional[JoinOption] = None,
        session: Optional[AsyncSession] = None
    ) -> Optional[ModelType]:
        criteria = self._build_criteria(find) + [self._deleted_criteria(True)]
        return await self._find_one_and_update(criteria, {DELETED_AT_FIELD_NAME: None}, join, session)

    async def restore_many(self, find: FilterCriteria, *, session: Optional[AsyncSession] = None) -> bool:
        criteria = self._build_criteria(find) + [self._deleted_criteria(True)]
        return await self._update_many(criteria, {DELETED_AT_FIELD_NAME: None}, session)

    async def restore_many_by_ids(
        self,
        record_ids: Sequence[str],
        *,
        session: Optional[AsyncSession] = None
    ) -> bool:
        criteria = [self._ids_criteria(record_ids), self._deleted_criteria(True)]
        return await self._update_many(criteria, {DELETED_AT_FIELD_NAME: None}, session)
