"""
A :py:class:`jsonapi_codec.interfaces.Store` over an asynchronous SQLAlchemy engine.

Synopsis
--------

.. code-block:: python

   from sqlalchemy.ext.asyncio import create_async_engine

   from jsonapi_codec.implementations.sqlalchemy import SQLAStore

   engine = create_async_engine("sqlite+aiosqlite:///:memory:")
   store = SQLAStore(registry, engine)
   await store.create_all()

Link fields that declare an inverse are kept in sync: linking ``a`` to ``b`` links ``b``
back to ``a``, and unlinking or deleting does the reverse.
"""

import logging
import typing
import uuid
from collections import OrderedDict

import sqlalchemy as sa  # type: ignore
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine  # type: ignore

from ...exceptions import BadRequestError, ConflictError, NotFoundError
from ...interfaces import FindResult, Record, Store, Update
from ...models import ResourceRelationshipDescriptor, ResourceTypeRegistry
from ...query import IncludePath, QueryOptions
from .core import SQLADescriptor, build_descriptors
from .querying import QueryPlan

logger = logging.getLogger(__name__)


def _as_list(value: typing.Any) -> typing.List[typing.Any]:
    if value is None:
        return []
    elif isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _project(
    record: typing.Dict[str, typing.Any],
    primary_key: str,
    fields: typing.Optional[typing.Mapping[str, bool]],
) -> typing.Dict[str, typing.Any]:
    if not fields:
        return record
    if any(fields.values()):
        return {k: v for k, v in record.items() if k == primary_key or fields.get(k)}
    return {k: v for k, v in record.items() if k == primary_key or k not in fields}


class SQLAStore(Store):
    """
    :param ResourceTypeRegistry registry: the resource types; one table is declared per type.
    :param AsyncEngine engine: the engine to run statements on.
    :param Optional[sa.MetaData] metadata: the metadata to declare the tables on.
    :param str table_prefix: prepended to the name of every table.
    """

    registry: ResourceTypeRegistry
    engine: AsyncEngine
    metadata: sa.MetaData
    descrs: typing.Dict[str, SQLADescriptor]

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(self.metadata.create_all)

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(self.metadata.drop_all)

    async def _load(
        self,
        conn: AsyncConnection,
        descr: SQLADescriptor,
        ids: typing.Optional[typing.Sequence[typing.Any]],
    ) -> typing.List[typing.Dict[str, typing.Any]]:
        if ids is not None and not ids:
            return []
        q = sa.select(descr.table)
        if ids is not None:
            q = q.where(descr.id_column.in_([descr.to_db_id(id) for id in ids]))
        result = await conn.execute(q)
        return [descr.from_row(row) for row in result.mappings()]

    async def _load_one(
        self, conn: AsyncConnection, descr: SQLADescriptor, id: typing.Any
    ) -> typing.Optional[typing.Dict[str, typing.Any]]:
        records = await self._load(conn, descr, [id])
        return records[0] if records else None

    async def _write(
        self,
        conn: AsyncConnection,
        descr: SQLADescriptor,
        id: typing.Any,
        changes: typing.Mapping[str, typing.Any],
    ) -> None:
        await conn.execute(
            descr.table.update()
            .where(descr.id_column == descr.to_db_id(id))
            .values({descr.column(f): descr.to_db(f, v) for f, v in changes.items()})
        )

    def _validate_fields(
        self, descr: SQLADescriptor, fields: typing.Iterable[str], allow_primary_key: bool = False
    ) -> None:
        for field in fields:
            if field == descr.primary_key:
                if allow_primary_key:
                    continue
                raise BadRequestError(f'The field "{field}" can not be changed.')
            field_descr = descr.descr.get_field(field)
            if field_descr is None:
                raise BadRequestError(f'The field "{field}" is not declared on "{descr.name}".')
            if isinstance(field_descr, ResourceRelationshipDescriptor) and field_descr.denormalized_inverse:
                raise BadRequestError(f'The field "{field}" is read-only.')

    async def _check_related(
        self,
        conn: AsyncConnection,
        rel: ResourceRelationshipDescriptor,
        ids: typing.Sequence[typing.Any],
    ) -> None:
        ids = list(OrderedDict.fromkeys(ids))
        if not ids:
            return
        found = await self._load(conn, self.descrs[rel.destination], ids)
        if len(found) < len(ids):
            raise BadRequestError(
                f'A related record for the field "{rel.name}" was not found.'
            )

    async def _drop_from(
        self,
        conn: AsyncConnection,
        descr: SQLADescriptor,
        id: typing.Any,
        field: str,
        value: typing.Any,
    ) -> None:
        record = await self._load_one(conn, descr, id)
        if record is None:
            return
        current = record[field]
        if isinstance(current, list):
            if value in current:
                await self._write(conn, descr, id, {field: [v for v in current if v != value]})
        elif current == value:
            await self._write(conn, descr, id, {field: None})

    async def _link(
        self,
        conn: AsyncConnection,
        descr: SQLADescriptor,
        id: typing.Any,
        rel: ResourceRelationshipDescriptor,
        related_id: typing.Any,
    ) -> None:
        if rel.inverse is None:
            return
        dest = self.descrs[rel.destination]
        inverse = dest.descr.relationships[rel.inverse]
        related = await self._load_one(conn, dest, related_id)
        if related is None:
            return
        if inverse.is_array:
            values = related[inverse.name]
            if id not in values:
                await self._write(conn, dest, related_id, {inverse.name: values + [id]})
        else:
            previous = related[inverse.name]
            if previous == id:
                return
            if previous is not None:
                # the related record leaves whatever it was linked to
                await self._drop_from(conn, descr, previous, rel.name, related_id)
            await self._write(conn, dest, related_id, {inverse.name: id})

    async def _unlink(
        self,
        conn: AsyncConnection,
        id: typing.Any,
        rel: ResourceRelationshipDescriptor,
        related_id: typing.Any,
    ) -> None:
        if rel.inverse is None:
            return
        await self._drop_from(conn, self.descrs[rel.destination], related_id, rel.inverse, id)

    async def _sync_inverse(
        self,
        conn: AsyncConnection,
        descr: SQLADescriptor,
        id: typing.Any,
        rel: ResourceRelationshipDescriptor,
        old: typing.Any,
        new: typing.Any,
    ) -> None:
        old_ids, new_ids = _as_list(old), _as_list(new)
        for related_id in old_ids:
            if related_id not in new_ids:
                await self._unlink(conn, id, rel, related_id)
        for related_id in new_ids:
            if related_id not in old_ids:
                await self._link(conn, descr, id, rel, related_id)

    async def _find_include(
        self,
        conn: AsyncConnection,
        descr: SQLADescriptor,
        records: typing.Sequence[Record],
        paths: typing.Sequence[IncludePath],
    ) -> typing.Dict[str, typing.List[Record]]:
        include: "OrderedDict[str, OrderedDict[str, Record]]" = OrderedDict()
        for path in paths:
            current_descr, current = descr, records
            for field in path:
                rel = current_descr.descr.relationships.get(field)
                if rel is None:
                    raise BadRequestError(
                        f'The field "{field}" is not a link on the type "{current_descr.name}".',
                        source={"parameter": "include"},
                    )
                related_ids = list(
                    OrderedDict.fromkeys(
                        related_id
                        for record in current
                        for related_id in _as_list(record.get(field))
                    )
                )
                dest = self.descrs[rel.destination]
                fetched = await self._load(conn, dest, related_ids)
                bucket = include.setdefault(rel.destination, OrderedDict())
                for record in fetched:
                    bucket.setdefault(dest.to_db_id(record[dest.primary_key]), record)
                current_descr, current = dest, fetched
        return OrderedDict((k, list(v.values())) for k, v in include.items())

    async def find(
        self,
        type: str,
        ids: typing.Optional[typing.Sequence[typing.Any]] = None,
        options: typing.Optional[QueryOptions] = None,
        meta: typing.Optional[typing.Mapping[str, typing.Any]] = None,
    ) -> FindResult:
        descr = self.descrs[type]
        if ids is not None and not ids:
            return FindResult(records=[], count=0)
        plan = QueryPlan(descr, options)
        offset = (options.offset if options is not None else None) or 0
        limit = options.limit if options is not None else None

        async with self.engine.connect() as conn:
            where = plan.where(ids)
            if plan.runs_in_sql:
                count = (
                    await conn.execute(
                        sa.select(sa.func.count()).select_from(descr.table).where(*where)
                    )
                ).scalar_one()
                q = sa.select(descr.table).where(*where).order_by(*(plan.order_by or ()))
                if offset:
                    q = q.offset(offset)
                if limit:
                    q = q.limit(limit)
                records = [descr.from_row(row) for row in (await conn.execute(q)).mappings()]
            else:
                q = sa.select(descr.table).where(*where).order_by(*(plan.order_by or ()))
                loaded = [descr.from_row(row) for row in (await conn.execute(q)).mappings()]
                matched = plan.filter(loaded)
                if plan.order_by is None:
                    matched = plan.sort_records(matched)
                count = len(matched)
                records = matched[offset : offset + limit if limit else None]

            include = None
            if options is not None and options.include:
                include = await self._find_include(conn, descr, records, options.include)

        logger.debug("find %s %r: %d of %d", type, ids, len(records), count)
        fields = options.fields if options is not None else None
        return FindResult(
            records=[_project(r, descr.primary_key, fields) for r in records],
            count=count,
            include=include,
        )

    async def create(
        self,
        type: str,
        records: typing.Sequence[Record],
        meta: typing.Optional[typing.Mapping[str, typing.Any]] = None,
    ) -> typing.Sequence[Record]:
        descr = self.descrs[type]
        primary_key = descr.primary_key
        prepared = []
        for record in records:
            self._validate_fields(descr, record.keys(), allow_primary_key=True)
            record = dict(record)
            if record.get(primary_key) is None:
                record[primary_key] = uuid.uuid4().hex
            for rel in descr.descr.relationships.values():
                if rel.is_array and rel.name in record:
                    record[rel.name] = list(OrderedDict.fromkeys(_as_list(record[rel.name])))
            prepared.append(record)

        ids = [descr.to_db_id(r[primary_key]) for r in prepared]
        if len(set(ids)) < len(ids):
            raise ConflictError("Duplicate IDs in the request.")

        async with self.engine.begin() as conn:
            existing = await self._load(conn, descr, ids)
            if existing:
                raise ConflictError(
                    f'Record with ID "{existing[0][primary_key]}" already exists.'
                )
            for record in prepared:
                for rel in descr.descr.relationships.values():
                    await self._check_related(conn, rel, _as_list(record.get(rel.name)))
            await conn.execute(descr.table.insert(), [descr.to_row(r) for r in prepared])
            for record in prepared:
                for rel in descr.descr.relationships.values():
                    await self._sync_inverse(
                        conn, descr, record[primary_key], rel, None, record.get(rel.name)
                    )
            created = {descr.to_db_id(r[primary_key]): r for r in await self._load(conn, descr, ids)}

        logger.debug("created %s %r", type, ids)
        return [created[id] for id in ids]

    def _apply(
        self, descr: SQLADescriptor, record: Record, update: Update
    ) -> typing.Dict[str, typing.Any]:
        changes: typing.Dict[str, typing.Any] = {}
        for field, value in update.replace.items():
            changes[field] = list(_as_list(value)) if descr.is_array(field) else value
        for field, values in update.push.items():
            if not descr.is_array(field):
                raise BadRequestError(f'The field "{field}" is not an array.')
            current = changes.get(field, record[field])
            changes[field] = current + [v for v in _as_list(values) if v not in current]
        for field, values in update.pull.items():
            if not descr.is_array(field):
                raise BadRequestError(f'The field "{field}" is not an array.')
            current = changes.get(field, record[field])
            pulled = _as_list(values)
            changes[field] = [v for v in current if v not in pulled]
        return {f: v for f, v in changes.items() if v != record[f]}

    async def update(
        self,
        type: str,
        updates: typing.Sequence[Update],
        meta: typing.Optional[typing.Mapping[str, typing.Any]] = None,
    ) -> int:
        descr = self.descrs[type]
        modified = 0
        async with self.engine.begin() as conn:
            for update in updates:
                self._validate_fields(
                    descr, [*update.replace.keys(), *update.push.keys(), *update.pull.keys()]
                )
                record = await self._load_one(conn, descr, update.id)
                if record is None:
                    raise NotFoundError(f'Record with ID "{update.id}" does not exist.')
                changes = self._apply(descr, record, update)
                if not changes:
                    continue
                for field, value in changes.items():
                    rel = descr.descr.relationships.get(field)
                    if rel is not None:
                        added = [v for v in _as_list(value) if v not in _as_list(record[field])]
                        await self._check_related(conn, rel, added)
                await self._write(conn, descr, update.id, changes)
                for field, value in changes.items():
                    rel = descr.descr.relationships.get(field)
                    if rel is not None:
                        await self._sync_inverse(
                            conn, descr, record[descr.primary_key], rel, record[field], value
                        )
                modified += 1
        logger.debug("updated %s: %d of %d modified", type, modified, len(updates))
        return modified

    async def delete(
        self,
        type: str,
        ids: typing.Optional[typing.Sequence[typing.Any]] = None,
        meta: typing.Optional[typing.Mapping[str, typing.Any]] = None,
    ) -> typing.Sequence[Record]:
        descr = self.descrs[type]
        async with self.engine.begin() as conn:
            records = await self._load(conn, descr, ids)
            if not records:
                raise NotFoundError("No records match the request.")
            for record in records:
                id = record[descr.primary_key]
                for rel in descr.descr.relationships.values():
                    for related_id in _as_list(record[rel.name]):
                        await self._unlink(conn, id, rel, related_id)
            await conn.execute(
                descr.table.delete().where(
                    descr.id_column.in_([descr.to_db_id(r[descr.primary_key]) for r in records])
                )
            )
        logger.debug("deleted %s %r", type, [r[descr.primary_key] for r in records])
        return records

    def __init__(
        self,
        registry: ResourceTypeRegistry,
        engine: AsyncEngine,
        metadata: typing.Optional[sa.MetaData] = None,
        table_prefix: str = "",
    ):
        self.registry = registry
        self.engine = engine
        self.metadata = metadata if metadata is not None else sa.MetaData()
        self.descrs = build_descriptors(registry, self.metadata, table_prefix)
