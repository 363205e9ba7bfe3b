"""
Tests for the generic soft-delete repository.
"""
import pytest
from sqlalchemy import func, inspect, select, text
from sqlalchemy.orm import selectinload
from app.core.constants import AccessFor, PermissionGroup
from app.core.pagination import Paging, SortType
from app.models.permission import Permission
from app.models.role import Role
from app.repositories.base import DatabaseRepository, InvalidQueryShape
from app.repositories.role import RoleRepository


@pytest.fixture
def repository(session_factory) -> DatabaseRepository:
    return DatabaseRepository(Permission, session_factory)


async def create_permission(repository: DatabaseRepository, code: str, group=PermissionGroup.USER, **extra):
    return await repository.create({"code": code, "name": code.title(), "group": group, **extra})


class TestCreate:
    """Tests for record creation."""

    @pytest.mark.asyncio
    async def test_create_assigns_id(self, repository):
        """Created records get an identifier and are readable by it."""
        created = await create_permission(repository, "USER_READ")

        assert created.id
        found = await repository.find_one_by_id(created.id)
        assert found is not None
        assert found.code == "USER_READ"
        assert found.name == "User_Read"
        assert found.group == PermissionGroup.USER
        assert found.deleted_at is None

    @pytest.mark.asyncio
    async def test_create_honors_caller_id(self, repository):
        """A caller-supplied id is used as is."""
        created = await repository.create(
            {"code": "ROLE_READ", "name": "Role read", "group": PermissionGroup.ROLE},
            record_id="fixed-id"
        )

        assert created.id == "fixed-id"
        assert (await repository.find_one_by_id("fixed-id")).code == "ROLE_READ"

    @pytest.mark.asyncio
    async def test_create_many(self, repository):
        """Bulk insert returns True and stores every record."""
        result = await repository.create_many([
            {"code": "A_READ", "name": "A", "group": PermissionGroup.USER},
            {"code": "B_READ", "name": "B", "group": PermissionGroup.ROLE},
        ])

        assert result is True
        assert await repository.get_total() == 2


class TestFind:
    """Tests for reads under the deletion filter."""

    @pytest.mark.asyncio
    async def test_soft_deleted_records_are_hidden(self, repository):
        """Soft-deleted records leave default reads and show up with with_deleted."""
        kept = await create_permission(repository, "KEPT")
        removed = await create_permission(repository, "REMOVED")

        await repository.soft_delete_one_by_id(removed.id)

        live = await repository.find_all()
        assert [record.id for record in live] == [kept.id]
        assert await repository.find_one_by_id(removed.id) is None
        assert await repository.find_one({"code": "REMOVED"}) is None

        deleted = await repository.find_all(with_deleted=True)
        assert [record.id for record in deleted] == [removed.id]
        assert (await repository.find_one_by_id(removed.id, with_deleted=True)).is_deleted

    @pytest.mark.asyncio
    async def test_paging_and_sort(self, repository):
        """Paging windows apply after sorting."""
        for code in ["C", "A", "E", "B", "D"]:
            await create_permission(repository, code)

        page = await repository.find_all(paging=Paging(limit=2, skip=1), sort={"code": SortType.ASC})
        assert [record.code for record in page] == ["B", "C"]

        page = await repository.find_all(paging=Paging(limit=2), sort={"code": SortType.DESC})
        assert [record.code for record in page] == ["E", "D"]

    @pytest.mark.asyncio
    async def test_mapping_filters(self, repository):
        """List values match with IN, None with IS NULL."""
        await create_permission(repository, "A", description="has one")
        await create_permission(repository, "B")
        await create_permission(repository, "C")

        found = await repository.find_all({"code": ["A", "C"]}, sort={"code": SortType.ASC})
        assert [record.code for record in found] == ["A", "C"]

        found = await repository.find_all({"description": None}, sort={"code": SortType.ASC})
        assert [record.code for record in found] == ["B", "C"]

    @pytest.mark.asyncio
    async def test_expression_and_mixed_filters(self, repository):
        """SQLAlchemy expressions work alone and AND-combined with mappings."""
        await create_permission(repository, "USER_READ", group=PermissionGroup.USER)
        await create_permission(repository, "USER_UPDATE", group=PermissionGroup.USER)
        await create_permission(repository, "ROLE_READ", group=PermissionGroup.ROLE)

        found = await repository.find_all(Permission.code.like("%_READ"))
        assert {record.code for record in found} == {"USER_READ", "ROLE_READ"}

        found = await repository.find_all([Permission.code.like("%_READ"), {"group": PermissionGroup.USER}])
        assert [record.code for record in found] == ["USER_READ"]

    @pytest.mark.asyncio
    async def test_projection(self, repository):
        """Selected fields are loaded."""
        await create_permission(repository, "USER_READ")

        record = await repository.find_one({"code": "USER_READ"}, select=["id", "code"])
        assert record.code == "USER_READ"

    @pytest.mark.asyncio
    async def test_unknown_field_is_rejected(self, repository):
        """Filters and sorts on fields the model lacks fail before any query runs."""
        with pytest.raises(InvalidQueryShape):
            await repository.find_all({"not_a_column": 1})

        with pytest.raises(InvalidQueryShape):
            await repository.find_all(sort={"not_a_column": SortType.ASC})

    @pytest.mark.asyncio
    async def test_get_total_matches_find_all(self, repository):
        """Counting uses the same filter as finding."""
        for code in ["A", "B", "C"]:
            await create_permission(repository, code)
        gone = await create_permission(repository, "D")
        await repository.soft_delete_one_by_id(gone.id)

        for find in [None, {"code": ["A", "B", "D"]}, Permission.code != "A"]:
            assert await repository.get_total(find) == len(await repository.find_all(find))

        assert await repository.get_total(with_deleted=True) == 1


class TestExists:
    """Tests for existence checks."""

    @pytest.mark.asyncio
    async def test_exclude_id(self, repository):
        """A record whose id is excluded is never reported."""
        record = await create_permission(repository, "USER_READ")

        assert await repository.exists({"code": "USER_READ"}) is True
        assert await repository.exists({"code": "USER_READ"}, exclude_id=[record.id]) is False
        assert await repository.exists({"code": "USER_READ"}, exclude_id=[]) is True

    @pytest.mark.asyncio
    async def test_respects_deletion_filter(self, repository):
        record = await create_permission(repository, "USER_READ")
        await repository.soft_delete_one_by_id(record.id)

        assert await repository.exists({"code": "USER_READ"}) is False
        assert await repository.exists({"code": "USER_READ"}, with_deleted=True) is True


class TestUpdate:
    """Tests for updates, which only touch live records."""

    @pytest.mark.asyncio
    async def test_update_returns_updated_record(self, repository):
        record = await create_permission(repository, "USER_READ")

        updated = await repository.update_one_by_id(record.id, {"name": "Read users"})

        assert updated.id == record.id
        assert updated.name == "Read users"
        assert (await repository.find_one_by_id(record.id)).name == "Read users"

    @pytest.mark.asyncio
    async def test_update_skips_soft_deleted(self, repository):
        """Updating a soft-deleted record returns None and changes nothing."""
        record = await create_permission(repository, "USER_READ")
        await repository.soft_delete_one_by_id(record.id)

        assert await repository.update_one_by_id(record.id, {"name": "changed"}) is None
        assert await repository.update_one({"code": "USER_READ"}, {"name": "changed"}) is None

        stored = await repository.find_one_by_id(record.id, with_deleted=True)
        assert stored.name == "User_Read"

    @pytest.mark.asyncio
    async def test_update_many(self, repository):
        for code in ["A", "B"]:
            await create_permission(repository, code)
        gone = await create_permission(repository, "C")
        await repository.soft_delete_one_by_id(gone.id)

        assert await repository.update_many({"group": PermissionGroup.USER}, {"is_active": False}) is True

        assert await repository.get_total({"is_active": False}) == 2
        assert (await repository.find_one_by_id(gone.id, with_deleted=True)).is_active is True

    @pytest.mark.asyncio
    async def test_update_unknown_field_is_rejected(self, repository):
        record = await create_permission(repository, "USER_READ")

        with pytest.raises(InvalidQueryShape):
            await repository.update_one_by_id(record.id, {"not_a_column": 1})


class TestDelete:
    """Tests for hard and soft deletes."""

    @pytest.mark.asyncio
    async def test_hard_delete_removes_record(self, repository):
        record = await create_permission(repository, "USER_READ")

        deleted = await repository.delete_one_by_id(record.id)

        assert deleted.id == record.id
        assert await repository.find_one_by_id(record.id) is None
        assert await repository.find_one_by_id(record.id, with_deleted=True) is None

    @pytest.mark.asyncio
    async def test_hard_delete_ignores_marker(self, repository):
        """Soft-deleted records can still be removed physically."""
        record = await create_permission(repository, "USER_READ")
        await repository.soft_delete_one_by_id(record.id)

        assert (await repository.delete_one({"code": "USER_READ"})).id == record.id
        assert await repository.find_one_by_id(record.id, with_deleted=True) is None

    @pytest.mark.asyncio
    async def test_delete_missing_returns_none(self, repository):
        assert await repository.delete_one_by_id("missing") is None

    @pytest.mark.asyncio
    async def test_delete_many(self, repository):
        records = [await create_permission(repository, code) for code in ["A", "B", "C"]]

        assert await repository.delete_many_by_ids([records[0].id, records[1].id]) is True
        assert await repository.delete_many({"code": "C"}) is True
        assert await repository.get_total() == 0

    @pytest.mark.asyncio
    async def test_soft_delete_is_not_repeated(self, repository):
        """A second soft delete finds no live record."""
        record = await create_permission(repository, "USER_READ")

        first = await repository.soft_delete_one_by_id(record.id)
        assert first.deleted_at is not None
        assert await repository.soft_delete_one_by_id(record.id) is None

    @pytest.mark.asyncio
    async def test_soft_delete_one_by_filter(self, repository):
        """Only the live record matching the filter gets the marker."""
        await create_permission(repository, "A", group=PermissionGroup.USER)
        target = await create_permission(repository, "B", group=PermissionGroup.ROLE)

        deleted = await repository.soft_delete_one({"group": PermissionGroup.ROLE})

        assert deleted.id == target.id
        assert deleted.deleted_at is not None
        assert [record.code for record in await repository.find_all()] == ["A"]
        assert await repository.soft_delete_one({"group": PermissionGroup.ROLE}) is None

    @pytest.mark.asyncio
    async def test_soft_delete_many(self, repository):
        records = [await create_permission(repository, code) for code in ["A", "B", "C"]]

        assert await repository.soft_delete_many_by_ids([records[0].id]) is True
        assert await repository.soft_delete_many({"code": ["B"]}) is True

        assert [record.code for record in await repository.find_all()] == ["C"]
        assert await repository.get_total(with_deleted=True) == 2


class TestRestore:
    """Tests for restoring soft-deleted records."""

    @pytest.mark.asyncio
    async def test_restore_live_record_is_noop(self, repository):
        """Restoring a never-deleted record returns None and does not touch it."""
        record = await create_permission(repository, "USER_READ")

        assert await repository.restore_one_by_id(record.id) is None
        assert await repository.restore_one({"code": "USER_READ"}) is None

        stored = await repository.find_one_by_id(record.id)
        assert stored.updated_at == record.updated_at

    @pytest.mark.asyncio
    async def test_restore_one_by_id(self, repository):
        record = await create_permission(repository, "USER_READ")
        await repository.soft_delete_one_by_id(record.id)

        restored = await repository.restore_one_by_id(record.id)

        assert restored.deleted_at is None
        assert (await repository.find_one_by_id(record.id)) is not None

    @pytest.mark.asyncio
    async def test_restore_one_honors_filter(self, repository):
        """Only the deleted record matching the filter comes back."""
        first = await create_permission(repository, "A")
        second = await create_permission(repository, "B")
        await repository.soft_delete_many_by_ids([first.id, second.id])

        restored = await repository.restore_one({"code": "B"})

        assert restored.id == second.id
        assert [record.code for record in await repository.find_all()] == ["B"]

    @pytest.mark.asyncio
    async def test_restore_many(self, repository):
        records = [await create_permission(repository, code) for code in ["A", "B", "C"]]
        await repository.soft_delete_many_by_ids([record.id for record in records])

        assert await repository.restore_many({"code": ["A", "B"]}) is True
        assert await repository.restore_many_by_ids([records[2].id]) is True
        assert await repository.get_total() == 3


class TestCallerSession:
    """Tests for operations running inside a caller-owned session."""

    @pytest.mark.asyncio
    async def test_rolled_back_with_caller_session(self, repository, session_factory):
        """Nothing done inside a caller session survives its rollback."""
        kept = await create_permission(repository, "KEPT")

        async with session_factory() as session:
            await repository.create(
                {"code": "NEW", "name": "New", "group": PermissionGroup.USER},
                session=session
            )
            await repository.soft_delete_one_by_id(kept.id, session=session)

            assert await repository.exists({"code": "NEW"}, session=session) is True
            assert await repository.find_one_by_id(kept.id, session=session) is None

            await session.rollback()

        assert await repository.exists({"code": "NEW"}) is False
        assert (await repository.find_one_by_id(kept.id)).deleted_at is None

    @pytest.mark.asyncio
    async def test_committed_with_caller_session(self, repository, session_factory):
        async with session_factory() as session:
            await repository.create(
                {"code": "NEW", "name": "New", "group": PermissionGroup.USER},
                session=session
            )
            await session.commit()

        assert await repository.exists({"code": "NEW"}) is True


class TestRaw:
    """Tests for raw queries."""

    @pytest.mark.asyncio
    async def test_raw_select(self, repository):
        await create_permission(repository, "USER_READ", group=PermissionGroup.USER)
        await create_permission(repository, "USER_UPDATE", group=PermissionGroup.USER)
        await create_permission(repository, "ROLE_READ", group=PermissionGroup.ROLE)

        rows = await repository.raw(
            select(Permission.group, func.count().label("total"))
            .group_by(Permission.group)
            .order_by(Permission.group)
        )

        assert {row["group"]: row["total"] for row in rows} == {
            PermissionGroup.ROLE: 1,
            PermissionGroup.USER: 2,
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("statement", [
        "SELECT * FROM permissions",
        {"code": "USER_READ"},
        None,
        text("SELECT * FROM permissions"),
    ])
    async def test_raw_rejects_non_select(self, repository, statement):
        with pytest.raises(InvalidQueryShape):
            await repository.raw(statement)

    def test_model_property(self, repository):
        assert repository.model is Permission


class TestJoin:
    """Tests for relation loading through the join option."""

    @pytest.fixture
    def role_repository(self, session_factory) -> RoleRepository:
        return RoleRepository(session_factory)

    @pytest.fixture
    async def role(self, repository, role_repository):
        permissions = [await create_permission(repository, code) for code in ["USER_READ", "ROLE_READ"]]
        role = await role_repository.create({"name": "reader", "access_for": AccessFor.ADMIN})
        await role_repository.update_permissions(role.id, [permission.id for permission in permissions])
        return role

    @pytest.mark.asyncio
    async def test_join_off_leaves_relations_unloaded(self, role_repository, role):
        found = await role_repository.find_one_by_id(role.id)

        assert "permissions" in inspect(found).unloaded

    @pytest.mark.asyncio
    async def test_join_true_applies_default_options(self, role_repository, role):
        found = await role_repository.find_one_by_id(role.id, join=True)

        assert "permissions" not in inspect(found).unloaded
        assert [permission.code for permission in found.permissions] == ["ROLE_READ", "USER_READ"]

    @pytest.mark.asyncio
    async def test_join_with_explicit_options(self, session_factory, role):
        """Loader options given by the caller replace the default ones."""
        repository = DatabaseRepository(Role, session_factory)

        plain = await repository.find_all({"name": "reader"}, join=True)
        joined = await repository.find_all({"name": "reader"}, join=[selectinload(Role.permissions)])

        assert "permissions" in inspect(plain[0]).unloaded
        assert len(joined[0].permissions) == 2

    @pytest.mark.asyncio
    async def test_join_on_write_result(self, role_repository, role):
        """Update and soft delete return the record with the requested relations."""
        updated = await role_repository.update_one_by_id(role.id, {"description": "Reads"}, join=True)
        deleted = await role_repository.soft_delete_one({"name": "reader"}, join=True)

        assert updated.description == "Reads"
        assert len(updated.permissions) == 2
        assert deleted.deleted_at is not None
        assert len(deleted.permissions) == 2
