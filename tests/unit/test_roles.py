import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cleaning_portal.db import crud
from cleaning_portal.errors import AuthorizationGap, NotFound, StoreError, ValidationError
from cleaning_portal.models import Base
from cleaning_portal.services import roles
from cleaning_portal.services.auth import AuthContext, create_session, validate_session, verify_password
from cleaning_portal.services.permissions import ALL_CAPABILITIES, Capability


@pytest_asyncio.fixture
async def db():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
    await engine.dispose()


@pytest_asyncio.fixture
async def admin(db):
    user = await crud.create_user(db, "admin@test.com", "x", role="admin")
    return AuthContext(user.id, "admin", user.email, "Admin", ALL_CAPABILITIES)


async def _role_names(db, user_id):
    return [r.role for r in await crud.list_role_rows(db, user_id)]


async def test_replace_role_leaves_exactly_one_row(db, admin):
    user = await crud.create_user(db, "c@test.com", "x", role="customer")

    await roles.replace_user_role(db, user.id, "staff", actor=admin)

    assert await _role_names(db, user.id) == ["staff"]
    assert await crud.get_staff_details(db, user.id) is not None
    activity = await crud.list_admin_activity(db)
    assert activity[0].old_values == {"role": "customer"}


async def test_failed_insert_keeps_old_role(db, admin, monkeypatch):
    user = await crud.create_user(db, "c@test.com", "x", role="customer")

    async def failing_add(*args, **kwargs):
        raise OperationalError("INSERT INTO user_roles", {}, Exception("constraint failed"))

    monkeypatch.setattr(crud, "add_user_role", failing_add)
    with pytest.raises(StoreError):
        await roles.replace_user_role(db, user.id, "admin", actor=admin)

    assert await _role_names(db, user.id) == ["customer"]
    assert await crud.get_admin_details(db, user.id) is None


async def test_invalid_role(db, admin):
    user = await crud.create_user(db, "c@test.com", "x")
    with pytest.raises(ValidationError) as exc_info:
        await roles.replace_user_role(db, user.id, "owner", actor=admin)
    assert exc_info.value.field == "role"


async def test_unknown_user(db, admin):
    with pytest.raises(NotFound):
        await roles.replace_user_role(db, "01MISSING", "staff", actor=admin)


async def test_promoting_to_admin_needs_manage_admins(db, admin):
    user = await crud.create_user(db, "c@test.com", "x")
    limited = AuthContext(
        admin.user_id, "admin", admin.email, "Admin",
        frozenset({Capability.MANAGE_STAFF, Capability.MANAGE_CUSTOMERS}),
    )

    with pytest.raises(AuthorizationGap):
        await roles.replace_user_role(db, user.id, "admin", actor=limited)
    await roles.replace_user_role(db, user.id, "staff", actor=limited)
    assert await _role_names(db, user.id) == ["staff"]


async def test_create_staff_with_temp_password(db, admin):
    user, temp_password = await roles.create_user_with_role(
        db, admin,
        email_address="New.Staff@Test.com", full_name="New Staff", role="staff",
        employee_id="E-7", hourly_rate=32.5,
    )

    assert user.email == "new.staff@test.com"
    assert verify_password(temp_password, user.password_hash)
    assert await _role_names(db, user.id) == ["staff"]
    details = await crud.get_staff_details(db, user.id)
    assert details.hourly_rate == 32.5
    assert details.employee_id == "E-7"
    profile = await crud.get_profile(db, user.id)
    assert profile.full_name == "New Staff"
    logs = await crud.list_email_logs(db)
    assert [(log.email_type, log.recipient) for log in logs] == [("account_created", "new.staff@test.com")]


async def test_create_admin_with_permissions(db, admin):
    user, _ = await roles.create_user_with_role(
        db, admin,
        email_address="mgr@test.com", full_name="Manager", role="admin",
        admin_level="manager", permissions={"can_manage_bookings": True},
    )
    details = await crud.get_admin_details(db, user.id)
    assert details.admin_level == "manager"
    assert details.can_manage_bookings is True
    assert details.can_manage_admins is False


async def test_create_user_rejects_duplicates_and_bad_input(db, admin):
    with pytest.raises(ValidationError) as exc_info:
        await roles.create_user_with_role(
            db, admin, email_address="admin@test.com", full_name="Dup", role="staff",
        )
    assert exc_info.value.field == "email"

    with pytest.raises(ValidationError) as exc_info:
        await roles.create_user_with_role(
            db, admin, email_address="x@test.com", full_name="X", role="admin",
            permissions={"can_fly": True},
        )
    assert exc_info.value.field == "permissions"


async def test_update_admin_permissions(db, admin):
    target = await crud.create_user(db, "sub@test.com", "x", role="admin")
    details = await roles.update_admin_permissions(
        db, admin, target.id, admin_level="supervisor",
        permissions={"can_view_reports": True},
    )
    assert details.admin_level == "supervisor"
    assert details.can_view_reports is True

    customer = await crud.create_user(db, "c@test.com", "x")
    with pytest.raises(ValidationError):
        await roles.update_admin_permissions(db, admin, customer.id, admin_level="super")


async def test_demoting_an_admin_needs_manage_admins(db, admin):
    boss = await crud.create_user(db, "boss@test.com", "x", role="admin")
    await crud.upsert_admin_details(db, boss.id, admin_level="super")
    customers_only = AuthContext(
        admin.user_id, "admin", admin.email, "Admin", frozenset({Capability.MANAGE_CUSTOMERS}),
    )

    with pytest.raises(AuthorizationGap):
        await roles.replace_user_role(db, boss.id, "customer", actor=customers_only)
    assert await _role_names(db, boss.id) == ["admin"]


async def test_moving_staff_to_customer_needs_both_capabilities(db, admin):
    worker = await crud.create_user(db, "w@test.com", "x", role="staff")
    customers_only = AuthContext(
        admin.user_id, "admin", admin.email, "Admin", frozenset({Capability.MANAGE_CUSTOMERS}),
    )
    with pytest.raises(AuthorizationGap):
        await roles.replace_user_role(db, worker.id, "customer", actor=customers_only)

    both = AuthContext(
        admin.user_id, "admin", admin.email, "Admin",
        frozenset({Capability.MANAGE_CUSTOMERS, Capability.MANAGE_STAFF}),
    )
    await roles.replace_user_role(db, worker.id, "customer", actor=both)
    assert await _role_names(db, worker.id) == ["customer"]


async def test_deactivate_requires_capability_for_target_role(db, admin):
    boss = await crud.create_user(db, "boss@test.com", "x", role="admin")
    customer = await crud.create_user(db, "c@test.com", "x")
    customers_only = AuthContext(
        admin.user_id, "admin", admin.email, "Admin", frozenset({Capability.MANAGE_CUSTOMERS}),
    )

    with pytest.raises(AuthorizationGap):
        await roles.deactivate_user(db, customers_only, boss.id)
    assert (await crud.get_user(db, boss.id)).is_active is True

    await roles.deactivate_user(db, customers_only, customer.id)
    assert (await crud.get_user(db, customer.id)).is_active is False


async def test_deactivate_removes_sessions(db, admin):
    worker = await crud.create_user(db, "w@test.com", "x", role="staff")
    token = await create_session(worker, db)

    await roles.deactivate_user(db, admin, worker.id)

    assert await validate_session(token, db) is None
    activity = await crud.list_admin_activity(db)
    assert activity[0].action_type == "deactivate_user"


async def test_cannot_deactivate_self(db, admin):
    with pytest.raises(ValidationError):
        await roles.deactivate_user(db, admin, admin.user_id)
