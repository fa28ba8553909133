from carmarket.services.admin import get_admin, Authorized, Forbidden, Unauthenticated
from carmarket.services.users import check_user
from carmarket.db.crud import get_user_by_clerk_id


class ExplodingSession:
    """A session that must not be touched."""

    def __getattr__(self, name):
        raise AssertionError(f"database was used: {name}")


async def test_no_session_skips_database_lookup():
    check = await get_admin(ExplodingSession(), None)

    assert check == Unauthenticated()
    assert check.as_dict() == {"authorized": False, "reason": "not-authenticated"}


async def test_regular_user_is_not_admin(db, regular_user, user_identity):
    check = await get_admin(db, user_identity)

    assert isinstance(check, Forbidden)
    assert check.as_dict() == {"authorized": False, "reason": "not-admin"}


async def test_unknown_account_is_not_admin(db, admin_identity):
    check = await get_admin(db, admin_identity)

    assert isinstance(check, Forbidden)


async def test_admin_is_authorized_with_user(db, admin_user, admin_identity):
    check = await get_admin(db, admin_identity)

    assert isinstance(check, Authorized)
    assert check.authorized is True
    assert check.user.id == admin_user.id
    assert check.as_dict()["user"] is check.user


async def test_check_user_creates_account_once(db, user_identity):
    created = await check_user(db, user_identity)

    assert created.clerk_user_id == user_identity.sub
    assert created.name == "Joe Buyer"
    assert created.email == "joe@example.com"
    assert created.role == "USER"

    again = await check_user(db, user_identity)
    assert again.id == created.id
    assert (await get_user_by_clerk_id(db, user_identity.sub)).id == created.id


async def test_check_user_without_identity():
    assert await check_user(ExplodingSession(), None) is None
