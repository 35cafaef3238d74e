# tests/test_cooking_session_repository.py
import pytest

from app.models.domain import CookingSessionItem
from app.services.cooking_session_repository import ITEMS_TABLE, CookingSessionRepository
from app.services.errors import RecordStoreError

OWNER = "owner-1"


@pytest.mark.asyncio
async def test_create_session_returns_generated_id(fake_supabase):
    repo = CookingSessionRepository(fake_supabase)

    session_id = await repo.create_session(OWNER, "Tacos", 42.5)

    [row] = fake_supabase.rows("cooking_sessions")
    assert row["id"] == session_id
    assert row["user_id"] == OWNER
    assert row["total_cost"] == 42.5


@pytest.mark.asyncio
async def test_sessions_are_listed_with_their_items(fake_supabase):
    repo = CookingSessionRepository(fake_supabase)
    first = await repo.create_session(OWNER, "Soup", 10.0)
    second = await repo.create_session(OWNER, "Tacos", 20.0)
    await repo.add_session_item(
        OWNER, CookingSessionItem(session_id=second, item_name="Tortilla", quantity_used=4, unit="st", cost=12)
    )
    await repo.add_session_item(
        OWNER, CookingSessionItem(session_id=second, item_name="Salsa", quantity_used=1, unit="dl", cost=8)
    )

    sessions = await repo.list(OWNER)

    assert [s.id for s in sessions] == [second, first]
    assert sorted(i.item_name for i in sessions[0].items) == ["Salsa", "Tortilla"]
    assert sessions[1].items == []


@pytest.mark.asyncio
async def test_item_read_failure_yields_empty_items(fake_supabase):
    repo = CookingSessionRepository(fake_supabase)
    session_id = await repo.create_session(OWNER, "Soup", 10.0)
    await repo.add_session_item(
        OWNER, CookingSessionItem(session_id=session_id, item_name="Leek", quantity_used=1, unit="st", cost=10)
    )
    fake_supabase.fail(ITEMS_TABLE, "select", "timeout")

    [session] = await repo.list(OWNER)

    assert session.id == session_id
    assert session.items == []
    assert repo.error(OWNER) is None


@pytest.mark.asyncio
async def test_get_session_is_owner_scoped(fake_supabase):
    repo = CookingSessionRepository(fake_supabase)
    session_id = await repo.create_session(OWNER, "Curry", 55.0)

    assert (await repo.get_session(OWNER, session_id)).dish_name == "Curry"
    assert await repo.get_session("owner-2", session_id) is None
    assert await repo.get_session(OWNER, "missing") is None


@pytest.mark.asyncio
async def test_get_session_failure_sets_error(fake_supabase):
    repo = CookingSessionRepository(fake_supabase)
    session_id = await repo.create_session(OWNER, "Curry", 55.0)
    fake_supabase.fail("cooking_sessions", "select", "offline")

    assert await repo.get_session(OWNER, session_id) is None
    assert repo.error(OWNER) == "offline"


@pytest.mark.asyncio
async def test_session_item_needs_session_id(fake_supabase):
    repo = CookingSessionRepository(fake_supabase)
    with pytest.raises(RecordStoreError):
        await repo.add_session_item(
            OWNER, CookingSessionItem(item_name="Leek", quantity_used=1, unit="st", cost=0)
        )
    assert fake_supabase.journal == []


@pytest.mark.asyncio
async def test_create_session_invalidates_cache(fake_supabase):
    repo = CookingSessionRepository(fake_supabase)
    assert await repo.list(OWNER) == []

    await repo.create_session(OWNER, "Stew", 30.0)

    assert [s.dish_name for s in await repo.list(OWNER)] == ["Stew"]


@pytest.mark.asyncio
async def test_session_row_without_created_at_is_reported_not_raised(fake_supabase):
    fake_supabase.tables["cooking_sessions"] = [
        {"id": "s1", "user_id": OWNER, "dish_name": "Stew", "total_cost": 12.0}
    ]
    repo = CookingSessionRepository(fake_supabase)

    assert await repo.refresh(OWNER) == []
    assert "created_at" in repo.error(OWNER)
    assert repo.is_loading(OWNER) is False

    assert await repo.get_session(OWNER, "s1") is None
    assert "created_at" in repo.error(OWNER)
