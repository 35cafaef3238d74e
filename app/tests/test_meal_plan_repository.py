# tests/test_meal_plan_repository.py
from datetime import date

import pytest

from app.models.domain import MealPlanUpdate, MealType, NewMealPlanEntry
from app.services.errors import RecordStoreError, ValidationError
from app.services.meal_plan_repository import MealPlanRepository, week_bounds

OWNER = "owner-1"
WEDNESDAY = date(2024, 5, 8)


def _repo(fake_supabase):
    return MealPlanRepository(fake_supabase, today=lambda: WEDNESDAY)


def _seed(fake_supabase, day, meal_type="dinner", owner=OWNER, **row):
    row.setdefault("person", "Alex")
    return fake_supabase.seed("meal_plan", user_id=owner, date=day, meal_type=meal_type, **row)


def test_week_bounds_are_monday_to_sunday():
    assert week_bounds(WEDNESDAY) == (date(2024, 5, 6), date(2024, 5, 12))
    assert week_bounds(date(2024, 5, 6)) == (date(2024, 5, 6), date(2024, 5, 12))
    assert week_bounds(date(2024, 5, 12)) == (date(2024, 5, 6), date(2024, 5, 12))


@pytest.mark.asyncio
async def test_default_window_is_current_week_in_date_order(fake_supabase):
    _seed(fake_supabase, "2024-05-10", custom_dish="Pizza")
    _seed(fake_supabase, "2024-05-06", "breakfast", custom_dish="Porridge")
    _seed(fake_supabase, "2024-05-13", custom_dish="Next week")
    _seed(fake_supabase, "2024-05-07", owner="owner-2", custom_dish="Not ours")
    repo = _repo(fake_supabase)

    meals = await repo.list(OWNER)

    assert [m.custom_dish for m in meals] == ["Porridge", "Pizza"]
    assert meals[0].meal_type == MealType.BREAKFAST
    assert repo.window(OWNER) == (date(2024, 5, 6), date(2024, 5, 12))


@pytest.mark.asyncio
async def test_new_window_refetches_and_same_window_uses_cache(fake_supabase):
    _seed(fake_supabase, "2024-05-13", custom_dish="Soup")
    repo = _repo(fake_supabase)

    assert await repo.list(OWNER) == []
    meals = await repo.list(OWNER, date(2024, 5, 13), date(2024, 5, 19))
    assert [m.custom_dish for m in meals] == ["Soup"]
    await repo.list(OWNER)

    assert fake_supabase.ops("meal_plan") == [("meal_plan", "select"), ("meal_plan", "select")]


@pytest.mark.asyncio
async def test_reversed_window_is_rejected(fake_supabase):
    repo = _repo(fake_supabase)
    with pytest.raises(ValidationError):
        await repo.list(OWNER, date(2024, 5, 12), date(2024, 5, 6))
    assert fake_supabase.journal == []


@pytest.mark.asyncio
async def test_add_update_delete_refresh_the_window(fake_supabase):
    repo = _repo(fake_supabase)

    meals = await repo.add(
        OWNER,
        NewMealPlanEntry(date=WEDNESDAY, meal_type=MealType.LUNCH, person="Sam", recipe_id="r-1"),
    )
    [meal] = meals
    [row] = fake_supabase.rows("meal_plan")
    assert row["date"] == "2024-05-08"
    assert row["meal_type"] == "lunch"
    assert row["user_id"] == OWNER

    meals = await repo.update(OWNER, meal.id, MealPlanUpdate(extra_servings=3, notes="double batch"))
    assert meals[0].extra_servings == 3
    update = [e for e in fake_supabase.journal if e["op"] == "update"][0]
    assert update["payload"] == {"extra_servings": 3, "notes": "double batch"}

    assert await repo.delete(OWNER, meal.id) == []
    assert fake_supabase.rows("meal_plan") == []


@pytest.mark.asyncio
async def test_update_ignores_cleared_identity_fields(fake_supabase):
    repo = _repo(fake_supabase)
    await repo.update(OWNER, "m-1", MealPlanUpdate(person="", date=None))
    assert fake_supabase.journal == []


@pytest.mark.asyncio
async def test_writes_are_owner_scoped(fake_supabase):
    meal_id = _seed(fake_supabase, "2024-05-08")
    repo = _repo(fake_supabase)

    await repo.delete("owner-2", meal_id)
    assert len(fake_supabase.rows("meal_plan")) == 1
    assert await repo.find("owner-2", meal_id) is None
    assert (await repo.find(OWNER, meal_id)).id == meal_id


@pytest.mark.asyncio
async def test_failed_insert_raises_and_keeps_cache(fake_supabase):
    _seed(fake_supabase, "2024-05-08", custom_dish="Tacos")
    repo = _repo(fake_supabase)
    await repo.list(OWNER)
    fake_supabase.fail("meal_plan", "insert", "permission denied")

    with pytest.raises(RecordStoreError):
        await repo.add(OWNER, NewMealPlanEntry(date=WEDNESDAY, meal_type=MealType.DINNER, person="Alex"))

    assert repo.error(OWNER) == "permission denied"
    assert [m.custom_dish for m in repo.snapshot(OWNER)] == ["Tacos"]


@pytest.mark.asyncio
async def test_failed_load_is_retried_on_next_list(fake_supabase):
    _seed(fake_supabase, "2024-05-08", custom_dish="Tacos")
    fake_supabase.fail("meal_plan", "select", "offline")
    repo = _repo(fake_supabase)

    assert await repo.list(OWNER) == []
    assert repo.error(OWNER) == "offline"

    fake_supabase.recover("meal_plan", "select")
    assert len(await repo.list(OWNER)) == 1
    assert repo.error(OWNER) is None


def test_person_is_required():
    with pytest.raises(ValueError):
        NewMealPlanEntry(date=WEDNESDAY, meal_type=MealType.DINNER, person="")
