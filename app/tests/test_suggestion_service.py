# tests/test_suggestion_service.py
import json
from datetime import date

import pytest

from app.models.domain import InventoryItem
from app.services.errors import SuggestionServiceError
from app.services.suggestion_service import SuggestionService, clean_json


def _inventory():
    return [
        InventoryItem.from_row(
            {
                "id": "abc",
                "name": "Pasta",
                "quantity": 1.0,
                "unit": "kg",
                "expiry_date": "2024-05-04",
                "added_at": "2024-05-01T10:00:00+00:00",
            }
        )
    ]


def test_clean_json_strips_code_fences():
    assert clean_json('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert clean_json('  {"a": 1} ') == '{"a": 1}'


@pytest.mark.asyncio
async def test_suggest_deductions_parses_and_drops_malformed(fake_openai):
    fake_openai.reply_json(
        {
            "deductions": [
                {"itemId": "abc", "name": "Pasta", "currentQuantity": 1, "deductAmount": 0.2, "unit": "kg"},
                {"itemId": "abc", "name": "Pasta", "deductAmount": -1},
                "not-an-object",
            ]
        }
    )
    svc = SuggestionService(client=fake_openai)

    suggestions = await svc.suggest_deductions("pasta for two", _inventory())

    assert len(suggestions) == 1
    assert suggestions[0].item_id == "abc"
    assert suggestions[0].deduct_amount == 0.2
    call = fake_openai.calls[0]
    assert call["model"] == "gpt-test"
    assert call["response_format"] == {"type": "json_object"}
    assert "pasta for two" in call["messages"][0]["content"]


@pytest.mark.asyncio
async def test_fenced_reply_is_accepted(fake_openai):
    fake_openai.content = '```json\n{"deductions": [{"itemId": 7, "name": "Rice", "deductAmount": 1}]}\n```'
    svc = SuggestionService(client=fake_openai)

    [suggestion] = await svc.suggest_deductions("rice", [])

    assert suggestion.item_id == "7"


@pytest.mark.asyncio
async def test_non_json_reply_raises(fake_openai):
    fake_openai.content = "Sorry, I cannot help with that."
    svc = SuggestionService(client=fake_openai)

    with pytest.raises(SuggestionServiceError):
        await svc.suggest_deductions("soup", [])


@pytest.mark.asyncio
async def test_api_error_raises(fake_openai):
    fake_openai.error = RuntimeError("rate limited")
    svc = SuggestionService(client=fake_openai)

    with pytest.raises(SuggestionServiceError):
        await svc.suggest_recipes([])


@pytest.mark.asyncio
async def test_unconfigured_service_raises():
    svc = SuggestionService()
    assert svc.openai_client is None
    with pytest.raises(SuggestionServiceError):
        await svc.suggest_deductions("soup", [])


@pytest.mark.asyncio
async def test_suggest_recipes_sends_days_left(fake_openai):
    fake_openai.reply_json(
        {
            "recipes": [
                {
                    "title": "Pasta al limone",
                    "ingredients": ["pasta", "lemon"],
                    "missingIngredients": ["lemon"],
                    "instructions": ["Boil", "Toss"],
                    "cookTime": "20 min",
                },
                {"description": "no title"},
            ]
        }
    )
    svc = SuggestionService(client=fake_openai)

    recipes = await svc.suggest_recipes(_inventory(), today=date(2024, 5, 2))

    assert [r.title for r in recipes] == ["Pasta al limone"]
    assert recipes[0].id
    assert recipes[0].missing_ingredients == ["lemon"]
    prompt = fake_openai.calls[0]["messages"][0]["content"]
    assert '"daysLeft": 2' in prompt


@pytest.mark.asyncio
async def test_extract_items_builds_scan_result(fake_openai):
    fake_openai.content = json.dumps(
        {
            "detectedType": "receipt",
            "totalCost": 64.5,
            "items": [
                {"name": "Milk", "quantity": 1, "unit": "l", "category": "dairy",
                 "expiryDate": "2024-05-09", "priceInfo": 15.5},
                {"name": "", "quantity": 1},
            ],
        }
    )
    svc = SuggestionService(client=fake_openai)

    result = await svc.extract_items(
        b"\x89PNGdata", "image/png", ocr={"text": "MJOLK 15,50", "labels": ["receipt"]},
        today=date(2024, 5, 2),
    )

    assert result.detected_type == "receipt"
    assert result.total_cost == 64.5
    assert [i.name for i in result.items] == ["Milk"]
    assert result.items[0].expiry_date == date(2024, 5, 9)
    call = fake_openai.calls[0]
    assert call["model"] == "gpt-test-vision"
    image_part, text_part = call["messages"][0]["content"]
    assert image_part["image_url"]["url"].startswith("data:image/png;base64,")
    assert "MJOLK 15,50" in text_part["text"]


@pytest.mark.asyncio
async def test_extract_items_rejects_empty_image(fake_openai):
    svc = SuggestionService(client=fake_openai)
    with pytest.raises(SuggestionServiceError):
        await svc.extract_items(b"")
    assert fake_openai.calls == []
