"""
AI assistance: model answer parsing, hex normalization, and metering
(usage is recorded only after a usable answer).
"""
import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

from errors import UpstreamError, ValidationError
from services.ai_service import (
    ai_service,
    parse_model_json,
    normalize_hex,
    normalize_hex_list,
    shape_palette,
    shape_suggestions,
)


def test_parse_model_json_strips_code_fences():
    text = '```json\n{"palette": ["#fff"], "fonts": {"heading": "Inter", "body": "Lato"}}\n```'
    assert parse_model_json(text)["fonts"]["heading"] == "Inter"


def test_parse_model_json_rejects_non_object():
    with pytest.raises(ValueError):
        parse_model_json("[1, 2]")


def test_normalize_hex_variants():
    assert normalize_hex("abc") == "#AABBCC"
    assert normalize_hex("#1a2b3c") == "#1A2B3C"
    assert normalize_hex(" 1A2B3C ") == "#1A2B3C"
    assert normalize_hex("red") is None
    assert normalize_hex("#12345") is None


def test_normalize_hex_list_drops_invalid_and_duplicates():
    assert normalize_hex_list(["#fff", "FFFFFF", "nope", "#000"]) == ["#FFFFFF", "#000000"]
    assert normalize_hex_list("not a list") == []


def test_shape_suggestions_caps_palette():
    data = {"palette": ["#111", "#222", "#333", "#444", "#555", "#666"], "fonts": {"heading": "A", "body": "B"}, "layout": "Grid"}
    shaped = shape_suggestions(data)
    assert len(shaped["palette"]) == 5
    assert shaped["layout"] == "Grid"


def test_shape_palette_fills_full_palette():
    shaped = shape_palette({"primary": ["#111"], "complementary": ["#eee"]})
    assert shaped["fullPalette"] == ["#111111", "#EEEEEE"]
    with pytest.raises(ValueError):
        shape_palette({"primary": []})


def _free_user():
    now = datetime.now(timezone.utc)
    return {
        "user_id": "USR-1",
        "is_premium": False,
        "usage_limits": {"month": now.month, "year": now.year, "ai_suggestions": 1, "color_palettes": 0},
    }


def _db():
    db = MagicMock()
    db.users.update_one = AsyncMock(return_value=MagicMock(modified_count=1))
    db.activity_logs.insert_one = AsyncMock()
    return db


@pytest.mark.asyncio
async def test_suggestions_record_usage_on_success():
    db = _db()
    answer = '{"palette": ["#ff0000", "#00ff00", "#0000ff"], "fonts": {"heading": "Poppins", "body": "Inter"}, "layout": "Centered"}'
    with patch("services.usage_service.database.get_db", return_value=db):
        with patch("services.ai_service.llm_chat.chat", new_callable=AsyncMock, return_value=answer):
            result = await ai_service.design_suggestions(_free_user(), "Bakery flyer")
    assert result["palette"] == ["#FF0000", "#00FF00", "#0000FF"]
    assert db.users.update_one.call_args[0][1] == {"$inc": {"usage_limits.ai_suggestions": 1}}


@pytest.mark.asyncio
async def test_suggestions_failure_does_not_consume_quota():
    db = _db()
    with patch("services.usage_service.database.get_db", return_value=db):
        with patch("services.ai_service.llm_chat.chat", new_callable=AsyncMock, return_value="not json"):
            with pytest.raises(UpstreamError) as exc_info:
                await ai_service.design_suggestions(_free_user(), "Bakery flyer")
    assert exc_info.value.message == "Failed to generate design suggestions"
    db.users.update_one.assert_not_called()


@pytest.mark.asyncio
async def test_suggestions_require_prompt():
    with pytest.raises(ValidationError):
        await ai_service.design_suggestions(_free_user(), "   ")


@pytest.mark.asyncio
async def test_palette_rejects_non_image():
    with pytest.raises(ValidationError):
        await ai_service.extract_palette(_free_user(), b"%PDF", "application/pdf")
