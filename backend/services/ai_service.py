"""
AI Service - Gemini-backed design suggestions and image palette extraction.

Both endpoints are metered for free users: the quota is checked before the
model call and consumed only after a usable answer came back.
"""
import json
import logging
import re
from typing import Dict, Any, List, Optional

from errors import ValidationError, UpstreamError
from models.billing import ActivityAction
from services.activity_service import activity_service
from services.storage_adapter import validate_image
from services.usage_service import usage_service, UsageAction
from utils import llm_chat

logger = logging.getLogger(__name__)

SUGGESTIONS_SYSTEM_PROMPT = """You are a design assistant for a graphic design application.
Given a user's prompt for a new design, provide design suggestions as a single JSON object with keys:
- "palette": an array of 3-5 hex color codes that work well together.
- "fonts": an object with "heading" and "body" keys naming font families (e.g. "Montserrat", "Lato").
- "layout": a one-sentence description of a suggested layout.
Do not include any other text or formatting in your response."""

PALETTE_SYSTEM_PROMPT = """You are a color analysis assistant.
Extract the dominant colors of the supplied image and answer with a single JSON object with keys:
- "primary": an array of the 3-5 most dominant hex colors.
- "complementary": an array of 3-5 hex colors that complement the primary colors.
- "fullPalette": an array of up to 10 hex colors representing the whole image.
Do not include any other text or formatting in your response."""

HEX_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


def parse_model_json(text: str) -> Dict[str, Any]:
    """Strip markdown code fences and parse the model's JSON answer."""
    cleaned = FENCE_RE.sub("", text or "").strip()
    data = json.loads(cleaned)
    if not isinstance(data, dict):
        raise ValueError("Model answer is not a JSON object")
    return data


def normalize_hex(value: str) -> Optional[str]:
    """'abc' / '#AABBCC' / 'aabbcc' -> '#AABBCC'; None when not a hex color."""
    match = HEX_RE.match(str(value).strip())
    if not match:
        return None
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)
    return f"#{digits.upper()}"


def normalize_hex_list(values) -> List[str]:
    if not isinstance(values, list):
        return []
    result = []
    for value in values:
        color = normalize_hex(value)
        if color and color not in result:
            result.append(color)
    return result


def shape_suggestions(data: Dict[str, Any]) -> Dict[str, Any]:
    palette = normalize_hex_list(data.get("palette"))
    fonts = data.get("fonts") or {}
    if not palette or not isinstance(fonts, dict):
        raise ValueError("Incomplete design suggestions")
    return {
        "palette": palette[:5],
        "fonts": {"heading": fonts.get("heading"), "body": fonts.get("body")},
        "layout": data.get("layout", ""),
    }


def shape_palette(data: Dict[str, Any]) -> Dict[str, List[str]]:
    palette = {
        "primary": normalize_hex_list(data.get("primary")),
        "complementary": normalize_hex_list(data.get("complementary")),
        "fullPalette": normalize_hex_list(data.get("fullPalette")),
    }
    if not palette["primary"]:
        raise ValueError("No colors extracted")
    if not palette["fullPalette"]:
        palette["fullPalette"] = palette["primary"] + palette["complementary"]
    return palette


class AIService:

    async def design_suggestions(self, user: Dict[str, Any], prompt: Optional[str], request=None) -> Dict[str, Any]:
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt is required")

        user = await usage_service.check_usage(user, UsageAction.AI_SUGGESTIONS)

        try:
            text = await llm_chat.chat(SUGGESTIONS_SYSTEM_PROMPT, f'Design prompt: "{prompt.strip()}"')
            suggestions = shape_suggestions(parse_model_json(text))
        except Exception as e:
            logger.error(f"Error generating design suggestions: {e}")
            raise UpstreamError("Failed to generate design suggestions")

        await usage_service.record_usage(user, UsageAction.AI_SUGGESTIONS)
        await activity_service.log(user["user_id"], ActivityAction.AI_SUGGESTION, "Generated AI design suggestions", request)
        return suggestions

    async def extract_palette(
        self,
        user: Dict[str, Any],
        content: Optional[bytes],
        content_type: Optional[str],
        request=None,
    ) -> Dict[str, List[str]]:
        if not content:
            raise ValidationError("Image is required")
        try:
            validate_image(content, content_type)
        except ValueError as e:
            raise ValidationError(str(e))

        user = await usage_service.check_usage(user, UsageAction.COLOR_PALETTES)

        try:
            text = await llm_chat.chat_with_image(
                PALETTE_SYSTEM_PROMPT,
                "Extract the color palette of this image.",
                content,
                content_type,
            )
            palette = shape_palette(parse_model_json(text))
        except Exception as e:
            logger.error(f"Error extracting color palette: {e}")
            raise UpstreamError("Failed to extract color palette")

        await usage_service.record_usage(user, UsageAction.COLOR_PALETTES)
        await activity_service.log(user["user_id"], ActivityAction.COLOR_PALETTE, "Extracted color palette from image", request)
        return palette


ai_service = AIService()
