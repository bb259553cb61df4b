"""
LLM chat using Google Generative AI (Gemini).
Uses LLM_API_KEY from environment (Gemini API key from Google AI Studio).
"""
import asyncio
import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.0-flash"


def _get_api_key() -> Optional[str]:
    return os.environ.get("LLM_API_KEY")


def is_configured() -> bool:
    return bool(_get_api_key())


def _model(system_prompt: str, model: str):
    import google.generativeai as genai
    api_key = _get_api_key()
    if not api_key:
        raise ValueError("LLM_API_KEY not found in environment")
    genai.configure(api_key=api_key)
    model_name = model if model and "gemini" in model else DEFAULT_MODEL
    return genai.GenerativeModel(model_name, system_instruction=system_prompt)


def _sync_chat(system_prompt: str, user_text: str, model: str = DEFAULT_MODEL) -> str:
    """Synchronous chat completion using Google Generative AI."""
    response = _model(system_prompt, model).generate_content(user_text)
    if not response or not response.text:
        raise ValueError("Empty response from LLM")
    return response.text


def _sync_chat_with_image(
    system_prompt: str,
    user_text: str,
    image_bytes: bytes,
    mime_type: str,
    model: str = DEFAULT_MODEL,
) -> str:
    """Synchronous chat with an inline image part."""
    image_part = {"mime_type": mime_type, "data": image_bytes}
    response = _model(system_prompt, model).generate_content([image_part, user_text])
    if not response or not response.text:
        raise ValueError("Empty response from LLM")
    return response.text


async def chat(
    system_prompt: str,
    user_text: str,
    model: str = DEFAULT_MODEL,
) -> str:
    """Async chat completion. Runs sync SDK in thread pool."""
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(
        None,
        lambda: _sync_chat(system_prompt, user_text, model),
    )


async def chat_with_image(
    system_prompt: str,
    user_text: str,
    image_bytes: bytes,
    mime_type: str,
    model: str = DEFAULT_MODEL,
) -> str:
    """Async chat with image attachment."""
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(
        None,
        lambda: _sync_chat_with_image(system_prompt, user_text, image_bytes, mime_type, model),
    )
