"""
Chat-model helpers shared by analysis, Q&A, drafting and OCR.

Key Functions
-------------
- get_chat_model          : Build the configured `ChatOpenAI` client.
- is_data_uri / to_data_url: Recognize and build ``data:<mime>;base64,...`` references.
- build_document_messages : One `HumanMessage` carrying an instruction plus the
                            document, inline as text or as a media part when the
                            document is binary content referenced by a data URI.
- lc_text_from_content    : Normalize LangChain message content to plain text.
- parse_llm_json          : Parse a model reply into JSON, repairing it if needed.
"""

import base64
import json
import logging
import re

from json_repair import repair_json
from langchain_core.messages import HumanMessage
from langchain_openai import ChatOpenAI

from lexease.database.config.config import settings

logger = logging.getLogger(__name__)

DATA_URI_PREFIX = "data:"
IMAGE_MIME_TYPES = {"image/png", "image/jpeg", "image/webp", "image/gif"}


def get_chat_model(temperature: float | None = None) -> ChatOpenAI:
    """
    Build the chat model used across the service.

    Args:
        temperature (float | None): Overrides `settings.LLM_TEMPERATURE`.

    Returns:
        ChatOpenAI: Client configured from settings (model, key, timeout).
    """
    return ChatOpenAI(
        model=settings.OPEN_AI_MODEL,
        api_key=settings.API_KEY,
        temperature=settings.LLM_TEMPERATURE if temperature is None else temperature,
        timeout=settings.LLM_TIMEOUT_SECONDS,
    )


def is_data_uri(text: str) -> bool:
    """True when `text` is a reference to binary content rather than literal text."""
    return bool(text) and text.lstrip().startswith(DATA_URI_PREFIX) and ";base64," in text[:200]


def normalize_image_mime(mt: str) -> str:
    """
    Keep only 'image/<subtype>' and map oddities (jpg -> jpeg).
    Strip any extra parameters after ';'.
    """
    if not mt:
        return "image/png"
    core = mt.split(";")[0].strip().lower()
    if core == "image/jpg":
        core = "image/jpeg"
    return core if core in IMAGE_MIME_TYPES else "image/png"


def to_data_url(data: bytes, mime: str) -> str:
    """
    Encode raw bytes as a base64 data URL.

    Args:
        data (bytes): File content.
        mime (str): MIME type of the content.

    Returns:
        str: ``data:{mime};base64,...``
    """
    if mime.startswith("image/"):
        mime = normalize_image_mime(mime)
    b64 = base64.b64encode(data).decode("utf-8")
    return f"data:{mime};base64,{b64}"


def _media_part(data_uri: str) -> dict:
    header, _, b64 = data_uri.strip().partition(",")
    mime = header[len(DATA_URI_PREFIX):].split(";")[0].lower()
    if mime.startswith("image/"):
        return {"type": "image_url", "image_url": {"url": data_uri.strip()}}
    return {"type": "file", "source_type": "base64", "mime_type": mime, "data": b64}


def build_document_messages(instruction: str, document_text: str, trailer: str = "") -> list[HumanMessage]:
    """
    Build the chat payload for a prompt about one document.

    - Literal text is placed inline between ``---`` fences.
    - A data URI is attached as a media part (image or file) and the
      instruction refers to "the attached document".

    Args:
        instruction (str): What the model should do.
        document_text (str): Extracted text or a data URI.
        trailer (str): Text appended after the document (e.g. the question).

    Returns:
        list[HumanMessage]
    """
    if is_data_uri(document_text):
        text = f"{instruction}\n\nLegal Document: (attached)\n\n{trailer}".strip()
        return [HumanMessage(content=[{"type": "text", "text": text}, _media_part(document_text)])]

    text = f"{instruction}\n\nLegal Document:\n---\n{document_text}\n---\n\n{trailer}".strip()
    return [HumanMessage(content=text)]


def lc_text_from_content(content) -> str:
    """Normalize LangChain message content to plain text.

    - If string → return as-is.
    - If list of content parts → concatenates only 'text' parts.
    - Else → str(content).
    """
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            p if isinstance(p, str) else p.get("text", "")
            for p in content
            if isinstance(p, str) or (isinstance(p, dict) and p.get("type") == "text")
        )
    return str(content)


def strip_code_fences(raw: str) -> str:
    raw = raw.strip()
    if raw.startswith("```"):
        raw = re.sub(r"^```[a-zA-Z]*\s*\n?", "", raw)
        raw = re.sub(r"\n?```\s*$", "", raw)
    return raw.strip()


def parse_llm_json(resp) -> dict:
    """Parse a model response into JSON with optional repair.

    Steps:
        1) Extract text from the LangChain message and strip code fences.
        2) Try `json.loads`.
        3) Fallback: `json_repair.repair_json` then `json.loads`.

    Raises:
        ValueError with the first 500 chars of raw text if parsing still fails
        or the result is not a JSON object.
    """
    raw = strip_code_fences(lc_text_from_content(getattr(resp, "content", resp)))
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        try:
            parsed = json.loads(repair_json(raw))
        except Exception as e:
            raise ValueError(f"Failed to parse LLM JSON: {e}\nRAW:\n{raw[:500]}")
    if not isinstance(parsed, dict):
        raise ValueError(f"Expected a JSON object from the model\nRAW:\n{raw[:500]}")
    return parsed
