"""OpenAI fallback for bibliographic metadata on low-confidence scans."""

from __future__ import annotations

import json
import logging
import os
import re
from json import JSONDecodeError
from typing import Any

from openai import OpenAI

from journals import map_journal_to_abbrev
from models import BibMetadata, ConfigurationError

OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_TEMPERATURE = float(os.getenv("OPENAI_TEMPERATURE", "0.0"))
MAX_ATTEMPTS = 2
MAX_PROMPT_CHARS = 4000

LOGGER = logging.getLogger(__name__)

SYSTEM_PROMPT = """You extract bibliographic metadata from the first page of a clinical journal article.
Respond ONLY with valid JSON following the schema below. No prose, no markdown.
Use null for anything you cannot read from the text. Do not guess.

Required JSON schema:
{
  "first_author_surname": "<surname of the first author or null>",
  "year": <4-digit publication year or null>,
  "journal": "<journal name as printed or null>",
  "title": "<article title or null>"
}"""

_METADATA_KEYS: frozenset[str] = frozenset({"first_author_surname", "year", "journal", "title"})


def require_api_key() -> str:
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise ConfigurationError("OPENAI_API_KEY environment variable is required for --llm-fallback")
    return api_key


def extract_metadata_with_llm(text: str) -> BibMetadata | None:
    """Ask the model for author/year/journal/title; None when every attempt fails."""
    if not text.strip():
        return None

    client = OpenAI(api_key=require_api_key())
    last_error: Exception | None = None

    for attempt in range(1, MAX_ATTEMPTS + 1):
        try:
            parsed = _call_openai(client, text[:MAX_PROMPT_CHARS])
            if not _METADATA_KEYS.issubset(parsed.keys()):
                missing = _METADATA_KEYS - parsed.keys()
                raise RuntimeError(f"Metadata response missing keys: {missing}")
            return _to_metadata(parsed)
        except Exception as exc:
            last_error = exc
            LOGGER.warning("LLM metadata extraction failed on attempt %s/%s: %s", attempt, MAX_ATTEMPTS, exc)

    LOGGER.error("LLM metadata extraction gave up: %s", last_error)
    return None


def _call_openai(client: OpenAI, text: str) -> dict[str, Any]:
    response = client.chat.completions.create(
        model=OPENAI_MODEL,
        temperature=OPENAI_TEMPERATURE,
        max_completion_tokens=256,
        response_format={"type": "json_object"},
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": f"Article text:\n{text}"},
        ],
    )
    content = response.choices[0].message.content
    if not content:
        raise RuntimeError("OpenAI returned an empty response")
    return _parse_json_object(content)


def _parse_json_object(content: str) -> dict[str, Any]:
    """Parse possibly noisy model output into a JSON object."""
    try:
        parsed = json.loads(content)
    except JSONDecodeError:
        parsed = _extract_first_json_object(content)

    if not isinstance(parsed, dict):
        raise RuntimeError("Expected JSON object from OpenAI response")
    return parsed


def _extract_first_json_object(content: str) -> dict[str, Any]:
    decoder = json.JSONDecoder()
    for index, char in enumerate(content):
        if char != "{":
            continue
        try:
            candidate, _ = decoder.raw_decode(content[index:])
        except JSONDecodeError:
            continue
        if isinstance(candidate, dict):
            return candidate
    raise RuntimeError("Could not extract valid JSON object from OpenAI output")


def _as_text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    return cleaned or None


def _to_metadata(parsed: dict[str, Any]) -> BibMetadata:
    year_raw = parsed.get("year")
    year = None
    if isinstance(year_raw, int):
        year = year_raw
    elif isinstance(year_raw, str) and re.fullmatch(r"\d{4}", year_raw.strip()):
        year = int(year_raw.strip())
    if year is not None and not 1900 <= year <= 2100:
        year = None

    return BibMetadata(
        author=_as_text(parsed.get("first_author_surname")),
        year=year,
        journal=map_journal_to_abbrev(_as_text(parsed.get("journal")) or "") or None,
        title=_as_text(parsed.get("title")),
        source="llm",
    )
