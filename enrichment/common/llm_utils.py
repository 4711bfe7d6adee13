"""Shared utilities for parsing LLM responses.

Web-grounded completions arrive wrapped in prose, code fences and citation
markers. ``extract_json`` strips those artifacts and returns the first
complete top-level JSON object or array; ``parse_and_validate`` turns it into
a schema-checked value.

The default scanner counts brackets without tracking string literals, so an
unbalanced brace inside a quoted value misaligns the nesting. Pass
``strict=True`` to use the string-aware scanner instead.
"""

from __future__ import annotations

import json
import re
from typing import Any, Iterable, Optional

from pydantic import BaseModel, BeforeValidator, TypeAdapter, ValidationError

from .errors import JsonExtractionFailure, SchemaValidationFailure

_PAREN_LINK_GROUP = re.compile(r"\s*\(\[.*?\]\(.*?\)\)")
_MARKDOWN_LINK = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_NUMBERED_REF = re.compile(r"\[\d+\]")
# A JSON string literal, or a [3] optionally led by ':' '[' or ',' plus whitespace
_STRING_OR_REF = re.compile(r'"(?:[^"\\\n]|\\.)*"|(?P<lead>[:\[,]\s*)?\[\d+\]')
_FOOTNOTE_MARKER = re.compile(r"【\d+†source】")
_DOMAIN_TAG = re.compile(r"\[[a-zA-Z0-9.-]+\.(?:com|edu|org|net|gov|io)\]")
_FENCE_OPEN = re.compile(r"^```[\w-]*\s*")
_FENCE_CLOSE = re.compile(r"\s*```$")

_CLOSERS = {"{": "}", "[": "]"}


def strip_citations(value: Optional[str]) -> Optional[str]:
    """Strip citation links from a single field value. Empty input → None."""
    if not value:
        return None
    cleaned = _PAREN_LINK_GROUP.sub("", value)
    cleaned = _MARKDOWN_LINK.sub(r"\1", cleaned)
    return cleaned.strip()


def _drop_numbered_ref(match: re.Match) -> str:
    token = match.group(0)
    if token.startswith('"'):
        return _NUMBERED_REF.sub("", token)
    if match.group("lead") is not None:
        # [3] in value position is an array, not a reference
        return token
    return ""


def strip_web_citations(text: str) -> str:
    """Remove every citation artifact search-grounded models emit.

    Numbered refs like ``[3]`` are always removed inside string literals.
    Outside them, a ref following ':' '[' or ',' (whitespace allowed) is
    read as a JSON array value and kept.
    """
    text = _PAREN_LINK_GROUP.sub("", text)
    text = _STRING_OR_REF.sub(_drop_numbered_ref, text)
    text = _MARKDOWN_LINK.sub(r"\1", text)
    text = _FOOTNOTE_MARKER.sub("", text)
    text = _DOMAIN_TAG.sub("", text)
    return text


def citation_stripped_enum(values: Iterable[str]) -> BeforeValidator:
    """Validator that cleans citations and maps anything outside ``values`` to None."""
    allowed = frozenset(values)

    def _coerce(value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return None
        cleaned = strip_citations(value)
        return cleaned if cleaned in allowed else None

    return BeforeValidator(_coerce)


def _find_matching(text: str, start: int) -> int:
    """Index of the bracket closing text[start], counting that bracket type only."""
    opener = text[start]
    closer = _CLOSERS[opener]
    depth = 0
    for i in range(start, len(text)):
        ch = text[i]
        if ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return i
    return -1


def _find_matching_strict(text: str, start: int) -> int:
    """Like _find_matching, but ignores brackets inside JSON string literals."""
    opener = text[start]
    closer = _CLOSERS[opener]
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return i
    return -1


def _unwrap_fence(text: str) -> str:
    if text.startswith("```"):
        text = _FENCE_OPEN.sub("", text)
        text = _FENCE_CLOSE.sub("", text)
    return text.strip()


def extract_json(raw: str, strict: bool = False) -> str:
    """Return the first balanced JSON object/array embedded in ``raw``.

    Steps:
    1. Strip citation artifacts, trim, unwrap one surrounding code fence
    2. Text starting with '{' or '[': scan from offset 0
    3. Otherwise scan from the first '{', or the first '[' if there is none
    4. Unbalanced → JsonExtractionFailure (no partial results)

    Citations are stripped again from the extracted substring since they can
    appear inside field values.
    """
    if not raw or not raw.strip():
        raise JsonExtractionFailure("Empty text, no JSON to extract")

    match = _find_matching_strict if strict else _find_matching
    cleaned = _unwrap_fence(strip_web_citations(raw).strip())

    if cleaned[:1] in _CLOSERS:
        start = 0
    else:
        start = cleaned.find("{")
        if start == -1:
            start = cleaned.find("[")

    # A truncated outer structure must fail, not yield an inner fragment
    end = match(cleaned, start) if start != -1 else -1
    if end == -1:
        raise JsonExtractionFailure(
            f"No balanced JSON structure found in LLM response ({len(raw)} chars)"
        )
    return strip_web_citations(cleaned[start:end + 1])


def _format_validation_errors(exc: ValidationError) -> list:
    return [
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
        for err in exc.errors()
    ]


def validate_payload(data: Any, schema: Any) -> Any:
    """Validate parsed JSON against a pydantic model or any TypeAdapter-able type."""
    try:
        if isinstance(schema, type) and issubclass(schema, BaseModel):
            return schema.model_validate(data)
        return TypeAdapter(schema).validate_python(data)
    except ValidationError as e:
        details = _format_validation_errors(e)
        raise SchemaValidationFailure(
            f"Validation failed: {', '.join(details)}", details=details
        ) from e


def parse_json(text: str, strict: bool = False) -> Any:
    """Extract and decode JSON. Both failure modes raise JsonExtractionFailure."""
    json_text = extract_json(text, strict=strict)
    try:
        return json.loads(json_text)
    except json.JSONDecodeError as e:
        raise JsonExtractionFailure(f"Invalid JSON in LLM response: {e}") from e


def parse_and_validate(text: str, schema: Any, strict: bool = False) -> Any:
    """Extract, decode and validate an LLM response in one step."""
    return validate_payload(parse_json(text, strict=strict), schema)
