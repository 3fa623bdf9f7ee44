"""
Decoder for JSON documents embedded in model output.

Models often wrap JSON in Markdown code fences or surround it with prose;
the decoder strips the fence and, failing that, reads the outermost object or
array starting at the first bracket. All call sites go through
``decode_model_json`` (typed result) or ``require_model`` (validated schema or
``ParseError``) instead of doing their own string surgery.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from datalive.core.exceptions import ParseError

T = TypeVar("T", bound=BaseModel)

_FENCE_RE = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?```\s*$", re.DOTALL)


@dataclass(frozen=True)
class Decoded:
    value: Any

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class ParseFailed:
    raw_text: str
    error: str

    @property
    def ok(self) -> bool:
        return False


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json / ``` fence, if present."""
    cleaned = text.strip()
    match = _FENCE_RE.match(cleaned)
    if match:
        return match.group(1).strip()
    if cleaned.startswith("```"):
        # Unterminated fence (truncated output)
        _, _, body = cleaned.partition("\n")
        return body.rstrip("`").strip()
    return cleaned


def embedded_json(text: str) -> Any:
    """Decode the outermost object or array surrounded by prose.

    Tries the first ``{`` and the first ``[`` in order of position. Text after
    the closing bracket is ignored.
    """
    decoder = json.JSONDecoder()
    for start in sorted(i for i in (text.find("{"), text.find("[")) if i >= 0):
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            continue
        return value
    raise json.JSONDecodeError("no JSON object or array found", text, 0)


def decode_model_json(text: str | None) -> Decoded | ParseFailed:
    if text is None:
        return ParseFailed(raw_text="", error="empty response")
    cleaned = strip_code_fences(text)
    try:
        return Decoded(json.loads(cleaned))
    except json.JSONDecodeError as e:
        error = str(e)
    try:
        return Decoded(embedded_json(cleaned))
    except json.JSONDecodeError:
        return ParseFailed(raw_text=text, error=error)


def require_object(text: str | None) -> dict[str, Any]:
    """Decode ``text`` into a JSON object or raise ParseError."""
    result = decode_model_json(text)
    if isinstance(result, ParseFailed):
        raise ParseError(f"Model did not return valid JSON: {result.error}", raw_text=result.raw_text)
    if not isinstance(result.value, dict):
        raise ParseError("Model returned JSON that is not an object", raw_text=text or "")
    return result.value


def require_model(text: str | None, schema: type[T]) -> T:
    """Decode ``text`` and validate it against ``schema``.

    Raises:
        ParseError: Output is not a JSON object or does not match the schema.
    """
    value = require_object(text)
    try:
        return schema.model_validate(value)
    except PydanticValidationError as e:
        raise ParseError(
            f"Model output does not match {schema.__name__}: {e.error_count()} error(s)",
            raw_text=text or "",
        ) from e
