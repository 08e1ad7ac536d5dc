"""
Payload validator - Sanitizes raw request bodies before any other stage.

The validator is the first stage that looks at client data. It accepts the
raw request body (bytes, str or an already-decoded value) and returns a
tagged result; it never raises, whatever the input.

Sanitization rules:
- Only JSON objects are accepted at the top level
- Keys named ``__proto__``, ``constructor`` or ``prototype`` are removed at
  every nesting level, inside objects and arrays alike
- Every string is trimmed, then truncated to ``max_string_length``
- Nesting deeper than ``max_depth`` is rejected outright
"""

import json
import logging
from dataclasses import dataclass
from typing import Any

from .results import Err, Ok

logger = logging.getLogger(__name__)

DANGEROUS_KEYS = frozenset({"__proto__", "constructor", "prototype"})

DEFAULT_MAX_STRING_LENGTH = 1000
DEFAULT_MAX_DEPTH = 32

INVALID_FORMAT = "Invalid request format"


@dataclass(frozen=True)
class CleanPayload:
    """Sanitized request body.

    ``stripped_keys`` lists the dotted paths of dangerous keys that were
    removed, so the caller can report the attempt.
    """

    data: dict[str, Any]
    stripped_keys: tuple[str, ...] = ()


class _TooDeep(Exception):
    pass


@dataclass(frozen=True)
class PayloadValidator:
    """Stateless sanitizer for raw request payloads."""

    max_string_length: int = DEFAULT_MAX_STRING_LENGTH
    max_depth: int = DEFAULT_MAX_DEPTH

    def validate(self, raw_body: Any) -> Ok[CleanPayload] | Err:
        """
        Validate and sanitize a raw request body.

        Args:
            raw_body: Raw bytes/str JSON text, or an already-decoded value

        Returns:
            Ok(CleanPayload) for a JSON object, Err(reason) otherwise
        """
        try:
            body = self._decode(raw_body)
            if not isinstance(body, dict):
                return Err(INVALID_FORMAT)
            stripped: list[str] = []
            cleaned = self._clean(body, depth=0, path="", stripped=stripped)
            return Ok(CleanPayload(data=cleaned, stripped_keys=tuple(stripped)))
        except _TooDeep:
            return Err(INVALID_FORMAT)
        except (ValueError, TypeError, RecursionError) as e:
            logger.debug("Rejected malformed payload: %s", type(e).__name__)
            return Err(INVALID_FORMAT)

    def _decode(self, raw_body: Any) -> Any:
        if isinstance(raw_body, (bytes, bytearray)):
            if not raw_body.strip():
                return None
            return json.loads(raw_body.decode("utf-8"))
        if isinstance(raw_body, str):
            if not raw_body.strip():
                return None
            return json.loads(raw_body)
        return raw_body

    def _clean(self, value: Any, depth: int, path: str, stripped: list[str]) -> Any:
        if depth > self.max_depth:
            raise _TooDeep()

        if isinstance(value, dict):
            cleaned = {}
            for key, item in value.items():
                if not isinstance(key, str):
                    raise TypeError("object keys must be strings")
                key_path = f"{path}.{key}" if path else key
                if key in DANGEROUS_KEYS:
                    stripped.append(key_path)
                    continue
                cleaned[key] = self._clean(item, depth + 1, key_path, stripped)
            return cleaned

        if isinstance(value, (list, tuple)):
            return [
                self._clean(item, depth + 1, f"{path}[{index}]", stripped)
                for index, item in enumerate(value)
            ]

        if isinstance(value, str):
            return value.strip()[: self.max_string_length]

        if value is None or isinstance(value, (bool, int, float)):
            return value

        raise TypeError(f"unsupported value type: {type(value).__name__}")
