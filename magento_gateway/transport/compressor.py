"""
Helpers that shrink a GraphQL document so it can travel in a GET query string.

``compress_graphql_query`` also adds ``__typename`` to every selection set, so
union and interface results can be told apart by the caller. Argument lists
are protected from that rewrite with placeholders; only one level of
parentheses is supported.
"""

import json
import logging
import re
from typing import Any

logger = logging.getLogger("uvicorn.error")

MAX_URL_LENGTH = 8192
TYPENAME_TOKEN = "__typename"

_ARGUMENT_LIST = re.compile(r"\([^)]*\)")
_LINE_COMMENT = re.compile(r"#.*$", re.MULTILINE)
_WHITESPACE = re.compile(r"\s+")
_SPACE_AROUND_PUNCTUATION = re.compile(r"\s*([{}(),:])\s*")


def _placeholder(index: int) -> str:
    return f"__PROTECTED_PARAM_{index}__"


def compress_graphql_query(query: str) -> str:
    """Collapse ``query`` to its minimal wire form and request ``__typename``
    in every selection set.

    Non-string or empty input is returned unchanged.
    """
    if not query or not isinstance(query, str):
        return query

    protected_sections: list[str] = []

    def _protect(match: re.Match) -> str:
        protected_sections.append(match.group(0))
        return _placeholder(len(protected_sections) - 1)

    protected = _ARGUMENT_LIST.sub(_protect, query)
    protected = protected.replace("}", f" {TYPENAME_TOKEN} }}")

    for index, content in enumerate(protected_sections):
        protected = protected.replace(_placeholder(index), content, 1)

    compressed = _LINE_COMMENT.sub("", protected)
    compressed = _WHITESPACE.sub(" ", compressed)
    compressed = _SPACE_AROUND_PUNCTUATION.sub(r"\1", compressed)
    return compressed.strip()


def is_url_too_long(url: str, max_length: int = MAX_URL_LENGTH) -> bool:
    return len(url) > max_length


def safe_json_stringify(obj: Any) -> str:
    """Serialize ``obj`` to compact JSON; ``None`` and unserializable values give ``"{}"``."""
    if obj is None:
        return "{}"
    try:
        return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError, RecursionError) as e:
        logger.warning(f"[GraphQL] Failed to serialize variables: {e}")
        return "{}"
