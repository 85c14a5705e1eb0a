"""
Cache key derivation.

A key is the request path followed by one `|name-value` segment per query
parameter, sorted by name. Nothing is case-folded. Query names and values
are taken from the raw query string without decoding, so two query strings
that differ only in percent-encoding get different keys. The path is the
one the server hands over in the ASGI scope, which is already decoded, so
`/a%20b` and `/a b` share a key.
"""

from typing import Iterable, List, Tuple

from starlette.requests import Request

from respcache.db_models import MAX_KEY_LENGTH
from respcache.errors import MalformedKeyInput


def derive_cache_key(path: str, params: Iterable[Tuple[str, str]]) -> str:
    """
    Build the cache key for a path and its query parameters.

    Parameters are ordered by name with a stable sort, so repeated names keep
    their original relative order.

    Args:
        path: Request path, used verbatim
        params: (name, value) pairs, names may repeat

    Returns:
        Cache key string

    Raises:
        MalformedKeyInput: If the key cannot be encoded or is too long to store
    """
    parts = [path]
    for name, value in sorted(params, key=lambda pair: pair[0]):
        parts.append(f"|{name}-{value}")
    key = "".join(parts)

    try:
        key.encode("utf-8")
    except UnicodeEncodeError as e:
        raise MalformedKeyInput(f"Cache key is not encodable: {e}") from e

    if len(key) > MAX_KEY_LENGTH:
        raise MalformedKeyInput(
            f"Cache key is {len(key)} characters, limit is {MAX_KEY_LENGTH}"
        )

    return key


def query_pairs(raw_query: bytes) -> List[Tuple[str, str]]:
    """
    Split a raw query string into (name, value) pairs without decoding.

    Empty segments are skipped and a segment without `=` gets an empty value.

    Raises:
        MalformedKeyInput: If the query string is not valid UTF-8
    """
    try:
        query = raw_query.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedKeyInput(f"Query string is not valid UTF-8: {e}") from e

    pairs = []
    for segment in query.split("&"):
        if not segment:
            continue
        name, _, value = segment.partition("=")
        pairs.append((name, value))
    return pairs


def request_cache_key(request: Request) -> str:
    """Derive the cache key for a Starlette request."""
    params = query_pairs(request.scope.get("query_string", b""))
    return derive_cache_key(request.scope["path"], params)
