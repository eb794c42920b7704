"""Helpers shared by transports: URL building, header merging, body encoding and decoding."""

import json
import logging
from typing import Any, Dict, Mapping, Optional, Tuple, Union
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel

from request_middleware.core.errors import ParseError
from request_middleware.core.request import RequestConfig, ResponseType

logger = logging.getLogger(__name__)

Body = Union[bytes, str, None]


def join_url(base_url: Optional[str], url: str) -> str:
    """Prefix a relative URL with the base URL. Absolute URLs are returned unchanged."""
    if not base_url or url.startswith(("http://", "https://")):
        return url
    return f"{base_url.rstrip('/')}/{url.lstrip('/')}"


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_query_string(params: Optional[Mapping[str, Any]]) -> str:
    """Serialize query parameters, dropping None values and repeating keys for sequences."""
    pairs = []
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((key, _stringify(item)) for item in value if item is not None)
        else:
            pairs.append((key, _stringify(value)))
    return urlencode(pairs)


def build_url(config: RequestConfig, base_url: Optional[str] = None) -> str:
    url = join_url(base_url, config.url)
    query = build_query_string(config.params)
    if query:
        url += ("&" if "?" in url else "?") + query
    return url


def merge_headers(*header_maps: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """Merge header maps left to right; later maps win. Keys are kept as given."""
    merged: Dict[str, str] = {}
    for headers in header_maps:
        if headers:
            merged.update(headers)
    return merged


def has_header(headers: Mapping[str, str], name: str) -> bool:
    lowered = name.lower()
    return any(key.lower() == lowered for key in headers)


def encode_body(data: Any, headers: Dict[str, str]) -> Tuple[Body, Dict[str, str]]:
    """Encode a request payload.

    Mappings, sequences and pydantic models become JSON, adding a JSON
    Content-Type unless one is present. Strings and bytes pass through.

    Returns:
        The encoded body and the (possibly extended) headers.
    """
    if data is None:
        return None, headers
    if isinstance(data, (bytes, bytearray)):
        return bytes(data), headers
    if isinstance(data, str):
        return data, headers
    if isinstance(data, BaseModel):
        payload = data.model_dump_json(exclude_none=True)
    else:
        payload = json.dumps(data, separators=(",", ":"), default=str)
    if not has_header(headers, "Content-Type"):
        headers = {**headers, "Content-Type": "application/json"}
    return payload, headers


def _declares_json(response: httpx.Response) -> bool:
    content_type = response.headers.get("content-type", "")
    return "json" in content_type.lower()


def decode_body(response: httpx.Response, config: RequestConfig) -> Any:
    """Decode an already-read response body according to `config.response_type`.

    JSON mode falls back to text for bodies that are not JSON, unless the server
    declared a JSON content type, in which case a ParseError is raised.
    """
    if config.response_type == ResponseType.BYTES:
        return response.content
    text = response.text
    if config.response_type == ResponseType.TEXT:
        return text
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        if _declares_json(response):
            raise ParseError("Failed to parse response body", config, raw_response=text, cause=e)
        return text


def headers_to_dict(headers: httpx.Headers) -> Dict[str, str]:
    """Flatten httpx headers; repeated headers are joined with ', '."""
    result: Dict[str, str] = {}
    for key, value in headers.multi_items():
        result[key] = f"{result[key]}, {value}" if key in result else value
    return result
