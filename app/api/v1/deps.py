"""
Shared request dependencies for the v1 endpoints
"""

from typing import Optional
from fastapi import Header, Response

from app.core.exceptions import ValidationError


def version_etag(version: int) -> str:
    return f'"{version}"'


def set_version_header(response: Response, version: int):
    response.headers["ETag"] = version_etag(version)


async def if_match_version(if_match: Optional[str] = Header(None)) -> Optional[int]:
    """
    Expected event version taken from an If-Match header.
    Accepts a bare integer or an ETag such as "7" or W/"7".
    """
    if if_match is None:
        return None

    value = if_match.strip()
    if value.startswith("W/"):
        value = value[2:]
    value = value.strip('"')

    try:
        version = int(value)
    except ValueError:
        raise ValidationError("If-Match must carry an event version", field="If-Match")
    if version < 0:
        raise ValidationError("If-Match must carry an event version", field="If-Match")
    return version


def pick_version(body_version: Optional[int], header_version: Optional[int]) -> Optional[int]:
    """Body wins over the header when both are given"""
    return body_version if body_version is not None else header_version
