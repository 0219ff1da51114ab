"""
Pagination helpers for list endpoints.

Pages are 1-based on the wire and 0-based in the services.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urlencode

from .errors import ValidationError

DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 30
# Largest value a signed 32-bit integer holds
MAX_PAGE_VALUE = 2**31 - 1


@dataclass(frozen=True)
class PageRequest:
    page: int  # 1-based, as requested
    per_page: int

    @property
    def index(self) -> int:
        """0-based page index."""
        return self.page - 1


def _parse_positive(name: str, raw: Optional[str], default: int) -> int:
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValidationError(f"{name} must be an integer, got {raw!r}") from e
    if value < 1:
        raise ValidationError(f"{name} must be a positive integer")
    if value > MAX_PAGE_VALUE:
        raise ValidationError(f"{name} must not exceed {MAX_PAGE_VALUE}")
    return value


def parse_page_request(
    page: Optional[str],
    per_page: Optional[str],
    default_per_page: int = DEFAULT_PER_PAGE,
) -> PageRequest:
    """Validate raw page/per_page query values."""
    return PageRequest(
        page=_parse_positive("page", page, DEFAULT_PAGE),
        per_page=_parse_positive("per_page", per_page, default_per_page),
    )


def build_link_header(path: str, request: PageRequest, returned: int) -> Optional[str]:
    """Link header with rel="next" if the page had items and rel="previous" past page 1."""
    links: List[str] = []
    if returned > 0:
        links.append(_link(path, request.page + 1, request.per_page, "next"))
    if request.page > 1:
        links.append(_link(path, request.page - 1, request.per_page, "previous"))
    return ", ".join(links) if links else None


def _link(path: str, page: int, per_page: int, rel: str) -> str:
    query = urlencode({"page": page, "per_page": per_page})
    return f'<{path}?{query}>; rel="{rel}"; title="{rel}"'
