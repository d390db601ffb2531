"""Canvas API client package for interacting with the Canvas LMS API."""

from .client import (
    ApiError,
    CanvasAPIError,
    CanvasClient,
    FileAccessError,
    ForbiddenError,
    NetworkError,
    RateLimitedError,
    UnauthorizedError,
    UploadError,
)
from .pagination import PaginationLinks, parse_link_header

__all__ = [
    'ApiError',
    'CanvasAPIError',
    'CanvasClient',
    'FileAccessError',
    'ForbiddenError',
    'NetworkError',
    'PaginationLinks',
    'RateLimitedError',
    'UnauthorizedError',
    'UploadError',
    'parse_link_header',
]
