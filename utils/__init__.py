"""Utilities package for helper functions."""

from .background import TaskHandle, make_executor, run_in_background
from .datetime_utils import (
    get_local_tz,
    parse_canvas_datetime,
    parse_optional_datetime,
    to_utc_iso_z,
    to_local,
    format_local,
    utc_now,
)

__all__ = [
    'TaskHandle',
    'make_executor',
    'run_in_background',
    'get_local_tz',
    'parse_canvas_datetime',
    'parse_optional_datetime',
    'to_utc_iso_z',
    'to_local',
    'format_local',
    'utc_now',
]
