"""Utility modules for lecturetrack."""

from lecturetrack.utils.timestamps import ensure_utc_aware, parse_timestamp


__all__ = ["ensure_utc_aware", "parse_timestamp"]
