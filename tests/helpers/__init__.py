"""Shared helper utilities for the livecharts test-suite."""

from .data import build_bulk_payload, build_indexed_payload, build_update, write_stream

__all__ = [
    "build_bulk_payload",
    "build_indexed_payload",
    "build_update",
    "write_stream",
]
