"""Stroke persistence in DuckDB."""

from .manager import StrokeRepository

__all__ = ["StrokeRepository"]
