"""Utility helpers."""

from .images import PageImageLoader
from .report import read_jsonl, write_extraction_report, write_generation_report, write_jsonl

__all__ = [
    "PageImageLoader",
    "read_jsonl",
    "write_extraction_report",
    "write_generation_report",
    "write_jsonl",
]
