"""Helpers for filtering git fast-export streams: id lookups, blob sizes, marks, blob stripping and tags."""

__version__ = "0.0.1"