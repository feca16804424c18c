"""Core utilities for the Huddle backend."""

from .storage import build_download_url, remove_stored, resolve_path, store_upload

__all__ = ["store_upload", "resolve_path", "remove_stored", "build_download_url"]
