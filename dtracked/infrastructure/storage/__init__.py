"""Local persistence for routes and finds."""

from .jsonl_store import FindStore, JsonLinesStore, RouteStore

__all__ = ["FindStore", "JsonLinesStore", "RouteStore"]
