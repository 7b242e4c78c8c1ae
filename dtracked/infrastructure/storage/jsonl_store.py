"""Local JSON-lines stores for saved routes and logged finds.

One record per line, appended on save. This is the persistence collaborator
the CLI hands finished routes to; it is not a database.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Generic, TypeVar

from pydantic import BaseModel, ValidationError

from ...domain.models import Find, RouteRecord

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class JsonLinesStore(Generic[ModelT]):
    """Append-only store of one pydantic model type."""

    model: type[ModelT]

    def __init__(self, path: Path) -> None:
        self.path = Path(path).expanduser()

    def add(self, record: ModelT) -> ModelT:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as fp:
            fp.write(record.model_dump_json() + "\n")
        logger.debug("Saved %s %s to %s", self.model.__name__, getattr(record, "id", "?"), self.path)
        return record

    def list(self) -> list[ModelT]:
        """All readable records, oldest first. Malformed lines are skipped."""
        if not self.path.exists():
            return []

        records: list[ModelT] = []
        with self.path.open("r", encoding="utf-8") as fp:
            for lineno, line in enumerate(fp, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    records.append(self.model.model_validate_json(line))
                except ValidationError as e:
                    logger.warning("Skipping malformed record %s:%d: %s", self.path, lineno, e)
        return records

    def get(self, record_id: str) -> ModelT | None:
        for record in self.list():
            if getattr(record, "id", None) == record_id:
                return record
        return None

    def __len__(self) -> int:
        return len(self.list())


class RouteStore(JsonLinesStore[RouteRecord]):
    model = RouteRecord

    @classmethod
    def in_dir(cls, data_dir: Path) -> RouteStore:
        return cls(Path(data_dir) / "routes.jsonl")


class FindStore(JsonLinesStore[Find]):
    model = Find

    @classmethod
    def in_dir(cls, data_dir: Path) -> FindStore:
        return cls(Path(data_dir) / "finds.jsonl")
