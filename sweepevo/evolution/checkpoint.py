"""JSON checkpoints of the elite archive and the generation counter."""

from __future__ import annotations

import json
import os
from pathlib import Path
import tempfile

from loguru import logger
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from sweepevo.evolution.archive import EliteArchive, EliteEntry
from sweepevo.exceptions import CheckpointError

__all__ = ["ArchiveCheckpoint", "save_checkpoint", "load_checkpoint"]


class ArchiveCheckpoint(BaseModel):
    generation: int = Field(ge=0)
    capacity: int = Field(gt=0)
    entries: list[EliteEntry] = Field(default_factory=list)

    @classmethod
    def capture(cls, archive: EliteArchive, generation: int) -> ArchiveCheckpoint:
        return cls(generation=generation, capacity=archive.capacity, entries=list(archive))

    def restore(self, capacity: int | None = None) -> EliteArchive:
        """Rebuild an archive; a smaller *capacity* keeps only the best entries."""
        archive = EliteArchive(capacity or self.capacity)
        archive.merge(self.entries)
        return archive


def save_checkpoint(checkpoint: ArchiveCheckpoint, path: str | Path) -> Path:
    """Atomically write *checkpoint* as JSON (temp file + rename)."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(checkpoint.model_dump_json())
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
    except OSError as exc:
        raise CheckpointError(f"Cannot write checkpoint {path}: {exc}") from exc

    logger.info(
        "[Checkpoint] Saved | path={}, generation={}, entries={}",
        path,
        checkpoint.generation,
        len(checkpoint.entries),
    )
    return path


def load_checkpoint(path: str | Path) -> ArchiveCheckpoint:
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CheckpointError(f"Cannot read checkpoint {path}: {exc}") from exc
    try:
        checkpoint = ArchiveCheckpoint.model_validate(json.loads(raw))
    except (json.JSONDecodeError, PydanticValidationError) as exc:
        raise CheckpointError(f"Malformed checkpoint {path}: {exc}") from exc

    logger.info(
        "[Checkpoint] Loaded | path={}, generation={}, entries={}",
        path,
        checkpoint.generation,
        len(checkpoint.entries),
    )
    return checkpoint
