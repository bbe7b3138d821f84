from sweepevo.evolution.archive import EliteArchive, EliteEntry, MergeOutcome
from sweepevo.evolution.checkpoint import (
    ArchiveCheckpoint,
    load_checkpoint,
    save_checkpoint,
)
from sweepevo.evolution.composition import (
    Candidate,
    CompositionConfig,
    SlotBand,
    build_population,
)

__all__ = [
    "ArchiveCheckpoint",
    "Candidate",
    "CompositionConfig",
    "EliteArchive",
    "EliteEntry",
    "MergeOutcome",
    "SlotBand",
    "build_population",
    "load_checkpoint",
    "save_checkpoint",
]
