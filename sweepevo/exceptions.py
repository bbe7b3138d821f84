from __future__ import annotations


class SweepEvoError(Exception):
    """Base for all sweepevo exceptions."""

    pass


# High-level families
class ValidationError(SweepEvoError):
    """Data validation failures."""

    pass


class TopologyMismatchError(ValidationError):
    """Genome layer shapes do not match the fixed policy topology."""

    pass


class SimulationError(SweepEvoError):
    """Environment misuse (bad action index, board too large for topology)."""

    pass


class WorkerFailureError(SweepEvoError):
    """A worker process errored, died, timed out or sent an unknown message."""

    def __init__(self, message: str, *, worker_ids: tuple[int, ...] = ()):
        super().__init__(message)
        self.worker_ids = tuple(worker_ids)


class EvolutionError(SweepEvoError):
    """Evolution process failures."""

    pass


class CheckpointError(SweepEvoError):
    """Checkpoint read/write failures."""

    pass
