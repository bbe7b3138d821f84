from sweepevo.workers.pool import (
    WorkerContext,
    WorkerPool,
    WorkerPoolConfig,
    partition_population,
    resolve_worker_count,
)

__all__ = [
    "WorkerContext",
    "WorkerPool",
    "WorkerPoolConfig",
    "partition_population",
    "resolve_worker_count",
]
