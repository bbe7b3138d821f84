from sweepevo.utils.trackers.backends.tensorboard import TBBackend
from sweepevo.utils.trackers.base import LogWriter
from sweepevo.utils.trackers.configs import TBConfig
from sweepevo.utils.trackers.core import BoundGeneric, GenericLogger, LoggerBackend


def init_tb(cfg: TBConfig, *, flush_secs: float = 3.0) -> GenericLogger:
    """Open a TensorBoard-backed writer rooted at ``cfg.logdir``."""
    return GenericLogger(TBBackend(cfg), flush_secs=flush_secs)


__all__ = [
    "BoundGeneric",
    "GenericLogger",
    "LogWriter",
    "LoggerBackend",
    "TBBackend",
    "TBConfig",
    "init_tb",
]
