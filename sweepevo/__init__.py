from sweepevo.api import RunHandle, get_champion, get_stats, request_stop, start_run

__all__ = ["RunHandle", "get_champion", "get_stats", "request_stop", "start_run"]
