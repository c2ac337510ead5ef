from engine.src.watch.ignore import (
    DEFAULT_IGNORED_SEGMENTS,
    create_watch_ignore_matcher,
    normalize_watch_path,
)
from engine.src.watch.scheduler import WatchOutcome, WatchScheduler, run_watch_loop
from engine.src.watch.watcher import WatchdogWatcher

__all__ = [
    "DEFAULT_IGNORED_SEGMENTS",
    "create_watch_ignore_matcher",
    "normalize_watch_path",
    "WatchOutcome",
    "WatchScheduler",
    "run_watch_loop",
    "WatchdogWatcher",
]
