"""核心模块."""

from core.config_store import load_config
from core.counter_store import load_counters, save_counters
from core.process_source import PsutilProcessSource, collect_observations
from core.quota_engine import ScanResult, day_index, evaluate, run_scan

__all__ = [
    "PsutilProcessSource",
    "ScanResult",
    "collect_observations",
    "day_index",
    "evaluate",
    "load_config",
    "load_counters",
    "run_scan",
    "save_counters",
]
