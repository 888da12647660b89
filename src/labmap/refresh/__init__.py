"""Refresh scheduling."""

from labmap.refresh.scheduler import CycleResult, RefreshConfig, RefreshScheduler, RefreshState

__all__ = ["CycleResult", "RefreshConfig", "RefreshScheduler", "RefreshState"]
