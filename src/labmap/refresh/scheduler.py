"""
Refresh scheduler.

Purpose
Periodically:
- List raw records from the config source
- Parse them into cabinet entries
- Publish one new snapshot

States
idle -> fetching -> parsing -> publishing -> idle, and stopped once a one shot
run or an explicit stop is done.

A failed fetch never publishes. Publishing is a whole snapshot replacement, so
publishing after a failed or partial fetch would purge every machine. The
previous snapshot stays authoritative until the source answers again.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import StrEnum

from labmap.core.errors import SourceUnavailable, StartupConfigError
from labmap.core.types import CabinetEntry, RawRecord, RecordFormat
from labmap.parser.records import DropHook, ParseStats, parse_record
from labmap.registry.snapshot import build_snapshot
from labmap.registry.store import Registry
from labmap.sources.base import ConfigSource

logger = logging.getLogger(__name__)


class RefreshState(StrEnum):
    idle = "idle"
    fetching = "fetching"
    parsing = "parsing"
    publishing = "publishing"
    stopped = "stopped"


@dataclass(frozen=True)
class RefreshConfig:
    """
    Refresh configuration.

    namespace
    Passed to ConfigSource.list.

    interval_seconds
    Wait between cycles. Zero or less means run one cycle and stop.

    record_format
    Which parser front end to use.

    allow_empty_start
    When the first load fails, start with an empty registry instead of failing.
    """

    namespace: str = "labmap"
    interval_seconds: float = 0.0
    record_format: RecordFormat = RecordFormat.auto
    allow_empty_start: bool = False

    @property
    def one_shot(self) -> bool:
        return self.interval_seconds <= 0


@dataclass(frozen=True)
class CycleResult:
    """
    Outcome of one refresh cycle.

    published
    True when a new snapshot became visible.

    generation
    Registry generation after the cycle.

    error
    Source failure message when the fetch failed.
    """

    published: bool
    accepted: int
    dropped: int
    generation: int
    error: str | None = None


class RefreshScheduler:
    """
    Owns the only write path into the registry.

    This is the runtime loop, run it on a background thread with start or call
    run_cycle directly.
    """

    def __init__(
        self,
        source: ConfigSource,
        registry: Registry,
        config: RefreshConfig | None = None,
        on_drop: DropHook | None = None,
    ) -> None:
        self._source = source
        self._registry = registry
        self._config = config or RefreshConfig()
        self._on_drop = on_drop
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

        self.state = RefreshState.idle
        self.cycles = 0
        self.failures = 0
        self.dropped_total = 0

    @property
    def config(self) -> RefreshConfig:
        return self._config

    def _parse(self, raws: list[RawRecord]) -> tuple[dict[str, CabinetEntry], ParseStats]:
        stats = ParseStats()
        entries: dict[str, CabinetEntry] = {}
        for raw in raws:
            parsed = parse_record(raw, self._config.record_format, on_drop=self._on_drop)
            if parsed is None:
                stats.dropped += 1
                continue
            name, entry = parsed
            if name in entries:
                logger.debug("record %s replaces earlier entry for %s", raw.key, name)
            # last write wins
            entries[name] = entry
            stats.accepted += 1
        return entries, stats

    def run_cycle(self) -> CycleResult:
        """
        Execute one fetch, parse, publish cycle.

        Never raises for source or record problems.
        """
        self.cycles += 1
        self.state = RefreshState.fetching
        logger.debug("refresh cycle %d: listing namespace %r", self.cycles, self._config.namespace)

        try:
            raws = self._source.list(self._config.namespace)
        except SourceUnavailable as exc:
            self.failures += 1
            self.state = RefreshState.idle
            logger.error(
                "refresh failed, keeping generation %d: %s",
                self._registry.generation,
                exc,
            )
            return CycleResult(
                published=False,
                accepted=0,
                dropped=0,
                generation=self._registry.generation,
                error=str(exc),
            )

        self.state = RefreshState.parsing
        entries, stats = self._parse(raws)
        self.dropped_total += stats.dropped

        self.state = RefreshState.publishing
        published = self._registry.publish(build_snapshot(entries))
        self.state = RefreshState.idle

        logger.info(
            "published generation %d: %d machines, %d records accepted, %d dropped",
            published.generation,
            len(published),
            stats.accepted,
            stats.dropped,
        )
        if stats.dropped:
            logger.warning("%d malformed records dropped this cycle", stats.dropped)

        return CycleResult(
            published=True,
            accepted=stats.accepted,
            dropped=stats.dropped,
            generation=published.generation,
        )

    def load_initial(self) -> CycleResult:
        """
        Run the first cycle synchronously.

        Raises StartupConfigError when it fails and empty start is not allowed.
        With empty start allowed, an empty snapshot is published instead so the
        registry counts as loaded.
        """
        result = self.run_cycle()
        if result.published:
            return result

        if not self._config.allow_empty_start:
            raise StartupConfigError(f"initial load failed: {result.error}")

        logger.warning("initial load failed, starting with an empty registry")
        published = self._registry.publish(build_snapshot({}))
        return CycleResult(
            published=True,
            accepted=0,
            dropped=0,
            generation=published.generation,
            error=result.error,
        )

    def _run_cycle_guarded(self) -> CycleResult | None:
        """run_cycle for the loop: an unexpected error is logged and retried next interval."""
        try:
            return self.run_cycle()
        except Exception:
            self.failures += 1
            self.state = RefreshState.idle
            logger.exception(
                "refresh cycle %d crashed, keeping generation %d",
                self.cycles,
                self._registry.generation,
            )
            return None

    def run_forever(self, skip_first: bool = False) -> None:
        """
        Continuous loop execution.

        skip_first is used when load_initial already ran the first cycle.
        """
        if not skip_first:
            self._run_cycle_guarded()

        if self._config.one_shot:
            self.state = RefreshState.stopped
            return

        while not self._stop.wait(self._config.interval_seconds):
            self._run_cycle_guarded()

        self.state = RefreshState.stopped

    def start(self, skip_first: bool = False) -> threading.Thread:
        """Run the loop on a daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError("refresh scheduler already running")

        self._stop.clear()
        self._thread = threading.Thread(
            target=self.run_forever,
            kwargs={"skip_first": skip_first},
            name="labmap-refresh",
            daemon=True,
        )
        self._thread.start()
        return self._thread

    def stop(self, timeout: float | None = None) -> None:
        """Ask the loop to exit at its next wait and join it."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
