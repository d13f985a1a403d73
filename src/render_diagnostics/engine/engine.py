"""
Render Diagnostic Engine — Lifecycle callback surface and queries.

Owns every component (snapshot store, signal sampler, classifier,
frequency monitor, recreation detector, aggregator) plus its own
metrics and debug recorder. The host integration calls the lifecycle
callbacks; every mounted/updated callback yields one RenderRecord that
is aggregated and delivered to subscribers.

Processing is synchronous and single threaded. A per-entity guard
drops re-entrant callbacks for an entity already being processed.
"""

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Protocol

from render_diagnostics.aggregation import AggregateSummary, Aggregator, EntityStats, RenderRecord
from render_diagnostics.classification import (
    Classification,
    NecessityClassifier,
    initial_classification,
    unknown_classification,
)
from render_diagnostics.engine.config import EngineConfig
from render_diagnostics.engine.timing import MIN_DURATION_MS, RenderTimer
from render_diagnostics.monitors import FrequencyMonitor, RecreationDetector, StormStatus
from render_diagnostics.observability import (
    DebugRecorder,
    EngineMetrics,
    LogContext,
    create_metrics,
    get_logger,
    make_cycle_id,
)
from render_diagnostics.signals import EventSampler
from render_diagnostics.snapshot import Entity, Snapshot, SnapshotStore, capture_attributes
from render_diagnostics.snapshot.store import wall_clock_ms
from render_diagnostics.vocabulary import Cause, TargetType

logger = get_logger("engine")


STORM_HINT = "Render storm: {count} updates within {window:.0f}ms ({severity})"


@dataclass
class CycleInput:
    """
    Raw attributes of one update cycle, as handed over by the host.
    """
    display_name: str = "Anonymous"
    parent_id: str | None = None
    props: Mapping[str, Any] | None = None
    state: Mapping[str, Any] | None = None
    timestamp: float | None = None
    duration_ms: float | None = None


class Cancellable(Protocol):
    def cancel(self) -> Any: ...


class Scheduler(Protocol):
    """Anything with asyncio's `call_later` shape."""
    
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> Cancellable: ...


RecordCallback = Callable[[RenderRecord], None]


class RenderDiagnosticEngine:
    """
    Diagnoses redundant and pathological re-renders.
    
    Usage:
        engine = create_engine(EngineConfig(storm_threshold=10))
        engine.on_before_mount("c1")
        engine.on_mounted("c1", CycleInput("UserCard", props={"user": user}))
        engine.on_before_update("c1")
        record = engine.on_updated("c1", CycleInput("UserCard", props={"user": user}))
        print(record.cause, record.suggestions)
    """
    
    def __init__(
        self,
        config: EngineConfig | None = None,
        scheduler: Scheduler | None = None,
        clock: Callable[[], float] | None = None,
        rng: Callable[[], float] | None = None,
        debug: DebugRecorder | None = None,
        timer: RenderTimer | None = None,
    ):
        """
        Initialize engine.
        
        Args:
            config: Engine options (defaults when omitted)
            scheduler: Runs periodic compaction (e.g. an asyncio loop)
            clock: Wall clock in milliseconds
            rng: Uniform [0, 1) source for signal sampling
            debug: Pre-configured recorder (built from config otherwise)
            timer: Pre-configured render timer
        """
        self.config = config or EngineConfig()
        self._clock = clock or wall_clock_ms
        self._scheduler = scheduler
        
        self.metrics: EngineMetrics = create_metrics()
        self.debug = debug or DebugRecorder(
            enabled=self.config.debug,
            output_dir=self.config.debug_output_dir,
        )
        self.timer = timer or RenderTimer()
        
        self.store = SnapshotStore(
            history_size=self.config.history_size,
            max_entities=self.config.max_tracked_entities,
            clock=self._clock,
        )
        self.sampler = EventSampler(
            max_events_per_entity=self.config.max_events_per_entity,
            sampling_rate=self.config.sampling_rate,
            rng=rng,
            clock=self._clock,
            enabled=self.config.track_signals,
        )
        self.classifier = NecessityClassifier(
            slow_render_ms=self.config.slow_render_ms,
            debug=self.debug,
        )
        self.frequency = FrequencyMonitor(
            window_ms=self.config.frequency_window_ms,
            storm_threshold=self.config.storm_threshold,
            clock=self._clock,
        )
        self.recreation = RecreationDetector(
            window_ms=self.config.recreation_window_ms,
            max_tracked=self.config.recreation_max_tracked,
            similarity_threshold=self.config.recreation_similarity_threshold,
            clock=self._clock,
        )
        self.aggregator = Aggregator(
            max_records=self.config.max_records,
            duration_window=self.config.duration_window,
            max_entities=self.config.max_tracked_entities,
            frequency=self.frequency,
        )
        
        self._subscribers: list[RecordCallback] = []
        self._processing: set[str] = set()
        self._active = False
        self._compaction_handle: Cancellable | None = None
        self._last_compaction: float | None = None
        self._dynamic_filtering = self.config.dynamic_filtering
        self._enabled_entities: set[str] = set()
    
    # =========================================================================
    # Lifecycle
    # =========================================================================
    
    def init(self) -> "RenderDiagnosticEngine":
        """Start accepting callbacks."""
        if self._active:
            return self
        if not self.config.enabled:
            logger.info("Engine disabled by configuration; callbacks will be ignored")
            return self
        
        self._active = True
        self._last_compaction = self._clock()
        self._schedule_compaction()
        logger.info(
            f"Engine initialized (storm threshold {self.config.storm_threshold} "
            f"per {self.config.frequency_window_ms:.0f}ms, "
            f"max records {self.config.max_records})"
        )
        return self
    
    def dispose(self, entity_id: str | None = None) -> None:
        """
        Release tracking state.
        
        With an entity id, forgets that entity's live state (snapshot
        history, signal logs, pending timer, frequency window); its
        aggregated records stay queryable. Without one, stops the
        engine: compaction is cancelled, subscribers are dropped and
        all live state is released.
        """
        if entity_id is not None:
            self.store.clear(entity_id)
            self.sampler.clear(entity_id)
            self.timer.cancel(entity_id)
            self.frequency.clear(entity_id)
            self._processing.discard(entity_id)
            self.metrics.tracked_entities.set(self.store.tracked_count)
            return
        
        if self._compaction_handle is not None:
            self._compaction_handle.cancel()
            self._compaction_handle = None
        self._subscribers.clear()
        self._processing.clear()
        self.store.clear()
        self.sampler.clear()
        self.timer.clear()
        self.frequency.clear()
        self.recreation.clear()
        self.metrics.tracked_entities.set(0)
        if self._active:
            logger.info("Engine disposed")
        self._active = False
    
    @property
    def is_active(self) -> bool:
        return self._active
    
    # =========================================================================
    # Callbacks
    # =========================================================================
    
    def on_before_mount(self, entity_id: str) -> None:
        self._open_cycle(entity_id)
    
    def on_before_update(self, entity_id: str) -> None:
        self._open_cycle(entity_id)
    
    def on_mounted(self, entity_id: str, cycle: CycleInput) -> RenderRecord | None:
        """First render of an entity; checked against recent unmounts."""
        return self._run_cycle(entity_id, cycle, self._process_mount)
    
    def on_updated(self, entity_id: str, cycle: CycleInput) -> RenderRecord | None:
        """Re-render of an entity; classified against its previous snapshot."""
        return self._run_cycle(entity_id, cycle, self._process_update)
    
    def on_unmount(
        self,
        entity_id: str,
        last_snapshot: Snapshot | CycleInput | None = None,
        timestamp: float | None = None,
    ) -> None:
        """
        Entity destroyed; remember it as a recreation candidate.
        
        The last retained snapshot is used when none is given.
        """
        if not self._active:
            return
        
        snapshot = self._unmount_snapshot(entity_id, last_snapshot, timestamp)
        if (
            snapshot is not None
            and self.config.detect_unnecessary
            and self.should_track(entity_id, snapshot.display_name)
        ):
            evicted_before = self.recreation.evicted
            self.recreation.record_unmount(
                snapshot,
                parent_id=snapshot.parent_id,
                now=self._clock() if timestamp is None else timestamp,
            )
            self.metrics.candidates_evicted.inc(self.recreation.evicted - evicted_before)
        
        self.dispose(entity_id)
    
    # =========================================================================
    # Signals
    # =========================================================================
    
    def record_read(
        self,
        target_type: TargetType | str = TargetType.UNKNOWN,
        key: str | None = None,
        operation: str = "get",
        entity_id: str | None = None,
    ) -> bool:
        """Report a dependency read inside the current cycle."""
        if not self._active:
            return False
        return self.sampler.record_read(
            target_type=TargetType(target_type),
            key=key,
            operation=operation,
            entity_id=entity_id,
        )
    
    def record_write(
        self,
        target_type: TargetType | str = TargetType.UNKNOWN,
        key: str | None = None,
        operation: str = "set",
        old_value: Any = None,
        new_value: Any = None,
        entity_id: str | None = None,
    ) -> bool:
        """Report a dependency write inside the current cycle."""
        if not self._active:
            return False
        return self.sampler.record_write(
            target_type=TargetType(target_type),
            key=key,
            operation=operation,
            old_value=old_value,
            new_value=new_value,
            entity_id=entity_id,
        )
    
    # =========================================================================
    # Subscriptions
    # =========================================================================
    
    def subscribe(self, callback: RecordCallback) -> Callable[[], None]:
        """
        Receive every emitted record.
        
        Returns a function that undoes the subscription.
        """
        if callback not in self._subscribers:
            self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)
    
    def unsubscribe(self, callback: RecordCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)
    
    # =========================================================================
    # Dynamic filtering
    # =========================================================================
    
    def enable_dynamic_filtering(self) -> None:
        """Track only explicitly enabled entity ids, starting with none."""
        self._dynamic_filtering = True
        self._enabled_entities.clear()
    
    def disable_dynamic_filtering(self) -> None:
        self._dynamic_filtering = False
    
    @property
    def dynamic_filtering(self) -> bool:
        return self._dynamic_filtering
    
    def enable_entity(self, entity_id: str) -> None:
        self._enabled_entities.add(entity_id)
    
    def disable_entity(self, entity_id: str) -> None:
        self._enabled_entities.discard(entity_id)
    
    def enable_all_entities(self) -> None:
        """Enable every entity the engine has aggregated so far."""
        self._enabled_entities.update(s.entity_id for s in self.aggregator.all_stats())
    
    def disable_all_entities(self) -> None:
        self._enabled_entities.clear()
    
    def enabled_entities(self) -> set[str]:
        return set(self._enabled_entities)
    
    def should_track(self, entity_id: str, display_name: str) -> bool:
        """Name filters first, then the per-entity allow-set when it is on."""
        if not self.config.matches_filters(display_name):
            return False
        return not self._dynamic_filtering or entity_id in self._enabled_entities
    
    # =========================================================================
    # Queries
    # =========================================================================
    
    def summary(self, now: float | None = None) -> AggregateSummary:
        return self.aggregator.summary(now)
    
    def top_unnecessary(self, limit: int = 10) -> list[EntityStats]:
        return self.aggregator.top_unnecessary(limit)
    
    def top_slowest(self, limit: int = 10) -> list[EntityStats]:
        return self.aggregator.top_slowest(limit)
    
    def recent_records(self, limit: int = 20) -> list[RenderRecord]:
        return self.aggregator.recent(limit)
    
    def records_for(self, entity_id: str, limit: int = 50) -> list[RenderRecord]:
        return self.aggregator.for_entity(entity_id, limit)
    
    def unnecessary_records(self, limit: int = 50) -> list[RenderRecord]:
        return self.aggregator.unnecessary(limit)
    
    def stats(self, entity_id: str) -> EntityStats | None:
        return self.aggregator.stats(entity_id)
    
    def active_storms(self, now: float | None = None) -> list[StormStatus]:
        return self.frequency.active_storms(now)
    
    def clear(self, entity_id: str | None = None) -> None:
        """Forget recorded data for one entity, or everything."""
        self.aggregator.clear(entity_id)
        self.store.clear(entity_id)
        self.frequency.clear(entity_id)
        self.sampler.clear(entity_id)
        if entity_id is None:
            self.recreation.clear()
            self.debug.clear()
            self.metrics.reset()
        self.metrics.tracked_entities.set(self.store.tracked_count)
    
    def compact(self, now: float | None = None) -> dict[str, int]:
        """
        Age-based pruning of every bounded structure.
        
        Returns:
            Removed entry counts per structure
        """
        t = self._clock() if now is None else now
        removed = {
            "snapshots": self.store.prune(self.config.snapshot_max_age_ms, now=t),
            "frequency": self.frequency.prune_all(t),
            "candidates": self.recreation.cleanup(t),
        }
        self._last_compaction = t
        self.metrics.compactions_total.inc()
        self.metrics.candidates_evicted.inc(removed["candidates"])
        self.metrics.tracked_entities.set(self.store.tracked_count)
        logger.debug(f"Compaction removed {removed}")
        return removed
    
    # =========================================================================
    # Internals
    # =========================================================================
    
    def _open_cycle(self, entity_id: str) -> None:
        if not self._active or entity_id in self._processing:
            return
        self.timer.start(entity_id)
        self.sampler.begin(entity_id)
    
    def _run_cycle(
        self,
        entity_id: str,
        cycle: CycleInput,
        process: Callable[[str, CycleInput, float], RenderRecord],
    ) -> RenderRecord | None:
        if not self._active:
            return None
        if not self.should_track(entity_id, cycle.display_name):
            self.sampler.end(entity_id)
            self.timer.cancel(entity_id)
            return None
        if entity_id in self._processing:
            logger.debug(f"Skipping re-entrant cycle for {entity_id}")
            return None
        
        timestamp = self._clock() if cycle.timestamp is None else cycle.timestamp
        self._processing.add(entity_id)
        try:
            with LogContext(make_cycle_id(entity_id, timestamp)):
                return process(entity_id, cycle, timestamp)
        finally:
            self._processing.discard(entity_id)
    
    def _capture(self, entity_id: str, cycle: CycleInput, timestamp: float) -> Snapshot:
        measured = self.timer.end(entity_id)
        duration = measured
        if cycle.duration_ms is not None:
            # Host-supplied durations get the same floor as measured ones;
            # negative and NaN values land on the floor
            duration = cycle.duration_ms if cycle.duration_ms >= MIN_DURATION_MS else MIN_DURATION_MS
        entity = Entity(entity_id, cycle.display_name, cycle.parent_id)
        return self.store.capture(
            entity,
            props=cycle.props,
            state=cycle.state,
            duration_ms=duration,
            timestamp=timestamp,
        )
    
    def _process_mount(self, entity_id: str, cycle: CycleInput, timestamp: float) -> RenderRecord:
        self.sampler.end(entity_id)
        snapshot = self._capture(entity_id, cycle, timestamp)
        self.metrics.mounts_total.inc()
        self.frequency.record(entity_id, timestamp)
        
        match = None
        if self.config.detect_unnecessary:
            match = self.recreation.check(snapshot, parent_id=cycle.parent_id, now=timestamp)
        
        if match is not None:
            self.metrics.recreations_total.inc()
            logger.info(
                f"{cycle.display_name} ({entity_id}) recreated from "
                f"{match.previous_entity_id}: {match.details}"
            )
            classification = Classification(
                necessary=False,
                cause=Cause.COMPONENT_RECREATION,
                suggestions=list(match.suggestions),
                props_diff=match.as_diff(),
            )
        else:
            classification = initial_classification()
        
        return self._emit(snapshot, classification, is_recreation=match is not None)
    
    def _process_update(self, entity_id: str, cycle: CycleInput, timestamp: float) -> RenderRecord:
        signals = self.sampler.end(entity_id)
        previous = self.store.latest(entity_id)
        snapshot = self._capture(entity_id, cycle, timestamp)
        self.metrics.updates_total.inc()
        self.frequency.record(entity_id, timestamp)
        
        if previous is None or not self.config.detect_unnecessary:
            classification = unknown_classification(necessary=True)
        else:
            failures_before = self.classifier.failures
            classification = self.classifier.classify(
                previous,
                snapshot,
                signals if self.config.track_signals else None,
            )
            if self.classifier.failures != failures_before:
                self.metrics.classification_failures.inc()
        
        record = self._emit(snapshot, classification, is_recreation=False)
        self._maybe_compact(timestamp)
        return record
    
    def _emit(
        self,
        snapshot: Snapshot,
        classification: Classification,
        is_recreation: bool,
    ) -> RenderRecord:
        suggestions = list(classification.suggestions)
        storm = self.frequency.storm_status(snapshot.entity_id)
        if storm is not None:
            self.metrics.storms_flagged.inc()
            suggestions.insert(0, STORM_HINT.format(
                count=storm.count,
                window=storm.window_ms,
                severity=storm.severity.value,
            ))
            logger.warning(
                f"Render storm on {snapshot.display_name} ({snapshot.entity_id}): "
                f"{storm.count} updates, {storm.severity.value}",
                extra={"entity_id": snapshot.entity_id, "storm_severity": storm.severity.value},
            )
        
        record = RenderRecord(
            timestamp=snapshot.timestamp,
            entity_id=snapshot.entity_id,
            display_name=snapshot.display_name,
            parent_id=snapshot.parent_id,
            necessary=classification.necessary,
            cause=classification.cause,
            attributed_group=classification.attributed_group,
            attributed_key=classification.attributed_key,
            duration_ms=snapshot.duration_ms,
            props_diff=classification.props_diff.to_dict() if classification.props_diff else None,
            state_diff=classification.state_diff.to_dict() if classification.state_diff else None,
            is_storm=storm is not None,
            storm_severity=storm.severity if storm else None,
            is_recreation=is_recreation,
            suggestions=suggestions,
        )
        
        evicted_before = self.aggregator.records_evicted
        self.aggregator.add(record)
        self.metrics.records_evicted.inc(self.aggregator.records_evicted - evicted_before)
        if not record.necessary:
            self.metrics.unnecessary_total.inc()
        if record.duration_ms is not None:
            self.metrics.render_duration_ms.observe(record.duration_ms)
        self.metrics.tracked_entities.set(self.store.tracked_count)
        
        logger.debug(record.to_summary())
        self._publish(record)
        return record
    
    def _publish(self, record: RenderRecord) -> None:
        """Deliver to subscribers; a failing subscriber never stops the others."""
        for callback in list(self._subscribers):
            try:
                callback(record)
            except Exception as exc:
                logger.error(f"Record subscriber failed: {exc}", exc_info=True)
    
    def _unmount_snapshot(
        self,
        entity_id: str,
        last: Snapshot | CycleInput | None,
        timestamp: float | None,
    ) -> Snapshot | None:
        if isinstance(last, Snapshot):
            return last
        if isinstance(last, CycleInput):
            return Snapshot(
                entity_id=entity_id,
                display_name=last.display_name,
                parent_id=last.parent_id,
                timestamp=self._clock() if timestamp is None else timestamp,
                props=capture_attributes(last.props),
                state=capture_attributes(last.state, unwrap=True, skip_internal=True),
            )
        return self.store.latest(entity_id)
    
    # -------------------------------------------------------------------------
    # Compaction
    # -------------------------------------------------------------------------
    
    def _schedule_compaction(self) -> None:
        interval = self.config.compaction_interval_ms
        if self._scheduler is None or interval <= 0 or not self._active:
            return
        self._compaction_handle = self._scheduler.call_later(
            interval / 1000.0, self._run_scheduled_compaction
        )
    
    def _run_scheduled_compaction(self) -> None:
        self._compaction_handle = None
        if not self._active:
            return
        self.compact()
        self._schedule_compaction()
    
    def _maybe_compact(self, now: float) -> None:
        """Lazy compaction when no scheduler drives it."""
        interval = self.config.compaction_interval_ms
        if self._scheduler is not None or interval <= 0:
            return
        if self._last_compaction is None:
            self._last_compaction = now
        elif now - self._last_compaction >= interval:
            self.compact(now)


def create_engine(
    config: EngineConfig | Mapping[str, Any] | None = None,
    scheduler: Scheduler | None = None,
    **kwargs: Any,
) -> RenderDiagnosticEngine:
    """
    Factory for an initialized engine.
    
    Args:
        config: EngineConfig, or a mapping of (camelCase or snake_case) options
        scheduler: Periodic compaction driver
        **kwargs: Passed through to RenderDiagnosticEngine
    """
    if config is not None and not isinstance(config, EngineConfig):
        config = EngineConfig.model_validate(config)
    return RenderDiagnosticEngine(config, scheduler=scheduler, **kwargs).init()
