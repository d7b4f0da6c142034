"""Playback scheduler — replays a recorded trace over time.

Walks an ordered sequence of :class:`TraceStep` one step per timer tick and
publishes an immutable :class:`ExecutionProgress` after every change, so a
renderer can highlight the executing node, the finished nodes and the edge
just traversed.

Architecture::

    PlaybackScheduler
    ├── start()          → fresh running snapshot, step 0 immediately
    ├── stop()           → cancel timer, freeze snapshot (not resumable)
    ├── reset()          → stop + back to the empty snapshot
    ├── load(...)        → swap steps/edges/run_id and restart the run
    ├── reconfigure(...) → new timing, picked up on the next tick
    ├── dispose()        → cancel timer, ignore everything afterwards
    ├── subscribe(fn)    → fn(snapshot) on every publish
    └── progress         → latest snapshot

    timer fires ──► _on_timer ──► _advance_handler ──► publish ──► arm next timer
                                  (slot, rebuilt by
                                   reconfigure/load)

Every timer calls through ``_advance_handler`` rather than the function that
existed when it was armed, so timing changes apply on the very next tick
without cancelling and re-arming.

Example::

    from tracespine.playback import PlaybackScheduler, ManualTimerBackend, TraceStep, FlowEdge

    timers = ManualTimerBackend()
    scheduler = PlaybackScheduler(
        steps=[TraceStep("A"), TraceStep("B"), TraceStep("C", status="error")],
        edges=[FlowEdge("e1", "A", "B"), FlowEdge("e2", "B", "C")],
        run_id="run-1",
        step_interval_ms=100,
        timer=timers,
    )
    timers.advance(0)      # A executing
    timers.advance(100)    # A completed, B executing, active edge e1
    timers.run_until_idle()
    scheduler.progress.is_finished  # True
"""

from __future__ import annotations

import functools
import math
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from tracespine.core.errors import InvalidConfigError, categorize_error
from tracespine.core.logging import get_logger
from tracespine.playback.durations import DEFAULT_STEP_INTERVAL_MS, DurationFn, clamp_duration
from tracespine.playback.edges import EdgeIndex
from tracespine.playback.models import (
    ExecutionProgress,
    FlowEdge,
    NodeExecutionState,
    TraceStep,
)
from tracespine.playback.timers import (
    AsyncioTimerBackend,
    ManualTimerBackend,
    TimerBackend,
    TimerHandle,
)

logger = get_logger(__name__)

ProgressListener = Callable[[ExecutionProgress], None]

_UNSET: Any = object()


def _validate_interval(step_interval_ms: float) -> float:
    try:
        interval = float(step_interval_ms)
    except (TypeError, ValueError) as e:
        raise InvalidConfigError("step_interval_ms", step_interval_ms) from e
    if not math.isfinite(interval) or interval < 0:
        raise InvalidConfigError("step_interval_ms", step_interval_ms)
    return interval


class PlaybackScheduler:
    """Deterministic trace-playback scheduler for one run at a time.

    Parameters
    ----------
    steps
        Ordered steps to replay. Copied; later changes to the caller's
        sequence have no effect (use :meth:`load`).
    edges
        ``FlowEdge`` objects, ``{id, source, target}`` mappings, or an
        :class:`EdgeIndex`.
    run_id
        Label stamped onto every snapshot of this run.
    auto_start
        Begin playback on a zero-delay timer when ``steps`` is non-empty.
    step_interval_ms
        Per-step duration used when ``get_step_duration`` is not given.
    get_step_duration
        ``(step, index) -> ms``; overrides ``step_interval_ms`` for every step.
    timer
        Timer backend. Defaults to :class:`AsyncioTimerBackend`, which must
        be used from inside a running event loop. A backend that fails to arm
        a timer is logged (``timer_arm_failed``) and the run stops.

    The scheduler never raises from its control operations or timer
    callbacks; an invalid ``step_interval_ms`` raises
    :class:`InvalidConfigError` at construction.
    """

    def __init__(
        self,
        steps: Iterable[TraceStep],
        edges: EdgeIndex | Iterable[FlowEdge | Mapping[str, Any]] = (),
        run_id: str | None = None,
        *,
        auto_start: bool = True,
        step_interval_ms: float = DEFAULT_STEP_INTERVAL_MS,
        get_step_duration: DurationFn | None = None,
        timer: TimerBackend | None = None,
    ) -> None:
        self._steps: tuple[TraceStep, ...] = tuple(steps)
        self._edges = edges if isinstance(edges, EdgeIndex) else EdgeIndex(edges)
        self._run_id = run_id
        self._auto_start = auto_start
        self._step_interval_ms = _validate_interval(step_interval_ms)
        self._get_step_duration = get_step_duration
        self._timer: TimerBackend = timer or AsyncioTimerBackend()

        self._cursor = -1
        self._pending: TimerHandle | None = None
        self._generation = 0
        self._listeners: list[ProgressListener] = []
        self._disposed = False
        self._progress = ExecutionProgress.initial()
        self._advance_handler: Callable[[], None] = self._build_advance()

        self._arm_auto_start()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def progress(self) -> ExecutionProgress:
        """The latest published snapshot."""
        return self._progress

    @property
    def is_running(self) -> bool:
        return self._progress.is_running

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def run_id(self) -> str | None:
        return self._run_id

    @property
    def steps(self) -> tuple[TraceStep, ...]:
        return self._steps

    @property
    def edges(self) -> EdgeIndex:
        return self._edges

    @property
    def step_interval_ms(self) -> float:
        return self._step_interval_ms

    @property
    def has_pending_timer(self) -> bool:
        return self._pending is not None and not self._pending.cancelled()

    def subscribe(self, listener: ProgressListener) -> Callable[[], None]:
        """Call ``listener(snapshot)`` after every publish.

        Returns a function that removes the listener.
        """
        if self._disposed:
            return lambda: None
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Control operations
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start (or restart) the run from step 0.

        Any in-flight progress is discarded; step 0 begins without delay.
        """
        if self._disposed:
            return
        generation = self._interrupt()
        self._cursor = -1
        self._publish(ExecutionProgress.initial(self._run_id, is_running=True))
        logger.info("playback_started", run_id=self._run_id, steps=len(self._steps))
        if generation == self._generation:
            self._advance_handler()

    def stop(self) -> None:
        """Cancel the pending advance and freeze the current snapshot.

        The cursor is kept, but a later :meth:`start` is a full restart.
        """
        if self._disposed:
            return
        self._interrupt()
        self._publish(self._progress.replace(is_running=False))
        logger.info(
            "playback_stopped",
            run_id=self._run_id,
            step_index=self._progress.current_step_index,
        )

    def reset(self) -> None:
        """Stop and return to the empty, never-started snapshot."""
        if self._disposed:
            return
        self.stop()
        self._cursor = -1
        self._publish(ExecutionProgress.initial())
        logger.info("playback_reset", run_id=self._run_id)

    def load(
        self,
        steps: Iterable[TraceStep],
        edges: EdgeIndex | Iterable[FlowEdge | Mapping[str, Any]] | None = None,
        run_id: str | None = None,
    ) -> None:
        """Replace the run's inputs and restart from the beginning.

        ``edges`` and ``run_id`` keep their current values when omitted. The
        ``auto_start`` rule is applied again, as at construction.
        """
        if self._disposed:
            return
        self._interrupt()
        self._steps = tuple(steps)
        if edges is not None:
            self._edges = edges if isinstance(edges, EdgeIndex) else EdgeIndex(edges)
        if run_id is not None:
            self._run_id = run_id
        self._advance_handler = self._build_advance()
        self._cursor = -1
        self._publish(ExecutionProgress.initial())
        logger.info("playback_loaded", run_id=self._run_id, steps=len(self._steps))
        self._arm_auto_start()

    def reconfigure(
        self,
        *,
        step_interval_ms: float = _UNSET,
        get_step_duration: DurationFn | None = _UNSET,
    ) -> None:
        """Change step timing mid-run.

        The already-armed timer is left alone; the new timing applies from
        the next advance it triggers. Pass ``get_step_duration=None`` to go
        back to the fixed interval.
        """
        if self._disposed:
            return
        if step_interval_ms is not _UNSET:
            self._step_interval_ms = _validate_interval(step_interval_ms)
        if get_step_duration is not _UNSET:
            self._get_step_duration = get_step_duration
        self._advance_handler = self._build_advance()
        logger.debug(
            "playback_reconfigured",
            run_id=self._run_id,
            step_interval_ms=self._step_interval_ms,
            duration_fn=self._get_step_duration is not None,
        )

    def dispose(self) -> None:
        """Cancel any pending advance and detach all listeners.

        Everything after disposal, including late timer callbacks, is a
        no-op. :attr:`progress` keeps the last snapshot.
        """
        if self._disposed:
            return
        self._interrupt()
        self._listeners.clear()
        self._disposed = True
        logger.debug("playback_disposed", run_id=self._run_id)

    close = dispose

    def __enter__(self) -> PlaybackScheduler:
        return self

    def __exit__(self, *args: Any) -> None:
        self.dispose()

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else ("running" if self.is_running else "idle")
        return (
            f"PlaybackScheduler(run_id={self._run_id!r}, steps={len(self._steps)}, "
            f"index={self._progress.current_step_index}, {state})"
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _build_advance(self) -> Callable[[], None]:
        """Build the advance function for the current inputs and timing."""
        steps = self._steps
        edges = self._edges
        run_id = self._run_id
        interval = self._step_interval_ms
        duration_fn = self._get_step_duration

        def _duration(step: TraceStep, index: int) -> float:
            if duration_fn is None:
                return interval
            try:
                return clamp_duration(duration_fn(step, index))
            except Exception as e:
                logger.exception(
                    "duration_function_failed",
                    run_id=run_id,
                    step_index=index,
                    category=categorize_error(e).value,
                )
                return interval

        def advance() -> None:
            next_index = self._cursor + 1

            if next_index >= len(steps):
                self._cancel_pending()
                node_states = dict(self._progress.node_states)
                if 0 <= self._cursor < len(steps):
                    last = steps[self._cursor]
                    node_states[last.node_id] = (
                        NodeExecutionState.ERROR if last.is_error else NodeExecutionState.COMPLETED
                    )
                self._publish(
                    self._progress.replace(
                        is_running=False,
                        current_step=None,
                        active_edge_id=None,
                        node_states=node_states,
                    )
                )
                logger.info(
                    "playback_finished",
                    run_id=run_id,
                    steps=len(steps),
                    elapsed_ms=self._progress.elapsed_ms,
                )
                return

            self._cursor = next_index
            step = steps[next_index]
            prev_step = steps[next_index - 1] if next_index > 0 else None
            duration = _duration(step, next_index)

            prev = self._progress
            node_states = dict(prev.node_states)
            completed_edges = set(prev.completed_edges)
            active_edge_id = None

            if prev_step is not None:
                node_states[prev_step.node_id] = (
                    NodeExecutionState.ERROR if prev_step.is_error else NodeExecutionState.COMPLETED
                )
            node_states[step.node_id] = NodeExecutionState.EXECUTING

            if prev_step is not None:
                active_edge_id = edges.find(prev_step.node_id, step.node_id)
                if active_edge_id is not None:
                    completed_edges.add(active_edge_id)

            generation = self._generation
            self._publish(
                ExecutionProgress(
                    is_running=True,
                    run_id=run_id,
                    current_step_index=next_index,
                    current_step=step,
                    node_states=node_states,
                    completed_edges=frozenset(completed_edges),
                    active_edge_id=active_edge_id,
                    elapsed_ms=prev.elapsed_ms + duration,
                )
            )
            logger.debug(
                "step_advanced",
                run_id=run_id,
                step_index=next_index,
                node_id=step.node_id,
                edge_id=active_edge_id,
                duration_ms=duration,
            )

            # a listener may have stopped, restarted or disposed the run
            if generation != self._generation or self._disposed:
                return
            self._arm(duration)

        return advance

    def _arm(self, delay_ms: float) -> None:
        self._cancel_pending()
        try:
            self._pending = self._timer.call_later(
                delay_ms, functools.partial(self._on_timer, self._generation)
            )
        except Exception as e:
            # e.g. the asyncio backend outside a running loop
            logger.exception(
                "timer_arm_failed",
                run_id=self._run_id,
                backend=getattr(self._timer, "name", type(self._timer).__name__),
                category=categorize_error(e).value,
            )
            self._publish(self._progress.replace(is_running=False))

    def _on_timer(self, generation: int) -> None:
        if self._disposed or generation != self._generation:
            return
        self._pending = None
        self._advance_handler()

    def _arm_auto_start(self) -> None:
        if not (self._auto_start and self._steps):
            return
        self._cursor = -1
        self._publish(ExecutionProgress.initial(self._run_id, is_running=True))
        self._arm(0.0)

    def _interrupt(self) -> int:
        """Invalidate in-flight callbacks and cancel the pending timer."""
        self._generation += 1
        self._cancel_pending()
        return self._generation

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _publish(self, progress: ExecutionProgress) -> None:
        self._progress = progress
        for listener in list(self._listeners):
            try:
                listener(progress)
            except Exception as e:
                logger.exception(
                    "listener_failed",
                    run_id=self._run_id,
                    category=categorize_error(e).value,
                )


def play(
    steps: Sequence[TraceStep],
    edges: EdgeIndex | Iterable[FlowEdge | Mapping[str, Any]] = (),
    run_id: str | None = None,
    **kwargs: Any,
) -> list[ExecutionProgress]:
    """Replay ``steps`` on a virtual clock and return every published snapshot.

    Handy for tests and batch tooling; no real time passes.
    """
    timers = ManualTimerBackend()
    snapshots: list[ExecutionProgress] = []
    scheduler = PlaybackScheduler(steps, edges, run_id, auto_start=False, timer=timers, **kwargs)
    with scheduler:
        scheduler.subscribe(snapshots.append)
        scheduler.start()
        timers.run_until_idle()
    return snapshots
