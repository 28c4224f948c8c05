"""
Hierarchical state machine driving one advanced-set execution.

    idle ──INITIALIZE──▶ initializing ──▶ ready | completed | error
    ready ──COMPLETE_SET──▶ processing_phase ──▶ completed | resting | ready | error
    resting.timer_ready ──START──▶ timer_running ⇄ timer_paused ──▶ ready

Every (state, event) pair is listed in TRANSITIONS; ``None`` marks an
explicit no-op.  Strategy calls run as asyncio tasks and report back with a
settlement event stamped with the generation they were issued under, so a
result arriving after reset/abort or reinitialization is discarded.

All methods must be called from inside a running event loop.
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import replace
from typing import Any, Awaitable, Callable, Final

import structlog

from ..core.config import TIMER_TICK_SECONDS
from ..core.errors import InfrastructureError, Result
from ..core.log import EngineLogger
from ..core.models import ExecutionState, SetConfiguration, SetProgressionData
from ..core.strategies.base import ExecutionStrategy
from .rest_timer import RestTimer
from .states import (
    EVENT_TYPES,
    AbortSet,
    CompleteSet,
    ControllerContext,
    ControllerSnapshot,
    Event,
    Initialize,
    InitializationSettled,
    PauseTimer,
    PhaseSettled,
    ResetSet,
    ResumeTimer,
    SetState,
    SkipRest,
    StartRestTimer,
    TimerComplete,
    TimerState,
)

Listener = Callable[[ControllerSnapshot], None]


def _row(*parts: dict[str, str]) -> dict[str, str | None]:
    """Full event row for one state; later parts win, events not named are no-ops."""
    handlers: dict[str, str] = {}
    for part in parts:
        handlers.update(part)
    unknown = set(handlers) - set(EVENT_TYPES)
    if unknown:
        raise ValueError(f"Unknown event types in transition table: {sorted(unknown)}")
    return {event_type: handlers.get(event_type) for event_type in EVENT_TYPES}


# A settlement outside its pending state always belongs to an abandoned call
_DISCARD: Final = {
    InitializationSettled.type: "_discard_settlement",
    PhaseSettled.type: "_discard_settlement",
}
_CANCEL: Final = {ResetSet.type: "_on_cancel", AbortSet.type: "_on_cancel"}
_RESTING: Final = {SkipRest.type: "_on_rest_finished", **_CANCEL}

TRANSITIONS: Final[dict[SetState, dict[str, str | None]]] = {
    SetState.IDLE: _row(_DISCARD, {Initialize.type: "_on_initialize"}),
    SetState.INITIALIZING: _row(
        _DISCARD, _CANCEL, {InitializationSettled.type: "_on_initialization_settled"}
    ),
    SetState.READY: _row(_DISCARD, _CANCEL, {CompleteSet.type: "_on_complete_set"}),
    SetState.PROCESSING_PHASE: _row(_DISCARD, _CANCEL, {PhaseSettled.type: "_on_phase_settled"}),
    SetState.TIMER_READY: _row(_DISCARD, _RESTING, {StartRestTimer.type: "_on_timer_start"}),
    SetState.TIMER_RUNNING: _row(
        _DISCARD,
        _RESTING,
        {PauseTimer.type: "_on_timer_pause", TimerComplete.type: "_on_rest_finished"},
    ),
    SetState.TIMER_PAUSED: _row(_DISCARD, _RESTING, {ResumeTimer.type: "_on_timer_start"}),
    SetState.COMPLETED: _row(_DISCARD, _CANCEL, {Initialize.type: "_on_initialize"}),
    SetState.ERROR: _row(_DISCARD, _CANCEL, {Initialize.type: "_on_initialize"}),
}

# Entry actions run after the state changes and before listeners are notified
ENTRY_ACTIONS: Final[dict[SetState, str]] = {
    SetState.IDLE: "_enter_idle",
    SetState.INITIALIZING: "_enter_initializing",
    SetState.READY: "_stop_timer",
    SetState.TIMER_READY: "_enter_timer_ready",
    SetState.TIMER_RUNNING: "_enter_timer_running",
    SetState.TIMER_PAUSED: "_enter_timer_paused",
    SetState.COMPLETED: "_stop_timer",
    SetState.ERROR: "_stop_timer",
}


class AdvancedSetController:
    """
    Owns one execution and delegates every numeric decision to ``strategy``.

    Args:
        strategy: Protocol implementation for the configurations this
            controller will run
        logger: Structured logger; defaults to this module's structlog logger
        tick_interval: Wall-clock seconds per rest-timer second
    """

    def __init__(
        self,
        strategy: ExecutionStrategy,
        logger: EngineLogger | None = None,
        *,
        tick_interval: float = TIMER_TICK_SECONDS,
    ) -> None:
        self.strategy = strategy
        self.logger: EngineLogger = logger or structlog.get_logger(__name__)
        self._state = SetState.IDLE
        self._context = ControllerContext()
        self._timer = RestTimer(
            on_tick=self._on_timer_tick,
            on_complete=lambda: self.send(TimerComplete()),
            tick_interval=tick_interval,
            logger=self.logger,
        )
        self._listeners: list[Listener] = []
        self._queue: deque[Event] = deque()
        self._dispatching = False
        self._generation = 0
        self._pending: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def state(self) -> SetState:
        return self._state

    @property
    def context(self) -> ControllerContext:
        return self._context

    @property
    def snapshot(self) -> ControllerSnapshot:
        return ControllerSnapshot(state=self._state, context=self._context)

    def matches(self, state: str) -> bool:
        """``matches("resting")`` is true in any resting substate."""
        return self.snapshot.matches(state)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register ``listener``; returns a callable that unsubscribes it.

        A listener that raises is logged and does not stop delivery to the others.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def wait_until(
        self,
        predicate: Callable[[ControllerSnapshot], bool],
        timeout: float | None = None,
    ) -> ControllerSnapshot:
        """Resolve with the first snapshot (current one included) that satisfies ``predicate``."""
        current = self.snapshot
        if predicate(current):
            return current

        future: asyncio.Future[ControllerSnapshot] = asyncio.get_running_loop().create_future()

        def listener(snapshot: ControllerSnapshot) -> None:
            if not future.done() and predicate(snapshot):
                future.set_result(snapshot)

        unsubscribe = self.subscribe(listener)
        try:
            return await asyncio.wait_for(future, timeout)
        finally:
            unsubscribe()

    async def settle(self) -> ControllerSnapshot:
        """Wait until no strategy call is outstanding."""
        while self._pending is not None and not self._pending.done():
            await self._pending
        return self.snapshot

    def close(self) -> None:
        """Stop the rest timer and abandon any outstanding strategy call."""
        self._timer.stop()
        self._generation += 1
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    # ------------------------------------------------------------------
    # Event API
    # ------------------------------------------------------------------

    def send(self, event: Event) -> None:
        """
        Deliver ``event``.

        Events sent from listeners or entry actions are queued behind the one
        being processed, so delivery order is always preserved.
        """
        self._queue.append(event)
        if self._dispatching:
            return
        self._dispatching = True
        try:
            while self._queue:
                self._dispatch(self._queue.popleft())
        finally:
            self._dispatching = False

    def initialize(self, configuration: SetConfiguration, last_weight: float | None = None) -> None:
        self.send(Initialize(configuration=configuration, last_weight=last_weight))

    def complete_set(self, set_data: SetProgressionData) -> None:
        self.send(CompleteSet(set_data=set_data))

    def start_rest_timer(self) -> None:
        self.send(StartRestTimer())

    def pause_timer(self) -> None:
        self.send(PauseTimer())

    def resume_timer(self) -> None:
        self.send(ResumeTimer())

    def skip_rest(self) -> None:
        self.send(SkipRest())

    def reset(self) -> None:
        self.send(ResetSet())

    def abort(self) -> None:
        self.send(AbortSet())

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _dispatch(self, event: Event) -> None:
        handler_name = TRANSITIONS[self._state][event.type]
        if handler_name is None:
            self.logger.debug("Event ignored", state=self._state.value, trigger=event.type)
            return
        getattr(self, handler_name)(event)

    def _transition(self, target: SetState, event: Event, **updates: Any) -> None:
        """The only place the state changes; logs and notifies exactly once."""
        source = self._state
        if updates:
            self._context = replace(self._context, **updates)
        self._state = target

        action = ENTRY_ACTIONS.get(target)
        if action is not None:
            getattr(self, action)()

        execution = self._context.execution_state
        self.logger.info(
            "State transition",
            **{"from": source.value, "to": target.value},
            trigger=event.type,
            set_type=execution.set_type if execution else None,
            current_phase=execution.current_phase if execution else None,
            total_phases=execution.total_phases if execution else None,
        )
        self._notify()

    def _notify(self) -> None:
        snapshot = self.snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                self.logger.exception("Listener raised", state=snapshot.state.value)

    def _invoke(
        self,
        call: Callable[[], Awaitable[Result[Any]]],
        settled: Callable[[int, Result[Any]], Event],
        operation: str,
    ) -> None:
        self._generation += 1
        generation = self._generation

        async def run() -> None:
            try:
                result = await call()
            except Exception as exc:
                # Strategies should return failures, but a misbehaving one must not escape
                self.logger.exception("Strategy call raised", operation=operation)
                error = InfrastructureError(f"Failed to {operation}: {exc}")
                error.__cause__ = exc
                result = Result.failure(error)
            self.send(settled(generation, result))

        self._pending = asyncio.get_running_loop().create_task(run())

    def _is_stale(self, event: InitializationSettled | PhaseSettled) -> bool:
        if event.generation != self._generation:
            self._discard_settlement(event)
            return True
        return False

    def _discard_settlement(self, event: InitializationSettled | PhaseSettled) -> None:
        self.logger.debug(
            "Discarding stale settlement",
            state=self._state.value,
            trigger=event.type,
            generation=event.generation,
            current_generation=self._generation,
        )

    def _fail(self, event: Event, error: Any) -> None:
        message = str(error)
        self.logger.error(
            "Advanced set execution failed",
            trigger=event.type,
            set_type=self.strategy.set_type,
            error=message,
        )
        self._transition(SetState.ERROR, event, error=message)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _on_initialize(self, event: Initialize) -> None:
        self._transition(
            SetState.INITIALIZING,
            event,
            configuration=event.configuration,
            last_weight=event.last_weight,
        )
        self._invoke(
            lambda: self.strategy.initialize_execution(event.configuration, event.last_weight),
            lambda generation, result: InitializationSettled(generation=generation, result=result),
            "initialize execution",
        )

    def _on_initialization_settled(self, event: InitializationSettled) -> None:
        if self._is_stale(event):
            return
        self._pending = None
        if event.result.is_failure:
            self._fail(event, event.result.error)
            return

        execution: ExecutionState = event.result.value
        target = SetState.COMPLETED if execution.is_completed else SetState.READY
        self._transition(target, event, execution_state=execution)

    def _on_complete_set(self, event: CompleteSet) -> None:
        execution = self._context.execution_state
        self._transition(SetState.PROCESSING_PHASE, event)

        async def process() -> Result[Any]:
            validation = await self.strategy.validate_phase_completion(execution, event.set_data)
            if validation.is_failure:
                return validation
            return await self.strategy.progress_to_next_phase(execution, event.set_data)

        self._invoke(
            process,
            lambda generation, result: PhaseSettled(
                generation=generation, result=result, set_data=event.set_data
            ),
            "process completed set",
        )

    def _on_phase_settled(self, event: PhaseSettled) -> None:
        if self._is_stale(event):
            return
        self._pending = None
        if event.result.is_failure:
            self._fail(event, event.result.error)
            return

        execution: ExecutionState = event.result.value
        if execution.is_completed:
            target = SetState.COMPLETED
        elif execution.needs_rest:
            target = SetState.TIMER_READY
        else:
            target = SetState.READY

        self._transition(
            target,
            event,
            execution_state=execution,
            completed_sets=self._context.completed_sets + (event.set_data,),
        )

    def _on_timer_start(self, event: StartRestTimer | ResumeTimer) -> None:
        self._transition(SetState.TIMER_RUNNING, event)

    def _on_timer_pause(self, event: PauseTimer) -> None:
        self._transition(SetState.TIMER_PAUSED, event)

    def _on_rest_finished(self, event: SkipRest | TimerComplete) -> None:
        self._transition(SetState.READY, event)

    def _on_cancel(self, event: ResetSet | AbortSet) -> None:
        # Any outstanding call now belongs to a state we have left
        self._generation += 1
        self._transition(SetState.IDLE, event)

    # ------------------------------------------------------------------
    # Entry actions
    # ------------------------------------------------------------------

    def _enter_idle(self) -> None:
        self._timer.stop()
        self._context = ControllerContext()

    def _enter_initializing(self) -> None:
        self._timer.stop()
        self._context = replace(
            self._context,
            execution_state=None,
            error=None,
            completed_sets=(),
            timer=TimerState(),
        )

    def _enter_timer_ready(self) -> None:
        execution = self._context.execution_state
        seconds = execution.rest_period_seconds if execution else 0
        self._context = replace(self._context, timer=self._timer.load(seconds or 0))

    def _enter_timer_running(self) -> None:
        self._context = replace(self._context, timer=self._timer.start())

    def _enter_timer_paused(self) -> None:
        self._context = replace(self._context, timer=self._timer.pause())

    def _stop_timer(self) -> None:
        self._context = replace(self._context, timer=self._timer.stop())

    def _on_timer_tick(self, timer: TimerState) -> None:
        self._context = replace(self._context, timer=timer)
        self._notify()
