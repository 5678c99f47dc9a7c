"""
Execution Engine - Runs a workflow graph as an ordered sequence of agent
invocations.

One run at a time per engine. A run works from a snapshot of the graph taken
at activation, awaits each node's capability in topological order, and
appends progress to the transcript. Node failures never abort a run: the
failed node's dependents are skipped and the run still completes.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

from teamflow.config import Settings, get_settings
from teamflow.configuration.models import describe_configuration
from teamflow.errors import (
    CapabilityError,
    EmptyWorkflowError,
    InvalidRunStateError,
    RunAlreadyInProgressError,
)
from teamflow.identifiers import generate_event_id, generate_run_id, utc_now
from teamflow.observability import get_logger, with_run_context
from teamflow.workflow.graph import GraphSnapshot, WorkflowGraph
from teamflow.workflow.models import Node

from .capability import CapabilityInvoker
from .transcript import SYSTEM_LABEL, EventKind, RunEvent, Transcript


logger = get_logger(__name__)


class RunState(str, Enum):
    """Lifecycle state of the engine's current run."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    RESET = "reset"


class NodeRunStatus(str, Enum):
    """Status of a node during a run."""
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


# Transitions allowed by the run state machine
_TRANSITIONS: Dict[RunState, frozenset] = {
    RunState.IDLE: frozenset({RunState.RUNNING}),
    RunState.RUNNING: frozenset({RunState.COMPLETED, RunState.RESET}),
    RunState.COMPLETED: frozenset({RunState.RUNNING, RunState.RESET}),
    RunState.RESET: frozenset({RunState.IDLE}),
}


@dataclass
class RunResult:
    """
    Outcome of one run.
    """
    run_id: str
    workflow_id: str
    state: RunState
    node_statuses: Dict[str, NodeRunStatus] = field(default_factory=dict)
    outputs: Dict[str, str] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)
    cancelled: bool = False
    duration_ms: float = 0

    def _with_status(self, status: NodeRunStatus) -> List[str]:
        return [n for n, s in self.node_statuses.items() if s == status]

    @property
    def succeeded(self) -> List[str]:
        return self._with_status(NodeRunStatus.SUCCEEDED)

    @property
    def failed(self) -> List[str]:
        return self._with_status(NodeRunStatus.FAILED)

    @property
    def skipped(self) -> List[str]:
        return self._with_status(NodeRunStatus.SKIPPED)

    @property
    def is_success(self) -> bool:
        return not self.cancelled and not self.failed and not self.skipped


@dataclass
class _Run:
    """Mutable state of a single run, dropped on reset."""
    run_id: str
    snapshot: GraphSnapshot
    order: List[str]
    statuses: Dict[str, NodeRunStatus]
    outputs: Dict[str, str] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)
    inflight: Optional[asyncio.Future] = None
    task: Optional[asyncio.Task] = None
    sequence: int = 0
    started_at: float = field(default_factory=time.perf_counter)


class ExecutionEngine:
    """
    Runs a workflow graph and reports progress as run events.

    The graph is only read, never mutated. Edits made while a run is in
    progress take effect on the next run.

    Usage:
        engine = ExecutionEngine(graph, invoker=registry)
        engine.transcript.subscribe(render_event)
        result = await engine.activate()
    """

    def __init__(
        self,
        graph: WorkflowGraph,
        invoker: CapabilityInvoker,
        transcript: Optional[Transcript] = None,
        node_timeout: Optional[float] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize engine.

        Args:
            graph: Workflow graph to run
            invoker: Capability backend used for every node
            transcript: Transcript to append events to (a new one if omitted)
            node_timeout: Per-node timeout in seconds; defaults to settings,
                where 0 disables it
            settings: Settings override
        """
        settings = settings or get_settings()
        self._graph = graph
        self._invoker = invoker
        self._transcript = transcript if transcript is not None else Transcript()
        self._node_timeout = node_timeout if node_timeout is not None else settings.node_timeout
        self._state = RunState.IDLE
        self._run: Optional[_Run] = None

    # --- Public state --------------------------------------------------------

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def transcript(self) -> Transcript:
        return self._transcript

    @property
    def graph(self) -> WorkflowGraph:
        return self._graph

    @property
    def run_id(self) -> Optional[str]:
        """Id of the current (or last completed) run."""
        return self._run.run_id if self._run else None

    @property
    def outputs(self) -> Mapping[str, str]:
        """Outputs recorded so far, keyed by node id."""
        return MappingProxyType(dict(self._run.outputs) if self._run else {})

    @property
    def node_statuses(self) -> Mapping[str, NodeRunStatus]:
        return MappingProxyType(dict(self._run.statuses) if self._run else {})

    # --- Lifecycle -----------------------------------------------------------

    def activate(self) -> "asyncio.Task[RunResult]":
        """
        Start a run.

        Must be called from a running event loop. Validation happens before
        any state change, so a rejected activation leaves the engine and its
        transcript exactly as they were.

        Returns:
            Task resolving to the RunResult

        Raises:
            RunAlreadyInProgressError: If a run is in progress
            EmptyWorkflowError: If the graph has no nodes
            CyclicGraphError: If the graph contains a cycle
        """
        if self._state == RunState.RUNNING and self._run is not None:
            raise RunAlreadyInProgressError(self._run.run_id)

        snapshot = self._graph.snapshot()
        if len(snapshot) == 0:
            raise EmptyWorkflowError(snapshot.name)
        order = snapshot.topological_order()
        loop = asyncio.get_running_loop()

        run = _Run(
            run_id=generate_run_id(),
            snapshot=snapshot,
            order=order,
            statuses={node_id: NodeRunStatus.PENDING for node_id in order},
        )
        self._transcript.clear()
        self._run = run
        self._transition(RunState.RUNNING)

        logger.info(
            f"Run started with {len(order)} nodes",
            extra=with_run_context(workflow_id=snapshot.workflow_id, run_id=run.run_id),
        )
        self._emit(run, EventKind.SYSTEM, f'Initializing AI team for project "{snapshot.name}"...')

        run.task = loop.create_task(self._walk(run))
        run.task.add_done_callback(lambda task: self._on_task_done(run, task))
        return run.task

    async def run(self) -> RunResult:
        """Activate and wait for the run to finish."""
        return await self.activate()

    def reset(self) -> None:
        """
        Abort or clear the current run and return to idle.

        Clears the transcript and recorded outputs. An outstanding capability
        call is cancelled and its result discarded; no further events are
        appended for that run. The graph is not touched.

        Raises:
            InvalidRunStateError: If no run is in progress or completed
        """
        if self._state not in (RunState.RUNNING, RunState.COMPLETED):
            raise InvalidRunStateError("reset", self._state.value)

        run, self._run = self._run, None
        if run is not None and run.inflight is not None and not run.inflight.done():
            run.inflight.cancel()

        self._transition(RunState.RESET)
        self._transcript.clear()
        self._transition(RunState.IDLE)
        logger.info(
            "Run reset",
            extra=with_run_context(
                workflow_id=self._graph.id, run_id=run.run_id if run else None
            ),
        )

    # --- Run loop ------------------------------------------------------------

    async def _walk(self, run: _Run) -> RunResult:
        snapshot = run.snapshot

        for node_id in run.order:
            if not self._is_current(run):
                return self._result(run, cancelled=True)

            node = snapshot.nodes[node_id]
            predecessors = snapshot.predecessors(node_id)
            blocked = [
                p for p in predecessors
                if run.statuses[p] in (NodeRunStatus.FAILED, NodeRunStatus.SKIPPED)
            ]
            if blocked:
                self._skip(run, node, blocked)
                continue

            run.statuses[node_id] = NodeRunStatus.RUNNING
            context = {p: run.outputs[p] for p in predecessors}
            extra = with_run_context(
                workflow_id=snapshot.workflow_id,
                run_id=run.run_id,
                node_id=node_id,
                agent_type=node.agent_type.value,
            )
            logger.debug(f"Invoking {describe_configuration(node.configuration)}", extra=extra)

            try:
                output = await self._invoke(run, node, context)
            except asyncio.CancelledError:
                if not self._is_current(run):
                    return self._result(run, cancelled=True)
                raise
            except asyncio.TimeoutError:
                self._fail(run, node, f"timed out after {self._node_timeout:g}s", extra)
                continue
            except CapabilityError as e:
                self._fail(run, node, e.reason, extra)
                continue
            except Exception as e:
                self._fail(run, node, f"{type(e).__name__}: {e}", extra)
                continue

            if not self._is_current(run):
                return self._result(run, cancelled=True)

            if not isinstance(output, str):
                output = str(output)
            run.outputs[node_id] = output
            run.statuses[node_id] = NodeRunStatus.SUCCEEDED
            self._emit(run, EventKind.MESSAGE, output, node_id=node_id, agent_label=node.label)
            logger.debug("Node succeeded", extra=extra)

        result = self._result(run)
        self._transition(RunState.COMPLETED)
        self._emit(
            run,
            EventKind.SYSTEM,
            f"Run completed: {len(result.succeeded)} succeeded, "
            f"{len(result.failed)} failed, {len(result.skipped)} skipped.",
        )
        result.state = RunState.COMPLETED
        logger.info(
            f"Run completed in {result.duration_ms:.0f}ms",
            extra=with_run_context(workflow_id=snapshot.workflow_id, run_id=run.run_id),
        )
        return result

    async def _invoke(self, run: _Run, node: Node, context: Dict[str, str]) -> str:
        """Invoke one node's capability, honouring the per-node timeout."""
        run.inflight = asyncio.ensure_future(
            self._invoker.invoke(node.agent_type, node.configuration, MappingProxyType(context))
        )
        try:
            if self._node_timeout:
                return await asyncio.wait_for(run.inflight, self._node_timeout)
            return await run.inflight
        finally:
            run.inflight = None

    def _fail(self, run: _Run, node: Node, reason: str, extra: Dict[str, object]) -> None:
        if not self._is_current(run):
            return
        run.statuses[node.id] = NodeRunStatus.FAILED
        run.errors[node.id] = reason
        logger.warning(f"Node failed: {reason}", extra=extra)
        self._emit(run, EventKind.SYSTEM, f"{node.label} failed: {reason}", node_id=node.id)

    def _on_task_done(self, run: _Run, task: "asyncio.Task[RunResult]") -> None:
        """Close out a run whose task was cancelled from outside."""
        if not task.cancelled() or not self._is_current(run):
            return
        if self._state != RunState.RUNNING:
            return

        for node_id, status in run.statuses.items():
            if status == NodeRunStatus.RUNNING:
                run.statuses[node_id] = NodeRunStatus.FAILED
                run.errors[node_id] = "cancelled"

        logger.warning(
            "Run task cancelled",
            extra=with_run_context(workflow_id=run.snapshot.workflow_id, run_id=run.run_id),
        )
        self._transition(RunState.COMPLETED)
        self._emit(run, EventKind.SYSTEM, "Run cancelled.")

    def _skip(self, run: _Run, node: Node, blocked: List[str]) -> None:
        run.statuses[node.id] = NodeRunStatus.SKIPPED
        labels = ", ".join(run.snapshot.nodes[b].label for b in blocked)
        logger.info(
            f"Node skipped, upstream did not complete: {blocked}",
            extra=with_run_context(
                workflow_id=run.snapshot.workflow_id, run_id=run.run_id, node_id=node.id
            ),
        )
        self._emit(
            run,
            EventKind.SYSTEM,
            f"{node.label} skipped: depends on {labels}, which did not complete.",
            node_id=node.id,
        )

    # --- Helpers -------------------------------------------------------------

    def _is_current(self, run: _Run) -> bool:
        return self._run is run

    def _emit(
        self,
        run: _Run,
        kind: EventKind,
        content: str,
        node_id: Optional[str] = None,
        agent_label: str = SYSTEM_LABEL,
    ) -> None:
        """Append an event for ``run`` unless the run has been reset."""
        if not self._is_current(run):
            return
        event = RunEvent(
            event_id=generate_event_id(),
            run_id=run.run_id,
            sequence=run.sequence,
            node_id=node_id,
            agent_label=agent_label,
            kind=kind,
            content=content,
            timestamp=utc_now(),
        )
        run.sequence += 1
        self._transcript.append(event)

    def _transition(self, new_state: RunState) -> None:
        if new_state not in _TRANSITIONS[self._state]:
            raise InvalidRunStateError(f"move to {new_state.value}", self._state.value)
        logger.debug(f"Run state {self._state.value} -> {new_state.value}")
        self._state = new_state

    def _result(self, run: _Run, cancelled: bool = False) -> RunResult:
        return RunResult(
            run_id=run.run_id,
            workflow_id=run.snapshot.workflow_id,
            state=RunState.RESET if cancelled else self._state,
            node_statuses=dict(run.statuses),
            outputs=dict(run.outputs),
            errors=dict(run.errors),
            cancelled=cancelled,
            duration_ms=(time.perf_counter() - run.started_at) * 1000,
        )


__all__ = [
    "ExecutionEngine",
    "NodeRunStatus",
    "RunResult",
    "RunState",
]
