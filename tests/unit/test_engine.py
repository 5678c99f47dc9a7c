"""Tests for the execution engine."""
import asyncio

import pytest

from teamflow.configuration import AgentType
from teamflow.errors import (
    CapabilityError,
    EmptyWorkflowError,
    InvalidRunStateError,
    RunAlreadyInProgressError,
)
from teamflow.runtime import (
    SYSTEM_LABEL,
    CapabilityRegistry,
    EventKind,
    ExecutionEngine,
    NodeRunStatus,
    RunState,
    Transcript,
)
from teamflow.workflow import WorkflowGraph


class RecordingRegistry(CapabilityRegistry):
    """Registry that records each invocation."""

    def __init__(self, handlers=None):
        super().__init__(handlers)
        self.calls = []

    async def invoke(self, agent_type, configuration, predecessor_outputs):
        self.calls.append((AgentType(agent_type), dict(predecessor_outputs)))
        return await super().invoke(agent_type, configuration, predecessor_outputs)


def _echo(name):
    async def handler(configuration, predecessor_outputs):
        return f"{name} done"
    return handler


def _all_echo():
    return RecordingRegistry({agent_type: _echo(agent_type.value) for agent_type in AgentType})


class TestActivation:
    """Test activation guards and the happy path."""

    @pytest.mark.asyncio
    async def test_chain_runs_in_order(self, chain_graph):
        """Test that a chain produces its messages in topological order."""
        registry = _all_echo()
        engine = ExecutionEngine(chain_graph, registry)

        result = await engine.activate()

        assert engine.state == RunState.COMPLETED
        assert result.state == RunState.COMPLETED
        assert result.is_success
        assert result.outputs == {
            "strategy": "strategy done",
            "writer": "copywriting done",
            "seo": "seo done",
        }

        events = list(engine.transcript.snapshot())
        assert [e.kind for e in events] == [
            EventKind.SYSTEM,
            EventKind.MESSAGE,
            EventKind.MESSAGE,
            EventKind.MESSAGE,
            EventKind.SYSTEM,
        ]
        assert events[0].content == 'Initializing AI team for project "Launch"...'
        assert [e.agent_label for e in events[1:4]] == [
            "Strategy Director",
            "Content Writer",
            "SEO Specialist",
        ]
        assert [e.sequence for e in events] == [0, 1, 2, 3, 4]
        assert {e.run_id for e in events} == {result.run_id}
        assert events[-1].content == "Run completed: 3 succeeded, 0 failed, 0 skipped."

    @pytest.mark.asyncio
    async def test_predecessor_outputs_passed(self, chain_graph):
        """Test that each node receives only its direct predecessors' outputs."""
        registry = _all_echo()
        engine = ExecutionEngine(chain_graph, registry)

        await engine.run()

        assert registry.calls == [
            (AgentType.STRATEGY, {}),
            (AgentType.COPYWRITING, {"strategy": "strategy done"}),
            (AgentType.SEO, {"writer": "copywriting done"}),
        ]

    @pytest.mark.asyncio
    async def test_empty_workflow_rejected(self):
        """Test that a workflow with no nodes cannot be activated."""
        engine = ExecutionEngine(WorkflowGraph(name="Empty"), _all_echo())

        with pytest.raises(EmptyWorkflowError):
            engine.activate()

        assert engine.state == RunState.IDLE
        assert len(engine.transcript) == 0

    @pytest.mark.asyncio
    async def test_second_activation_rejected_while_running(self, chain_graph):
        """Test that only one run may be in progress."""
        release = asyncio.Event()

        async def slow(configuration, predecessor_outputs):
            await release.wait()
            return "plan"

        registry = _all_echo()
        registry.register(AgentType.STRATEGY, slow)
        engine = ExecutionEngine(chain_graph, registry)

        task = engine.activate()
        await asyncio.sleep(0)
        events_before = len(engine.transcript)

        with pytest.raises(RunAlreadyInProgressError):
            engine.activate()

        assert len(engine.transcript) == events_before
        release.set()
        result = await task
        assert result.state == RunState.COMPLETED

    @pytest.mark.asyncio
    async def test_reactivate_after_completion(self, chain_graph):
        """Test that a new run replaces the previous run's transcript."""
        engine = ExecutionEngine(chain_graph, _all_echo())

        first = await engine.run()
        second = await engine.run()

        assert first.run_id != second.run_id
        assert len(engine.transcript) == 5
        assert {e.run_id for e in engine.transcript} == {second.run_id}

    @pytest.mark.asyncio
    async def test_independent_nodes_run_in_insertion_order(self, make_node):
        """Test that nodes without edges run one at a time in insertion order."""
        graph = WorkflowGraph(name="Parallel")
        graph.add_node(make_node("mail", AgentType.EMAIL, "Email"))
        graph.add_node(make_node("ads", AgentType.ADS, "Ads"))
        graph.add_node(make_node("posts", AgentType.SOCIAL, "Social"))
        registry = _all_echo()

        result = await ExecutionEngine(graph, registry).run()

        assert [call[0] for call in registry.calls] == [
            AgentType.EMAIL,
            AgentType.ADS,
            AgentType.SOCIAL,
        ]
        assert list(result.outputs) == ["mail", "ads", "posts"]

    @pytest.mark.asyncio
    async def test_graph_edits_do_not_affect_running_run(self, chain_graph):
        """Test that a run works from the graph as it was at activation."""
        release = asyncio.Event()

        async def slow(configuration, predecessor_outputs):
            await release.wait()
            return "plan"

        registry = _all_echo()
        registry.register(AgentType.STRATEGY, slow)
        engine = ExecutionEngine(chain_graph, registry)

        task = engine.activate()
        await asyncio.sleep(0)
        chain_graph.remove_node("seo")
        release.set()
        result = await task

        assert result.node_statuses["seo"] == NodeRunStatus.SUCCEEDED
        assert "seo" not in chain_graph


class TestFailures:
    """Test failure handling and skip propagation."""

    @pytest.fixture
    def graph(self, make_node):
        graph = WorkflowGraph(name="Campaign")
        graph.add_node(make_node("plan", AgentType.STRATEGY, "Strategy Director"))
        graph.add_node(make_node("draft", AgentType.COPYWRITING, "Copywriter"))
        graph.add_node(make_node("optimise", AgentType.SEO, "SEO Expert"))
        graph.add_node(make_node("posts", AgentType.SOCIAL, "Community Manager"))
        graph.connect("plan", "draft")
        graph.connect("draft", "optimise")
        return graph

    @pytest.mark.asyncio
    async def test_dependents_of_failed_node_are_skipped(self, graph):
        """Test that a failure skips every transitive dependent exactly once."""
        async def fail(configuration, predecessor_outputs):
            raise CapabilityError("model unavailable")

        registry = _all_echo()
        registry.register(AgentType.STRATEGY, fail)
        engine = ExecutionEngine(graph, registry)

        result = await engine.run()

        assert engine.state == RunState.COMPLETED
        assert result.failed == ["plan"]
        assert result.skipped == ["draft", "optimise"]
        assert result.succeeded == ["posts"]
        assert result.errors == {"plan": "model unavailable"}
        assert not result.is_success
        assert [call[0] for call in registry.calls] == [AgentType.STRATEGY, AgentType.SOCIAL]

        events = list(engine.transcript.snapshot())
        contents = [e.content for e in events]
        assert contents[1] == "Strategy Director failed: model unavailable"
        assert contents[2] == "Copywriter skipped: depends on Strategy Director, which did not complete."
        assert contents[3] == "SEO Expert skipped: depends on Copywriter, which did not complete."
        assert contents[4] == "social done"
        assert contents[5] == "Run completed: 1 succeeded, 1 failed, 2 skipped."

        skip_events = [e for e in events if "skipped:" in e.content]
        assert [e.node_id for e in skip_events] == ["draft", "optimise"]
        assert all(e.kind == EventKind.SYSTEM for e in skip_events)
        assert all(e.agent_label == SYSTEM_LABEL for e in skip_events)

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_node_failure(self, graph):
        """Test that any handler exception is recorded as a failure."""
        async def crash(configuration, predecessor_outputs):
            raise RuntimeError("boom")

        registry = _all_echo()
        registry.register(AgentType.SOCIAL, crash)

        result = await ExecutionEngine(graph, registry).run()

        assert result.failed == ["posts"]
        assert result.errors["posts"] == "RuntimeError: boom"
        assert result.succeeded == ["plan", "draft", "optimise"]

    @pytest.mark.asyncio
    async def test_timeout_is_node_failure(self, graph):
        """Test that a node exceeding its timeout fails without retry."""
        async def hang(configuration, predecessor_outputs):
            await asyncio.sleep(10)
            return "late"

        registry = _all_echo()
        registry.register(AgentType.SEO, hang)

        result = await ExecutionEngine(graph, registry, node_timeout=0.05).run()

        assert result.failed == ["optimise"]
        assert "timed out" in result.errors["optimise"]
        assert [c[0] for c in registry.calls].count(AgentType.SEO) == 1


class TestReset:
    """Test resetting runs."""

    @pytest.mark.asyncio
    async def test_reset_after_completion(self, chain_graph):
        """Test that reset clears the transcript and outputs but not the graph."""
        engine = ExecutionEngine(chain_graph, _all_echo())
        await engine.run()

        engine.reset()

        assert engine.state == RunState.IDLE
        assert len(engine.transcript) == 0
        assert dict(engine.outputs) == {}
        assert engine.run_id is None
        assert len(chain_graph) == 3

    def test_reset_from_idle_rejected(self, chain_graph):
        """Test that there is nothing to reset before a run."""
        engine = ExecutionEngine(chain_graph, _all_echo())

        with pytest.raises(InvalidRunStateError):
            engine.reset()

    @pytest.mark.asyncio
    async def test_reset_cancels_inflight_invocation(self, chain_graph):
        """Test that reset cancels the pending call and discards the run."""
        started = asyncio.Event()
        cancelled = asyncio.Event()

        async def slow(configuration, predecessor_outputs):
            started.set()
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return "late"

        registry = _all_echo()
        registry.register(AgentType.COPYWRITING, slow)
        engine = ExecutionEngine(chain_graph, registry)
        seen = []
        engine.transcript.subscribe(seen.append)

        task = engine.activate()
        await started.wait()
        engine.reset()
        result = await task

        assert result.cancelled
        assert cancelled.is_set()
        assert engine.state == RunState.IDLE
        assert len(engine.transcript) == 0
        assert [c[0] for c in registry.calls] == [AgentType.STRATEGY, AgentType.COPYWRITING]
        # start event and the strategy message only
        assert len(seen) == 2

    @pytest.mark.asyncio
    async def test_run_after_reset(self, chain_graph):
        """Test that the engine can run again after a reset."""
        engine = ExecutionEngine(chain_graph, _all_echo(), transcript=Transcript())
        await engine.run()
        engine.reset()

        result = await engine.run()

        assert result.is_success
        assert engine.state == RunState.COMPLETED

    @pytest.mark.asyncio
    async def test_cancelled_task_completes_run(self, chain_graph):
        """Test that cancelling the run task directly leaves the engine reusable."""
        started = asyncio.Event()

        async def slow(configuration, predecessor_outputs):
            started.set()
            await asyncio.sleep(10)
            return "late"

        registry = _all_echo()
        registry.register(AgentType.COPYWRITING, slow)
        engine = ExecutionEngine(chain_graph, registry)

        task = engine.activate()
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await asyncio.sleep(0)

        assert engine.state == RunState.COMPLETED
        assert engine.node_statuses["writer"] == NodeRunStatus.FAILED
        assert engine.node_statuses["seo"] == NodeRunStatus.PENDING
        assert engine.transcript.snapshot()[-1].content == "Run cancelled."

        registry.register(AgentType.COPYWRITING, _echo("copywriting"))
        result = await engine.run()
        assert result.is_success

    @pytest.mark.asyncio
    async def test_task_cancelled_before_start(self, chain_graph):
        """Test cancelling the task before it gets to run."""
        engine = ExecutionEngine(chain_graph, _all_echo())

        task = engine.activate()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await asyncio.sleep(0)

        assert engine.state == RunState.COMPLETED
        engine.reset()
        assert engine.state == RunState.IDLE
