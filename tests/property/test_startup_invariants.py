"""
Property-Based Tests for Startup Ordering Invariants

Tests that every generated acyclic graph boots in a dependency-respecting,
complete and deterministic order, and that every cyclic graph is rejected
before any provider starts.
"""
import pytest
from hypothesis import given, settings

from module_library import CycleDependencyError, ModuleManager, ProviderState
from tests.property.strategies import acyclic_graph_strategy, cyclic_graph_strategy
from tests.support import build_boot


def boot(graph):
    catalog, configuration, journal = build_boot(graph)
    manager = ModuleManager("Property Server", catalog)
    manager.init(configuration)
    return manager, journal


@pytest.mark.property
class TestStartupOrderInvariants:
    """Property-based tests for the startup sequence."""

    @given(acyclic_graph_strategy())
    @settings(max_examples=100, deadline=None)
    def test_required_modules_start_first(self, graph):
        """Every provider starts after all modules it requires."""
        _, journal = boot(graph)
        started = journal.modules("start")

        for module_name, required in graph.items():
            for dependency in required:
                assert started.index(dependency) < started.index(module_name)

    @given(acyclic_graph_strategy())
    @settings(max_examples=100, deadline=None)
    def test_sequence_is_complete(self, graph):
        """Every loaded module appears exactly once in the sequence."""
        manager, journal = boot(graph)

        sequence = [p.module_name for p in manager.startup_sequence]
        assert sorted(sequence) == sorted(graph)
        assert len(set(sequence)) == len(sequence)
        assert journal.modules("start") == sequence

    @given(acyclic_graph_strategy())
    @settings(max_examples=50, deadline=None)
    def test_sequence_is_deterministic(self, graph):
        """The same configuration always yields the same order."""
        first, _ = boot(graph)
        second, _ = boot(graph)

        assert [p.module_name for p in first.startup_sequence] == [
            p.module_name for p in second.startup_sequence
        ]

    @given(acyclic_graph_strategy())
    @settings(max_examples=50, deadline=None)
    def test_completion_follows_every_start(self, graph):
        """No provider is notified before all providers started."""
        manager, journal = boot(graph)

        kinds = [event for event, _ in journal.events if event != "prepare"]
        count = len(graph)
        assert kinds == ["start"] * count + ["completed"] * count
        assert all(p.state is ProviderState.COMPLETED for p in manager.startup_sequence)

    @given(cyclic_graph_strategy())
    @settings(max_examples=100, deadline=None)
    def test_cycles_rejected_before_start(self, cyclic):
        """A cyclic graph fails with no provider started and names the loop."""
        graph, members = cyclic
        catalog, configuration, journal = build_boot(graph)

        with pytest.raises(CycleDependencyError) as exc_info:
            ModuleManager("Property Server", catalog).init(configuration)

        assert journal.modules("start") == []
        assert exc_info.value.unplaced
        for module_name in members:
            assert f"\n{module_name}[provider=" in exc_info.value.message
