"""
Scout Pool Tests

Tests for concurrent scout execution, dead ends, failure isolation and deadlines.
"""

import asyncio

import pytest

from src.config.loader import ScoutConfig
from src.document_store import DocumentStoreError, InMemoryDocumentStore, StoredDocument
from src.orchestration import (
    DeploymentPlan,
    Finding,
    FindingType,
    Query,
    ScoutDeploymentError,
    ScoutKind,
    ScoutPool,
    ScoutStatus,
    StrategyRegistry,
)

QUERY = Query("TechCorp acquisition")


class ScriptedStrategy:
    """Strategy whose patterns and outcomes are fixed up front."""

    def __init__(
        self,
        kind: ScoutKind,
        patterns: list[str],
        leads: set[str] | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ):
        self.kind = kind
        self.patterns = patterns
        self.leads = leads if leads is not None else set(patterns)
        self.error = error
        self.delay = delay
        self.calls: list[str] = []
        self.cancelled = 0
        self.active = 0
        self.max_active = 0

    def derive_patterns(self, query, variant=0):
        return list(self.patterns)

    async def produce_findings(self, query, pattern, store, limit=50):
        self.calls.append(pattern)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            else:
                await asyncio.sleep(0)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self.active -= 1

        if self.error is not None:
            raise self.error
        if pattern not in self.leads:
            return []
        return [
            Finding(
                document_id=f"doc-{pattern}",
                finding_type=FindingType.DIRECT_MATCH,
                confidence=0.8,
                excerpt=f"{pattern} excerpt",
                metadata={"scout": self.kind.value, "pattern": pattern},
            )
        ]


class BrokenStrategy:
    kind = ScoutKind.PATTERN_DETECTOR

    def derive_patterns(self, query, variant=0):
        raise RuntimeError("cannot derive")

    async def produce_findings(self, query, pattern, store, limit=50):
        return []


def make_plan(*kinds: ScoutKind) -> DeploymentPlan:
    return DeploymentPlan(worker_kinds=kinds, target_clusters=1, dead_end_allowance=0)


def run(pool: ScoutPool, plan: DeploymentPlan, deadline_ms=None):
    return asyncio.run(pool.run(QUERY, plan, deadline_ms=deadline_ms))


def test_leads_and_dead_ends():
    """Test patterns with findings are leads and empty patterns are dead ends."""
    print("=" * 60)
    print("TEST 1: Leads and dead ends")
    print("=" * 60)

    strategy = ScriptedStrategy(
        ScoutKind.KEYWORD_HUNTER, ["techcorp", "acquisition", "zebra"], leads={"techcorp", "acquisition"}
    )
    pool = ScoutPool(InMemoryDocumentStore(), StrategyRegistry([strategy]))
    result = run(pool, make_plan(ScoutKind.KEYWORD_HUNTER))

    worker = result.workers[0]
    print(f"\nWorker {worker.id}: {worker.status.value}, {len(worker.findings)} findings")

    assert worker.id == "keyword_hunter-0"
    assert worker.status == ScoutStatus.COMPLETED
    assert len(worker.findings) == 2
    assert worker.dead_end_count == 1
    assert worker.dead_end_patterns == ["zebra"]
    assert worker.patterns_completed == 3
    assert result.dead_ends == 1
    assert result.timed_out is False
    print("\n[PASS] One dead end, two leads")


def test_scout_failing_every_pattern():
    """Test a scout whose store calls all raise ends Failed with no findings."""
    print("\n" + "=" * 60)
    print("TEST 2: Scout failing on every pattern")
    print("=" * 60)

    failing = ScriptedStrategy(
        ScoutKind.KEYWORD_HUNTER,
        ["one", "two", "three"],
        error=DocumentStoreError("store offline"),
    )
    healthy = ScriptedStrategy(ScoutKind.ENTITY_EXTRACTOR, ["techcorp"])
    pool = ScoutPool(InMemoryDocumentStore(), StrategyRegistry([failing, healthy]))

    result = run(pool, make_plan(ScoutKind.KEYWORD_HUNTER, ScoutKind.ENTITY_EXTRACTOR))
    by_kind = {w.kind: w for w in result.workers}

    broken = by_kind[ScoutKind.KEYWORD_HUNTER]
    assert broken.status == ScoutStatus.FAILED
    assert broken.dead_end_count == 3
    assert broken.findings == []
    assert broken.error_count == 3

    # Failure is isolated to the one scout
    assert by_kind[ScoutKind.ENTITY_EXTRACTOR].status == ScoutStatus.COMPLETED
    assert len(result.findings) == 1
    assert [w.id for w in result.failed] == [broken.id]
    print("\n[PASS] Failed scout charged one dead end per pattern")


def test_partial_failure_keeps_scout_completed():
    strategy = ScriptedStrategy(ScoutKind.KEYWORD_HUNTER, ["good", "bad"])

    async def produce(query, pattern, store, limit=50):
        if pattern == "bad":
            raise DocumentStoreError("timeout")
        return await ScriptedStrategy.produce_findings(strategy, query, pattern, store, limit)

    strategy.produce_findings = produce
    pool = ScoutPool(InMemoryDocumentStore(), StrategyRegistry([strategy]))
    worker = run(pool, make_plan(ScoutKind.KEYWORD_HUNTER)).workers[0]

    assert worker.status == ScoutStatus.COMPLETED
    assert worker.dead_end_count == 1
    assert worker.error_count == 1
    assert len(worker.findings) == 1


def test_deadline_returns_partial_results():
    """Test scouts still running at the deadline are cancelled and failed."""
    print("\n" + "=" * 60)
    print("TEST 3: Deadline")
    print("=" * 60)

    fast = ScriptedStrategy(ScoutKind.KEYWORD_HUNTER, ["techcorp"])
    slow = ScriptedStrategy(ScoutKind.TIMELINE_BUILDER, ["march", "april"], delay=5.0)
    pool = ScoutPool(InMemoryDocumentStore(), StrategyRegistry([fast, slow]))

    result = run(pool, make_plan(ScoutKind.KEYWORD_HUNTER, ScoutKind.TIMELINE_BUILDER), deadline_ms=100)
    by_kind = {w.kind: w for w in result.workers}

    assert result.timed_out is True
    assert by_kind[ScoutKind.KEYWORD_HUNTER].status == ScoutStatus.COMPLETED
    assert len(by_kind[ScoutKind.KEYWORD_HUNTER].findings) == 1

    late = by_kind[ScoutKind.TIMELINE_BUILDER]
    assert late.status == ScoutStatus.FAILED
    assert late.findings == []
    assert late.dead_end_count == 2
    assert "timed out before reporting" in late.errors
    # The in-flight store call was cancelled, not left running
    assert slow.cancelled == 1
    assert slow.calls == ["march"]
    print("\n[PASS] Partial result with the slow scout failed")


def test_no_deadline_waits_for_every_scout():
    slow = ScriptedStrategy(ScoutKind.KEYWORD_HUNTER, ["techcorp"], delay=0.05)
    pool = ScoutPool(InMemoryDocumentStore(), StrategyRegistry([slow]))
    result = run(pool, make_plan(ScoutKind.KEYWORD_HUNTER), deadline_ms=None)
    assert result.timed_out is False
    assert result.workers[0].status == ScoutStatus.COMPLETED


def test_no_scout_can_start():
    """Test deployment fails only when nothing at all can start."""
    with pytest.raises(ScoutDeploymentError) as excinfo:
        run(ScoutPool(InMemoryDocumentStore(), StrategyRegistry()), make_plan(ScoutKind.KEYWORD_HUNTER))
    assert excinfo.value.failures

    registry = StrategyRegistry([BrokenStrategy()])
    with pytest.raises(ScoutDeploymentError):
        run(ScoutPool(InMemoryDocumentStore(), registry), make_plan(ScoutKind.PATTERN_DETECTOR))


def test_startup_failure_is_isolated():
    healthy = ScriptedStrategy(ScoutKind.KEYWORD_HUNTER, ["techcorp"])
    registry = StrategyRegistry([healthy, BrokenStrategy()])
    pool = ScoutPool(InMemoryDocumentStore(), registry)

    result = run(
        pool,
        make_plan(ScoutKind.KEYWORD_HUNTER, ScoutKind.PATTERN_DETECTOR, ScoutKind.ANOMALY_SPOTTER),
    )
    statuses = {w.kind: w.status for w in result.workers}

    assert statuses[ScoutKind.KEYWORD_HUNTER] == ScoutStatus.COMPLETED
    assert statuses[ScoutKind.PATTERN_DETECTOR] == ScoutStatus.FAILED
    assert statuses[ScoutKind.ANOMALY_SPOTTER] == ScoutStatus.FAILED
    assert len(result.workers) == 3
    assert all(w.status.is_terminal for w in result.workers)


def test_same_kind_scouts_get_distinct_variants():
    pool = ScoutPool(InMemoryDocumentStore())
    deployed = pool.deploy(
        Query("Who negotiated the TechCorp acquisition?"),
        make_plan(ScoutKind.KEYWORD_HUNTER, ScoutKind.ENTITY_EXTRACTOR, ScoutKind.KEYWORD_HUNTER),
    )
    workers = [w for w, _ in deployed]

    assert [w.id for w in workers] == [
        "keyword_hunter-0",
        "entity_extractor-1",
        "keyword_hunter-2",
    ]
    assert [w.variant for w in workers] == [0, 0, 1]
    assert workers[0].search_patterns != workers[2].search_patterns


def test_concurrency_limit():
    strategy = ScriptedStrategy(ScoutKind.KEYWORD_HUNTER, ["techcorp"], delay=0.02)
    pool = ScoutPool(
        InMemoryDocumentStore(),
        StrategyRegistry([strategy]),
        ScoutConfig(max_concurrent_scouts=1),
    )
    result = run(pool, make_plan(*[ScoutKind.KEYWORD_HUNTER] * 4))

    assert len(result.workers) == 4
    assert strategy.max_active == 1
    assert all(w.status == ScoutStatus.COMPLETED for w in result.workers)


def test_builtin_strategies_against_memory_store():
    """Test the default registry end to end over a small corpus."""
    print("\n" + "=" * 60)
    print("TEST 4: Built-in strategies")
    print("=" * 60)

    store = InMemoryDocumentStore([
        StoredDocument(
            id="memo-1",
            text="Jane Doe negotiated the TechCorp acquisition with Globex Corp on March 3, 2023.",
        ),
        StoredDocument(id="memo-2", text="The cafeteria menu changed."),
    ])
    pool = ScoutPool(store)
    result = run(
        pool,
        make_plan(ScoutKind.KEYWORD_HUNTER, ScoutKind.ENTITY_EXTRACTOR, ScoutKind.RELATIONSHIP_MAPPER),
    )

    documents = {f.document_id for f in result.findings}
    print(f"\nFindings: {len(result.findings)} across {sorted(documents)}")

    assert documents == {"memo-1"}
    assert all(w.status == ScoutStatus.COMPLETED for w in result.workers)
    kinds_with_findings = {f.scout for f in result.findings}
    assert kinds_with_findings == {"keyword_hunter", "entity_extractor", "relationship_mapper"}
    print("\n[PASS] Every scout reported from the matching memo")


def main():
    """Run all tests."""
    test_leads_and_dead_ends()
    test_scout_failing_every_pattern()
    test_partial_failure_keeps_scout_completed()
    test_deadline_returns_partial_results()
    test_no_deadline_waits_for_every_scout()
    test_no_scout_can_start()
    test_startup_failure_is_isolated()
    test_same_kind_scouts_get_distinct_variants()
    test_concurrency_limit()
    test_builtin_strategies_against_memory_store()
    print("\n" + "=" * 60)
    print("ALL SCOUT POOL TESTS PASSED")
    print("=" * 60)


if __name__ == "__main__":
    main()
