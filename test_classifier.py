"""
Query Classifier Tests

Tests for intent inference, hint matching, defaults and context hints.
"""

from src.orchestration.classifier import (
    QueryClassifier,
    extract_context_hints,
    infer_intent,
    triggered_intents,
)
from src.orchestration.models import Query, QueryIntent, QueryPriority, QueryScope


def test_intent_inference_keywords():
    """Test intent inference from keyword presence."""
    print("=" * 60)
    print("TEST 1: Intent inference")
    print("=" * 60)

    cases = {
        "who signed the merger agreement": QueryIntent.ENTITY_EXTRACTION,
        "which person approved the payment": QueryIntent.ENTITY_EXTRACTION,
        "when did the board meet": QueryIntent.TIMELINE_ANALYSIS,
        "timeline of the Acme dispute": QueryIntent.TIMELINE_ANALYSIS,
        "relationship between Acme and TechCorp": QueryIntent.RELATIONSHIP_MAPPING,
        "accounts connected to the offshore entity": QueryIntent.RELATIONSHIP_MAPPING,
        "risk exposure in vendor contracts": QueryIntent.RISK_ASSESSMENT,
        "GDPR compliance gaps": QueryIntent.COMPLIANCE_AUDIT,
        "legal review of the lease": QueryIntent.COMPLIANCE_AUDIT,
        "unusual wire transfers": QueryIntent.ANOMALY_DETECTION,
        "anomaly in quarterly revenue": QueryIntent.ANOMALY_DETECTION,
        "classify these memos": QueryIntent.DOCUMENT_CLASSIFICATION,
        "category of each filing": QueryIntent.DOCUMENT_CLASSIFICATION,
        "quarterly revenue for 2023": QueryIntent.FACT_FINDING,
    }
    for text, expected in cases.items():
        assert infer_intent(text) == expected, text
    print(f"\n[PASS] {len(cases)} queries inferred correctly")


def test_intent_inference_priority_order():
    """Earlier triggers win when several are present."""
    assert infer_intent("who was connected to the risk memo") == QueryIntent.ENTITY_EXTRACTION
    assert infer_intent("when did the unusual payment happen") == QueryIntent.TIMELINE_ANALYSIS
    assert triggered_intents("who knew when") == [
        QueryIntent.ENTITY_EXTRACTION,
        QueryIntent.TIMELINE_ANALYSIS,
    ]


def test_intent_triggers_match_whole_words():
    """Trigger words inside longer words do not fire."""
    assert infer_intent("wholesale pricing") == QueryIntent.FACT_FINDING
    assert infer_intent("whenever possible") == QueryIntent.FACT_FINDING


def test_explicit_hints():
    """Test explicit hints override inference, case-insensitively."""
    print("\n" + "=" * 60)
    print("TEST 2: Explicit hints")
    print("=" * 60)

    classifier = QueryClassifier()

    query = classifier.classify(
        "who signed the contract",
        intent_hint="Timeline",
        scope_hint="EXHAUSTIVE",
        priority_hint="background",
    )
    assert query.intent == QueryIntent.TIMELINE_ANALYSIS
    assert query.scope == QueryScope.EXHAUSTIVE
    assert query.priority == QueryPriority.BACKGROUND

    query = classifier.classify("anything", intent_hint="ComplianceAudit")
    assert query.intent == QueryIntent.COMPLIANCE_AUDIT

    query = classifier.classify("anything", intent_hint="relationship_mapping")
    assert query.intent == QueryIntent.RELATIONSHIP_MAPPING
    print("\n[PASS] Hints matched case-insensitively")


def test_unknown_hints_fall_back():
    """Unmatched hints fall back to inference and defaults, never fail."""
    classifier = QueryClassifier()
    query = classifier.classify(
        "who approved the invoice",
        intent_hint="gibberish",
        scope_hint="galactic",
        priority_hint="whenever",
    )
    assert query.intent == QueryIntent.ENTITY_EXTRACTION
    assert query.scope == QueryScope.FOCUSED
    assert query.priority == QueryPriority.NORMAL


def test_defaults():
    query = QueryClassifier().classify("quarterly revenue")
    assert query.intent == QueryIntent.FACT_FINDING
    assert query.scope == QueryScope.FOCUSED
    assert query.priority == QueryPriority.NORMAL
    assert query.relationship_depth == 2
    assert query.time_budget_ms is None


def test_context_hints():
    """Test context hints default to the five longest words over four characters."""
    print("\n" + "=" * 60)
    print("TEST 3: Context hints")
    print("=" * 60)

    hints = extract_context_hints(
        "Who negotiated the TechCorp acquisition agreement with Globex during March?"
    )
    print(f"\nHints: {hints}")
    assert hints == ["acquisition", "negotiated", "agreement", "techcorp", "globex"]
    assert all(len(h) > 4 for h in hints)

    # Ties keep query order; duplicates collapse
    assert extract_context_hints("alpha bravo alpha delta") == ["alpha", "bravo", "delta"]
    assert extract_context_hints("a an the") == []

    query = QueryClassifier().classify("TechCorp acquisition", context="board minutes 2023")
    assert query.context_hints == ("board minutes 2023",)
    print("\n[PASS] Context hints derived correctly")


def test_depth_and_time_limit():
    classifier = QueryClassifier()

    query = classifier.classify("TechCorp", relationship_depth=4, time_limit_ms=250)
    assert query.relationship_depth == 4
    assert query.time_budget_ms == 250

    # Out-of-range values fall back to defaults rather than failing
    query = classifier.classify("TechCorp", relationship_depth=-1, time_limit_ms=0)
    assert query.relationship_depth == 2
    assert query.time_budget_ms is None

    # Very deep traversals are capped
    assert classifier.classify("TechCorp", relationship_depth=500).relationship_depth == 10
    try:
        Query("TechCorp", relationship_depth=11)
    except ValueError:
        pass
    else:
        raise AssertionError("Depth above the cap should be rejected")


def test_query_is_immutable():
    query = QueryClassifier().classify("TechCorp")
    try:
        query.scope = QueryScope.BROAD
    except AttributeError:
        pass
    else:
        raise AssertionError("Query should be frozen")


def main():
    """Run all tests."""
    test_intent_inference_keywords()
    test_intent_inference_priority_order()
    test_intent_triggers_match_whole_words()
    test_explicit_hints()
    test_unknown_hints_fall_back()
    test_defaults()
    test_context_hints()
    test_depth_and_time_limit()
    test_query_is_immutable()
    print("\n" + "=" * 60)
    print("ALL CLASSIFIER TESTS PASSED")
    print("=" * 60)


if __name__ == "__main__":
    main()
