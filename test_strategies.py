"""
Scout Strategy Tests

Tests for pattern derivation and finding production of each built-in strategy.
"""

import asyncio

import pytest

from src.document_store import InMemoryDocumentStore, StoredDocument, StoreHit
from src.orchestration.extraction import extract_entities, parse_date
from src.orchestration.models import EntityType, FindingType, Query, ScoutKind
from src.orchestration.protocols import ScoutStrategy
from src.orchestration.strategies import (
    AnomalySpotter,
    ComplianceChecker,
    EntityExtractor,
    KeywordHunter,
    PatternDetector,
    RelationshipMapper,
    SentimentAnalyzer,
    StrategyRegistry,
    TimelineBuilder,
)

QUERY = Query("Who negotiated the TechCorp acquisition with Globex")


def hit(document_id: str, text: str, score: float = 0.8) -> StoreHit:
    return StoreHit(document_id=document_id, excerpt=text, context=text, relevance_score=score)


def test_keyword_hunter_variants():
    """Test each KeywordHunter variant searches a different pattern set."""
    print("=" * 60)
    print("TEST 1: KeywordHunter variants")
    print("=" * 60)

    hunter = KeywordHunter()
    query = Query("Who negotiated the TechCorp acquisition?")

    assert hunter.derive_patterns(query, 0) == ["negotiated", "techcorp", "acquisition"]
    assert hunter.derive_patterns(query, 1) == [
        "negotiated techcorp",
        "techcorp acquisition",
    ]
    # No context hints on this query, so variant 2 falls back to keywords
    assert hunter.derive_patterns(query, 2) == ["negotiated", "techcorp", "acquisition"]
    assert hunter.derive_patterns(query, 3) == ["Who negotiated the TechCorp acquisition?"]

    hinted = Query("TechCorp deal", context_hints=("board minutes",))
    assert hunter.derive_patterns(hinted, 2) == ["board minutes"]

    # Nothing longer than three characters: every variant uses the whole query
    short = Query("who is Bob")
    assert hunter.derive_patterns(short, 0) == ["who is Bob"]
    assert hunter.derive_patterns(short, 1) == ["who is Bob"]
    print("\n[PASS] Variants derive distinct patterns")


def test_keyword_hunter_against_memory_store():
    store = InMemoryDocumentStore([
        StoredDocument(id="d1", title="Deal memo", text="TechCorp acquisition terms were agreed."),
        StoredDocument(id="d2", text="Quarterly revenue grew."),
    ])
    findings = asyncio.run(KeywordHunter().produce_findings(QUERY, "techcorp", store))

    assert len(findings) == 1
    finding = findings[0]
    assert finding.document_id == "d1"
    assert finding.finding_type == FindingType.DIRECT_MATCH
    assert 0 < finding.confidence <= 1
    assert finding.metadata["scout"] == "keyword_hunter"
    assert finding.metadata["pattern"] == "techcorp"
    assert finding.metadata["title"] == "Deal memo"


def test_pattern_detector_themes():
    detector = PatternDetector()
    hits = [
        hit("d1", "The merger pricing and merger timing. Merger pricing was disputed."),
        hit("d2", "Acquisition only once."),
    ]
    findings = detector.findings_for_hits(Query("acquisition"), "acquisition", hits)

    assert len(findings) == 1
    assert findings[0].finding_type == FindingType.RELATED_CONCEPT
    assert findings[0].metadata["theme"] == "merger"
    assert findings[0].metadata["concepts"] == "merger,pricing"
    assert findings[0].confidence == pytest.approx(0.64)


def test_relationship_mapper():
    """Test co-occurring people and companies produce a relationship lead."""
    print("\n" + "=" * 60)
    print("TEST 2: RelationshipMapper")
    print("=" * 60)

    mapper = RelationshipMapper()
    assert mapper.derive_patterns(QUERY) == [
        "Who negotiated the TechCorp acquisition with Globex",
        "TechCorp",
        "Globex",
    ]

    hits = [
        hit("d1", "Jane Doe negotiated with TechCorp on the acquisition."),
        hit("d2", "TechCorp issued a statement."),
    ]
    findings = mapper.findings_for_hits(QUERY, "TechCorp", hits)

    assert len(findings) == 1
    assert findings[0].document_id == "d1"
    assert findings[0].related_entities == ["Jane Doe", "TechCorp"]
    assert findings[0].metadata["entity_types"] == "person,company"
    print("\n[PASS] Single-entity hits are skipped")


def test_timeline_builder():
    builder = TimelineBuilder()
    hits = [
        hit(
            "d1",
            "Jane Doe signed the TechCorp agreement on March 3, 2023. "
            "A payment followed on 2023-04-01.",
        )
    ]
    findings = builder.findings_for_hits(QUERY, "TechCorp", hits)

    assert [f.metadata["date"] for f in findings] == ["March 3, 2023", "2023-04-01"]
    assert all(f.finding_type == FindingType.DATE_REFERENCE for f in findings)
    assert findings[0].metadata["event_type"] == "agreement"
    assert findings[0].related_entities == ["Jane Doe", "TechCorp"]
    assert findings[1].metadata["event_type"] == "payment"
    assert parse_date(findings[1].metadata["date"]).year == 2023


def test_entity_extractor():
    """Test regex entity classes map to their finding types."""
    print("\n" + "=" * 60)
    print("TEST 3: EntityExtractor")
    print("=" * 60)

    extractor = EntityExtractor()
    text = "Jane Doe of TechCorp wired $25 million to Globex Corp on 01/15/2024."
    findings = extractor.findings_for_hits(QUERY, "TechCorp", [hit("d1", text, score=1.0)])

    by_type = {f.finding_type: f for f in findings}
    print(f"\nFound: {[(f.finding_type.value, f.excerpt) for f in findings]}")

    assert by_type[FindingType.PERSON_MENTION].excerpt == "Jane Doe"
    assert by_type[FindingType.MONETARY_AMOUNT].excerpt == "$25 million"
    assert by_type[FindingType.DATE_REFERENCE].metadata["date"] == "01/15/2024"
    companies = [f.excerpt for f in findings if f.finding_type == FindingType.COMPANY_REFERENCE]
    assert companies == ["TechCorp", "Globex Corp"]

    person = by_type[FindingType.PERSON_MENTION]
    assert person.metadata["entity_type"] == "person"
    assert person.confidence == pytest.approx(0.7)
    print("\n[PASS] People, companies, amounts and dates extracted")


def test_extraction_skips_person_inside_company():
    matches = extract_entities("Contract with Acme Corp signed.")
    assert [(m.text, m.entity_type) for m in matches] == [("Acme Corp", EntityType.COMPANY)]


def test_anomaly_spotter():
    spotter = AnomalySpotter()
    hits = [
        hit("d1", "An unusual wire of $1,000 to an offshore account."),
        hit("d2", "Routine invoice for $1,200."),
        hit("d3", "Consulting fee of $5 million."),
    ]
    findings = spotter.findings_for_hits(Query("wire"), "wire", hits)

    irregular = [f for f in findings if f.metadata["anomaly_type"] == "irregularity"]
    outliers = [f for f in findings if f.metadata["anomaly_type"] == "outlier_amount"]

    assert [f.document_id for f in irregular] == ["d1"]
    assert irregular[0].metadata["indicators"] == "offshore,unusual"
    assert irregular[0].confidence == pytest.approx(0.8)
    assert [f.document_id for f in outliers] == ["d3"]
    assert outliers[0].metadata["amount"] == "$5 million"
    assert all(f.finding_type == FindingType.ANOMALY for f in findings)


def test_anomaly_spotter_needs_enough_amounts():
    hits = [hit("d1", "Paid $10."), hit("d2", "Paid $10,000,000.")]
    assert AnomalySpotter().findings_for_hits(Query("paid"), "paid", hits) == []


def test_compliance_checker():
    checker = ComplianceChecker()
    hits = [
        hit("d1", "The GDPR notice describes a breach of contract."),
        hit("d2", "See the sec filing in the second quarter."),
    ]
    findings = checker.findings_for_hits(Query("GDPR"), "GDPR", hits)

    flags = [f for f in findings if f.finding_type == FindingType.COMPLIANCE_FLAG]
    terms = [f for f in findings if f.finding_type == FindingType.LEGAL_TERM]

    assert [f.metadata["regulation"] for f in flags] == ["GDPR"]
    assert terms[0].document_id == "d1"
    assert terms[0].metadata["terms"] == "breach,contract"
    assert all(f.document_id == "d1" for f in findings)


def test_sentiment_analyzer():
    analyzer = SentimentAnalyzer()
    hits = [
        hit("d1", "Serious concern about the fraud and the penalty."),
        hit("d2", "The deal was approved, a strong success."),
        hit("d3", "The meeting is on Tuesday."),
    ]
    findings = analyzer.findings_for_hits(Query("deal"), "deal", hits)
    by_doc = {f.document_id: f for f in findings}

    assert by_doc["d1"].finding_type == FindingType.RISK_INDICATOR
    assert by_doc["d1"].metadata["risk_level"] == "high"
    assert by_doc["d1"].metadata["indicators"] == "concern,fraud,penalty"
    assert by_doc["d2"].finding_type == FindingType.RELATED_CONCEPT
    assert by_doc["d2"].metadata["tone"] == "1.00"
    assert by_doc["d3"].metadata["tone"] == "0.00"


def test_registry():
    """Test the default registry covers every kind and accepts replacements."""
    print("\n" + "=" * 60)
    print("TEST 4: Strategy registry")
    print("=" * 60)

    registry = StrategyRegistry.default()
    assert set(registry.kinds) == set(ScoutKind)
    for kind in ScoutKind:
        strategy = registry.get(kind)
        assert strategy.kind == kind
        assert isinstance(strategy, ScoutStrategy)

    class QuietHunter(KeywordHunter):
        def findings_for_hits(self, query, pattern, hits):
            return []

    registry.register(QuietHunter())
    assert isinstance(registry.get(ScoutKind.KEYWORD_HUNTER), QuietHunter)

    empty = StrategyRegistry()
    assert ScoutKind.KEYWORD_HUNTER not in empty
    with pytest.raises(KeyError):
        empty.get(ScoutKind.KEYWORD_HUNTER)
    print("\n[PASS] Registry lookup and replacement")


def main():
    """Run all tests."""
    test_keyword_hunter_variants()
    test_keyword_hunter_against_memory_store()
    test_pattern_detector_themes()
    test_relationship_mapper()
    test_timeline_builder()
    test_entity_extractor()
    test_extraction_skips_person_inside_company()
    test_anomaly_spotter()
    test_anomaly_spotter_needs_enough_amounts()
    test_compliance_checker()
    test_sentiment_analyzer()
    test_registry()
    print("\n" + "=" * 60)
    print("ALL STRATEGY TESTS PASSED")
    print("=" * 60)


if __name__ == "__main__":
    main()
