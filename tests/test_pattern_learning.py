"""Tests for the synthesize-and-validate workflow."""

import json
from unittest.mock import patch
from uuid import uuid4

import pytest

from app.core.correction_store import record_correction
from app.core.errors import SynthesisError
from app.core.pattern_learning import synthesize_and_validate
from app.core.schemas_patterns import DeployRecommendation, MetadataField, PatternConfidence
from app.core.validation_harness import ConfidenceThresholds, validate


class StubGenerator:
    def __init__(self, output):
        self.output = output

    def generate_candidates(self, prompt):
        return self.output


def record_scenario_corrections():
    """Six assignee corrections where the value follows '(73) Assignee:' in varying case."""
    values = ["Acme Corporation", "Globex Inc", "Initech LLC", "Umbrella Corp", "Hooli", "Stark Industries"]
    for i, value in enumerate(values):
        shown = value.upper() if i % 2 else value
        record_correction(uuid4(), "assignee", value, f"(72) Inventor: Someone\n(73) Assignee: {shown}\n(21) Appl. No.: 1")


GOOD = {"pattern": r"\(73\)\s*Assignee:\s*([^\n]+)", "description": "assignee line", "confidence": 0.9}
BAD = {"pattern": r"Owner:\s*(.+)", "description": "owner line", "confidence": 0.4}
BROKEN = {"pattern": r"Assignee:\s*(.+", "description": "does not compile"}


class TestSynthesizeAndValidate:
    def test_candidates_validated_and_ranked(self, fake_db, registry):
        record_scenario_corrections()
        generator = StubGenerator(json.dumps({"candidates": [BAD, GOOD]}))

        report = synthesize_and_validate("assignee", generator=generator, registry=registry)

        assert report.field_name == MetadataField.ASSIGNEE
        assert report.corpus_size == 6
        assert [c.pattern for c in report.candidates] == [GOOD["pattern"], BAD["pattern"]]
        best, worst = report.candidates
        assert best.pass_rate == 1.0
        assert best.tested_against == 6
        assert best.confidence == PatternConfidence.MEDIUM
        assert best.recommendation == DeployRecommendation.REVIEW
        assert worst.pass_rate == 0.0
        assert worst.confidence == PatternConfidence.LOW

    def test_lower_sample_minimum_makes_scenario_auto_deploy(self, fake_db, registry):
        record_scenario_corrections()
        generator = StubGenerator(json.dumps({"candidates": [GOOD]}))

        report = synthesize_and_validate(
            "assignee",
            generator=generator,
            registry=registry,
            thresholds=ConfidenceThresholds(high_min_tested=5),
        )

        assert report.candidates[0].confidence == PatternConfidence.HIGH
        assert report.candidates[0].recommendation == DeployRecommendation.AUTO_DEPLOY

    def test_uncompilable_candidate_reported_not_raised(self, fake_db, registry):
        record_scenario_corrections()
        generator = StubGenerator(json.dumps({"candidates": [BROKEN, GOOD]}))

        report = synthesize_and_validate("assignee", generator=generator, registry=registry)

        broken = next(c for c in report.candidates if c.pattern == BROKEN["pattern"])
        assert broken.error is not None
        assert broken.pass_rate == 0.0

    def test_skipped_entries_reported(self, fake_db, registry):
        record_scenario_corrections()
        generator = StubGenerator(json.dumps({"candidates": [GOOD, {"description": "no pattern"}]}))

        report = synthesize_and_validate("assignee", generator=generator, registry=registry)

        assert len(report.candidates) == 1
        assert len(report.skipped) == 1

    def test_validation_failure_carries_partial_candidates(self, fake_db, registry):
        record_scenario_corrections()
        generator = StubGenerator(json.dumps({"candidates": [GOOD, BAD]}))
        calls = []

        def flaky_validate(candidate, corpus, thresholds=None):
            calls.append(candidate)
            if len(calls) == 2:
                raise RuntimeError("boom")
            return validate(candidate, corpus, thresholds)

        with patch("app.core.pattern_learning.validate", side_effect=flaky_validate):
            with pytest.raises(SynthesisError) as exc_info:
                synthesize_and_validate("assignee", generator=generator, registry=registry)

        assert len(exc_info.value.partial_candidates) == 1
        assert exc_info.value.partial_candidates[0].pattern == GOOD["pattern"]

    def test_deploy_after_review_spends_opportunity(self, fake_db, registry):
        from app.core.opportunity_tracker import get_opportunity

        record_scenario_corrections()
        report = synthesize_and_validate(
            "assignee", generator=StubGenerator(json.dumps({"candidates": [GOOD]})), registry=registry
        )
        best = report.candidates[0]

        registry.deploy(
            "assignee",
            best.pattern,
            best.description,
            50,
            [r.correction_id for r in best.test_results],
        )

        assert get_opportunity("assignee").count == 0
        assert not get_opportunity("assignee").ready
