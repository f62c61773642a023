"""Tests for compiling, applying and comparing extraction rules."""

import re

import pytest

from app.core.errors import ValidationError
from app.core.pattern_rules import (
    apply_pattern,
    clean_extracted_value,
    compile_pattern,
    normalize_value,
    values_match,
)
from app.core.schemas_patterns import MetadataField


class TestCompilePattern:
    def test_compiles_case_insensitive(self):
        compiled = compile_pattern(r"Assignee:\s*(.+)")
        assert compiled.flags & re.IGNORECASE
        assert compiled.search("ASSIGNEE: Acme").group(1) == "Acme"

    def test_slash_literal_with_flags(self):
        compiled = compile_pattern(r"/Inventors?:\s*(.+?)\n\n/s")
        assert compiled.flags & re.DOTALL
        assert compiled.search("Inventors: Jane\nJohn\n\nNext").group(1) == "Jane\nJohn"

    def test_named_group_translation(self):
        compiled = compile_pattern(r"No\.:\s*(?<num>\d+)")
        assert compiled.search("No.: 12345").group("num") == "12345"

    def test_backreference_translation(self):
        compiled = compile_pattern(r"(?<q>['\"])(.+?)\k<q>")
        assert compiled.search("say 'hello'").group(2) == "hello"

    def test_lookbehind_left_alone(self):
        compiled = compile_pattern(r"(?<=No\.)\s*(\d+)")
        assert compiled.search("Patent No. 42").group(1) == "42"

    @pytest.mark.parametrize("pattern", ["", "   "])
    def test_empty_pattern_rejected(self, pattern):
        with pytest.raises(ValidationError) as exc_info:
            compile_pattern(pattern)
        assert exc_info.value.field == "pattern"

    def test_uncompilable_pattern_rejected(self):
        with pytest.raises(ValidationError, match="does not compile"):
            compile_pattern(r"Assignee:\s*(.+")


class TestCleanExtractedValue:
    def test_assignee_strips_country_and_state(self):
        value = clean_extracted_value(MetadataField.ASSIGNEE, "Acme Corporation, Austin, TX (US)")
        assert value == "Acme Corporation, Austin"

    def test_assignee_strips_care_of_and_asterisks(self):
        value = clean_extracted_value(MetadataField.ASSIGNEE, "*Acme Corp., c/o Legal Dept.")
        assert value == "Acme Corp."

    @pytest.mark.parametrize("raw", ["A", "123456", "X" * 101])
    def test_assignee_rejects_implausible_values(self, raw):
        assert clean_extracted_value(MetadataField.ASSIGNEE, raw) is None

    def test_inventors_strip_country_code(self):
        value = clean_extracted_value(MetadataField.INVENTORS, "Jane Doe, Austin, TX (US)")
        assert value == "Jane Doe, Austin, TX"

    def test_patent_number_collapses_whitespace(self):
        value = clean_extracted_value(MetadataField.PATENT_NUMBER, "US 10,123,\n  456 B2")
        assert value == "US 10,123, 456 B2"

    def test_classification_truncated(self):
        value = clean_extracted_value(MetadataField.PATENT_CLASSIFICATION, "G06F 16/35 " * 40)
        assert len(value) <= 200

    def test_blank_becomes_none(self):
        assert clean_extracted_value(MetadataField.FILING_DATE, "   ") is None
        assert clean_extracted_value(MetadataField.FILING_DATE, None) is None


class TestApplyPattern:
    def test_group_one_is_the_value(self):
        compiled = compile_pattern(r"Filed:\s*(\w+\.?\s+\d{1,2},?\s+\d{4})")
        assert apply_pattern(MetadataField.FILING_DATE, compiled, "(22) Filed: Mar. 3, 2018") == "Mar. 3, 2018"

    def test_whole_match_without_groups(self):
        compiled = compile_pattern(r"\d{2}/\d{3},\d{3}")
        text = "(21) Appl. No.: 16/123,456"
        assert apply_pattern(MetadataField.APPLICATION_NUMBER, compiled, text) == "16/123,456"

    def test_no_match(self):
        compiled = compile_pattern(r"Filed:\s*(.+)")
        assert apply_pattern(MetadataField.FILING_DATE, compiled, "no dates here") is None

    def test_empty_text(self):
        compiled = compile_pattern(r"Filed:\s*(.+)")
        assert apply_pattern(MetadataField.FILING_DATE, compiled, "") is None


class TestNormalization:
    def test_case_and_punctuation_ignored(self):
        assert normalize_value("ACME, Inc.") == "acme inc"
        assert values_match("Acme Inc", "ACME, Inc.")

    def test_whitespace_collapsed(self):
        assert normalize_value("  Jan.  5,\n2021 ") == "jan 5 2021"

    def test_compatibility_forms(self):
        # Fullwidth digits fold to ASCII under NFKC
        assert values_match("１６/１２３,４５６", "16/123,456")

    def test_different_values(self):
        assert not values_match("Acme Corp", "Acme Corporation")

    def test_none_never_matches(self):
        assert not values_match(None, "anything")
