"""Prompt inputs for pattern synthesis."""

from app.core.extraction_context import trim_source_text
from app.core.schemas_patterns import Correction, DeployedPattern, MetadataField

FIELD_SEMANTICS: dict[MetadataField, str] = {
    MetadataField.ASSIGNEE: (
        "The entity that owns the patent (company, university or person), usually "
        "labelled '(73) Assignee:'. Exclude trailing location such as city, state "
        "codes or '(US)'."
    ),
    MetadataField.INVENTORS: (
        "The named inventors, usually labelled '(72) Inventor(s):'. Capture the full "
        "list as printed, without the trailing country code."
    ),
    MetadataField.FILING_DATE: (
        "The date the application was filed, usually labelled '(22) Filed:', "
        "written like 'Mar. 3, 2019'."
    ),
    MetadataField.ISSUE_DATE: (
        "The date the patent was granted or published, usually labelled "
        "'(45) Date of Patent:' or next to 'Pub. Date:'."
    ),
    MetadataField.PATENT_NUMBER: (
        "The patent or publication number, e.g. 'US 10,123,456 B2', usually "
        "labelled '(10) Patent No.:'."
    ),
    MetadataField.APPLICATION_NUMBER: (
        "The application serial number, e.g. '16/123,456', usually labelled "
        "'(21) Appl. No.:'."
    ),
    MetadataField.PATENT_CLASSIFICATION: (
        "CPC or IPC classification symbols, e.g. 'G06F 16/35', usually labelled "
        "'(52) U.S. Cl.', 'CPC' or 'Int. Cl.'."
    ),
}


def build_pattern_prompt(
    field_name: MetadataField,
    corrections: list[Correction],
    deployed: list[DeployedPattern],
    context_window: int = 500,
    max_examples: int | None = None,
) -> str:
    """
    Build the user prompt for pattern synthesis.

    Args:
        field_name: Field to learn a rule for
        corrections: Field corpus, oldest first
        deployed: Currently active deployed rules for the field
        context_window: Chars of source text kept around each corrected value
        max_examples: Keep only the most recent N corrections (None keeps all)

    Returns:
        Prompt string
    """
    examples = corrections[-max_examples:] if max_examples else corrections

    lines: list[str] = [
        f"Field: {field_name.value}",
        f"Meaning: {FIELD_SEMANTICS[field_name]}",
        "",
        f"=== CORRECTIONS ({len(examples)} of {len(corrections)}) ===",
        "Automatic extraction missed or got these wrong; a human supplied the correct value.",
    ]

    for i, correction in enumerate(examples, start=1):
        snippet = trim_source_text(
            correction.source_text, correction.corrected_value, context_window
        )
        lines.extend([
            "",
            f"Example {i}:",
            f"- Correct value: {correction.corrected_value!r}",
            f"- Extraction produced: {correction.original_value!r}",
            "- Source text:",
            '"""',
            snippet,
            '"""',
        ])

    lines.extend(["", "=== CURRENTLY DEPLOYED PATTERNS ==="])
    if deployed:
        for rule in deployed:
            lines.append(f"- priority {rule.priority}: {rule.pattern}  ({rule.description})")
        lines.append(
            "These already run before the built-in fallbacks and still missed the examples "
            "above. Propose complementary patterns, not duplicates."
        )
    else:
        lines.append("(none; only built-in fallbacks are running)")

    return "\n".join(lines)
