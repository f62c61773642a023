"""Built-in baseline extractors.

These ship with the service and sit at priority 100+, behind every deployed
rule. They are never stored in or edited through the registry; the matcher
merges them into each field's chain.
"""

from datetime import UTC, datetime
from functools import lru_cache
from uuid import UUID, uuid5

from app.core.schemas_patterns import DeployedPattern, MetadataField

BASELINE_PRIORITY = 100
BASELINE_NAMESPACE = UUID("6f1c2f1e-4c55-4b8e-9a52-0c4a7f1d2b90")
BASELINE_CREATED_AT = datetime(1970, 1, 1, tzinfo=UTC)

# (pattern, description), tried in order
# ruff: noqa: E501
BASELINE_RULES: dict[MetadataField, list[tuple[str, str]]] = {
    MetadataField.INVENTORS: [
        (r"\(\s*72\s*\)\s*Inventors?:\s*([^\n]+?)(?:\n|$)", "INID (72) Inventor: line"),
        (r"Inventors?:\s*([^\n]+?)(?:\n|$)", "Inventor: line"),
        (r"(?s)Inventors?:\s*(.+?)(?:\n\n|Assignee:|Appl\.|Filed:)", "Multiline inventors up to next label"),
    ],
    MetadataField.ASSIGNEE: [
        (r"\(\s*73\s*\)\s*Assignee:\s*([^\n]+?)(?:\n|$)", "INID (73) Assignee: line"),
        (r"Assignee:\s*([^\n]+?)(?:\n|$)", "Assignee: line"),
        (r"(?s)(?:\(\s*73\s*\)|Assignee):\s*(.+?)(?:\n\n|Appl\.|Filed:|Notice:)", "Multiline assignee up to next label"),
        (r"Assignee[:\s]+([^(\n]+?)(?:\([A-Z]{2}\)|$)", "Assignee followed by country code"),
        (r"(?m)\*?\s*Assignee[:\s]*([A-Za-z0-9\s,\.&]+?)(?:,\s*[A-Z]{2}|$)", "Assignee followed by state code"),
    ],
    MetadataField.PATENT_NUMBER: [
        (r"(?:Patent\s+No\.?|US)\s*[:\s]*([A-Z]{2}\s*\d{1,2}[,\s]*\d{3}[,\s]*\d{3}\s*[A-Z]\d?)", "US patent number with kind code"),
        (r"(?:\(\s*10\s*\)|Patent\s+Number):\s*([A-Z]{2}[\s\d,]+[A-Z]\d?)", "INID (10) patent number"),
        (r"US(\d{7,10})[A-Z]\d?", "Compact US number"),
        (r"Patent\s+(?:No\.?|Number)\s*[:\s]*([^\n\r]{5,25})", "Patent No. label"),
    ],
    MetadataField.APPLICATION_NUMBER: [
        (r"(?:Appl\.?\s+No\.?|Application\s+No\.?)[\s:]*(\d{2}/\d{3},?\d{3})", "Appl. No. with series code"),
        (r"\(\s*21\s*\)\s*Appl\.\s*No\.?:\s*(\d{2}/\d{3},?\d{3})", "INID (21) application number"),
        (r"Serial\s+No\.?:\s*(\d+)", "Serial No."),
    ],
    MetadataField.PATENT_CLASSIFICATION: [
        (r"(?:CPC|IPC|Int\.?\s*Cl\.?)[\s:]*([A-H]\d{2}[A-Z]\s*\d+/\d+(?:[;\s]+[A-H]\d{2}[A-Z]\s*\d+/\d+)*)", "CPC/IPC symbols"),
        (r"(?:CPC|Classification):\s*([^\n]{10,100})", "Classification label"),
    ],
    MetadataField.FILING_DATE: [
        (r"Filed:\s*(\w+\.?\s+\d{1,2},?\s+\d{4})", "Filed: date"),
    ],
    MetadataField.ISSUE_DATE: [
        (r"(?:Date of Patent|Patent No\.|Pub\. No\.).*?(\w+\.?\s+\d{1,2},?\s+\d{4})", "Date of patent / publication"),
    ],
}


def baseline_id(field_name: MetadataField, index: int) -> UUID:
    """Stable id for a baseline rule, so MatchResult provenance survives restarts."""
    return uuid5(BASELINE_NAMESPACE, f"{field_name.value}:{index}")


@lru_cache(maxsize=None)
def get_baseline_patterns(field_name: MetadataField) -> tuple[DeployedPattern, ...]:
    """Baseline rules for a field as registry-shaped records."""
    return tuple(
        DeployedPattern(
            id=baseline_id(field_name, i),
            field_name=field_name,
            pattern=pattern,
            description=description,
            priority=BASELINE_PRIORITY + i,
            is_active=True,
            source="original",
            created_at=BASELINE_CREATED_AT,
        )
        for i, (pattern, description) in enumerate(BASELINE_RULES.get(field_name, []))
    )


def is_baseline(pattern_id: UUID) -> bool:
    return any(
        rule.id == pattern_id
        for field_name in MetadataField
        for rule in get_baseline_patterns(field_name)
    )
