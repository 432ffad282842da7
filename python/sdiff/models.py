import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class DiffType(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    UNCHANGED = "unchanged"


class AnchorPosition(str, Enum):
    BEFORE = "before"
    AFTER = "after"


class Granularity(str, Enum):
    CHARACTER = "character"
    PARAGRAPH = "paragraph"


class DecisionState(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    SKIPPED = "skipped"


class ParagraphBlock(BaseModel):
    """
    One run of text between blank lines.
    `normalized` is used for matching, `display` keeps the original markup.
    """

    model_config = ConfigDict(frozen=True)

    normalized: str
    display: str


class DiffEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: DiffType
    content: str
    line_number: int = Field(..., ge=1, description="1-based line in the document the entry belongs to.")

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("diff entry content must not be blank")
        return value

    @property
    def is_actionable(self) -> bool:
        return self.type in (DiffType.ADDED, DiffType.REMOVED)


class DiffSummary(BaseModel):
    total: int = 0
    added: int = 0
    removed: int = 0
    unchanged: int = 0


class DiffResult(BaseModel):
    entries: List[DiffEntry] = Field(default_factory=list)
    summary: DiffSummary = Field(default_factory=DiffSummary)

    @model_validator(mode="after")
    def _summary_matches_entries(self) -> "DiffResult":
        expected = _summarize(self.entries)
        if self.summary != expected:
            raise ValueError(f"summary {self.summary} does not match entries {expected}")
        return self

    @classmethod
    def from_entries(cls, entries: List[DiffEntry]) -> "DiffResult":
        return cls(entries=list(entries), summary=_summarize(entries))


def _summarize(entries: List[DiffEntry]) -> DiffSummary:
    counts = {DiffType.ADDED: 0, DiffType.REMOVED: 0, DiffType.UNCHANGED: 0}
    for entry in entries:
        counts[entry.type] += 1
    return DiffSummary(
        total=len(entries),
        added=counts[DiffType.ADDED],
        removed=counts[DiffType.REMOVED],
        unchanged=counts[DiffType.UNCHANGED],
    )


class FileComparison(BaseModel):
    """Raw inputs of a comparison plus the hydrated diff."""

    original: str
    formatted: str
    diffs: DiffResult


class DiffOptions(BaseModel):
    """Knobs for compare_texts / compare_files."""

    fold_unicode: bool = Field(
        False,
        description="Also run normalize_line over every paragraph "
        "(NFKC, dash/tilde folding, CJK spacing, trailing punctuation).",
    )
    diff_timeout: float = Field(
        0.0,
        ge=0.0,
        description="Seconds allowed for alignment. 0 means no limit, which keeps the edit script minimal.",
    )
    granularity: Granularity = Field(
        Granularity.CHARACTER,
        description="Align grapheme clusters (default) or whole normalized paragraphs.",
    )


class ReplacementInstruction(BaseModel):
    """
    An accepted decision, relative to an anchor line.

    added   -> the snippet exists only in the formatted text and is removed from it.
    removed -> the snippet exists only in the original text and is re-inserted.
    """

    model_config = ConfigDict(frozen=True)

    type: DiffType
    snippet: str
    anchor: Optional[str] = None
    anchor_position: AnchorPosition = AnchorPosition.AFTER

    @field_validator("type")
    @classmethod
    def _actionable_type(cls, value: DiffType) -> DiffType:
        if value == DiffType.UNCHANGED:
            raise ValueError("unchanged entries cannot become replacement instructions")
        return value


class HistoryEntry(BaseModel):
    type: DiffType
    original: str = ""
    formatted: str = ""
    timestamp: datetime.datetime = Field(default_factory=datetime.datetime.now)


class HistoryRecord(BaseModel):
    key: str
    entry_index: int
    entry: HistoryEntry
