# schema.py
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class SectionKind(str, Enum):
    OEM_REFERENCE = "oem_reference"
    COMPATIBILITY = "compatibility"
    TECHNICAL_SPECIFICATIONS = "technical_specifications"
    UNCLASSIFIED = "unclassified"


KNOWN_SECTIONS = (
    SectionKind.OEM_REFERENCE,
    SectionKind.COMPATIBILITY,
    SectionKind.TECHNICAL_SPECIFICATIONS,
)


class FailureReason(str, Enum):
    NAVIGATION_TIMEOUT = "navigation_timeout"
    NAVIGATION_FAILED = "navigation_failed"
    CONTENT_NOT_FOUND = "content_not_found"
    EXTRACTION_ERROR = "extraction_error"
    RETRIES_EXHAUSTED = "retries_exhausted"


class Target(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str


class ProductRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_name: str = ""
    part_number: str = ""
    images: List[str] = Field(default_factory=list)   # deduped, absolute, no query
    sections: Dict[SectionKind, Dict[str, str]] = Field(default_factory=dict)
    scrape_date: str                                  # YYYY-MM-DD, one per run
    diagnostics: List[str] = Field(default_factory=list)

    def section(self, kind: SectionKind) -> Dict[str, str]:
        return self.sections.get(kind, {})

    def to_output(self) -> dict:
        """
        Flat shape written to the results artifact. The three known sections
        are always present (possibly empty); `unclassified` only when kept.
        """
        out = {
            "product_name": self.product_name,
            "part_number": self.part_number,
            "images": list(self.images),
        }
        for kind in KNOWN_SECTIONS:
            out[kind.value] = dict(self.section(kind))
        if SectionKind.UNCLASSIFIED in self.sections:
            out[SectionKind.UNCLASSIFIED.value] = dict(self.sections[SectionKind.UNCLASSIFIED])
        out["scrape_date"] = self.scrape_date
        return out


@dataclass(frozen=True)
class Success:
    record: ProductRecord
    attempts: int = 1

    ok: ClassVar[bool] = True


@dataclass(frozen=True)
class Failure:
    reason: FailureReason
    message: str = ""
    cause: Optional[FailureReason] = None    # last attempt's reason when retries ran out
    attempts: int = 0

    ok: ClassVar[bool] = False

    @property
    def detail(self) -> str:
        if self.reason is FailureReason.RETRIES_EXHAUSTED:
            cause = self.cause.value if self.cause else "unknown"
            return f"{self.reason.value} after {self.attempts} attempt(s) ({cause}): {self.message}"
        return f"{self.reason.value}: {self.message}"


ExtractionOutcome = Union[Success, Failure]


@dataclass(frozen=True)
class SucceededItem:
    url: str
    id: Optional[str]
    record: ProductRecord


@dataclass(frozen=True)
class FailedItem:
    url: str
    timestamp: str
    reason: FailureReason
    error: str


@dataclass(frozen=True)
class BatchEntry:
    target: Target
    outcome: ExtractionOutcome
    product_id: Optional[str] = None


@dataclass
class BatchResult:
    """All outcomes of one run, in target order."""

    run_date: str
    entries: List[BatchEntry] = field(default_factory=list)

    def record(self, target: Target, outcome: ExtractionOutcome, product_id: Optional[str] = None):
        self.entries.append(BatchEntry(target, outcome, product_id))

    @property
    def succeeded(self) -> List[SucceededItem]:
        return [
            SucceededItem(e.target.url, e.product_id, e.outcome.record)
            for e in self.entries if e.outcome.ok
        ]

    @property
    def failed(self) -> List[FailedItem]:
        return [
            FailedItem(e.target.url, self.run_date, e.outcome.reason, e.outcome.detail)
            for e in self.entries if not e.outcome.ok
        ]

    def __len__(self):
        return len(self.entries)
