# correlate/utils/models.py

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class Concept:
    code: str
    description: Optional[str] = None


@dataclass(frozen=True)
class ProcedureSite:
    concept: Concept
    is_tooth: bool = False
    is_surface: bool = False


@dataclass
class ClinicalExpression:
    expression: str
    description: Optional[str] = None  # None for expressions read from the history table
    procedure_sites: List[ProcedureSite] = field(default_factory=list)

    def __post_init__(self):
        self.expression = (self.expression or "").strip()

    @property
    def teeth(self) -> List[ProcedureSite]:
        return [s for s in self.procedure_sites if s.is_tooth]

    @property
    def surfaces(self) -> List[ProcedureSite]:
        return [s for s in self.procedure_sites if s.is_surface]


@dataclass(frozen=True)
class PatientEvent:
    patient_id: str
    date: datetime
    code: str


@dataclass
class ReportRow:
    patient_id: str
    reference_date: datetime
    reference_code: str
    event_date: Optional[datetime] = None
    event_code: Optional[str] = None
    last_examination_date: Optional[datetime] = None


@dataclass
class DurationSummary:
    count: int
    mean_days: Optional[int] = None
    mean_years: Optional[float] = None
    pct_over_5y: Optional[float] = None
    pct_over_10y: Optional[float] = None
    count_over_5y: int = 0
    count_over_10y: int = 0

    @property
    def has_data(self) -> bool:
        return self.count > 0
