"""In-memory records produced by one scrape session."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from data_pipeline.etl.parsing import Number, make_row_signature, slugify_category


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class CategoryOption:
    """One selectable prop category. ``key`` is always derived from ``label``."""

    label: str
    key: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "key", slugify_category(self.label))


@dataclass
class PropRow:
    """One player/category/line observation.

    Known columns are typed fields; every original cell is kept verbatim in
    ``raw`` so columns the normalizer does not know about survive. The
    signature is derived and cannot be passed in.
    """

    category_key: str
    category_label: str
    date_iso: str
    player_name: str
    team: Optional[str] = None
    status: Optional[str] = None
    line: Optional[Number] = None
    odds_over: Optional[Number] = None
    odds_under: Optional[Number] = None
    projection: Optional[Number] = None
    diff: Optional[Number] = None
    rank_metric: Optional[str] = None
    hit_rates: Optional[Dict[str, Optional[Number]]] = None
    raw: Dict[str, str] = field(default_factory=dict)
    signature: str = field(init=False)

    def __post_init__(self) -> None:
        self.signature = make_row_signature(
            self.category_key,
            player_name=self.player_name,
            team=self.team,
            line=self.line,
            odds_over=self.odds_over,
            odds_under=self.odds_under,
            raw=self.raw,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CategoryResult:
    category_key: str
    category_label: str
    rows: List[PropRow]
    row_count: int
    duration_ms: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CategoryError:
    category_key: str
    category_label: str
    error: str


@dataclass
class SessionSummary:
    attempted: int = 0
    succeeded: int = 0
    rows_total: int = 0


@dataclass
class ScrapeSession:
    """One full run across all categories for one date.

    Only ``add_result``/``add_error`` mutate it while the run is in flight;
    ``finalize`` stamps the end time and summary.
    """

    date_iso: str
    started_at: str = field(default_factory=utc_now_iso)
    finished_at: Optional[str] = None
    results: List[CategoryResult] = field(default_factory=list)
    errors: List[CategoryError] = field(default_factory=list)
    summary: SessionSummary = field(default_factory=SessionSummary)
    artifact_dir: Optional[str] = None

    def add_result(self, result: CategoryResult) -> None:
        self.results.append(result)

    def add_error(self, option: CategoryOption, error: str) -> None:
        self.errors.append(CategoryError(option.key, option.label, error))

    def finalize(self, attempted: int) -> "ScrapeSession":
        failed = {err.category_key for err in self.errors}
        succeeded = [r for r in self.results if r.category_key not in failed]
        self.finished_at = utc_now_iso()
        self.summary = SessionSummary(
            attempted=attempted,
            succeeded=len(succeeded),
            rows_total=sum(r.row_count for r in succeeded),
        )
        return self

    def all_rows(self) -> List[PropRow]:
        return [row for result in self.results for row in result.rows]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
