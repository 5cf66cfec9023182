from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class MoodleReport:
    report_id: int
    name: str
    source: str = ""
    report_type: int = 0

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "MoodleReport":
        return cls(
            report_id=int(data["id"]),
            name=str(data.get("name") or f"Report {data['id']}"),
            source=str(data.get("source") or ""),
            report_type=int(data.get("type") or 0),
        )

    def to_dict(self) -> dict:
        return {"id": self.report_id, "name": self.name, "source": self.source, "type": self.report_type}


@dataclass
class ReportPage:
    """One page (or all pages, once merged) of a report builder report."""

    headers: list[str]
    rows: list[Any] = field(default_factory=list)
    total_row_count: int = 0
    name: str = ""
    source: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ReportPage":
        data = payload.get("data") or {}
        details = payload.get("details") or {}
        return cls(
            headers=[str(h) for h in data.get("headers") or []],
            rows=list(data.get("rows") or []),
            total_row_count=int(data.get("totalrowcount") or 0),
            name=str(details.get("name") or ""),
            source=str(details.get("source") or ""),
        )
