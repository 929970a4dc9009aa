"""
Run reports.

Every command processes independent units (one class, one enum, one
document, one sample) and records a UnitResult for each. The report
prints one line per unit, expands diagnostics beneath failing units and
ends with a summary; the aggregate decides the exit code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import jinja2

from .pipeline.hints.nodes import Diagnostic, Severity

CURRENT_DIR = Path(__file__).parent


class Outcome(str, Enum):
    WROTE = "WROTE"
    PASS = "PASS"
    SKIP = "SKIP"
    FAIL = "FAIL"


@dataclass
class UnitResult:
    """Outcome of one unit of work."""

    outcome: Outcome
    unit: str
    detail: str = ""
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def headline(self) -> str:
        line = f"{self.outcome.value:<5} {self.unit}"
        return f"{line}  {self.detail}" if self.detail else line

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity is Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity is Severity.WARNING]


class RunReport:
    """Collects unit results for one command run."""

    def __init__(self, command: str):
        self.command = command
        self.results: list[UnitResult] = []
        self._env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(CURRENT_DIR / "templates")),
            lstrip_blocks=True,
            trim_blocks=True,
        )

    def add(self, outcome: Outcome, unit: str, detail: str = "", diagnostics: list[Diagnostic] | None = None) -> UnitResult:
        result = UnitResult(outcome=outcome, unit=unit, detail=detail, diagnostics=list(diagnostics or []))
        self.results.append(result)
        return result

    def count(self, outcome: Outcome) -> int:
        return sum(1 for r in self.results if r.outcome is outcome)

    @property
    def failed(self) -> bool:
        return any(r.outcome is Outcome.FAIL for r in self.results)

    @property
    def error_count(self) -> int:
        return sum(len(r.errors) for r in self.results)

    @property
    def warning_count(self) -> int:
        return sum(len(r.warnings) for r in self.results)

    @property
    def summary(self) -> str:
        counts = ", ".join(f"{outcome.value.lower()} {self.count(outcome)}" for outcome in Outcome)
        return f"Summary: {counts}"

    def render_text(self, expand_all: bool = False) -> str:
        """
        Render the report as text.

        Args:
            expand_all: List diagnostics beneath every unit, not only failed ones
        """
        template = self._env.get_template("report.txt.jinja2")
        return template.render(report=self, results=self.results, expand_all=expand_all)

    def to_dict(self) -> dict[str, Any]:
        return {
            "command": self.command,
            "results": [
                {
                    "outcome": r.outcome.value,
                    "unit": r.unit,
                    "detail": r.detail,
                    "diagnostics": [
                        {
                            "severity": d.severity.value,
                            "message": d.message,
                            "line": d.line,
                            "owner": d.owner,
                            "field": d.field,
                        }
                        for d in r.diagnostics
                    ],
                }
                for r in self.results
            ],
            "summary": {outcome.value.lower(): self.count(outcome) for outcome in Outcome}
            | {"errors": self.error_count, "warnings": self.warning_count},
        }
