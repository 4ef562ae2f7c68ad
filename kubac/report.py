# /*
# Copyright 2026 The Kubac Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Probe results, summaries, and the verification report."""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

from kubac.utils import format_duration


class ProbeStatus(Enum):
    """Verdict of a single probe or preflight check."""

    PASS = "PASS"
    FAIL = "FAIL"
    WARN = "WARN"
    SKIP = "SKIP"


_STATUS_STYLE = {
    ProbeStatus.PASS: "[green]✓ PASS[/green]",
    ProbeStatus.FAIL: "[red]✗ FAIL[/red]",
    ProbeStatus.WARN: "[yellow]⚠ WARN[/yellow]",
    ProbeStatus.SKIP: "[dim]- SKIP[/dim]",
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one probe invocation.

    Attributes:
        name: Probe name, stable across runs.
        status: PASS, FAIL, WARN or SKIP.
        message: Human-readable detail.
        duration: Elapsed seconds.
        timestamp: Completion time (UTC).
    """

    name: str
    status: ProbeStatus
    message: str
    duration: float = 0.0
    timestamp: datetime = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "message": self.message,
            "duration": format_duration(self.duration),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class Summary:
    total: int
    passed: int
    failed: int

    @classmethod
    def from_results(cls, results: Iterable[ProbeResult]) -> Summary:
        statuses = [r.status for r in results]
        return cls(
            total=len(statuses),
            passed=statuses.count(ProbeStatus.PASS),
            failed=statuses.count(ProbeStatus.FAIL),
        )

    def to_dict(self) -> dict[str, int]:
        return {"total": self.total, "passed": self.passed, "failed": self.failed}


@dataclass
class VerificationReport:
    """Ordered probe results plus a summary derived from them.

    WARN and SKIP count toward the total only, and only FAIL makes
    :meth:`all_passed` false.
    """

    results: list[ProbeResult] = field(default_factory=list)
    timestamp: datetime = field(default_factory=_now)

    def add(self, result: ProbeResult) -> None:
        self.results.append(result)

    @property
    def summary(self) -> Summary:
        return Summary.from_results(self.results)

    def all_passed(self) -> bool:
        return self.summary.failed == 0

    def to_dict(self, key: str = "tests") -> dict[str, Any]:
        return {
            key: [r.to_dict() for r in self.results],
            "summary": self.summary.to_dict(),
            "timestamp": self.timestamp.isoformat(),
        }

    def to_json(self, key: str = "tests") -> str:
        return json.dumps(self.to_dict(key), indent=2)

    def write(self, path: str | Path) -> Path:
        """Write the JSON report, replacing any existing file."""
        path = Path(path)
        path.write_text(self.to_json() + "\n")
        return path

    def print_text(self, out: Console, title: str = "Verification Results") -> None:
        """Render results as a table followed by the summary counts."""
        table = Table(title=title, title_justify="left")
        table.add_column("Test", style="bold")
        table.add_column("Status")
        table.add_column("Message", overflow="fold")
        table.add_column("Duration", justify="right")
        for result in self.results:
            table.add_row(result.name, _STATUS_STYLE[result.status], result.message,
                          format_duration(result.duration))
        out.print(table)

        summary = self.summary
        out.print(f"Total:  {summary.total}")
        out.print(f"Passed: {summary.passed}")
        out.print(f"Failed: {summary.failed}")
        if self.all_passed():
            out.print("[green]✓ All tests passed![/green]")
        else:
            out.print("[red]✗ Some tests failed[/red]")
