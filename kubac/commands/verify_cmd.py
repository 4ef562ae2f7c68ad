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

"""Verification and preflight commands."""

from __future__ import annotations

from pathlib import Path

import typer

from kubac import console
from kubac.commands import options
from kubac.commands.options import ConfigOption, OutputFormat, OutputOption
from kubac.constants import DEFAULT_REPORT_FILE
from kubac.doctor import run_checks
from kubac.probes import run_verification
from kubac.report import VerificationReport


def _emit(report: VerificationReport, output: OutputFormat, key: str, title: str) -> None:
    if output is OutputFormat.json:
        typer.echo(report.to_json(key))
    else:
        report.print_text(console, title=title)


def verify(
    config: str = ConfigOption,
    output: OutputFormat = OutputOption,
    report: Path = typer.Option(Path(DEFAULT_REPORT_FILE), "--report", help="Path to write the JSON report"),
) -> None:
    """Run the verification suite against the cluster and write a JSON report."""
    cfg = options.load(config)
    results = run_verification(cfg, options.make_client())
    written = results.write(report)
    _emit(results, output, "tests", "Verification Results")
    console.print(f"\n[green]✓ Full report written to: {written}[/green]")
    if not results.all_passed():
        raise typer.Exit(1)


def doctor(output: OutputFormat = OutputOption) -> None:
    """Run preflight checks for kubectl, cluster access, permissions and nodes."""
    results = run_checks(options.make_client())
    _emit(results, output, "checks", "Preflight Checks")
    if not results.all_passed():
        console.print("[red]✗ Some preflight checks failed[/red]")
        raise typer.Exit(1)
    console.print("\n[green]✓ All preflight checks passed![/green]")
