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

"""
cli.py - kubac, a cloud-agnostic Kubernetes baseline platform accelerator.

Commands:
    init       Create kubac.yaml with defaults for a cluster profile and mode
    doctor     Run preflight checks (kubectl, cluster access, permissions, nodes)
    install    Install the baseline platform (direct apply or GitOps render)
    verify     Run the verification suite and write a JSON report
    demo       Deploy and exercise the demo app (deploy, load, chaos, cleanup)
    uninstall  Remove kubac namespaces from the cluster
    version    Print the kubac version

Examples:
    # Scaffold a GitOps project for a managed cluster
    kubac init --cluster-profile managed --mode gitops

    # Install straight into the current kube context
    kubac install

    # Verify and print the report as JSON
    kubac verify --output json

For detailed usage information, run: kubac --help
"""

from __future__ import annotations

import logging
import sys

import typer
from rich.markup import escape

from kubac import __version__, console
from kubac.commands import demo_cmd, init_cmd, install_cmd, verify_cmd
from kubac.config import load_runtime_settings
from kubac.errors import KubacError

app = typer.Typer(
    help="Kubernetes baseline platform accelerator (cloud-agnostic).",
    no_args_is_help=True,
)


@app.callback()
def _main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Initialize logging for all subcommands."""
    level = logging.DEBUG if verbose else load_runtime_settings().log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


@app.command("version")
def version() -> None:
    """Print the kubac version."""
    typer.echo(f"kubac version {__version__}")


app.command("init")(init_cmd.init)
app.command("doctor")(verify_cmd.doctor)
app.command("install")(install_cmd.install)
app.command("verify")(verify_cmd.verify)
app.command("uninstall")(install_cmd.uninstall)
app.add_typer(demo_cmd.app, name="demo")


def main() -> None:
    try:
        app()
    except KubacError as e:
        console.print(f"[red]❌ {escape(str(e))}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
