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

"""Demo application subcommands (deploy, load, chaos, cleanup)."""

from __future__ import annotations

import typer

from kubac.commands import options
from kubac.commands.options import ConfigOption
from kubac.demo import cleanup_demo, deploy_demo, run_chaos, run_load_test
from kubac.utils import parse_duration

app = typer.Typer(help="Deploy and exercise the demo application.", no_args_is_help=True)


@app.command("deploy")
def deploy(
    config: str = ConfigOption,
    wait: bool = typer.Option(True, "--wait/--no-wait", help="Wait for demo pods to be ready"),
) -> None:
    """Deploy the demo app with HPA and PDB."""
    deploy_demo(options.load(config), options.make_client(), wait=wait)


@app.command("load")
def load(
    config: str = ConfigOption,
    duration: str = typer.Option("60s", "--duration", help="Load test duration (e.g. 60s, 2m)"),
    requests: int = typer.Option(100, "--requests", min=1, help="Requests per second"),
) -> None:
    """Generate HTTP load against the demo app to trigger the HPA."""
    try:
        seconds = parse_duration(duration)
    except ValueError as err:
        raise typer.BadParameter(str(err), param_hint="--duration") from err
    run_load_test(options.load(config), options.make_client(), max(1, int(seconds)), requests)


@app.command("chaos")
def chaos(config: str = ConfigOption) -> None:
    """Delete one demo pod to exercise self-healing."""
    run_chaos(options.load(config), options.make_client())


@app.command("cleanup")
def cleanup(config: str = ConfigOption) -> None:
    """Delete the demo namespace."""
    cleanup_demo(options.load(config), options.make_client())
