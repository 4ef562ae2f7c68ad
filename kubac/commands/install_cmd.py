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

"""Install and uninstall commands."""

from __future__ import annotations

import typer

from kubac import console
from kubac.commands import options
from kubac.commands.options import ClusterProfile, ConfigOption, Mode, ModeOption, ProfileOption
from kubac.config import display_config
from kubac.installer import install as run_install
from kubac.installer import uninstall as run_uninstall


def install(
    config: str = ConfigOption,
    mode: Mode | None = ModeOption,
    cluster_profile: ClusterProfile | None = ProfileOption,
) -> None:
    """Install the kubac baseline platform (direct apply or GitOps render)."""
    cfg = options.load(config, mode, cluster_profile)
    display_config(cfg)
    client = options.make_client()
    run_install(cfg, client)
    console.print("\n[green]✓ Installation completed successfully![/green]")
    console.print("Next: run 'kubac verify' to validate the platform")


def uninstall(
    config: str = ConfigOption,
    force: bool = typer.Option(False, "--force", help="Skip confirmation prompt"),
) -> None:
    """Remove the namespaces kubac installed into the cluster."""
    cfg = options.load(config)
    if not force:
        console.print("[yellow]⚠️  This will remove all kubac components from the cluster.[/yellow]")
        if not typer.confirm("Are you sure?", default=False):
            console.print("Uninstall cancelled.")
            raise typer.Exit(0)
    run_uninstall(cfg, options.make_client())
    console.print("\n[green]✓ Uninstall completed successfully![/green]")
