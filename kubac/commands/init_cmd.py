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

"""Project initialization command."""

from __future__ import annotations

from pathlib import Path

import typer

from kubac import console
from kubac.commands.options import ClusterProfile, Mode
from kubac.constants import DEFAULT_CONFIG_FILE
from kubac.installer import init_project


def init(
    cluster_profile: ClusterProfile = typer.Option(ClusterProfile.local, "--cluster-profile", help="Cluster profile"),
    mode: Mode = typer.Option(Mode.direct, "--mode", help="Installation mode"),
    config: Path = typer.Option(Path(DEFAULT_CONFIG_FILE), "--config", "-c", help="Config file to create"),
) -> None:
    """Create kubac.yaml with defaults for the chosen profile and mode."""
    init_project(config, cluster_profile.value, mode.value)
    console.print("\nNext steps:")
    console.print(f"  1. Review and customize {config}")
    console.print("  2. Run 'kubac doctor' to verify cluster access")
    console.print("  3. Run 'kubac install' to deploy the platform")
