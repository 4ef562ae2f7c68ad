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

"""Options and helpers shared by the kubac commands."""

from __future__ import annotations

from enum import Enum

import typer

from kubac.config import KubacConfig, load_config, load_runtime_settings, with_overrides
from kubac.constants import DEFAULT_CONFIG_FILE
from kubac.kube import KubeClient


class OutputFormat(str, Enum):
    text = "text"
    json = "json"


class Mode(str, Enum):
    direct = "direct"
    gitops = "gitops"


class ClusterProfile(str, Enum):
    local = "local"
    managed = "managed"
    onprem = "onprem"


ConfigOption = typer.Option(DEFAULT_CONFIG_FILE, "--config", "-c", help="Path to kubac config file")
OutputOption = typer.Option(OutputFormat.text, "--output", "-o", help="Output format")
ModeOption = typer.Option(None, "--mode", help="Installation mode (overrides config)")
ProfileOption = typer.Option(None, "--cluster-profile", help="Cluster profile (overrides config)")


def load(config: str, mode: Mode | None = None, cluster_profile: ClusterProfile | None = None) -> KubacConfig:
    """Load the config file and apply CLI overrides.

    Raises:
        ConfigError: If the file cannot be loaded or an override is invalid.
    """
    cfg = load_config(config)
    return with_overrides(
        cfg,
        mode=mode.value if mode else None,
        cluster_profile=cluster_profile.value if cluster_profile else None,
    )


def make_client() -> KubeClient:
    """Build a cluster accessor using KUBAC_* runtime settings."""
    return KubeClient(timeout=load_runtime_settings().kubectl_timeout)
