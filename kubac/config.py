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

"""Configuration models, defaults, and kubac.yaml load/write."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.panel import Panel

from kubac import console
from kubac.constants import (
    DEFAULT_GITOPS_PATH,
    KUBECTL_TIMEOUT_SECONDS,
    NS_KUBAC_SYSTEM,
    NS_KUBE_PUBLIC,
    NS_KUBE_SYSTEM,
    PROBE_HPA_SCALE,
    PROBE_NETWORK_DENY,
    PROBE_POD_SELFHEAL,
    PROBE_POLICY_DENY,
    SELFHEAL_POLL_INTERVAL,
    SELFHEAL_TIMEOUT,
    VERIFY_TIMEOUT,
)
from kubac.errors import ConfigError
from kubac.utils import parse_duration

ClusterProfile = Literal["local", "managed", "onprem"]
InstallMode = Literal["direct", "gitops"]


# ============================================================================
# kubac.yaml sections
# ============================================================================

class _Section(BaseModel):
    """Base for all config sections: camelCase keys on disk, unknown keys ignored."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class GitOpsConfig(_Section):
    provider: str = ""
    repo_url: str = Field(default="", alias="repoURL")
    branch: str = ""
    path: str = ""


class ComponentToggle(_Section):
    enabled: bool = False
    version: str = ""


class IngressConfig(_Section):
    enabled: bool = False
    provider: str = ""
    version: str = ""


class PlatformConfig(_Section):
    metrics_server: ComponentToggle = Field(default_factory=ComponentToggle)
    kube_state_metrics: ComponentToggle = Field(default_factory=ComponentToggle)
    prometheus_stack: ComponentToggle = Field(default_factory=ComponentToggle)
    ingress: IngressConfig = Field(default_factory=IngressConfig)
    cert_manager: ComponentToggle = Field(default_factory=ComponentToggle)


class PolicyConfig(_Section):
    enabled: bool = False
    provider: str = ""
    version: str = ""
    pod_security_standard: str = ""
    custom_policies: list[str] = Field(default_factory=list)


class NetworkPolicyConfig(_Section):
    enabled: bool = False
    default_deny: bool = False
    system_namespaces: list[str] = Field(default_factory=list)


class HPAToggle(_Section):
    enabled: bool = False


class NodeAutoscalerConfig(_Section):
    enabled: bool = False
    provider: str = ""
    version: str = ""


class AutoscalingConfig(_Section):
    hpa: HPAToggle = Field(default_factory=HPAToggle)
    node_autoscaler: NodeAutoscalerConfig = Field(default_factory=NodeAutoscalerConfig)


class ResourceList(_Section):
    cpu: str = ""
    memory: str = ""


class ResourcesSpec(_Section):
    requests: ResourceList = Field(default_factory=ResourceList)
    limits: ResourceList = Field(default_factory=ResourceList)


class HPASpec(_Section):
    min_replicas: int = Field(default=0, ge=0)
    max_replicas: int = Field(default=0, ge=0)
    target_cpu_utilization: int = Field(default=0, ge=0, le=100, alias="targetCPUUtilization")


class PDBSpec(_Section):
    min_available: int = Field(default=0, ge=0)


class DemoConfig(_Section):
    namespace: str = ""
    replicas: int = Field(default=0, ge=0)
    resources: ResourcesSpec = Field(default_factory=ResourcesSpec)
    hpa: HPASpec = Field(default_factory=HPASpec)
    pdb: PDBSpec = Field(default_factory=PDBSpec)


class VerifyConfig(_Section):
    """Verification settings.

    Attributes:
        timeout: Overall budget for one verification run.
        parallel: Accepted for compatibility; probes always run sequentially.
        tests: Probe names to run, in order.
        poll_interval: Interval between self-heal recovery checks.
        self_heal_timeout: How long to wait for a deleted pod to be replaced.
    """

    timeout: str = VERIFY_TIMEOUT
    parallel: bool = False
    tests: list[str] = Field(default_factory=list)
    poll_interval: str = SELFHEAL_POLL_INTERVAL
    self_heal_timeout: str = SELFHEAL_TIMEOUT

    @field_validator("timeout", "poll_interval", "self_heal_timeout")
    @classmethod
    def _check_duration(cls, value: str) -> str:
        parse_duration(value)
        return value

    @field_validator("poll_interval")
    @classmethod
    def _check_interval(cls, value: str) -> str:
        if parse_duration(value) <= 0:
            raise ValueError("pollInterval must be positive")
        return value


class KubacConfig(_Section):
    """Top-level kubac.yaml document."""

    cluster_profile: ClusterProfile = "local"
    mode: InstallMode = "direct"
    gitops: GitOpsConfig = Field(default_factory=GitOpsConfig)
    platform: PlatformConfig = Field(default_factory=PlatformConfig)
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    network_policy: NetworkPolicyConfig = Field(default_factory=NetworkPolicyConfig)
    autoscaling: AutoscalingConfig = Field(default_factory=AutoscalingConfig)
    demo: DemoConfig = Field(default_factory=DemoConfig)
    verify: VerifyConfig = Field(default_factory=VerifyConfig)

    def gitops_path(self) -> str:
        """Return the GitOps output directory, falling back to the default layout."""
        return self.gitops.path or DEFAULT_GITOPS_PATH


# ============================================================================
# Runtime settings
# ============================================================================

class RuntimeSettings(BaseSettings):
    """Process-level settings, auto-loaded from KUBAC_* env vars.

    Attributes:
        kubectl_timeout: Maximum seconds a single kubectl call may take.
        log_level: Logging level used when --verbose is not given.
    """

    model_config = SettingsConfigDict(env_prefix="KUBAC_", extra="ignore")

    kubectl_timeout: int = Field(default=KUBECTL_TIMEOUT_SECONDS, ge=1, le=3600)
    log_level: str = Field(default="INFO", pattern=r"^(?i:debug|info|warning|error|critical)$")


def load_runtime_settings() -> RuntimeSettings:
    """Read KUBAC_* settings from the environment.

    Raises:
        ConfigError: If an environment value is invalid.
    """
    try:
        return RuntimeSettings()
    except ValidationError as err:
        raise ConfigError(f"invalid KUBAC_* environment settings: {err}") from err


# ============================================================================
# Defaults
# ============================================================================

def default_config(profile: str = "local", mode: str = "direct") -> KubacConfig:
    """Build the opinionated default configuration.

    Returns a fresh object on every call; callers may mutate it freely.

    Args:
        profile: Cluster profile (local, managed, onprem).
        mode: Installation mode (direct, gitops).

    Returns:
        A fully populated configuration.

    Raises:
        ConfigError: If profile or mode is not a known value.
    """
    data: dict[str, Any] = {
        "clusterProfile": profile,
        "mode": mode,
        "gitops": {
            "provider": "flux",
            "repoURL": "",
            "branch": "main",
            "path": DEFAULT_GITOPS_PATH,
        },
        "platform": {
            "metricsServer": {"enabled": True, "version": "v0.7.0"},
            "kubeStateMetrics": {"enabled": True, "version": "v2.10.1"},
            "prometheusStack": {"enabled": False, "version": "55.5.0"},
            "ingress": {"enabled": False, "provider": "nginx", "version": "v1.9.5"},
            "certManager": {"enabled": False, "version": "v1.13.3"},
        },
        "policy": {
            "enabled": True,
            "provider": "kyverno",
            "version": "v1.11.4",
            "podSecurityStandard": "restricted",
            "customPolicies": [
                "require-non-root-user",
                "require-ro-rootfs",
                "disallow-privileged",
            ],
        },
        "networkPolicy": {
            "enabled": True,
            "defaultDeny": True,
            "systemNamespaces": [NS_KUBE_SYSTEM, NS_KUBE_PUBLIC, NS_KUBAC_SYSTEM],
        },
        "autoscaling": {
            "hpa": {"enabled": True},
            "nodeAutoscaler": {"enabled": False, "provider": "cluster-autoscaler", "version": "v1.29.0"},
        },
        "demo": {
            "namespace": "kubac-demo",
            "replicas": 2,
            "resources": {
                "requests": {"cpu": "100m", "memory": "128Mi"},
                "limits": {"cpu": "200m", "memory": "256Mi"},
            },
            "hpa": {"minReplicas": 2, "maxReplicas": 10, "targetCPUUtilization": 50},
            "pdb": {"minAvailable": 1},
        },
        "verify": {
            "timeout": VERIFY_TIMEOUT,
            "parallel": True,
            "tests": [PROBE_POD_SELFHEAL, PROBE_HPA_SCALE, PROBE_POLICY_DENY, PROBE_NETWORK_DENY],
            "pollInterval": SELFHEAL_POLL_INTERVAL,
            "selfHealTimeout": SELFHEAL_TIMEOUT,
        },
    }
    return _validate(data)


def _validate(data: dict[str, Any]) -> KubacConfig:
    try:
        return KubacConfig.model_validate(data)
    except ValidationError as err:
        raise ConfigError(f"invalid configuration: {err}") from err


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge *override* into a copy of *base*; lists and scalars replace."""
    merged = dict(base)
    for key, value in override.items():
        if value is None and isinstance(merged.get(key), dict):
            continue
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# ============================================================================
# Load / write
# ============================================================================

def load_config(path: str | Path) -> KubacConfig:
    """Load kubac.yaml, filling keys missing from the file with defaults.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        The validated configuration.

    Raises:
        ConfigError: If the file is missing, unparsable, or invalid.
    """
    path = Path(path)
    try:
        raw = yaml.safe_load(path.read_text())
    except OSError as err:
        raise ConfigError(f"failed to read config file {path}: {err}") from err
    except yaml.YAMLError as err:
        raise ConfigError(f"failed to parse config file {path}: {err}") from err

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"config file {path} must contain a mapping at the top level")

    profile = raw.get("clusterProfile") or "local"
    mode = raw.get("mode") or "direct"
    defaults = default_config(profile, mode).model_dump(by_alias=True)
    return _validate(_deep_merge(defaults, raw))


def write_config(path: str | Path, cfg: KubacConfig) -> None:
    """Write the configuration as YAML with camelCase keys.

    Raises:
        ConfigError: If the file cannot be written.
    """
    data = yaml.safe_dump(cfg.model_dump(by_alias=True), sort_keys=False, default_flow_style=False)
    try:
        Path(path).write_text(data)
    except OSError as err:
        raise ConfigError(f"failed to write config file {path}: {err}") from err


def with_overrides(cfg: KubacConfig, mode: str | None = None, cluster_profile: str | None = None) -> KubacConfig:
    """Apply CLI flag overrides (CLI > file > default).

    Raises:
        ConfigError: If an override is not a valid choice.
    """
    update: dict[str, Any] = {}
    if mode:
        update["mode"] = mode
    if cluster_profile:
        update["clusterProfile"] = cluster_profile
    if not update:
        return cfg
    return _validate({**cfg.model_dump(by_alias=True), **update})


# ============================================================================
# Display
# ============================================================================

def display_config(cfg: KubacConfig) -> None:
    """Print the parts of the configuration that drive an install."""
    console.print(Panel.fit("Configuration", style="bold blue"))
    console.print(f"  cluster_profile : {cfg.cluster_profile}")
    console.print(f"  mode            : {cfg.mode}")
    if cfg.mode == "gitops":
        console.print(f"  gitops_path     : {cfg.gitops_path()}")
        console.print(f"  repo_url        : {cfg.gitops.repo_url or '(unset)'}")
    platform = cfg.platform
    for label, toggle in (
        ("metrics-server", platform.metrics_server),
        ("kube-state-metrics", platform.kube_state_metrics),
        ("ingress", platform.ingress),
        ("cert-manager", platform.cert_manager),
        ("prometheus-stack", platform.prometheus_stack),
    ):
        state = toggle.version if toggle.enabled else "disabled"
        console.print(f"  {label:<18}: {state}")
    console.print(f"  {'policy':<18}: {cfg.policy.version if cfg.policy.enabled else 'disabled'}")
    console.print(f"  {'network-policy':<18}: {'enabled' if cfg.network_policy.enabled else 'disabled'}")
