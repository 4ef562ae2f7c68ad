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

"""Install step sequencing for direct and GitOps installs, plus init and uninstall."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import sh
from rich.panel import Panel

from kubac import console, logger
from kubac.config import KubacConfig, default_config, write_config
from kubac.constants import (
    CERT_MANAGER_URL,
    DEPLOY_CERT_MANAGER_WEBHOOK,
    DEPLOY_KYVERNO,
    DEPLOY_METRICS_SERVER,
    HELM_CHART_PROMETHEUS_STACK,
    HELM_RELEASE_PROMETHEUS_STACK,
    HELM_REPO_PROMETHEUS,
    HELM_REPO_PROMETHEUS_URL,
    INGRESS_NGINX_URL,
    INIT_GITOPS_SUBDIRS,
    KUBE_STATE_METRICS_KUSTOMIZE,
    KYVERNO_URL,
    METRICS_SERVER_URL,
    NS_CERT_MANAGER,
    NS_KUBAC_SYSTEM,
    NS_KUBE_SYSTEM,
    NS_KYVERNO,
    NS_MONITORING,
    READINESS_POLL_INTERVAL_SECONDS,
    READINESS_TIMEOUT_SECONDS,
)
from kubac.errors import ConfigError, InstallError, KubeError
from kubac.kube import KubeClient
from kubac.poll import Clock, Sleep, wait_until
from kubac.render import (
    baseline_policies,
    create_gitops_dirs,
    network_policies,
    prometheus_stack_manifests,
    render_cluster_index,
    render_flux_kustomizations,
    render_flux_system,
    render_resource_dir,
)
from kubac.utils import release_url, require_command

INSECURE_TLS_ARG = "--kubelet-insecure-tls"


# ============================================================================
# Sequencer
# ============================================================================

@dataclass
class Readiness:
    """A condition that must hold before the next step starts."""

    predicate: Callable[[], bool]
    description: str
    interval: float = READINESS_POLL_INTERVAL_SECONDS
    timeout: float = READINESS_TIMEOUT_SECONDS


@dataclass
class InstallStep:
    """One named, idempotent unit of installation work.

    Attributes:
        name: Step name shown in progress output and errors.
        action: Zero-argument callable doing the work; must be safe to re-run.
        readiness: Optional condition awaited after the action succeeds.
        enabled: Disabled steps are skipped without side effects.
    """

    name: str
    action: Callable[[], object]
    readiness: Readiness | None = None
    enabled: bool = True


def run_steps(
    steps: list[InstallStep],
    *,
    readiness: bool = True,
    sleep: Sleep = time.sleep,
    clock: Clock = time.monotonic,
) -> list[str]:
    """Run steps in order, aborting at the first failure.

    Nothing is rolled back on failure; steps are idempotent so a re-run
    picks up where the last one stopped.

    Args:
        steps: Steps to run, in order.
        readiness: When False, readiness checks are skipped (GitOps rendering).
        sleep: Sleep function used while waiting for readiness.
        clock: Monotonic clock used for readiness budgets.

    Returns:
        Names of the steps that ran.

    Raises:
        InstallError: If an action raises or a readiness check times out.
    """
    completed: list[str] = []
    for step in steps:
        if not step.enabled:
            logger.debug("Skipping disabled step %s", step.name)
            continue
        console.print(f"[yellow]ℹ️  {step.name}...[/yellow]")
        try:
            step.action()
            if readiness and step.readiness is not None:
                check = step.readiness
                logger.info("Waiting for %s", check.description)
                wait_until(check.predicate, check.interval, check.timeout, check.description,
                           sleep=sleep, clock=clock)
        except Exception as err:
            console.print(f"[red]❌ {step.name} failed: {err}[/red]")
            raise InstallError(step.name, err) from err
        console.print(f"[green]✅ {step.name}[/green]")
        completed.append(step.name)
    return completed


def deployment_ready(client: KubeClient, namespace: str, name: str) -> Callable[[], bool]:
    """Build a predicate that holds once a Deployment has all replicas ready."""

    def _ready() -> bool:
        deployment = client.get("deployment", namespace, name)
        wanted = deployment.get("spec", {}).get("replicas", 1)
        return deployment.get("status", {}).get("readyReplicas", 0) == wanted

    return _ready


# ============================================================================
# Platform components
# ============================================================================

@dataclass(frozen=True)
class Component:
    """A platform component installed from a release manifest or kustomize base.

    Attributes:
        name: Step name.
        source: Manifest URL or kustomize remote base.
        enabled: Whether the config turns the component on.
        kustomize: Apply with ``-k`` instead of ``-f``.
        server_side: Apply server-side (large CRDs).
        namespace: Namespace of the Deployment gating readiness.
        deployment: Deployment gating readiness, if any.
    """

    name: str
    source: str
    enabled: bool
    kustomize: bool = False
    server_side: bool = False
    namespace: str | None = None
    deployment: str | None = None


def platform_components(cfg: KubacConfig) -> list[Component]:
    """List manifest-based platform components in install order."""
    platform = cfg.platform
    ingress = platform.ingress
    if ingress.enabled and ingress.provider not in ("", "nginx"):
        logger.warning("Ingress provider %r is not supported; skipping ingress", ingress.provider)
    return [
        Component(
            name="metrics-server",
            source=release_url(METRICS_SERVER_URL, platform.metrics_server.version),
            enabled=platform.metrics_server.enabled,
            namespace=NS_KUBE_SYSTEM,
            deployment=DEPLOY_METRICS_SERVER,
        ),
        Component(
            name="kube-state-metrics",
            source=release_url(KUBE_STATE_METRICS_KUSTOMIZE, platform.kube_state_metrics.version),
            enabled=platform.kube_state_metrics.enabled,
            kustomize=True,
        ),
        Component(
            name="ingress-nginx",
            source=release_url(INGRESS_NGINX_URL, ingress.version),
            enabled=ingress.enabled and ingress.provider in ("", "nginx"),
        ),
        Component(
            name="cert-manager",
            source=release_url(CERT_MANAGER_URL, platform.cert_manager.version),
            enabled=platform.cert_manager.enabled,
            namespace=NS_CERT_MANAGER,
            deployment=DEPLOY_CERT_MANAGER_WEBHOOK,
        ),
        Component(
            name="kyverno",
            source=release_url(KYVERNO_URL, cfg.policy.version),
            enabled=cfg.policy.enabled and cfg.policy.provider == "kyverno",
            server_side=True,
            namespace=NS_KYVERNO,
            deployment=DEPLOY_KYVERNO,
        ),
    ]


def _metrics_server_insecure_tls_patch() -> list[dict]:
    return [{"op": "add", "path": "/spec/template/spec/containers/0/args/-", "value": INSECURE_TLS_ARG}]


def patch_metrics_server_for_local(client: KubeClient) -> bool:
    """Let metrics-server talk to kubelets with self-signed certs (kind, k3d, minikube).

    Returns:
        True if the patch was applied, False if the flag was already present.
    """
    deployment = client.get("deployment", NS_KUBE_SYSTEM, DEPLOY_METRICS_SERVER)
    containers = deployment.get("spec", {}).get("template", {}).get("spec", {}).get("containers", [])
    if containers and INSECURE_TLS_ARG in containers[0].get("args", []):
        return False
    client.patch("deployment", NS_KUBE_SYSTEM, DEPLOY_METRICS_SERVER, _metrics_server_insecure_tls_patch())
    return True


def install_prometheus_stack(cfg: KubacConfig) -> None:
    """Install or upgrade kube-prometheus-stack using Helm.

    Raises:
        RuntimeError: If helm is not installed.
        sh.ErrorReturnCode: If a helm command fails.
    """
    require_command("helm")
    version = cfg.platform.prometheus_stack.version
    console.print(f"[yellow]   Version: {version}[/yellow]")
    sh.helm("repo", "add", HELM_REPO_PROMETHEUS, HELM_REPO_PROMETHEUS_URL, "--force-update")
    sh.helm("repo", "update", HELM_REPO_PROMETHEUS)
    sh.helm(
        "upgrade", "--install", HELM_RELEASE_PROMETHEUS_STACK,
        HELM_CHART_PROMETHEUS_STACK,
        "--version", version,
        "--namespace", NS_MONITORING,
        "--create-namespace",
        "--wait",
        "--timeout", "10m",
    )


# ============================================================================
# Step builders
# ============================================================================

def _component_step(client: KubeClient, component: Component) -> InstallStep:
    readiness = None
    if component.deployment and component.namespace:
        readiness = Readiness(
            predicate=deployment_ready(client, component.namespace, component.deployment),
            description=f"deployment {component.namespace}/{component.deployment}",
        )
    return InstallStep(
        name=component.name,
        action=lambda: client.apply(component.source, kustomize=component.kustomize,
                                    server_side=component.server_side),
        readiness=readiness,
        enabled=component.enabled,
    )


def build_direct_steps(cfg: KubacConfig, client: KubeClient) -> list[InstallStep]:
    """Build the ordered steps that install the platform straight into the cluster."""
    steps = [InstallStep("namespace", lambda: client.ensure_namespace(NS_KUBAC_SYSTEM))]
    components = {c.name: c for c in platform_components(cfg)}

    metrics = _component_step(client, components["metrics-server"])
    if cfg.cluster_profile == "local":
        apply_metrics = metrics.action

        def _apply_and_patch() -> None:
            apply_metrics()
            patch_metrics_server_for_local(client)

        metrics.action = _apply_and_patch
    steps.append(metrics)

    for name in ("kube-state-metrics", "ingress-nginx", "cert-manager"):
        steps.append(_component_step(client, components[name]))

    steps.append(InstallStep(
        "prometheus-stack",
        lambda: install_prometheus_stack(cfg),
        enabled=cfg.platform.prometheus_stack.enabled,
    ))
    steps.append(_component_step(client, components["kyverno"]))
    steps.append(InstallStep(
        "baseline-policies",
        lambda: client.apply_manifests(baseline_policies(cfg)),
        enabled=cfg.policy.enabled,
    ))
    steps.append(InstallStep(
        "network-policies",
        lambda: client.apply_manifests(network_policies(cfg)),
        enabled=cfg.network_policy.enabled,
    ))
    return steps


def _platform_patches(cfg: KubacConfig) -> list[dict]:
    if cfg.cluster_profile != "local" or not cfg.platform.metrics_server.enabled:
        return []
    return [{
        "target": {"kind": "Deployment", "name": DEPLOY_METRICS_SERVER, "namespace": NS_KUBE_SYSTEM},
        "patch": (
            "- op: add\n"
            "  path: /spec/template/spec/containers/0/args/-\n"
            f"  value: {INSECURE_TLS_ARG}\n"
        ),
    }]


def build_gitops_steps(cfg: KubacConfig, dest: Path) -> list[InstallStep]:
    """Build the ordered steps that render the Flux repository layout under *dest*."""

    def _render_platform() -> list[Path]:
        remote = [c.source for c in platform_components(cfg) if c.enabled]
        manifests = prometheus_stack_manifests(cfg) if cfg.platform.prometheus_stack.enabled else []
        return render_resource_dir(dest / "platform", manifests, remote=remote, patches=_platform_patches(cfg))

    def _render_kustomizations() -> None:
        render_cluster_index(dest, render_flux_kustomizations(cfg, dest))

    return [
        InstallStep("directories", lambda: create_gitops_dirs(dest)),
        InstallStep("flux-system", lambda: render_flux_system(cfg, dest)),
        InstallStep("platform", _render_platform),
        InstallStep(
            "policies",
            lambda: render_resource_dir(dest / "policies", baseline_policies(cfg)),
            enabled=cfg.policy.enabled,
        ),
        InstallStep(
            "netpol",
            lambda: render_resource_dir(dest / "netpol", network_policies(cfg)),
            enabled=cfg.network_policy.enabled,
        ),
        InstallStep("kustomizations", _render_kustomizations),
    ]


# ============================================================================
# Workflows
# ============================================================================

def install(
    cfg: KubacConfig,
    client: KubeClient,
    base_dir: Path = Path("."),
    sleep: Sleep = time.sleep,
    clock: Clock = time.monotonic,
) -> list[str]:
    """Install the platform in the configured mode.

    Args:
        cfg: Loaded configuration (after CLI overrides).
        client: Cluster accessor, used in direct mode only.
        base_dir: Directory the GitOps path is resolved against.
        sleep: Sleep function used while waiting for readiness.
        clock: Monotonic clock used for readiness budgets.

    Returns:
        Names of the steps that ran.

    Raises:
        InstallError: If any step fails.
    """
    console.print(Panel.fit(
        f"Installing kubac platform (mode: {cfg.mode}, profile: {cfg.cluster_profile})",
        style="bold blue",
    ))
    if cfg.mode == "gitops":
        dest = base_dir / cfg.gitops_path()
        completed = run_steps(build_gitops_steps(cfg, dest), readiness=False, sleep=sleep, clock=clock)
        console.print(f"[green]✅ GitOps manifests written to {dest}[/green]")
        console.print("[yellow]ℹ️  Next steps:[/yellow]")
        console.print(f"   1. Commit and push {cfg.gitops_path()} to {cfg.gitops.repo_url or 'your repository'}")
        console.print(
            f"   2. flux bootstrap git --url={cfg.gitops.repo_url or '<repo-url>'} "
            f"--branch={cfg.gitops.branch} --path={cfg.gitops_path()}"
        )
        return completed

    completed = run_steps(build_direct_steps(cfg, client), sleep=sleep, clock=clock)
    console.print("[green]✅ Platform installed[/green]")
    return completed


def uninstall(cfg: KubacConfig, client: KubeClient) -> list[str]:
    """Delete the namespaces kubac created.

    Missing namespaces are ignored; other failures are reported and the
    remaining namespaces are still deleted.

    Returns:
        Namespaces that were deleted.
    """
    console.print(Panel.fit("Uninstalling kubac platform", style="bold blue"))
    deleted = []
    for namespace in (NS_KUBAC_SYSTEM, NS_KYVERNO, cfg.demo.namespace):
        if not namespace:
            continue
        try:
            if client.delete_namespace(namespace):
                deleted.append(namespace)
                console.print(f"[green]✅ Deleted namespace {namespace}[/green]")
            else:
                console.print(f"[yellow]   Namespace {namespace} not found[/yellow]")
        except KubeError as err:
            console.print(f"[yellow]⚠️  Failed to delete namespace {namespace}: {err}[/yellow]")
            logger.warning("Failed to delete namespace %s: %s", namespace, err)
    return deleted


def init_project(
    config_path: Path,
    cluster_profile: str = "local",
    mode: str = "direct",
    base_dir: Path = Path("."),
) -> KubacConfig:
    """Write a default kubac.yaml and, in GitOps mode, scaffold the repository layout.

    Args:
        config_path: Where to write the config file.
        cluster_profile: Cluster profile for the defaults.
        mode: Installation mode for the defaults.
        base_dir: Directory the GitOps path is resolved against.

    Returns:
        The configuration that was written.

    Raises:
        ConfigError: If the file already exists, the profile or mode is
            invalid, or the file cannot be written.
    """
    if config_path.exists():
        raise ConfigError(f"{config_path} already exists, refusing to overwrite")
    cfg = default_config(cluster_profile, mode)
    write_config(config_path, cfg)
    console.print(
        f"[green]✅ Created {config_path} with profile '{cluster_profile}' and mode '{mode}'[/green]"
    )
    if mode == "gitops":
        dest = base_dir / cfg.gitops_path()
        create_gitops_dirs(dest, INIT_GITOPS_SUBDIRS)
        console.print(f"[green]✅ Created GitOps directory structure at {dest}[/green]")
    return cfg
