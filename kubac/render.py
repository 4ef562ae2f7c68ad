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

"""Manifest builders for policies, network policies, the demo app, and GitOps trees."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import yaml

from kubac import logger
from kubac.config import KubacConfig
from kubac.constants import (
    DEMO_APP_NAME,
    DEMO_CONTAINER_PORT,
    DEMO_IMAGE,
    DEMO_LABEL_KEY,
    DEMO_RUN_AS_USER,
    DEMO_SERVICE_PORT,
    FLUX_HELM_API,
    FLUX_KUSTOMIZE_API,
    FLUX_SOURCE_API,
    GITOPS_SUBDIRS,
    HELM_CHART_PROMETHEUS_STACK,
    HELM_RELEASE_PROMETHEUS_STACK,
    HELM_REPO_PROMETHEUS,
    HELM_REPO_PROMETHEUS_URL,
    LOAD_TEST_IMAGE,
    LOAD_TEST_JOB_NAME,
    LOAD_TEST_RUN_AS_USER,
    MANAGED_BY_LABEL,
    MANAGED_BY_VALUE,
    NS_FLUX_SYSTEM,
    NS_KUBE_SYSTEM,
    NS_KYVERNO,
    NS_MONITORING,
)

Manifest = dict[str, Any]

KUSTOMIZE_API = "kustomize.config.k8s.io/v1beta1"


def _labels(extra: dict[str, str] | None = None) -> dict[str, str]:
    labels = {MANAGED_BY_LABEL: MANAGED_BY_VALUE}
    if extra:
        labels.update(extra)
    return labels


def namespace_manifest(name: str) -> Manifest:
    return {"apiVersion": "v1", "kind": "Namespace", "metadata": {"name": name, "labels": _labels()}}


def dump_manifests(manifests: list[Manifest]) -> str:
    """Serialize manifests as one multi-document YAML stream."""
    return "".join("---\n" + yaml.safe_dump(m, sort_keys=False, default_flow_style=False) for m in manifests)


def write_manifests(path: Path, manifests: list[Manifest]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump_manifests(manifests))
    return path


# ============================================================================
# Kyverno baseline policies
# ============================================================================

def _restricted_container_rule(name: str, message: str, container_pattern: dict) -> dict:
    return {
        "name": name,
        "match": {"any": [{"resources": {"kinds": ["Pod"]}}]},
        "validate": {
            "message": message,
            "pattern": {"spec": {"containers": [container_pattern]}},
        },
    }


_POLICY_RULES: dict[str, tuple[str, dict]] = {
    "disallow-privileged": (
        "Privileged mode is disallowed.",
        _restricted_container_rule(
            "privileged-containers",
            "Privileged mode is disallowed. securityContext.privileged must be unset or false.",
            {"=(securityContext)": {"=(privileged)": "false"}},
        ),
    ),
    "require-non-root-user": (
        "Containers must run as a non-root user.",
        _restricted_container_rule(
            "run-as-non-root",
            "Running as root is not allowed. securityContext.runAsNonRoot must be true.",
            {"securityContext": {"runAsNonRoot": True}},
        ),
    ),
    "require-ro-rootfs": (
        "Root filesystems must be read-only.",
        _restricted_container_rule(
            "validate-readOnlyRootFilesystem",
            "Root filesystem must be read-only. securityContext.readOnlyRootFilesystem must be true.",
            {"securityContext": {"readOnlyRootFilesystem": True}},
        ),
    ),
}


def _cluster_policy(name: str, description: str, rules: list[dict], excluded: list[str]) -> Manifest:
    for rule in rules:
        rule["exclude"] = {"any": [{"resources": {"namespaces": excluded}}]}
    return {
        "apiVersion": "kyverno.io/v1",
        "kind": "ClusterPolicy",
        "metadata": {
            "name": name,
            "labels": _labels(),
            "annotations": {"policies.kyverno.io/description": description},
        },
        "spec": {"validationFailureAction": "Enforce", "background": True, "rules": rules},
    }


def baseline_policies(cfg: KubacConfig) -> list[Manifest]:
    """Build Kyverno ClusterPolicies for the pod security level and custom policies.

    System namespaces and the Kyverno namespace are excluded from every rule.
    Unknown custom policy names are logged and skipped.
    """
    excluded = sorted({*cfg.network_policy.system_namespaces, NS_KUBE_SYSTEM, NS_KYVERNO})
    policies: list[Manifest] = []

    level = cfg.policy.pod_security_standard
    if level in ("baseline", "restricted"):
        rule = {
            "name": f"pod-security-{level}",
            "match": {"any": [{"resources": {"kinds": ["Pod"]}}]},
            "validate": {"podSecurity": {"level": level, "version": "latest"}},
        }
        policies.append(_cluster_policy(
            f"pod-security-{level}", f"Enforce the Pod Security Standard '{level}'.", [rule], excluded))
    elif level and level != "privileged":
        logger.warning("Unknown pod security standard %r; no pod security policy rendered", level)

    for name in cfg.policy.custom_policies:
        if name not in _POLICY_RULES:
            logger.warning("Unknown custom policy %r; skipping", name)
            continue
        description, rule = _POLICY_RULES[name]
        policies.append(_cluster_policy(name, description, [copy.deepcopy(rule)], excluded))
    return policies


# ============================================================================
# Network policies
# ============================================================================

def netpol_namespaces(cfg: KubacConfig) -> list[str]:
    """Namespaces that receive network policies (system namespaces are exempt)."""
    namespace = cfg.demo.namespace
    if not namespace or namespace in cfg.network_policy.system_namespaces:
        return []
    return [namespace]


def network_policies(cfg: KubacConfig) -> list[Manifest]:
    """Build the namespaces plus default-deny, same-namespace, and DNS policies."""
    manifests: list[Manifest] = []
    for namespace in netpol_namespaces(cfg):
        manifests.append(namespace_manifest(namespace))

        def _policy(name: str, spec: dict, ns: str = namespace) -> Manifest:
            return {
                "apiVersion": "networking.k8s.io/v1",
                "kind": "NetworkPolicy",
                "metadata": {"name": name, "namespace": ns, "labels": _labels()},
                "spec": {"podSelector": {}, **spec},
            }

        if cfg.network_policy.default_deny:
            manifests.append(_policy("default-deny-all", {"policyTypes": ["Ingress", "Egress"]}))
        manifests.append(_policy("allow-same-namespace", {
            "policyTypes": ["Ingress", "Egress"],
            "ingress": [{"from": [{"podSelector": {}}]}],
            "egress": [{"to": [{"podSelector": {}}]}],
        }))
        manifests.append(_policy("allow-dns", {
            "policyTypes": ["Egress"],
            "egress": [{
                "to": [{"namespaceSelector": {"matchLabels": {"kubernetes.io/metadata.name": NS_KUBE_SYSTEM}}}],
                "ports": [{"protocol": "UDP", "port": 53}, {"protocol": "TCP", "port": 53}],
            }],
        }))
    return manifests


# ============================================================================
# Demo application
# ============================================================================

def _hardened_security_context(run_as_user: int) -> dict:
    return {
        "runAsNonRoot": True,
        "runAsUser": run_as_user,
        "readOnlyRootFilesystem": True,
        "allowPrivilegeEscalation": False,
        "privileged": False,
        "capabilities": {"drop": ["ALL"]},
        "seccompProfile": {"type": "RuntimeDefault"},
    }


def demo_manifests(cfg: KubacConfig) -> list[Manifest]:
    """Build the demo Deployment, Service, HPA and PDB from the demo config."""
    demo = cfg.demo
    ns = demo.namespace
    selector = {DEMO_LABEL_KEY: DEMO_APP_NAME}
    resources = {
        "requests": {"cpu": demo.resources.requests.cpu, "memory": demo.resources.requests.memory},
        "limits": {"cpu": demo.resources.limits.cpu, "memory": demo.resources.limits.memory},
    }
    deployment = {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": DEMO_APP_NAME, "namespace": ns, "labels": _labels(selector)},
        "spec": {
            "replicas": demo.replicas,
            "selector": {"matchLabels": selector},
            "template": {
                "metadata": {"labels": selector},
                "spec": {
                    "containers": [{
                        "name": DEMO_APP_NAME,
                        "image": DEMO_IMAGE,
                        "ports": [{"containerPort": DEMO_CONTAINER_PORT, "name": "http"}],
                        "resources": resources,
                        "securityContext": _hardened_security_context(DEMO_RUN_AS_USER),
                        "readinessProbe": {"httpGet": {"path": "/", "port": "http"}, "periodSeconds": 5},
                        "volumeMounts": [{"name": "tmp", "mountPath": "/tmp"}],
                    }],
                    "volumes": [{"name": "tmp", "emptyDir": {}}],
                },
            },
        },
    }
    service = {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {"name": DEMO_APP_NAME, "namespace": ns, "labels": _labels(selector)},
        "spec": {"selector": selector, "ports": [{"port": DEMO_SERVICE_PORT, "targetPort": "http"}]},
    }
    manifests = [deployment, service]
    if cfg.autoscaling.hpa.enabled:
        manifests.append({
            "apiVersion": "autoscaling/v2",
            "kind": "HorizontalPodAutoscaler",
            "metadata": {"name": DEMO_APP_NAME, "namespace": ns, "labels": _labels(selector)},
            "spec": {
                "scaleTargetRef": {"apiVersion": "apps/v1", "kind": "Deployment", "name": DEMO_APP_NAME},
                "minReplicas": demo.hpa.min_replicas,
                "maxReplicas": demo.hpa.max_replicas,
                "metrics": [{
                    "type": "Resource",
                    "resource": {
                        "name": "cpu",
                        "target": {"type": "Utilization", "averageUtilization": demo.hpa.target_cpu_utilization},
                    },
                }],
            },
        })
    manifests.append({
        "apiVersion": "policy/v1",
        "kind": "PodDisruptionBudget",
        "metadata": {"name": DEMO_APP_NAME, "namespace": ns, "labels": _labels(selector)},
        "spec": {"minAvailable": demo.pdb.min_available, "selector": {"matchLabels": selector}},
    })
    return manifests


def load_test_job(cfg: KubacConfig, duration_seconds: int, requests_per_second: int) -> Manifest:
    """Build a Job that sends *requests_per_second* requests to the demo Service."""
    target = f"http://{DEMO_APP_NAME}.{cfg.demo.namespace}.svc.cluster.local:{DEMO_SERVICE_PORT}/"
    script = (
        f"end=$(( $(date +%s) + {duration_seconds} )); "
        "while [ $(date +%s) -lt $end ]; do "
        f"for i in $(seq 1 {requests_per_second}); do wget -q -O /dev/null {target} & done; "
        "wait; sleep 1; done"
    )
    return {
        "apiVersion": "batch/v1",
        "kind": "Job",
        "metadata": {"name": LOAD_TEST_JOB_NAME, "namespace": cfg.demo.namespace, "labels": _labels()},
        "spec": {
            "backoffLimit": 0,
            "ttlSecondsAfterFinished": 300,
            "template": {
                "metadata": {"labels": {DEMO_LABEL_KEY: LOAD_TEST_JOB_NAME}},
                "spec": {
                    "restartPolicy": "Never",
                    "containers": [{
                        "name": "load",
                        "image": LOAD_TEST_IMAGE,
                        "command": ["/bin/sh", "-c", script],
                        "resources": {"requests": {"cpu": "50m", "memory": "32Mi"},
                                      "limits": {"cpu": "200m", "memory": "64Mi"}},
                        "securityContext": _hardened_security_context(LOAD_TEST_RUN_AS_USER),
                    }],
                },
            },
        },
    }


def prometheus_stack_manifests(cfg: KubacConfig) -> list[Manifest]:
    """Build the Flux HelmRepository and HelmRelease for kube-prometheus-stack."""
    return [
        namespace_manifest(NS_MONITORING),
        {
            "apiVersion": FLUX_SOURCE_API,
            "kind": "HelmRepository",
            "metadata": {"name": HELM_REPO_PROMETHEUS, "namespace": NS_FLUX_SYSTEM},
            "spec": {"interval": "1h", "url": HELM_REPO_PROMETHEUS_URL},
        },
        {
            "apiVersion": FLUX_HELM_API,
            "kind": "HelmRelease",
            "metadata": {"name": HELM_RELEASE_PROMETHEUS_STACK, "namespace": NS_MONITORING},
            "spec": {
                "interval": "30m",
                "chart": {
                    "spec": {
                        "chart": HELM_CHART_PROMETHEUS_STACK.split("/", 1)[1],
                        "version": cfg.platform.prometheus_stack.version,
                        "sourceRef": {
                            "kind": "HelmRepository",
                            "name": HELM_REPO_PROMETHEUS,
                            "namespace": NS_FLUX_SYSTEM,
                        },
                    },
                },
                "install": {"createNamespace": True},
            },
        },
    ]


# ============================================================================
# GitOps (Flux) tree
# ============================================================================

def _flux_kustomization(name: str, path: str, depends_on: str | None = None) -> Manifest:
    spec: dict[str, Any] = {
        "interval": "10m0s",
        "path": path,
        "prune": True,
        "sourceRef": {"kind": "GitRepository", "name": NS_FLUX_SYSTEM},
    }
    if depends_on:
        spec["dependsOn"] = [{"name": depends_on}]
    return {
        "apiVersion": FLUX_KUSTOMIZE_API,
        "kind": "Kustomization",
        "metadata": {"name": name, "namespace": NS_FLUX_SYSTEM},
        "spec": spec,
    }


def kustomization(resources: list[str], patches: list[dict] | None = None) -> Manifest:
    doc: Manifest = {"apiVersion": KUSTOMIZE_API, "kind": "Kustomization", "resources": resources}
    if patches:
        doc["patches"] = patches
    return doc


def create_gitops_dirs(dest: Path, subdirs: tuple[str, ...] = GITOPS_SUBDIRS) -> list[Path]:
    """Create the GitOps directory layout under *dest*."""
    created = []
    for sub in subdirs:
        path = dest / sub
        path.mkdir(parents=True, exist_ok=True)
        created.append(path)
    return created


def render_flux_system(cfg: KubacConfig, dest: Path) -> list[Path]:
    """Write the Flux bootstrap placeholder and the GitRepository sync manifests."""
    flux_dir = dest / "flux-system"
    components = flux_dir / "gotk-components.yaml"
    flux_dir.mkdir(parents=True, exist_ok=True)
    components.write_text(
        dump_manifests([{"apiVersion": "v1", "kind": "Namespace", "metadata": {"name": NS_FLUX_SYSTEM}}])
        + "# Flux toolkit components\n"
        + "# Install via: flux install --export > gotk-components.yaml\n"
    )
    sync = write_manifests(flux_dir / "gotk-sync.yaml", [
        {
            "apiVersion": FLUX_SOURCE_API,
            "kind": "GitRepository",
            "metadata": {"name": NS_FLUX_SYSTEM, "namespace": NS_FLUX_SYSTEM},
            "spec": {
                "interval": "1m0s",
                "ref": {"branch": cfg.gitops.branch},
                "url": cfg.gitops.repo_url,
            },
        },
        _flux_kustomization(NS_FLUX_SYSTEM, f"./{cfg.gitops_path()}"),
    ])
    index = write_manifests(flux_dir / "kustomization.yaml", [kustomization([components.name, sync.name])])
    return [components, sync, index]


def render_resource_dir(
    path: Path,
    manifests: list[Manifest],
    remote: list[str] | None = None,
    patches: list[dict] | None = None,
) -> list[Path]:
    """Write one file per manifest into *path* plus a kustomization.yaml listing them.

    Args:
        path: Target directory.
        manifests: In-memory manifests, one file each.
        remote: Extra kustomize resources (release URLs) listed before local files.
        patches: Kustomize patches applied on top of the resources.
    """
    path.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for manifest in manifests:
        kind = manifest["kind"].lower()
        name = manifest["metadata"]["name"]
        namespace = manifest["metadata"].get("namespace")
        filename = f"{kind}-{namespace}-{name}.yaml" if namespace else f"{kind}-{name}.yaml"
        written.append(write_manifests(path / filename, [manifest]))
    resources = list(remote or []) + [p.name for p in written]
    written.append(write_manifests(path / "kustomization.yaml", [kustomization(resources, patches)]))
    return written


def render_flux_kustomizations(cfg: KubacConfig, dest: Path) -> list[Path]:
    """Write the Flux Kustomizations: platform, then policies, then netpol."""
    base = f"./{cfg.gitops_path()}"
    written = [
        write_manifests(dest / "platform-kustomization.yaml", [_flux_kustomization("platform", f"{base}/platform")]),
    ]
    if cfg.policy.enabled:
        written.append(write_manifests(
            dest / "policies-kustomization.yaml",
            [_flux_kustomization("policies", f"{base}/policies", depends_on="platform")],
        ))
    if cfg.network_policy.enabled:
        written.append(write_manifests(
            dest / "netpol-kustomization.yaml",
            [_flux_kustomization("netpol", f"{base}/netpol",
                                 depends_on="policies" if cfg.policy.enabled else "platform")],
        ))
    return written


def render_cluster_index(dest: Path, kustomization_files: list[Path]) -> Path:
    """Write the cluster root kustomization.yaml that the flux-system sync builds.

    Only flux-system and the Flux Kustomization files are listed; the
    platform, policies and netpol directories are reconciled through them.
    """
    resources = ["flux-system", *(p.name for p in kustomization_files)]
    return write_manifests(dest / "kustomization.yaml", [kustomization(resources)])
