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

"""Preflight checks run before installing."""

from __future__ import annotations

from rich.panel import Panel

from kubac import console, logger
from kubac.errors import KubeError
from kubac.kube import KubeClient
from kubac.report import ProbeResult, ProbeStatus, VerificationReport


def _node_ready(node: dict) -> bool:
    return any(
        c.get("type") == "Ready" and c.get("status") == "True"
        for c in node.get("status", {}).get("conditions", [])
    )


def check_kubectl(client: KubeClient) -> ProbeResult:
    try:
        version = client.client_version()
    except KubeError:
        return ProbeResult("kubectl", ProbeStatus.FAIL, "kubectl not found or not executable")
    return ProbeResult("kubectl", ProbeStatus.PASS, f"kubectl {version}")


def check_cluster_access(client: KubeClient) -> ProbeResult:
    try:
        client.list("namespace")
    except KubeError as err:
        return ProbeResult("cluster-access", ProbeStatus.FAIL, f"Failed to connect to cluster: {err}")
    try:
        context = client.current_context()
    except KubeError:
        return ProbeResult("cluster-access", ProbeStatus.WARN, "Connected but cannot determine context")
    return ProbeResult("cluster-access", ProbeStatus.PASS, f"Connected to context: {context}")


def check_permissions(client: KubeClient, reachable: bool) -> ProbeResult:
    if not reachable:
        return ProbeResult("permissions", ProbeStatus.SKIP, "Skipped due to cluster access failure")
    if not client.can_i("create", "namespaces"):
        return ProbeResult("permissions", ProbeStatus.FAIL, "Insufficient permissions to create namespaces")
    return ProbeResult("permissions", ProbeStatus.PASS, "User has required cluster permissions")


def check_nodes(client: KubeClient, reachable: bool) -> ProbeResult:
    if not reachable:
        return ProbeResult("nodes", ProbeStatus.SKIP, "Skipped due to cluster access failure")
    try:
        nodes = client.list("node")
    except KubeError as err:
        return ProbeResult("nodes", ProbeStatus.WARN, f"Cannot list nodes: {err}")
    ready = sum(1 for node in nodes if _node_ready(node))
    if ready == 0:
        return ProbeResult("nodes", ProbeStatus.FAIL, "No ready nodes found")
    return ProbeResult("nodes", ProbeStatus.PASS, f"{ready}/{len(nodes)} nodes ready")


def run_checks(client: KubeClient) -> VerificationReport:
    """Run the preflight checks in order.

    Permission and node checks are skipped when the cluster is unreachable.

    Returns:
        A report whose JSON form lists results under ``checks``.
    """
    console.print(Panel.fit("Running kubac preflight checks", style="bold blue"))
    report = VerificationReport()
    report.add(check_kubectl(client))
    access = check_cluster_access(client)
    report.add(access)
    reachable = access.status is not ProbeStatus.FAIL
    report.add(check_permissions(client, reachable))
    report.add(check_nodes(client, reachable))
    for result in report.results:
        logger.info("%s: %s (%s)", result.name, result.status.value, result.message)
    return report
