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

"""Smoke-test probes for self-healing, autoscaling, and policy enforcement."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from rich.panel import Panel

from kubac import console, logger
from kubac.config import KubacConfig
from kubac.constants import (
    DEMO_APP_NAME,
    DEMO_LABEL_SELECTOR,
    POLICY_TEST_IMAGE,
    POLICY_TEST_POD,
    PROBE_HPA_SCALE,
    PROBE_NETWORK_DENY,
    PROBE_POD_SELFHEAL,
    PROBE_POLICY_DENY,
)
from kubac.errors import DeniedError, KubeError, NotFoundError
from kubac.kube import KubeClient
from kubac.poll import Clock, Sleep, poll
from kubac.report import ProbeResult, ProbeStatus, VerificationReport
from kubac.utils import parse_duration

Verdict = tuple[ProbeStatus, str]


@dataclass
class ProbeContext:
    """Everything a probe needs, captured once per verification run.

    Attributes:
        client: Cluster state accessor.
        cfg: Loaded kubac configuration.
        sleep: Sleep function used while polling.
        clock: Monotonic clock used for polling budgets and durations.
    """

    client: KubeClient
    cfg: KubacConfig
    sleep: Sleep = time.sleep
    clock: Clock = time.monotonic

    @property
    def namespace(self) -> str:
        return self.cfg.demo.namespace


# ============================================================================
# Probes
# ============================================================================

def probe_pod_selfheal(ctx: ProbeContext) -> Verdict:
    """Delete one demo pod and wait for the Deployment to regain its ready count."""
    try:
        deployment = ctx.client.get("deployment", ctx.namespace, DEMO_APP_NAME)
    except KubeError as err:
        return ProbeStatus.SKIP, f"Demo app not deployed: {err}"

    baseline = deployment.get("status", {}).get("readyReplicas", 0)

    try:
        pods = ctx.client.list("pod", ctx.namespace, DEMO_LABEL_SELECTOR)
    except KubeError:
        pods = []
    if not pods:
        return ProbeStatus.FAIL, "No demo pods found"

    pod_name = pods[0]["metadata"]["name"]
    try:
        ctx.client.delete("pod", ctx.namespace, pod_name)
    except KubeError as err:
        return ProbeStatus.FAIL, f"Failed to delete pod: {err}"
    logger.info("Deleted pod %s, waiting for %d ready replicas", pod_name, baseline)

    def _recovered() -> bool:
        current = ctx.client.get("deployment", ctx.namespace, DEMO_APP_NAME)
        return current.get("status", {}).get("readyReplicas", 0) >= baseline

    interval = parse_duration(ctx.cfg.verify.poll_interval)
    timeout = parse_duration(ctx.cfg.verify.self_heal_timeout)
    if not poll(_recovered, interval, timeout, sleep=ctx.sleep, clock=ctx.clock):
        return ProbeStatus.FAIL, "Pod was not replaced within timeout"
    return ProbeStatus.PASS, f"Pod {pod_name} was replaced successfully"


def probe_hpa_scale(ctx: ProbeContext) -> Verdict:
    """Compare the live HPA bounds with the configured demo HPA."""
    try:
        hpa = ctx.client.get("horizontalpodautoscaler", ctx.namespace, DEMO_APP_NAME)
    except KubeError as err:
        return ProbeStatus.SKIP, f"HPA not found: {err}"

    spec = hpa.get("spec", {})
    expected = ctx.cfg.demo.hpa
    min_replicas = spec.get("minReplicas")
    max_replicas = spec.get("maxReplicas")
    if min_replicas is None or min_replicas != expected.min_replicas:
        return ProbeStatus.FAIL, "HPA minReplicas mismatch"
    if max_replicas != expected.max_replicas:
        return ProbeStatus.FAIL, "HPA maxReplicas mismatch"

    current = hpa.get("status", {}).get("currentReplicas", 0)
    return ProbeStatus.PASS, (
        f"HPA configured correctly (current replicas: {current}, min: {min_replicas}, max: {max_replicas})"
    )


def privileged_pod_manifest(namespace: str) -> dict:
    """Build a pod the baseline policies must reject."""
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {"name": POLICY_TEST_POD, "namespace": namespace},
        "spec": {
            "containers": [{
                "name": "test",
                "image": POLICY_TEST_IMAGE,
                "securityContext": {"privileged": True},
            }],
        },
    }


def probe_policy_deny(ctx: ProbeContext) -> Verdict:
    """Try to create a privileged pod; admission must reject it."""
    try:
        ctx.client.create(privileged_pod_manifest(ctx.namespace))
    except DeniedError:
        return ProbeStatus.PASS, "Privileged pod was correctly denied by policy"
    except NotFoundError as err:
        return ProbeStatus.SKIP, f"Demo namespace not found: {err}"
    except KubeError as err:
        return ProbeStatus.FAIL, f"Could not test policy enforcement: {err}"

    try:
        ctx.client.delete("pod", ctx.namespace, POLICY_TEST_POD)
    except KubeError as err:
        logger.warning("Failed to clean up %s/%s: %s", ctx.namespace, POLICY_TEST_POD, err)
    return ProbeStatus.FAIL, "Privileged pod was not denied by policy"


def _is_default_deny(policy: dict) -> bool:
    spec = policy.get("spec", {})
    return not spec.get("ingress") and not spec.get("egress")


def probe_network_deny(ctx: ProbeContext) -> Verdict:
    """Check that the demo namespace carries a default-deny NetworkPolicy."""
    try:
        policies = ctx.client.list("networkpolicy", ctx.namespace)
    except KubeError as err:
        return ProbeStatus.SKIP, f"Cannot list network policies: {err}"

    if not policies:
        return ProbeStatus.FAIL, "No network policies found"
    if not any(_is_default_deny(p) for p in policies):
        return ProbeStatus.WARN, f"Found {len(policies)} network policies but no default deny"
    return ProbeStatus.PASS, f"Network policies configured ({len(policies)} policies including default deny)"


PROBES: dict[str, Callable[[ProbeContext], Verdict]] = {
    PROBE_POD_SELFHEAL: probe_pod_selfheal,
    PROBE_HPA_SCALE: probe_hpa_scale,
    PROBE_POLICY_DENY: probe_policy_deny,
    PROBE_NETWORK_DENY: probe_network_deny,
}


# ============================================================================
# Runner
# ============================================================================

def run_probe(name: str, ctx: ProbeContext) -> ProbeResult:
    """Run one probe by name; unknown names produce a SKIP result."""
    started = ctx.clock()
    probe = PROBES.get(name)
    if probe is None:
        status, message = ProbeStatus.SKIP, "Unknown test"
    else:
        status, message = probe(ctx)
    return ProbeResult(name=name, status=status, message=message, duration=ctx.clock() - started)


def run_verification(
    cfg: KubacConfig,
    client: KubeClient,
    sleep: Sleep = time.sleep,
    clock: Clock = time.monotonic,
) -> VerificationReport:
    """Run every configured probe in order and collect a report.

    Probe failures never abort the run. Once ``verify.timeout`` is spent, the
    remaining probes are recorded as SKIP.
    """
    ctx = ProbeContext(client=client, cfg=cfg, sleep=sleep, clock=clock)
    budget = parse_duration(cfg.verify.timeout)
    deadline = clock() + budget
    report = VerificationReport()

    console.print(Panel.fit(f"Running verification suite ({len(cfg.verify.tests)} tests)", style="bold blue"))
    for name in cfg.verify.tests:
        if clock() >= deadline:
            result = ProbeResult(name=name, status=ProbeStatus.SKIP,
                                 message=f"Verification budget of {cfg.verify.timeout} exhausted")
        else:
            console.print(f"[yellow]ℹ️  Running {name}...[/yellow]")
            result = run_probe(name, ctx)
        logger.info("%s: %s (%s)", result.name, result.status.value, result.message)
        report.add(result)
    return report
