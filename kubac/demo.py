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

"""Demo application lifecycle: deploy, load, chaos, cleanup."""

from __future__ import annotations

import time

from rich.panel import Panel

from kubac import console, logger
from kubac.config import KubacConfig
from kubac.constants import (
    DEMO_APP_NAME,
    DEMO_LABEL_SELECTOR,
    LOAD_TEST_JOB_NAME,
    READINESS_POLL_INTERVAL_SECONDS,
    READINESS_TIMEOUT_SECONDS,
)
from kubac.errors import KubacError, NotFoundError
from kubac.installer import deployment_ready
from kubac.kube import KubeClient
from kubac.poll import Clock, Sleep, wait_until
from kubac.render import demo_manifests, load_test_job


def deploy_demo(
    cfg: KubacConfig,
    client: KubeClient,
    wait: bool = True,
    sleep: Sleep = time.sleep,
    clock: Clock = time.monotonic,
) -> None:
    """Deploy the demo app (Deployment, Service, HPA, PDB) into the demo namespace.

    Args:
        cfg: Loaded configuration.
        client: Cluster accessor.
        wait: Block until every demo replica is ready.
        sleep: Sleep function used while waiting.
        clock: Monotonic clock used for the wait budget.

    Raises:
        KubeError: If the manifests cannot be applied.
        PollTimeoutError: If *wait* is set and the Deployment never becomes ready.
    """
    namespace = cfg.demo.namespace
    console.print(Panel.fit(f"Deploying demo app to {namespace}", style="bold blue"))
    if client.ensure_namespace(namespace):
        console.print(f"[green]✅ Created namespace {namespace}[/green]")
    client.apply_manifests(demo_manifests(cfg))
    console.print("[green]✅ Demo manifests applied[/green]")

    if wait:
        console.print("[yellow]ℹ️  Waiting for demo pods to be ready...[/yellow]")
        wait_until(
            deployment_ready(client, namespace, DEMO_APP_NAME),
            READINESS_POLL_INTERVAL_SECONDS,
            READINESS_TIMEOUT_SECONDS,
            f"deployment {namespace}/{DEMO_APP_NAME}",
            sleep=sleep,
            clock=clock,
        )
        console.print("[green]✅ Demo app is ready[/green]")


def run_load_test(cfg: KubacConfig, client: KubeClient, duration: int, requests: int) -> None:
    """Start a load-generator Job against the demo Service.

    A previous load Job is replaced since Job templates are immutable.

    Args:
        cfg: Loaded configuration.
        client: Cluster accessor.
        duration: Seconds the load should run.
        requests: Requests per second.
    """
    namespace = cfg.demo.namespace
    console.print(Panel.fit(f"Generating load: {requests} req/s for {duration}s", style="bold blue"))
    try:
        client.delete("job", namespace, LOAD_TEST_JOB_NAME, wait=True)
        logger.info("Removed previous load job %s/%s", namespace, LOAD_TEST_JOB_NAME)
    except NotFoundError:
        pass
    client.apply_manifests([load_test_job(cfg, duration, requests)])
    console.print(f"[green]✅ Load job {LOAD_TEST_JOB_NAME} started[/green]")
    console.print(f"[yellow]ℹ️  Watch scaling with: kubectl get hpa -n {namespace} -w[/yellow]")


def run_chaos(cfg: KubacConfig, client: KubeClient) -> str:
    """Delete one demo pod to exercise self-healing.

    Returns:
        Name of the deleted pod.

    Raises:
        KubacError: If no demo pods exist.
    """
    namespace = cfg.demo.namespace
    console.print(Panel.fit("Chaos: deleting a demo pod", style="bold blue"))
    pods = client.list("pod", namespace, DEMO_LABEL_SELECTOR)
    if not pods:
        raise KubacError(f"no demo pods found in namespace {namespace}")
    pod_name = pods[0]["metadata"]["name"]
    client.delete("pod", namespace, pod_name)
    console.print(f"[green]✅ Deleted pod {pod_name}[/green]")
    console.print(f"[yellow]ℹ️  Watch recovery with: kubectl get pods -n {namespace} -w[/yellow]")
    return pod_name


def cleanup_demo(cfg: KubacConfig, client: KubeClient) -> bool:
    """Delete the demo namespace. Returns False if it did not exist."""
    namespace = cfg.demo.namespace
    console.print(Panel.fit(f"Cleaning up demo namespace {namespace}", style="bold blue"))
    if client.delete_namespace(namespace):
        console.print(f"[green]✅ Deleted namespace {namespace}[/green]")
        return True
    console.print(f"[yellow]   Namespace {namespace} not found[/yellow]")
    return False
