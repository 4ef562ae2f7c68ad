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

"""Unit tests for the demo application workflows."""

import pytest
from conftest import pod, ready_deployment

from kubac.demo import cleanup_demo, deploy_demo, run_chaos, run_load_test
from kubac.errors import KubacError, PollTimeoutError

NS = "kubac-demo"


class TestDeployDemo:
    """Tests for deploy_demo()."""

    def test_applies_manifests_into_new_namespace(self, cfg, fake_kube):
        deploy_demo(cfg, fake_kube, wait=False)

        assert ("namespace", None, NS) in fake_kube.objects
        for kind in ("deployment", "service", "horizontalpodautoscaler", "poddisruptionbudget"):
            assert (kind, NS, "demo") in fake_kube.objects

    def test_redeploy_is_idempotent(self, cfg, fake_kube):
        deploy_demo(cfg, fake_kube, wait=False)
        deploy_demo(cfg, fake_kube, wait=False)

        assert ("deployment", NS, "demo") in fake_kube.objects

    def test_wait_times_out_when_pods_never_ready(self, cfg, fake_kube, clock):
        with pytest.raises(PollTimeoutError):
            deploy_demo(cfg, fake_kube, wait=True, sleep=clock.sleep, clock=clock)

    def test_wait_returns_once_ready(self, cfg, fake_kube, clock):
        fake_kube.on_get.append(
            lambda key, obj: obj.setdefault("status", {}).update(readyReplicas=obj["spec"]["replicas"])
        )

        deploy_demo(cfg, fake_kube, wait=True, sleep=clock.sleep, clock=clock)

        assert clock.sleeps == []


class TestLoadChaosCleanup:
    """Tests for the load, chaos and cleanup workflows."""

    def test_load_replaces_previous_job(self, cfg, fake_kube):
        fake_kube.add({"apiVersion": "batch/v1", "kind": "Job",
                       "metadata": {"name": "demo-load", "namespace": NS}, "spec": {}})

        run_load_test(cfg, fake_kube, 30, 50)

        assert ("delete", "job", NS, "demo-load") in fake_kube.calls
        job = fake_kube.objects[("job", NS, "demo-load")]
        assert "seq 1 50" in job["spec"]["template"]["spec"]["containers"][0]["command"][-1]

    def test_load_without_previous_job(self, cfg, fake_kube):
        run_load_test(cfg, fake_kube, 30, 50)

        assert ("job", NS, "demo-load") in fake_kube.objects

    def test_chaos_deletes_first_demo_pod(self, cfg, fake_kube):
        fake_kube.add(ready_deployment(NS, "demo", replicas=2))
        fake_kube.add(pod(NS, "demo-a", {"app": "demo"}))
        fake_kube.add(pod(NS, "demo-b", {"app": "demo"}))
        fake_kube.add(pod(NS, "other", {"app": "other"}))

        assert run_chaos(cfg, fake_kube) == "demo-a"
        assert ("pod", NS, "demo-a") not in fake_kube.objects
        assert ("pod", NS, "other") in fake_kube.objects

    def test_chaos_without_pods(self, cfg, fake_kube):
        with pytest.raises(KubacError, match="no demo pods"):
            run_chaos(cfg, fake_kube)

    def test_cleanup(self, cfg, fake_kube):
        fake_kube.ensure_namespace(NS)

        assert cleanup_demo(cfg, fake_kube) is True
        assert cleanup_demo(cfg, fake_kube) is False
