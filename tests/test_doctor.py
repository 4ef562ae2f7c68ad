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

"""Unit tests for the preflight checks."""

from kubac.doctor import run_checks
from kubac.errors import KubeError
from kubac.report import ProbeStatus


def _node(name, ready):
    return {
        "kind": "Node",
        "metadata": {"name": name},
        "status": {"conditions": [{"type": "Ready", "status": "True" if ready else "False"}]},
    }


class TestDoctor:
    """Tests for run_checks()."""

    def test_healthy_cluster(self, fake_kube):
        fake_kube.ensure_namespace("default")
        fake_kube.add(_node("n1", True))
        fake_kube.add(_node("n2", False))

        report = run_checks(fake_kube)

        statuses = {r.name: (r.status, r.message) for r in report.results}
        assert list(statuses) == ["kubectl", "cluster-access", "permissions", "nodes"]
        assert statuses["kubectl"] == (ProbeStatus.PASS, "kubectl v1.29.2")
        assert statuses["cluster-access"] == (ProbeStatus.PASS, "Connected to context: kind-kubac")
        assert statuses["nodes"] == (ProbeStatus.PASS, "1/2 nodes ready")
        assert report.all_passed() is True

    def test_unreachable_cluster_skips_dependent_checks(self, fake_kube):
        fake_kube.fail[("list", "namespace")] = KubeError("connection refused")

        report = run_checks(fake_kube)

        statuses = {r.name: r.status for r in report.results}
        assert statuses["cluster-access"] is ProbeStatus.FAIL
        assert statuses["permissions"] is ProbeStatus.SKIP
        assert statuses["nodes"] is ProbeStatus.SKIP
        assert report.all_passed() is False

    def test_missing_kubectl(self, fake_kube):
        fake_kube.fail[("get", "version")] = KubeError("No such file or directory: 'kubectl'")

        result = run_checks(fake_kube).results[0]

        assert result.status is ProbeStatus.FAIL
        assert result.message == "kubectl not found or not executable"

    def test_insufficient_permissions(self, fake_kube):
        fake_kube.allowed = False
        fake_kube.add(_node("n1", True))

        statuses = {r.name: r.status for r in run_checks(fake_kube).results}

        assert statuses["permissions"] is ProbeStatus.FAIL

    def test_no_ready_nodes(self, fake_kube):
        fake_kube.add(_node("n1", False))

        statuses = {r.name: r.status for r in run_checks(fake_kube).results}

        assert statuses["nodes"] is ProbeStatus.FAIL

    def test_unknown_context_warns(self, fake_kube):
        fake_kube.fail[("get", "context")] = KubeError("current-context is not set")

        statuses = {r.name: r.status for r in run_checks(fake_kube).results}

        assert statuses["cluster-access"] is ProbeStatus.WARN
        assert statuses["permissions"] is ProbeStatus.PASS

    def test_json_lists_checks(self, fake_kube):
        assert "checks" in run_checks(fake_kube).to_dict(key="checks")
