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

"""Constants, release URLs, and polling defaults."""

from __future__ import annotations

# -- Files --
DEFAULT_CONFIG_FILE = "kubac.yaml"
DEFAULT_REPORT_FILE = "kubac-verify-report.json"
DEFAULT_GITOPS_PATH = "clusters/my-cluster"

# -- Namespaces --
NS_KUBAC_SYSTEM = "kubac-system"
NS_KUBE_SYSTEM = "kube-system"
NS_KUBE_PUBLIC = "kube-public"
NS_KYVERNO = "kyverno"
NS_CERT_MANAGER = "cert-manager"
NS_MONITORING = "monitoring"
NS_FLUX_SYSTEM = "flux-system"

# -- Demo application --
DEMO_APP_NAME = "demo"
DEMO_LABEL_KEY = "app"
DEMO_LABEL_SELECTOR = f"{DEMO_LABEL_KEY}={DEMO_APP_NAME}"
DEMO_IMAGE = "nginxinc/nginx-unprivileged:1.25-alpine"
DEMO_CONTAINER_PORT = 8080
DEMO_SERVICE_PORT = 80
DEMO_RUN_AS_USER = 101
LOAD_TEST_JOB_NAME = "demo-load"
LOAD_TEST_IMAGE = "busybox:1.36"
LOAD_TEST_RUN_AS_USER = 65534

# -- Verification --
PROBE_POD_SELFHEAL = "pod-selfheal"
PROBE_HPA_SCALE = "hpa-scale"
PROBE_POLICY_DENY = "policy-deny"
PROBE_NETWORK_DENY = "network-deny"
POLICY_TEST_POD = "test-privileged-pod"
POLICY_TEST_IMAGE = "nginx:latest"

SELFHEAL_POLL_INTERVAL = "5s"
SELFHEAL_TIMEOUT = "60s"
VERIFY_TIMEOUT = "300s"

# -- Install readiness --
READINESS_POLL_INTERVAL_SECONDS = 5
READINESS_TIMEOUT_SECONDS = 120
KUBECTL_TIMEOUT_SECONDS = 60

# -- Component deployments gated on readiness --
DEPLOY_METRICS_SERVER = "metrics-server"
DEPLOY_KYVERNO = "kyverno-admission-controller"
DEPLOY_CERT_MANAGER_WEBHOOK = "cert-manager-webhook"

# -- Release manifests (formatted with a version tag) --
METRICS_SERVER_URL = (
    "https://github.com/kubernetes-sigs/metrics-server/releases/download/{version}/components.yaml"
)
KUBE_STATE_METRICS_KUSTOMIZE = "https://github.com/kubernetes/kube-state-metrics/examples/standard?ref={version}"
KYVERNO_URL = "https://github.com/kyverno/kyverno/releases/download/{version}/install.yaml"
CERT_MANAGER_URL = "https://github.com/cert-manager/cert-manager/releases/download/{version}/cert-manager.yaml"
INGRESS_NGINX_URL = (
    "https://raw.githubusercontent.com/kubernetes/ingress-nginx/"
    "controller-{version}/deploy/static/provider/cloud/deploy.yaml"
)

# -- Helm --
HELM_REPO_PROMETHEUS = "prometheus-community"
HELM_REPO_PROMETHEUS_URL = "https://prometheus-community.github.io/helm-charts"
HELM_CHART_PROMETHEUS_STACK = "prometheus-community/kube-prometheus-stack"
HELM_RELEASE_PROMETHEUS_STACK = "kube-prometheus-stack"

# -- Labels / field managers --
MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
MANAGED_BY_VALUE = "kubac"
FIELD_MANAGER = "kubac"

# -- Flux --
FLUX_SOURCE_API = "source.toolkit.fluxcd.io/v1"
FLUX_KUSTOMIZE_API = "kustomize.toolkit.fluxcd.io/v1"
FLUX_HELM_API = "helm.toolkit.fluxcd.io/v2"
GITOPS_SUBDIRS = ("flux-system", "platform", "policies", "netpol", "apps")
INIT_GITOPS_SUBDIRS = ("flux-system", "platform", "policies", "apps")

# -- kubectl error markers --
ERR_NOT_FOUND = "(NotFound)"
ERR_ALREADY_EXISTS = "(AlreadyExists)"
ERR_DENIED_MARKERS = ("admission webhook", "denied the request", "violates PodSecurity")
