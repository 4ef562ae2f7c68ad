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

"""Shared fixtures: an in-memory cluster accessor and a fake clock."""

from __future__ import annotations

import copy
from collections.abc import Callable

import pytest

from kubac.config import KubacConfig, default_config
from kubac.errors import AlreadyExistsError, DeniedError, KubeError, NotFoundError

Key = tuple[str, str | None, str]


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeKube:
    """In-memory stand-in for KubeClient.

    Objects are keyed by (lowercase kind, namespace, name). Failures are
    injected per (verb, kind) through ``fail``; hooks observe gets and deletes.
    """

    def __init__(self) -> None:
        self.objects: dict[Key, dict] = {}
        self.calls: list[tuple[str, str, str | None, str]] = []
        self.fail: dict[tuple[str, str], KubeError] = {}
        self.deny_create = False
        self.applied: list[str] = []
        self.patches: list[tuple[str, str | None, str, object]] = []
        self.on_get: list[Callable[[Key, dict], None]] = []
        self.on_delete: list[Callable[[Key], None]] = []
        self.allowed = True
        self.context = "kind-kubac"
        self.version = "v1.29.2"

    @staticmethod
    def key(kind: str, namespace: str | None, name: str) -> Key:
        return kind.lower(), namespace, name

    def add(self, manifest: dict) -> dict:
        meta = manifest["metadata"]
        self.objects[self.key(manifest["kind"], meta.get("namespace"), meta["name"])] = copy.deepcopy(manifest)
        return manifest

    def _record(self, verb: str, kind: str, namespace: str | None = None, name: str = "") -> None:
        self.calls.append((verb, kind.lower(), namespace, name))
        err = self.fail.get((verb, kind.lower()))
        if err is not None:
            raise err

    def get(self, kind, namespace, name):
        self._record("get", kind, namespace, name)
        key = self.key(kind, namespace, name)
        if key not in self.objects:
            raise NotFoundError(f'{kind} "{name}" not found', "(NotFound)")
        obj = self.objects[key]
        for hook in self.on_get:
            hook(key, obj)
        return copy.deepcopy(obj)

    def list(self, kind, namespace=None, label_selector=None):
        self._record("list", kind, namespace)
        wanted = dict(part.split("=", 1) for part in label_selector.split(",")) if label_selector else {}
        items = []
        for (obj_kind, obj_ns, _), obj in sorted(self.objects.items(), key=lambda kv: str(kv[0])):
            if obj_kind != kind.lower() or (namespace is not None and obj_ns != namespace):
                continue
            labels = obj.get("metadata", {}).get("labels", {})
            if all(labels.get(k) == v for k, v in wanted.items()):
                items.append(copy.deepcopy(obj))
        return items

    def create(self, manifest):
        self._record("create", manifest["kind"], manifest["metadata"].get("namespace"), manifest["metadata"]["name"])
        if self.deny_create:
            raise DeniedError(
                'admission webhook "validate.kyverno.svc-fail" denied the request: disallow-privileged',
                "Error from server: admission webhook denied the request",
            )
        meta = manifest["metadata"]
        if self.key(manifest["kind"], meta.get("namespace"), meta["name"]) in self.objects:
            raise AlreadyExistsError(f'{manifest["kind"]} "{meta["name"]}" already exists', "(AlreadyExists)")
        return self.add(manifest)

    def delete(self, kind, namespace, name, wait=False):
        self._record("delete", kind, namespace, name)
        key = self.key(kind, namespace, name)
        if key not in self.objects:
            raise NotFoundError(f'{kind} "{name}" not found', "(NotFound)")
        del self.objects[key]
        for hook in self.on_delete:
            hook(key)

    def patch(self, kind, namespace, name, patch, patch_type="json"):
        self._record("patch", kind, namespace, name)
        self.patches.append((kind, namespace, name, patch))

    def apply(self, source, kustomize=False, server_side=False):
        self._record("apply", "source", None, source)
        self.applied.append(source)

    def apply_manifests(self, manifests):
        self._record("apply", "manifests")
        for manifest in manifests:
            self.add(manifest)

    def ensure_namespace(self, name):
        try:
            self.create({"apiVersion": "v1", "kind": "Namespace", "metadata": {"name": name}})
        except AlreadyExistsError:
            return False
        return True

    def delete_namespace(self, name):
        try:
            self.delete("namespace", None, name)
        except NotFoundError:
            return False
        return True

    def can_i(self, verb, resource):
        return self.allowed

    def current_context(self):
        self._record("get", "context")
        return self.context

    def client_version(self):
        self._record("get", "version")
        return self.version


def ready_deployment(namespace: str, name: str, replicas: int = 1, ready: int | None = None,
                     labels: dict | None = None) -> dict:
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": name, "namespace": namespace, "labels": labels or {}},
        "spec": {
            "replicas": replicas,
            "template": {"spec": {"containers": [{"name": name, "args": []}]}},
        },
        "status": {"readyReplicas": replicas if ready is None else ready},
    }


def pod(namespace: str, name: str, labels: dict | None = None) -> dict:
    return {"apiVersion": "v1", "kind": "Pod", "metadata": {"name": name, "namespace": namespace,
                                                            "labels": labels or {}}}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_kube() -> FakeKube:
    return FakeKube()


@pytest.fixture
def cfg() -> KubacConfig:
    return default_config()
