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

"""Cluster state access over kubectl with JSON output."""

from __future__ import annotations

import json
from typing import Any

import yaml

from kubac import logger
from kubac.constants import (
    ERR_ALREADY_EXISTS,
    ERR_DENIED_MARKERS,
    ERR_NOT_FOUND,
    FIELD_MANAGER,
    KUBECTL_TIMEOUT_SECONDS,
)
from kubac.errors import AlreadyExistsError, DeniedError, KubeError, NotFoundError
from kubac.utils import run_kubectl


def classify_error(stderr: str, action: str) -> KubeError:
    """Map kubectl stderr onto the kubac error taxonomy.

    Args:
        stderr: Raw stderr from the failed kubectl call.
        action: Short description of what was attempted, used when stderr is empty.

    Returns:
        The most specific KubeError subclass for the failure.
    """
    message = stderr.strip().splitlines()[0] if stderr.strip() else f"kubectl {action} failed"
    if ERR_NOT_FOUND in stderr:
        return NotFoundError(message, stderr)
    if ERR_ALREADY_EXISTS in stderr:
        return AlreadyExistsError(message, stderr)
    if any(marker in stderr for marker in ERR_DENIED_MARKERS):
        return DeniedError(message, stderr)
    return KubeError(message, stderr)


def _scope(namespace: str | None) -> list[str]:
    return ["-n", namespace] if namespace else []


class KubeClient:
    """Thin accessor for reading and mutating cluster resources via kubectl.

    Every method raises a KubeError subclass on failure so callers can tell a
    missing resource from a rejected request from a connectivity problem.
    """

    def __init__(self, timeout: int = KUBECTL_TIMEOUT_SECONDS, context: str | None = None) -> None:
        self.timeout = timeout
        self.context = context

    def _run(self, args: list[str], action: str, stdin: str | None = None) -> str:
        if self.context:
            args = ["--context", self.context, *args]
        logger.debug("kubectl %s", " ".join(args))
        ok, stdout, stderr = run_kubectl(args, timeout=self.timeout, stdin=stdin)
        if not ok:
            raise classify_error(stderr, action)
        return stdout

    # -- Resource CRUD --

    def get(self, kind: str, namespace: str | None, name: str) -> dict[str, Any]:
        """Fetch one resource as a dict.

        Raises:
            NotFoundError: If the resource does not exist.
        """
        out = self._run(["get", kind, name, *_scope(namespace), "-o", "json"], f"get {kind}/{name}")
        return json.loads(out)

    def list(self, kind: str, namespace: str | None = None, label_selector: str | None = None) -> list[dict[str, Any]]:
        """List resources of a kind, optionally filtered by a label selector."""
        args = ["get", kind, *_scope(namespace), "-o", "json"]
        if label_selector:
            args += ["-l", label_selector]
        out = self._run(args, f"list {kind}")
        return json.loads(out).get("items", [])

    def create(self, manifest: dict[str, Any]) -> dict[str, Any]:
        """Create a resource from an in-memory manifest.

        Raises:
            AlreadyExistsError: If a resource with the same name exists.
            DeniedError: If admission control rejects the resource.
        """
        kind = manifest.get("kind", "resource")
        name = manifest.get("metadata", {}).get("name", "")
        out = self._run(["create", "-f", "-", "-o", "json"], f"create {kind}/{name}", stdin=json.dumps(manifest))
        return json.loads(out) if out.strip() else manifest

    def delete(self, kind: str, namespace: str | None, name: str, wait: bool = False) -> None:
        """Delete a resource.

        Raises:
            NotFoundError: If the resource does not exist.
        """
        self._run(["delete", kind, name, *_scope(namespace), f"--wait={str(wait).lower()}"], f"delete {kind}/{name}")

    def patch(self, kind: str, namespace: str | None, name: str, patch: Any, patch_type: str = "json") -> None:
        """Patch a resource with a JSON, merge, or strategic patch."""
        self._run(
            ["patch", kind, name, *_scope(namespace), f"--type={patch_type}", "-p", json.dumps(patch)],
            f"patch {kind}/{name}",
        )

    # -- Manifest application --

    def apply(self, source: str, kustomize: bool = False, server_side: bool = False) -> None:
        """Apply a manifest file, URL, or kustomize directory/remote base.

        ``server_side`` is needed for bundles whose CRDs exceed the
        client-side last-applied annotation limit (e.g. Kyverno).
        """
        flag = "-k" if kustomize else "-f"
        args = ["apply", flag, source, f"--field-manager={FIELD_MANAGER}"]
        if server_side:
            args.append("--server-side")
        self._run(args, f"apply {source}")

    def apply_manifests(self, manifests: list[dict[str, Any]]) -> None:
        """Apply in-memory manifests in a single kubectl call."""
        if not manifests:
            return
        docs = yaml.safe_dump_all(manifests, sort_keys=False)
        self._run(["apply", "-f", "-", f"--field-manager={FIELD_MANAGER}"], "apply manifests", stdin=docs)

    # -- Namespaces --

    def ensure_namespace(self, name: str) -> bool:
        """Create a namespace if missing. Returns True if it was created."""
        try:
            self.create({"apiVersion": "v1", "kind": "Namespace", "metadata": {"name": name}})
        except AlreadyExistsError:
            return False
        return True

    def delete_namespace(self, name: str) -> bool:
        """Delete a namespace. Returns False if it did not exist."""
        try:
            self.delete("namespace", None, name)
        except NotFoundError:
            return False
        return True

    # -- Cluster introspection --

    def can_i(self, verb: str, resource: str) -> bool:
        """Return whether the current user may perform *verb* on *resource*."""
        args = ["auth", "can-i", verb, resource]
        if self.context:
            args = ["--context", self.context, *args]
        # can-i exits non-zero for "no", so it is not routed through _run.
        ok, stdout, _ = run_kubectl(args, timeout=self.timeout)
        return ok and stdout.strip() == "yes"

    def current_context(self) -> str:
        return self._run(["config", "current-context"], "config current-context").strip()

    def client_version(self) -> str:
        out = self._run(["version", "--client", "-o", "json"], "version")
        return json.loads(out).get("clientVersion", {}).get("gitVersion", "unknown")
