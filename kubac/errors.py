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

"""Exception hierarchy for kubac."""

from __future__ import annotations


class KubacError(Exception):
    """Base exception for all kubac errors."""


class ConfigError(KubacError):
    """Raised when the configuration file cannot be read, parsed, or validated."""


class KubeError(KubacError):
    """Raised when a call to the cluster fails.

    Attributes:
        stderr: Raw kubectl stderr, if any.
    """

    def __init__(self, message: str, stderr: str = ""):
        self.stderr = stderr
        super().__init__(message)


class NotFoundError(KubeError):
    """Raised when the requested resource does not exist."""


class AlreadyExistsError(KubeError):
    """Raised when creating a resource that already exists."""


class DeniedError(KubeError):
    """Raised when an admission controller or RBAC rejects a request."""


class PollTimeoutError(KubacError):
    """Raised when a readiness condition is not met within its timeout."""

    def __init__(self, description: str, timeout: float):
        self.description = description
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout:g}s waiting for {description}")


class InstallError(KubacError):
    """Raised when an install step fails; aborts the remaining steps."""

    def __init__(self, step: str, cause: BaseException):
        self.step = step
        self.cause = cause
        super().__init__(f"step '{step}' failed: {cause}")
