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

"""Unit tests for configuration loading, defaults, and durations."""

import pytest

from kubac.config import (
    KubacConfig,
    RuntimeSettings,
    default_config,
    load_config,
    load_runtime_settings,
    with_overrides,
    write_config,
)
from kubac.errors import ConfigError
from kubac.utils import format_duration, parse_duration


class TestDefaults:
    """Tests for default_config()."""

    def test_opinionated_defaults(self):
        cfg = default_config()

        assert cfg.cluster_profile == "local"
        assert cfg.mode == "direct"
        assert cfg.platform.metrics_server.enabled is True
        assert cfg.platform.prometheus_stack.enabled is False
        assert cfg.policy.pod_security_standard == "restricted"
        assert cfg.network_policy.system_namespaces == ["kube-system", "kube-public", "kubac-system"]
        assert cfg.demo.hpa.target_cpu_utilization == 50
        assert cfg.verify.tests == ["pod-selfheal", "hpa-scale", "policy-deny", "network-deny"]

    def test_returns_fresh_objects(self):
        """Test mutating one default config never leaks into the next."""
        first = default_config()
        first.verify.tests.append("extra")

        assert "extra" not in default_config().verify.tests

    @pytest.mark.parametrize("profile,mode", [("cloud", "direct"), ("local", "helm")])
    def test_invalid_choices(self, profile, mode):
        with pytest.raises(ConfigError):
            default_config(profile, mode)


class TestLoadWrite:
    """Tests for load_config() and write_config()."""

    @pytest.mark.parametrize("profile,mode", [("local", "direct"), ("onprem", "gitops")])
    def test_round_trip(self, tmp_path, profile, mode):
        """Test a written default config loads back equal."""
        path = tmp_path / "kubac.yaml"
        cfg = default_config(profile, mode)

        write_config(path, cfg)

        assert load_config(path) == cfg

    def test_file_uses_camel_case_keys(self, tmp_path):
        path = tmp_path / "kubac.yaml"
        write_config(path, default_config())

        text = path.read_text()
        assert "clusterProfile: local" in text
        assert "repoURL:" in text
        assert "targetCPUUtilization: 50" in text
        assert "cluster_profile" not in text

    def test_partial_file_keeps_defaults(self, tmp_path):
        """Test keys missing from the file fall back to defaults."""
        path = tmp_path / "kubac.yaml"
        path.write_text("mode: gitops\ndemo:\n  replicas: 4\n")

        cfg = load_config(path)

        assert cfg.mode == "gitops"
        assert cfg.demo.replicas == 4
        assert cfg.demo.namespace == "kubac-demo"
        assert cfg.demo.hpa.max_replicas == 10
        assert cfg.policy.enabled is True

    def test_null_section_keeps_defaults(self, tmp_path):
        """Test a section key with no body loads as its defaults."""
        path = tmp_path / "kubac.yaml"
        path.write_text("mode: direct\nverify:\ndemo:\n  namespace: x\n")

        cfg = load_config(path)

        assert cfg.verify == default_config().verify
        assert cfg.demo.namespace == "x"

    def test_lists_replace_defaults(self, tmp_path):
        path = tmp_path / "kubac.yaml"
        path.write_text("verify:\n  tests: [hpa-scale]\n")

        assert load_config(path).verify.tests == ["hpa-scale"]

    def test_empty_file_is_defaults(self, tmp_path):
        path = tmp_path / "kubac.yaml"
        path.write_text("")

        assert load_config(path) == default_config()

    def test_unknown_keys_ignored(self, tmp_path):
        path = tmp_path / "kubac.yaml"
        path.write_text("futureFeature: true\nplatform:\n  somethingNew: {enabled: true}\n")

        assert isinstance(load_config(path), KubacConfig)

    @pytest.mark.parametrize("content", [
        "mode: helm\n",
        "clusterProfile: cloud\n",
        "- not\n- a mapping\n",
        "mode: [unclosed\n",
        "verify:\n  timeout: soon\n",
        "verify:\n  pollInterval: 0s\n",
        "demo:\n  hpa:\n    targetCPUUtilization: 150\n",
    ])
    def test_invalid_files(self, tmp_path, content):
        path = tmp_path / "kubac.yaml"
        path.write_text(content)

        with pytest.raises(ConfigError):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="failed to read"):
            load_config(tmp_path / "nope.yaml")


class TestOverrides:
    """Tests for with_overrides()."""

    def test_no_overrides_returns_same(self, cfg):
        assert with_overrides(cfg) is cfg

    def test_cli_values_win(self, cfg):
        updated = with_overrides(cfg, mode="gitops", cluster_profile="managed")

        assert updated.mode == "gitops"
        assert updated.cluster_profile == "managed"
        assert cfg.mode == "direct"

    def test_invalid_override(self, cfg):
        with pytest.raises(ConfigError):
            with_overrides(cfg, mode="helm")


class TestRuntimeSettings:
    """Tests for KUBAC_* environment settings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("KUBAC_KUBECTL_TIMEOUT", raising=False)
        monkeypatch.delenv("KUBAC_LOG_LEVEL", raising=False)

        settings = RuntimeSettings()

        assert settings.kubectl_timeout == 60
        assert settings.log_level == "INFO"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("KUBAC_KUBECTL_TIMEOUT", "15")
        monkeypatch.setenv("KUBAC_LOG_LEVEL", "debug")

        settings = RuntimeSettings()

        assert settings.kubectl_timeout == 15
        assert settings.log_level == "debug"

    @pytest.mark.parametrize("name,value", [("KUBAC_LOG_LEVEL", "loud"), ("KUBAC_KUBECTL_TIMEOUT", "0")])
    def test_invalid_env_raises_config_error(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)

        with pytest.raises(ConfigError, match=r"invalid KUBAC_\* environment settings"):
            load_runtime_settings()


class TestDurations:
    """Tests for parse_duration() and format_duration()."""

    @pytest.mark.parametrize("text,seconds", [
        ("300s", 300.0),
        ("5m", 300.0),
        ("1h", 3600.0),
        ("1m30s", 90.0),
        ("500ms", 0.5),
        ("1.5s", 1.5),
        ("45", 45.0),
        (12, 12.0),
        ("0s", 0.0),
    ])
    def test_parse(self, text, seconds):
        assert parse_duration(text) == seconds

    @pytest.mark.parametrize("text", ["", "soon", "5 minutes", "-5s", "5d", -1])
    def test_parse_invalid(self, text):
        with pytest.raises(ValueError):
            parse_duration(text)

    def test_format(self):
        assert format_duration(1.5034) == "1.503s"
        assert format_duration(0) == "0.000s"
