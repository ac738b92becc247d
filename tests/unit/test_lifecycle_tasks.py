"""Tests for the before-start, validation and after-stop tasks."""

from __future__ import annotations

import pytest

from clusterforge.core.cache_keyer import MARKER_FILE
from clusterforge.errors import TaskExecutionError, ValidationFailedError
from clusterforge.models.cluster import ClusterConfiguration, ClusterFeatures, TrialMode
from clusterforge.tasks.after_stop import CleanUpDirectories
from clusterforge.tasks.before_start import (
    CacheInstallation,
    CreateEphemeralDirectories,
    EnsureSecurityUsers,
)
from clusterforge.tasks.installation import (
    CopyHomeToNodeDirectory,
    CreateLocalApplicationDirectory,
    DownloadDistribution,
    ExtractDistribution,
)
from clusterforge.tasks.validation import (
    ValidateClusterState,
    ValidateLicense,
    ValidatePlugins,
    ValidateRunningVersion,
)

from conftest import FakeClient, catalog_routes


def _config(**kwargs) -> ClusterConfiguration:
    kwargs.setdefault("version", "7.4.0")
    return ClusterConfiguration(cluster_name="test-cluster", **kwargs)


def _installed(cluster, node):
    for task in (
        CreateLocalApplicationDirectory(),
        DownloadDistribution(),
        ExtractDistribution(),
        CopyHomeToNodeDirectory(),
    ):
        task.run(cluster, node)
    return node


class _Answering(FakeClient):
    """Fake client with canned payloads."""

    def __init__(self, cluster, node, **payloads):
        super().__init__(cluster, node)
        self.payloads = payloads

    def root(self):
        return self.payloads.get("root") or super().root()

    def cat_plugins(self):
        if "plugins" in self.payloads:
            return self.payloads["plugins"]
        return super().cat_plugins()

    def license(self, path="/_license"):
        self.calls.append(path)
        return self.payloads.get("license") or super().license(path)

    def cluster_health(self, wait_for_nodes=None):
        return self.payloads.get("health") or super().cluster_health(wait_for_nodes)


def _answering(**payloads):
    return lambda cluster, node: _Answering(cluster, node, **payloads)


class TestBeforeStart:
    def test_creates_directories(self, make_cluster, make_node):
        cluster = make_cluster(_config())
        node = _installed(cluster, make_node())
        CreateEphemeralDirectories().run(cluster, node)
        for path in (node.fs.data_path, node.fs.logs_path, node.fs.repository_path):
            assert path.is_dir()

    def test_security_user_added_once(self, make_cluster, make_node, fake_launcher):
        cluster = make_cluster(_config(features=ClusterFeatures(security=True)))
        node = _installed(cluster, make_node())
        EnsureSecurityUsers().run(cluster, node)
        EnsureSecurityUsers().run(cluster, node)
        useradds = [r for r in fake_launcher.runs if r["args"][0] == "useradd"]
        assert len(useradds) == 1
        assert useradds[0]["binary"] == node.fs.home / "bin" / "elasticsearch-users"
        assert useradds[0]["args"][-2:] == ["-r", "superuser"]

    def test_no_user_without_security(self, make_cluster, make_node, fake_launcher):
        cluster = make_cluster(_config())
        EnsureSecurityUsers().run(cluster, _installed(cluster, make_node()))
        assert fake_launcher.runs == []

    def test_user_tool_failure(self, make_cluster, make_node, fake_launcher, monkeypatch):
        cluster = make_cluster(_config(features=ClusterFeatures(security=True)))
        node = _installed(cluster, make_node())
        monkeypatch.setattr(fake_launcher, "run", lambda binary, args, env: 64)
        with pytest.raises(TaskExecutionError, match="exited with 64"):
            EnsureSecurityUsers().run(cluster, node)

    def test_cache_installation_publishes_once(self, make_cluster, make_node):
        cluster = make_cluster(_config())
        node = _installed(cluster, make_node())
        assert CacheInstallation().run(cluster, node) is True
        assert (cluster.cached_home / MARKER_FILE).is_file()
        assert cluster.cached_home_exists
        assert CacheInstallation().run(cluster, node) is False

    def test_cache_installation_with_alias_version(self, make_cluster, make_node):
        routes = catalog_routes("7.4.0", versions=["7.3.2", "7.4.0"])
        cluster = make_cluster(_config(version="latest-7"), routes=routes)
        node = _installed(cluster, make_node())
        assert CacheInstallation().run(cluster, node) is True
        assert cluster.cached_home == node.fs.local_folder / "6-"
        assert (cluster.cached_home / MARKER_FILE).is_file()
        assert CacheInstallation().run(cluster, node) is False

    def test_cache_installation_disabled(self, make_cluster, make_node):
        cluster = make_cluster(_config(cache_installation=False))
        node = _installed(cluster, make_node())
        assert CacheInstallation().run(cluster, node) is False
        assert not cluster.cached_home.exists()


class TestValidation:
    def test_version_matches(self, make_cluster, make_node):
        cluster = make_cluster(_config())
        assert ValidateRunningVersion().run(cluster, make_node()) == "7.4.0"

    def test_version_mismatch(self, make_cluster, make_node):
        cluster = make_cluster(
            _config(), client_factory=_answering(root={"version": {"number": "7.3.2"}})
        )
        with pytest.raises(ValidationFailedError, match="7.3.2"):
            ValidateRunningVersion().run(cluster, make_node())

    def test_snapshot_version_case_insensitive(self, make_cluster, make_node):
        cluster = make_cluster(
            _config(version="7.4.0-SNAPSHOT"),
            client_factory=_answering(root={"version": {"number": "7.4.0-snapshot"}}),
        )
        ValidateRunningVersion().run(cluster, make_node(version="7.4.0-SNAPSHOT"))

    def test_license_skipped_without_xpack(self, make_cluster, make_node):
        cluster = make_cluster(_config())
        assert ValidateLicense().run(cluster, make_node()) is None

    def test_license_trial(self, make_cluster, make_node):
        cluster = make_cluster(
            _config(features=ClusterFeatures(xpack=True), trial_mode=TrialMode.TRIAL)
        )
        assert ValidateLicense().run(cluster, make_node()) == "trial"

    def test_license_inactive(self, make_cluster, make_node):
        cluster = make_cluster(
            _config(features=ClusterFeatures(xpack=True)),
            client_factory=_answering(license={"license": {"status": "expired", "type": "basic"}}),
        )
        with pytest.raises(ValidationFailedError, match="expired"):
            ValidateLicense().run(cluster, make_node())

    def test_license_wrong_type_in_trial_mode(self, make_cluster, make_node):
        cluster = make_cluster(
            _config(features=ClusterFeatures(xpack=True), trial_mode=TrialMode.TRIAL),
            client_factory=_answering(license={"license": {"status": "active", "type": "basic"}}),
        )
        with pytest.raises(ValidationFailedError, match="basic"):
            ValidateLicense().run(cluster, make_node())

    def test_legacy_license_path(self, make_cluster, make_node, tmp_path):
        cluster = make_cluster(
            _config(version="5.6.0", features=ClusterFeatures(xpack=True), java_home=tmp_path),
            client_factory=_answering(),
        )
        node = make_node(version="5.6.0")
        ValidateLicense().run(cluster, node)
        assert "/_xpack/license" in cluster.client_for(node).calls

    def test_plugins_present(self, make_cluster, make_node):
        cluster = make_cluster(_config(plugins=["analysis-icu", "ingest-geoip"]))
        node = make_node()
        (node.fs.home / "plugins" / "analysis-icu").mkdir(parents=True)
        assert ValidatePlugins().run(cluster, node) == ["analysis-icu"]

    def test_plugin_missing(self, make_cluster, make_node):
        cluster = make_cluster(_config(plugins=["analysis-icu"]))
        node = make_node()
        with pytest.raises(ValidationFailedError, match="analysis-icu"):
            ValidatePlugins().run(cluster, node)

    def test_plugins_of_other_nodes_ignored(self, make_cluster, make_node):
        rows = [{"name": "ephemeral-node-2", "component": "analysis-icu"}]
        cluster = make_cluster(_config(plugins=["analysis-icu"]), client_factory=_answering(plugins=rows))
        with pytest.raises(ValidationFailedError):
            ValidatePlugins().run(cluster, make_node())

    def test_plugins_not_checked_on_major_two(self, make_cluster, make_node, tmp_path):
        cluster = make_cluster(_config(version="2.4.6", plugins=["analysis-icu"], java_home=tmp_path))
        assert ValidatePlugins().run(cluster, make_node(version="2.4.6")) == []

    def test_cluster_green(self, make_cluster, make_node):
        cluster = make_cluster(_config())
        assert ValidateClusterState().run(cluster, make_node()) == "green"

    @pytest.mark.parametrize(
        "health",
        [
            {"status": "red", "timed_out": False, "number_of_nodes": 1},
            {"status": "yellow", "timed_out": True, "number_of_nodes": 1},
            {"status": "green", "timed_out": False, "number_of_nodes": 2},
        ],
    )
    def test_cluster_unhealthy(self, make_cluster, make_node, health):
        cluster = make_cluster(_config(), client_factory=_answering(health=health))
        with pytest.raises(ValidationFailedError):
            ValidateClusterState().run(cluster, make_node())


class TestAfterStop:
    def test_removes_node_and_cluster_directories(self, make_cluster, make_node):
        cluster = make_cluster(_config())
        node = _installed(cluster, make_node())
        CreateEphemeralDirectories().run(cluster, node)
        assert CleanUpDirectories().run(cluster, node) is True
        assert not node.fs.node_root.exists()
        assert not node.fs.cluster_root.exists()
        assert node.fs.installation_home.is_dir()

    def test_cluster_directory_kept_while_other_nodes_remain(self, make_cluster, make_node):
        cluster = make_cluster(_config(number_of_nodes=2))
        first = make_node("ephemeral-node-1", index=1)
        second = make_node("ephemeral-node-2", index=2)
        first.fs.data_path.mkdir(parents=True)
        second.fs.data_path.mkdir(parents=True)
        CleanUpDirectories().run(cluster, first)
        assert first.fs.cluster_root.is_dir()
        CleanUpDirectories().run(cluster, second)
        assert not second.fs.cluster_root.exists()

    def test_no_cleanup_requested(self, make_cluster, make_node):
        cluster = make_cluster(_config(no_cleanup_after_stop=True))
        node = make_node()
        node.fs.data_path.mkdir(parents=True)
        assert CleanUpDirectories().run(cluster, node) is False
        assert node.fs.data_path.is_dir()

    def test_keep_ephemeral_setting(self, make_cluster, make_node, forge_settings):
        settings = forge_settings.model_copy(update={"keep_ephemeral": True})
        cluster = make_cluster(_config(), settings=settings)
        node = make_node()
        node.fs.data_path.mkdir(parents=True)
        assert CleanUpDirectories().run(cluster, node) is False
