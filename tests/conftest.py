"""Shared test fixtures and fakes for clusterforge."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlparse

import pytest

from clusterforge.config import ForgeSettings
from clusterforge.core.catalog import ArtifactCatalogResolver, split_package_key
from clusterforge.core.node_machine import NodeHandle
from clusterforge.core.orchestrator import EphemeralCluster
from clusterforge.core.platform import Platform
from clusterforge.core.versions import parse_version
from clusterforge.errors import TaskExecutionError, ValidationRequestError
from clusterforge.models.cluster import ClusterConfiguration
from clusterforge.models.filesystem import NodeFileSystem

CATALOG_URL = "https://catalog.test/v1/"
LINUX = Platform(os="linux", arch="x86_64")


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's runtime homes and overrides out of the tests."""
    for name in ("JAVA_HOME", "JAVA8_HOME", "CLUSTERFORGE_JAVA_HOME", "CLUSTERFORGE_JAVA8_HOME",
                 "CLUSTERFORGE_KEEP_EPHEMERAL", "CLUSTERFORGE_CACHE_ROOT",
                 "CLUSTERFORGE_EPHEMERAL_ROOT", "CLUSTERFORGE_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


# ---------------------------------------------------------------------------
# HTTP stubs
# ---------------------------------------------------------------------------


class StubResponse:
    """Minimal stand-in for ``requests.Response``."""

    def __init__(self, payload: Any = None, status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code
        self.text = "" if payload is None else str(payload)

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload


class StubSession:
    """Answers GETs from a ``{url: payload | StubResponse}`` map; 404 otherwise."""

    def __init__(self, routes: Mapping[str, Any] | None = None) -> None:
        self.routes: dict[str, Any] = dict(routes or {})
        self.calls: list[str] = []
        self.auth: Any = None
        self.verify: Any = True

    def get(self, url: str, **kwargs: Any) -> StubResponse:
        self.calls.append(url)
        if url not in self.routes:
            return StubResponse({"error": "not found"}, status_code=404)
        answer = self.routes[url]
        if isinstance(answer, StubResponse):
            return answer
        return StubResponse(answer)


def distribution_package(version: str) -> dict[str, Any]:
    """Search answer for the server distribution of *version* on linux."""
    suffixed = parse_version(version) > parse_version("7.0.0-alpha1")
    name = f"elasticsearch-{version}-linux-x86_64.tar.gz" if suffixed else f"elasticsearch-{version}.tar.gz"
    base = "https://artifacts.elastic.co/downloads/elasticsearch"
    return {
        "packages": {
            name: {
                "url": f"{base}/{name}",
                "sha_url": f"{base}/{name}.sha512",
                "asc_url": f"{base}/{name}.asc",
                "type": "tar",
                "architecture": "x86_64",
                "os": ["linux"],
            },
            f"{name}.sha512": {"url": f"{base}/{name}.sha512", "type": "sha"},
        }
    }


def plugin_package(moniker: str, version: str) -> dict[str, Any]:
    name = f"{moniker}-{version}.zip"
    return {
        "packages": {
            name: {
                "url": f"https://artifacts.elastic.co/downloads/elasticsearch-plugins/{moniker}/{name}",
                "type": "zip",
            }
        }
    }


def catalog_routes(
    version: str,
    plugins: Sequence[str] = (),
    versions: Sequence[str] | None = None,
) -> dict[str, Any]:
    """Routes for a catalog that knows *version* and the given plugin builds."""
    v = parse_version(version)
    os_filter = "linux" if v > parse_version("7.0.0-alpha1") else "tar"
    routes: dict[str, Any] = {
        f"{CATALOG_URL}versions": {"versions": list(versions or [version])},
        f"{CATALOG_URL}search/{version}/elasticsearch,{os_filter}": distribution_package(version),
    }
    for moniker in plugins:
        routes[f"{CATALOG_URL}search/{version}/{moniker}"] = plugin_package(moniker, version)
    return routes


@pytest.fixture
def stub_session() -> StubSession:
    return StubSession()


@pytest.fixture
def make_catalog() -> Callable[..., ArtifactCatalogResolver]:
    """Factory fixture: a resolver for linux/x86_64 backed by a stub session."""

    def _factory(routes: Mapping[str, Any] | None = None) -> ArtifactCatalogResolver:
        return ArtifactCatalogResolver(CATALOG_URL, session=StubSession(routes), platform=LINUX)

    return _factory


# ---------------------------------------------------------------------------
# Collaborator fakes
# ---------------------------------------------------------------------------


class FakeTransport:
    """Writes placeholder archives and extracts them into a minimal home tree."""

    def __init__(self, bundled_jdk: bool = True) -> None:
        self.bundled_jdk = bundled_jdk
        self.downloads: list[str] = []
        self.extractions: list[Path] = []
        self.fail_urls: set[str] = set()

    def download(self, url: str, dest: Path) -> None:
        self.downloads.append(url)
        if url in self.fail_urls:
            raise TaskExecutionError(f"download of {url} failed")
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(f"archive:{url}", encoding="utf-8")

    def extract(self, archive: Path, dest_dir: Path) -> None:
        self.extractions.append(archive)
        tokens = split_package_key(archive.name)
        assert tokens is not None, archive.name
        home = dest_dir / f"elasticsearch-{tokens[1]}"
        (home / "bin").mkdir(parents=True, exist_ok=True)
        (home / "bin" / "elasticsearch").write_text("#!/bin/sh\n", encoding="utf-8")
        (home / "bin" / "elasticsearch-plugin").write_text("#!/bin/sh\n", encoding="utf-8")
        (home / "config").mkdir(exist_ok=True)
        (home / "config" / "elasticsearch.yml").write_text("# defaults\n", encoding="utf-8")
        (home / "plugins").mkdir(exist_ok=True)
        if self.bundled_jdk:
            (home / "jdk" / "bin").mkdir(parents=True, exist_ok=True)


class FakeProcess:
    _next_pid = 1000

    def __init__(self, name: str, starts: bool = True) -> None:
        FakeProcess._next_pid += 1
        self._pid = FakeProcess._next_pid
        self.name = name
        self.starts = starts
        self.running = True
        self._lines = [f"[o.e.n.Node] [{name}] starting ..."]
        if starts:
            self._lines.append(f"[o.e.n.Node] [{name}] started")

    @property
    def pid(self) -> int | None:
        return self._pid

    def lines(self) -> list[str]:
        return list(self._lines)

    def wait_for_started(self, timeout: float) -> bool:
        return self.starts

    def is_running(self) -> bool:
        return self.running


class FakeLauncher:
    """Records every start/run/stop; plugin installs create the plugin folder."""

    def __init__(self) -> None:
        self.started: list[dict[str, Any]] = []
        self.runs: list[dict[str, Any]] = []
        self.stopped: list[str] = []
        self.fail_plugin_installs: set[str] = set()
        self.processes_start = True

    def start(
        self,
        binary: Path,
        args: Sequence[str],
        env: Mapping[str, str],
        *,
        name: str,
        echo_after_started: bool = False,
    ) -> FakeProcess:
        self.started.append({"binary": binary, "args": list(args), "env": dict(env), "name": name})
        return FakeProcess(name, starts=self.processes_start)

    def run(self, binary: Path, args: Sequence[str], env: Mapping[str, str]) -> int:
        self.runs.append({"binary": binary, "args": list(args), "env": dict(env)})
        home = next(p.parent for p in binary.parents if p.name == "bin")
        if args and args[0] == "install":
            archive = Path(unquote(urlparse(args[-1]).path))
            tokens = split_package_key(archive.name)
            moniker = tokens[0] if tokens else archive.stem
            if moniker in self.fail_plugin_installs:
                return 1
            (home / "plugins" / moniker).mkdir(parents=True, exist_ok=True)
            return 0
        if args and args[0] == "useradd":
            users = home / "config" / "users"
            users.parent.mkdir(parents=True, exist_ok=True)
            with open(users, "a", encoding="utf-8") as fh:
                fh.write(f"{args[1]}:hash\n")
            return 0
        return 0

    def stop(self, handle: FakeProcess) -> None:
        handle.running = False
        self.stopped.append(handle.name)

    @property
    def plugin_installs(self) -> list[str]:
        return [r["args"][-1] for r in self.runs if r["args"][:1] == ["install"]]


class FakeClient:
    """Answers validation queries from the node's actual home on disk."""

    def __init__(self, cluster: Any, node: Any, fail: str | None = None) -> None:
        self.cluster = cluster
        self.node = node
        self.fail = fail
        self.calls: list[str] = []

    def _check(self, call: str) -> None:
        self.calls.append(call)
        if self.fail == call:
            raise ValidationRequestError(f"{call} returned HTTP 500")

    def root(self) -> dict[str, Any]:
        self._check("root")
        return {"name": self.node.name, "version": {"number": str(self.cluster.version)}}

    def cat_plugins(self) -> list[dict[str, Any]]:
        self._check("cat_plugins")
        plugins_dir = self.node.fs.home / "plugins"
        if not plugins_dir.is_dir():
            return []
        return [
            {"name": self.node.name, "component": p.name, "version": str(self.cluster.version)}
            for p in sorted(plugins_dir.iterdir())
        ]

    def license(self, path: str = "/_license") -> dict[str, Any]:
        self._check("license")
        return {"license": {"status": "active", "type": "trial"}}

    def cluster_health(self, wait_for_nodes: int | None = None) -> dict[str, Any]:
        self._check("cluster_health")
        return {
            "status": "green",
            "timed_out": False,
            "number_of_nodes": self.cluster.config.number_of_nodes,
        }


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def fake_launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def forge_settings(tmp_path: Path) -> ForgeSettings:
    """Settings rooted in a temp directory, ignoring any .env file."""
    return ForgeSettings(
        _env_file=None,
        cache_root=tmp_path / "cache",
        ephemeral_root=tmp_path / "ephemeral",
        catalog_url=CATALOG_URL,
        start_timeout_seconds=5.0,
    )


@pytest.fixture
def make_node(forge_settings: ForgeSettings) -> Callable[..., NodeHandle]:
    """Factory fixture: a node laid out under the temp settings roots."""

    def _factory(
        name: str = "ephemeral-node-1",
        version: str = "7.4.0",
        cluster_name: str = "test-cluster",
        index: int = 1,
    ) -> NodeHandle:
        fs = NodeFileSystem.create(
            cache_root=forge_settings.cache_root,
            ephemeral_root=forge_settings.ephemeral_root,
            version=parse_version(version),
            cluster_name=cluster_name,
            node_name=name,
        )
        return NodeHandle(name=name, port=9200 + index - 1, index=index, fs=fs)

    return _factory


@pytest.fixture
def make_cluster(
    forge_settings: ForgeSettings,
    fake_transport: FakeTransport,
    fake_launcher: FakeLauncher,
) -> Callable[..., EphemeralCluster]:
    """Factory fixture: a cluster wired to the fakes and a stub catalog.

    The catalog knows the configured version and its plugin builds, x-pack
    included.
    """

    def _factory(
        config: ClusterConfiguration,
        routes: Mapping[str, Any] | None = None,
        client_fail: str | None = None,
        settings: ForgeSettings | None = None,
        client_factory: Callable[..., Any] | None = None,
    ) -> EphemeralCluster:
        if routes is None:
            routes = catalog_routes(
                str(config.version), plugins=[*config.plugin_monikers, "x-pack"]
            )
        catalog = ArtifactCatalogResolver(CATALOG_URL, session=StubSession(routes), platform=LINUX)
        return EphemeralCluster(
            config,
            settings=settings or forge_settings,
            catalog=catalog,
            transport=fake_transport,
            launcher=fake_launcher,
            client_factory=client_factory
            or (lambda cluster, node: FakeClient(cluster, node, fail=client_fail)),
        )

    return _factory
