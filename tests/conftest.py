# /*
# Copyright 2026 The DevOpsBeerer Authors.
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

"""Shared fakes for the Kubernetes API, HTTP, helm, and chart resolution."""

from __future__ import annotations

import copy
import io
import json
from pathlib import Path

import pytest
import requests
from kubernetes.client.exceptions import ApiException

from playground_manager.catalog import ScenarioCatalog
from playground_manager.controller import LifecycleController
from playground_manager.errors import InstallFailed, UninstallFailed
from playground_manager.kube import KubeClient
from playground_manager.models import ReleaseStatus
from playground_manager.tracker import ActiveScenarioTracker


# ============================================================================
# Kubernetes
# ============================================================================

class FakeCustomObjectsApi:
    """In-memory cluster-scoped custom objects with resourceVersion checks."""

    def __init__(self, definitions: list[dict] | None = None) -> None:
        self.definitions = definitions or []
        self.active: dict | None = None
        self.version = 0
        self.conflict_on_next_replace = False

    def _bump(self) -> str:
        self.version += 1
        return str(self.version)

    def list_cluster_custom_object(self, group, version, plural):
        return {"items": copy.deepcopy(self.definitions)}

    def get_cluster_custom_object(self, group, version, plural, name):
        if self.active is None:
            raise ApiException(status=404, reason="Not Found")
        return copy.deepcopy(self.active)

    def create_cluster_custom_object(self, group, version, plural, body):
        if self.active is not None:
            raise ApiException(status=409, reason="AlreadyExists")
        stored = copy.deepcopy(body)
        stored.setdefault("metadata", {})["resourceVersion"] = self._bump()
        stored.pop("status", None)
        self.active = stored
        return copy.deepcopy(stored)

    def replace_cluster_custom_object_status(self, group, version, plural, name, body):
        if self.active is None:
            raise ApiException(status=404, reason="Not Found")
        if self.conflict_on_next_replace:
            self.conflict_on_next_replace = False
            raise ApiException(status=409, reason="Conflict")
        expected = self.active["metadata"]["resourceVersion"]
        if body.get("metadata", {}).get("resourceVersion") != expected:
            raise ApiException(status=409, reason="Conflict")
        self.active["status"] = copy.deepcopy(body.get("status", {}))
        self.active["metadata"]["resourceVersion"] = self._bump()
        return copy.deepcopy(self.active)

    def delete_cluster_custom_object(self, group, version, plural, name):
        if self.active is None:
            raise ApiException(status=404, reason="Not Found")
        self.active = None
        return {}


class FakeCoreV1Api:
    def __init__(self) -> None:
        self.deleted_namespaces: list[str] = []

    def delete_namespace(self, name):
        self.deleted_namespaces.append(name)
        return {}


@pytest.fixture
def custom_api() -> FakeCustomObjectsApi:
    return FakeCustomObjectsApi()


@pytest.fixture
def core_api() -> FakeCoreV1Api:
    return FakeCoreV1Api()


@pytest.fixture
def kube(custom_api, core_api) -> KubeClient:
    return KubeClient(custom_api, core_api)


@pytest.fixture
def tracker(kube) -> ActiveScenarioTracker:
    return ActiveScenarioTracker(kube, clock=lambda: "2026-01-01T00:00:00Z")


# ============================================================================
# HTTP
# ============================================================================

class FakeRaw(io.BytesIO):
    decode_content = False


class FakeResponse:
    def __init__(self, status_code: int = 200, content: bytes = b"", payload=None) -> None:
        self.status_code = status_code
        self.content = content if payload is None else json.dumps(payload).encode()
        self.raw = FakeRaw(self.content)

    def json(self):
        return json.loads(self.content)

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def __enter__(self) -> FakeResponse:
        return self

    def __exit__(self, *exc) -> None:
        self.raw.close()


class FakeSession:
    """Serves canned responses by URL; unknown URLs answer 404."""

    def __init__(self, responses: dict[str, FakeResponse | Exception] | None = None) -> None:
        self.responses = responses or {}
        self.requests: list[tuple[str, dict]] = []

    def get(self, url, **kwargs):
        self.requests.append((url, kwargs))
        response = self.responses.get(url, FakeResponse(404))
        if isinstance(response, Exception):
            raise response
        return response


# ============================================================================
# Helm and charts
# ============================================================================

class FakeInstaller:
    def __init__(self) -> None:
        self.installed: dict[str, str] = {}
        self.install_calls: list[tuple[Path, str, str, dict]] = []
        self.uninstall_calls: list[tuple[str, str]] = []
        self.fail_install = False
        self.fail_uninstall = False

    def install(self, chart_dir, release, namespace, values=None):
        self.install_calls.append((chart_dir, release, namespace, dict(values or {})))
        if self.fail_install:
            raise InstallFailed(f"helm install of {release} failed: boom")
        self.installed[release] = namespace

    def uninstall(self, release, namespace):
        self.uninstall_calls.append((release, namespace))
        if self.fail_uninstall:
            raise UninstallFailed(f"helm uninstall of {release} failed: boom")
        self.installed.pop(release, None)

    def status(self, release, namespace):
        if release in self.installed:
            return ReleaseStatus.DEPLOYED
        return ReleaseStatus.NOT_FOUND

    def list_releases(self, prefix=""):
        return [(name, ns) for name, ns in self.installed.items() if name.startswith(prefix)]


class FakeResolver:
    def __init__(self) -> None:
        self.resolved: list[str] = []
        self.workdirs: list[Path] = []
        self.error: Exception | None = None

    def resolve(self, scenario, workdir):
        self.resolved.append(scenario.id)
        self.workdirs.append(workdir)
        if self.error is not None:
            raise self.error
        chart_dir = workdir / scenario.chart_dir
        chart_dir.mkdir(parents=True)
        (chart_dir / "Chart.yaml").write_text(f"name: {scenario.id}\n")
        return chart_dir


class StaticSource:
    def __init__(self, records: list) -> None:
        self.records = records

    def fetch(self):
        return [(f"entry #{i}", record) for i, record in enumerate(self.records)]


SCENARIOS = [
    {"id": "alpha", "name": "Alpha", "description": "First scenario", "tags": ["oauth2"],
     "features": ["Login flow"], "helmChart": {"dir": "alpha"}},
    {"id": "beta", "name": "Beta", "description": "Second scenario", "tags": ["oidc"]},
]


@pytest.fixture
def installer() -> FakeInstaller:
    return FakeInstaller()


@pytest.fixture
def resolver() -> FakeResolver:
    return FakeResolver()


@pytest.fixture
def catalog() -> ScenarioCatalog:
    return ScenarioCatalog(StaticSource(SCENARIOS))


@pytest.fixture
def controller(catalog, resolver, installer, tracker, kube) -> LifecycleController:
    return LifecycleController(catalog, resolver, installer, tracker, kube)
