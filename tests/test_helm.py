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

from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace

import pytest
import sh

from playground_manager import helm as helm_module
from playground_manager.errors import InstallFailed, ResolutionFailed, UninstallFailed
from playground_manager.helm import HelmInstaller, collect_set_args, duration_seconds
from playground_manager.models import ReleaseStatus


class RecordingHelm:
    """Stands in for ``HelmInstaller._helm``."""

    def __init__(self, output: str = "", error: Exception | None = None) -> None:
        self.output = output
        self.error = error
        self.calls: list[tuple[tuple[str, ...], int | None]] = []

    def __call__(self, *args: str, timeout: int | None = None) -> str:
        self.calls.append((args, timeout))
        if self.error is not None:
            raise self.error
        return self.output


def helm_error(stderr: bytes) -> sh.ErrorReturnCode_1:
    return sh.ErrorReturnCode_1("helm", b"", stderr)


@pytest.fixture
def helm(monkeypatch):
    installer = HelmInstaller(kubeconfig=Path("/tmp/kc"), helm_driver="configmap", timeout="5m")
    recorder = RecordingHelm()
    monkeypatch.setattr(installer, "_helm", recorder)
    return installer, recorder


def test_duration_seconds():
    assert duration_seconds("90s") == 90
    assert duration_seconds("5m") == 300
    assert duration_seconds("1h") == 3600
    with pytest.raises(ValueError):
        duration_seconds("5 minutes")


def test_collect_set_args():
    assert collect_set_args({"scenario.id": "alpha", "a": "b"}) == [
        "--set", "scenario.id=alpha", "--set", "a=b",
    ]


def test_install_arguments(helm):
    installer, recorder = helm
    installer.install(Path("/charts/alpha"), "devopsbeerer-alpha", "devopsbeerer-alpha", {"scenario.id": "alpha"})

    args, timeout = recorder.calls[0]
    assert args[:4] == ("upgrade", "--install", "devopsbeerer-alpha", "/charts/alpha")
    assert "--create-namespace" in args
    assert "--wait" in args
    assert args[args.index("--timeout") + 1] == "5m"
    assert args[args.index("--namespace") + 1] == "devopsbeerer-alpha"
    assert args[-2:] == ("--set", "scenario.id=alpha")
    assert timeout == 300 + 30


def test_install_failure(helm):
    installer, recorder = helm
    recorder.error = helm_error(b"Error: INSTALLATION FAILED: timed out")
    with pytest.raises(InstallFailed, match="INSTALLATION FAILED"):
        installer.install(Path("/charts/alpha"), "devopsbeerer-alpha", "devopsbeerer-alpha")


def test_install_unloadable_chart_is_resolution_failure(helm):
    installer, recorder = helm
    recorder.error = helm_error(b"Error: INSTALLATION FAILED: Chart.yaml file is missing")
    with pytest.raises(ResolutionFailed, match="could not load chart"):
        installer.install(Path("/charts/alpha"), "devopsbeerer-alpha", "devopsbeerer-alpha")


def test_uninstall_failure(helm):
    installer, recorder = helm
    recorder.error = helm_error(b"Error: uninstall: Release not loaded")
    with pytest.raises(UninstallFailed, match="Release not loaded"):
        installer.uninstall("devopsbeerer-alpha", "devopsbeerer-alpha")


def test_status_deployed(helm):
    installer, recorder = helm
    recorder.output = json.dumps({"name": "devopsbeerer-alpha", "info": {"status": "deployed"}})
    assert installer.status("devopsbeerer-alpha", "devopsbeerer-alpha") is ReleaseStatus.DEPLOYED


def test_status_failed_release(helm):
    installer, recorder = helm
    recorder.output = json.dumps({"info": {"status": "failed"}})
    assert installer.status("devopsbeerer-alpha", "devopsbeerer-alpha") is ReleaseStatus.OTHER


def test_status_not_found(helm):
    installer, recorder = helm
    recorder.error = helm_error(b"Error: release: not found")
    assert installer.status("devopsbeerer-alpha", "devopsbeerer-alpha") is ReleaseStatus.NOT_FOUND


def test_list_releases_filters_prefix(helm):
    installer, recorder = helm
    recorder.output = json.dumps([
        {"name": "devopsbeerer-alpha", "namespace": "devopsbeerer-alpha"},
        {"name": "cert-manager", "namespace": "cert-manager"},
    ])
    assert installer.list_releases("devopsbeerer-") == [("devopsbeerer-alpha", "devopsbeerer-alpha")]


def test_helm_receives_kubeconfig_and_driver(monkeypatch):
    captured = {}

    def fake_helm(*args, **kwargs):
        captured["args"] = args
        captured["kwargs"] = kwargs
        return ""

    fake_sh = SimpleNamespace(
        helm=fake_helm, ErrorReturnCode=sh.ErrorReturnCode, TimeoutException=sh.TimeoutException)
    monkeypatch.setattr(helm_module, "sh", fake_sh)
    installer = HelmInstaller(kubeconfig=Path("/tmp/kc"), helm_driver="configmap")
    installer.uninstall("devopsbeerer-alpha", "devopsbeerer-alpha")

    assert captured["args"][-2:] == ("--kubeconfig", "/tmp/kc")
    assert captured["kwargs"]["_env"]["HELM_DRIVER"] == "configmap"
