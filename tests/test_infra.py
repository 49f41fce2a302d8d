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

import pytest

from conftest import FakeInstaller
from playground_manager import infra
from playground_manager.config import ClusterConfig, InfraConfig
from playground_manager.errors import InfrastructureError

COMPONENTS = [
    {"name": "cert-manager", "helm_release": "cert-manager", "namespace": "cert-manager"},
    {"name": "ingress-controller", "helm_release": "ingress-nginx", "namespace": "ingress-nginx",
     "selector": "app.kubernetes.io/name=ingress-nginx"},
]


def pod(ready: bool, containers: tuple[bool, ...] = (True,)) -> dict:
    return {
        "status": {
            "conditions": [{"type": "Ready", "status": "True" if ready else "False"}],
            "containerStatuses": [{"ready": c} for c in containers],
        }
    }


@pytest.fixture
def cluster_cfg() -> ClusterConfig:
    return ClusterConfig(kubeconfig=Path("/tmp/kc"))


@pytest.fixture
def no_commands_missing(monkeypatch):
    monkeypatch.setattr(infra, "require_command", lambda cmd: None)


def test_pod_ready():
    assert infra._pod_ready(pod(True))
    assert not infra._pod_ready(pod(False))
    assert not infra._pod_ready(pod(True, containers=(True, False)))
    assert not infra._pod_ready(pod(True, containers=()))


def test_check_infrastructure_healthy(monkeypatch, cluster_cfg, no_commands_missing):
    calls = []

    def fake_kubectl(args, kubeconfig=None, timeout=30):
        calls.append(args)
        if args == ["cluster-info"]:
            return True, "running", ""
        return True, json.dumps({"items": [pod(True), pod(True)]}), ""

    monkeypatch.setattr(infra, "run_kubectl", fake_kubectl)
    installer = FakeInstaller()
    installer.installed = {"cert-manager": "cert-manager", "ingress-nginx": "ingress-nginx"}

    status = infra.check_infrastructure(cluster_cfg, installer=installer, components=COMPONENTS)

    assert status.healthy
    assert [c.pods_ready for c in status.components] == [2, 2]
    assert ["-l", "app.kubernetes.io/name=ingress-nginx"] == calls[-1][-2:]


def test_check_infrastructure_missing_release_is_unhealthy(monkeypatch, cluster_cfg, no_commands_missing):
    monkeypatch.setattr(
        infra, "run_kubectl",
        lambda args, kubeconfig=None, timeout=30: (True, json.dumps({"items": [pod(True)]}), ""),
    )
    installer = FakeInstaller()
    installer.installed = {"cert-manager": "cert-manager"}

    status = infra.check_infrastructure(cluster_cfg, installer=installer, components=COMPONENTS)

    assert not status.healthy
    assert [c.healthy for c in status.components] == [True, False]


def test_check_infrastructure_without_pods_is_unhealthy(monkeypatch, cluster_cfg, no_commands_missing):
    monkeypatch.setattr(
        infra, "run_kubectl",
        lambda args, kubeconfig=None, timeout=30: (True, json.dumps({"items": []}), ""),
    )
    installer = FakeInstaller()
    installer.installed = {"cert-manager": "cert-manager"}

    status = infra.check_infrastructure(cluster_cfg, installer=installer, components=COMPONENTS[:1])

    assert not status.components[0].healthy


def test_check_infrastructure_unreachable(monkeypatch, cluster_cfg, no_commands_missing):
    monkeypatch.setattr(infra, "run_kubectl", lambda args, kubeconfig=None, timeout=30: (False, "", "refused"))

    status = infra.check_infrastructure(cluster_cfg, installer=FakeInstaller(), components=COMPONENTS)

    assert status.kubectl_available
    assert not status.cluster_reachable
    assert status.components == []
    assert not status.healthy


def test_check_infrastructure_without_kubectl(monkeypatch, cluster_cfg):
    def missing(cmd):
        raise RuntimeError(f"Required command '{cmd}' not found.")

    monkeypatch.setattr(infra, "require_command", missing)
    status = infra.check_infrastructure(cluster_cfg)
    assert not status.kubectl_available


def test_deploy_runs_scripts_in_order_and_removes_clone(monkeypatch, cluster_cfg, no_commands_missing):
    clone_dirs = []
    ran = []

    def fake_clone(repo_url, dest):
        dest.mkdir(parents=True)
        clone_dirs.append(dest)

    monkeypatch.setattr(infra, "_clone_playground", fake_clone)
    monkeypatch.setattr(infra, "run_script", lambda script, cwd: ran.append(script.name))
    monkeypatch.setattr(infra, "wait_for_cluster", lambda cluster_cfg, infra_cfg: None)

    infra.deploy_infrastructure(InfraConfig(), cluster_cfg)

    assert ran == ["install-k3s.sh", "init-k3s.sh"]
    assert not clone_dirs[0].exists()


def test_deploy_removes_clone_on_failure(monkeypatch, cluster_cfg, no_commands_missing):
    clone_dirs = []

    def fake_clone(repo_url, dest):
        dest.mkdir(parents=True)
        clone_dirs.append(dest)

    def failing_script(script, cwd):
        raise InfrastructureError(f"{script.name} failed with exit code 1")

    monkeypatch.setattr(infra, "_clone_playground", fake_clone)
    monkeypatch.setattr(infra, "run_script", failing_script)

    with pytest.raises(InfrastructureError, match="install-k3s.sh"):
        infra.deploy_infrastructure(InfraConfig(), cluster_cfg)
    assert not clone_dirs[0].parent.exists()


def test_run_script_missing(tmp_path):
    with pytest.raises(InfrastructureError, match="not found"):
        infra.run_script(tmp_path / "install-k3s.sh", tmp_path)


def test_run_script_streams_and_checks_exit_code(tmp_path):
    ok = tmp_path / "ok.sh"
    ok.write_text("echo hello\n")
    infra.run_script(ok, tmp_path)

    failing = tmp_path / "fail.sh"
    failing.write_text("exit 3\n")
    with pytest.raises(InfrastructureError, match="exit code 3"):
        infra.run_script(failing, tmp_path)


def test_wait_for_cluster_gives_up(monkeypatch, cluster_cfg):
    attempts = []

    def fake_kubectl(args, kubeconfig=None, timeout=30):
        attempts.append(args)
        return False, "", "connection refused"

    monkeypatch.setattr(infra, "run_kubectl", fake_kubectl)
    infra_cfg = InfraConfig(cluster_ready_retries=3, cluster_ready_interval=0)

    with pytest.raises(InfrastructureError, match="connection refused"):
        infra.wait_for_cluster(cluster_cfg, infra_cfg)
    assert len(attempts) == 3


def test_remove_infrastructure_without_script(tmp_path):
    assert infra.remove_infrastructure(InfraConfig(k3s_uninstall_script=tmp_path / "missing.sh")) is False
