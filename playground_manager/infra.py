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

"""K3s playground bootstrap, health checks, and removal."""

from __future__ import annotations

import json
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

import sh
from rich.panel import Panel
from tenacity import retry, stop_after_attempt, wait_fixed

from playground_manager import console, logger
from playground_manager.config import ClusterConfig, InfraConfig
from playground_manager.constants import INFRA_COMPONENTS, INFRA_TMP_PREFIX, PLAYGROUND_SCRIPTS
from playground_manager.errors import InfrastructureError
from playground_manager.helm import HelmInstaller
from playground_manager.models import ReleaseStatus
from playground_manager.utils import error_output, require_command, run_kubectl


@dataclass(frozen=True)
class ComponentStatus:
    """Health of one infrastructure component."""

    name: str
    namespace: str
    release: str
    release_status: ReleaseStatus
    pods_total: int = 0
    pods_ready: int = 0

    @property
    def healthy(self) -> bool:
        return (
            self.release_status is ReleaseStatus.DEPLOYED
            and self.pods_total > 0
            and self.pods_ready == self.pods_total
        )


@dataclass(frozen=True)
class InfrastructureStatus:
    """Aggregated infrastructure health.

    Attributes:
        kubectl_available: Whether kubectl is on PATH.
        cluster_reachable: Whether the API server answered.
        components: Per-component health, empty when the cluster is unreachable.
    """

    kubectl_available: bool
    cluster_reachable: bool
    components: list[ComponentStatus] = field(default_factory=list)

    @property
    def healthy(self) -> bool:
        return (
            self.kubectl_available
            and self.cluster_reachable
            and all(component.healthy for component in self.components)
        )


# ============================================================================
# Deploy
# ============================================================================

def _stream(line: str) -> None:
    console.print(line.rstrip("\n"), markup=False, highlight=False)


def _clone_playground(repo_url: str, dest: Path) -> None:
    console.print(f"[yellow]\u2139\ufe0f  Cloning {repo_url}...[/yellow]")
    try:
        sh.git("clone", "--depth", "1", repo_url, str(dest))
    except sh.ErrorReturnCode as e:
        raise InfrastructureError(f"Failed to clone {repo_url}: {error_output(e)}") from e
    console.print("[green]\u2705 Playground repository cloned[/green]")


def run_script(script: Path, cwd: Path) -> None:
    """Run a shell script with bash, streaming its output to the console.

    Raises:
        InfrastructureError: If the script is missing or exits non-zero.
    """
    if not script.is_file():
        raise InfrastructureError(f"Setup script not found: {script}")
    console.print(f"[yellow]\u2139\ufe0f  Running {script.name}...[/yellow]")
    try:
        sh.bash(str(script), _cwd=str(cwd), _out=_stream, _err=_stream)
    except sh.ErrorReturnCode as e:
        raise InfrastructureError(f"{script.name} failed with exit code {e.exit_code}") from e
    console.print(f"[green]\u2705 {script.name} completed[/green]")


def wait_for_cluster(cluster_cfg: ClusterConfig, infra_cfg: InfraConfig) -> None:
    """Wait until the API server answers ``kubectl cluster-info``.

    Raises:
        InfrastructureError: If the cluster is still unreachable after all retries.
    """
    console.print("[yellow]\u2139\ufe0f  Waiting for the cluster API to respond...[/yellow]")

    @retry(
        stop=stop_after_attempt(infra_cfg.cluster_ready_retries),
        wait=wait_fixed(infra_cfg.cluster_ready_interval),
        reraise=True,
    )
    def _attempt() -> None:
        ok, _, stderr = run_kubectl(
            ["cluster-info"], cluster_cfg.resolved_kubeconfig(), cluster_cfg.kubectl_timeout)
        if not ok:
            raise InfrastructureError(f"Cluster not reachable: {stderr.strip()}")

    _attempt()
    console.print("[green]\u2705 Cluster is reachable[/green]")


def deploy_infrastructure(infra_cfg: InfraConfig, cluster_cfg: ClusterConfig) -> None:
    """Install K3s and the shared playground components.

    Clones the playground repository into a temporary directory and runs its
    setup scripts in order. The clone is removed afterwards, also on failure.

    Args:
        infra_cfg: Repository and readiness settings.
        cluster_cfg: Cluster access used for the readiness wait.

    Raises:
        InfrastructureError: If cloning, a script, or the readiness wait fails.
    """
    console.print(Panel.fit("Deploying playground infrastructure", style="bold blue"))
    for cmd in ("git", "bash"):
        try:
            require_command(cmd)
        except RuntimeError as e:
            raise InfrastructureError(str(e)) from e

    workdir = Path(tempfile.mkdtemp(prefix=INFRA_TMP_PREFIX))
    try:
        repo_dir = workdir / "playground"
        _clone_playground(infra_cfg.playground_repo_url, repo_dir)
        for script in PLAYGROUND_SCRIPTS:
            run_script(repo_dir / script, repo_dir)
    finally:
        shutil.rmtree(workdir, ignore_errors=True)

    wait_for_cluster(cluster_cfg, infra_cfg)
    console.print("[green]\U0001f389 Infrastructure deployed successfully![/green]")


# ============================================================================
# Status
# ============================================================================

def _count_ready_pods(namespace: str, selector: str | None, cluster_cfg: ClusterConfig) -> tuple[int, int]:
    """Return ``(total, ready)`` pods in *namespace*, ``(0, 0)`` when unknown."""
    args = ["get", "pods", "-n", namespace, "-o", "json"]
    if selector:
        args.extend(["-l", selector])
    ok, stdout, stderr = run_kubectl(args, cluster_cfg.resolved_kubeconfig(), cluster_cfg.kubectl_timeout)
    if not ok:
        logger.debug("Listing pods in %s failed: %s", namespace, stderr.strip())
        return 0, 0
    try:
        pods = json.loads(stdout).get("items", [])
    except (ValueError, AttributeError):
        return 0, 0
    ready = sum(1 for pod in pods if _pod_ready(pod))
    return len(pods), ready


def _pod_ready(pod: dict) -> bool:
    status = pod.get("status") or {}
    conditions = status.get("conditions") or []
    if not any(c.get("type") == "Ready" and c.get("status") == "True" for c in conditions):
        return False
    containers = status.get("containerStatuses") or []
    return bool(containers) and all(c.get("ready") for c in containers)


def check_infrastructure(
    cluster_cfg: ClusterConfig,
    installer: HelmInstaller | None = None,
    components: list[dict] | None = None,
) -> InfrastructureStatus:
    """Inspect the cluster and the shared infrastructure components.

    A component is healthy when its Helm release is deployed and it has at
    least one pod, all of them Ready.

    Args:
        cluster_cfg: Cluster access settings.
        installer: Helm wrapper used for release status, built from *cluster_cfg* if None.
        components: Component table, defaults to the one in dependencies.yaml.

    Returns:
        The aggregated status; never raises for cluster errors.
    """
    try:
        require_command("kubectl")
    except RuntimeError:
        return InfrastructureStatus(kubectl_available=False, cluster_reachable=False)

    ok, _, stderr = run_kubectl(
        ["cluster-info"], cluster_cfg.resolved_kubeconfig(), cluster_cfg.kubectl_timeout)
    if not ok:
        logger.debug("cluster-info failed: %s", stderr.strip())
        return InfrastructureStatus(kubectl_available=True, cluster_reachable=False)

    if installer is None:
        installer = HelmInstaller(cluster_cfg.resolved_kubeconfig(), cluster_cfg.helm_driver)

    statuses = []
    for component in components if components is not None else INFRA_COMPONENTS:
        namespace = component["namespace"]
        release = component["helm_release"]
        total, ready = _count_ready_pods(namespace, component.get("selector"), cluster_cfg)
        statuses.append(ComponentStatus(
            name=component["name"],
            namespace=namespace,
            release=release,
            release_status=installer.status(release, namespace),
            pods_total=total,
            pods_ready=ready,
        ))
    return InfrastructureStatus(kubectl_available=True, cluster_reachable=True, components=statuses)


# ============================================================================
# Remove
# ============================================================================

def remove_infrastructure(infra_cfg: InfraConfig) -> bool:
    """Uninstall K3s with the script it installed.

    Returns:
        False when the uninstall script is absent and nothing was done.

    Raises:
        InfrastructureError: If the uninstall script fails.
    """
    script = infra_cfg.k3s_uninstall_script
    if not script.exists():
        console.print(f"[yellow]\u26a0\ufe0f  K3s uninstall script not found at {script}, skipping[/yellow]")
        return False
    console.print(Panel.fit("Removing K3s", style="bold blue"))
    try:
        sh.bash(str(script), _out=_stream, _err=_stream)
    except sh.ErrorReturnCode as e:
        raise InfrastructureError(f"K3s uninstall failed with exit code {e.exit_code}") from e
    console.print("[green]\u2705 K3s removed[/green]")
    return True
