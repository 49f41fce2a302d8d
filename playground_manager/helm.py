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

"""Helm install, uninstall, and status through the helm binary."""

from __future__ import annotations

import json
import os
import re
from pathlib import Path

import sh

from playground_manager import console, logger
from playground_manager.config import ClusterConfig, ScenarioConfig
from playground_manager.constants import HELM_PROCESS_GRACE_SECONDS
from playground_manager.errors import InstallFailed, ResolutionFailed, UninstallFailed
from playground_manager.models import ReleaseStatus
from playground_manager.utils import error_output, kube_args

_DURATION_UNITS = {"s": 1, "m": 60, "h": 3600}

# helm loader messages for a chart directory it cannot read
_CHART_LOAD_ERRORS = (
    "Chart.yaml file is missing",
    "chart.metadata",
    "cannot load Chart.yaml",
    "cannot load values.yaml",
    "chart requires kubeVersion",
)


def duration_seconds(duration: str) -> int:
    """Convert a helm duration such as ``5m`` to seconds."""
    match = re.fullmatch(r"(\d+)([smh])", duration)
    if not match:
        raise ValueError(f"Unsupported duration '{duration}'")
    return int(match.group(1)) * _DURATION_UNITS[match.group(2)]


def collect_set_args(values: dict[str, str]) -> list[str]:
    """Build ``--set key=value`` arguments in insertion order.

    Args:
        values: Value overrides keyed by dotted helm path.

    Returns:
        Flat argument list for the helm command line.
    """
    return [item for key, value in values.items() for item in ("--set", f"{key}={value}")]


class HelmInstaller:
    """Wraps the helm primitives the lifecycle controller needs.

    Every call blocks until helm returns. Install and uninstall pass
    ``--wait --timeout`` so helm itself waits for readiness; the process is
    killed shortly after that timeout if helm hangs.

    Args:
        kubeconfig: Kubeconfig path handed to helm, or None for its default.
        helm_driver: Release storage driver (``HELM_DRIVER``), or None.
        timeout: Helm duration string used for ``--timeout``.
    """

    def __init__(self, kubeconfig: Path | None = None, helm_driver: str | None = None, timeout: str = "5m") -> None:
        self.kubeconfig = kubeconfig
        self.helm_driver = helm_driver
        self.timeout = timeout
        self._process_timeout = duration_seconds(timeout) + HELM_PROCESS_GRACE_SECONDS

    @classmethod
    def from_config(cls, cluster_cfg: ClusterConfig, scenario_cfg: ScenarioConfig) -> HelmInstaller:
        return cls(cluster_cfg.resolved_kubeconfig(), cluster_cfg.helm_driver, scenario_cfg.helm_timeout)

    def _helm(self, *args: str, timeout: int | None = None) -> str:
        env = dict(os.environ)
        if self.helm_driver:
            env["HELM_DRIVER"] = self.helm_driver
        logger.debug("Running: helm %s", " ".join(args))
        return str(sh.helm(*args, *kube_args(self.kubeconfig), _env=env, _timeout=timeout))

    def install(self, chart_dir: Path, release: str, namespace: str, values: dict[str, str] | None = None) -> None:
        """Install or upgrade *release* from a local chart directory.

        The namespace is created when missing and helm waits until the
        release's resources are ready.

        Args:
            chart_dir: Local chart directory.
            release: Helm release name.
            namespace: Target namespace.
            values: Value overrides passed as ``--set``.

        Raises:
            ResolutionFailed: If helm cannot load the chart.
            InstallFailed: If helm fails or exceeds the timeout.
        """
        console.print(f"[yellow]\U0001f680 Installing release {release} in namespace {namespace}...[/yellow]")
        try:
            self._helm(
                "upgrade", "--install", release, str(chart_dir),
                "--namespace", namespace,
                "--create-namespace",
                "--wait",
                "--timeout", self.timeout,
                *collect_set_args(values or {}),
                timeout=self._process_timeout,
            )
        except sh.ErrorReturnCode as e:
            output = error_output(e)
            if any(marker in output for marker in _CHART_LOAD_ERRORS):
                raise ResolutionFailed(f"helm could not load chart {chart_dir}: {output}") from e
            raise InstallFailed(f"helm install of {release} failed: {output}") from e
        except sh.TimeoutException as e:
            raise InstallFailed(f"helm install of {release} did not finish within {self.timeout}") from e
        console.print("[green]\u2705 Helm chart installed successfully[/green]")

    def uninstall(self, release: str, namespace: str) -> None:
        """Uninstall *release* and wait for its resources to be deleted.

        Raises:
            UninstallFailed: If helm fails or exceeds the timeout.
        """
        console.print(f"[yellow]\U0001f4e6 Uninstalling Helm release {release} from namespace {namespace}...[/yellow]")
        try:
            self._helm(
                "uninstall", release,
                "--namespace", namespace,
                "--wait",
                "--timeout", self.timeout,
                timeout=self._process_timeout,
            )
        except sh.ErrorReturnCode as e:
            raise UninstallFailed(f"helm uninstall of {release} failed: {error_output(e)}") from e
        except sh.TimeoutException as e:
            raise UninstallFailed(f"helm uninstall of {release} did not finish within {self.timeout}") from e
        console.print("[green]\u2705 Helm release uninstalled[/green]")

    def status(self, release: str, namespace: str) -> ReleaseStatus:
        """Return the coarse state of *release*; never raises for helm errors."""
        try:
            output = self._helm("status", release, "--namespace", namespace, "--output", "json")
        except sh.ErrorReturnCode as e:
            if "not found" in error_output(e).lower():
                return ReleaseStatus.NOT_FOUND
            logger.debug("helm status %s failed: %s", release, error_output(e))
            return ReleaseStatus.OTHER
        try:
            state = json.loads(output).get("info", {}).get("status", "")
        except (ValueError, AttributeError):
            return ReleaseStatus.OTHER
        return ReleaseStatus.DEPLOYED if state == ReleaseStatus.DEPLOYED.value else ReleaseStatus.OTHER

    def list_releases(self, prefix: str = "") -> list[tuple[str, str]]:
        """List ``(release, namespace)`` pairs across all namespaces.

        Args:
            prefix: Only keep releases whose name starts with this prefix.

        Raises:
            UninstallFailed: If helm cannot list releases.
        """
        try:
            output = self._helm("list", "--all-namespaces", "--all", "--output", "json")
        except sh.ErrorReturnCode as e:
            raise UninstallFailed(f"helm list failed: {error_output(e)}") from e
        releases = json.loads(output or "[]")
        return [
            (item["name"], item["namespace"])
            for item in releases
            if item.get("name", "").startswith(prefix)
        ]
