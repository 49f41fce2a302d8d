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

"""Orchestration functions that compose domain modules into workflows."""

from __future__ import annotations

import requests
from kubernetes.client.exceptions import ApiException
from rich.panel import Panel

from playground_manager import __version__, console, logger
from playground_manager.catalog import ClusterSource, MetadataSource, ScenarioCatalog
from playground_manager.config import ClusterConfig, InfraConfig, ScenarioConfig
from playground_manager.controller import LifecycleController
from playground_manager.errors import NoActiveScenario, UninstallFailed
from playground_manager.helm import HelmInstaller
from playground_manager.infra import remove_infrastructure
from playground_manager.kube import KubeClient
from playground_manager.resolver import ChartResolver
from playground_manager.tracker import ActiveScenarioTracker


# ============================================================================
# Builders
# ============================================================================

def build_session() -> requests.Session:
    session = requests.Session()
    session.headers["User-Agent"] = f"playground-manager/{__version__}"
    return session


def build_catalog(scenario_cfg: ScenarioConfig, kube: KubeClient | None, session: requests.Session) -> ScenarioCatalog:
    """Build the catalog for the configured source.

    Args:
        scenario_cfg: Selects the ``cluster`` or ``metadata`` source.
        kube: Cluster client for the ``cluster`` source.
        session: HTTP session for the ``metadata`` source.
    """
    if scenario_cfg.catalog_source == "metadata":
        return ScenarioCatalog(MetadataSource(scenario_cfg.metadata_url, session, scenario_cfg.http_timeout))
    return ScenarioCatalog(ClusterSource(kube))


def load_catalog(
    cluster_cfg: ClusterConfig | None = None,
    scenario_cfg: ScenarioConfig | None = None,
) -> ScenarioCatalog:
    """Build only the catalog; the cluster is contacted only for the ``cluster`` source."""
    cluster_cfg = cluster_cfg or ClusterConfig()
    scenario_cfg = scenario_cfg or ScenarioConfig()
    kube = KubeClient.from_config(cluster_cfg) if scenario_cfg.catalog_source == "cluster" else None
    return build_catalog(scenario_cfg, kube, build_session())


def build_controller(
    cluster_cfg: ClusterConfig | None = None,
    scenario_cfg: ScenarioConfig | None = None,
    kube: KubeClient | None = None,
) -> LifecycleController:
    """Wire a LifecycleController from configuration.

    Args:
        cluster_cfg: Cluster access settings, loaded from the environment if None.
        scenario_cfg: Scenario settings, loaded from the environment if None.
        kube: Pre-built cluster client, built from *cluster_cfg* if None.

    Returns:
        A controller ready for install, uninstall, and status.
    """
    cluster_cfg = cluster_cfg or ClusterConfig()
    scenario_cfg = scenario_cfg or ScenarioConfig()
    kube = kube or KubeClient.from_config(cluster_cfg)
    session = build_session()
    return LifecycleController(
        catalog=build_catalog(scenario_cfg, kube, session),
        resolver=ChartResolver.from_config(scenario_cfg, session),
        installer=HelmInstaller.from_config(cluster_cfg, scenario_cfg),
        tracker=ActiveScenarioTracker(kube),
        kube=kube,
        prefix=scenario_cfg.release_prefix,
    )


# ============================================================================
# Cleanup
# ============================================================================

def sweep_orphan_releases(controller: LifecycleController, installer: HelmInstaller) -> list[str]:
    """Remove scenario releases no record points to.

    Every release named ``<prefix>-*`` is uninstalled and its namespace
    deleted. Failures are reported as warnings.

    Returns:
        Names of the releases that were removed.
    """
    try:
        releases = installer.list_releases(prefix=f"{controller.prefix}-")
    except UninstallFailed as e:
        console.print(f"[yellow]\u26a0\ufe0f  Could not list Helm releases: {e}[/yellow]")
        return []

    removed: list[str] = []
    for release, namespace in releases:
        console.print(f"[yellow]\u2139\ufe0f  Removing orphaned release {release} in {namespace}[/yellow]")
        try:
            installer.uninstall(release, namespace)
        except UninstallFailed as e:
            console.print(f"[yellow]\u26a0\ufe0f  {e}[/yellow]")
            continue
        try:
            controller.kube.delete_namespace(namespace)
        except ApiException as e:
            logger.warning("Failed to delete namespace %s: %s", namespace, e.reason)
        removed.append(release)
    return removed


def run_cleanup(
    *,
    keep_infra: bool = False,
    cluster_cfg: ClusterConfig | None = None,
    scenario_cfg: ScenarioConfig | None = None,
    infra_cfg: InfraConfig | None = None,
    controller: LifecycleController | None = None,
) -> None:
    """Stop the active scenario, sweep leftover releases, then remove K3s.

    Args:
        keep_infra: Leave K3s and the shared components installed.
        cluster_cfg: Cluster access settings, loaded from the environment if None.
        scenario_cfg: Scenario settings, loaded from the environment if None.
        infra_cfg: Infrastructure settings, loaded from the environment if None.
        controller: Pre-built controller, built from the configs if None.

    Raises:
        InfrastructureError: If the K3s uninstall script fails.
    """
    cluster_cfg = cluster_cfg or ClusterConfig()
    scenario_cfg = scenario_cfg or ScenarioConfig()
    infra_cfg = infra_cfg or InfraConfig()
    controller = controller or build_controller(cluster_cfg, scenario_cfg)

    console.print(Panel.fit("Cleaning up playground", style="bold blue"))
    try:
        removed = controller.uninstall()
        console.print(f"[green]\u2705 Stopped scenario '{removed.scenario_id}'[/green]")
    except NoActiveScenario:
        console.print("[yellow]\u2139\ufe0f  No active scenario to stop[/yellow]")

    swept = sweep_orphan_releases(controller, controller.installer)
    if swept:
        console.print(f"[green]\u2705 Removed {len(swept)} orphaned release(s)[/green]")

    if keep_infra:
        console.print("[yellow]\u2139\ufe0f  Keeping infrastructure (--keep-infra)[/yellow]")
    else:
        remove_infrastructure(infra_cfg)
    console.print("[green]\U0001f389 Cleanup complete[/green]")
