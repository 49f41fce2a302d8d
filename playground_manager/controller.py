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

"""Scenario install, uninstall, and switch orchestration."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Protocol

from kubernetes.client.exceptions import ApiException
from rich.panel import Panel

from playground_manager import console, logger
from playground_manager.catalog import ScenarioCatalog
from playground_manager.constants import CHART_TMP_PREFIX, DEFAULT_RELEASE_PREFIX, SCENARIO_ID_VALUE_KEY
from playground_manager.errors import (
    AlreadyActiveSameScenario,
    NoActiveScenario,
    PlaygroundError,
    StaleActiveScenario,
    UninstallFailed,
)
from playground_manager.kube import KubeClient
from playground_manager.models import (
    ActiveScenarioRecord,
    Phase,
    ReleaseStatus,
    ScenarioDefinition,
    ScenarioStatus,
)
from playground_manager.resolver import ChartResolver
from playground_manager.tracker import ActiveScenarioTracker
from playground_manager.utils import release_name, scenario_namespace, validate_scenario_id


class PackageInstaller(Protocol):
    """The narrow helm contract the controller relies on."""

    def install(self, chart_dir: Path, release: str, namespace: str, values: dict[str, str] | None = None) -> None:
        ...

    def uninstall(self, release: str, namespace: str) -> None:
        ...

    def status(self, release: str, namespace: str) -> ReleaseStatus:
        ...


class LifecycleController:
    """Installs and removes scenarios while keeping the active record consistent.

    Only one scenario is active at a time: installing a different scenario
    first removes the current one.

    Args:
        catalog: Source of scenario definitions.
        resolver: Chart acquisition.
        installer: Helm primitives.
        tracker: Active-scenario singleton.
        kube: Cluster client, used for namespace removal.
        prefix: Prefix for release and namespace names.
    """

    def __init__(
        self,
        catalog: ScenarioCatalog,
        resolver: ChartResolver,
        installer: PackageInstaller,
        tracker: ActiveScenarioTracker,
        kube: KubeClient,
        prefix: str = DEFAULT_RELEASE_PREFIX,
    ) -> None:
        self.catalog = catalog
        self.resolver = resolver
        self.installer = installer
        self.tracker = tracker
        self.kube = kube
        self.prefix = prefix

    def release_name(self, scenario_id: str) -> str:
        return release_name(scenario_id, self.prefix)

    def namespace(self, scenario_id: str) -> str:
        return scenario_namespace(scenario_id, self.prefix)

    # ------------------------------------------------------------------------
    # Install
    # ------------------------------------------------------------------------

    def install(
        self,
        scenario_id: str,
        *,
        values: dict[str, str] | None = None,
        force: bool = False,
    ) -> ScenarioDefinition:
        """Install *scenario_id*, replacing whatever scenario is active.

        Re-installing the scenario that is already Running is a no-op. A record
        for the same scenario left in another phase by an interrupted attempt
        is only cleared when *force* is set.

        Args:
            scenario_id: Scenario to install.
            values: Extra helm value overrides.
            force: Clear an unfinished record for the same scenario first.

        Returns:
            The installed scenario definition.

        Raises:
            ScenarioNotFound: If the id is invalid or not in the catalog.
            StaleActiveScenario: If an unfinished record exists and *force* is not set.
            ResolutionFailed: If the chart could not be acquired.
            InstallFailed: If helm failed.
        """
        validate_scenario_id(scenario_id, self.prefix)
        console.print(f"[yellow]\U0001f50d Checking if scenario exists: {scenario_id}[/yellow]")
        scenario = self.catalog.get(scenario_id)
        console.print(f"[green]\u2705 Found scenario: {scenario.name or scenario.id}[/green]")

        if not self._prepare_slot(scenario_id, force):
            return scenario

        release = self.release_name(scenario_id)
        namespace = self.namespace(scenario_id)
        console.print("[yellow]\U0001f4dd Creating ActiveScenario resource...[/yellow]")
        try:
            self.tracker.begin_install(scenario_id, scenario.name, release)
        except AlreadyActiveSameScenario:
            # The previous record survived removal or another run recreated it.
            current = self.tracker.get_active()
            if current is not None and current.phase is Phase.RUNNING:
                console.print(f"[green]\u2705 Scenario '{scenario_id}' is already active[/green]")
                return scenario
            raise StaleActiveScenario(scenario_id, current.phase.value if current else "unknown")

        try:
            with tempfile.TemporaryDirectory(prefix=CHART_TMP_PREFIX) as workdir:
                console.print(f"[yellow]\U0001f4e5 Downloading chart for scenario: {scenario_id}[/yellow]")
                chart_dir = self.resolver.resolve(scenario, Path(workdir))
                self.tracker.transition(Phase.DEPLOYING)
                console.print("[yellow]\U0001f4e6 Installing scenario via Helm...[/yellow]")
                self.installer.install(chart_dir, release, namespace, self._values(scenario_id, values))
            self.tracker.transition(Phase.RUNNING)
        except BaseException:
            self._discard_record()
            raise

        console.print(f"[green]\U0001f389 Scenario '{scenario.name or scenario.id}' installed successfully![/green]")
        return scenario

    def _prepare_slot(self, scenario_id: str, force: bool) -> bool:
        """Clear the active slot for *scenario_id*.

        Returns:
            False when the scenario is already running and nothing is left to do.
        """
        console.print("[yellow]\U0001f50d Checking for existing scenario deployment...[/yellow]")
        active = self.tracker.get_active()
        if active is None:
            return True

        if active.scenario_id == scenario_id:
            if active.phase is Phase.RUNNING:
                console.print(f"[green]\u2705 Scenario '{scenario_id}' is already active[/green]")
                return False
            if not force:
                raise StaleActiveScenario(scenario_id, active.phase.value)
            console.print(
                f"[yellow]\u26a0\ufe0f  Clearing unfinished '{scenario_id}' record in phase {active.phase.value}[/yellow]")
        else:
            console.print(f"[yellow]\U0001f504 Switching from scenario '{active.scenario_id}' to '{scenario_id}'[/yellow]")

        try:
            self._uninstall_record(active)
        except (PlaygroundError, ApiException) as e:
            logger.warning("Failed to remove previous scenario '%s': %s", active.scenario_id, e)
            console.print(f"[yellow]\u26a0\ufe0f  Warning: {e}[/yellow]")
        return True

    def _values(self, scenario_id: str, overrides: dict[str, str] | None) -> dict[str, str]:
        values = {SCENARIO_ID_VALUE_KEY: scenario_id}
        values.update(overrides or {})
        return values

    def _discard_record(self) -> None:
        """Best-effort removal of the record after a failed install."""
        try:
            self.tracker.end_uninstall()
        except NoActiveScenario:
            pass
        except Exception as e:
            logger.warning("Failed to remove active scenario record after failed install: %s", e)
            console.print(f"[yellow]\u26a0\ufe0f  Warning: could not remove active scenario record: {e}[/yellow]")

    # ------------------------------------------------------------------------
    # Uninstall
    # ------------------------------------------------------------------------

    def uninstall(self) -> ActiveScenarioRecord:
        """Remove the active scenario and its record.

        Helm and namespace failures are downgraded to warnings so that the
        record is always deleted; a stuck record would block every later install.

        Returns:
            The record that was removed.

        Raises:
            NoActiveScenario: If nothing is active.
        """
        active = self.tracker.get_active()
        if active is None:
            raise NoActiveScenario()
        self._uninstall_record(active)
        return active

    def _uninstall_record(self, active: ActiveScenarioRecord) -> None:
        scenario_id = active.scenario_id
        release = self.release_name(scenario_id)
        namespace = self.namespace(scenario_id)
        console.print(Panel.fit(f"Uninstalling scenario: {scenario_id}", style="bold blue"))

        try:
            self.tracker.transition(Phase.TERMINATING)
        except (PlaygroundError, ApiException) as e:
            logger.warning("Failed to mark '%s' as terminating: %s", scenario_id, e)

        try:
            self.installer.uninstall(release, namespace)
        except UninstallFailed as e:
            console.print(f"[yellow]\u26a0\ufe0f  Helm uninstall warning: {e}[/yellow]")

        console.print(f"[yellow]\U0001f4c1 Ensuring namespace removed: {namespace}[/yellow]")
        try:
            self.kube.delete_namespace(namespace)
        except ApiException as e:
            logger.debug("Ignoring namespace deletion failure for %s: %s", namespace, e.reason)

        self.tracker.end_uninstall()
        console.print("[green]\u2705 ActiveScenario resource deleted[/green]")

    # ------------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------------

    def status(self) -> ScenarioStatus | None:
        """Return the active record joined with its Helm release state, or None."""
        active = self.tracker.get_active()
        if active is None:
            return None
        release = self.release_name(active.scenario_id)
        namespace = self.namespace(active.scenario_id)
        return ScenarioStatus(
            record=active,
            release_name=release,
            namespace=namespace,
            release_status=self.installer.status(release, namespace),
        )
