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

"""The cluster-wide ActiveScenario singleton and its phase transitions.

Only the four operations of :class:`ActiveScenarioTracker` write the record.
Writes carry the ``resourceVersion`` that was read, so a concurrent writer
makes the second write fail with :class:`ConcurrentModification` instead of
silently overwriting it.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone

from kubernetes.client.exceptions import ApiException

from playground_manager import logger
from playground_manager.errors import (
    AlreadyActiveSameScenario,
    ConcurrentModification,
    InvalidPhaseTransition,
    NoActiveScenario,
)
from playground_manager.kube import HTTP_CONFLICT, KubeClient
from playground_manager.models import ActiveScenarioRecord, Phase


def utc_now() -> str:
    """Current time as an RFC 3339 UTC timestamp."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def check_transition(current: Phase, requested: Phase) -> None:
    """Validate a phase change.

    Ranked phases only move forward (``Pending < Deploying < Running``);
    ``Failed`` and ``Terminating`` can be entered from anywhere, and nothing
    leaves ``Terminating`` except deletion of the record.

    Raises:
        InvalidPhaseTransition: If the change moves backwards.
    """
    if current is Phase.TERMINATING and requested is not Phase.TERMINATING:
        raise InvalidPhaseTransition(current.value, requested.value)
    if requested.rank is None:
        return
    if current.rank is None or requested.rank < current.rank:
        raise InvalidPhaseTransition(current.value, requested.value)


class ActiveScenarioTracker:
    """Reads and writes the ActiveScenario singleton.

    Args:
        kube: Cluster client holding the custom resources.
        clock: Returns the timestamp written on each transition.
    """

    def __init__(self, kube: KubeClient, clock: Callable[[], str] = utc_now) -> None:
        self._kube = kube
        self._clock = clock

    def get_active(self) -> ActiveScenarioRecord | None:
        """Return the active record, or None when nothing is active."""
        obj = self._kube.get_active_scenario()
        if obj is None:
            return None
        return ActiveScenarioRecord.from_resource(obj)

    def begin_install(self, scenario_id: str, scenario_name: str, release: str) -> ActiveScenarioRecord:
        """Replace any existing record with a new Pending one for *scenario_id*.

        Args:
            scenario_id: Scenario about to be installed.
            scenario_name: Display name stored for status output.
            release: Helm release the scenario will be installed as.

        Returns:
            The stored record.

        Raises:
            AlreadyActiveSameScenario: If the stored record already names *scenario_id*.
            ConcurrentModification: If another writer created a record in the meantime.
        """
        existing = self.get_active()
        if existing is not None:
            if existing.scenario_id == scenario_id:
                raise AlreadyActiveSameScenario(scenario_id)
            logger.info("Replacing active scenario record for '%s'", existing.scenario_id)
            self._kube.delete_active_scenario()

        now = self._clock()
        record = ActiveScenarioRecord(
            scenario_id=scenario_id,
            phase=Phase.PENDING,
            helm_release_name=release,
            scenario_name=scenario_name,
            start_time=now,
            last_transition_time=now,
        )
        try:
            created = self._kube.create_active_scenario(record.to_resource())
        except ApiException as e:
            if e.status == HTTP_CONFLICT:
                raise ConcurrentModification(
                    "Another operation created an active scenario concurrently; retry once it finishes"
                ) from e
            raise

        stored = replace(record, resource_version=(created.get("metadata") or {}).get("resourceVersion"))
        try:
            return self._write_status(stored)
        except Exception:
            self._discard_after_failed_create()
            raise

    def transition(self, phase: Phase, message: str = "") -> ActiveScenarioRecord:
        """Move the active record to *phase*.

        Raises:
            NoActiveScenario: If no record exists.
            InvalidPhaseTransition: If *phase* is earlier than the current phase.
            ConcurrentModification: If the record changed since it was read.
        """
        current = self.get_active()
        if current is None:
            raise NoActiveScenario()
        check_transition(current.phase, phase)
        updated = replace(current, phase=phase, message=message, last_transition_time=self._clock())
        return self._write_status(updated)

    def end_uninstall(self) -> None:
        """Delete the active record.

        Raises:
            NoActiveScenario: If no record exists.
        """
        if not self._kube.delete_active_scenario():
            raise NoActiveScenario()

    def _write_status(self, record: ActiveScenarioRecord) -> ActiveScenarioRecord:
        try:
            stored = self._kube.replace_active_scenario_status(record.to_resource())
        except ApiException as e:
            if e.status == HTTP_CONFLICT:
                raise ConcurrentModification(
                    f"Active scenario '{record.scenario_id}' was modified concurrently"
                ) from e
            raise
        return replace(record, resource_version=(stored.get("metadata") or {}).get("resourceVersion"))

    def _discard_after_failed_create(self) -> None:
        try:
            self._kube.delete_active_scenario()
        except Exception as e:
            logger.warning("Failed to remove incomplete active scenario record: %s", e)
