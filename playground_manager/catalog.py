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

"""Scenario catalog backed by a remote metadata document or cluster resources."""

from __future__ import annotations

from typing import Any, Protocol

import requests
from kubernetes.client.exceptions import ApiException
from pydantic import ValidationError

from playground_manager import logger
from playground_manager.errors import CatalogError, ScenarioNotFound
from playground_manager.kube import KubeClient
from playground_manager.models import ScenarioDefinition

RawEntry = tuple[str, Any]


class CatalogSource(Protocol):
    """Produces raw scenario records labelled for diagnostics."""

    def fetch(self) -> list[RawEntry]:
        ...


# ============================================================================
# Sources
# ============================================================================

class MetadataSource:
    """Reads a JSON array of scenario records from a URL.

    Args:
        url: Location of the metadata document.
        session: HTTP session used for the request.
        timeout: Seconds before the request is abandoned.
    """

    def __init__(self, url: str, session: requests.Session, timeout: int) -> None:
        self.url = url
        self._session = session
        self._timeout = timeout

    def fetch(self) -> list[RawEntry]:
        logger.debug("Fetching scenario metadata from %s", self.url)
        try:
            response = self._session.get(self.url, timeout=self._timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise CatalogError(f"Failed to fetch scenario metadata from {self.url}: {e}") from e
        try:
            document = response.json()
        except ValueError as e:
            raise CatalogError(f"Scenario metadata at {self.url} is not valid JSON: {e}") from e
        if not isinstance(document, list):
            raise CatalogError(f"Scenario metadata at {self.url} is not a list of scenarios")
        return [(f"entry #{index}", record) for index, record in enumerate(document)]


class ClusterSource:
    """Reads ScenarioDefinition custom resources from the cluster."""

    def __init__(self, kube: KubeClient) -> None:
        self._kube = kube

    def fetch(self) -> list[RawEntry]:
        try:
            items = self._kube.list_scenario_definitions()
        except ApiException as e:
            raise CatalogError(f"Failed to list scenario definitions: {e.status} {e.reason}") from e
        entries: list[RawEntry] = []
        for item in items:
            name = (item.get("metadata") or {}).get("name", "<unnamed>")
            entries.append((name, item.get("spec")))
        return entries


# ============================================================================
# Catalog
# ============================================================================

def parse_scenario(raw: Any) -> ScenarioDefinition:
    """Turn one raw record into a ScenarioDefinition.

    Args:
        raw: Decoded JSON object or resource spec.

    Returns:
        The validated scenario definition.

    Raises:
        ValueError: If the record is not a mapping or lacks an id.
        ValidationError: If a field has the wrong type or the id is malformed.
    """
    if not isinstance(raw, dict):
        raise ValueError("record is not an object")
    if not raw.get("id"):
        raise ValueError("missing required field 'id'")
    return ScenarioDefinition.model_validate(raw)


class ScenarioCatalog:
    """Lists scenarios from a single configured source.

    Nothing is cached: every call re-fetches, catalogs are small.
    """

    def __init__(self, source: CatalogSource) -> None:
        self.source = source

    def list(self) -> list[ScenarioDefinition]:
        """Return all well-formed scenarios; malformed entries are skipped with a warning.

        Raises:
            CatalogError: If the source as a whole cannot be read.
        """
        scenarios: list[ScenarioDefinition] = []
        seen: set[str] = set()
        for label, raw in self.source.fetch():
            try:
                scenario = parse_scenario(raw)
            except (ValueError, ValidationError) as e:
                logger.warning("Skipping malformed scenario %s: %s", label, _short_error(e))
                continue
            if scenario.id in seen:
                logger.warning("Skipping duplicate scenario id '%s' (%s)", scenario.id, label)
                continue
            seen.add(scenario.id)
            scenarios.append(scenario)
        return scenarios

    def get(self, scenario_id: str) -> ScenarioDefinition:
        """Find a scenario by id.

        Raises:
            ScenarioNotFound: If no scenario has that id.
        """
        for scenario in self.list():
            if scenario.id == scenario_id:
                return scenario
        raise ScenarioNotFound(scenario_id)


def _short_error(err: Exception) -> str:
    if isinstance(err, ValidationError):
        return "; ".join(
            f"{'.'.join(str(p) for p in e['loc']) or 'record'}: {e['msg']}" for e in err.errors()
        )
    return str(err)
