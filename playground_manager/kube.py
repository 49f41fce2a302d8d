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

"""Typed access to the playground custom resources and scenario namespaces."""

from __future__ import annotations

from typing import Any

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException

from playground_manager import logger
from playground_manager.config import ClusterConfig
from playground_manager.constants import (
    ACTIVE_SCENARIO_NAME,
    CRD_GROUP,
    CRD_VERSION,
    PLURAL_ACTIVE_SCENARIOS,
    PLURAL_SCENARIO_DEFINITIONS,
)

HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409


class KubeClient:
    """Thin wrapper over the Kubernetes API for the two playground resource kinds.

    Both ``ScenarioDefinition`` and ``ActiveScenario`` are cluster-scoped. The
    active scenario is a singleton stored under a fixed, well-known name.

    Args:
        custom_api: Custom objects API used for the CRDs.
        core_api: Core v1 API used for namespace removal.
    """

    def __init__(self, custom_api: client.CustomObjectsApi, core_api: client.CoreV1Api) -> None:
        self._custom = custom_api
        self._core = core_api

    @classmethod
    def from_config(cls, cluster_cfg: ClusterConfig) -> KubeClient:
        """Build a client from an explicit kubeconfig without touching global state.

        Args:
            cluster_cfg: Cluster configuration holding the kubeconfig path.

        Returns:
            A ready-to-use client.
        """
        kubeconfig = cluster_cfg.resolved_kubeconfig()
        logger.debug("Loading kubeconfig from %s", kubeconfig or "default location")
        api_client = config.new_client_from_config(
            config_file=str(kubeconfig) if kubeconfig else None,
            persist_config=False,
        )
        return cls(client.CustomObjectsApi(api_client), client.CoreV1Api(api_client))

    # -- ScenarioDefinition --

    def list_scenario_definitions(self) -> list[dict[str, Any]]:
        """List all ScenarioDefinition objects as plain dictionaries."""
        response = self._custom.list_cluster_custom_object(
            CRD_GROUP, CRD_VERSION, PLURAL_SCENARIO_DEFINITIONS,
        )
        return list(response.get("items", []))

    # -- ActiveScenario --

    def get_active_scenario(self) -> dict[str, Any] | None:
        """Return the ActiveScenario singleton, or None when it does not exist."""
        try:
            return self._custom.get_cluster_custom_object(
                CRD_GROUP, CRD_VERSION, PLURAL_ACTIVE_SCENARIOS, ACTIVE_SCENARIO_NAME,
            )
        except ApiException as e:
            if e.status == HTTP_NOT_FOUND:
                return None
            raise

    def create_active_scenario(self, body: dict[str, Any]) -> dict[str, Any]:
        """Create the ActiveScenario singleton.

        Raises:
            ApiException: With status 409 when the object already exists.
        """
        return self._custom.create_cluster_custom_object(
            CRD_GROUP, CRD_VERSION, PLURAL_ACTIVE_SCENARIOS, body,
        )

    def replace_active_scenario_status(self, body: dict[str, Any]) -> dict[str, Any]:
        """Replace the status subresource of the singleton.

        ``metadata.resourceVersion`` in *body* makes the write conditional.

        Raises:
            ApiException: With status 409 when the stored version moved on.
        """
        return self._custom.replace_cluster_custom_object_status(
            CRD_GROUP, CRD_VERSION, PLURAL_ACTIVE_SCENARIOS, ACTIVE_SCENARIO_NAME, body,
        )

    def delete_active_scenario(self) -> bool:
        """Delete the singleton.

        Returns:
            True if an object was deleted, False if none existed.
        """
        try:
            self._custom.delete_cluster_custom_object(
                CRD_GROUP, CRD_VERSION, PLURAL_ACTIVE_SCENARIOS, ACTIVE_SCENARIO_NAME,
            )
            return True
        except ApiException as e:
            if e.status == HTTP_NOT_FOUND:
                return False
            raise

    # -- Namespaces --

    def delete_namespace(self, name: str) -> None:
        """Delete a namespace; a missing namespace is not an error."""
        try:
            self._core.delete_namespace(name)
        except ApiException as e:
            if e.status != HTTP_NOT_FOUND:
                raise
