import logging
from typing import Any, Dict, List

import docker

from beekeeper_core.models import ServicePatch, ServiceRecord, UPDATE_LABEL

USER_AGENT = 'beekeeper-updater-swarm'


def record_from_attrs(attrs: Dict[str, Any]) -> ServiceRecord:
    """Build a ServiceRecord from the `attrs` of a docker SDK Service."""
    spec = attrs.get('Spec') or {}
    container_spec = (spec.get('TaskTemplate') or {}).get('ContainerSpec') or {}
    mode = spec.get('Mode') or {}
    replicas = None
    if 'Replicated' in mode:
        replicas = (mode.get('Replicated') or {}).get('Replicas')
    update_status = attrs.get('UpdateStatus') or {}
    return ServiceRecord(
        id=attrs.get('ID', ''),
        version=(attrs.get('Version') or {}).get('Index', 0),
        name=spec.get('Name', ''),
        labels=dict(spec.get('Labels') or {}),
        image=container_spec.get('Image', ''),
        replicas=replicas,
        update_state=update_status.get('State'),
        update_config=dict(spec.get('UpdateConfig') or {}),
    )


class SwarmClient:
    """Lists and updates swarm services through the docker SDK."""

    def __init__(self, docker_client, logger=None):
        self.docker_client = docker_client
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_uri(cls, docker_uri: str, api_version: str = 'auto', logger=None):
        client = docker.DockerClient(base_url=docker_uri, version=api_version, user_agent=USER_AGENT)
        return cls(client, logger=logger)

    def ping(self) -> bool:
        return bool(self.docker_client.ping())

    def list_services(self, label: str = UPDATE_LABEL) -> List[ServiceRecord]:
        services = self.docker_client.services.list(filters={'label': label})
        return [record_from_attrs(s.attrs) for s in services]

    def update_service(self, record: ServiceRecord, patch: ServicePatch) -> None:
        """Submit `patch` against the version seen in `record`.

        The current spec is fetched and merged by the SDK, so only the patched
        fields change. A stale version is rejected by the daemon with an APIError.
        """
        self.logger.debug(f"updating service {record.id} at version {record.version} to {patch.image}")
        self.docker_client.api.update_service(
            record.id,
            record.version,
            task_template={'ContainerSpec': {'Image': patch.image}},
            labels=patch.labels,
            update_config=patch.update_config,
            fetch_current_spec=True,
        )
