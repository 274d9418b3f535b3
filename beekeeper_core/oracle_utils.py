import json
import logging
from typing import Optional

import requests
from jsonschema import validate as jsonschema_validate, ValidationError

from beekeeper_core.models import OracleError

USER_AGENT = 'beekeeper-updater-swarm'

LATEST_SCHEMA = {
    'type': 'object',
    'properties': {
        'docker_url': {'type': 'string'},
    },
}


class BeekeeperClient:
    """Client for the beekeeper service, which knows the latest approved image per repo."""

    def __init__(self, base_uri: str, tags: Optional[str] = None, timeout: float = 10,
                 session: Optional[requests.Session] = None, logger=None):
        self.base_uri = base_uri.rstrip('/')
        self.tags = tags or None
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        if session is None:
            session = requests.Session()
            session.headers['User-Agent'] = USER_AGENT
        self.session = session

    def latest_url(self, owner: str, repo: str) -> str:
        return f"{self.base_uri}/deployments/{owner}/{repo}/latest"

    def latest_docker_url(self, owner: str, repo: str) -> Optional[str]:
        """Return the latest docker url for owner/repo, or None if beekeeper has none yet."""
        url = self.latest_url(owner, repo)
        params = {'tags': self.tags} if self.tags else None
        self.logger.debug(f"get latest docker url {url} tags={self.tags}")

        try:
            resp = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise OracleError(f"Error getting latest docker URL for {owner}/{repo}: {e}") from e

        self.logger.debug(f"get latest: got status code {resp.status_code}")
        if resp.status_code != 200:
            raise OracleError(
                f"Error getting latest docker URL for {owner}/{repo}: invalid response status code {resp.status_code}"
            )

        body = resp.text
        if not body or not body.strip():
            return None

        try:
            metadata = json.loads(body)
            jsonschema_validate(metadata, LATEST_SCHEMA)
        except (ValueError, ValidationError) as e:
            raise OracleError(f"Malformed response for {owner}/{repo}: {e}") from e

        return metadata.get('docker_url') or None

    def ping(self) -> bool:
        """Check the beekeeper service answers at all."""
        try:
            resp = self.session.get(self.base_uri, timeout=self.timeout)
        except requests.RequestException as e:
            self.logger.error(f"Beekeeper service unreachable: {e}")
            return False
        return resp.status_code < 500
