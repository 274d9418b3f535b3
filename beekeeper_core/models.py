from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List

UPDATE_LABEL = 'octoblu.beekeeper.update'
LAST_DOCKER_URL_LABEL = 'octoblu.beekeeper.lastDockerURL'
LAST_UPDATED_AT_LABEL = 'octoblu.beekeeper.lastUpdatedAt'

UPDATE_STATE_UPDATING = 'updating'
UPDATE_STATE_PAUSED = 'paused'

NO_ACTION = 'no_action'
UPDATE = 'update'

OUTCOME_UPDATED = 'updated'
OUTCOME_UNCHANGED = 'unchanged'
OUTCOME_SKIPPED = 'skipped'
OUTCOME_FAILED = 'failed'


class UnparseableImageError(ValueError):
    """The service image does not name an owner/repo."""


class OracleError(Exception):
    """The beekeeper service could not give a usable answer."""


@dataclass(frozen=True)
class ImageReference:
    owner: str = ''
    repo: str = ''
    tag: str = ''

    def __bool__(self) -> bool:
        return bool(self.owner and self.repo)


@dataclass(frozen=True)
class ServiceRecord:
    """Snapshot of a swarm service taken once per pass."""
    id: str
    version: int
    name: str = ''
    labels: Dict[str, str] = field(default_factory=dict)
    image: str = ''
    replicas: Optional[int] = None  # None for global mode
    update_state: Optional[str] = None  # idle, updating, paused, completed, ...
    update_config: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ServicePatch:
    """Minimal mutation submitted with a service update."""
    image: str
    labels: Dict[str, str]
    update_config: Dict[str, Any]


@dataclass(frozen=True)
class Decision:
    action: str
    image: Optional[str] = None
    reason: str = ''

    @property
    def should_update(self) -> bool:
        return self.action == UPDATE


@dataclass
class ServiceResult:
    service_id: str
    name: str
    outcome: str
    detail: str = ''
    image: Optional[str] = None


@dataclass
class PassReport:
    results: List[ServiceResult] = field(default_factory=list)

    def add(self, result: ServiceResult) -> ServiceResult:
        self.results.append(result)
        return result

    def _with(self, outcome: str) -> List[ServiceResult]:
        return [r for r in self.results if r.outcome == outcome]

    @property
    def updated(self) -> List[ServiceResult]:
        return self._with(OUTCOME_UPDATED)

    @property
    def unchanged(self) -> List[ServiceResult]:
        return self._with(OUTCOME_UNCHANGED)

    @property
    def skipped(self) -> List[ServiceResult]:
        return self._with(OUTCOME_SKIPPED)

    @property
    def failed(self) -> List[ServiceResult]:
        return self._with(OUTCOME_FAILED)

    def summary(self) -> str:
        return (
            f"{len(self.results)} services: {len(self.updated)} updated, "
            f"{len(self.unchanged)} unchanged, {len(self.skipped)} skipped, "
            f"{len(self.failed)} failed"
        )
