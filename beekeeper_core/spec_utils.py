from datetime import datetime, timezone
from typing import Optional

from beekeeper_core.models import (
    ServicePatch,
    ServiceRecord,
    LAST_DOCKER_URL_LABEL,
    LAST_UPDATED_AT_LABEL,
)

FAILURE_ACTION = 'pause'
RFC3339 = '%Y-%m-%dT%H:%M:%SZ'


def rollout_parallelism(replicas: Optional[int]) -> int:
    """Roughly 10% of replicas per step, never less than one."""
    if not replicas or replicas < 0:
        return 1
    return replicas // 10 + 1


def format_timestamp(now: datetime) -> str:
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime(RFC3339)


def build_update_patch(record: ServiceRecord, image: str, now: datetime) -> ServicePatch:
    """Build the mutation that moves `record` to `image`.

    Labels and update config are copied from the snapshot so keys set by
    other controllers are submitted back untouched.
    """
    labels = dict(record.labels or {})
    labels[LAST_DOCKER_URL_LABEL] = image
    labels[LAST_UPDATED_AT_LABEL] = format_timestamp(now)

    update_config = dict(record.update_config or {})
    update_config['Parallelism'] = rollout_parallelism(record.replicas)
    update_config['FailureAction'] = FAILURE_ACTION

    return ServicePatch(image=image, labels=labels, update_config=update_config)
