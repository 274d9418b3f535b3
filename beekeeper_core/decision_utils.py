from typing import Optional, Tuple

from beekeeper_core.image_utils import parse_image_reference, same_image
from beekeeper_core.models import (
    Decision,
    ServiceRecord,
    UnparseableImageError,
    LAST_DOCKER_URL_LABEL,
    NO_ACTION,
    UPDATE,
    UPDATE_LABEL,
    UPDATE_STATE_PAUSED,
    UPDATE_STATE_UPDATING,
)


def check_eligibility(record: ServiceRecord) -> Tuple[bool, Optional[str]]:
    """Return (eligible, skip_reason) for a listed service.

    The listing already filters on the update label, but the filter only checks
    that the label exists, so the value is verified here.
    """
    if record.labels.get(UPDATE_LABEL) != 'true':
        return False, f"label {UPDATE_LABEL} is not 'true'"
    if not record.image:
        return False, 'could not get current docker url'
    if record.update_state == UPDATE_STATE_UPDATING:
        return False, 'update already in progress'
    return True, None


def decide_update(record: ServiceRecord, oracle) -> Decision:
    """Decide whether `record` should be moved to the oracle's latest image.

    `oracle` needs a `latest_docker_url(owner, repo)` method returning the
    image reference or None when it has no answer yet. Oracle errors are not
    caught here.
    """
    ref = parse_image_reference(record.image)
    if not ref:
        raise UnparseableImageError(
            f"Could not determine repository from docker url {record.image!r} for service {record.id}"
        )

    latest = oracle.latest_docker_url(ref.owner, ref.repo)
    if not latest:
        return Decision(NO_ACTION, reason=f"no latest docker url for {ref.owner}/{ref.repo}")

    if same_image(latest, record.image):
        return Decision(NO_ACTION, reason=f"already running {latest}")

    if record.update_state == UPDATE_STATE_PAUSED:
        last = record.labels.get(LAST_DOCKER_URL_LABEL, '')
        if same_image(latest, last):
            return Decision(NO_ACTION, reason=f"last update to {latest} failed, not retrying")

    return Decision(UPDATE, image=latest, reason=f"{record.image} -> {latest}")
