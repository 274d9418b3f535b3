import pytest

from beekeeper_core.decision_utils import check_eligibility, decide_update
from beekeeper_core.models import (
    OracleError,
    UnparseableImageError,
    LAST_DOCKER_URL_LABEL,
    NO_ACTION,
    UPDATE,
    UPDATE_LABEL,
)
from fakes import FakeOracle, make_record


def test_eligible_service():
    assert check_eligibility(make_record()) == (True, None)


def test_missing_or_false_label_is_never_eligible():
    for labels in [{}, {UPDATE_LABEL: 'false'}, {UPDATE_LABEL: ''}, {'other': 'true'}]:
        for state in ['idle', 'paused', 'completed', None]:
            eligible, reason = check_eligibility(make_record(labels=labels, state=state))
            assert eligible is False
            assert UPDATE_LABEL in reason


def test_empty_image_is_not_eligible():
    eligible, reason = check_eligibility(make_record(image=''))
    assert eligible is False
    assert 'docker url' in reason


def test_updating_is_not_eligible_but_paused_is():
    assert check_eligibility(make_record(state='updating'))[0] is False
    assert check_eligibility(make_record(state='paused'))[0] is True


def test_unparseable_image_raises_without_asking_oracle():
    oracle = FakeOracle('acme/widgets:2')
    with pytest.raises(UnparseableImageError):
        decide_update(make_record(image='widgets'), oracle)
    assert oracle.calls == []


def test_oracle_error_propagates():
    with pytest.raises(OracleError):
        decide_update(make_record(), FakeOracle(error=OracleError('boom')))


def test_no_answer_is_no_action():
    oracle = FakeOracle(None)
    decision = decide_update(make_record(image='registry.example.com/acme/widgets:1.2.0'), oracle)
    assert decision.action == NO_ACTION
    assert oracle.calls == [('acme', 'widgets')]


@pytest.mark.parametrize('state', ['idle', 'paused', 'completed', 'rollback_completed', None])
def test_already_current_is_no_action_in_any_state(state):
    record = make_record(
        image='acme/widgets:1.3.0@sha256:abc',
        state=state,
        labels={UPDATE_LABEL: 'true', LAST_DOCKER_URL_LABEL: 'acme/widgets:1.2.0'},
    )
    decision = decide_update(record, FakeOracle('acme/widgets:1.3.0'))
    assert decision.action == NO_ACTION
    assert not decision.should_update


def test_new_version_is_update():
    decision = decide_update(make_record(), FakeOracle('acme/widgets:1.3.0'))
    assert decision.action == UPDATE
    assert decision.image == 'acme/widgets:1.3.0'


def test_paused_on_same_failed_version_is_no_action():
    record = make_record(state='paused', labels={UPDATE_LABEL: 'true', LAST_DOCKER_URL_LABEL: 'acme/widgets:1.3.0'})
    assert decide_update(record, FakeOracle('acme/widgets:1.3.0')).action == NO_ACTION


def test_paused_on_other_version_updates():
    record = make_record(state='paused', labels={UPDATE_LABEL: 'true', LAST_DOCKER_URL_LABEL: 'acme/widgets:1.3.0'})
    decision = decide_update(record, FakeOracle('acme/widgets:1.4.0'))
    assert decision.action == UPDATE
    assert decision.image == 'acme/widgets:1.4.0'


def test_last_docker_url_only_matters_when_paused():
    record = make_record(state='completed', labels={UPDATE_LABEL: 'true', LAST_DOCKER_URL_LABEL: 'acme/widgets:1.3.0'})
    assert decide_update(record, FakeOracle('acme/widgets:1.3.0')).action == UPDATE


def test_paused_without_bookkeeping_updates():
    record = make_record(state='paused')
    assert decide_update(record, FakeOracle('acme/widgets:1.3.0')).action == UPDATE
