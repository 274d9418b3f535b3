from beekeeper_core.image_utils import parse_image_reference, same_image, strip_digest
from beekeeper_core.models import ImageReference


def test_parse_owner_repo_tag():
    ref = parse_image_reference('acme/widgets:1.2.0')
    assert (ref.owner, ref.repo, ref.tag) == ('acme', 'widgets', '1.2.0')


def test_parse_drops_registry_host():
    assert parse_image_reference('registry.example.com/acme/widgets:v2') == ImageReference('acme', 'widgets', 'v2')


def test_parse_ignores_digest():
    with_digest = parse_image_reference('acme/widgets:1.2.0@sha256:deadbeef')
    assert with_digest == parse_image_reference('acme/widgets:1.2.0')


def test_parse_failures_are_empty():
    for image in [
        '',
        'acme/widgets',                           # no tag
        'registry:5000/acme/widgets:1.0',          # port makes two colons
        'widgets:1.0',                             # single segment
        'a/b/c/d:1.0',                             # four segments
        '@sha256:abc',
    ]:
        ref = parse_image_reference(image)
        assert ref == ImageReference(), image
        assert not ref


def test_empty_tag_still_parses_owner_repo():
    ref = parse_image_reference('acme/widgets:')
    assert ref.owner == 'acme' and ref.repo == 'widgets' and ref.tag == ''


def test_strip_digest_and_same_image():
    assert strip_digest('acme/widgets:1@sha256:abc') == 'acme/widgets:1'
    assert strip_digest('') == ''
    assert same_image('acme/widgets:1@sha256:abc', 'acme/widgets:1')
    assert not same_image('acme/widgets:1', 'acme/widgets:2')
    assert not same_image('', '')
