from beekeeper_core.models import ImageReference


def strip_digest(image: str) -> str:
    """Drop an `@digest` suffix, e.g. `owner/repo:1.0@sha256:abc` -> `owner/repo:1.0`."""
    if not image:
        return ''
    return image.split('@', 1)[0]


def parse_image_reference(image: str) -> ImageReference:
    """Parse `[registry-host/]owner/repo:tag[@digest]` into owner, repo and tag.

    Returns an empty ImageReference when the string has no tag, more than one
    colon (a registry port counts) or a path that is not 2 or 3 segments long.
    """
    parts = strip_digest(image).split(':')
    if len(parts) != 2:
        return ImageReference()
    path, tag = parts

    segments = path.split('/')
    if len(segments) == 2:
        owner, repo = segments
    elif len(segments) == 3:
        owner, repo = segments[1], segments[2]
    else:
        return ImageReference()
    return ImageReference(owner=owner, repo=repo, tag=tag)


def same_image(left: str, right: str) -> bool:
    """Compare two image references ignoring digests. Empty never matches."""
    left, right = strip_digest(left), strip_digest(right)
    if not left or not right:
        return False
    return left == right
