"""Extract the change behind an incident from its timeline annotations."""

import re
from collections.abc import Sequence

from ..sources.models import ChangeLink, ChangeLinkType, TimelineAnnotation
from .incidents import find_tag

START_TIME_TAG = "start time"

# https://gitlab.com/group/sub/project/-/merge_requests/123
MERGE_EVENT_PATTERN = re.compile(
    r"https?://([^/\s]+)/((?:[^/\s]+/)*[^/\s]+)/-/merge_requests/(\d+)"
)

# https://gitlab.com/group/sub/project/-/commit/abc123
COMMIT_PATTERN = re.compile(
    r"https?://([^/\s]+)/((?:[^/\s]+/)*[^/\s]+)/-/commit/([a-f0-9]+)"
)


def extract_change_link(
    annotations: Sequence[TimelineAnnotation] | None,
) -> ChangeLink | None:
    """Find the merge request or commit that started an incident.

    Only the note of the first "Start time" annotation is searched. A merge
    request URL takes precedence over a commit URL in the same note.

    Args:
        annotations: Incident timeline annotations in timeline order

    Returns:
        ChangeLink, or None if no start annotation or no recognizable URL
    """
    if not annotations:
        return None

    start = find_tag(annotations, START_TIME_TAG)
    if start is None or not start.note:
        return None

    match = MERGE_EVENT_PATTERN.search(start.note)
    if match:
        return ChangeLink(
            type=ChangeLinkType.MERGE_EVENT,
            url=match.group(0),
            project=match.group(2),
            id=match.group(3),
        )

    match = COMMIT_PATTERN.search(start.note)
    if match:
        return ChangeLink(
            type=ChangeLinkType.COMMIT,
            url=match.group(0),
            project=match.group(2),
            sha=match.group(3),
        )

    return None
