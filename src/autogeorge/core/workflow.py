"""Article status workflow.

    draft -> generated -> generated_image_draft
          -> {generated_with_image | ready_to_publish} -> published

`failed` can be entered from the generation and image steps. `published`
and `failed` are terminal for the automated pipeline; only forward edges
exist, so a stage can never move an article backwards.
"""

from typing import Dict, FrozenSet

from autogeorge.core.enums import ArticleStatus
from autogeorge.core.site import AutomationSettings
from autogeorge.utils.exceptions import InvalidTransitionError

S = ArticleStatus

TRANSITIONS: Dict[ArticleStatus, FrozenSet[ArticleStatus]] = {
    S.DRAFT: frozenset(
        {S.GENERATED, S.GENERATED_IMAGE_DRAFT, S.READY_TO_PUBLISH, S.FAILED}
    ),
    S.GENERATED: frozenset(
        {S.GENERATED_IMAGE_DRAFT, S.READY_TO_PUBLISH, S.PUBLISHED, S.FAILED}
    ),
    S.GENERATED_IMAGE_DRAFT: frozenset(
        {S.GENERATED_WITH_IMAGE, S.READY_TO_PUBLISH, S.FAILED}
    ),
    S.GENERATED_WITH_IMAGE: frozenset({S.READY_TO_PUBLISH, S.PUBLISHED}),
    S.READY_TO_PUBLISH: frozenset({S.PUBLISHED}),
    S.PUBLISHED: frozenset(),
    S.FAILED: frozenset(),
}

# Statuses the publisher picks up
PUBLISHABLE: FrozenSet[ArticleStatus] = frozenset({S.GENERATED, S.READY_TO_PUBLISH})


def can_transition(current: ArticleStatus, target: ArticleStatus) -> bool:
    """Return True if the workflow allows moving from `current` to `target`."""
    return ArticleStatus(target) in TRANSITIONS[ArticleStatus(current)]


def ensure_transition(current: ArticleStatus, target: ArticleStatus) -> None:
    """Raise InvalidTransitionError unless the move is allowed."""
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Article status cannot move from {ArticleStatus(current).value} "
            f"to {ArticleStatus(target).value}"
        )


def initial_status(settings: AutomationSettings) -> ArticleStatus:
    """Status given to a freshly generated article.

    The featured-image flag wins over the auto-publish flag: an article that
    still needs an image must not be picked up by the publisher.
    """
    if settings.enable_featured_image:
        return S.GENERATED_IMAGE_DRAFT
    if settings.enable_auto_publish:
        return S.READY_TO_PUBLISH
    return S.GENERATED


def post_image_status(settings: AutomationSettings) -> ArticleStatus:
    """Status after a featured image has been attached."""
    if settings.enable_auto_publish:
        return S.READY_TO_PUBLISH
    return S.GENERATED_WITH_IMAGE
