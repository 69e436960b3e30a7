"""Filter evaluation for watchers against individual showings."""

from __future__ import annotations

import logging

from .models import ATTRIBUTES, AttributeValue, FilterOption, Showing, Watcher

logger = logging.getLogger(__name__)


def matches_option(expected: FilterOption, actual: AttributeValue) -> bool:
    """Return whether a provider attribute satisfies a ternary preference.

    An attribute the provider did not report never disqualifies a showing.
    """
    if expected is FilterOption.NO_PREFERENCE or actual is None:
        return True
    if expected is FilterOption.YES:
        return bool(actual)
    return not actual


def accepts(watcher: Watcher, showing: Showing) -> bool:
    """Decide whether ``showing`` satisfies every filter of ``watcher``."""
    filters = watcher.filters
    if showing.cinema_id != watcher.cinema_id:
        logger.debug(
            "Showing %s rejected for watcher %s: cinema %s != %s",
            showing.id,
            watcher.id,
            showing.cinema_id,
            watcher.cinema_id,
        )
        return False
    if not filters.start_after <= showing.start_time <= filters.start_before:
        logger.debug(
            "Showing %s rejected for watcher %s: start %d outside [%d, %d]",
            showing.id,
            watcher.id,
            showing.start_time,
            filters.start_after,
            filters.start_before,
        )
        return False
    if showing.movie_id != watcher.movie_id:
        logger.debug(
            "Showing %s rejected for watcher %s: movie %s != %s",
            showing.id,
            watcher.id,
            showing.movie_id,
            watcher.movie_id,
        )
        return False

    for attribute in ATTRIBUTES:
        if not matches_option(getattr(filters, attribute), getattr(showing, attribute)):
            logger.debug(
                "Showing %s rejected for watcher %s: attribute %s",
                showing.id,
                watcher.id,
                attribute,
            )
            return False
    return True
