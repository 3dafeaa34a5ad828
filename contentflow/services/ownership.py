# services/ownership.py
import logging

from contentflow.errors import NotAuthorized

logger = logging.getLogger(__name__)


def is_owner(entity, user_id: str, *, field: str = "created_by_id") -> bool:
    return entity is not None and getattr(entity, field, None) == user_id


def assert_owner(entity, user_id: str, *, field: str = "created_by_id", action: str = "modify") -> None:
    """Creator-only mutation: raise NotAuthorized unless ``entity.<field> == user_id``.

    Pillars, subpillars, outlines and research use ``created_by_id``; niches
    are keyed by ``user_id`` and articles by ``author_id``.
    """
    if is_owner(entity, user_id, field=field):
        return
    kind = type(entity).__name__.lower()
    logger.warning("User %s not authorized to %s %s %s", user_id, action, kind, getattr(entity, "id", "?"))
    raise NotAuthorized(f"Not authorized to {action} this {kind}")
