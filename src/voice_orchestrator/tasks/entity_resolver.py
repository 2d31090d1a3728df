"""Fuzzy mapping of a spoken entity fragment to a task."""

from collections.abc import Iterable

from voice_orchestrator.models import Task


def resolve(entity_text: str | None, tasks: Iterable[Task]) -> Task | None:
    """Find the first task whose title or description contains the fragment.

    Matching is case-insensitive substring containment. An empty fragment is
    contained in every non-empty title, so callers wanting "no match" for an
    empty fragment must check before calling.

    Args:
        entity_text: Free-text fragment extracted from the utterance
        tasks: Candidate tasks in store order

    Returns:
        Matching task, or None
    """
    needle = (entity_text or "").lower()
    for task in tasks:
        if task.title and needle in task.title.lower():
            return task
        if task.description and needle in task.description.lower():
            return task
    return None


def has_entity(entity_text: str | None) -> bool:
    """Whether the fragment carries anything worth resolving."""
    return bool(entity_text and entity_text.strip())
