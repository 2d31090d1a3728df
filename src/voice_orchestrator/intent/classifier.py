"""Intent classification of transcribed utterances."""

import logging
import re
from typing import Protocol

from voice_orchestrator.models import Intent, IntentKind

logger = logging.getLogger(__name__)

APPROVE_TRIGGERS = ("approve", "complete")
START_TRIGGERS = ("start", "create")
LIST_TRIGGERS = ("list", "pending", "show")

DEFAULT_APPROVE_ENTITY = "unknown task"
DEFAULT_PROJECT_NAME = "New Project"


class IntentClassifier(Protocol):
    """Protocol for turning an utterance into an intent."""

    async def classify(self, utterance: str) -> Intent:
        """Classify utterance text. Must not raise."""
        ...


class RuleBasedClassifier:
    """Deterministic keyword classifier."""

    async def classify(self, utterance: str) -> Intent:
        """Classify utterance with keyword rules."""
        return classify_utterance(utterance)


def classify_utterance(text: str) -> Intent:
    """Classify utterance text with keyword rules.

    Checks run in order approve/complete, start/create, list/pending/show;
    the first match wins.
    """
    text = text if isinstance(text, str) else ""
    lower = text.lower()

    if any(word in lower for word in APPROVE_TRIGGERS):
        entity = _extract_entity(text, APPROVE_TRIGGERS, strip_words=("the",))
        return Intent(
            kind=IntentKind.APPROVE_TASK,
            entity=entity if entity is not None else DEFAULT_APPROVE_ENTITY,
            confidence=0.95,
            source_text=text,
        )

    if any(word in lower for word in START_TRIGGERS):
        entity = _extract_entity(text, START_TRIGGERS, strip_words=("the", "project"))
        return Intent(
            kind=IntentKind.START_PROJECT,
            entity=entity if entity is not None else DEFAULT_PROJECT_NAME,
            confidence=0.9,
            source_text=text,
        )

    if any(word in lower for word in LIST_TRIGGERS):
        return Intent(kind=IntentKind.LIST_TASKS, confidence=0.98, source_text=text)

    return Intent.unknown(text)


def _extract_entity(
    text: str, triggers: tuple[str, ...], strip_words: tuple[str, ...]
) -> str | None:
    """Return text after the first "<trigger> " found, trying triggers in order.

    The first occurrence of each word in ``strip_words`` is removed and
    whitespace is collapsed. None means no trigger followed by a space exists.
    """
    for trigger in triggers:
        match = re.search(rf"{trigger} (.*)", text, re.IGNORECASE)
        if not match:
            continue
        entity = match.group(1)
        for word in strip_words:
            entity = re.sub(rf"\b{word}\b", "", entity, count=1, flags=re.IGNORECASE)
        return " ".join(entity.split())
    return None
