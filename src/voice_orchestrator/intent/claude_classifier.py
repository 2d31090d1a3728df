"""Intent classification through a Claude model."""

import json
import logging
import re
from collections.abc import Callable

from claude_code_sdk import AssistantMessage, ClaudeCodeOptions, ClaudeSDKClient, TextBlock
from pydantic import BaseModel, Field, ValidationError

from voice_orchestrator.errors import ClassificationError
from voice_orchestrator.models import Intent, IntentKind

logger = logging.getLogger(__name__)

CLASSIFICATION_PROMPT = """Analyze the following user voice command.
Extract the intent and the entity.
Possible intents: LIST_TASKS, APPROVE_TASK, START_PROJECT, UNKNOWN.
The entity is the task or project the user refers to, or null.
Return ONLY a JSON object with keys:
intent, entity (string or null), confidence (0-1).

Command: "{utterance}"
"""


class IntentPayload(BaseModel):
    """JSON shape the model is asked to return."""

    intent: IntentKind
    entity: str | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


def parse_intent_response(text: str, utterance: str) -> Intent:
    """Parse the model's text response into an Intent.

    Markdown code fences around the JSON are tolerated.

    Raises:
        ClassificationError: If the response is not a valid intent object
    """
    cleaned = re.sub(r"```(?:json)?", "", text).strip()
    try:
        payload = IntentPayload.model_validate(json.loads(cleaned))
    except (json.JSONDecodeError, ValidationError) as e:
        raise ClassificationError(f"Unparsable intent response: {text!r}") from e

    entity = payload.entity.strip() if payload.entity else None
    return Intent(
        kind=payload.intent,
        entity=entity or None,
        confidence=payload.confidence,
        source_text=utterance,
    )


class ClaudeIntentClassifier:
    """Classifier backed by a remote Claude model.

    Failures never propagate: any transport or parsing problem yields an
    UNKNOWN intent with confidence 0.
    """

    def __init__(
        self,
        model: str = "sonnet",
        client_factory: Callable[[], ClaudeSDKClient] | None = None,
    ) -> None:
        """Initialize with model name and optional client factory."""
        self._model = model
        self._client_factory = client_factory or self._default_client

    def _default_client(self) -> ClaudeSDKClient:
        options = ClaudeCodeOptions(model=self._model, max_turns=1, allowed_tools=[])
        return ClaudeSDKClient(options=options)

    async def classify(self, utterance: str) -> Intent:
        """Classify utterance through the model."""
        try:
            response = await self._query(CLASSIFICATION_PROMPT.format(utterance=utterance))
            return parse_intent_response(response, utterance)
        except Exception as e:
            logger.error(f"[ClaudeIntentClassifier] Classification failed: {e}")
            return Intent.unknown(utterance, confidence=0.0)

    async def _query(self, prompt: str) -> str:
        """Send prompt and collect the text of the assistant response."""
        response_text = ""
        async with self._client_factory() as client:
            await client.query(prompt)
            async for message in client.receive_response():
                if isinstance(message, AssistantMessage):
                    for block in message.content:
                        if isinstance(block, TextBlock):
                            response_text += block.text
        logger.debug(f"[ClaudeIntentClassifier] Response: {response_text}")
        return response_text
