"""
Client for the conversational assistant.

The assistant is an external generative-language service reached over the
Generative Language REST API. Both public calls always complete with a
result: when the credential is missing, the request fails or times out, or
the response cannot be used, a local fallback takes its place and the result
records why.
"""

import json
import logging
import random
from collections.abc import Sequence
from typing import Any

import httpx

from .classifier import MAX_TODOS, fallback_analysis
from .models import (
    HABIT_CATEGORIES,
    MOOD_LABELS,
    Analysis,
    ChatMessage,
    ReplyResult,
    TodoDraft,
)
from .safety import with_safety_preamble

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-1.5-flash"
DEFAULT_TIMEOUT = 15.0

SYSTEM_PROMPT = """You are PeacePulse, a supportive, trauma-informed mental health companion.

Your purpose: provide empathetic, evidence-informed support for mental wellbeing (stress, anxiety, mood, sleep, habits, self-care), encourage healthy coping, and empower users. You are NOT a clinician and do not give medical, diagnostic, legal, or crisis instructions.

Guidelines:
- Stay strictly on mental health and wellbeing topics. If asked about unrelated topics (e.g., coding, news, politics, finance, sports, adult content), gently decline and steer the conversation back to mental wellbeing.
- Be brief, warm, and practical. Offer 1-3 actionable suggestions tailored to the user's feelings and situation.
- Encourage reflection using gentle, non-judgmental questions.
- Avoid pathologizing language or definitive labels. Do not mention diagnoses.
- Safety: If user expresses intent to harm self or others, or appears in crisis, say you may be limited and encourage immediate help from trusted people or local emergency services. Provide crisis resources appropriate in tone (avoid region-specific numbers unless asked). Do not provide instructions that could increase risk.
- Always include a gentle disclaimer when giving potentially sensitive guidance: you are not a substitute for professional care.

Tone: compassionate, validating, hopeful, non-prescriptive."""

CLASSIFY_PROMPT = """Classify the user's message for a wellness app.
Rules:
- mood must be exactly one of: excellent, good, okay, poor, awful.
- Create 3-5 actionable, small todos spanning the day. Each todo must include a category, exactly one of: mindfulness, health, reflection, exercise, learning.
Respond ONLY in JSON with keys mood and todos.
Example: {{"mood":"okay","todos":[{{"title":"5-minute breathing","category":"mindfulness"}},{{"title":"10-minute walk","category":"exercise"}}]}}
User message: {message}"""

FALLBACK_REPLIES = [
    "That sounds like you're going through a lot. Remember, it's okay to feel this way.",
    "I hear you. Taking time for yourself is so important. Have you tried any breathing exercises today?",
    "It's wonderful that you're sharing this with me. What usually helps you feel better?",
    "Thank you for being open about your feelings. Would you like to try a quick mindfulness exercise?",
    "I understand. Sometimes just talking about it can help. Is there anything specific on your mind?",
    "That's a great insight. How can we work together to support your wellbeing today?",
    "I'm glad you're taking care of yourself. What's one small thing you could do for yourself right now?",
]

SAFETY_SETTINGS = [
    {"category": category, "threshold": "BLOCK_ONLY_HIGH"}
    for category in (
        "HARM_CATEGORY_HATE_SPEECH",
        "HARM_CATEGORY_HARASSMENT",
        "HARM_CATEGORY_DANGEROUS_CONTENT",
        "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    )
]

GENERATION_CONFIG = {"temperature": 0.6, "topP": 0.9, "maxOutputTokens": 512}


class AssistantError(Exception):
    """Raised when the assistant cannot produce a usable response."""


def conversation_history(messages: Sequence[ChatMessage]) -> list[dict[str, Any]]:
    """Role-tag the transcript, starting from the first user message."""
    start = next((i for i, m in enumerate(messages) if m.sender == "user"), None)
    if start is None:
        return []
    return [
        {
            "role": "user" if m.sender == "user" else "model",
            "parts": [{"text": m.text}],
        }
        for m in messages[start:]
    ]


def parse_analysis(text: str) -> Analysis:
    """
    Extract a classification from the model's response text.

    Raises:
        AssistantError: If no JSON object is present or its mood is invalid
    """
    start, end = text.find("{"), text.rfind("}")
    if start < 0 or end < start:
        raise AssistantError("Classification response has no JSON object")
    try:
        parsed = json.loads(text[start : end + 1])
    except json.JSONDecodeError as e:
        raise AssistantError(f"Classification response is not JSON: {e}") from e

    if not isinstance(parsed, dict):
        raise AssistantError("Classification response is not an object")
    mood = parsed.get("mood")
    raw_todos = parsed.get("todos")
    if mood not in MOOD_LABELS or not isinstance(raw_todos, list):
        raise AssistantError("Classification response has an invalid shape")

    todos = []
    for item in raw_todos[:MAX_TODOS]:
        if not isinstance(item, dict):
            continue
        title = str(item.get("title") or "").strip()
        if not title:
            continue
        category = item.get("category")
        if category not in HABIT_CATEGORIES:
            category = "health"
        todos.append(TodoDraft(title=title, category=category))

    return Analysis(mood=mood, todos=todos, source="assistant")


class Assistant:
    """
    Supportive chat replies and message classification.

    Args:
        api_key: Credential for the Generative Language API; ``None``
            disables live calls and always uses fallbacks
        model: Model name used for both calls
        base_url: API root, without a trailing slash
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport, used to stub the network in tests
        rng: Random source for picking fallback replies
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._rng = rng or random.Random()

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    # MARK: - Public API

    async def reply(self, history: Sequence[ChatMessage], text: str) -> ReplyResult:
        """
        Produce a supportive reply to ``text``.

        Args:
            history: The transcript before ``text``, oldest first
            text: The new user message

        Returns:
            The assistant's reply, or a canned fallback with the error that
            caused it. Crisis language in ``text`` always adds the safety
            preamble.
        """
        try:
            body = {
                "systemInstruction": {"parts": [{"text": SYSTEM_PROMPT}]},
                "contents": [
                    *conversation_history(history),
                    {"role": "user", "parts": [{"text": text}]},
                ],
                "safetySettings": SAFETY_SETTINGS,
                "generationConfig": GENERATION_CONFIG,
            }
            reply = await self._generate(body)
            result = ReplyResult(text=reply, source="assistant")
        except AssistantError as e:
            logger.warning("Using fallback reply: %s", e)
            result = ReplyResult(
                text=self._rng.choice(FALLBACK_REPLIES),
                source="fallback",
                error=str(e),
            )

        text_with_safety = with_safety_preamble(text, result.text)
        return result.model_copy(update={"text": text_with_safety})

    async def classify(self, text: str) -> Analysis:
        """
        Classify ``text`` into a mood and suggested action items.

        Falls back to the keyword rules when the call fails or returns
        nothing usable. If the model gives a valid mood but no usable action
        items, the mood is kept and the fallback items are used.
        """
        fallback = fallback_analysis(text)
        try:
            message = json.dumps(text, ensure_ascii=False)
            prompt = CLASSIFY_PROMPT.format(message=message)
            response = await self._generate(
                {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
            )
            analysis = parse_analysis(response)
        except AssistantError as e:
            logger.warning("Using fallback classification: %s", e)
            return fallback

        if not analysis.todos:
            analysis = analysis.model_copy(update={"todos": fallback.todos})
        return analysis

    # MARK: - Private Helpers

    async def _generate(self, body: dict[str, Any]) -> str:
        """Call ``generateContent`` and return the concatenated candidate text."""
        if not self.api_key:
            raise AssistantError("Missing API key")

        url = f"{self.base_url}/models/{self.model}:generateContent"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    url, json=body, headers={"x-goog-api-key": self.api_key}
                )
                response.raise_for_status()
                payload = response.json()
        except httpx.TimeoutException as e:
            raise AssistantError("Request timed out") from e
        except httpx.HTTPStatusError as e:
            raise AssistantError(f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise AssistantError(f"Connection error: {e}") from e
        except ValueError as e:
            raise AssistantError("Response is not JSON") from e

        try:
            parts = payload["candidates"][0]["content"]["parts"]
            text = "".join(part.get("text", "") for part in parts)
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise AssistantError("Response has no candidate text") from e
        if not text.strip():
            raise AssistantError("Response is empty")
        return text
