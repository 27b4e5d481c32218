"""Crisis-language detection for outgoing chat messages."""

import re

SAFETY_PREAMBLE = (
    "I'm really sorry you're feeling this way. You deserve immediate support. "
    "If you might be in danger or thinking about hurting yourself, please contact "
    "local emergency services, a trusted person, or a crisis line in your area "
    "right now. If you'd like, I can share grounding or breathing steps while "
    "you reach out."
)

CRISIS_PATTERN = re.compile(
    r"(suicide|kill myself|end it|can['’]t go on|self[- ]?harm|hurt myself)",
    re.IGNORECASE,
)


def is_crisis_message(text: str) -> bool:
    return bool(CRISIS_PATTERN.search(text))


def with_safety_preamble(user_text: str, reply: str) -> str:
    """Prefix ``reply`` with the safety preamble when ``user_text`` signals crisis."""
    if not is_crisis_message(user_text):
        return reply
    return f"{SAFETY_PREAMBLE} {reply}"
