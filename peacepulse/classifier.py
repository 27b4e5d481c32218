"""
Keyword-rule classification of chat messages.

Used whenever the assistant cannot classify a message. The rules always
produce a mood label and between one and five action items.
"""

import re

from .models import Analysis, TodoDraft

MAX_TODOS = 5

# Evaluated in order; the first matching rule wins.
MOOD_RULES: list[tuple[str, re.Pattern[str]]] = [
    ("excellent", re.compile(r"great|awesome|fantastic|amazing|grateful|happy|joyful")),
    ("good", re.compile(r"good|fine|better|optimistic|calm")),
    ("poor", re.compile(r"stressed|anxious|sad|tired|overwhelmed|down|lonely|angry")),
    ("awful", re.compile(r"awful|terrible|horrible|depressed|can['’]t cope")),
]

TODO_RULES: list[tuple[re.Pattern[str], TodoDraft]] = [
    (
        re.compile(r"anxious|stressed|overwhelmed"),
        TodoDraft(title="5-minute breathing", category="mindfulness"),
    ),
    (
        re.compile(r"tired|sleep|insomnia"),
        TodoDraft(title="Wind-down routine before bed", category="health"),
    ),
    (
        re.compile(r"sad|down|lonely"),
        TodoDraft(title="Journal for 5 minutes", category="reflection"),
    ),
    (
        re.compile(r"angry|tense"),
        TodoDraft(title="10-minute walk", category="exercise"),
    ),
]

# Priority order for topping up the list.
DEFAULT_TODOS: list[TodoDraft] = [
    TodoDraft(title="Hydrate: 8 glasses of water", category="health"),
    TodoDraft(title="10-minute walk", category="exercise"),
    TodoDraft(title="Journal for 5 minutes", category="reflection"),
    TodoDraft(title="5-minute breathing", category="mindfulness"),
    TodoDraft(title="Read 10 pages", category="learning"),
]


def classify_mood(text: str) -> str:
    lowered = text.lower()
    for mood, pattern in MOOD_RULES:
        if pattern.search(lowered):
            return mood
    return "okay"


def suggest_todos(text: str) -> list[TodoDraft]:
    """Pick action items matching the text, topped up with healthy defaults."""
    lowered = text.lower()
    todos = [todo for pattern, todo in TODO_RULES if pattern.search(lowered)]

    titles = {todo.title for todo in todos}
    for todo in DEFAULT_TODOS:
        if len(todos) >= MAX_TODOS:
            break
        if todo.title not in titles:
            todos.append(todo)
            titles.add(todo.title)
    return [todo.model_copy() for todo in todos[:MAX_TODOS]]


def fallback_analysis(text: str) -> Analysis:
    return Analysis(
        mood=classify_mood(text), todos=suggest_todos(text), source="fallback"
    )
