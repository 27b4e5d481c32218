"""
Shared data models for PeacePulse.

This module defines the records held by the wellness store and the input
shapes accepted by its mutation operations. Records are immutable; the store
replaces them with updated copies.
"""

import uuid
from datetime import date, datetime, time
from typing import Literal, get_args

from pydantic import BaseModel, ConfigDict, Field

MoodLabel = Literal["excellent", "good", "okay", "poor", "awful"]
HabitCategory = Literal["mindfulness", "health", "reflection", "exercise", "learning"]
SleepQuality = Literal["excellent", "good", "fair", "poor"]
Sender = Literal["user", "bot"]

MOOD_LABELS: tuple[str, ...] = get_args(MoodLabel)
HABIT_CATEGORIES: tuple[str, ...] = get_args(HabitCategory)
SLEEP_QUALITIES: tuple[str, ...] = get_args(SleepQuality)


def new_id() -> str:
    """Return a fresh record identifier."""
    return uuid.uuid4().hex


class Record(BaseModel):
    """Base for stored records."""

    model_config = ConfigDict(frozen=True, extra="ignore")


class MoodEntry(Record):
    """A single logged mood."""

    timestamp: datetime = Field(..., description="When the mood was logged")
    mood: MoodLabel = Field(..., description="The mood label")
    note: str | None = Field(None, description="Optional free-text note")


class HabitItem(Record):
    """A tracked habit with its running streak."""

    id: str
    name: str = Field(..., min_length=1)
    completed: bool = False
    streak: int = Field(0, ge=0)
    category: HabitCategory = "health"
    date_completed: date | None = Field(
        None, description="Calendar date the habit was last completed"
    )


class TodoDraft(BaseModel):
    """An action item before it is added to the todo list."""

    title: str = Field(..., min_length=1)
    category: HabitCategory = "health"


class TodoItem(Record):
    """A todo created from an action item."""

    id: str
    title: str = Field(..., min_length=1)
    completed: bool = False
    category: HabitCategory = "health"


class ChatMessage(Record):
    """One message in the chat transcript."""

    id: str
    text: str
    sender: Sender
    timestamp: datetime


class SleepEntryDraft(BaseModel):
    """A night of sleep, keyed by the calendar date of waking up."""

    date: date
    bedtime: time
    wakeup: time
    duration_minutes: int = Field(..., ge=0)
    quality: SleepQuality


class SleepEntry(SleepEntryDraft, Record):
    """A stored night of sleep."""

    id: str


class JournalEntryDraft(BaseModel):
    """Journal content before it is stored."""

    title: str
    content: str
    date: date
    mood: MoodLabel | None = None


class JournalEntry(JournalEntryDraft, Record):
    """A stored, editable journal entry."""

    id: str


class Analysis(BaseModel):
    """Mood classification and suggested action items for a chat message."""

    mood: MoodLabel
    todos: list[TodoDraft] = Field(default_factory=list)
    source: Literal["assistant", "fallback"] = "fallback"


class ReplyResult(BaseModel):
    """Outcome of a reply request: either the assistant's text or a fallback."""

    text: str
    source: Literal["assistant", "fallback"]
    error: str | None = Field(None, description="Why the fallback was used")
