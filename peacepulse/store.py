"""
Wellness state storage for PeacePulse.

This module provides the in-memory store holding every wellness collection
together with the mutation operations that modify them. Views and the
persistence bridge observe the store through an explicit subscription instead
of an ambient global, and are notified synchronously once each mutation has
been fully applied.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import date, datetime
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from .models import (
    MOOD_LABELS,
    ChatMessage,
    HabitItem,
    JournalEntry,
    JournalEntryDraft,
    MoodEntry,
    SleepEntry,
    SleepEntryDraft,
    TodoDraft,
    TodoItem,
    new_id,
)

logger = logging.getLogger(__name__)

GREETING = (
    "Hello! I'm here to support you on your wellness journey. "
    "How are you feeling today?"
)

ModelT = TypeVar("ModelT", bound=BaseModel)


class Collection(str, Enum):
    """Names of the store's observable collections."""

    TODAY_MOOD = "today_mood"
    MOOD_HISTORY = "mood_history"
    HABITS = "habits"
    TODOS = "todos"
    CHAT = "chat"
    SLEEP = "sleep"
    JOURNAL = "journal"


Listener = Callable[[frozenset[Collection]], None]


def _now_local() -> datetime:
    return datetime.now().astimezone()


def _coerce(model: type[ModelT], value: Any) -> ModelT | None:
    """Validate ``value`` as ``model``; invalid input yields ``None``."""
    if isinstance(value, model):
        return value
    try:
        if isinstance(value, BaseModel):
            value = value.model_dump()
        return model.model_validate(value)
    except ValidationError as e:
        logger.debug("Ignoring invalid %s input: %s", model.__name__, e)
        return None


class WellnessStore:
    """
    In-memory wellness state with synchronous change notification.

    The store is the single source of truth for mood, habits, todos, chat,
    sleep and journal records. Invalid mutation input is ignored: the
    collection is left unchanged and no subscriber is notified.
    """

    def __init__(self, clock: Callable[[], datetime] = _now_local) -> None:
        self._clock = clock
        self._today_mood: str | None = None
        self._mood_history: list[MoodEntry] = []
        self._habits: list[HabitItem] = []
        self._todos: list[TodoItem] = []
        self._chat: list[ChatMessage] = [
            ChatMessage(id=new_id(), text=GREETING, sender="bot", timestamp=clock())
        ]
        self._sleep: list[SleepEntry] = []
        self._journal: list[JournalEntry] = []
        self._listeners: list[Listener] = []

    # MARK: - Read access

    @property
    def today_mood(self) -> str | None:
        return self._today_mood

    @property
    def mood_history(self) -> list[MoodEntry]:
        """Logged moods, newest first."""
        return list(self._mood_history)

    @property
    def habits(self) -> list[HabitItem]:
        return list(self._habits)

    @property
    def todos(self) -> list[TodoItem]:
        """Todos, newest batch first."""
        return list(self._todos)

    @property
    def chat_messages(self) -> list[ChatMessage]:
        """The chat transcript, oldest first."""
        return list(self._chat)

    @property
    def sleep_entries(self) -> list[SleepEntry]:
        """Sleep entries, newest first, at most one per wake date."""
        return list(self._sleep)

    @property
    def journal_entries(self) -> list[JournalEntry]:
        """Journal entries, newest first."""
        return list(self._journal)

    def today(self) -> date:
        return self._clock().date()

    # MARK: - Subscription

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener called after every applied mutation.

        Args:
            listener: Callable receiving the set of collections that changed

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, *changed: Collection) -> None:
        if not changed:
            return
        collections = frozenset(changed)
        for listener in list(self._listeners):
            try:
                listener(collections)
            except Exception:
                logger.exception("Store listener %r failed", listener)

    # MARK: - Mood

    def set_today_mood(self, mood: str) -> None:
        """Set the current-session mood indicator without logging history."""
        if mood not in MOOD_LABELS:
            logger.debug("Ignoring unknown mood %r", mood)
            return
        self._today_mood = mood
        self._notify(Collection.TODAY_MOOD)

    def add_mood_entry(self, mood: str, note: str | None = None) -> MoodEntry | None:
        """Log a mood now and make it the current-session mood."""
        entry = _coerce(
            MoodEntry, {"timestamp": self._clock(), "mood": mood, "note": note}
        )
        if entry is None:
            return None
        self._mood_history.insert(0, entry)
        self._today_mood = entry.mood
        self._notify(Collection.MOOD_HISTORY, Collection.TODAY_MOOD)
        return entry

    # MARK: - Habits

    def add_habit(self, name: str, category: str = "health") -> HabitItem | None:
        """
        Add a habit unless one with the same name (ignoring case) exists.

        Args:
            name: The habit name
            category: One of the habit categories, defaults to ``health``

        Returns:
            The new habit, or ``None`` if it was a duplicate or invalid
        """
        habit = self._create_habit(name, category)
        if habit is not None:
            self._notify(Collection.HABITS)
        return habit

    def _create_habit(self, name: str, category: str) -> HabitItem | None:
        if not isinstance(name, str):
            return None
        key = name.lower()
        if any(h.name.lower() == key for h in self._habits):
            return None
        habit = _coerce(
            HabitItem, {"id": new_id(), "name": name, "category": category}
        )
        if habit is not None:
            self._habits.append(habit)
        return habit

    def toggle_habit(self, habit_id: str) -> HabitItem | None:
        """
        Flip a habit's completion flag.

        Completing a habit extends its streak and stamps today's date;
        un-completing it keeps the streak and clears the date.
        """
        for index, habit in enumerate(self._habits):
            if habit.id != habit_id:
                continue
            if habit.completed:
                updated = habit.model_copy(
                    update={"completed": False, "date_completed": None}
                )
            else:
                updated = habit.model_copy(
                    update={
                        "completed": True,
                        "streak": habit.streak + 1,
                        "date_completed": self.today(),
                    }
                )
            self._habits[index] = updated
            self._notify(Collection.HABITS)
            return updated
        return None

    def delete_habit(self, habit_id: str) -> None:
        remaining = [h for h in self._habits if h.id != habit_id]
        if len(remaining) != len(self._habits):
            self._habits = remaining
            self._notify(Collection.HABITS)

    # MARK: - Todos

    def add_todos(
        self, items: Iterable[TodoDraft | Mapping[str, Any]]
    ) -> list[TodoItem]:
        """
        Add todos and mirror each one into the habit list.

        Todos and habits are deliberately denormalized: each new todo creates
        a habit with the same title and category, and the two are independent
        afterwards.

        Returns:
            The created todos, in input order
        """
        drafts = [
            draft
            for draft in (_coerce(TodoDraft, item) for item in items)
            if draft is not None
        ]
        if not drafts:
            return []

        created = [
            TodoItem(id=new_id(), title=d.title, category=d.category) for d in drafts
        ]
        self._todos[:0] = created

        changed = [Collection.TODOS]
        mirrored = [self._create_habit(t.title, t.category) for t in created]
        if any(habit is not None for habit in mirrored):
            changed.append(Collection.HABITS)
        self._notify(*changed)
        return created

    # MARK: - Chat

    def add_chat_message(
        self, message: ChatMessage | Mapping[str, Any]
    ) -> ChatMessage | None:
        """Append a message to the chat transcript."""
        parsed = _coerce(ChatMessage, message)
        if parsed is None:
            return None
        if any(m.id == parsed.id for m in self._chat):
            logger.debug("Ignoring chat message with duplicate id %s", parsed.id)
            return None
        self._chat.append(parsed)
        self._notify(Collection.CHAT)
        return parsed

    # MARK: - Sleep

    def add_sleep_entry(
        self, entry: SleepEntryDraft | Mapping[str, Any]
    ) -> SleepEntry | None:
        """Record a night of sleep, replacing any entry for the same wake date."""
        draft = _coerce(SleepEntryDraft, entry)
        if draft is None:
            return None
        fields = draft.model_dump(include=set(SleepEntryDraft.model_fields))
        item = SleepEntry(id=new_id(), **fields)
        self._sleep = [item] + [e for e in self._sleep if e.date != item.date]
        self._notify(Collection.SLEEP)
        return item

    # MARK: - Journal

    def add_journal_entry(
        self, entry: JournalEntryDraft | Mapping[str, Any]
    ) -> JournalEntry | None:
        draft = _coerce(JournalEntryDraft, entry)
        if draft is None:
            return None
        fields = draft.model_dump(include=set(JournalEntryDraft.model_fields))
        item = JournalEntry(id=new_id(), **fields)
        self._journal.insert(0, item)
        self._notify(Collection.JOURNAL)
        return item

    def update_journal_entry(
        self, entry_id: str, **changes: Any
    ) -> JournalEntry | None:
        """
        Merge field changes into a journal entry.

        The identifier cannot be changed and unknown fields are ignored. A
        merge that would produce an invalid entry leaves it untouched.
        """
        allowed = set(JournalEntryDraft.model_fields)
        changes = {k: v for k, v in changes.items() if k in allowed}
        for index, entry in enumerate(self._journal):
            if entry.id != entry_id:
                continue
            updated = _coerce(JournalEntry, {**entry.model_dump(), **changes})
            if updated is None:
                return None
            self._journal[index] = updated
            self._notify(Collection.JOURNAL)
            return updated
        return None

    def delete_journal_entry(self, entry_id: str) -> None:
        remaining = [e for e in self._journal if e.id != entry_id]
        if len(remaining) != len(self._journal):
            self._journal = remaining
            self._notify(Collection.JOURNAL)

    # MARK: - Hydration

    def hydrate(self, collection: Collection, items: Iterable[BaseModel]) -> None:
        """
        Replace a persisted collection wholesale with previously saved records.

        Only the chat, sleep and journal collections can be hydrated.
        """
        records = list(items)
        if collection is Collection.CHAT:
            self._chat = [m for m in records if isinstance(m, ChatMessage)]
        elif collection is Collection.SLEEP:
            self._sleep = [e for e in records if isinstance(e, SleepEntry)]
        elif collection is Collection.JOURNAL:
            self._journal = [e for e in records if isinstance(e, JournalEntry)]
        else:
            raise ValueError(f"Collection {collection.value} is not persisted")
        self._notify(collection)
