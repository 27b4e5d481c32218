"""
Tests for the WellnessStore implementation.

These tests verify the store's mutation operations, its silent handling of
invalid input, and the change notifications delivered to subscribers.
"""

from datetime import date, datetime, time, timezone

from peacepulse.models import JournalEntryDraft, SleepEntryDraft, TodoDraft
from peacepulse.store import GREETING, Collection, WellnessStore

NOW = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)


class TestWellnessStore:
    """Test suite for WellnessStore functionality."""

    def setup_method(self):
        """Set up a fresh store with a fixed clock for each test."""
        self.store = WellnessStore(clock=lambda: NOW)
        self.changes: list[frozenset[Collection]] = []
        self.store.subscribe(self.changes.append)

    def test_initial_state(self):
        """Test that a new store starts empty apart from the chat greeting."""
        assert self.store.today_mood is None
        assert self.store.mood_history == []
        assert self.store.habits == []
        assert self.store.todos == []
        assert self.store.sleep_entries == []
        assert self.store.journal_entries == []

        chat = self.store.chat_messages
        assert len(chat) == 1
        assert chat[0].sender == "bot"
        assert chat[0].text == GREETING

    # MARK: - Mood

    def test_set_today_mood_has_no_history_side_effect(self):
        self.store.set_today_mood("good")

        assert self.store.today_mood == "good"
        assert self.store.mood_history == []
        assert self.changes == [frozenset({Collection.TODAY_MOOD})]

    def test_set_today_mood_ignores_unknown_label(self):
        self.store.set_today_mood("ecstatic")

        assert self.store.today_mood is None
        assert self.changes == []

    def test_add_mood_entry_prepends_and_sets_today_mood(self):
        """Test mood entries are stamped now, newest first."""
        self.store.add_mood_entry("okay")
        entry = self.store.add_mood_entry("excellent", "Great walk")

        assert entry is not None
        assert entry.timestamp == NOW
        history = self.store.mood_history
        assert [m.mood for m in history] == ["excellent", "okay"]
        assert history[0].note == "Great walk"
        assert history[1].note is None
        assert self.store.today_mood == "excellent"

    def test_add_mood_entry_invalid_is_noop(self):
        assert self.store.add_mood_entry("meh") is None
        assert self.store.mood_history == []
        assert self.changes == []

    # MARK: - Habits

    def test_add_habit_defaults(self):
        habit = self.store.add_habit("Drink water")

        assert habit is not None
        assert habit.completed is False
        assert habit.streak == 0
        assert habit.category == "health"
        assert habit.date_completed is None
        assert self.store.habits == [habit]

    def test_add_habit_duplicate_name_ignores_case(self):
        """Test that a case-insensitive duplicate leaves the habits unchanged."""
        self.store.add_habit("Meditate", "mindfulness")
        self.changes.clear()

        assert self.store.add_habit("meditate") is None
        assert self.store.add_habit("MEDITATE", "learning") is None

        assert len(self.store.habits) == 1
        assert self.changes == []

    def test_add_habit_invalid_category_is_noop(self):
        assert self.store.add_habit("Swim", "sports") is None
        assert self.store.habits == []

    def test_toggle_habit_streak_and_completion_date(self):
        """Test completing increments the streak; un-completing keeps it."""
        habit = self.store.add_habit("Stretch", "exercise")

        completed = self.store.toggle_habit(habit.id)
        assert completed.completed is True
        assert completed.streak == 1
        assert completed.date_completed == date(2026, 10, 18)

        reverted = self.store.toggle_habit(habit.id)
        assert reverted.completed is False
        assert reverted.streak == 1
        assert reverted.date_completed is None

        again = self.store.toggle_habit(habit.id)
        assert again.streak == 2

    def test_toggle_habit_unknown_id_is_noop(self):
        self.store.add_habit("Stretch")
        before = self.store.habits
        self.changes.clear()

        assert self.store.toggle_habit("missing") is None
        assert self.store.habits == before
        assert self.changes == []

    def test_snapshots_are_not_mutated(self):
        """Test that previously read records keep their values."""
        habit = self.store.add_habit("Stretch")
        snapshot = self.store.habits

        self.store.toggle_habit(habit.id)

        assert snapshot[0].completed is False
        assert self.store.habits[0].completed is True

    def test_delete_habit(self):
        keep = self.store.add_habit("Read")
        drop = self.store.add_habit("Run", "exercise")

        self.store.delete_habit(drop.id)
        self.store.delete_habit("missing")

        assert self.store.habits == [keep]

    # MARK: - Todos

    def test_add_todos_mirrors_habits(self):
        """Test that a new todo creates a matching habit."""
        todos = self.store.add_todos([{"title": "Walk", "category": "exercise"}])

        assert len(todos) == 1
        assert self.store.todos == todos
        assert todos[0].completed is False

        habits = self.store.habits
        assert len(habits) == 1
        assert habits[0].name == "Walk"
        assert habits[0].category == "exercise"
        assert self.changes == [frozenset({Collection.TODOS, Collection.HABITS})]

    def test_add_todos_prepends_batch(self):
        self.store.add_todos([TodoDraft(title="First")])
        self.store.add_todos([TodoDraft(title="Second"), TodoDraft(title="Third")])

        assert [t.title for t in self.store.todos] == ["Second", "Third", "First"]

    def test_add_todos_existing_habit_is_not_duplicated(self):
        self.store.add_habit("walk", "exercise")
        self.changes.clear()

        self.store.add_todos([{"title": "Walk", "category": "exercise"}])

        assert len(self.store.todos) == 1
        assert len(self.store.habits) == 1
        assert self.changes == [frozenset({Collection.TODOS})]

    def test_add_todos_duplicate_titles_in_batch(self):
        self.store.add_todos([{"title": "Read"}, {"title": "read"}])

        assert len(self.store.todos) == 2
        assert [h.name for h in self.store.habits] == ["Read"]

    def test_add_todos_skips_invalid_items(self):
        todos = self.store.add_todos([{"title": ""}, {"category": "health"}])

        assert todos == []
        assert self.store.todos == []
        assert self.changes == []

    def test_toggling_habit_does_not_touch_todo(self):
        """Test that mirrored todos and habits drift independently."""
        self.store.add_todos([{"title": "Walk", "category": "exercise"}])
        self.store.toggle_habit(self.store.habits[0].id)

        assert self.store.todos[0].completed is False

    # MARK: - Chat

    def test_add_chat_message_appends_in_order(self):
        self.store.add_chat_message(
            {"id": "u1", "text": "Hi", "sender": "user", "timestamp": NOW}
        )
        self.store.add_chat_message(
            {"id": "b1", "text": "Hello", "sender": "bot", "timestamp": NOW.isoformat()}
        )

        assert [m.id for m in self.store.chat_messages][1:] == ["u1", "b1"]

    def test_add_chat_message_invalid_is_noop(self):
        assert self.store.add_chat_message({"id": "x", "text": "Hi"}) is None
        assert self.store.add_chat_message(
            {"id": "x", "text": "Hi", "sender": "robot", "timestamp": NOW}
        ) is None
        assert len(self.store.chat_messages) == 1

    # MARK: - Sleep

    def test_add_sleep_entry_replaces_same_date(self):
        """Test that one entry per wake date is kept, holding the latest values."""
        first = SleepEntryDraft(
            date=date(2026, 10, 17),
            bedtime=time(23, 0),
            wakeup=time(7, 0),
            duration_minutes=480,
            quality="good",
        )
        other = first.model_copy(update={"date": date(2026, 10, 16)})
        second = first.model_copy(update={"duration_minutes": 300, "quality": "poor"})

        self.store.add_sleep_entry(other)
        self.store.add_sleep_entry(first)
        self.store.add_sleep_entry(second)

        entries = self.store.sleep_entries
        assert [e.date for e in entries] == [date(2026, 10, 17), date(2026, 10, 16)]
        assert entries[0].duration_minutes == 300
        assert entries[0].quality == "poor"

    def test_add_sleep_entry_invalid_is_noop(self):
        result = self.store.add_sleep_entry(
            {
                "date": "2026-10-17",
                "bedtime": "23:00",
                "wakeup": "07:00",
                "duration_minutes": -5,
                "quality": "good",
            }
        )

        assert result is None
        assert self.store.sleep_entries == []

    def test_add_sleep_entry_accepts_stored_record(self):
        """Test that re-logging an edited stored entry replaces it with a new id."""
        first = self.store.add_sleep_entry(
            {
                "date": "2026-10-17",
                "bedtime": "23:00",
                "wakeup": "07:00",
                "duration_minutes": 480,
                "quality": "good",
            }
        )

        second = self.store.add_sleep_entry(
            first.model_copy(update={"quality": "poor"})
        )

        assert second is not None
        assert second.id != first.id
        assert self.store.sleep_entries == [second]
        assert second.quality == "poor"

    # MARK: - Journal

    def test_journal_add_update_delete(self):
        entry = self.store.add_journal_entry(
            JournalEntryDraft(title="Day", content="Calm day", date=date(2026, 10, 18))
        )
        newer = self.store.add_journal_entry(
            {"title": "Later", "content": "More", "date": "2026-10-18", "mood": "good"}
        )
        assert [e.id for e in self.store.journal_entries] == [newer.id, entry.id]

        updated = self.store.update_journal_entry(entry.id, content="Very calm day")
        assert updated.id == entry.id
        assert updated.title == "Day"
        assert updated.content == "Very calm day"

        self.store.delete_journal_entry(newer.id)
        assert [e.id for e in self.store.journal_entries] == [entry.id]

    def test_add_journal_entry_accepts_stored_record(self):
        entry = self.store.add_journal_entry(
            {"title": "Day", "content": "Text", "date": "2026-10-18"}
        )

        copy = self.store.add_journal_entry(entry)

        assert copy is not None
        assert copy.id != entry.id
        assert copy.content == entry.content
        assert [e.id for e in self.store.journal_entries] == [copy.id, entry.id]

    def test_update_journal_entry_ignores_id_and_unknown_fields(self):
        entry = self.store.add_journal_entry(
            {"title": "Day", "content": "Text", "date": "2026-10-18"}
        )

        updated = self.store.update_journal_entry(entry.id, id="other", colour="blue")

        assert updated.id == entry.id
        assert self.store.journal_entries[0].id == entry.id

    def test_update_journal_entry_invalid_or_missing_is_noop(self):
        entry = self.store.add_journal_entry(
            {"title": "Day", "content": "Text", "date": "2026-10-18"}
        )
        self.changes.clear()

        assert self.store.update_journal_entry(entry.id, mood="meh") is None
        assert self.store.update_journal_entry("missing", title="X") is None
        self.store.delete_journal_entry("missing")

        assert self.store.journal_entries == [entry]
        assert self.changes == []

    # MARK: - Subscription

    def test_unsubscribe_stops_notifications(self):
        received = []
        unsubscribe = self.store.subscribe(received.append)

        self.store.set_today_mood("good")
        unsubscribe()
        self.store.set_today_mood("poor")

        assert received == [frozenset({Collection.TODAY_MOOD})]

    def test_listener_sees_post_mutation_state(self):
        seen = []
        self.store.subscribe(lambda _: seen.append(len(self.store.habits)))

        self.store.add_habit("Read")

        assert seen == [1]

    def test_failing_listener_does_not_block_others(self):
        def broken(_changed):
            raise RuntimeError("boom")

        received = []
        self.store.subscribe(broken)
        self.store.subscribe(received.append)

        habit = self.store.add_habit("Read")

        assert habit is not None
        assert self.store.habits == [habit]
        assert received == [frozenset({Collection.HABITS})]
