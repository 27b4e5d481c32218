"""
Derived, read-only views over the wellness store.

These summaries back the dashboard, calendar, habit and journal screens.
None of them modify the store.
"""

import calendar
from collections.abc import Sequence
from datetime import date, datetime, time, timedelta

from pydantic import BaseModel

from .models import MOOD_LABELS, HabitItem, JournalEntry
from .store import WellnessStore

JOURNAL_PROMPTS = [
    "What am I grateful for today?",
    "How did I grow today?",
    "What challenged me and how did I handle it?",
    "What brought me joy today?",
    "What would I tell my younger self?",
]

# excellent=5 ... awful=1
MOOD_SCORES = {mood: len(MOOD_LABELS) - i for i, mood in enumerate(MOOD_LABELS)}


class HabitProgress(BaseModel):
    completed: int
    total: int
    percent: int


class DaySummary(BaseModel):
    """Everything logged for one calendar day."""

    day: date
    journal: list[JournalEntry]
    habits_completed: list[HabitItem]
    total_habits: int
    sleep_hours: float | None = None
    mood: str | None = None


class DashboardStats(BaseModel):
    mood_average: str | None
    sleep_last_night_hours: float | None
    habits_complete: str
    journal_entries: int


def habit_progress(habits: Sequence[HabitItem]) -> HabitProgress:
    total = len(habits)
    completed = sum(1 for h in habits if h.completed)
    percent = round(completed / total * 100) if total else 0
    return HabitProgress(completed=completed, total=total, percent=percent)


def sleep_duration_minutes(bedtime: time, wakeup: time) -> int:
    """Minutes between going to bed and waking up, wrapping past midnight."""
    start = datetime.combine(date.min, bedtime)
    end = datetime.combine(date.min, wakeup)
    if end <= start:
        end += timedelta(days=1)
    return int((end - start).total_seconds() // 60)


def journal_title(title: str, content: str) -> str:
    """Use the given title, else the opening of the content, else "Untitled"."""
    return (title.strip() or content.strip()[:40] or "Untitled").strip()


def day_summary(store: WellnessStore, day: date) -> DaySummary:
    habits = store.habits
    sleep = next((e for e in store.sleep_entries if e.date == day), None)
    mood = next(
        (m.mood for m in store.mood_history if m.timestamp.date() == day), None
    )
    return DaySummary(
        day=day,
        journal=[e for e in store.journal_entries if e.date == day],
        habits_completed=[h for h in habits if h.date_completed == day],
        total_habits=len(habits),
        sleep_hours=round(sleep.duration_minutes / 60, 1) if sleep else None,
        mood=mood,
    )


def month_summary(store: WellnessStore, year: int, month: int) -> list[DaySummary]:
    """One summary per day of the given month."""
    _, days = calendar.monthrange(year, month)
    return [day_summary(store, date(year, month, d)) for d in range(1, days + 1)]


def dashboard_stats(store: WellnessStore) -> DashboardStats:
    moods = store.mood_history
    mood_average = None
    if moods:
        average = sum(MOOD_SCORES[m.mood] for m in moods) / len(moods)
        # Halves round up.
        score = int(average + 0.5)
        mood_average = next(m for m, s in MOOD_SCORES.items() if s == score)

    sleep = store.sleep_entries
    latest = max(sleep, key=lambda e: e.date) if sleep else None
    progress = habit_progress(store.habits)

    return DashboardStats(
        mood_average=mood_average,
        sleep_last_night_hours=(
            round(latest.duration_minutes / 60, 1) if latest else None
        ),
        habits_complete=f"{progress.completed}/{progress.total}",
        journal_entries=len(store.journal_entries),
    )
