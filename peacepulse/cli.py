"""
Command-line interface for PeacePulse.

A thin presentation layer over the wellness store: each command opens the
store with persistence attached, renders a slice of it, and calls store
operations in response to input.
"""

import asyncio
from collections.abc import Coroutine, Sequence
from datetime import date, time
from pathlib import Path
from typing import Any, NoReturn, Optional

import typer

from .assistant import Assistant
from .chat import ChatSession
from .config import Settings, configure_logging
from .insights import (
    JOURNAL_PROMPTS,
    dashboard_stats,
    habit_progress,
    journal_title,
    month_summary,
    sleep_duration_minutes,
)
from .models import MOOD_LABELS, SLEEP_QUALITIES, ChatMessage, JournalEntry
from .persistence import JsonFileKeyValueStore, PersistenceBridge
from .store import WellnessStore

app = typer.Typer(help="PeacePulse wellness tracker")
journal_app = typer.Typer(help="Write and review journal entries")
sleep_app = typer.Typer(help="Log and review sleep")
app.add_typer(journal_app, name="journal")
app.add_typer(sleep_app, name="sleep")

CHAT_HELP = (
    "Commands: /mood [label [note]], /habits, /toggle N, /delete N, /todos, "
    "/help, /quit"
)


@app.callback()
def main(
    ctx: typer.Context,
    data_dir: Optional[Path] = typer.Option(
        None, "--data-dir", "-d", help="Directory for saved chat, sleep and journal"
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level"),
) -> None:
    """Track mood, habits, sleep and journal, and chat with a supportive companion."""
    settings = Settings.from_env()
    if data_dir is not None:
        settings.data_dir = data_dir
    if log_level:
        settings.log_level = log_level.upper()
    configure_logging(settings.log_level)
    ctx.obj = settings


# MARK: - Chat


@app.command()
def chat(ctx: typer.Context) -> None:
    """Talk with the wellness companion."""
    settings: Settings = ctx.obj
    store = _open_store(settings)
    session = ChatSession(
        store,
        Assistant(
            settings.gemini_api_key,
            model=settings.gemini_model,
            timeout=settings.request_timeout,
        ),
    )

    async def _chat() -> None:
        if not session.assistant_enabled:
            print(
                "Live AI is disabled because the API key is missing. "
                "Set PEACEPULSE_GEMINI_API_KEY to enable it."
            )
        print(CHAT_HELP)
        for message in store.chat_messages:
            print(_format_message(message))

        while True:
            try:
                line = (await asyncio.to_thread(input, "you> ")).strip()
            except EOFError:
                break
            if not line:
                continue
            if line.startswith("/"):
                if not _handle_chat_command(store, line):
                    break
                continue

            reply = await session.send(line)
            if session.last_error and session.assistant_enabled:
                print(
                    "(Using supportive fallback responses due to a connection issue. "
                    "Retrying on your next message.)"
                )
            if reply is not None:
                print(_format_message(reply))

    _run_with_error_handling(_chat())


def _handle_chat_command(store: WellnessStore, line: str) -> bool:
    """Run an in-chat command. Returns ``False`` when the chat should end."""
    command, _, rest = line.partition(" ")
    rest = rest.strip()

    if command in ("/quit", "/exit"):
        return False
    if command == "/mood":
        _chat_mood(store, rest)
    elif command == "/habits":
        _print_habits(store)
    elif command in ("/toggle", "/delete"):
        habits = store.habits
        index = _parse_index(rest, len(habits))
        if index is None:
            print(f"Usage: {command} N (1-{len(habits)})" if habits else "No habits")
        elif command == "/toggle":
            store.toggle_habit(habits[index].id)
            _print_habits(store)
        else:
            store.delete_habit(habits[index].id)
            print(f"Deleted {habits[index].name}")
    elif command == "/todos":
        todos = store.todos
        if not todos:
            print("No todos yet")
        for todo in todos:
            mark = "x" if todo.completed else " "
            print(f"[{mark}] {todo.title} ({todo.category})")
    else:
        print(CHAT_HELP)
    return True


def _chat_mood(store: WellnessStore, rest: str) -> None:
    if not rest:
        print(f"Today's mood: {store.today_mood or 'not set'}")
        for entry in store.mood_history[:5]:
            note = f" - {entry.note}" if entry.note else ""
            print(f"  {entry.timestamp:%Y-%m-%d %H:%M} {entry.mood}{note}")
        return
    mood, _, note = rest.partition(" ")
    if store.add_mood_entry(mood.lower(), note.strip() or None) is None:
        print(f"Mood must be one of: {', '.join(MOOD_LABELS)}")
    else:
        print(f"Logged mood: {mood.lower()}")


def _print_habits(store: WellnessStore) -> None:
    habits = store.habits
    if not habits:
        print("No habits yet")
        return
    progress = habit_progress(habits)
    print(
        f"{progress.completed} of {progress.total} habits completed "
        f"({progress.percent}%)"
    )
    for number, habit in enumerate(habits, start=1):
        mark = "x" if habit.completed else " "
        print(
            f"{number:>2}. [{mark}] {habit.name} "
            f"({habit.category}, {habit.streak} day streak)"
        )


# MARK: - Journal


@journal_app.command("list")
def journal_list(ctx: typer.Context) -> None:
    """Show journal entries, newest first."""
    store = _open_store(ctx.obj)
    entries = store.journal_entries
    if not entries:
        print("No journal entries yet")
    for entry in entries:
        print(_format_journal(entry))


@journal_app.command("add")
def journal_add(
    ctx: typer.Context,
    content: str = typer.Argument(..., help="What you want to write"),
    title: str = typer.Option("", "--title", "-t", help="Entry title"),
    prompt: Optional[int] = typer.Option(
        None, "--prompt", "-p", help="Use writing prompt N as the title"
    ),
    mood: Optional[str] = typer.Option(
        None, "--mood", "-m", help="Mood for this entry"
    ),
) -> None:
    """Write a new journal entry for today."""
    if not content.strip():
        _fail("Journal content cannot be empty")
    if prompt is not None:
        index = _parse_index(str(prompt), len(JOURNAL_PROMPTS))
        if index is None:
            _fail(f"Prompt must be between 1 and {len(JOURNAL_PROMPTS)}")
        title = JOURNAL_PROMPTS[index]
    if mood is not None and mood not in MOOD_LABELS:
        _fail(f"Mood must be one of: {', '.join(MOOD_LABELS)}")

    store = _open_store(ctx.obj)
    entry = store.add_journal_entry(
        {
            "title": journal_title(title, content),
            "content": content.strip(),
            "date": store.today(),
            "mood": mood,
        }
    )
    if entry is None:
        _fail("Could not save the entry")
    print(f"Saved {entry.id[:8]}: {entry.title}")


@journal_app.command("edit")
def journal_edit(
    ctx: typer.Context,
    ref: str = typer.Argument(..., help="Entry id or id prefix"),
    title: Optional[str] = typer.Option(None, "--title", "-t"),
    content: Optional[str] = typer.Option(None, "--content", "-c"),
) -> None:
    """Change the title or content of an entry."""
    changes = {
        field: value.strip()
        for field, value in (("title", title), ("content", content))
        if value is not None
    }
    if not changes or not all(changes.values()):
        _fail("Provide a non-empty --title and/or --content")

    store = _open_store(ctx.obj)
    entry = _find_entry(store.journal_entries, ref)
    updated = store.update_journal_entry(entry.id, **changes)
    if updated is None:
        _fail("Could not update the entry")
    print(_format_journal(updated))


@journal_app.command("delete")
def journal_delete(
    ctx: typer.Context,
    ref: str = typer.Argument(..., help="Entry id or id prefix"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a journal entry."""
    store = _open_store(ctx.obj)
    entry = _find_entry(store.journal_entries, ref)
    if not yes and not typer.confirm(f"Delete '{entry.title}'?"):
        raise typer.Exit(0)
    store.delete_journal_entry(entry.id)
    print(f"Deleted {entry.id[:8]}")


@journal_app.command("prompts")
def journal_prompts() -> None:
    """List writing prompts."""
    for number, prompt in enumerate(JOURNAL_PROMPTS, start=1):
        print(f"{number}. {prompt}")


# MARK: - Sleep


@sleep_app.command("log")
def sleep_log(
    ctx: typer.Context,
    bedtime: str = typer.Argument(..., help="Bedtime as HH:MM"),
    wakeup: str = typer.Argument(..., help="Wake-up time as HH:MM"),
    quality: str = typer.Option("good", "--quality", "-q", help="Sleep quality"),
    wake_date: Optional[str] = typer.Option(
        None, "--date", help="Wake-up date as YYYY-MM-DD, defaults to today"
    ),
) -> None:
    """Log a night of sleep. A second log for the same date replaces the first."""
    try:
        bed = time.fromisoformat(bedtime)
        wake = time.fromisoformat(wakeup)
        day = date.fromisoformat(wake_date) if wake_date else None
    except ValueError as e:
        _fail(f"Invalid time or date: {e}")
    if quality not in SLEEP_QUALITIES:
        _fail(f"Quality must be one of: {', '.join(SLEEP_QUALITIES)}")

    store = _open_store(ctx.obj)
    entry = store.add_sleep_entry(
        {
            "date": day or store.today(),
            "bedtime": bed,
            "wakeup": wake,
            "duration_minutes": sleep_duration_minutes(bed, wake),
            "quality": quality,
        }
    )
    if entry is None:
        _fail("Could not save the entry")
    print(f"{entry.date}: {_format_duration(entry.duration_minutes)} ({entry.quality})")


@sleep_app.command("list")
def sleep_list(ctx: typer.Context) -> None:
    """Show logged sleep, newest first."""
    store = _open_store(ctx.obj)
    entries = store.sleep_entries
    if not entries:
        print("No sleep logged yet")
    for entry in entries:
        print(
            f"{entry.date}  {entry.bedtime:%H:%M}-{entry.wakeup:%H:%M}  "
            f"{_format_duration(entry.duration_minutes)}  {entry.quality}"
        )


# MARK: - Overviews


@app.command()
def calendar(
    ctx: typer.Context,
    year: Optional[int] = typer.Option(None, "--year", "-y"),
    month: Optional[int] = typer.Option(None, "--month", "-m", min=1, max=12),
) -> None:
    """Show the days of a month that have anything logged."""
    store = _open_store(ctx.obj)
    today = store.today()
    shown = 0
    for summary in month_summary(store, year or today.year, month or today.month):
        parts = []
        if summary.mood:
            parts.append(f"mood: {summary.mood}")
        if summary.sleep_hours is not None:
            parts.append(f"sleep: {summary.sleep_hours}h")
        if summary.habits_completed:
            done = len(summary.habits_completed)
            parts.append(f"habits: {done}/{summary.total_habits}")
        if summary.journal:
            parts.append("journal: " + ", ".join(e.title for e in summary.journal))
        if parts:
            shown += 1
            print(f"{summary.day}  " + "  ".join(parts))
    if not shown:
        print("Nothing logged this month")


@app.command()
def dashboard(ctx: typer.Context) -> None:
    """Show a quick overview."""
    stats = dashboard_stats(_open_store(ctx.obj))
    hours = stats.sleep_last_night_hours
    sleep = f"{hours}h" if hours is not None else "-"
    print(f"Mood average:     {stats.mood_average or '-'}")
    print(f"Sleep last night: {sleep}")
    print(f"Habits complete:  {stats.habits_complete}")
    print(f"Journal entries:  {stats.journal_entries}")


# MARK: - Private Helpers


def _open_store(settings: Settings) -> WellnessStore:
    """Create a store hydrated from, and saving to, the data directory."""
    store = WellnessStore()
    PersistenceBridge(store, JsonFileKeyValueStore(settings.data_dir)).attach()
    return store


def _format_message(message: ChatMessage) -> str:
    speaker = "you" if message.sender == "user" else "bot"
    return f"{message.timestamp:%H:%M} {speaker}> {message.text}"


def _format_journal(entry: JournalEntry) -> str:
    mood = f" [{entry.mood}]" if entry.mood else ""
    return f"{entry.id[:8]}  {entry.date}  {entry.title}{mood}\n    {entry.content}"


def _format_duration(minutes: int) -> str:
    return f"{minutes // 60}h {minutes % 60:02d}m"


def _parse_index(value: str, count: int) -> int | None:
    """Convert a 1-based number into a list index, or ``None`` if out of range."""
    try:
        number = int(value)
    except ValueError:
        return None
    return number - 1 if 1 <= number <= count else None


def _find_entry(entries: Sequence[JournalEntry], ref: str) -> JournalEntry:
    matches = [e for e in entries if e.id == ref] or [
        e for e in entries if e.id.startswith(ref)
    ]
    if len(matches) != 1:
        _fail(f"No unique journal entry matches {ref!r}")
    return matches[0]


def _fail(message: str) -> NoReturn:
    print(f"Error: {message}")
    raise typer.Exit(1)


def _run_with_error_handling(coro: Coroutine[Any, Any, Any]) -> None:
    """Run an async coroutine with standardized error handling."""
    try:
        asyncio.run(coro)
    except KeyboardInterrupt:
        print("\nStopped")
        raise typer.Exit(0)
    except Exception as e:
        error_msg = str(e) if str(e) else f"Unknown error of type {type(e).__name__}"
        print(f"Error: {error_msg}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
