# src/taskpilot/cli/commands.py

from __future__ import annotations

import contextlib
import logging
import re
import shlex
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone

from ..core.models import UNSET, RepeatType, Task, TaskEdit, parse_timestamp
from ..core.state import AppState
from ..tasks.classifier import Bucket, filter_tasks, partition

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[[AppState, list[str], CommandEmitter | None], Awaitable[str]]

logger = logging.getLogger(__name__)

_RELATIVE_DUE = re.compile(r"^\+(\d+)([mhd])$")

_REPEAT_NAMES = {
    "none": RepeatType.NONE,
    "never": RepeatType.NONE,
    "daily": RepeatType.DAILY,
    "alt": RepeatType.EVERY_OTHER_DAY,
    "weekly": RepeatType.WEEKLY,
    "monthly": RepeatType.MONTHLY,
}

_BUCKET_TITLES = {
    Bucket.OVERDUE: "Overdue",
    Bucket.TODAY: "Today",
    Bucket.UPCOMING: "Upcoming",
    Bucket.NO_DUE: "No due date",
    Bucket.DONE: "Done",
}


class CommandRegistry:
    """Slash-command registry used by the console connector (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Arguments are shell-split, so quoted titles keep their spaces.
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError:
            return "Unbalanced quotes in command."
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        return await handler(state, args, emit)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- argument helpers ----


def split_options(args: list[str]) -> tuple[list[str], dict[str, str]]:
    """Separate `key=value` options from positional words."""
    words: list[str] = []
    opts: dict[str, str] = {}
    for a in args:
        key, sep, value = a.partition("=")
        if sep and key and key.isidentifier():
            opts[key.lower()] = value
        else:
            words.append(a)
    return words, opts


def parse_due(raw: str, now: datetime | None = None) -> datetime:
    """ISO-8601 (naive = local time) or relative: +30m, +2h, +1d."""
    now = now or datetime.now(timezone.utc)
    m = _RELATIVE_DUE.match(raw.strip())
    if m:
        amount = int(m.group(1))
        unit = {"m": "minutes", "h": "hours", "d": "days"}[m.group(2)]
        return now + timedelta(**{unit: amount})
    s = raw.strip()
    if s.endswith(("Z", "z")) or re.search(r"[+-]\d\d:?\d\d$", s):
        return parse_timestamp(s)
    return datetime.fromisoformat(s).astimezone().astimezone(timezone.utc)


def parse_repeat(raw: str) -> RepeatType:
    key = raw.strip().lower()
    if key in _REPEAT_NAMES:
        return _REPEAT_NAMES[key]
    if key.isdigit():
        return RepeatType.from_wire(int(key))
    raise ValueError(f"Unknown repeat option: {raw}")


def _fmt_due(task: Task) -> str:
    if task.due is None:
        return "no due date"
    return task.due.astimezone().strftime("%Y-%m-%d %H:%M")


def format_task(task: Task) -> str:
    mark = "x" if task.is_completed else " "
    extras = [_fmt_due(task)]
    if task.repeat_type != RepeatType.NONE:
        extras.append(task.repeat_type.short_title)
    if task.category_title:
        extras.append(task.category_title)
    return f"[{mark}] {task.title}  ({', '.join(extras)})  id={task.id}"


def _error_or(store_state, ok_text: str) -> str:
    return store_state.error_message or ok_text


# ---- session ----


async def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


async def cmd_login(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 2:
        return "Usage: /login <email> <password>"
    ok = await state.auth.login(args[0], args[1])
    if not ok:
        return state.auth.state.error_message or "Login failed."
    user = state.session.state.user
    return f"Welcome, {user.full_name}." if user and user.full_name else "Logged in."


async def cmd_signup(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 3:
        return 'Usage: /signup "<full name>" <email> <password>'
    ok = await state.auth.signup(args[0], args[1], args[2])
    if not ok:
        return state.auth.state.error_message or "Signup failed."
    return f"Account created. Check {args[1]} for a code, then /verify {args[1]} <code>."


async def cmd_verify(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 2:
        return "Usage: /verify <email> <code>"
    ok = await state.auth.verify(args[0], args[1])
    return "Verified and logged in." if ok else (state.auth.state.error_message or "Verification failed.")


async def cmd_reset(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /reset send <email>
    /reset confirm <email> <code>
    /reset set <email> <code> <new password>
    """
    usage = "Usage: /reset send <email> | /reset confirm <email> <code> | /reset set <email> <code> <new password>"
    if not args:
        return usage
    sub, rest = args[0].lower(), args[1:]
    if sub == "send" and len(rest) == 1:
        ok = await state.auth.send_password_reset_otp(rest[0])
        return "Reset code sent." if ok else (state.auth.state.error_message or "Failed.")
    if sub == "confirm" and len(rest) == 2:
        ok = await state.auth.confirm_password_reset_otp(rest[0], rest[1])
        return "Code accepted." if ok else (state.auth.state.error_message or "Failed.")
    if sub == "set" and len(rest) == 3:
        ok = await state.auth.reset_password(rest[0], rest[1], rest[2])
        return "Password updated, you are logged in." if ok else (state.auth.state.error_message or "Failed.")
    return usage


async def cmd_logout(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not state.session.is_authenticated:
        return "Not logged in."
    state.auth.logout()
    return "Logged out."


async def cmd_whoami(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    s = state.session.state
    if not s.is_authenticated:
        return "Not logged in. Use /login <email> <password>."
    if s.user is None:
        return "Logged in."
    return f"{s.user.full_name} ({s.user.initials}) id={s.user.user_id}"


# ---- tasks ----


async def cmd_tasks(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /tasks            -> fetch and show all tasks grouped by due date
    /tasks <query>    -> same, filtered by title/description/category
    /tasks cat=<id>   -> the tasks of one category, as the server lists them
    /tasks due=<when> -> one server-side listing: today, overdue, upcoming or nodue
    """
    words, opts = split_options(args)
    query = " ".join(words)
    if "cat" in opts and "due" in opts:
        return "Use either cat= or due=, not both."

    if "cat" in opts or "due" in opts:
        if "cat" in opts:
            listed = await state.tasks.fetch_for_category(opts["cat"])
        else:
            when = opts["due"].strip().lower()
            listed = await state.tasks.fetch_bucket("no_due" if when == "nodue" else when)
        if listed is None:
            return state.tasks.state.error_message or "Failed to fetch tasks."
        matched = filter_tasks(listed, query)
        if not matched:
            return "No results." if query.strip() else "Nothing coming up your way!"
        return "\n".join(format_task(t) for t in matched)

    if not await state.tasks.fetch_tasks():
        return state.tasks.state.error_message or "Failed to fetch tasks."

    buckets = partition(filter_tasks(state.tasks.tasks, query), datetime.now(timezone.utc))
    if buckets.is_empty:
        return "No results." if query.strip() else "Nothing coming up your way!"

    lines: list[str] = []
    for bucket in (Bucket.OVERDUE, Bucket.TODAY, Bucket.UPCOMING, Bucket.NO_DUE, Bucket.DONE):
        items = buckets.get(bucket)
        if not items:
            continue
        lines.append(f"{_BUCKET_TITLES[bucket]} ({len(items)})")
        lines.extend(f"  {format_task(t)}" for t in items)
    return "\n".join(lines)


async def cmd_recent(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not await state.tasks.fetch_recent():
        return state.tasks.state.error_message or "Failed to fetch recent tasks."
    recent = state.tasks.state.recent
    if recent is None:
        return "Nothing to show."
    return (
        f"Overdue: {recent.overdue.count}  Today: {recent.today.count}  "
        f"Upcoming: {recent.upcoming.count}  No due: {recent.no_due.count}"
    )


async def cmd_add(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/add <title> cat=<category id> [due=<iso|+30m>] [repeat=daily|alt|weekly|monthly]"""
    words, opts = split_options(args)
    title = " ".join(words)
    if not title or "cat" not in opts:
        return "Usage: /add <title> cat=<category id> [due=<iso|+30m>] [repeat=daily|alt|weekly|monthly]"
    try:
        due = parse_due(opts["due"]) if opts.get("due") else None
        repeat = parse_repeat(opts["repeat"]) if opts.get("repeat") else None
    except ValueError as e:
        return str(e)

    created = await state.tasks.add_task(title=title, category_id=opts["cat"], due=due, repeat_type=repeat)
    if created is None:
        return state.tasks.state.error_message or "Failed to create task."
    return f"Added: {format_task(created)}"


async def cmd_done(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 1:
        return "Usage: /done <task id>"
    outcome = await state.tasks.toggle_task(args[0])
    if outcome is None or not outcome.ok or outcome.result is None:
        return state.tasks.state.error_message or "Failed to toggle task."
    task = outcome.result
    return f"{'Completed' if task.is_completed else 'Reopened'}: {task.title}"


async def cmd_edit(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/edit <task id> [title=...] [due=<iso|+30m|none>] [repeat=...] [cat=<id>]"""
    words, opts = split_options(args)
    if len(words) != 1 or not opts:
        return "Usage: /edit <task id> [title=...] [due=<iso|+30m|none>] [repeat=...] [cat=<id>]"
    try:
        due = UNSET
        if "due" in opts:
            due = None if opts["due"].lower() in ("", "none") else parse_due(opts["due"])
        edit = TaskEdit(
            title=opts.get("title", UNSET),
            due=due,
            repeat_type=parse_repeat(opts["repeat"]) if "repeat" in opts else UNSET,
            category_id=opts.get("cat", UNSET),
        )
    except ValueError as e:
        return str(e)

    updated = await state.tasks.edit_task(words[0], edit)
    if updated is None:
        return state.tasks.state.error_message or "Failed to edit task."
    return f"Updated: {format_task(updated)}"


async def cmd_delete(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 1:
        return "Usage: /delete <task id>"
    outcome = await state.tasks.delete_task(args[0])
    if outcome is None or not outcome.ok:
        return state.tasks.state.error_message or "Failed to delete task."
    return "Task deleted."


# ---- categories ----


async def cmd_categories(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not await state.categories.fetch_categories():
        return state.categories.state.error_message or "Failed to fetch categories."
    cats = state.categories.categories
    if not cats:
        return "No categories yet. Create one with /category add <title> color=#FF9500"
    lines = ["Categories:"]
    for c in cats:
        lines.append(f"  {c.title} [{c.color}] tasks={c.task_count} id={c.id}")
    return "\n".join(lines)


async def cmd_category(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /category add <title> color=<#hex> [icon=<name>]
    /category edit <id> title=<title> color=<#hex> [icon=<name>]
    /category rm <id>
    """
    usage = (
        "Usage: /category add <title> color=<#hex> [icon=<name>] | "
        "/category edit <id> title=<title> color=<#hex> [icon=<name>] | /category rm <id>"
    )
    if not args:
        return usage
    sub = args[0].lower()
    words, opts = split_options(args[1:])

    if sub == "add" and words:
        created = await state.categories.create_category(
            title=" ".join(words), color=opts.get("color", ""), icon=opts.get("icon", "")
        )
        return f"Category created: {created.title} id={created.id}" if created else _error_or(
            state.categories.state, "Failed to create category."
        )

    if sub == "edit" and len(words) == 1:
        current = state.categories.get(words[0])
        updated = await state.categories.update_category(
            words[0],
            title=opts.get("title", current.title if current else ""),
            color=opts.get("color", current.color if current else ""),
            icon=opts.get("icon", current.icon if current else ""),
        )
        return f"Category updated: {updated.title}" if updated else _error_or(
            state.categories.state, "Failed to update category."
        )

    if sub in ("rm", "delete") and len(words) == 1:
        outcome = await state.categories.delete_category(words[0])
        if outcome is None or not outcome.ok:
            return _error_or(state.categories.state, "Failed to delete category.")
        return "Category deleted (its tasks are gone too)."

    return usage


# ---- sharing ----


async def cmd_requests(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not await state.collab.fetch_invites():
        return state.collab.state.error_message or "Failed to fetch requests."
    invites = state.collab.invites
    if not invites:
        return "No pending requests."
    lines = ["Pending requests:"]
    for inv in invites:
        when = inv.shared_on.astimezone().strftime("%Y-%m-%d %H:%M") if inv.shared_on else "?"
        lines.append(f"  {inv.title} from {inv.invited_by_email} ({when}) id={inv.id}")
    return "\n".join(lines)


async def cmd_accept(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/accept <request id> cat=<category id> [due=<iso|+30m>] [repeat=...]"""
    words, opts = split_options(args)
    if len(words) != 1 or "cat" not in opts:
        return "Usage: /accept <request id> cat=<category id> [due=<iso|+30m>] [repeat=...]"
    try:
        due = parse_due(opts["due"]) if opts.get("due") else None
        repeat = parse_repeat(opts["repeat"]) if opts.get("repeat") else None
    except ValueError as e:
        return str(e)

    outcome = await state.collab.accept_invite(words[0], category_id=opts["cat"], due=due, repeat_type=repeat)
    if outcome is None or not outcome.ok:
        return _error_or(state.collab.state, "Something went wrong while accepting the request.")
    return "Share accepted and task created."


async def cmd_reject(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 1:
        return "Usage: /reject <request id>"
    outcome = await state.collab.reject_invite(args[0])
    if outcome is None or not outcome.ok:
        return _error_or(state.collab.state, "Failed to reject the request.")
    return "Request rejected."


async def cmd_users(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    term = " ".join(args)
    min_chars = int(getattr(state.settings, "search_min_chars", 3))
    if len(term.strip()) < min_chars:
        return f"Type at least {min_chars} characters to search."
    if emit:
        with contextlib.suppress(Exception):
            emit("Searching...")
    users = await state.user_search.search_now(term)
    if state.user_search.state.error_message:
        return state.user_search.state.error_message
    if not users:
        return "No users found. Try a different name or email."
    return "\n".join(f"  {u.full_name} <{u.email}> id={u.id}" for u in users)


async def cmd_share(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 2:
        return "Usage: /share <task id> <user id>"
    ok = await state.collab.share_task(args[0], args[1])
    return "Task shared." if ok else _error_or(state.collab.state, "Failed to share task.")


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("login", cmd_login, help_text="Log in: /login <email> <password>.")
registry.register("signup", cmd_signup, help_text='Create an account: /signup "<name>" <email> <password>.')
registry.register("verify", cmd_verify, help_text="Confirm signup: /verify <email> <code>.")
registry.register("reset", cmd_reset, help_text="Password reset: /reset send|confirm|set ...")
registry.register("logout", cmd_logout, help_text="Log out and forget the stored token.")
registry.register("whoami", cmd_whoami, help_text="Show the signed-in user.")
registry.register(
    "tasks",
    cmd_tasks,
    help_text="List tasks: /tasks [search] [cat=<id>] [due=today|overdue|upcoming|nodue].",
    aliases=["ls"],
)
registry.register("recent", cmd_recent, help_text="Show the server's home summary counts.")
registry.register("add", cmd_add, help_text="Create a task: /add <title> cat=<id> [due=] [repeat=].")
registry.register("done", cmd_done, help_text="Toggle completion: /done <task id>.")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <task id> title=.. due=.. repeat=.. cat=..")
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <task id>.", aliases=["rm"])
registry.register("categories", cmd_categories, help_text="List categories.", aliases=["cats"])
registry.register("category", cmd_category, help_text="Manage categories: /category add|edit|rm ...")
registry.register("requests", cmd_requests, help_text="List pending share requests.")
registry.register("accept", cmd_accept, help_text="Accept a request: /accept <id> cat=<id> [due=] [repeat=].")
registry.register("reject", cmd_reject, help_text="Reject a request: /reject <id>.")
registry.register("users", cmd_users, help_text="Search users to share with: /users <name or email>.")
registry.register("share", cmd_share, help_text="Share a task: /share <task id> <user id>.")
