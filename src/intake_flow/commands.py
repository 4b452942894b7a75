"""Control-command recognition.

Any message whose first character is ``/`` is a command, never an answer.
Recognised commands map to a :class:`CommandName`; anything else starting
with ``/`` parses as ``UNKNOWN`` so the dispatcher can say so instead of
treating it as an answer to the active question.
"""

import re
from enum import Enum

from pydantic import BaseModel

# /name, optional @botname suffix, optional argument
_COMMAND_RE = re.compile(r"^/([A-Za-z0-9_]+)(?:@[A-Za-z0-9_]+)?(?:\s+(.*))?$", re.DOTALL)


class CommandName(str, Enum):
    LIST_JOBS = "jobs"
    SHOW_STATUS = "status"
    LIST_APPLICATIONS = "applications"
    UPLOAD_NOW = "upload"
    RESET = "reset"
    START = "start"
    APPLY = "apply"
    HELP = "help"
    UNKNOWN = "unknown"


_ALIASES: dict[str, CommandName] = {
    "jobs": CommandName.LIST_JOBS,
    "status": CommandName.SHOW_STATUS,
    "applications": CommandName.LIST_APPLICATIONS,
    "upload": CommandName.UPLOAD_NOW,
    "reset": CommandName.RESET,
    "restart": CommandName.RESET,
    "start": CommandName.START,
    "apply": CommandName.APPLY,
    "help": CommandName.HELP,
}


class Command(BaseModel):
    name: CommandName
    argument: str | None = None
    raw: str


def is_command(text: str) -> bool:
    return (text or "").lstrip().startswith("/")


def parse_command(text: str) -> Command | None:
    """Parse ``text`` as a command, or return None if it is a plain answer."""
    stripped = (text or "").strip()
    if not stripped.startswith("/"):
        return None

    match = _COMMAND_RE.match(stripped)
    if match is None:
        return Command(name=CommandName.UNKNOWN, raw=stripped)

    name = _ALIASES.get(match.group(1).lower(), CommandName.UNKNOWN)
    argument = (match.group(2) or "").strip() or None
    return Command(name=name, argument=argument, raw=stripped)
