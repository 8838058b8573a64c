"""User directory used to resolve display-name mentions.

The directory is an immutable value: build_directory() makes a fresh one
from a users.list member array, and is_stale() decides when the owner must
rebuild it. Neither reads the clock; callers pass ``now`` in.

Known limitation: a mention token must start with an ASCII letter and
contain only letters and spaces, so names with digits, symbols or
non-Latin characters are never resolved.
"""

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

MENTION_RE = re.compile(r"(?<![\w@])@([A-Za-z][A-Za-z \t]*[A-Za-z]|[A-Za-z])")
_WORD_RE = re.compile(r"[A-Za-z]+")
# A handle continues with a word character, or "." / "-" before one
_HANDLE_CONTINUATION = re.compile(r"\w|[.-]\w")


def _normalize(name: str) -> str:
    return " ".join(name.split()).lower()


@dataclass(frozen=True)
class UserDirectory:
    """Lowercased real name, display name and handle -> user record."""
    entries: Mapping[str, dict] = field(default_factory=lambda: MappingProxyType({}))
    expires_at: float = 0.0

    def lookup(self, name: str):
        return self.entries.get(_normalize(name))

    def __len__(self) -> int:
        return len(self.entries)


EMPTY_DIRECTORY = UserDirectory()


def is_stale(directory: UserDirectory, now: float) -> bool:
    """A directory is stale once expired or when it holds no entries."""
    return not directory.entries or now >= directory.expires_at


def build_directory(members: Iterable[dict], now: float, ttl: float) -> UserDirectory:
    """Index non-deleted members by real name, display name and handle."""
    entries: dict[str, dict] = {}
    for user in members:
        if user.get("deleted"):
            continue
        real_name = _normalize(user.get("real_name") or "")
        display_name = _normalize((user.get("profile") or {}).get("display_name") or "")
        handle = _normalize(user.get("name") or "")
        if real_name:
            entries[real_name] = user
        if display_name and display_name != real_name:
            entries[display_name] = user
        if handle:
            entries[handle] = user
    return UserDirectory(entries=MappingProxyType(entries), expires_at=now + ttl)


def find_mentions(text: str) -> list[str]:
    """Return the raw ``@Name`` tokens in text."""
    return [match.group(0) for match in MENTION_RE.finditer(text)]


def resolve_mentions(text: str, directory: UserDirectory) -> str:
    """Rewrite ``@Display Name`` tokens to ``@handle``.

    A token greedily spans following words (``@Jane Doe for review``), so the
    longest run of leading words that names a known user wins and the rest is
    kept as plain text. Unknown tokens are left as they are, and so is a
    token that runs on into a handle (``@jane.d``). Sentence punctuation
    after a name (``@Jane Doe.``) does not count as part of a handle.
    """
    def _replace(match: re.Match) -> str:
        if _HANDLE_CONTINUATION.match(text, match.end()):
            return match.group(0)
        token = match.group(1)
        words = list(_WORD_RE.finditer(token))
        for count in range(len(words), 0, -1):
            end = words[count - 1].end()
            user = directory.lookup(token[:end])
            if user and user.get("name"):
                return f"@{user['name']}{token[end:]}"
        return match.group(0)

    return MENTION_RE.sub(_replace, text)
