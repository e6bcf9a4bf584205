"""
Session store — session-scoped key/value storage.

All methods return Result for explicit error handling.
Values must be JSON-compatible (dicts, lists, str, numbers, bools, None).
"""

from __future__ import annotations

import asyncio
import copy
from dataclasses import dataclass
from typing import Any, Protocol
from collections.abc import Awaitable, Callable

from kungfu import Result, Ok, Error


# ═══════════════════════════════════════════════════════════════════════════════
# Store Error
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class StoreError:
    """Storage operation error."""

    message: str
    cause: Exception | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Store Protocol
# ═══════════════════════════════════════════════════════════════════════════════


class SessionStore(Protocol):
    """
    Session store protocol.

    Example — host session adapter:

        class HostSessionStore:
            async def get(self, session_id: str, key: str) -> Result[Any | None, StoreError]:
                try:
                    return Ok(self.sessions[session_id].get(key))
                except Exception as e:
                    return Error(StoreError("Failed to get", e))

            # ... other methods
    """

    async def get(self, session_id: str, key: str) -> Result[Any | None, StoreError]:
        """Get value. Returns Ok(None) if not set."""
        ...

    async def set(self, session_id: str, key: str, value: Any) -> Result[None, StoreError]:
        """Set value, replacing any existing one."""
        ...

    async def delete(self, session_id: str, key: str) -> Result[bool, StoreError]:
        """Delete value. Returns Ok(True) if existed."""
        ...

    async def clear(self, session_id: str) -> Result[int, StoreError]:
        """Delete every key of a session. Returns Ok(count deleted)."""
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Function-based Store Builder
# ═══════════════════════════════════════════════════════════════════════════════

type GetFn = Callable[[str, str], Awaitable[Result[Any | None, StoreError]]]
type SetFn = Callable[[str, str, Any], Awaitable[Result[None, StoreError]]]
type DeleteFn = Callable[[str, str], Awaitable[Result[bool, StoreError]]]
type ClearFn = Callable[[str], Awaitable[Result[int, StoreError]]]


@dataclass(frozen=True)
class FunctionalStore:
    """
    Store built from functions.

    Example:
        store = store_from(
            get=sessions.get_value,
            set=sessions.set_value,
            delete=sessions.unset_value,
            clear=sessions.destroy,
        )
    """

    _get: GetFn
    _set: SetFn
    _delete: DeleteFn
    _clear: ClearFn

    async def get(self, session_id: str, key: str) -> Result[Any | None, StoreError]:
        return await self._get(session_id, key)

    async def set(self, session_id: str, key: str, value: Any) -> Result[None, StoreError]:
        return await self._set(session_id, key, value)

    async def delete(self, session_id: str, key: str) -> Result[bool, StoreError]:
        return await self._delete(session_id, key)

    async def clear(self, session_id: str) -> Result[int, StoreError]:
        return await self._clear(session_id)


def store_from(
    get: GetFn,
    set: SetFn,
    delete: DeleteFn,
    clear: ClearFn,
) -> FunctionalStore:
    """Create SessionStore from functions."""
    return FunctionalStore(_get=get, _set=set, _delete=delete, _clear=clear)


# ═══════════════════════════════════════════════════════════════════════════════
# Memory Store — For Testing
# ═══════════════════════════════════════════════════════════════════════════════


class MemorySessionStore:
    """
    In-memory session store.

    Note: Single-process only. Values are deep-copied in and out so callers
    cannot mutate stored state by accident.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    async def get(self, session_id: str, key: str) -> Result[Any | None, StoreError]:
        async with self._lock:
            value = self._sessions.get(session_id, {}).get(key)
            return Ok(copy.deepcopy(value))

    async def set(self, session_id: str, key: str, value: Any) -> Result[None, StoreError]:
        async with self._lock:
            self._sessions.setdefault(session_id, {})[key] = copy.deepcopy(value)
            return Ok(None)

    async def delete(self, session_id: str, key: str) -> Result[bool, StoreError]:
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None or key not in session:
                return Ok(False)
            del session[key]
            return Ok(True)

    async def clear(self, session_id: str) -> Result[int, StoreError]:
        async with self._lock:
            return Ok(len(self._sessions.pop(session_id, {})))


__all__ = (
    "StoreError",
    "SessionStore",
    "FunctionalStore",
    "store_from",
    "MemorySessionStore",
)
