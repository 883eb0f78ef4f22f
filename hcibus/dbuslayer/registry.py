"""
Object-path registry.

Owns the association between bus object paths and their
:class:`~hcibus.core.state.DeviceContext`.  A path is registered on the live
bus connection if and only if a context for it exists here.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

from hcibus.bt_ref.constants import INVALID_DEV_ID
from hcibus.core.errors import BusUnavailableError
from hcibus.core.log import print_and_log, LOG__DEBUG
from hcibus.core.state import AdapterState, DeviceContext, PathRole
from hcibus.dbuslayer.message import BusConnection, BusMessage

# Per-path message handler: (context, request, connection it arrived on) -> handled
PathHandler = Callable[[DeviceContext, BusMessage, BusConnection], bool]


class ObjectPathRegistry:
    """Explicit map from object path to path role / device context."""

    def __init__(self, state: AdapterState):
        self._state = state
        self._contexts: Dict[str, DeviceContext] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    def register(
        self,
        path: str,
        role: PathRole,
        dev_id: int = INVALID_DEV_ID,
        handler: Optional[PathHandler] = None,
        fallback: bool = False,
    ) -> bool:
        """Bind *path* on the current connection.

        Parameters
        ----------
        path : str
            Object path to export
        role : PathRole
            What the path stands for
        dev_id : int, optional
            HCI device id (only meaningful for ``PathRole.DEVICE``)
        handler : callable
            Receives ``(context, message, connection)`` for every message
            routed to the path
        fallback : bool, optional
            Also answer for every not-yet-registered child of *path*

        Returns
        -------
        bool
            True on success; the context is discarded on failure
        """
        print_and_log(f"[*] register path:{path}, fallback:{int(fallback)}", LOG__DEBUG)

        conn = self._state.connection
        if conn is None:
            print_and_log(f"[-] No bus connection, can't register {path}", LOG__DEBUG)
            return False
        if path in self._contexts:
            print_and_log(f"[-] {path} is already registered", LOG__DEBUG)
            return False
        if role is not PathRole.DEVICE:
            dev_id = INVALID_DEV_ID

        context = DeviceContext(path=path, role=role, dev_id=dev_id)

        def on_message(message: BusMessage) -> bool:
            if handler is None:
                return False
            return handler(context, message, conn)

        try:
            conn.register_object_path(path, on_message, fallback=fallback)
        except BusUnavailableError as exc:
            kind = "fallback" if fallback else "object"
            print_and_log(f"[-] Failed to register {path} {kind}: {exc}", LOG__DEBUG)
            return False

        self._contexts[path] = context
        return True

    def unregister(self, path: str) -> bool:
        """Release the context of *path* and remove it from the connection.

        The context is dropped even when the transport refuses the removal.
        """
        print_and_log(f"[*] unregister path:{path}", LOG__DEBUG)

        context = self._contexts.pop(path, None)
        if context is None:
            print_and_log(f"[-] {path} is not registered", LOG__DEBUG)
            return False

        conn = self._state.connection
        if conn is None:
            print_and_log(f"[-] No bus connection while unregistering {path}", LOG__DEBUG)
            return False
        try:
            conn.unregister_object_path(path)
        except BusUnavailableError as exc:
            print_and_log(f"[-] Failed to unregister {path} object: {exc}", LOG__DEBUG)
            return False
        return True

    def clear(self) -> None:
        """Forget every path without touching the (dead) connection."""
        self._contexts.clear()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    def lookup(self, path: str) -> Optional[DeviceContext]:
        """Context registered exactly at *path*."""
        return self._contexts.get(path)

    def device_ids(self) -> List[int]:
        """Ids of every registered device, ascending."""
        return sorted(c.dev_id for c in self._contexts.values() if c.is_device)

    def children(self, prefix: str) -> List[str]:
        """Registered paths strictly below *prefix*."""
        base = prefix.rstrip("/") + "/"
        return sorted(p for p in self._contexts if p.startswith(base))

    def __contains__(self, path: str) -> bool:
        return path in self._contexts

    def __len__(self) -> int:
        return len(self._contexts)
