"""
Session context: the currently authenticated principal.

The context is pushed into by whatever observes the auth state (a verified
ID token on a request, a callable's auth data, a test). The facade only reads
it. Listeners can subscribe to auth-state transitions.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

from shared.types import Principal

logger = logging.getLogger(__name__)

AuthStateListener = Callable[[Optional[Principal]], None]


class SessionContext:
    def __init__(self, principal: Optional[Principal] = None):
        self._principal = principal
        self._listeners: List[AuthStateListener] = []
        self._lock = threading.Lock()

    def current_principal(self) -> Optional[Principal]:
        return self._principal

    def is_authenticated(self) -> bool:
        return self._principal is not None

    def set_principal(self, principal: Optional[Principal]) -> None:
        """Records an auth-state transition and notifies subscribers."""
        with self._lock:
            self._principal = principal
            listeners = list(self._listeners)
        logger.info(
            "Auth state changed: %s",
            principal.email or principal.uid if principal else "Not logged in",
        )
        for listener in listeners:
            listener(principal)

    def clear(self) -> None:
        self.set_principal(None)

    def subscribe(self, listener: AuthStateListener) -> Callable[[], None]:
        """
        Registers a listener for auth-state transitions.

        Returns a callable that removes the listener again.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe
