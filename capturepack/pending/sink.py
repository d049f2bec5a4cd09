"""Resolution sink: the exactly-once boundary back to the original caller."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Protocol
import uuid

from capturepack.core.models import Outcome

logger = logging.getLogger(__name__)

ResolutionCallback = Callable[[Outcome], None]


class ResolutionSink(Protocol):
    def resolve(self, callback_token: str, outcome: Outcome) -> None:
        ...


class CallbackSink:
    """Routes outcomes to callables bound by callback token.

    Tokens created with ``once=True`` are dropped after their first outcome. A
    shared token (the resume token handed to ``restore``) stays bound so every
    restored request can deliver through it. Outcomes addressed to a token with
    no live callback are parked and flushed when that token is bound again.
    """

    def __init__(self) -> None:
        self._callbacks: dict[str, tuple[ResolutionCallback, bool]] = {}
        self._undelivered: dict[str, list[Outcome]] = {}
        self._lock = threading.Lock()

    def new_token(self, callback: ResolutionCallback, *, once: bool = True, prefix: str = "cb") -> str:
        token = f"{prefix}-{uuid.uuid4().hex}"
        self.bind(token, callback, once=once)
        return token

    def bind(self, token: str, callback: ResolutionCallback, *, once: bool = False) -> None:
        with self._lock:
            parked = self._undelivered.pop(token, [])
            if once and parked:
                # a one-shot callback is consumed by the first parked outcome
                if len(parked) > 1:
                    self._undelivered[token] = parked[1:]
                parked = parked[:1]
            else:
                self._callbacks[token] = (callback, once)
        for outcome in parked:
            callback(outcome)

    def unbind(self, token: str) -> None:
        with self._lock:
            self._callbacks.pop(token, None)

    def is_bound(self, token: str) -> bool:
        with self._lock:
            return token in self._callbacks

    def undelivered(self, token: str) -> tuple[Outcome, ...]:
        with self._lock:
            return tuple(self._undelivered.get(token, ()))

    def resolve(self, callback_token: str, outcome: Outcome) -> None:
        with self._lock:
            entry = self._callbacks.get(callback_token)
            if entry is not None and entry[1]:
                del self._callbacks[callback_token]
            if entry is None:
                self._undelivered.setdefault(callback_token, []).append(outcome)
        if entry is None:
            logger.warning("no live callback for token %s; outcome parked", callback_token)
            return
        entry[0](outcome)
