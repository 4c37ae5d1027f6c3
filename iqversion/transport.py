from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple
import threading

from loguru import logger

from .codecs import MalformedPayload
from .filters import Predicate
from .message import Iq
from .wire import pack_frame, unpack_frame

Listener = Callable[[Iq], None]
CloseListener = Callable[["Connection"], None]

class Connection(ABC):
    """
    Contract the version core needs from a connection. Subclasses move
    frames; listener bookkeeping and inbound dispatch live here.

    Connections hash by identity so they can key a weak registry.
    """

    def __init__(self) -> None:
        self._listeners: List[Tuple[Listener, Optional[Predicate]]] = []
        self._close_listeners: List[CloseListener] = []
        self._lock = threading.Lock()
        self.closed = False

    @property
    @abstractmethod
    def jid(self) -> str:
        """Local address of this connection."""
        raise NotImplementedError

    @abstractmethod
    def send_frame(self, frame: bytes) -> None:
        """Send one serialized stanza."""
        raise NotImplementedError

    def send(self, iq: Iq) -> None:
        if self.closed:
            raise ConnectionError(f"connection {self.jid} is closed")
        self.send_frame(pack_frame(iq))

    def add_listener(self, cb: Listener, predicate: Optional[Predicate] = None) -> None:
        """Invoke `cb` for every inbound Iq matching `predicate` (all when None).

        Ignored once the connection is closed; nothing is dispatched after close().
        """
        with self._lock:
            if self.closed:
                return
            self._listeners.append((cb, predicate))

    def remove_listener(self, cb: Listener) -> None:
        with self._lock:
            self._listeners = [(c, p) for c, p in self._listeners if c != cb]

    def add_close_listener(self, cb: CloseListener) -> None:
        with self._lock:
            if not self.closed:
                self._close_listeners.append(cb)
                return
        cb(self)

    def close(self) -> None:
        """Tear down: notify close listeners once, then forget every listener."""
        with self._lock:
            if self.closed:
                return
            self.closed = True
            close_listeners, self._close_listeners = self._close_listeners, []
            self._listeners = []
        for cb in close_listeners:
            try:
                cb(self)
            except Exception:
                logger.exception(f"close listener failed on {self.jid}")

    def receive_frame(self, frame: bytes) -> None:
        """Entry point for transports: decode and dispatch, dropping what can't be read."""
        try:
            iq = unpack_frame(frame)
        except MalformedPayload as ex:
            logger.warning(f"{self.jid}: dropping malformed frame ({ex})")
            return
        self.dispatch(iq)

    def dispatch(self, iq: Iq) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for cb, predicate in listeners:
            try:
                if predicate is None or predicate(iq):
                    cb(iq)
            except Exception:
                logger.exception(f"{self.jid}: listener failed on iq {iq.transid}")
