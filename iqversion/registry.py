from __future__ import annotations
from typing import Callable, Generic, Optional, TypeVar
import threading, weakref

from loguru import logger

from .transport import Connection

T = TypeVar("T")

class ConnectionRegistry(Generic[T]):
    """
    At most one instance per live connection, built by `factory` on first
    lookup. Connections are held weakly; an entry also goes away as soon
    as its connection is closed.
    """

    def __init__(self, factory: Callable[[Connection], T]):
        self._factory = factory
        self._instances: "weakref.WeakKeyDictionary[Connection, T]" = weakref.WeakKeyDictionary()
        self._lock = threading.Lock()

    def get_instance_for(self, connection: Connection) -> T:
        with self._lock:
            instance = self._instances.get(connection)
            if instance is not None:
                return instance
            instance = self._factory(connection)
            self._instances[connection] = instance
        # outside the lock: a closed connection calls back immediately
        connection.add_close_listener(self._discard)
        logger.debug(f"registry: created {type(instance).__name__} for {connection.jid}")
        return instance

    def get(self, connection: Connection) -> Optional[T]:
        with self._lock:
            return self._instances.get(connection)

    def _discard(self, connection: Connection) -> None:
        with self._lock:
            instance = self._instances.pop(connection, None)
        if instance is not None:
            logger.debug(f"registry: discarded {type(instance).__name__} for {connection.jid}")

    def __contains__(self, connection: object) -> bool:
        with self._lock:
            return connection in self._instances

    def __len__(self) -> int:
        with self._lock:
            return len(self._instances)
