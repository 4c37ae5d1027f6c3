from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import queue, threading, weakref

from loguru import logger

from .builder import IqBuilder, reply_to
from .codecs import Codecs
from .discovery import ServiceDiscovery
from .filters import all_of, iq_type, transid_is, version_query
from .flood import Clock, FloodGuard
from .message import Iq, IqType, Version, NAMESPACE
from .registry import ConnectionRegistry
from .transport import Connection


@dataclass
class VersionConfig:
    min_interval_ms: int = 100    # flood protection; 0 answers every query
    advertise: bool = True        # announce NAMESPACE through service discovery
    timeout_s: float = 5.0        # default wait for a reply in request()


class VersionManager:
    """
    Answers software-version queries on one connection and asks peers for
    theirs. Use get_instance_for() to share one manager per connection.

    Notes:
    - Nothing is answered until set_version() is called
    - Replies are limited by a FloodGuard, one per min_interval_ms
    - The connection is referenced weakly; the manager never keeps it alive
    """

    def __init__(self, connection: Connection, *,
                 config: Optional[VersionConfig] = None,
                 discovery: Optional[ServiceDiscovery] = None,
                 clock: Optional[Clock] = None):
        self.config = config or VersionConfig()
        self._connection = weakref.ref(connection)
        self._own_version: Optional[Version] = None
        self._lock = threading.Lock()
        self._guard = FloodGuard(self.config.min_interval_ms, clock=clock)

        if self.config.advertise:
            if discovery is None:
                discovery = ServiceDiscovery.get_instance_for(connection)
            discovery.add_feature(NAMESPACE)
        connection.add_listener(self._on_query, version_query)

    @classmethod
    def get_instance_for(cls, connection: Connection,
                         registry: Optional[ConnectionRegistry["VersionManager"]] = None) -> "VersionManager":
        return (registry if registry is not None else _instances).get_instance_for(connection)

    @property
    def connection(self) -> Optional[Connection]:
        return self._connection()

    def set_version(self, version: Optional[Version]) -> None:
        """Identity sent in replies from now on; None stops answering.

        Raises ValueError if the text cannot be sent as XML.
        """
        if version is not None:
            Codecs.for_payload(version).validate(version)
        with self._lock:
            self._own_version = version

    def get_version(self) -> Optional[Version]:
        with self._lock:
            return self._own_version

    @property
    def min_interval_ms(self) -> float:
        return self._guard.min_interval_ms

    @min_interval_ms.setter
    def min_interval_ms(self, value: float) -> None:
        self._guard.min_interval_ms = value

    def request(self, to: Optional[str], timeout: Optional[float] = None) -> Optional[Iq]:
        """
        Send a version GET to `to` and wait for the RESULT or ERROR carrying
        its transid. Returns None when nothing arrives within `timeout`.
        """
        connection = self._connection()
        if connection is None:
            raise RuntimeError("connection is gone")
        query = IqBuilder(connection.jid).get().to(to).build()
        replies: "queue.Queue[Iq]" = queue.Queue(maxsize=1)

        def _collect(reply: Iq) -> None:
            try:
                replies.put_nowait(reply)
            except queue.Full:
                pass  # duplicate reply, first one wins

        connection.add_listener(_collect, all_of(iq_type(IqType.RESULT, IqType.ERROR), transid_is(query.transid)))
        try:
            connection.send(query)
            wait_s = self.config.timeout_s if timeout is None else timeout
            try:
                return replies.get(timeout=wait_s)
            except queue.Empty:
                logger.debug(f"version query {query.transid} to {to} timed out after {wait_s}s")
                return None
        finally:
            connection.remove_listener(_collect)

    def query(self, to: Optional[str], timeout: Optional[float] = None) -> Optional[Version]:
        """Software version of `to`, or None on timeout or error reply."""
        reply = self.request(to, timeout)
        if reply is None:
            return None
        if reply.type == IqType.ERROR:
            logger.debug(f"version query to {to} refused: {reply.error}")
            return None
        return reply.payload

    def _on_query(self, iq: Iq) -> None:
        """Send a Version reply on request."""
        try:
            with self._lock:
                own = self._own_version
            if own is None:
                return
            if not self._guard.allow():
                logger.debug(f"version query {iq.transid} from {iq.sourceid} dropped by flood guard")
                return
            connection = self._connection()
            if connection is None:
                return
            # Version is frozen, so the reply holds a value that later set_version() calls can't touch
            connection.send(reply_to(iq, own))
        except Exception:
            logger.exception(f"failed to answer version query {iq.transid} from {iq.sourceid}")


_instances: ConnectionRegistry[VersionManager] = ConnectionRegistry(VersionManager)
