from __future__ import annotations
from collections import deque
from typing import Deque, Optional, Tuple

from ..transport import Connection

class LoopbackConnection(Connection):
    """In-process transport.

    Frames sent on one end are handed, serialized, to the peer's
    receive_frame on the sender's thread. Without a peer, frames are only
    recorded in `outbox`.
    """

    def __init__(self, jid: str, *, outbox_size: int = 256):
        super().__init__()
        self._jid = jid
        self.peer: Optional[LoopbackConnection] = None
        self.outbox: Deque[bytes] = deque(maxlen=outbox_size)

    @classmethod
    def pair(cls, a: str, b: str) -> Tuple["LoopbackConnection", "LoopbackConnection"]:
        left, right = cls(a), cls(b)
        left.peer, right.peer = right, left
        return left, right

    @property
    def jid(self) -> str:
        return self._jid

    def send_frame(self, frame: bytes) -> None:
        self.outbox.append(frame)
        peer = self.peer
        if peer is not None and not peer.closed:
            peer.receive_frame(frame)

    def close(self) -> None:
        super().close()
        self.peer = None
