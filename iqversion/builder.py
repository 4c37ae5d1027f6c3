from __future__ import annotations
import uuid
from typing import Optional, Dict, Any

from .message import Iq, IqType, Version

class IqBuilder:
    """
    Builder that always produces a valid Iq. It also enforces the reply rules:
    - RESULT/ERROR must reuse the transid of the query they answer
    - ERROR must name a condition
    """
    def __init__(self, sourceid: Optional[str]):
        self._env: Dict[str, Any] = {
            "type":     IqType.GET,
            "transid":  _uuid(),
            "sourceid": sourceid,
            "destid":   None,
            "payload":  Version(),
            "error":    None,
        }

    def get(self, payload: Optional[Version] = None):
        self._env["type"]    = IqType.GET
        self._env["payload"] = payload if payload is not None else Version()
        return self

    def result(self, transid: str, payload: Optional[Version]):
        self._env["type"]    = IqType.RESULT
        self._env["transid"] = transid
        self._env["payload"] = payload
        return self

    def error(self, transid: str, condition: str):
        self._env["type"]    = IqType.ERROR
        self._env["transid"] = transid
        self._env["payload"] = None
        self._env["error"]   = condition
        return self

    def to(self, destid: Optional[str]):
        self._env["destid"] = destid
        return self

    def build(self) -> Iq:
        t = self._env["type"]
        if t in (IqType.RESULT, IqType.ERROR) and not self._env["transid"]:
            raise ValueError("RESULT/ERROR require the transid of the query they answer.")
        if t == IqType.ERROR and not self._env["error"]:
            raise ValueError("ERROR requires a condition.")
        return Iq(**self._env)

def reply_to(query: Iq, payload: Optional[Version]) -> Iq:
    """RESULT for `query`: same transid, from/to swapped."""
    return (IqBuilder(query.destid)
            .result(query.transid, payload)
            .to(query.sourceid)
            .build())

def _uuid() -> str:
    return uuid.uuid4().hex
