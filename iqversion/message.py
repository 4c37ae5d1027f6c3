from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
from enum import StrEnum
import platform

NAMESPACE = "jabber:iq:version"
ELEMENT   = "query"

# Allowed iq types
class IqType(StrEnum):
    GET    = "get"
    SET    = "set"
    RESULT = "result"
    ERROR  = "error"

@dataclass(frozen=True)
class Version:
    """
    Software identification payload. 'name' and 'version' are expected in a
    result but not enforced; a None field is simply left out on the wire.
    """
    name: Optional[str] = None       # natural-language name of the software
    version: Optional[str] = None    # specific version of the software
    os: Optional[str] = None         # operating system of the queried entity

    @staticmethod
    def local(name: str, version: str) -> "Version":
        """Identity for this process, 'os' taken from the host platform."""
        os_name = " ".join(p for p in (platform.system(), platform.release()) if p)
        return Version(name=name, version=version, os=os_name or None)

@dataclass(frozen=True)
class Iq:
    """
    Request-or-result envelope. A RESULT carries the transid of its GET,
    with sourceid/destid swapped.
    """
    type: IqType                     # get | set | result | error
    transid: str                     # correlation id, reused by the reply
    sourceid: Optional[str]          # sender address ("from")
    destid: Optional[str]            # recipient address ("to")
    payload: Optional[Version] = None
    error: Optional[str] = None      # stanza error condition, ERROR only
