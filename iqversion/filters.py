"""Dispatch predicates over inbound Iq envelopes."""

from __future__ import annotations
from typing import Callable

from .message import Iq, IqType, Version

Predicate = Callable[[Iq], bool]

def iq_type(*types: IqType) -> Predicate:
    wanted = frozenset(types)
    return lambda iq: iq.type in wanted

def payload_of(cls: type) -> Predicate:
    return lambda iq: isinstance(iq.payload, cls)

def transid_is(transid: str) -> Predicate:
    return lambda iq: iq.transid == transid

def all_of(*preds: Predicate) -> Predicate:
    return lambda iq: all(p(iq) for p in preds)

# Inbound iq the version auto-responder answers
version_query = all_of(iq_type(IqType.GET), payload_of(Version))
