from __future__ import annotations
from typing import Iterator, Optional
import xml.etree.ElementTree as ET

from .message import Iq, IqType, Version
from .codecs import Codecs, Event, MalformedPayload, local_name, namespace_of, pull_events, serialize

STANZAS_NS = "urn:ietf:params:xml:ns:xmpp-stanzas"

def pack_frame(iq: Iq) -> bytes:
    attrs = {"type": str(iq.type), "id": iq.transid}
    if iq.sourceid is not None:
        attrs["from"] = iq.sourceid
    if iq.destid is not None:
        attrs["to"] = iq.destid
    root = ET.Element("iq", attrs)
    if iq.payload is not None:
        root.append(Codecs.for_payload(iq.payload).encode(iq.payload))
    if iq.error is not None:
        err = ET.SubElement(root, "error", type="cancel")
        ET.SubElement(err, iq.error, xmlns=STANZAS_NS)
    return serialize(root)

def unpack_frame(frame: bytes) -> Iq:
    events = pull_events(frame)
    root = _first_start(events)
    if local_name(root.tag) != "iq":
        raise MalformedPayload(f"expected <iq>, got <{local_name(root.tag)}>")
    try:
        iq_type = IqType(root.get("type", ""))
    except ValueError:
        raise MalformedPayload(f"bad iq type: {root.get('type')!r}") from None
    transid = root.get("id")
    if not transid:
        raise MalformedPayload("iq without id")

    payload: Optional[Version] = None
    error: Optional[str] = None
    in_error = False
    depth = 0
    for event, el in events:
        if event == "start":
            name, ns = local_name(el.tag), namespace_of(el.tag)
            if depth == 0:
                codec = Codecs.get(name, ns) if payload is None else None
                if codec is not None:
                    # decode consumes through the payload's end tag
                    payload = codec.decode(events)
                    continue
                in_error = name == "error"
            elif depth == 1 and in_error and ns == STANZAS_NS and name != "text" and error is None:
                error = name
            depth += 1
            continue
        if depth == 0:
            if iq_type == IqType.ERROR and error is None:
                error = "undefined-condition"
            return Iq(type=iq_type, transid=transid,
                      sourceid=root.get("from"), destid=root.get("to"),
                      payload=payload, error=error)
        depth -= 1
    raise MalformedPayload("input ended before </iq>")

def _first_start(events: Iterator[Event]) -> ET.Element:
    for event, el in events:
        if event == "start":
            return el
    raise MalformedPayload("empty frame")
