
from __future__ import annotations
from typing import Any, Dict, Iterator, Optional, Tuple, Protocol as TypingProtocol

import re
import xml.etree.ElementTree as ET

from .message import Version, NAMESPACE, ELEMENT

Event = Tuple[str, ET.Element]   # ("start" | "end", element)

# characters outside the XML 1.0 Char production
_NOT_XML_CHAR = re.compile("[^\x09\x0A\x0D\x20-\uD7FF\uE000-\uFFFD\U00010000-\U0010FFFF]")

class MalformedPayload(ValueError):
    """The document ended or broke before the payload's closing element."""

class Codec(TypingProtocol):
    element: str
    namespace: str
    payload_type: type
    def validate(self, payload: Any) -> None: ...
    def encode(self, payload: Any) -> ET.Element: ...
    def decode(self, events: Iterator[Event]) -> Any: ...

def local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]

def namespace_of(tag: str) -> str:
    return tag[1:].split("}", 1)[0] if tag.startswith("{") else ""

def serialize(element: ET.Element) -> bytes:
    """UTF-8 markup for `element`, with CR in text kept as &#13; so parsers do not fold it to LF."""
    # ElementTree already writes CR in attribute values as &#13;
    return ET.tostring(element, encoding="unicode").replace("\r", "&#13;").encode("utf-8")

def pull_events(data: bytes) -> Iterator[Event]:
    """Forward-only start/end scan over `data`; parser errors become MalformedPayload."""
    parser = ET.XMLPullParser(events=("start", "end"))
    parser.feed(data)
    try:
        yield from parser.read_events()
    except ET.ParseError as ex:
        raise MalformedPayload(str(ex)) from ex

class VersionCodec:
    element = ELEMENT
    namespace = NAMESPACE
    payload_type = Version
    fields = ("name", "version", "os")

    def validate(self, payload: Version) -> None:
        """Raise ValueError for text XML cannot carry."""
        for f in self.fields:
            value = getattr(payload, f)
            if value is not None and _NOT_XML_CHAR.search(value):
                raise ValueError(f"{f!r} contains a character not allowed in XML: {value!r}")

    def encode(self, payload: Version) -> ET.Element:
        self.validate(payload)
        # markup escaping is left to the ElementTree serializer
        query = ET.Element(self.element, xmlns=self.namespace)
        for f in self.fields:
            value = getattr(payload, f)
            if value is not None:
                ET.SubElement(query, f).text = value
        return query

    def decode(self, events: Iterator[Event]) -> Version:
        """
        Consume events following <query>'s start tag up to and including its
        end tag. Unknown children are skipped.
        """
        found: Dict[str, str] = {}
        depth = 0
        for event, el in events:
            if event == "start":
                depth += 1
                continue
            if depth == 0:
                return Version(**found)
            name = local_name(el.tag)
            if depth == 1 and name in self.fields:
                found[name] = el.text or ""
            depth -= 1
        raise MalformedPayload(f"input ended before </{self.element}>")

    def dumps(self, payload: Version) -> bytes:
        return serialize(self.encode(payload))

    def loads(self, data: bytes) -> Version:
        events = pull_events(data)
        for event, el in events:
            if (local_name(el.tag), namespace_of(el.tag)) != (self.element, self.namespace):
                raise MalformedPayload(f"expected <{self.element} xmlns='{self.namespace}'>, got {el.tag}")
            return self.decode(events)
        raise MalformedPayload("empty document")

class Codecs:
    _registry: Dict[Tuple[str, str], Codec] = {}

    @classmethod
    def register(cls, codec: Codec) -> None:
        cls._registry[(codec.element, codec.namespace)] = codec

    @classmethod
    def get(cls, element: str, namespace: str) -> Optional[Codec]:
        return cls._registry.get((element, namespace))

    @classmethod
    def for_payload(cls, payload: Any) -> Codec:
        for codec in cls._registry.values():
            if isinstance(payload, codec.payload_type):
                return codec
        raise ValueError(f"No codec for payload type: {type(payload).__name__}")

Codecs.register(VersionCodec())
