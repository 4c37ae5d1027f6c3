"""
Public API:
- VersionManager: answers jabber:iq:version queries on a connection and asks peers for theirs
- enable_version: one-liner that configures the manager for a connection
- Version, Iq, IqType: payload and envelope types
- IqBuilder: fluent builder that always produces a valid Iq
- VersionCodec, MalformedPayload: payload <-> <query xmlns="jabber:iq:version"/>
- pack_frame, unpack_frame: whole <iq/> stanzas as bytes
- Connection: abstract class transports must implement
- ConnectionRegistry: one instance per live connection
- ServiceDiscovery: per-connection feature advertisement
- FloodGuard: minimum interval between replies
"""

# Core runtime
from .manager import VersionManager, VersionConfig
from .factory import enable_version

# Builder & wire types
from .builder import IqBuilder
from .message import (
    Iq,
    IqType,
    Version,
    NAMESPACE,
)

# Codecs & framing
from .codecs import VersionCodec, MalformedPayload
from .wire import pack_frame, unpack_frame

# Transport contract
from .transport import Connection

# Registry, discovery, flood guard
from .registry import ConnectionRegistry
from .discovery import ServiceDiscovery
from .flood import FloodGuard

__all__ = [
    "VersionManager",
    "VersionConfig",
    "enable_version",
    "IqBuilder",
    "Iq",
    "IqType",
    "Version",
    "NAMESPACE",
    "VersionCodec",
    "MalformedPayload",
    "pack_frame",
    "unpack_frame",
    "Connection",
    "ConnectionRegistry",
    "ServiceDiscovery",
    "FloodGuard",
]

__version__ = "0.1.0"
