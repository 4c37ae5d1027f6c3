
from __future__ import annotations
from typing import Optional

from .manager import VersionManager
from .message import Version
from .registry import ConnectionRegistry
from .transport import Connection

def enable_version(connection: Connection,
                   name: str,
                   version: str,
                   os: Optional[str] = None,
                   *,
                   min_interval_ms: Optional[int] = None,
                   registry: Optional[ConnectionRegistry[VersionManager]] = None) -> VersionManager:
    """
    One-liner setup:
      enable_version(conn, "MyClient", "1.2")
      enable_version(conn, "MyClient", "1.2", os="Plan 9", min_interval_ms=0)

    - os: defaults to the host platform (see Version.local)
    - min_interval_ms: overrides the manager's flood interval when given
    - registry: isolated registry instead of the process-wide one
    """
    manager = VersionManager.get_instance_for(connection, registry)
    if min_interval_ms is not None:
        manager.min_interval_ms = min_interval_ms
    own = Version(name, version, os) if os is not None else Version.local(name, version)
    manager.set_version(own)
    return manager

