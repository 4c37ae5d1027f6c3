from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Set
import threading, time

from .registry import ConnectionRegistry
from .transport import Connection

@dataclass
class ServiceDiscovery:
    # namespaces we advertise to peers
    features: Set[str] = field(default_factory=set)
    _rev: int = 0  # bumped on every change to the advertisement
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @classmethod
    def get_instance_for(cls, connection: Connection,
                         registry: Optional[ConnectionRegistry["ServiceDiscovery"]] = None) -> "ServiceDiscovery":
        return (registry if registry is not None else _instances).get_instance_for(connection)

    def add_feature(self, *namespaces: str) -> None:
        with self._lock:
            self.features.update(namespaces); self._rev += 1

    def remove_feature(self, *namespaces: str) -> None:
        with self._lock:
            for ns in namespaces: self.features.discard(ns)
            self._rev += 1

    def includes_feature(self, namespace: str) -> bool:
        with self._lock:
            return namespace in self.features

    def advertise(self) -> dict:
        with self._lock:
            return {
                "features": sorted(self.features),
                "rev": self._rev,
                "ts": time.time(),
            }

_instances: ConnectionRegistry[ServiceDiscovery] = ConnectionRegistry(lambda connection: ServiceDiscovery())
