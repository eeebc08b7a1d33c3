"""Explicit registry of scheduled services and their runtime addresses.

Replaces building service names by string convention at the call site: a
peer lookup goes through ``(role, ordinal)`` and fails loudly when the
service is unknown or has no address yet.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from beaconforge.models.nodes import NodeDescriptor, NodeRole


class PeerResolutionError(LookupError):
    """Raised when a referenced service is not scheduled or has no address."""


class ServiceHandle(BaseModel):
    """A scheduled service and the address it was given."""

    model_config = ConfigDict(frozen=True)

    name: str
    role: NodeRole
    ordinal: int
    ip_address: str = ""


class ServiceRegistry:
    """Maps ``(role, ordinal)`` to the handle of a scheduled service."""

    def __init__(self) -> None:
        self._handles: dict[tuple[NodeRole, int], ServiceHandle] = {}

    def register(
        self, role: NodeRole, ordinal: int, name: str, ip_address: str = ""
    ) -> ServiceHandle:
        """Record (or update, once its address is known) a service."""
        handle = ServiceHandle(
            name=name, role=NodeRole(role), ordinal=ordinal, ip_address=ip_address
        )
        self._handles[(handle.role, ordinal)] = handle
        return handle

    def register_node(self, node: NodeDescriptor, ip_address: str = "") -> ServiceHandle:
        return self.register(node.role, node.ordinal or 0, node.service_name, ip_address)

    def lookup(self, role: NodeRole, ordinal: int) -> ServiceHandle | None:
        return self._handles.get((NodeRole(role), ordinal))

    def resolve(self, role: NodeRole, ordinal: int) -> ServiceHandle:
        """Return the handle, which is guaranteed to carry an address."""
        handle = self.lookup(role, ordinal)
        if handle is None:
            raise PeerResolutionError(
                f"No {NodeRole(role).value} service scheduled at ordinal {ordinal}"
            )
        if not handle.ip_address:
            raise PeerResolutionError(
                f"Service {handle.name} has no runtime address yet"
            )
        return handle

    def by_name(self, name: str) -> ServiceHandle:
        for handle in self._handles.values():
            if handle.name == name:
                return handle
        raise PeerResolutionError(f"No service named {name}")

    def handles(self, role: NodeRole | None = None) -> list[ServiceHandle]:
        items = sorted(self._handles.values(), key=lambda h: (h.role.value, h.ordinal))
        if role is None:
            return items
        return [h for h in items if h.role == role]
