"""
Error taxonomy shared by the services and the API layer
"""

from typing import Optional


class NetwatchError(Exception):
    """Base class for errors raised by the netwatch services"""


class NotFoundError(NetwatchError):
    """A referenced router profile or device does not exist"""

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} with id {entity_id} not found")


class ConflictError(NetwatchError):
    """A router profile cannot be deleted while devices reference it"""

    def __init__(self, router_profile_id: int, device_count: int):
        self.router_profile_id = router_profile_id
        self.device_count = device_count
        super().__init__(
            f"Router profile {router_profile_id} still has {device_count} "
            f"netwatch device(s) and cannot be deleted"
        )


class ValidationError(NetwatchError):
    """Malformed input reached the services"""


class RouterConnectionError(NetwatchError):
    """Fetching from a router failed.

    ``kind`` is one of ``unreachable``, ``auth_failed``, ``timeout`` or
    ``protocol`` so callers can render a specific message.
    """

    UNREACHABLE = "unreachable"
    AUTH_FAILED = "auth_failed"
    TIMEOUT = "timeout"
    PROTOCOL = "protocol"

    def __init__(self, kind: str, message: str, address: Optional[str] = None,
                 router_identity: Optional[str] = None):
        self.kind = kind
        self.message = message
        self.address = address
        self.router_identity = router_identity
        super().__init__(f"{message} ({address})" if address else message)

    @property
    def retryable(self) -> bool:
        return self.kind in (self.UNREACHABLE, self.TIMEOUT)
