"""
Snapshot sources for router netwatch data

A snapshot source answers one question: which hosts does this router watch
right now, and what state are they in. RouterOSRestSource reads it from the
RouterOS v7 REST API; StaticSnapshotSource serves fixed snapshots for tests
and local setups.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Union

import aiohttp
import structlog
from pydantic import ValidationError as PydanticValidationError

from netwatch_monitor.core.exceptions import RouterConnectionError
from netwatch_monitor.database.connection import utcnow
from netwatch_monitor.schemas.netwatch import SnapshotDevice
from netwatch_monitor.schemas.router_profile import RouterConnection

logger = structlog.get_logger(__name__)

ROUTEROS_TIME_FORMATS = (
    "%Y-%m-%d %H:%M:%S",   # RouterOS 7.10+
    "%b/%d/%Y %H:%M:%S",   # RouterOS 6.x / early 7.x, e.g. jan/02/2024 10:00:00
)


class SnapshotSource(ABC):
    """Produces point-in-time netwatch snapshots for a router connection"""

    @abstractmethod
    async def fetch_snapshot(self, connection: RouterConnection) -> List[SnapshotDevice]:
        """Return the hosts the router currently monitors"""

    @abstractmethod
    async def fetch_identity(self, connection: RouterConnection) -> str:
        """Return the router's identity string"""


def parse_routeros_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    for fmt in ROUTEROS_TIME_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def parse_netwatch_entry(entry: Mapping, fetched_at: datetime) -> Optional[SnapshotDevice]:
    """Map one /tool/netwatch record to a SnapshotDevice, or None to skip it"""
    if str(entry.get("disabled", "false")).lower() == "true":
        return None

    since = parse_routeros_time(entry.get("since"))
    if since is None:
        logger.debug("Netwatch entry without usable since", native_id=entry.get(".id"))
        since = fetched_at

    try:
        return SnapshotDevice(
            native_id=entry.get(".id") or "",
            address=entry.get("host") or "",
            label=entry.get("comment"),
            # RouterOS also reports "unknown" before the first probe completes
            status="up" if entry.get("status") == "up" else "down",
            since=since,
            timeout=entry.get("timeout"),
            interval=entry.get("interval")
        )
    except PydanticValidationError as e:
        logger.warning("Skipping malformed netwatch entry", entry=dict(entry), error=str(e))
        return None


class RouterOSRestSource(SnapshotSource):
    """Reads netwatch state over the RouterOS REST API (``/rest``)"""

    def __init__(self, use_ssl: bool = True, port: Optional[int] = None,
                 verify_ssl: bool = False, timeout: float = 10.0):
        self.use_ssl = use_ssl
        self.port = port
        self.verify_ssl = verify_ssl
        self.timeout = timeout

    def base_url(self, address: str) -> str:
        scheme = "https" if self.use_ssl else "http"
        if self.port and ":" not in address:
            address = f"{address}:{self.port}"
        return f"{scheme}://{address}/rest"

    async def _get_json(self, connection: RouterConnection, path: str) -> Union[Dict, List]:
        url = f"{self.base_url(connection.address)}{path}"
        auth = aiohttp.BasicAuth(connection.username, connection.password)
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url, auth=auth, ssl=self.verify_ssl) as response:
                    if response.status in (401, 403):
                        raise RouterConnectionError(
                            RouterConnectionError.AUTH_FAILED,
                            "Router rejected the username or password",
                            address=connection.address
                        )
                    if response.status >= 400:
                        body = await response.text()
                        raise RouterConnectionError(
                            RouterConnectionError.PROTOCOL,
                            f"Router answered HTTP {response.status}: {body[:200]}",
                            address=connection.address
                        )
                    return await response.json(content_type=None)
        except RouterConnectionError:
            raise
        except asyncio.TimeoutError:
            raise RouterConnectionError(
                RouterConnectionError.TIMEOUT,
                f"Router did not answer within {self.timeout:g}s",
                address=connection.address
            )
        except aiohttp.ClientConnectorError as e:
            raise RouterConnectionError(
                RouterConnectionError.UNREACHABLE,
                f"Router is unreachable: {e}",
                address=connection.address
            ) from e
        except (aiohttp.ClientError, ValueError) as e:
            raise RouterConnectionError(
                RouterConnectionError.PROTOCOL,
                f"Unexpected response from router: {e}",
                address=connection.address
            ) from e

    async def fetch_snapshot(self, connection: RouterConnection) -> List[SnapshotDevice]:
        payload = await self._get_json(connection, "/tool/netwatch")
        if not isinstance(payload, list):
            raise RouterConnectionError(
                RouterConnectionError.PROTOCOL,
                "Netwatch listing is not a list",
                address=connection.address
            )

        fetched_at = utcnow()
        snapshot = [device for device in (parse_netwatch_entry(entry, fetched_at) for entry in payload) if device]
        logger.info("Netwatch snapshot fetched", address=connection.address, devices=len(snapshot))
        return snapshot

    async def fetch_identity(self, connection: RouterConnection) -> str:
        payload = await self._get_json(connection, "/system/identity")
        if not isinstance(payload, dict) or "name" not in payload:
            raise RouterConnectionError(
                RouterConnectionError.PROTOCOL,
                "Identity response has no name",
                address=connection.address
            )
        return payload["name"]


class StaticSnapshotSource(SnapshotSource):
    """Serves fixed snapshots keyed by router address"""

    def __init__(self, snapshots: Optional[Dict[str, List]] = None, identity: str = "RouterOS"):
        self.snapshots: Dict[str, List[SnapshotDevice]] = {}
        self.failures: Dict[str, RouterConnectionError] = {}
        self.identity = identity
        for address, entries in (snapshots or {}).items():
            self.set_snapshot(address, entries)

    def set_snapshot(self, address: str, entries: List[Union[SnapshotDevice, Mapping]]):
        self.snapshots[address] = [
            entry if isinstance(entry, SnapshotDevice) else SnapshotDevice.model_validate(entry)
            for entry in entries
        ]
        self.failures.pop(address, None)

    def fail(self, address: str, error: RouterConnectionError):
        """Make every later fetch for ``address`` raise ``error``"""
        self.failures[address] = error

    def _check(self, connection: RouterConnection):
        if connection.address in self.failures:
            raise self.failures[connection.address]
        if connection.address not in self.snapshots:
            raise RouterConnectionError(
                RouterConnectionError.UNREACHABLE,
                "No snapshot configured for router",
                address=connection.address
            )

    async def fetch_snapshot(self, connection: RouterConnection) -> List[SnapshotDevice]:
        self._check(connection)
        return list(self.snapshots[connection.address])

    async def fetch_identity(self, connection: RouterConnection) -> str:
        self._check(connection)
        return self.identity
