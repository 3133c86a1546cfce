"""
Source address check against GitHub's published webhook ranges
"""

import ipaddress
from typing import List, Optional, Sequence, Union

import httpx
import structlog

from .errors import ForbiddenOriginError

logger = structlog.get_logger()

Network = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]

# Snapshot of the "hooks" list from https://api.github.com/meta
DEFAULT_GITHUB_HOOK_CIDRS = (
    "192.30.252.0/22",
    "185.199.108.0/22",
    "140.82.112.0/20",
    "143.55.64.0/20",
    "2a0a:a440::/29",
    "2606:50c0::/32",
)


def parse_networks(cidrs: Sequence[str]) -> List[Network]:
    networks: List[Network] = []
    for cidr in cidrs:
        if not isinstance(cidr, str):
            logger.warning("Ignoring non-string CIDR", cidr=repr(cidr))
            continue
        try:
            networks.append(ipaddress.ip_network(cidr.strip(), strict=False))
        except ValueError:
            logger.warning("Ignoring invalid CIDR", cidr=cidr)
    return networks


class NetworkOriginGuard:
    """
    Rejects callers outside GitHub's hook address ranges

    Ranges come from explicit configuration when given, otherwise from the
    GitHub meta API (fetched once), otherwise from the built-in snapshot.
    """

    def __init__(
        self,
        enabled: bool = False,
        cidrs: Optional[Sequence[str]] = None,
        api_url: str = "https://api.github.com",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self.enabled = enabled
        self.api_url = api_url.rstrip("/")
        self._transport = transport
        self._timeout = timeout
        self._networks: Optional[List[Network]] = parse_networks(cidrs) if cidrs else None

    async def _fetch_hook_networks(self) -> List[Network]:
        async with httpx.AsyncClient(
            transport=self._transport,
            timeout=httpx.Timeout(self._timeout),
            headers={"Accept": "application/vnd.github+json"},
        ) as client:
            response = await client.get(f"{self.api_url}/meta")
            response.raise_for_status()
            body = response.json()
        if not isinstance(body, dict):
            raise ValueError("GitHub meta response is not a JSON object")
        hooks = body.get("hooks") or []
        if not isinstance(hooks, list):
            raise ValueError("GitHub meta hooks entry is not a list")
        networks = parse_networks(hooks)
        if not networks:
            raise ValueError("GitHub meta response contained no hook ranges")
        return networks

    async def networks(self) -> List[Network]:
        if self._networks is None:
            try:
                self._networks = await self._fetch_hook_networks()
                logger.info("Loaded GitHub hook ranges", count=len(self._networks))
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(
                    "Failed to fetch GitHub hook ranges, using built-in list",
                    error=str(e),
                )
                self._networks = parse_networks(DEFAULT_GITHUB_HOOK_CIDRS)
        return self._networks

    async def is_allowed(self, source_ip: Optional[str]) -> bool:
        if not source_ip:
            return False
        try:
            address = ipaddress.ip_address(source_ip.strip())
        except ValueError:
            return False
        return any(address in network for network in await self.networks())

    async def check(self, source_ip: Optional[str]) -> None:
        """Raise ForbiddenOriginError when enforcement is on and the caller is outside"""
        if not self.enabled:
            return
        if not await self.is_allowed(source_ip):
            logger.warning("Rejected webhook from unexpected origin", source_ip=source_ip)
            raise ForbiddenOriginError(f"Source address {source_ip} is not a GitHub hook address")
