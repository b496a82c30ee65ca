"""
LinkMe Backend - Request Context Enrichment
=============================================

What:  Turns a raw HTTP request into the viewer context stored with a view:
       client IP, device/browser labels and coarse geography.
How:   Proxy-header IP resolution, `user_agents` for UA parsing, and a
       MaxMind GeoLite2 City database read through `geoip2`.
Who:   ViewService.record_view() (via the track-view route) and the rate
       limit / access log middleware (client IP only).

Failure Policy:
    Enrichment is best effort. No helper in this module raises: a bad header,
    an unparseable user agent or a broken geo database degrades to
    None / "Unknown" and the view is still recorded.

Geo database lifecycle:
    GeoLocator wraps one geoip2 Reader. main.lifespan() opens it once at
    startup, stores it on app.state and closes it on shutdown; routes get it
    through the get_geo_locator() dependency.
"""

import ipaddress
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import geoip2.database
import geoip2.errors
from starlette.requests import Request
from user_agents import parse as parse_ua

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"

# Ordered by trust: the first non-empty source wins
CLIENT_IP_HEADERS = ("x-forwarded-for", "x-real-ip")

# The whole 172.0.0.0/8 block is treated as internal, not only 172.16.0.0/12
_LEGACY_PRIVATE_NETWORKS = (ipaddress.ip_network("172.0.0.0/8"),)


@dataclass(frozen=True)
class GeoInfo:
    country: Optional[str] = None
    city: Optional[str] = None


@dataclass(frozen=True)
class ClientInfo:
    device: str = UNKNOWN
    browser: str = UNKNOWN


@dataclass(frozen=True)
class ViewerContext:
    """Everything the view recorder stores about the visitor."""

    ip: Optional[str]
    user_agent: str
    referrer: Optional[str]
    device: str
    browser: str
    country: Optional[str]
    city: Optional[str]


# ══════════════════════════════════════════════════════════════════════════
# Client IP
# ══════════════════════════════════════════════════════════════════════════

def _parse_ip(value: Optional[str]) -> Optional[str]:
    """Canonical text form of an IP address, or None when value is not one."""
    if not value:
        return None
    try:
        return str(ipaddress.ip_address(value.strip()))
    except ValueError:
        return None


def get_client_ip(request: Request) -> Optional[str]:
    """
    Resolve the caller's IP address.

    Priority: first entry of X-Forwarded-For, then X-Real-IP, then the socket
    peer address. Header values that do not parse as an IP address are
    skipped. Returns None when nothing usable is available.
    """
    for header in CLIENT_IP_HEADERS:
        raw = request.headers.get(header)
        if raw:
            candidate = _parse_ip(raw.split(",")[0])
            if candidate:
                return candidate
    if request.client:
        return _parse_ip(request.client.host)
    return None


def is_private_address(ip: Optional[str]) -> bool:
    """
    True for addresses that must never be geolocated.

    Covers loopback (127.0.0.1, ::1), RFC 1918 ranges, link-local, reserved,
    multicast and unspecified addresses. Strings that are not IP addresses
    count as private too: there is nothing meaningful to look up.
    """
    if not ip:
        return True
    try:
        address = ipaddress.ip_address(ip.strip())
    except ValueError:
        return True

    # IPv4-mapped IPv6 (::ffff:10.0.0.1) is judged by its IPv4 part
    mapped = getattr(address, "ipv4_mapped", None)
    if mapped is not None:
        address = mapped

    if (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_reserved
        or address.is_multicast
        or address.is_unspecified
    ):
        return True
    return any(address in network for network in _LEGACY_PRIVATE_NETWORKS if address.version == 4)


# ══════════════════════════════════════════════════════════════════════════
# User Agent
# ══════════════════════════════════════════════════════════════════════════

def _device_label(agent) -> str:
    """Device family when the parser knows it, otherwise the form factor."""
    family = (agent.device.family or "").strip()
    if family and family != "Other":
        return family
    if agent.is_bot:
        return "Bot"
    if agent.is_tablet:
        return "Tablet"
    if agent.is_mobile:
        return "Mobile"
    if agent.is_pc:
        return "Desktop"
    return UNKNOWN


def _browser_label(agent) -> str:
    """Browser family plus major version, e.g. "Chrome 120"."""
    family = (agent.browser.family or "").strip()
    if not family or family == "Other":
        return UNKNOWN
    version = agent.browser.version
    if version:
        return f"{family} {version[0]}"
    return family


def parse_user_agent(user_agent: Optional[str]) -> ClientInfo:
    """
    Parse a User-Agent header into device and browser labels.

    Returns ("Unknown", "Unknown") for empty or unparseable input.
    """
    if not user_agent or not user_agent.strip():
        return ClientInfo()
    try:
        agent = parse_ua(user_agent)
        return ClientInfo(device=_device_label(agent), browser=_browser_label(agent))
    except Exception as e:
        # Parser failures must not reject the view
        logger.warning("User-agent parsing failed: %s", str(e))
        return ClientInfo()


# ══════════════════════════════════════════════════════════════════════════
# Geolocation
# ══════════════════════════════════════════════════════════════════════════

class GeoLocator:
    """
    Resolves public IP addresses to (country ISO code, city name).

    Construct with open() at startup and close() at shutdown. A locator built
    without a reader (missing database file) is "disabled" and resolves
    everything to GeoInfo(None, None).
    """

    def __init__(self, reader: Optional[geoip2.database.Reader] = None):
        self._reader = reader

    @classmethod
    def open(cls, db_path: str) -> "GeoLocator":
        """Open the MaxMind database at db_path, or return a disabled locator."""
        path = Path(db_path)
        if not path.is_file():
            logger.warning("GeoIP database not found at %s; geolocation disabled", path)
            return cls(None)
        try:
            reader = geoip2.database.Reader(str(path))
        except Exception as e:
            logger.error("Could not open GeoIP database %s: %s", path, str(e))
            return cls(None)
        logger.info("GeoIP database loaded: %s", path.resolve())
        return cls(reader)

    @property
    def enabled(self) -> bool:
        return self._reader is not None

    def lookup(self, ip: Optional[str]) -> GeoInfo:
        """
        Resolve an IP address. Private, loopback and unknown addresses,
        as well as any reader failure, yield GeoInfo(None, None).
        """
        if is_private_address(ip) or self._reader is None:
            return GeoInfo()
        try:
            response = self._reader.city(ip.strip())
        except (geoip2.errors.AddressNotFoundError, ValueError):
            return GeoInfo()
        except Exception as e:
            logger.warning("GeoIP lookup failed for a viewer address: %s", str(e))
            return GeoInfo()

        country = response.country.iso_code or response.registered_country.iso_code
        return GeoInfo(country=country or None, city=response.city.name or None)

    def close(self) -> None:
        if self._reader is not None:
            self._reader.close()
            self._reader = None


# ══════════════════════════════════════════════════════════════════════════
# Request → ViewerContext
# ══════════════════════════════════════════════════════════════════════════

def build_viewer_context(request: Request, geo_locator: GeoLocator) -> ViewerContext:
    """Collect the full enrichment for one inbound track-view request."""
    ip = get_client_ip(request)
    user_agent = request.headers.get("user-agent", "")
    referrer = request.headers.get("referer") or request.headers.get("referrer") or None
    client = parse_user_agent(user_agent)
    geo = geo_locator.lookup(ip)

    return ViewerContext(
        ip=ip,
        user_agent=user_agent,
        referrer=referrer,
        device=client.device,
        browser=client.browser,
        country=geo.country,
        city=geo.city,
    )
