"""
Tenant Resolution

Derives the requested tenant from transport-level signals:
1. Trusted tenant header (e.g. X-Tenant-Id, injected by the edge gateway)
2. URL path prefix (/t/<tenant>/...), stripped before routing continues
3. Subdomain label of the Host header (<tenant>.<base domain>)

The header and the path prefix are both compared: when they name different
tenants, or a repeated tenant header carries different values, the result is
a Conflict, which the isolation guard rejects. The subdomain is a fallback and
is only read when neither is present, unless strict subdomain checking is on,
in which case it is compared as well.
"""

import ipaddress
from dataclasses import dataclass
from typing import Mapping, Optional, Union

from structlog import get_logger

from ..errors import UnresolvedTenant
from ..tenant_management.models import TENANT_ID_PATTERN
from .tenant_context import ResolutionSource

logger = get_logger()

# Highest priority first
PRECEDENCE = (
    ResolutionSource.HEADER,
    ResolutionSource.PATH_PREFIX,
    ResolutionSource.SUBDOMAIN,
)


@dataclass(frozen=True)
class Resolved:
    """All present signals name the same tenant."""

    tenant_id: str
    source: ResolutionSource
    routed_path: str


@dataclass(frozen=True)
class Conflict:
    """Present signals name different tenants."""

    signals: tuple[tuple[ResolutionSource, str], ...]
    routed_path: str

    @property
    def sources(self) -> tuple[ResolutionSource, ...]:
        return tuple(source for source, _ in self.signals)


Resolution = Union[Resolved, Conflict]


def normalize_tenant_id(raw: str) -> str:
    """
    Lower-case and validate a tenant identifier.

    Raises:
        UnresolvedTenant: If the identifier is not a valid tenant id
    """
    tenant_id = raw.strip().lower()
    if not TENANT_ID_PATTERN.match(tenant_id):
        raise UnresolvedTenant(f"Malformed tenant identifier '{raw[:64]}'")
    return tenant_id


class TenantResolver:
    """Maps a request's header set, path and host to a tenant resolution."""

    def __init__(
        self,
        header_name: str = "X-Tenant-Id",
        path_prefix: str = "/t/",
        base_domain: Optional[str] = None,
        reserved_subdomains: frozenset[str] = frozenset({"www", "api", "admin"}),
        strict_subdomain: bool = False,
    ):
        """
        Initialize tenant resolver.

        Args:
            header_name: Name of the trusted tenant header
            path_prefix: Path prefix introducing the tenant segment
            base_domain: Deployment domain; when set only <tenant>.<base_domain> hosts match
            reserved_subdomains: Labels that never name a tenant
            strict_subdomain: Compare the subdomain against the other signals too
        """
        self.header_name = header_name.lower()
        self.path_prefix = "/" + path_prefix.strip("/") + "/"
        self.base_domain = base_domain.lower().strip(".") if base_domain else None
        self.reserved_subdomains = reserved_subdomains
        self.strict_subdomain = strict_subdomain

    def resolve(self, headers: Mapping[str, str], path: str, host: Optional[str]) -> Resolution:
        """
        Resolve the requested tenant.

        Args:
            headers: Request headers (keys compared case-insensitively)
            path: Request path
            host: Host header value, port allowed

        Returns:
            Resolved or Conflict

        Raises:
            UnresolvedTenant: If no signal is present or a signal is malformed
        """
        signals: list[tuple[ResolutionSource, str]] = []

        for header_value in self._header_signals(headers):
            signals.append((ResolutionSource.HEADER, header_value))

        path_value, routed_path = self._path_signal(path)
        if path_value is not None:
            signals.append((ResolutionSource.PATH_PREFIX, path_value))

        if not signals or self.strict_subdomain:
            subdomain_value = self._subdomain_signal(host)
            if subdomain_value is not None:
                signals.append((ResolutionSource.SUBDOMAIN, subdomain_value))

        if not signals:
            raise UnresolvedTenant()

        ordered = tuple(sorted(signals, key=lambda signal: PRECEDENCE.index(signal[0])))

        if len({tenant_id for _, tenant_id in ordered}) > 1:
            logger.warning(
                "tenant_signal_conflict",
                signals=[f"{source.value}={tenant_id}" for source, tenant_id in ordered],
                path=path,
            )
            return Conflict(signals=ordered, routed_path=routed_path)

        source, tenant_id = ordered[0]
        return Resolved(tenant_id=tenant_id, source=source, routed_path=routed_path)

    def _header_signals(self, headers: Mapping[str, str]) -> list[str]:
        """Every non-blank value of the tenant header; repeats are kept."""
        # starlette Headers.items() yields each occurrence of a repeated header
        return [
            normalize_tenant_id(value)
            for name, value in headers.items()
            if name.lower() == self.header_name and value.strip()
        ]

    def _path_signal(self, path: str) -> tuple[Optional[str], str]:
        """Return the tenant segment and the path with the prefix removed."""
        if not path.startswith(self.path_prefix):
            return None, path

        remainder = path[len(self.path_prefix):]
        segment, slash, rest = remainder.partition("/")
        if not segment:
            raise UnresolvedTenant("Empty tenant segment in path")

        return normalize_tenant_id(segment), slash + rest or "/"

    def _subdomain_signal(self, host: Optional[str]) -> Optional[str]:
        if not host:
            return None

        hostname = self._strip_port(host.strip().lower()).rstrip(".")
        if not hostname or hostname == "localhost" or self._is_ip(hostname):
            return None

        if self.base_domain:
            suffix = "." + self.base_domain
            if not hostname.endswith(suffix):
                return None
            label = hostname[: -len(suffix)]
            # Nested labels (a.b.example.com) are not tenant hosts
            if not label or "." in label:
                return None
        else:
            labels = hostname.split(".")
            if len(labels) < 3:
                return None
            label = labels[0]

        if label in self.reserved_subdomains:
            return None

        return normalize_tenant_id(label)

    @staticmethod
    def _strip_port(host: str) -> str:
        if host.startswith("["):
            # Bracketed IPv6 literal
            return host[1: host.find("]")] if "]" in host else host
        if host.count(":") == 1:
            return host.split(":", 1)[0]
        return host

    @staticmethod
    def _is_ip(hostname: str) -> bool:
        try:
            ipaddress.ip_address(hostname)
        except ValueError:
            return False
        return True
