# /recordguard/security/client_context.py
import ipaddress
from dataclasses import dataclass
from urllib.parse import urlparse

# Checked in order; the first value of a header counts only if it is a
# public, routable address.
FORWARDED_IP_HEADERS = ('X-Forwarded-For', 'X-Real-IP', 'Client-IP')


@dataclass(frozen=True)
class ClientContext:
    """Who/where a request came from, as recorded in the audit trail."""
    ip_address: str
    user_agent: str
    session_id: str | None
    role: str

    @classmethod
    def from_request(cls, request, requester):
        return cls(
            ip_address=client_ip_address(request.headers, request.remote_addr),
            user_agent=(request.headers.get('User-Agent') or '')[:255],
            session_id=requester.session_id if requester else None,
            role=requester.audit_role if requester else 'unknown'
        )


def _is_public_address(value: str) -> bool:
    try:
        return ipaddress.ip_address(value).is_global
    except ValueError:
        return False


def client_ip_address(headers, remote_addr) -> str:
    for header in FORWARDED_IP_HEADERS:
        value = headers.get(header)
        if not value:
            continue
        candidate = value.split(',')[0].strip()
        if _is_public_address(candidate):
            return candidate
    return remote_addr or 'unknown'


def origin_allowed(headers, trusted_hosts) -> bool:
    """Check the Origin (or, failing that, Referer) host against trusted hosts.

    Requests carrying neither header are direct API calls and are allowed.
    """
    origin = headers.get('Origin')
    referer = headers.get('Referer')
    if not origin and not referer:
        return True
    host = urlparse(origin or referer).hostname
    return host is not None and host in trusted_hosts
