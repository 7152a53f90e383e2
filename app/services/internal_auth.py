from __future__ import annotations

import ipaddress
import secrets
from dataclasses import dataclass
from functools import lru_cache
from uuid import UUID

from fastapi import Request

USER_ROLES = frozenset({"USER", "TEACHER", "ADMIN"})
STAFF_ROLES = frozenset({"TEACHER", "ADMIN"})


@dataclass(frozen=True, slots=True)
class CallerIdentity:
    user_id: UUID
    role: str

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


def is_valid_internal_token(*, expected_token: str, received_token: str | None) -> bool:
    if not expected_token or not received_token:
        return False
    return secrets.compare_digest(expected_token, received_token)


def parse_caller_identity(*, raw_user_id: str | None, raw_role: str | None) -> CallerIdentity | None:
    if not raw_user_id:
        return None
    try:
        user_id = UUID(raw_user_id.strip())
    except ValueError:
        return None

    role = (raw_role or "USER").strip().upper()
    if role not in USER_ROLES:
        return None
    return CallerIdentity(user_id=user_id, role=role)


@lru_cache(maxsize=32)
def _parse_allowlist(
    allowlist: str,
) -> tuple[ipaddress.IPv4Network | ipaddress.IPv6Network, ...]:
    networks: list[ipaddress.IPv4Network | ipaddress.IPv6Network] = []
    for raw_entry in allowlist.split(","):
        entry = raw_entry.strip()
        if not entry:
            continue

        try:
            networks.append(ipaddress.ip_network(entry, strict=False))
        except ValueError:
            continue

    return tuple(networks)


def _parse_ip(value: str | None) -> str | None:
    if value is None:
        return None
    candidate = value.strip()
    if not candidate:
        return None
    try:
        return str(ipaddress.ip_address(candidate))
    except ValueError:
        return None


def extract_client_ip(
    request: Request,
    *,
    trusted_proxies: str = "",
) -> str | None:
    client_host = _parse_ip(request.client.host if request.client is not None else None)
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for and is_client_ip_allowed(client_ip=client_host, allowlist=trusted_proxies):
        return _parse_ip(forwarded_for.split(",", maxsplit=1)[0])

    return client_host


def is_client_ip_allowed(*, client_ip: str | None, allowlist: str) -> bool:
    if client_ip is None:
        return False

    try:
        parsed_ip = ipaddress.ip_address(client_ip)
    except ValueError:
        return False

    return any(parsed_ip in network for network in _parse_allowlist(allowlist))
