"""Best-effort IPv4 extraction for comment origin addresses."""

from ipaddress import IPv4Address, IPv6Address, ip_address


_LOOPBACK_V6 = IPv6Address("::1")


def _parse(value: str | None) -> IPv4Address | IPv6Address | None:
    if not value:
        return None
    try:
        return ip_address(value.strip())
    except ValueError:
        return None


def client_ipv4(forwarded_for: str | None, remote_addr: str | None) -> str | None:
    """Resolve the IPv4 address a comment originated from.

    The first ``X-Forwarded-For`` entry wins when it is an IPv4 address.
    Otherwise the transport address is used, with IPv6 loopback and
    IPv4-mapped IPv6 addresses mapped down to IPv4. Anything else yields
    ``None`` and no address is recorded.
    """
    if forwarded_for:
        first = _parse(forwarded_for.split(",")[0])
        if isinstance(first, IPv4Address):
            return str(first)

    remote = _parse(remote_addr)
    if isinstance(remote, IPv4Address):
        return str(remote)
    if isinstance(remote, IPv6Address):
        if remote == _LOOPBACK_V6:
            return "127.0.0.1"
        if remote.ipv4_mapped is not None:
            return str(remote.ipv4_mapped)
    return None
