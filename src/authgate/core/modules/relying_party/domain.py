"""Relying party hostname normalization.

Local development reaches the app through `localhost`, but passkeys are bound to
a domain. Substituting a canonical alias keeps the rpID and origin identical
whichever entry point started or finished a ceremony.
"""

from urllib.parse import urlsplit

LOOPBACK_HOSTNAME = "localhost"
DEFAULT_DEV_ALIAS = "authgate.local"

DEFAULT_PORTS = {"http": 80, "https": 443}


def _parse(request_url: str) -> tuple[str, str, int | None]:
    """Split a URL into (scheme, hostname, port), raising ValueError when malformed."""
    parts = urlsplit(request_url)
    hostname = parts.hostname
    if not parts.scheme or not hostname:
        raise ValueError(f"Invalid URL: {request_url!r}")
    # Accessing .port raises ValueError for non-numeric or out of range ports
    return parts.scheme, hostname, parts.port


def _normalize(hostname: str, alias: str) -> str:
    return alias if hostname == LOOPBACK_HOSTNAME else hostname


def get_normalized_hostname(request_url: str, alias: str = DEFAULT_DEV_ALIAS) -> str:
    """Return the URL hostname, with `localhost` replaced by the development alias."""
    _, hostname, _ = _parse(request_url)
    return _normalize(hostname, alias)


def get_normalized_origin(request_url: str, alias: str = DEFAULT_DEV_ALIAS) -> str:
    """Return `scheme://host[:port]` with the same substitution applied to the host.

    Matches the origin a browser reports: the scheme's default port is omitted
    and IPv6 literals keep their brackets.
    """
    scheme, hostname, port = _parse(request_url)
    host = _normalize(hostname, alias)
    if ":" in host:
        host = f"[{host}]"
    if port is None or DEFAULT_PORTS.get(scheme) == port:
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


def extract_rp_id(hostname: str) -> str:
    """Return the registrable parent domain (last two labels) of a hostname.

    Hostnames with two or fewer labels are returned unchanged, which makes the
    function idempotent.
    """
    parts = hostname.split(".")
    if len(parts) > 2:
        return ".".join(parts[-2:])
    return hostname


def get_normalized_rp_id(request_url: str, alias: str = DEFAULT_DEV_ALIAS) -> str:
    return extract_rp_id(get_normalized_hostname(request_url, alias))
