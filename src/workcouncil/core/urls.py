"""URL helpers shared by classification and input validation."""

from urllib.parse import SplitResult, urlsplit


def split_url(url: str) -> SplitResult | None:
    """Split ``url`` into components, or return None if it cannot be parsed."""
    try:
        parts = urlsplit(url.strip())
        # Accessing hostname/port validates the netloc
        _ = parts.hostname, parts.port
    except ValueError:
        return None
    return parts


def hostname_of(parts: SplitResult) -> str:
    return (parts.hostname or "").lower()


def host_matches(hostname: str, domain: str) -> bool:
    """Return True if ``hostname`` is ``domain`` or one of its subdomains."""
    return hostname == domain or hostname.endswith(f".{domain}")
