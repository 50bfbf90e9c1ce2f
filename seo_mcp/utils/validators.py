"""URL validation and normalisation helpers."""

from urllib.parse import urljoin, urlparse, urlunparse


def validate_url(url: str) -> tuple[bool, str]:
    """Validate a URL string.

    Args:
        url: The URL to validate.

    Returns:
        Tuple of (is_valid, error_message).  error_message is empty on success.
    """
    if not url or not isinstance(url, str):
        return False, "URL is empty or not a string."
    url = url.strip()
    try:
        parsed = urlparse(url)
    except ValueError as exc:
        return False, f"URL parse error: {exc}"
    if parsed.scheme not in ("http", "https"):
        return False, f"Invalid scheme: {parsed.scheme!r}. Must be http or https."
    if not parsed.netloc:
        return False, "URL has no network location (domain)."
    hostname = parsed.hostname or ""
    if not hostname or len(hostname) > 253:
        return False, "Invalid hostname length."
    return True, ""


def is_valid_url(url: str) -> bool:
    return validate_url(url)[0]


def ensure_protocol(url: str) -> str:
    if not url.startswith(("http://", "https://")):
        return "https://" + url
    return url


def extract_domain(url: str) -> str:
    """Return the lowercase hostname of *url* (protocol optional)."""
    parsed = urlparse(url if "://" in url else f"https://{url}")
    return (parsed.hostname or "").lower()


def normalize_url(url: str) -> str:
    """Canonical form for comparing URLs.

    Forces https, lowercases the host, drops default ports and strips a
    trailing slash from non-root paths.  Unparseable input is returned
    unchanged.
    """
    try:
        parsed = urlparse(url)
        port = parsed.port
    except ValueError:
        return url
    if not parsed.scheme or not parsed.hostname:
        return url
    scheme = "https" if parsed.scheme == "http" else parsed.scheme
    netloc = parsed.hostname.lower()
    if port and port not in (80, 443):
        netloc += f":{port}"
    path = parsed.path or "/"
    if path != "/" and path.endswith("/"):
        path = path[:-1]
    return urlunparse((scheme, netloc, path, parsed.params, parsed.query, parsed.fragment))


def resolve_url(relative: str, base: str) -> str:
    try:
        return urljoin(base, relative)
    except ValueError:
        return relative


def is_internal_link(link_url: str, page_url: str) -> bool:
    """True when *link_url* (resolved against *page_url*) shares its hostname."""
    try:
        link_host = urlparse(urljoin(page_url, link_url)).hostname
        page_host = urlparse(page_url).hostname
    except ValueError:
        return False
    return link_host is not None and link_host == page_host


def get_file_extension(url: str) -> str:
    try:
        path = urlparse(url).path
    except ValueError:
        return ""
    filename = path.rsplit("/", 1)[-1]
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()
