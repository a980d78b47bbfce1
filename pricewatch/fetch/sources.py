"""Source classification for product URLs."""
from enum import Enum
from urllib.parse import quote, urlparse


class SourceKind(str, Enum):
    """Where a product page lives; selects the extraction policy."""

    MARKETPLACE = "marketplace"
    SEEED = "seeed"
    SHOPIFY = "shopify"
    GENERIC = "generic"


# Declared `source` labels found in catalog files
DECLARED_SOURCES: dict[str, SourceKind] = {
    "amazon": SourceKind.MARKETPLACE,
    "marketplace": SourceKind.MARKETPLACE,
    "seeed": SourceKind.SEEED,
    "seeedstudio": SourceKind.SEEED,
    "heltec": SourceKind.SHOPIFY,
    "lilygo": SourceKind.SHOPIFY,
    "rakwireless": SourceKind.SHOPIFY,
    "rak": SourceKind.SHOPIFY,
    "shopify": SourceKind.SHOPIFY,
    "generic": SourceKind.GENERIC,
}

MARKETPLACE_HOSTS = ("amazon.", "amzn.to", "a.co")
SEEED_HOSTS = ("seeedstudio.com",)
SHOPIFY_HOSTS = ("heltec.org", "lilygo.cc", "rakwireless.com", "myshopify.com")

# Links that are community or reference pages, never product listings
NON_COMMERCE_HOSTS = (
    "discord.gg",
    "discord.com",
    "t.me",
    "telegram.me",
    "github.com",
    "reddit.com",
    "youtube.com",
    "youtu.be",
    "meshtastic.org",
)

MARKETPLACE_LISTING_URL = "https://www.amazon.com/dp/{external_id}"


def _host(url: str) -> str:
    host = urlparse(url).hostname or ""
    return host.lower()


def _host_matches(host: str, patterns: tuple[str, ...]) -> bool:
    for pattern in patterns:
        if pattern.endswith("."):
            # amazon. matches amazon.com, www.amazon.co.uk, ...
            if host.startswith(pattern) or f".{pattern}" in host:
                return True
        elif host == pattern or host.endswith(f".{pattern}"):
            return True
    return False


def classify_source(url: str | None, declared: str | None = None) -> SourceKind:
    """Resolve the source kind, trusting a known declared label over the URL host."""
    if declared:
        kind = DECLARED_SOURCES.get(declared.strip().lower())
        if kind is not None:
            return kind
    host = _host(url or "")
    if _host_matches(host, MARKETPLACE_HOSTS):
        return SourceKind.MARKETPLACE
    if _host_matches(host, SEEED_HOSTS):
        return SourceKind.SEEED
    if _host_matches(host, SHOPIFY_HOSTS):
        return SourceKind.SHOPIFY
    return SourceKind.GENERIC


def is_fetchable_url(url: str | None) -> bool:
    """True for absolute http(s) URLs."""
    if not url:
        return False
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def is_non_commerce(url: str | None) -> bool:
    """True for chat, code-hosting and docs links that carry no price."""
    return bool(url) and _host_matches(_host(url), NON_COMMERCE_HOSTS)


def marketplace_listing_url(external_id: str) -> str:
    """Listing page for a marketplace id (ASIN)."""
    return MARKETPLACE_LISTING_URL.format(external_id=quote(external_id.strip(), safe=""))
