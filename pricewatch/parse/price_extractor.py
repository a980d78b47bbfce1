"""Best-effort price extraction from product page HTML."""
import logging

from selectolax.parser import HTMLParser

from pricewatch.fetch.sources import SourceKind
from pricewatch.parse.policies import CURRENCY_RE, CURRENCY_TEXT_RE, ExtractionPolicy, policy_for
from pricewatch.parse.prices import parse_price_text

logger = logging.getLogger(__name__)


def selector_price(text: str, require_currency: bool) -> float | None:
    """Number from an element's text; with `require_currency` only a $ amount counts."""
    if not require_currency:
        return parse_price_text(text)
    match = CURRENCY_TEXT_RE.search(text or "")
    if not match:
        return None
    return parse_price_text(match.group(1))


def extract_by_selectors(parser: HTMLParser, policy: ExtractionPolicy) -> float | None:
    """Price from the first matching element of the first selector that yields a number."""
    for selector in policy.selectors:
        try:
            node = parser.css_first(selector)
        except Exception as e:
            logger.debug(f"Selector {selector!r} failed: {e}")
            continue
        if node is None:
            continue
        price = selector_price(node.text(strip=True), policy.require_currency)
        if price is not None:
            return price
    return None


def currency_tokens(html_content: str) -> list[float]:
    """All $x.xx amounts in document order."""
    values = []
    for match in CURRENCY_RE.finditer(html_content):
        try:
            values.append(float(match.group(1).replace(",", "")))
        except ValueError:
            continue
    return values


def extract_by_regex(html_content: str, policy: ExtractionPolicy) -> float | None:
    """Raw-markup fallback: first currency token, or the lowest one in the plausible range."""
    tokens = currency_tokens(html_content)
    if policy.min_in_range is not None:
        low, high = policy.min_in_range
        in_range = [value for value in tokens if low < value < high]
        return min(in_range) if in_range else None
    if policy.regex_fallback:
        for value in tokens:
            if value > 0:
                return value
    return None


def extract_price(html_content: str | None, source: SourceKind) -> float | None:
    """
    Return the page's price, or None when no strategy finds a confident one.

    Not finding a price is an expected outcome (bot walls, layout changes);
    it never raises.
    """
    if not html_content:
        return None

    policy = policy_for(source)

    try:
        parser = HTMLParser(html_content)
        price = extract_by_selectors(parser, policy)
    except Exception as e:
        logger.debug(f"HTML parse failed ({source.value}): {e}")
        price = None
    if price is not None:
        return price

    return extract_by_regex(html_content, policy)
