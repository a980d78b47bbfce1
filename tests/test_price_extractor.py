"""Tests for HTML price extraction."""
import pytest

from pricewatch.fetch.sources import SourceKind, classify_source
from pricewatch.parse.policies import POLICIES
from pricewatch.parse.price_extractor import currency_tokens, extract_price


def test_every_source_kind_has_a_policy():
    """Test that the policy table covers the whole enumeration."""
    assert set(POLICIES) == set(SourceKind)


def test_marketplace_offscreen_price():
    """Test marketplace price from the core price block."""
    html = """
    <div id="corePrice_feature_div">
      <span class="a-price"><span class="a-offscreen">$1,049.99</span></span>
    </div>
    """
    assert extract_price(html, SourceKind.MARKETPLACE) == 1049.99


def test_marketplace_price_whole():
    """Test the whole-dollar span used when there is no offscreen price."""
    html = '<span class="a-price-whole">34.</span><span class="a-price-fraction">99</span>'
    assert extract_price(html, SourceKind.MARKETPLACE) == 34.0


def test_selector_without_number_falls_through():
    """Test that a matched element with no number moves on to the next selector."""
    html = """
    <div class="product-price"><span class="price">Sold out</span></div>
    <div class="pro-price">$24.90</div>
    """
    assert extract_price(html, SourceKind.SEEED) == 24.9


def test_shopify_sale_price_wins_over_regular():
    """Test sale price selector order."""
    html = """
    <span class="price-item--regular">$39.00</span>
    <span class="price-item--sale">$29.00</span>
    """
    assert extract_price(html, SourceKind.SHOPIFY) == 29.0


def test_regex_fallback_first_token():
    """Test raw markup fallback for a known store when no selector matches."""
    html = '<script>var data = {"price": "$19.99", "compare": "$25.00"};</script>'
    assert extract_price(html, SourceKind.SEEED) == 19.99


def test_regex_requires_two_decimals():
    """Test that amounts without cents are not taken from raw markup."""
    html = "<p>Free shipping over $50 and $7.5 handling</p>"
    assert extract_price(html, SourceKind.MARKETPLACE) is None


def test_generic_lowest_in_range():
    """Test generic pages pick the lowest plausible amount."""
    html = """
    <p>Shipping $4.99</p>
    <p>Bundle $129.00</p>
    <p>Board $22.50</p>
    <p>Pro kit $899.00</p>
    """
    assert extract_price(html, SourceKind.GENERIC) == 22.5


def test_generic_range_bounds_are_exclusive():
    """Test that 5.00 and 500.00 are outside the generic range."""
    html = "<p>$5.00</p><p>$500.00</p>"
    assert extract_price(html, SourceKind.GENERIC) is None


def test_generic_selector_before_range_scan():
    """Test that a generic price selector beats the range scan."""
    html = '<span class="price">$45.00</span><p>$12.00</p>'
    assert extract_price(html, SourceKind.GENERIC) == 45.0


@pytest.mark.parametrize("source", list(SourceKind))
def test_no_price_returns_none(source):
    """Test pages without any price."""
    html = "<html><body><h1>Robot check</h1></body></html>"
    assert extract_price(html, source) is None


def test_empty_document():
    """Test empty and missing documents."""
    assert extract_price("", SourceKind.GENERIC) is None
    assert extract_price(None, SourceKind.MARKETPLACE) is None


def test_malformed_markup_does_not_raise():
    """Test broken HTML degrades quietly."""
    html = "<div class='price'><<<$12.34</span></p"
    assert extract_price(html, SourceKind.SHOPIFY) == 12.34


def test_never_returns_zero():
    """Test that zero amounts are not treated as prices."""
    html = '<span class="money">$0.00</span>'
    assert extract_price(html, SourceKind.SHOPIFY) is None


def test_currency_tokens_strip_separators():
    """Test thousands separators and spacing after the dollar sign."""
    assert currency_tokens("$ 1,299.00 and $3.50") == [1299.0, 3.5]


def test_manufacturer_store_ignores_cheap_shipping_mention():
    """Test Heltec/LILYGO/RAK pages take the lowest plausible amount, not the first one."""
    html = "<p>Shipping from $2.99</p><p>Our price $24.90</p>"
    source = classify_source("https://heltec.org/project/wifi-lora-32-v3/")
    assert extract_price(html, source) == 24.9


def test_generic_selector_needs_dollar_amount():
    """Test percentage text in a price element is not taken as the price."""
    html = '<div class="price">Save 20%</div><p>$34.00</p>'
    assert extract_price(html, SourceKind.GENERIC) == 34.0


def test_generic_selector_accepts_whole_dollar_amount():
    """Test a $ amount without cents inside a price element."""
    html = '<span class="price">Now $1,049</span>'
    assert extract_price(html, SourceKind.GENERIC) == 1049.0
