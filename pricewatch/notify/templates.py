"""Price-drop alert email."""
from html import escape
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

PRICE_DROP_HTML = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="margin:0; padding:0; background:#1a1a2e; font-family:Arial, Helvetica, sans-serif;">
  <table width="100%" cellpadding="0" cellspacing="0" style="background:#1a1a2e; padding:40px 20px;">
    <tr><td align="center">
      <table width="600" cellpadding="0" cellspacing="0" style="background:#16213e; border-radius:8px; overflow:hidden;">
        <tr><td style="background:#0f3460; padding:24px 32px;">
          <h1 style="margin:0; color:#e94560; font-size:24px;">Price Drop Alert</h1>
        </td></tr>
        <tr><td style="padding:32px;">
          <h2 style="color:#eee; margin:0 0 16px 0; font-size:20px;">{name}</h2>
          <table cellpadding="0" cellspacing="0" style="margin:0 0 24px 0;">
            <tr>
              <td style="color:#999; font-size:14px; padding-right:12px;">Was:</td>
              <td style="color:#999; font-size:18px; text-decoration:line-through;">${old_price:.2f}</td>
            </tr>
            <tr>
              <td style="color:#4ecca3; font-size:14px; padding-right:12px;">Now:</td>
              <td style="color:#4ecca3; font-size:24px; font-weight:bold;">${new_price:.2f}</td>
            </tr>
            <tr>
              <td style="color:#e94560; font-size:14px; padding-right:12px;">Save:</td>
              <td style="color:#e94560; font-size:16px; font-weight:bold;">{drop_pct:.1f}% off</td>
            </tr>
          </table>
          <a href="{buy_url}" style="display:inline-block; background:#e94560; color:#fff; text-decoration:none; padding:14px 32px; border-radius:6px; font-size:16px; font-weight:bold;">Buy Now</a>
        </td></tr>
        <tr><td style="padding:16px 32px; border-top:1px solid #0f3460;">
          <p style="color:#666; font-size:12px; margin:0;">
            You received this because you subscribed to price alerts on
            <a href="{site_url}" style="color:#4ecca3;">NC Mesh Parts</a>.
            <a href="{unsubscribe_url}" style="color:#999;">Unsubscribe</a>
          </p>
        </td></tr>
      </table>
    </td></tr>
  </table>
</body>
</html>"""


def with_affiliate_tag(url: str, tag: str) -> str:
    """Add the affiliate `tag` query parameter unless the link already carries one."""
    if not tag:
        return url
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    if any(key == "tag" for key, _ in query):
        return url
    query.append(("tag", tag))
    return urlunsplit(parts._replace(query=urlencode(query)))


def unsubscribe_url(site_url: str, token: str) -> str:
    return f"{site_url.rstrip('/')}/api/alerts/unsubscribe/{token}"


def price_drop_subject(name: str, old_price: float, new_price: float) -> str:
    return f"Price Drop: {name} (${old_price:.2f} → ${new_price:.2f})"


def render_price_drop(
    name: str,
    old_price: float,
    new_price: float,
    drop_pct: float,
    buy_url: str,
    unsubscribe_link: str,
    site_url: str,
) -> str:
    """HTML body; `drop_pct` is in percent."""
    return PRICE_DROP_HTML.format(
        name=escape(name),
        old_price=old_price,
        new_price=new_price,
        drop_pct=drop_pct,
        buy_url=escape(buy_url, quote=True),
        unsubscribe_url=escape(unsubscribe_link, quote=True),
        site_url=escape(site_url, quote=True),
    )
