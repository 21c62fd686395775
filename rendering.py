"""
Minimal HTML for change-monitoring tools.

The page only carries the values a monitor should diff (stock flag, store
price, quantity) so unrelated upstream changes do not trigger alerts.
"""

from html import escape
from typing import Optional

from models import NormalizedRecord


NO_VALUE = "—"


def format_price(raw: Optional[float]) -> str:
    if raw is None or raw != raw:
        return NO_VALUE
    return f"${raw:.2f}"


def in_stock_label(record: NormalizedRecord) -> str:
    qty = record.stock.qty
    status = (record.stock.status or "").upper()
    if qty is not None:
        return "Yes" if qty > 0 else "No"
    if "OUT" in status:
        return "No"
    if "IN_STOCK" in status or "HIGH" in status:
        return "Yes"
    return "Unknown"


def page_title(record: NormalizedRecord) -> str:
    title = record.product.title or f"IKEA {record.article}"
    if record.product.description:
        return f"{title} — {record.product.description}"
    return title


def render_monitor_page(record: NormalizedRecord) -> str:
    qty = record.stock.qty
    lines = [
        f"In Stock: {in_stock_label(record)}",
        f"Price: {format_price(record.prices.store.raw)}",
        f"Quantity: {qty if qty is not None else NO_VALUE}",
    ]
    if record.store_closed:
        lines.append(f"Store Closed: {record.store_closed_message}")

    body = "\n".join(escape(line) for line in lines)
    return f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width,initial-scale=1" />
  <title>{escape(page_title(record))}</title>
</head>
<body>
<pre>
{body}
</pre>
</body>
</html>"""


def render_error_page(message: str) -> str:
    return f"Error\n{escape(message)}"
