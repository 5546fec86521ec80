"""Server-side invoice PDF generation using WeasyPrint.

Renders the loaded invoice view (the dict returned by
InvoiceLedger.load_details) to HTML, then to PDF. Read only: nothing here
touches the ledger.
"""

import logging
from datetime import datetime
from html import escape
from typing import Any, Optional

from workshop.config import settings
from workshop.exceptions import ErrorCode, ExternalServiceError

logger = logging.getLogger(__name__)

PRIMARY = "#B91C1C"
DARK = "#111827"
GRAY = "#6B7280"
BORDER = "#E5E7EB"


def format_currency(value: Any) -> str:
    return f"{settings.CURRENCY_CODE} {float(value or 0):,.2f}"


def format_date(value: Any) -> str:
    if not value:
        return "N/A"
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    return value.strftime("%d %b %Y")


def invoice_filename(invoice: dict) -> str:
    return f"invoice-{invoice.get('invoice_no') or invoice.get('id')}.pdf"


def _row(index: Optional[int], description: str, quantity: str, amount: str) -> str:
    return (
        "<tr>"
        f"<td class='num'>{index if index is not None else ''}</td>"
        f"<td>{escape(description)}</td>"
        f"<td class='qty'>{quantity}</td>"
        f"<td class='amount'>{amount}</td>"
        "</tr>"
    )


def build_invoice_html(invoice: dict) -> str:
    """Render the invoice view to a self-contained HTML document."""
    items = invoice.get("items") or []
    charges = invoice.get("charges") or []
    reductions = invoice.get("reductions") or []

    rows = []
    for index, item in enumerate(items, start=1):
        quantity = item.get("quantity") or 0
        rows.append(
            _row(
                index,
                item.get("item_name") or "",
                f"{quantity:g}",
                format_currency(item.get("line_total")),
            )
        )
    for charge in charges:
        rows.append(_row(None, charge.get("label") or "", "", format_currency(charge.get("amount"))))

    subtotal = sum(float(i.get("line_total") or 0) for i in items) + sum(
        float(c.get("amount") or 0) for c in charges
    )
    reduction_rows = "".join(
        f"<tr><td>{escape(r.get('label') or '')}</td>"
        f"<td class='amount'>- {format_currency(r.get('amount'))}</td></tr>"
        for r in reductions
    )
    total_due = invoice.get("final_total")
    if total_due is None:
        total_due = subtotal - sum(float(r.get("amount") or 0) for r in reductions)

    status = (invoice.get("payment_status") or "unpaid").capitalize()
    customer_lines = "".join(
        f"<div class='muted'>{escape(str(value))}</div>"
        for value in (
            invoice.get("customer_phone"),
            invoice.get("customer_email"),
            invoice.get("customer_address"),
        )
        if value
    )
    notes = ""
    if invoice.get("notes"):
        notes = f"<div class='notes'><strong>Notes:</strong><p>{escape(invoice['notes'])}</p></div>"

    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<style>
  @page {{ size: A4; margin: 18mm; }}
  body {{ font-family: Helvetica, Arial, sans-serif; font-size: 10pt; color: {DARK}; }}
  .header {{ text-align: center; border-bottom: 2px solid {PRIMARY}; padding-bottom: 8px; }}
  .header h1 {{ color: {PRIMARY}; font-size: 18pt; margin: 0; }}
  .muted {{ color: {GRAY}; font-size: 9pt; }}
  .title {{ display: flex; justify-content: space-between; margin: 16px 0; }}
  .title h2 {{ font-size: 22pt; margin: 0; }}
  .meta {{ text-align: right; color: {GRAY}; font-size: 9pt; }}
  table {{ width: 100%; border-collapse: collapse; margin-top: 12px; }}
  th {{ background: {DARK}; color: white; text-align: left; padding: 6px; font-size: 9pt; }}
  td {{ border-bottom: 1px solid {BORDER}; padding: 6px; }}
  .num, .qty {{ text-align: center; }}
  .amount {{ text-align: right; }}
  .summary {{ width: 45%; margin-left: auto; }}
  .total td {{ font-weight: bold; color: {PRIMARY}; font-size: 12pt; }}
  .notes {{ margin-top: 16px; }}
</style>
</head>
<body>
  <div class="header">
    <h1>{escape(settings.BUSINESS_NAME)}</h1>
    <div class="muted">{escape(settings.BUSINESS_CONTACT)}</div>
  </div>
  <div class="title">
    <h2>INVOICE</h2>
    <div class="meta">
      <div>Invoice #: {escape(invoice.get("invoice_no") or "")}</div>
      <div>Date: {format_date(invoice.get("invoice_date"))}</div>
      <div>Status: {status}</div>
    </div>
  </div>
  <div>
    <strong>BILL TO:</strong>
    <div>{escape(invoice.get("customer_name") or "Walk-in Customer")}</div>
    {customer_lines}
  </div>
  <table>
    <thead><tr><th>#</th><th>Description</th><th>Qty</th><th class="amount">Amount</th></tr></thead>
    <tbody>{"".join(rows)}</tbody>
  </table>
  <table class="summary">
    <tr><td>Subtotal</td><td class="amount">{format_currency(subtotal)}</td></tr>
    {reduction_rows}
    <tr class="total"><td>TOTAL DUE:</td><td class="amount">{format_currency(total_due)}</td></tr>
  </table>
  {notes}
</body>
</html>"""


def render_invoice_pdf(invoice: dict) -> bytes:
    """Render the invoice to PDF bytes with WeasyPrint."""
    html = build_invoice_html(invoice)
    try:
        from weasyprint import HTML
    except (ImportError, OSError) as exc:
        # OSError: WeasyPrint installed but pango/cairo missing
        logger.error("WeasyPrint not available, cannot render invoice PDF: %s", exc)
        raise ExternalServiceError("PDF", "renderer not installed", code=ErrorCode.PDF_ERROR) from exc

    try:
        pdf_bytes = HTML(string=html).write_pdf()
    except Exception as exc:
        logger.error("WeasyPrint failed for invoice %s: %s", invoice.get("invoice_no"), exc)
        raise ExternalServiceError("PDF", str(exc), code=ErrorCode.PDF_ERROR) from exc

    logger.info("Generated invoice PDF %s: %d bytes", invoice.get("invoice_no"), len(pdf_bytes))
    return pdf_bytes
