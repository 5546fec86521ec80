"""
Invoices API - thin layer over the invoice ledger.

Create, update and delete each run as one ledger transaction; the response
is the invoice re-read after commit.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Response, status

from workshop.api.deps import Ledger, Mailer
from workshop.exceptions import ErrorCode, ExternalServiceError
from workshop.schemas.invoice import (
    InvoiceCreate,
    InvoiceEmailRequest,
    InvoiceResponse,
    InvoiceSummary,
    InvoiceUpdate,
)
from workshop.services.email_service import pdf_attachment
from workshop.services.invoice_pdf import invoice_filename, render_invoice_pdf

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_EMAIL_BODY = "Please find attached your invoice."


async def _load_or_404(ledger, invoice_id: int) -> dict:
    details = await ledger.load_details(invoice_id)
    if not details:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
    return details


@router.post("", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(data: InvoiceCreate, ledger: Ledger):
    """Create the invoice for a completed job."""
    invoice_id = await ledger.create_invoice(data)
    return await _load_or_404(ledger, invoice_id)


@router.get("", response_model=list[InvoiceSummary])
async def list_invoices(
    ledger: Ledger,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    job_id: Optional[int] = Query(None, alias="jobId"),
):
    """List invoices, newest first."""
    return await ledger.list_invoices(start_date, end_date, job_id)


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(invoice_id: int, ledger: Ledger):
    return await _load_or_404(ledger, invoice_id)


@router.put("/{invoice_id}", response_model=InvoiceResponse)
async def update_invoice(invoice_id: int, data: InvoiceUpdate, ledger: Ledger):
    """Update payment fields, notes, lines or extras. Totals are recomputed."""
    await ledger.update_invoice(invoice_id, data)
    return await _load_or_404(ledger, invoice_id)


@router.delete("/{invoice_id}")
async def delete_invoice(invoice_id: int, ledger: Ledger):
    """Delete an invoice and return its consumables to stock."""
    await ledger.delete_invoice(invoice_id)
    return {"message": "Invoice deleted"}


@router.get("/{invoice_id}/pdf")
async def download_invoice_pdf(invoice_id: int, ledger: Ledger):
    details = await _load_or_404(ledger, invoice_id)
    pdf_bytes = render_invoice_pdf(details)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{invoice_filename(details)}"'},
    )


@router.post("/{invoice_id}/email")
async def email_invoice(invoice_id: int, data: InvoiceEmailRequest, ledger: Ledger, mailer: Mailer):
    """Email the invoice PDF to `to`, or to the customer's address on file."""
    details = await _load_or_404(ledger, invoice_id)

    recipient = (data.to or "").strip() or details.get("customer_email")
    if not recipient:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Recipient email is required")

    pdf_bytes = render_invoice_pdf(details)
    result = await mailer.send_email(
        to=recipient,
        subject=data.subject or "Garage Invoice",
        body=data.message or DEFAULT_EMAIL_BODY,
        attachments=[pdf_attachment(invoice_filename(details), pdf_bytes)],
    )
    if not result.get("success"):
        logger.error("Invoice %s email to %s failed: %s", details["invoice_no"], recipient, result.get("error"))
        raise ExternalServiceError("Email", result.get("error") or "delivery failed", code=ErrorCode.EMAIL_ERROR)

    logger.info("Invoice %s emailed to %s", details["invoice_no"], recipient)
    return {"message": "Invoice emailed successfully"}
