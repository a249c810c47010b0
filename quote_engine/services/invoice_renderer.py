"""PDF rendering for settlement invoices."""

from __future__ import annotations

from decimal import Decimal
from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from quote_engine.models import ContractorQuote, Invoice

_HEADER_BLUE = colors.HexColor("#3498DB")
_DARK = colors.HexColor("#2C3E50")
_STRIPE = colors.HexColor("#F8F9FA")


def _money(value: Decimal) -> str:
    return f"{Decimal(value):,.2f}"


def render_invoice_pdf(invoice: Invoice, quotation: ContractorQuote) -> bytes:
    """Render an invoice and its quotation line items to PDF bytes."""
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=inch,
        leftMargin=inch,
        topMargin=inch,
        bottomMargin=inch,
        title=invoice.invoice_number,
    )
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "InvoiceTitle",
        parent=styles["Heading1"],
        fontSize=22,
        textColor=_DARK,
        spaceAfter=24,
        alignment=TA_CENTER,
    )

    elements = [
        Paragraph("Solar Quote Engine", title_style),
        Paragraph(f"INVOICE {invoice.invoice_number}", styles["Heading2"]),
        Spacer(1, 0.2 * inch),
    ]

    header = Table(
        [
            ["Contractor:", str(invoice.contractor_id), "Issued:", f"{invoice.issued_at:%B %d, %Y}"],
            ["Requester:", str(invoice.user_id), "Due:", f"{invoice.due_date:%B %d, %Y}"],
            ["Request:", str(invoice.request_id), "Status:", invoice.status.value],
            ["VAT number:", quotation.contractor_vat_number or "-", "Quotation:", str(quotation.id)],
        ],
        colWidths=[1.2 * inch, 1.8 * inch, 1.0 * inch, 1.8 * inch],
    )
    header.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
                ("FONTNAME", (2, 0), (2, -1), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 10),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 8),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ]
        )
    )
    elements.extend([header, Spacer(1, 0.3 * inch)])

    rows = [["Item", "Units", "Unit price", "Total"]]
    for item in quotation.line_items:
        rows.append([item.name, str(item.units), _money(item.unit_price), _money(item.total_price)])
    totals = [
        ("Gross (user price)", invoice.gross_amount),
        ("Less overprice", invoice.overprice_deduction),
        ("Less commission", invoice.commission_deduction),
        ("Less penalties", invoice.penalty_deduction),
        ("Net", invoice.net_amount),
        (f"VAT ({invoice.vat_percent}%)", invoice.vat_amount),
        ("Total", invoice.total_with_vat),
    ]
    for label, amount in totals:
        rows.append(["", "", label, _money(amount)])

    items = Table(rows, colWidths=[2.8 * inch, 0.7 * inch, 1.5 * inch, 1.0 * inch])
    summary_start = -len(totals)
    items.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), _HEADER_BLUE),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, 0), 11),
                ("BOTTOMPADDING", (0, 0), (-1, 0), 10),
                ("ROWBACKGROUNDS", (0, 1), (-1, summary_start - 1), [colors.white, _STRIPE]),
                ("GRID", (0, 0), (-1, summary_start - 1), 0.5, colors.grey),
                ("FONTNAME", (2, summary_start), (-1, -1), "Helvetica-Bold"),
                ("LINEABOVE", (2, summary_start), (-1, summary_start), 1, _DARK),
                ("LINEABOVE", (2, -1), (-1, -1), 2, _DARK),
                ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ]
        )
    )
    elements.extend([items, Spacer(1, 0.4 * inch)])
    elements.append(
        Paragraph(
            f"Warranty: {quotation.warranty_terms}<br/>Maintenance: {quotation.maintenance_terms}",
            styles["Normal"],
        )
    )
    if invoice.payment_reference:
        elements.append(Spacer(1, 0.2 * inch))
        elements.append(Paragraph(f"<b>Paid</b> ref. {invoice.payment_reference}", styles["Normal"]))

    doc.build(elements)
    return buffer.getvalue()
