"""
PDF Quote Generator.

Renders a Quote into a German-language "Angebot" document with fpdf2 (pure
Python, built-in fonts only).

Sections:
1. Header: provider, quote number and dates
2. Customer
3. Service details
4. Items table
5. Totals (net, VAT, gross)
6. Notes
7. Terms

The PDF creation date is pinned to quote.created_at, so the same quote always
renders to the same bytes.
"""

from fpdf import FPDF

from .schemas import Quote


TAGLINE = "Professionelle Reinigungsdienstleistungen"

TERMS = [
    "Alle Preise verstehen sich zzgl. der gesetzlichen Mehrwertsteuer.",
    "Zahlungsziel: 14 Tage netto nach Rechnungsstellung.",
    "Bei Stornierung weniger als 24h vor Termin wird eine Ausfallgebühr von 50% berechnet.",
]

# (label, width) -- widths sum to the 190mm printable width of A4
ITEM_COLUMNS = [
    ("Pos.", 12),
    ("Beschreibung", 78),
    ("Menge", 20),
    ("Einheit", 20),
    ("Einzelpreis", 30),
    ("Gesamtpreis", 30),
]
RIGHT_ALIGNED = {"Pos.", "Menge", "Einzelpreis", "Gesamtpreis"}


def _fmt(amount) -> str:
    """Format a number as 1.234,56 EUR (built-in fonts have no euro sign)"""
    try:
        text = f"{float(amount):,.2f}"
    except (ValueError, TypeError):
        text = "0.00"
    return text.replace(",", "X").replace(".", ",").replace("X", ".") + " EUR"


def _fmt_qty(quantity) -> str:
    return f"{float(quantity):g}".replace(".", ",")


def _safe(text: str) -> str:
    """Replace Unicode chars that can't be rendered by built-in PDF fonts (latin-1)."""
    if not text:
        return ""
    return (
        text
        .replace("\u20ac", "EUR")  # euro sign
        .replace("\u2022", "-")    # bullet
        .replace("\u2014", " - ")  # em dash
        .replace("\u2013", "-")    # en dash
        .replace("\u201e", '"')    # low double quote
        .replace("\u201c", '"')    # left double quote
        .replace("\u201d", '"')    # right double quote
        .replace("\u2018", "'")    # left single quote
        .replace("\u2019", "'")    # right single quote
        .encode("latin-1", errors="replace")
        .decode("latin-1")
    )


def suggested_filename(quote: Quote) -> str:
    return f"Angebot_{quote.number}_{quote.created_at:%d-%m-%Y}.pdf"


class QuotePDF(FPDF):
    """A4 quote document with a company footer on every page."""

    def __init__(self, footer_text=""):
        super().__init__(format="A4")
        self.footer_text = footer_text
        self.set_auto_page_break(auto=True, margin=25)

    def header(self):
        pass  # Only the first page carries a header, drawn in generate_quote_pdf

    def footer(self):
        self.set_y(-18)
        self.set_font("Helvetica", "", 7)
        self.set_text_color(120, 120, 120)
        self.cell(0, 4, _safe(self.footer_text), align="C", new_x="LMARGIN", new_y="NEXT")
        self.cell(0, 4, f"Seite {self.page_no()}/{{nb}}", align="C")
        self.set_text_color(0, 0, 0)

    def section_header(self, title):
        """Render a section header bar."""
        self.set_font("Helvetica", "B", 10)
        self.set_fill_color(30, 64, 124)
        self.set_text_color(255, 255, 255)
        self.cell(0, 7, f"  {title}", fill=True, new_x="LMARGIN", new_y="NEXT")
        self.set_text_color(0, 0, 0)
        self.ln(2)

    def key_value(self, key, value):
        self.set_font("Helvetica", "B", 9)
        self.cell(50, 5, _safe(key))
        self.set_font("Helvetica", "", 9)
        self.multi_cell(0, 5, _safe(value), new_x="LMARGIN", new_y="NEXT")

    def table_header(self, cols):
        """Render a table header row. cols: [(label, width), ...]"""
        self.set_font("Helvetica", "B", 8)
        self.set_fill_color(240, 240, 240)
        for label, width in cols:
            align = "R" if label in RIGHT_ALIGNED else "L"
            self.cell(width, 6, label, border="B", fill=True, align=align)
        self.ln()

    def table_row(self, values, cols):
        """Render a table data row."""
        self.set_font("Helvetica", "", 8)
        for val, (label, width) in zip(values, cols):
            align = "R" if label in RIGHT_ALIGNED else "L"
            self.cell(width, 5.5, _safe(str(val)), align=align)
        self.ln()

    def total_row(self, label, amount, bold=False):
        self.set_font("Helvetica", "B" if bold else "", 10 if bold else 9)
        self.cell(140, 6, label, align="R")
        self.cell(50, 6, _fmt(amount), align="R")
        self.ln()


def _company_lines(quote: Quote) -> list:
    company = quote.company
    lines = [
        f"{company.street}, {company.postal_code} {company.city}, {company.country}",
        f"Tel.: {company.phone} | {company.email} | {company.website}",
    ]
    return lines


def _footer_text(quote: Quote) -> str:
    company = quote.company
    parts = [company.name, f"Steuernr.: {company.tax_id}", company.registration_number]
    if company.vat_number:
        parts.append(f"USt-IdNr.: {company.vat_number}")
    return " | ".join(p for p in parts if p)


def generate_quote_pdf(quote: Quote) -> bytes:
    """
    Generate the PDF document for a quote.

    Returns:
        PDF bytes
    """
    pdf = QuotePDF(footer_text=_footer_text(quote))
    pdf.set_creation_date(quote.created_at)
    pdf.set_title(_safe(f"Angebot {quote.number}"))
    pdf.set_author(_safe(quote.company.name))
    pdf.alias_nb_pages()
    pdf.add_page()

    # ── SECTION 1: Header ──
    pdf.set_font("Helvetica", "B", 18)
    pdf.cell(120, 9, _safe(quote.company.name))
    pdf.cell(70, 9, "ANGEBOT", align="R", new_x="LMARGIN", new_y="NEXT")

    pdf.set_font("Helvetica", "I", 9)
    pdf.set_text_color(100, 100, 100)
    pdf.cell(0, 5, TAGLINE, new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "", 8)
    for line in _company_lines(quote):
        pdf.cell(0, 4, _safe(line), new_x="LMARGIN", new_y="NEXT")
    pdf.set_text_color(0, 0, 0)
    pdf.ln(4)

    pdf.set_font("Helvetica", "", 9)
    pdf.cell(0, 5, _safe(f"Angebotsnummer: {quote.number}"), new_x="LMARGIN", new_y="NEXT")
    pdf.cell(0, 5, f"Datum: {quote.created_at:%d.%m.%Y}", new_x="LMARGIN", new_y="NEXT")
    pdf.cell(0, 5, f"Gültig bis: {quote.valid_until:%d.%m.%Y}", new_x="LMARGIN", new_y="NEXT")
    pdf.ln(4)

    # ── SECTION 2: Customer ──
    customer = quote.customer
    pdf.section_header("ANGEBOT FÜR")
    pdf.set_font("Helvetica", "B", 10)
    pdf.cell(0, 5, _safe(customer.name), new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "", 9)
    for value in (customer.company, customer.address, customer.email, customer.phone):
        if value:
            pdf.cell(0, 5, _safe(value), new_x="LMARGIN", new_y="NEXT")
    pdf.ln(4)

    # ── SECTION 3: Service details ──
    details = quote.service_details
    pdf.section_header("LEISTUNGSDETAILS")
    pdf.key_value("Leistung:", details.service_name)
    pdf.key_value("Umfang:", f"{_fmt_qty(details.quantity)} {details.unit}")
    pdf.key_value("Standort:", details.location)
    pdf.key_value("Häufigkeit:", details.frequency)
    pdf.key_value("Ausführung:", details.urgency)
    if details.additional_services:
        pdf.key_value("Zusatzleistungen:", ", ".join(details.additional_services))
    if details.property_type:
        pdf.key_value("Objektart:", details.property_type)
    if details.special_requirements:
        pdf.key_value("Besondere Anforderungen:", details.special_requirements)
    pdf.ln(4)

    # ── SECTION 4: Items ──
    pdf.section_header("LEISTUNGSÜBERSICHT (MONATLICH)")
    pdf.table_header(ITEM_COLUMNS)
    for position, item in enumerate(quote.items, start=1):
        label = item.label if len(item.label) <= 48 else item.label[:45] + "..."
        pdf.table_row(
            [
                str(position),
                label,
                _fmt_qty(item.quantity),
                item.unit,
                _fmt(item.unit_price),
                _fmt(item.total_price),
            ],
            ITEM_COLUMNS,
        )
    pdf.set_draw_color(200, 200, 200)
    pdf.line(pdf.l_margin, pdf.get_y(), pdf.w - pdf.r_margin, pdf.get_y())
    pdf.ln(2)

    # ── SECTION 5: Totals ──
    pdf.total_row("Zwischensumme", quote.subtotal)
    pdf.total_row(f"MwSt. ({quote.vat_rate * 100:g}%)", quote.vat_amount)
    pdf.ln(1)
    pdf.set_fill_color(30, 64, 124)
    pdf.set_text_color(255, 255, 255)
    pdf.set_font("Helvetica", "B", 12)
    pdf.cell(140, 9, "Gesamtbetrag", fill=True, align="R")
    pdf.cell(50, 9, f"{_fmt(quote.total_amount)}  ", fill=True, align="R")
    pdf.set_text_color(0, 0, 0)
    pdf.ln(13)

    # ── SECTION 6: Notes ──
    if quote.notes:
        pdf.section_header("ANMERKUNGEN")
        pdf.set_font("Helvetica", "", 9)
        pdf.multi_cell(0, 4.5, _safe(quote.notes), new_x="LMARGIN", new_y="NEXT")
        pdf.ln(4)

    # ── SECTION 7: Terms ──
    pdf.section_header("BEDINGUNGEN")
    pdf.set_font("Helvetica", "", 8)
    terms = TERMS + [f"Dieses Angebot ist gültig bis zum {quote.valid_until:%d.%m.%Y}."]
    for term in terms:
        pdf.multi_cell(0, 4.5, _safe(f"- {term}"), new_x="LMARGIN", new_y="NEXT")

    return bytes(pdf.output())
