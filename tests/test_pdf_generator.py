"""
PDF generator tests.

Tests:
1. test_renders_a_pdf
2. test_same_quote_renders_identical_bytes
3. test_different_quotes_render_different_bytes
4. test_filename
5. test_amount_formatting
6. test_unicode_text_is_made_latin1_safe
7. test_long_quotes_span_pages
"""

import re

from quotation.pdf_generator import _fmt, _safe, generate_quote_pdf, suggested_filename
from quotation.quote_assembler import build_service_details
from quotation.schemas import CalculatorInput, CustomerInfo


# --- Test fixtures ---

def _sample_quote(assembler, pricing_engine, company, notes=None, **overrides):
    data = {
        "service_category": "zahnarztpraxis",
        "quantity": 220,
        "location": "bonn",
        "frequency": "5x-weekly",
        "additional_services": {"gypsum_room_cleaning", "handle_disinfection"},
        "security_level": "enhanced",
        "special_requirements": "Reinigung nur nach 18 Uhr",
    }
    data.update(overrides)
    calc = CalculatorInput(**data)
    estimate = pricing_engine.estimate(calc)
    details = build_service_details(calc, assembler.catalog)
    customer = CustomerInfo(
        name="Dr. Jürgen Weiß", email="praxis@example.de", phone="0228 998877",
        company="Zahnarztpraxis Weiß", address="Poppelsdorfer Allee 5, 53115 Bonn",
    )
    return assembler.assemble(estimate, customer, company, details, notes=notes)


def test_renders_a_pdf(assembler, pricing_engine, company):
    quote = _sample_quote(assembler, pricing_engine, company, notes="Schlüssel „beim“ Empfang – danke")
    pdf = generate_quote_pdf(quote)
    assert isinstance(pdf, bytes)
    assert pdf.startswith(b"%PDF-")
    assert len(pdf) > 1000


def test_same_quote_renders_identical_bytes(assembler, pricing_engine, company):
    quote = _sample_quote(assembler, pricing_engine, company)
    assert generate_quote_pdf(quote) == generate_quote_pdf(quote)


def test_different_quotes_render_different_bytes(assembler, pricing_engine, company):
    quote = _sample_quote(assembler, pricing_engine, company)
    other = quote.model_copy(update={"total_amount": quote.total_amount + 1})
    assert generate_quote_pdf(quote) != generate_quote_pdf(other)


def test_filename(assembler, pricing_engine, company):
    quote = _sample_quote(assembler, pricing_engine, company)
    # created 2024-03-15
    assert suggested_filename(quote) == f"Angebot_{quote.number}_15-03-2024.pdf"


def test_amount_formatting():
    assert _fmt(1234.5) == "1.234,50 EUR"
    assert _fmt(-71.45) == "-71,45 EUR"
    assert _fmt(0) == "0,00 EUR"
    assert _fmt(None) == "0,00 EUR"


def test_unicode_text_is_made_latin1_safe():
    text = _safe("Preis: 100 € – „Sonderpreis“ • Größe")
    text.encode("latin-1")
    assert "EUR" in text
    assert "Größe" in text
    assert _safe("") == ""


def test_long_quotes_span_pages(assembler, pricing_engine, company):
    quote = _sample_quote(assembler, pricing_engine, company, notes="Hinweis. " * 600)
    pdf = generate_quote_pdf(quote)
    page_count = int(re.search(rb"/Count (\d+)", pdf).group(1))
    assert page_count >= 2
