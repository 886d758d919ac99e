"""
Quote assembler tests.

Tests:
1-5.   Items and totals
6-8.   Numbering, ids and validity
9-15.  Validation errors and warnings
16-23. Status lifecycle
"""

import random
import re
from datetime import timedelta

import pytest
from pydantic import ValidationError

from quotation.document_cache import quote_checksum
from quotation.models import AdjustmentCategory, QuoteItemCategory, QuoteStatus
from quotation.quote_assembler import (
    QuoteAssembler,
    StatusTransitionError,
    build_service_details,
)
from quotation.schemas import (
    CalculatorInput,
    CustomerInfo,
    PriceBreakdownLine,
    Quote,
    ValidationFailure,
)


# --- Test fixtures ---

def _sample_input(**overrides):
    data = {
        "service_category": "bueroreinigung",
        "quantity": 150,
        "location": "koeln-center",
        "frequency": "weekly",
        "additional_services": {"disinfection", "furniture_cleaning"},
        "urgency": "express",
    }
    data.update(overrides)
    return CalculatorInput(**data)


def _sample_customer(**overrides):
    data = {
        "name": "Anna Schmidt",
        "email": "anna.schmidt@example.de",
        "phone": "+49 221 1234567",
        "company": "Schmidt Consulting GmbH",
        "address": "Hohenzollernring 12, 50672 Köln",
    }
    data.update(overrides)
    return CustomerInfo(**data)


def _assemble(assembler, pricing_engine, company, data=None, customer=None, notes=None):
    data = data or _sample_input()
    estimate = pricing_engine.estimate(data)
    details = build_service_details(data, assembler.catalog)
    return assembler.assemble(estimate, customer or _sample_customer(), company, details, notes=notes)


@pytest.fixture
def quote(assembler, pricing_engine, company):
    result = _assemble(assembler, pricing_engine, company)
    assert isinstance(result, Quote)
    return result


# ============================================================
# Items and totals
# ============================================================

def test_one_item_per_breakdown_line(assembler, pricing_engine, company, quote):
    estimate = pricing_engine.estimate(_sample_input())
    assert len(quote.items) == len(estimate.breakdown)
    assert [i.id for i in quote.items] == [f"item_{n}" for n in range(1, len(quote.items) + 1)]
    assert [i.total_price for i in quote.items] == [l.amount for l in estimate.breakdown]


def test_item_shapes(quote):
    service, discount, location, furniture, disinfection, urgency = quote.items

    assert service.category == QuoteItemCategory.SERVICE
    assert service.label == "Büroreinigung"
    assert service.quantity == 150
    assert service.unit == "m²"
    assert service.unit_price == pytest.approx(service.total_price / 150, abs=1e-4)

    assert discount.category == QuoteItemCategory.DISCOUNT
    assert discount.total_price < 0
    assert discount.unit == "Pauschal"
    assert discount.description == "Rabatt für 1x wöchentlich Reinigung"

    assert location.category == QuoteItemCategory.SURCHARGE
    assert location.description == "Standortabhängiger Preisaufschlag"

    assert furniture.category == QuoteItemCategory.ADDITIONAL
    assert (furniture.quantity, furniture.unit) == (1, "Pauschal")

    # per-unit add-on keeps quantity and catalog unit price
    assert disinfection.category == QuoteItemCategory.ADDITIONAL
    assert (disinfection.quantity, disinfection.unit, disinfection.unit_price) == (150, "m²", 0.50)

    assert urgency.category == QuoteItemCategory.SURCHARGE
    assert urgency.label == "Express-Service"


def test_totals_invariants(quote):
    assert quote.subtotal == round(sum(i.total_price for i in quote.items), 2)
    assert quote.vat_rate == 0.19
    assert quote.vat_amount == round(quote.subtotal * 0.19, 2)
    assert quote.total_amount == round(quote.subtotal + quote.vat_amount, 2)


def test_subtotal_matches_estimate_total(pricing_engine, quote):
    estimate = pricing_engine.estimate(_sample_input())
    assert quote.subtotal == pytest.approx(estimate.total_price, abs=0.01)


def test_service_details_use_display_names(catalog):
    details = build_service_details(
        _sample_input(property_type="office", special_requirements="Nur abends"), catalog,
    )
    assert details.service_name == "Büroreinigung"
    assert details.location == "Köln Innenstadt"
    assert details.frequency == "1x wöchentlich"
    assert details.urgency == "Express-Service"
    assert details.additional_services == ("Möbelreinigung", "Desinfektion")
    assert details.special_requirements == "Nur abends"


# ============================================================
# Numbering and validity
# ============================================================

def test_quote_number_format(quote):
    # created 2024-03-15 09:30 UTC
    assert re.fullmatch(r"SUZ-20240315-0930\d{2}", quote.number)


def test_ids_are_opaque_and_distinct(assembler, pricing_engine, company):
    first = _assemble(assembler, pricing_engine, company)
    second = _assemble(assembler, pricing_engine, company)
    assert first.id.startswith("quote_")
    assert first.id != second.id


def test_seeded_rng_makes_identity_reproducible(catalog, clock, pricing_engine, company):
    a = _assemble(QuoteAssembler(catalog, clock=clock, rng=random.Random(7)), pricing_engine, company)
    b = _assemble(QuoteAssembler(catalog, clock=clock, rng=random.Random(7)), pricing_engine, company)
    assert (a.id, a.number) == (b.id, b.number)


def test_validity_and_status(quote, clock):
    assert quote.created_at == clock.now
    assert quote.valid_until == clock.now + timedelta(days=30)
    assert quote.status == QuoteStatus.DRAFT


def test_notes_are_carried(assembler, pricing_engine, company):
    quote = _assemble(assembler, pricing_engine, company, notes="Zugang über Hintereingang")
    assert quote.notes == "Zugang über Hintereingang"


# ============================================================
# Validation
# ============================================================

def test_missing_customer_name_and_email(assembler, pricing_engine, company):
    result = _assemble(assembler, pricing_engine, company, customer=CustomerInfo())
    assert isinstance(result, ValidationFailure)
    assert {(e.field, e.code) for e in result.errors} == {
        ("customer.name", "REQUIRED_FIELD"),
        ("customer.email", "REQUIRED_FIELD"),
    }


@pytest.mark.parametrize("email", ["anna", "anna@example", "anna @example.de", "@example.de"])
def test_invalid_email(assembler, pricing_engine, company, email):
    result = _assemble(assembler, pricing_engine, company, customer=_sample_customer(email=email))
    assert isinstance(result, ValidationFailure)
    assert result.errors[0].code == "INVALID_EMAIL"
    assert result.errors[0].message == "Ungültige E-Mail-Adresse"


def test_missing_phone_is_only_a_warning(assembler, pricing_engine, company):
    quote = _assemble(assembler, pricing_engine, company, customer=_sample_customer(phone=None))
    assert isinstance(quote, Quote)
    warnings = assembler.validate_quote(quote).warnings
    assert [w.code for w in warnings] == ["MISSING_PHONE"]


def test_high_value_warning(assembler, pricing_engine, company):
    data = _sample_input(quantity=9000, frequency="daily", urgency="emergency")
    quote = _assemble(assembler, pricing_engine, company, data=data)
    assert quote.total_amount > 10000
    warnings = assembler.validate_quote(quote).warnings
    assert [w.code for w in warnings] == ["HIGH_VALUE"]
    assert warnings[0].message == "Sehr hoher Auftragswert - Prüfung empfohlen"


def test_quote_without_items_or_amount_is_invalid(assembler, quote):
    empty = quote.model_copy(update={"items": [], "subtotal": 0.0, "vat_amount": 0.0, "total_amount": 0.0})
    codes = {e.code for e in assembler.validate_quote(empty).errors}
    assert codes == {"REQUIRED_FIELD", "INVALID_AMOUNT"}


def test_zero_quantity_details_are_reported_not_raised(assembler, pricing_engine, company):
    data = _sample_input()
    estimate = pricing_engine.estimate(data)
    details = build_service_details(data, assembler.catalog).model_copy(update={"quantity": 0})

    result = assembler.assemble(estimate, _sample_customer(), company, details)
    assert isinstance(result, ValidationFailure)
    assert [(e.field, e.code) for e in result.errors] == [("service_details.quantity", "INVALID_AMOUNT")]


def test_malformed_add_on_line_is_reported_not_raised(assembler, pricing_engine, company):
    data = _sample_input()
    estimate = pricing_engine.estimate(data)
    broken = PriceBreakdownLine(
        label="Sonderleistung", amount=12.0, category=AdjustmentCategory.ADDITIONAL, code="extra",
    )
    estimate = estimate.model_copy(update={"breakdown": estimate.breakdown + (broken,)})
    details = build_service_details(data, assembler.catalog)

    result = assembler.assemble(estimate, _sample_customer(), company, details)
    assert isinstance(result, ValidationFailure)
    assert [e.code for e in result.errors] == ["UNKNOWN_VALUE"]
    assert "extra" in result.errors[0].message


# ============================================================
# Status lifecycle
# ============================================================

def test_draft_to_sent_to_accepted(assembler, quote):
    sent = assembler.mark_sent(quote)
    assert sent.status == QuoteStatus.SENT
    accepted = assembler.transition(sent, QuoteStatus.ACCEPTED)
    assert accepted.status == QuoteStatus.ACCEPTED
    # originals untouched
    assert quote.status == QuoteStatus.DRAFT
    assert sent.status == QuoteStatus.SENT


def test_accepted_cannot_go_back_to_sent(assembler, quote):
    accepted = assembler.transition(assembler.mark_sent(quote), QuoteStatus.ACCEPTED)
    with pytest.raises(StatusTransitionError):
        assembler.transition(accepted, QuoteStatus.SENT)


@pytest.mark.parametrize("target", [QuoteStatus.ACCEPTED, QuoteStatus.REJECTED, QuoteStatus.EXPIRED])
def test_draft_cannot_skip_sent(assembler, quote, target):
    with pytest.raises(StatusTransitionError):
        assembler.transition(quote, target)


def test_transition_error_is_a_value_error(assembler, quote):
    with pytest.raises(ValueError, match="draft.*accepted"):
        assembler.transition(quote, QuoteStatus.ACCEPTED)


def test_quote_is_immutable(quote):
    with pytest.raises(ValidationError):
        quote.status = QuoteStatus.SENT


def test_nested_quote_parts_are_immutable(quote):
    checksum = quote_checksum(quote)
    with pytest.raises(ValidationError):
        quote.customer.email = "changed@example.de"
    with pytest.raises(ValidationError):
        quote.service_details.quantity = 1
    with pytest.raises(ValidationError):
        quote.items[0].total_price = 0.0
    with pytest.raises(AttributeError):
        quote.items.pop()
    assert len(quote.items) == 6
    assert quote_checksum(quote) == checksum
    assert quote.subtotal == round(sum(i.total_price for i in quote.items), 2)


def test_effective_status_expires_open_quotes(assembler, quote, clock):
    sent = assembler.mark_sent(quote)
    assert assembler.effective_status(sent) == QuoteStatus.SENT
    clock.advance(days=31)
    assert assembler.effective_status(sent) == QuoteStatus.EXPIRED
    assert assembler.effective_status(quote) == QuoteStatus.EXPIRED
    # stored status is unchanged
    assert sent.status == QuoteStatus.SENT


def test_expired_quote_can_only_be_marked_expired(assembler, quote, clock):
    sent = assembler.mark_sent(quote)
    clock.advance(days=31)
    with pytest.raises(StatusTransitionError, match="expired"):
        assembler.transition(sent, QuoteStatus.ACCEPTED)
    expired = assembler.transition(sent, QuoteStatus.EXPIRED)
    assert expired.status == QuoteStatus.EXPIRED
    assert assembler.effective_status(expired) == QuoteStatus.EXPIRED
