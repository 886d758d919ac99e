"""
Quote Assembler: PriceEstimate + customer -> Quote.

Turns the priced breakdown into numbered quote items, adds VAT, numbers and
dates the quote, and validates the result. Also owns the quote status
lifecycle:

    draft -> sent -> accepted | rejected | expired

Quotes are immutable. A status change returns a new Quote.
"""

import logging
import random
import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Union

from .catalog import AddOnPricing, RateCatalog
from .models import AdjustmentCategory, QuoteItemCategory, QuoteStatus
from .schemas import (
    CalculatorInput,
    CompanyInfo,
    CustomerInfo,
    PriceBreakdownLine,
    PriceEstimate,
    Quote,
    QuoteItem,
    ServiceDetails,
    ValidationFailure,
    ValidationIssue,
)

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

FLAT_UNIT = "Pauschal"

ALLOWED_TRANSITIONS = {
    QuoteStatus.DRAFT: {QuoteStatus.SENT},
    QuoteStatus.SENT: {QuoteStatus.ACCEPTED, QuoteStatus.REJECTED, QuoteStatus.EXPIRED},
    QuoteStatus.ACCEPTED: set(),
    QuoteStatus.REJECTED: set(),
    QuoteStatus.EXPIRED: set(),
}


class StatusTransitionError(ValueError):
    """Raised for a status change outside the quote lifecycle."""

    def __init__(self, current: QuoteStatus, target: QuoteStatus, reason: str = ""):
        self.current = current
        self.target = target
        message = f"Cannot move quote from '{current.value}' to '{target.value}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    """Naive datetimes (e.g. from JSON without an offset) are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def build_service_details(data: CalculatorInput, catalog: RateCatalog) -> ServiceDetails:
    """Display names for everything the customer picked, for the quote header."""
    service = catalog.service(data.service_category)
    location = catalog.location(data.location)
    frequency = catalog.frequency(data.frequency)
    urgency = catalog.urgency(data.urgency)
    add_ons = [
        option.name for option in catalog.additional_services_for(data.service_category)
        if option.key in data.additional_services
    ]
    return ServiceDetails(
        service_category=data.service_category,
        service_name=service.name,
        service_description=service.description,
        quantity=data.quantity,
        unit=service.unit_label,
        location=location.name,
        frequency=frequency.name,
        urgency=urgency.name,
        additional_services=add_ons,
        property_type=data.property_type,
        special_requirements=data.special_requirements,
    )


class QuoteAssembler:

    def __init__(
        self,
        catalog: RateCatalog,
        vat_rate: float = 0.19,
        validity_days: int = 30,
        number_prefix: str = "SUZ",
        high_value_threshold: float = 10000.0,
        clock: Callable[[], datetime] = _utcnow,
        rng: Optional[random.Random] = None,
    ):
        self.catalog = catalog
        self.vat_rate = vat_rate
        self.validity_days = validity_days
        self.number_prefix = number_prefix
        self.high_value_threshold = high_value_threshold
        self.clock = clock
        self.rng = rng or random.Random()

    # --- Identity ---

    def generate_quote_number(self, created_at: datetime) -> str:
        """PREFIX-YYYYMMDD-HHMMrr. Display value only, not guaranteed unique."""
        suffix = f"{self.rng.randrange(100):02d}"
        return f"{self.number_prefix}-{created_at:%Y%m%d}-{created_at:%H%M}{suffix}"

    def generate_quote_id(self) -> str:
        return f"quote_{uuid.UUID(int=self.rng.getrandbits(128), version=4).hex}"

    # --- Items ---

    def _item_for_line(self, index: int, line: PriceBreakdownLine,
                       details: ServiceDetails) -> QuoteItem:
        item_id = f"item_{index}"

        if line.category == AdjustmentCategory.BASE:
            return QuoteItem(
                id=item_id,
                label=details.service_name,
                description=f"{details.service_description} ({details.quantity:g} {details.unit})",
                quantity=details.quantity,
                unit=details.unit,
                unit_price=round(line.amount / details.quantity, 4),
                total_price=line.amount,
                category=QuoteItemCategory.SERVICE,
            )

        if line.category == AdjustmentCategory.ADDITIONAL:
            option = self.catalog.additional_service(line.code.partition(":")[2])
            if option is not None and option.pricing == AddOnPricing.PER_UNIT:
                return QuoteItem(
                    id=item_id,
                    label=line.label,
                    description=f"Zusätzliche Leistung: {line.label}",
                    quantity=details.quantity,
                    unit=details.unit,
                    unit_price=option.price,
                    total_price=line.amount,
                    category=QuoteItemCategory.ADDITIONAL,
                )
            return self._flat_item(item_id, line, f"Zusätzliche Leistung: {line.label}",
                                   QuoteItemCategory.ADDITIONAL)

        if line.category == AdjustmentCategory.DISCOUNT:
            category = QuoteItemCategory.DISCOUNT
        else:
            category = QuoteItemCategory.SURCHARGE
        return self._flat_item(item_id, line, self._adjustment_description(line, details), category)

    @staticmethod
    def _flat_item(item_id, line, description, category) -> QuoteItem:
        return QuoteItem(
            id=item_id,
            label=line.label,
            description=description,
            quantity=1,
            unit=FLAT_UNIT,
            unit_price=line.amount,
            total_price=line.amount,
            category=category,
        )

    @staticmethod
    def _adjustment_description(line: PriceBreakdownLine, details: ServiceDetails) -> str:
        if line.code == "frequency":
            kind = "Rabatt" if line.amount < 0 else "Aufschlag"
            return f"{kind} für {details.frequency.lower()} Reinigung"
        if line.code == "location":
            if line.amount < 0:
                return "Standortabhängiger Preisnachlass"
            return "Standortabhängiger Preisaufschlag"
        if line.code == "urgency":
            return f"Aufpreis für {line.label}"
        if line.code == "site":
            return "Zuschlag für Gebäude, Zugang und Sicherheitsanforderungen"
        return line.label

    def build_items(self, estimate: PriceEstimate, details: ServiceDetails) -> List[QuoteItem]:
        return [
            self._item_for_line(index, line, details)
            for index, line in enumerate(estimate.breakdown, start=1)
        ]

    # --- Validation ---

    @staticmethod
    def _check_inputs(estimate: PriceEstimate, details: ServiceDetails) -> List[ValidationIssue]:
        """Problems that would make the estimate impossible to itemize."""
        errors = []
        if details.quantity <= 0:
            errors.append(ValidationIssue(
                field="service_details.quantity",
                message="Menge muss größer als 0 sein",
                code="INVALID_AMOUNT",
            ))
        for line in estimate.breakdown:
            if line.category == AdjustmentCategory.ADDITIONAL and not line.code.startswith("addon:"):
                errors.append(ValidationIssue(
                    field="breakdown",
                    message=f"Unbekannte Zusatzleistung: {line.code}",
                    code="UNKNOWN_VALUE",
                ))
        return errors

    def validate_quote(self, quote: Quote) -> ValidationFailure:
        """All errors and warnings for a quote. No errors = quote may be issued."""
        errors = []
        warnings = []
        customer = quote.customer

        if not customer.name or not customer.name.strip():
            errors.append(ValidationIssue(
                field="customer.name", message="Kundenname ist erforderlich", code="REQUIRED_FIELD",
            ))
        if not customer.email:
            errors.append(ValidationIssue(
                field="customer.email", message="Kunden-E-Mail ist erforderlich", code="REQUIRED_FIELD",
            ))
        elif not EMAIL_PATTERN.match(customer.email):
            errors.append(ValidationIssue(
                field="customer.email", message="Ungültige E-Mail-Adresse", code="INVALID_EMAIL",
            ))
        if not quote.items:
            errors.append(ValidationIssue(
                field="items",
                message="Mindestens eine Leistung muss angegeben werden",
                code="REQUIRED_FIELD",
            ))
        if quote.total_amount <= 0:
            errors.append(ValidationIssue(
                field="total_amount",
                message="Gesamtbetrag muss größer als 0 sein",
                code="INVALID_AMOUNT",
            ))

        if not customer.phone:
            warnings.append(ValidationIssue(
                field="customer.phone", message="Telefonnummer nicht angegeben", code="MISSING_PHONE",
            ))
        if quote.total_amount > self.high_value_threshold:
            warnings.append(ValidationIssue(
                field="total_amount",
                message="Sehr hoher Auftragswert - Prüfung empfohlen",
                code="HIGH_VALUE",
            ))

        return ValidationFailure(errors=errors, warnings=warnings)

    # --- Assembly ---

    def assemble(
        self,
        estimate: PriceEstimate,
        customer: CustomerInfo,
        company: CompanyInfo,
        service_details: ServiceDetails,
        notes: Optional[str] = None,
    ) -> Union[Quote, ValidationFailure]:
        input_errors = self._check_inputs(estimate, service_details)
        if input_errors:
            logger.info("Quote rejected: %s", [e.code for e in input_errors])
            return ValidationFailure(errors=input_errors)

        created_at = _as_utc(self.clock())
        items = self.build_items(estimate, service_details)

        subtotal = round(sum(item.total_price for item in items), 2)
        vat_amount = round(subtotal * self.vat_rate, 2)
        total_amount = round(subtotal + vat_amount, 2)

        quote = Quote(
            id=self.generate_quote_id(),
            number=self.generate_quote_number(created_at),
            created_at=created_at,
            valid_until=created_at + timedelta(days=self.validity_days),
            status=QuoteStatus.DRAFT,
            customer=customer,
            company=company,
            service_details=service_details,
            items=items,
            subtotal=subtotal,
            vat_rate=self.vat_rate,
            vat_amount=vat_amount,
            total_amount=total_amount,
            notes=notes,
        )

        result = self.validate_quote(quote)
        if result.errors:
            logger.info("Quote rejected: %s", [e.code for e in result.errors])
            return result

        logger.info(f"Quote {quote.number} assembled: {len(items)} items, total {total_amount:.2f}")
        return quote

    # --- Lifecycle ---

    def effective_status(self, quote: Quote, now: Optional[datetime] = None) -> QuoteStatus:
        """Stored status, except open quotes past valid_until read as expired."""
        now = _as_utc(now or self.clock())
        if quote.status in (QuoteStatus.DRAFT, QuoteStatus.SENT) and now > _as_utc(quote.valid_until):
            return QuoteStatus.EXPIRED
        return quote.status

    def transition(self, quote: Quote, target: QuoteStatus,
                   now: Optional[datetime] = None) -> Quote:
        target = QuoteStatus(target)
        if target not in ALLOWED_TRANSITIONS[quote.status]:
            raise StatusTransitionError(quote.status, target)
        if target != QuoteStatus.EXPIRED and self.effective_status(quote, now) == QuoteStatus.EXPIRED:
            raise StatusTransitionError(quote.status, target, "quote has expired")

        logger.info(f"Quote {quote.number}: {quote.status.value} -> {target.value}")
        return quote.model_copy(update={"status": target})

    def mark_sent(self, quote: Quote, now: Optional[datetime] = None) -> Quote:
        return self.transition(quote, QuoteStatus.SENT, now)
