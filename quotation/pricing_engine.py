"""
Pricing Engine: CalculatorInput -> PriceEstimate.

Pure math over the injected RateCatalog. Validation runs first and returns a
ValidationFailure listing every problem; nothing here raises on bad input.

The price is built by folding a fixed, ordered tuple of stages over a running
amount. Each stage is a plain function

    stage(price, data, catalog) -> (new_price, steps)

where each step names a breakdown line and the running price right after it.
Amounts are only rounded when booked, and each line is booked against the
rounded running total, so the breakdown always sums to the total.
"""

import logging
import math
from typing import Callable, List, NamedTuple, Tuple, Union

from .catalog import AddOnPricing, RateCatalog, SiteSurcharges
from .models import AdjustmentCategory
from .schemas import (
    CalculatorInput,
    PriceBreakdownLine,
    PriceEstimate,
    ValidationFailure,
    ValidationIssue,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_QUANTITY = 10000.0

SITE_SURCHARGE_LABEL = "Objekt- und Zugangszuschläge"


class Step(NamedTuple):
    label: str
    category: AdjustmentCategory
    code: str
    price_after: float


Stage = Callable[[float, CalculatorInput, RateCatalog], Tuple[float, List[Step]]]


def _fmt_qty(quantity: float) -> str:
    """150.0 -> '150', 12.5 -> '12.5'"""
    return f"{quantity:g}"


# --- Stages ---

def base_stage(price, data, catalog):
    """Per-visit price (floored at the minimum charge) as a monthly amount."""
    service = catalog.service(data.service_category)
    frequency = catalog.frequency(data.frequency)
    per_visit = max(data.quantity * service.base_rate, service.minimum_charge)
    monthly = round(per_visit * frequency.occurrences_per_month, 2)
    label = f"{service.name} ({_fmt_qty(data.quantity)} {service.unit_label}) - Monatlich"
    return monthly, [Step(label, AdjustmentCategory.BASE, "base", monthly)]


def frequency_stage(price, data, catalog):
    frequency = catalog.frequency(data.frequency)
    if frequency.adjustment == 0:
        return price, []
    new_price = price * (1 - frequency.adjustment)
    if frequency.adjustment > 0:
        step = Step(f"{frequency.name} Rabatt", AdjustmentCategory.DISCOUNT, "frequency", new_price)
    else:
        step = Step(f"{frequency.name} Aufschlag", AdjustmentCategory.SURCHARGE, "frequency", new_price)
    return new_price, [step]


def location_stage(price, data, catalog):
    location = catalog.location(data.location)
    new_price = price * location.multiplier
    delta = new_price - price
    # Sub-cent moves still change the price, they just don't get a line
    if abs(delta) <= 0.01:
        return new_price, []
    category = AdjustmentCategory.SURCHARGE if delta > 0 else AdjustmentCategory.DISCOUNT
    return new_price, [Step(f"Standort {location.name}", category, "location", new_price)]


def additional_services_stage(price, data, catalog):
    steps = []
    for option in catalog.additional_services_for(data.service_category):
        if option.key not in data.additional_services:
            continue
        if option.pricing == AddOnPricing.PER_UNIT:
            price += option.price * data.quantity
        else:
            price += option.price
        steps.append(Step(option.name, AdjustmentCategory.ADDITIONAL, f"addon:{option.key}", price))
    return price, steps


def urgency_stage(price, data, catalog):
    urgency = catalog.urgency(data.urgency)
    if urgency.multiplier <= 1:
        return price, []
    new_price = price * urgency.multiplier
    return new_price, [Step(urgency.name, AdjustmentCategory.SURCHARGE, "urgency", new_price)]


def site_surcharge_pct(data: CalculatorInput, surcharges: SiteSurcharges) -> float:
    """Sum of every site-complexity percentage that applies to this input."""
    pct = 0.0
    if data.building_type:
        pct += surcharges.building_type.get(data.building_type, 0.0)

    floors = data.number_of_floors or 0
    if floors > surcharges.floor_threshold:
        pct += (floors - surcharges.floor_threshold) * surcharges.per_floor_above

    # Only an explicit "no" counts; unanswered questions never cost extra
    if data.elevator_access is False and floors >= surcharges.no_elevator_min_floors:
        pct += surcharges.no_elevator
    if data.parking_available is False:
        pct += surcharges.no_parking

    if data.access_difficulty:
        pct += surcharges.access_difficulty.get(data.access_difficulty, 0.0)
    if data.security_level:
        pct += surcharges.security_level.get(data.security_level, 0.0)
    return pct


def site_complexity_stage(price, data, catalog):
    pct = site_surcharge_pct(data, catalog.site_surcharges)
    if pct == 0:
        return price, []
    new_price = price * (1 + pct)
    label = f"{SITE_SURCHARGE_LABEL} (+{round(pct * 100, 1):g}%)"
    return new_price, [Step(label, AdjustmentCategory.SURCHARGE, "site", new_price)]


PIPELINE: Tuple[Stage, ...] = (
    base_stage,
    frequency_stage,
    location_stage,
    additional_services_stage,
    urgency_stage,
    site_complexity_stage,
)


class PricingEngine:
    """
    Runs validation and the stage pipeline against one RateCatalog.
    Stateless apart from its configuration; safe to share.
    """

    def __init__(self, catalog: RateCatalog, max_quantity: float = DEFAULT_MAX_QUANTITY,
                 stages: Tuple[Stage, ...] = PIPELINE):
        self.catalog = catalog
        self.max_quantity = max_quantity
        self.stages = stages

    def validate(self, data: CalculatorInput) -> List[ValidationIssue]:
        """Every problem with the input, in form order. Empty list = valid."""
        errors = []
        catalog = self.catalog

        if not data.service_category:
            errors.append(ValidationIssue(
                field="service_category",
                message="Bitte wählen Sie eine Dienstleistung aus",
                code="REQUIRED_FIELD",
            ))
        elif catalog.service(data.service_category) is None:
            errors.append(ValidationIssue(
                field="service_category",
                message=f"Unbekannte Dienstleistung: {data.service_category}",
                code="UNKNOWN_VALUE",
            ))

        if not math.isfinite(data.quantity) or data.quantity <= 0:
            errors.append(ValidationIssue(
                field="quantity",
                message="Bitte geben Sie eine gültige Fläche/Anzahl ein",
                code="INVALID_AMOUNT",
            ))
        elif data.quantity > self.max_quantity:
            errors.append(ValidationIssue(
                field="quantity",
                message="Für große Projekte kontaktieren Sie uns bitte direkt",
                code="QUANTITY_TOO_LARGE",
            ))

        if not data.frequency:
            errors.append(ValidationIssue(
                field="frequency",
                message="Bitte wählen Sie eine Häufigkeit aus",
                code="REQUIRED_FIELD",
            ))
        elif catalog.frequency(data.frequency) is None:
            errors.append(ValidationIssue(
                field="frequency",
                message=f"Unbekannte Häufigkeit: {data.frequency}",
                code="UNKNOWN_VALUE",
            ))

        if not data.location:
            errors.append(ValidationIssue(
                field="location",
                message="Bitte wählen Sie einen Standort aus",
                code="REQUIRED_FIELD",
            ))
        elif catalog.location(data.location) is None:
            errors.append(ValidationIssue(
                field="location",
                message=f"Unbekannter Standort: {data.location}",
                code="UNKNOWN_VALUE",
            ))

        if catalog.urgency(data.urgency) is None:
            errors.append(ValidationIssue(
                field="urgency",
                message=f"Unbekannte Dringlichkeit: {data.urgency}",
                code="UNKNOWN_VALUE",
            ))

        surcharges = catalog.site_surcharges
        optional_keys = (
            ("building_type", surcharges.building_type, "Unbekannter Gebäudetyp"),
            ("access_difficulty", surcharges.access_difficulty, "Unbekannte Zugangssituation"),
            ("security_level", surcharges.security_level, "Unbekannte Sicherheitsstufe"),
        )
        for field_name, table, message in optional_keys:
            value = getattr(data, field_name)
            if value and value not in table:
                errors.append(ValidationIssue(
                    field=field_name, message=f"{message}: {value}", code="UNKNOWN_VALUE",
                ))

        if data.number_of_floors is not None and data.number_of_floors < 1:
            errors.append(ValidationIssue(
                field="number_of_floors",
                message="Die Anzahl der Etagen muss mindestens 1 sein",
                code="INVALID_AMOUNT",
            ))

        return errors

    def estimate(self, data: CalculatorInput) -> Union[PriceEstimate, ValidationFailure]:
        errors = self.validate(data)
        if errors:
            logger.debug("Estimate rejected: %s", [e.code for e in errors])
            return ValidationFailure(errors=errors)

        price = 0.0
        booked = 0.0
        breakdown = []
        for stage in self.stages:
            price, steps = stage(price, data, self.catalog)
            for step in steps:
                amount = round(round(step.price_after, 2) - booked, 2)
                booked = round(booked + amount, 2)
                breakdown.append(PriceBreakdownLine(
                    label=step.label, amount=amount, category=step.category, code=step.code,
                ))
            logger.debug("%s -> %.4f", stage.__name__, price)

        service = self.catalog.service(data.service_category)
        frequency = self.catalog.frequency(data.frequency)
        total = round(price, 2)
        discounts = sum(
            abs(line.amount) for line in breakdown
            if line.category == AdjustmentCategory.DISCOUNT
        )

        return PriceEstimate(
            base_price=breakdown[0].amount,
            total_price=total,
            breakdown=breakdown,
            price_per_unit=round(total / data.quantity, 2),
            unit_label=f"pro {service.unit_label} (monatlich)",
            is_recurring_monthly=True,
            occurrences_per_month=frequency.occurrences_per_month,
            frequency=frequency.key.value,
            savings=round(discounts, 2) if discounts > 0 else None,
        )
