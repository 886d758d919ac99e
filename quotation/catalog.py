"""
Rate Catalog: static price tables for every cleaning service we quote.

Pure data, no behavior beyond lookups. Rates are the 2024 Köln/Bonn market
figures; changing any constant here changes customer-facing prices.

A RateCatalog is built once and injected into the PricingEngine and the
QuoteAssembler, so tests can swap in an alternate catalog.
"""

import enum
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional


class ServiceCategory(str, enum.Enum):
    HOTELZIMMERREINIGUNG = "hotelzimmerreinigung"
    TEPPICHREINIGUNG = "teppichreinigung"
    BODENREINIGUNG = "bodenreinigung"
    GEMEINSCHAFTSRAEUME = "gemeinschaftsraeume"
    BUEROREINIGUNG = "bueroreinigung"
    KRANKENHAUSREINIGUNG = "krankenhausreinigung"
    ZAHNARZTPRAXIS = "zahnarztpraxis"
    KINDERGARTENREINIGUNG = "kindergartenreinigung"
    INDUSTRIEANLAGEN = "industrieanlagen"
    BAUSTELLENREINIGUNG = "baustellenreinigung"
    LADENFLAECHENREINIGUNG = "ladenflaechenreinigung"
    GASTRONOMIEREINIGUNG = "gastronomiereinigung"
    FENSTERREINIGUNG = "fensterreinigung"
    GRUNDREINIGUNG = "grundreinigung"
    TIEFGARAGENREINIGUNG = "tiefgaragenreinigung"
    LEBENSMITTELPRODUKTION = "lebensmittelproduktion"


class BillingUnit(str, enum.Enum):
    PER_ROOM = "per_room"
    PER_M2 = "per_m2"
    PER_WINDOW = "per_window"


# Display names for billing units (quote items, price-per-unit label)
UNIT_LABELS = {
    BillingUnit.PER_ROOM: "Zimmer",
    BillingUnit.PER_M2: "m²",
    BillingUnit.PER_WINDOW: "Fenster",
}


class Location(str, enum.Enum):
    KOELN_CENTER = "koeln-center"
    KOELN_SUBURBS = "koeln-suburbs"
    BONN = "bonn"
    SURROUNDING = "surrounding"


class Frequency(str, enum.Enum):
    ONE_TIME = "one-time"
    DAILY = "daily"
    SIX_WEEKLY = "6x-weekly"
    FIVE_WEEKLY = "5x-weekly"
    FOUR_WEEKLY = "4x-weekly"
    THREE_WEEKLY = "3x-weekly"
    TWO_WEEKLY = "2x-weekly"
    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"


class Urgency(str, enum.Enum):
    STANDARD = "standard"
    EXPRESS = "express"
    EMERGENCY = "emergency"


class AddOnPricing(str, enum.Enum):
    FLAT = "flat"
    PER_UNIT = "per_unit"  # price × quantity (area or count of the main service)


class BuildingType(str, enum.Enum):
    SINGLE_FLOOR = "single_floor"
    MULTI_FLOOR = "multi_floor"
    HIGH_RISE = "high_rise"
    COMPLEX = "complex"


class AccessDifficulty(str, enum.Enum):
    EASY = "easy"
    MODERATE = "moderate"
    DIFFICULT = "difficult"
    VERY_DIFFICULT = "very_difficult"


class SecurityLevel(str, enum.Enum):
    NONE = "none"
    BASIC = "basic"
    ENHANCED = "enhanced"
    MAXIMUM = "maximum"


@dataclass(frozen=True)
class ServiceRate:
    name: str
    base_rate: float
    unit: BillingUnit
    minimum_charge: float
    deep_clean_multiplier: float
    description: str

    @property
    def unit_label(self) -> str:
        return UNIT_LABELS[self.unit]

    @property
    def is_area_based(self) -> bool:
        return self.unit == BillingUnit.PER_M2


@dataclass(frozen=True)
class LocationModifier:
    key: Location
    name: str
    multiplier: float


@dataclass(frozen=True)
class FrequencyModifier:
    key: Frequency
    name: str
    adjustment: float  # positive = discount, negative = surcharge
    occurrences_per_month: float
    description: str = ""


@dataclass(frozen=True)
class AdditionalServiceOption:
    key: str
    name: str
    price: float
    pricing: AddOnPricing
    applicable_categories: frozenset
    description: str = ""

    def applies_to(self, category: str) -> bool:
        return category in self.applicable_categories


@dataclass(frozen=True)
class UrgencyMultiplier:
    key: Urgency
    name: str
    multiplier: float


@dataclass(frozen=True)
class SiteSurcharges:
    """Additive percentages for site complexity, summed before one multiply."""
    building_type: Mapping[str, float]
    access_difficulty: Mapping[str, float]
    security_level: Mapping[str, float]
    per_floor_above: float = 0.02
    floor_threshold: int = 3
    no_elevator: float = 0.05
    no_elevator_min_floors: int = 3  # applies when floors > 2
    no_parking: float = 0.03


def _frozen(mapping: dict) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class RateCatalog:
    """Immutable bundle of every table the pricing pipeline reads."""
    services: Mapping[ServiceCategory, ServiceRate]
    locations: Mapping[Location, LocationModifier]
    frequencies: Mapping[Frequency, FrequencyModifier]
    additional_services: tuple
    urgencies: Mapping[Urgency, UrgencyMultiplier]
    site_surcharges: SiteSurcharges

    def __post_init__(self):
        missing = [c.value for c in ServiceCategory if c not in self.services]
        if missing:
            raise ValueError(
                f"Rate catalog has no entry for service categories: {missing}"
            )
        # Dicts handed in by callers are frozen so the catalog stays immutable
        for name in ("services", "locations", "frequencies", "urgencies"):
            value = getattr(self, name)
            if isinstance(value, dict):
                object.__setattr__(self, name, _frozen(value))
        object.__setattr__(self, "additional_services", tuple(self.additional_services))

    # --- Lookups (str keys work because the enums are str subclasses) ---

    def service(self, key: str) -> Optional[ServiceRate]:
        return self.services.get(key)

    def location(self, key: str) -> Optional[LocationModifier]:
        return self.locations.get(key)

    def frequency(self, key: str) -> Optional[FrequencyModifier]:
        return self.frequencies.get(key)

    def urgency(self, key: str) -> Optional[UrgencyMultiplier]:
        return self.urgencies.get(key)

    def additional_service(self, key: str) -> Optional[AdditionalServiceOption]:
        for option in self.additional_services:
            if option.key == key:
                return option
        return None

    def additional_services_for(self, category: str) -> list:
        """Add-ons applicable to a category, in catalog order."""
        return [a for a in self.additional_services if a.applies_to(category)]


# --- Default tables ---

SERVICE_RATES = {
    ServiceCategory.HOTELZIMMERREINIGUNG: ServiceRate(
        "Hotelzimmerreinigung", 18.0, BillingUnit.PER_ROOM, 80.0, 1.67,
        "Professionelle Hotelzimmerreinigung mit höchsten Hygienestandards"),
    ServiceCategory.BUEROREINIGUNG: ServiceRate(
        "Büroreinigung", 1.10, BillingUnit.PER_M2, 120.0, 1.45,
        "Umfassende Büroreinigung für produktive Arbeitsumgebung"),
    ServiceCategory.KRANKENHAUSREINIGUNG: ServiceRate(
        "Krankenhaus-/Medizinische Reinigung", 1.50, BillingUnit.PER_M2, 200.0, 2.0,
        "Spezialisierte medizinische Reinigung nach Hygienevorschriften"),
    ServiceCategory.TEPPICHREINIGUNG: ServiceRate(
        "Teppichreinigung", 4.5, BillingUnit.PER_M2, 80.0, 1.33,
        "Professionelle Teppichreinigung für alle Materialien"),
    ServiceCategory.BODENREINIGUNG: ServiceRate(
        "Bodenreinigung", 3.75, BillingUnit.PER_M2, 100.0, 1.20,
        "Spezialisierte Bodenreinigung für alle Oberflächen"),
    ServiceCategory.GEMEINSCHAFTSRAEUME: ServiceRate(
        "Gemeinschaftsräume", 0.95, BillingUnit.PER_M2, 100.0, 1.58,
        "Reinigung von Gemeinschaftsbereichen und öffentlichen Räumen"),
    ServiceCategory.ZAHNARZTPRAXIS: ServiceRate(
        "Zahnarztpraxis", 1.80, BillingUnit.PER_M2, 150.0, 2.2,
        "Spezialisierte Zahnarztpraxis-Reinigung inkl. Behandlungsräume"),
    ServiceCategory.KINDERGARTENREINIGUNG: ServiceRate(
        "Kindergarten-/Kita-Reinigung", 1.20, BillingUnit.PER_M2, 120.0, 1.75,
        "Kindergarten- und Kita-Reinigung mit kindersicheren Produkten"),
    ServiceCategory.INDUSTRIEANLAGEN: ServiceRate(
        "Industrieanlagen", 1.40, BillingUnit.PER_M2, 300.0, 2.0,
        "Industrielle Reinigung von Produktions- und Lagerhallen"),
    ServiceCategory.BAUSTELLENREINIGUNG: ServiceRate(
        "Baustellenreinigung", 2.20, BillingUnit.PER_M2, 200.0, 1.36,
        "Baustellenreinigung und Endreinigung nach Bauarbeiten"),
    ServiceCategory.LADENFLAECHENREINIGUNG: ServiceRate(
        "Ladenflächen-/Einzelhandel", 1.00, BillingUnit.PER_M2, 100.0, 1.60,
        "Einzelhandel- und Ladenflächen-Reinigung"),
    ServiceCategory.GASTRONOMIEREINIGUNG: ServiceRate(
        "Gastronomie-Reinigung", 1.60, BillingUnit.PER_M2, 150.0, 1.88,
        "Restaurant- und Küchen-Reinigung inkl. Fettentfernung"),
    ServiceCategory.FENSTERREINIGUNG: ServiceRate(
        "Fensterreinigung", 3.50, BillingUnit.PER_WINDOW, 80.0, 1.43,
        "Professionelle Fensterreinigung innen und außen"),
    ServiceCategory.GRUNDREINIGUNG: ServiceRate(
        "Grundreinigung/Ersteinrichtung", 2.80, BillingUnit.PER_M2, 250.0, 1.25,
        "Umfassende Grundreinigung für neue oder renovierte Räume"),
    ServiceCategory.TIEFGARAGENREINIGUNG: ServiceRate(
        "Tiefgaragen-Reinigung", 0.80, BillingUnit.PER_M2, 200.0, 1.88,
        "Tiefgaragen- und Parkhaus-Reinigung"),
    ServiceCategory.LEBENSMITTELPRODUKTION: ServiceRate(
        "Lebensmittelproduktion", 2.00, BillingUnit.PER_M2, 300.0, 1.75,
        "HACCP-konforme Reinigung von Lebensmittelproduktionsstätten"),
}

LOCATION_MODIFIERS = {
    Location.KOELN_CENTER: LocationModifier(Location.KOELN_CENTER, "Köln Innenstadt", 1.08),
    Location.KOELN_SUBURBS: LocationModifier(Location.KOELN_SUBURBS, "Köln Umgebung", 1.00),
    Location.BONN: LocationModifier(Location.BONN, "Bonn", 1.03),
    Location.SURROUNDING: LocationModifier(Location.SURROUNDING, "Umgebung (bis 30km)", 0.97),
}

# Occurrences per month are fixed approximations, not calendar arithmetic.
# "one-time" counts as 0.25 of a month.
FREQUENCY_MODIFIERS = {
    Frequency.ONE_TIME: FrequencyModifier(
        Frequency.ONE_TIME, "Einmalig", 0.0, 0.25, "Einzelreinigung ohne Vertrag"),
    Frequency.DAILY: FrequencyModifier(
        Frequency.DAILY, "7x wöchentlich", 0.25, 30.0, "Tägliche Reinigung (Mo-So)"),
    Frequency.SIX_WEEKLY: FrequencyModifier(
        Frequency.SIX_WEEKLY, "6x wöchentlich", 0.22, 26.0, "Reinigung 6x pro Woche"),
    Frequency.FIVE_WEEKLY: FrequencyModifier(
        Frequency.FIVE_WEEKLY, "5x wöchentlich", 0.20, 22.0, "Reinigung an Werktagen (Mo-Fr)"),
    Frequency.FOUR_WEEKLY: FrequencyModifier(
        Frequency.FOUR_WEEKLY, "4x wöchentlich", 0.18, 17.3, "Reinigung 4x pro Woche"),
    Frequency.THREE_WEEKLY: FrequencyModifier(
        Frequency.THREE_WEEKLY, "3x wöchentlich", 0.15, 13.0, "Reinigung 3x pro Woche"),
    Frequency.TWO_WEEKLY: FrequencyModifier(
        Frequency.TWO_WEEKLY, "2x wöchentlich", 0.12, 8.7, "Reinigung 2x pro Woche"),
    Frequency.WEEKLY: FrequencyModifier(
        Frequency.WEEKLY, "1x wöchentlich", 0.10, 4.33, "Regelmäßige wöchentliche Reinigung"),
    Frequency.BI_WEEKLY: FrequencyModifier(
        Frequency.BI_WEEKLY, "Alle 2 Wochen", 0.10, 2.17, "Reinigung alle zwei Wochen"),
    Frequency.MONTHLY: FrequencyModifier(
        Frequency.MONTHLY, "Monatlich", 0.05, 1.0, "Monatliche Reinigung"),
    Frequency.QUARTERLY: FrequencyModifier(
        Frequency.QUARTERLY, "Quartalsweise", -0.10, 0.33, "Vierteljährliche Grundreinigung"),
}

_C = ServiceCategory

ADDITIONAL_SERVICES = (
    AdditionalServiceOption(
        "window_cleaning", "Fensterreinigung", 3.0, AddOnPricing.FLAT,
        frozenset({_C.BUEROREINIGUNG, _C.GEMEINSCHAFTSRAEUME, _C.KRANKENHAUSREINIGUNG}),
        "Pro Fenster (innen/außen)"),
    AdditionalServiceOption(
        "deep_bathroom", "Badezimmer Tiefenreinigung", 8.0, AddOnPricing.FLAT,
        frozenset({_C.HOTELZIMMERREINIGUNG}), "Pro Badezimmer"),
    AdditionalServiceOption(
        "minibar_service", "Minibar Service", 5.0, AddOnPricing.FLAT,
        frozenset({_C.HOTELZIMMERREINIGUNG}), "Pro Zimmer"),
    AdditionalServiceOption(
        "carpet_deep_clean", "Teppich Tiefenreinigung", 5.0, AddOnPricing.PER_UNIT,
        frozenset({_C.BUEROREINIGUNG, _C.GEMEINSCHAFTSRAEUME}), "Pro m² (zusätzlich)"),
    AdditionalServiceOption(
        "furniture_cleaning", "Möbelreinigung", 10.0, AddOnPricing.FLAT,
        frozenset({_C.BUEROREINIGUNG, _C.GEMEINSCHAFTSRAEUME}), "Pro Möbelstück"),
    AdditionalServiceOption(
        "disinfection", "Desinfektion", 0.50, AddOnPricing.PER_UNIT,
        frozenset({_C.KRANKENHAUSREINIGUNG, _C.BUEROREINIGUNG}), "Pro m² (zusätzlich)"),
    # Described per m² but billed flat.
    AdditionalServiceOption(
        "handle_disinfection", "Griffbereich-Desinfektion", 0.30, AddOnPricing.FLAT,
        frozenset({_C.BUEROREINIGUNG, _C.KRANKENHAUSREINIGUNG, _C.ZAHNARZTPRAXIS,
                   _C.KINDERGARTENREINIGUNG}), "Pro m² (zusätzlich)"),
    AdditionalServiceOption(
        "refrigerator_cleaning", "Kühlschrank-Reinigung", 15.0, AddOnPricing.FLAT,
        frozenset({_C.BUEROREINIGUNG, _C.GASTRONOMIEREINIGUNG, _C.KINDERGARTENREINIGUNG}),
        "Pro Kühlschrank (monatlich)"),
    AdditionalServiceOption(
        "floor_deep_clean", "Boden-Tiefenreinigung", 1.20, AddOnPricing.FLAT,
        frozenset({_C.BUEROREINIGUNG, _C.KRANKENHAUSREINIGUNG, _C.ZAHNARZTPRAXIS,
                   _C.GASTRONOMIEREINIGUNG}), "Pro m² (zusätzlich zur normalen Reinigung)"),
    AdditionalServiceOption(
        "kitchen_deep_clean", "Küchen-Tiefenreinigung", 25.0, AddOnPricing.FLAT,
        frozenset({_C.BUEROREINIGUNG, _C.GASTRONOMIEREINIGUNG, _C.KINDERGARTENREINIGUNG}),
        "Pro Küche (inkl. Geräte)"),
    AdditionalServiceOption(
        "gypsum_room_cleaning", "Gipsraum-Reinigung", 35.0, AddOnPricing.FLAT,
        frozenset({_C.ZAHNARZTPRAXIS}), "Pro Gipsraum (spezialisiert)"),
    AdditionalServiceOption(
        "playground_cleaning", "Spielplatz-/Außenbereich", 0.80, AddOnPricing.FLAT,
        frozenset({_C.KINDERGARTENREINIGUNG}), "Pro m² Außenfläche"),
    AdditionalServiceOption(
        "industrial_equipment", "Maschinen-/Anlagenreinigung", 45.0, AddOnPricing.FLAT,
        frozenset({_C.INDUSTRIEANLAGEN, _C.LEBENSMITTELPRODUKTION}), "Pro Maschine/Anlage"),
    AdditionalServiceOption(
        "construction_debris", "Bauschutt-Entsorgung", 2.50, AddOnPricing.FLAT,
        frozenset({_C.BAUSTELLENREINIGUNG}), "Pro m³ Bauschutt"),
)

URGENCY_MULTIPLIERS = {
    Urgency.STANDARD: UrgencyMultiplier(Urgency.STANDARD, "Standard", 1.0),
    Urgency.EXPRESS: UrgencyMultiplier(Urgency.EXPRESS, "Express-Service", 1.3),
    Urgency.EMERGENCY: UrgencyMultiplier(Urgency.EMERGENCY, "Notfall-Service", 1.5),
}

SITE_SURCHARGES = SiteSurcharges(
    building_type=_frozen({
        BuildingType.SINGLE_FLOOR: 0.0,
        BuildingType.MULTI_FLOOR: 0.05,
        BuildingType.HIGH_RISE: 0.15,
        BuildingType.COMPLEX: 0.10,
    }),
    access_difficulty=_frozen({
        AccessDifficulty.EASY: 0.0,
        AccessDifficulty.MODERATE: 0.05,
        AccessDifficulty.DIFFICULT: 0.10,
        AccessDifficulty.VERY_DIFFICULT: 0.15,
    }),
    security_level=_frozen({
        SecurityLevel.NONE: 0.0,
        SecurityLevel.BASIC: 0.05,
        SecurityLevel.ENHANCED: 0.10,
        SecurityLevel.MAXIMUM: 0.20,
    }),
)


def default_catalog() -> RateCatalog:
    """The production catalog."""
    return RateCatalog(
        services=SERVICE_RATES,
        locations=LOCATION_MODIFIERS,
        frequencies=FREQUENCY_MODIFIERS,
        additional_services=ADDITIONAL_SERVICES,
        urgencies=URGENCY_MULTIPLIERS,
        site_surcharges=SITE_SURCHARGES,
    )
