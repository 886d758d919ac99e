from pydantic import BaseModel
from typing import Optional, List, FrozenSet, Tuple
from datetime import datetime
from .models import QuoteStatus, QuoteItemCategory, AdjustmentCategory


# --- Validation results (returned as data, never raised) ---

class ValidationIssue(BaseModel):
    field: str
    message: str
    code: str


class ValidationFailure(BaseModel):
    errors: List[ValidationIssue] = []
    warnings: List[ValidationIssue] = []


# --- Pricing ---

class CalculatorInput(BaseModel):
    service_category: str = ""
    quantity: float = 0.0
    location: str = ""
    frequency: str = ""
    additional_services: FrozenSet[str] = frozenset()
    urgency: str = "standard"
    building_type: Optional[str] = None
    number_of_floors: Optional[int] = None
    access_difficulty: Optional[str] = None
    security_level: Optional[str] = None
    elevator_access: Optional[bool] = None
    parking_available: Optional[bool] = None
    # Display only, never priced
    property_type: Optional[str] = None
    special_requirements: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        frozen = True


class PriceBreakdownLine(BaseModel):
    label: str
    amount: float
    category: AdjustmentCategory
    code: str

    class Config:
        frozen = True


class PriceEstimate(BaseModel):
    base_price: float
    total_price: float
    breakdown: Tuple[PriceBreakdownLine, ...]
    price_per_unit: float
    unit_label: str
    is_recurring_monthly: bool
    occurrences_per_month: float
    frequency: str
    savings: Optional[float] = None

    class Config:
        frozen = True


# --- Quotes ---

class CustomerInfo(BaseModel):
    name: str = ""
    email: str = ""
    phone: Optional[str] = None
    company: Optional[str] = None
    address: Optional[str] = None

    class Config:
        frozen = True


class CompanyInfo(BaseModel):
    name: str
    street: str
    postal_code: str
    city: str
    country: str
    phone: str
    email: str
    website: str
    tax_id: str
    registration_number: str
    vat_number: str = ""

    class Config:
        frozen = True


class ServiceDetails(BaseModel):
    service_category: str
    service_name: str
    service_description: str
    quantity: float
    unit: str
    location: str
    frequency: str
    urgency: str
    additional_services: Tuple[str, ...] = ()
    property_type: Optional[str] = None
    special_requirements: Optional[str] = None

    class Config:
        frozen = True


class QuoteItem(BaseModel):
    id: str
    label: str
    description: str = ""
    quantity: float
    unit: str
    unit_price: float
    total_price: float
    category: QuoteItemCategory

    class Config:
        frozen = True


class Quote(BaseModel):
    id: str
    number: str
    created_at: datetime
    valid_until: datetime
    status: QuoteStatus = QuoteStatus.DRAFT
    customer: CustomerInfo
    company: CompanyInfo
    service_details: ServiceDetails
    items: Tuple[QuoteItem, ...]
    subtotal: float
    vat_rate: float
    vat_amount: float
    total_amount: float
    notes: Optional[str] = None

    class Config:
        frozen = True


# --- Document cache ---

class CachedDocument(BaseModel):
    quote_id: str
    quote_number: str
    checksum: str
    content: bytes
    filename: str
    created_at: datetime
    size_bytes: int


class RenderedDocument(BaseModel):
    content: bytes
    filename: str
    checksum: str
    cache_hit: bool


class CacheStats(BaseModel):
    entries: int
    total_size_bytes: int
    oldest_entry: Optional[datetime] = None
    newest_entry: Optional[datetime] = None
    hits: int
    misses: int
    render_failures: int
    hit_rate: float = 0.0
    error_rate: float = 0.0
    average_render_ms: Optional[float] = None


# --- HTTP request/response bodies ---

class QuoteRequest(BaseModel):
    calculator: CalculatorInput
    customer: CustomerInfo
    notes: Optional[str] = None


class QuoteResponse(BaseModel):
    quote: Quote
    warnings: List[ValidationIssue] = []
    effective_status: QuoteStatus


class TransitionRequest(BaseModel):
    quote: Quote
    status: QuoteStatus
