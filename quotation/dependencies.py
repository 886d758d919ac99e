"""
Wiring: builds the catalog, engine, assembler and PDF cache from settings.

Routers receive them through Depends(), so tests can swap any of them via
app.dependency_overrides.
"""

from datetime import timedelta
from functools import lru_cache

from .catalog import RateCatalog, default_catalog
from .config import settings
from .database import SessionLocal
from .document_cache import (
    DocumentCache,
    InMemoryCacheStorage,
    JsonFileCacheStorage,
    SqlCacheStorage,
)
from .pdf_generator import suggested_filename
from .pricing_engine import PricingEngine
from .quote_assembler import QuoteAssembler
from .schemas import CompanyInfo


@lru_cache
def get_catalog() -> RateCatalog:
    return default_catalog()


@lru_cache
def get_pricing_engine() -> PricingEngine:
    return PricingEngine(get_catalog(), max_quantity=settings.MAX_QUANTITY)


@lru_cache
def get_quote_assembler() -> QuoteAssembler:
    return QuoteAssembler(
        get_catalog(),
        vat_rate=settings.VAT_RATE,
        validity_days=settings.QUOTE_VALIDITY_DAYS,
        number_prefix=settings.QUOTE_NUMBER_PREFIX,
        high_value_threshold=settings.HIGH_VALUE_WARNING_THRESHOLD,
    )


def get_company_info() -> CompanyInfo:
    return CompanyInfo(
        name=settings.COMPANY_NAME,
        street=settings.COMPANY_STREET,
        postal_code=settings.COMPANY_POSTAL_CODE,
        city=settings.COMPANY_CITY,
        country=settings.COMPANY_COUNTRY,
        phone=settings.COMPANY_PHONE,
        email=settings.COMPANY_EMAIL,
        website=settings.COMPANY_WEBSITE,
        tax_id=settings.COMPANY_TAX_ID,
        registration_number=settings.COMPANY_REGISTRATION_NUMBER,
        vat_number=settings.COMPANY_VAT_NUMBER,
    )


def build_cache_storage(backend: str):
    if backend == "memory":
        return InMemoryCacheStorage()
    if backend == "file":
        return JsonFileCacheStorage(settings.PDF_CACHE_PATH)
    if backend == "sql":
        return SqlCacheStorage(SessionLocal)
    raise ValueError(f"Unknown PDF_CACHE_BACKEND: {backend!r} (expected memory, file or sql)")


@lru_cache
def get_document_cache() -> DocumentCache:
    return DocumentCache(
        build_cache_storage(settings.PDF_CACHE_BACKEND),
        max_entries=settings.PDF_CACHE_MAX_ENTRIES,
        ttl=timedelta(hours=settings.PDF_CACHE_TTL_HOURS),
        filename_for=suggested_filename,
    )
