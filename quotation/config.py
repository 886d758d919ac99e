from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./quotation.db"

    # Provider identity printed on every quote
    COMPANY_NAME: str = "SUZ Reinigung GmbH"
    COMPANY_STREET: str = "Paul-Langen-Straße 39"
    COMPANY_POSTAL_CODE: str = "53229"
    COMPANY_CITY: str = "Bonn"
    COMPANY_COUNTRY: str = "Deutschland"
    COMPANY_PHONE: str = "+49 228 50461294"
    COMPANY_EMAIL: str = "info@suzreinigung.de"
    COMPANY_WEBSITE: str = "www.suzreinigung.de"
    COMPANY_TAX_ID: str = "206/5948/1829 NAST 1"
    COMPANY_REGISTRATION_NUMBER: str = "HRB 119388"
    COMPANY_VAT_NUMBER: str = ""

    # Quote assembly
    VAT_RATE: float = 0.19
    QUOTE_VALIDITY_DAYS: int = 30
    QUOTE_NUMBER_PREFIX: str = "SUZ"
    HIGH_VALUE_WARNING_THRESHOLD: float = 10000.0
    MAX_QUANTITY: float = 10000.0

    # PDF cache: "memory", "file" or "sql"
    PDF_CACHE_BACKEND: str = "memory"
    PDF_CACHE_PATH: str = "./pdf_cache.json"
    PDF_CACHE_MAX_ENTRIES: int = 50
    PDF_CACHE_TTL_HOURS: float = 24.0

    CONTACT_FALLBACK_MESSAGE: str = (
        "Das Angebot konnte nicht als PDF erstellt werden. "
        "Bitte kontaktieren Sie uns unter +49 228 50461294 "
        "oder info@suzreinigung.de."
    )

    class Config:
        env_file = ".env"


settings = Settings()
