from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from .database import engine, Base
from .routers import catalog, estimate, quotes, pdf

logger = logging.getLogger("quotation")

# cached_documents table for the SQL PDF cache backend
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Cleaning Quotation Engine",
    description="Price estimates, quotes and PDF offers for commercial cleaning services",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Cache"],
)

# API routes
app.include_router(catalog.router, prefix="/api")
app.include_router(estimate.router, prefix="/api")
app.include_router(quotes.router, prefix="/api")
app.include_router(pdf.router, prefix="/api")


@app.get("/health")
def health():
    return {"status": "ok", "app": "cleaning-quotation-engine"}


@app.on_event("startup")
def log_configuration():
    from .config import settings
    logger.info(
        f"PDF cache: {settings.PDF_CACHE_BACKEND} "
        f"(max {settings.PDF_CACHE_MAX_ENTRIES} entries, {settings.PDF_CACHE_TTL_HOURS}h TTL)"
    )
