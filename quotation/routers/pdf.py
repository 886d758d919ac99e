"""
PDF download endpoint.

POST /api/quotes/pdf: body is the Quote, response is the rendered PDF.
Served from the document cache when the quote is unchanged (X-Cache: hit).
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from ..config import settings
from ..dependencies import get_document_cache
from ..document_cache import DocumentCache
from ..pdf_generator import generate_quote_pdf
from ..schemas import Quote

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quotes", tags=["pdf"])


@router.post("/pdf")
def download_pdf(quote: Quote, cache: DocumentCache = Depends(get_document_cache)):
    """
    Generate (or reuse) and download the PDF for a quote.

    Returns: application/pdf
    """
    try:
        document = cache.get_or_render(quote, generate_quote_pdf)
    except Exception as e:
        logger.warning(f"PDF render failed for {quote.number}: {e}", exc_info=True)
        raise HTTPException(
            status_code=502,
            detail={
                "message": settings.CONTACT_FALLBACK_MESSAGE,
                "quote_number": quote.number,
            },
        )

    return Response(
        content=document.content,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{document.filename}"',
            "X-Cache": "hit" if document.cache_hit else "miss",
        },
    )
