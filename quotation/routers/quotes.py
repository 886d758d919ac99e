import logging

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_company_info, get_pricing_engine, get_quote_assembler
from ..pricing_engine import PricingEngine
from ..quote_assembler import QuoteAssembler, StatusTransitionError, build_service_details
from ..schemas import (
    CompanyInfo,
    QuoteRequest,
    QuoteResponse,
    TransitionRequest,
    ValidationFailure,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quotes", tags=["quotes"])


@router.post("", response_model=QuoteResponse)
def create_quote(
    request: QuoteRequest,
    engine: PricingEngine = Depends(get_pricing_engine),
    assembler: QuoteAssembler = Depends(get_quote_assembler),
    company: CompanyInfo = Depends(get_company_info),
):
    """
    Price the calculator input and assemble a draft quote.

    400 when the input or the customer data is invalid; warnings (missing
    phone, high value) come back with the quote.
    """
    estimate = engine.estimate(request.calculator)
    if isinstance(estimate, ValidationFailure):
        raise HTTPException(status_code=400, detail=estimate.model_dump(mode="json"))

    details = build_service_details(request.calculator, assembler.catalog)
    notes = request.notes or request.calculator.notes
    quote = assembler.assemble(estimate, request.customer, company, details, notes=notes)
    if isinstance(quote, ValidationFailure):
        raise HTTPException(status_code=400, detail=quote.model_dump(mode="json"))

    return QuoteResponse(
        quote=quote,
        warnings=assembler.validate_quote(quote).warnings,
        effective_status=assembler.effective_status(quote),
    )


@router.post("/transition")
def transition_quote(
    request: TransitionRequest,
    assembler: QuoteAssembler = Depends(get_quote_assembler),
):
    try:
        quote = assembler.transition(request.quote, request.status)
    except StatusTransitionError as e:
        logger.info(f"Refused status change for {request.quote.number}: {e}")
        raise HTTPException(status_code=409, detail=str(e))
    return {
        "quote": quote,
        "effective_status": assembler.effective_status(quote),
    }
