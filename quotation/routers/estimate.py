from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_pricing_engine
from ..pricing_engine import PricingEngine
from ..schemas import CalculatorInput, PriceEstimate, ValidationFailure

router = APIRouter(prefix="/estimate", tags=["estimate"])


@router.post("", response_model=PriceEstimate)
def estimate_price(data: CalculatorInput, engine: PricingEngine = Depends(get_pricing_engine)):
    """Monthly price estimate with a line-by-line breakdown. 400 lists every input problem."""
    result = engine.estimate(data)
    if isinstance(result, ValidationFailure):
        raise HTTPException(status_code=400, detail=result.model_dump(mode="json"))
    return result
