from fastapi import APIRouter, Depends

from ..catalog import RateCatalog
from ..dependencies import get_catalog

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get("")
def get_rate_catalog(catalog: RateCatalog = Depends(get_catalog)):
    """Every selectable option with its display name, for building the calculator form."""
    return {
        "services": [
            {
                "key": key.value,
                "name": rate.name,
                "description": rate.description,
                "unit": rate.unit.value,
                "unit_label": rate.unit_label,
                "base_rate": rate.base_rate,
                "minimum_charge": rate.minimum_charge,
                "additional_services": [
                    a.key for a in catalog.additional_services_for(key)
                ],
            }
            for key, rate in catalog.services.items()
        ],
        "locations": [
            {"key": loc.key.value, "name": loc.name} for loc in catalog.locations.values()
        ],
        "frequencies": [
            {
                "key": freq.key.value,
                "name": freq.name,
                "description": freq.description,
                "adjustment": freq.adjustment,
            }
            for freq in catalog.frequencies.values()
        ],
        "additional_services": [
            {
                "key": a.key,
                "name": a.name,
                "price": a.price,
                "pricing": a.pricing.value,
                "description": a.description,
            }
            for a in catalog.additional_services
        ],
        "urgencies": [
            {"key": u.key.value, "name": u.name, "multiplier": u.multiplier}
            for u in catalog.urgencies.values()
        ],
        "building_types": [k.value for k in catalog.site_surcharges.building_type],
        "access_difficulties": [k.value for k in catalog.site_surcharges.access_difficulty],
        "security_levels": [k.value for k in catalog.site_surcharges.security_level],
    }
