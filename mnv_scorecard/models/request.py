from typing import Optional

from pydantic import BaseModel, StrictStr


class PlanEvalRequest(BaseModel):
    # Emptiness and length are checked in pre_process so the error messages stay specific
    content: Optional[StrictStr] = None

    class Config:
        json_schema_extra = {
            "example": {
                "content": "This M&V plan uses IPMVP Option B with dedicated submetering of the lighting and "
                "HVAC systems affected by the retrofit. Baseline measurements were taken over a 4-week period "
                "prior to installation. Post-installation measurements will continue for 12 months."
            }
        }


class FetchUrlRequest(BaseModel):
    url: Optional[StrictStr] = None
