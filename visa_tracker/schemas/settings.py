# visa_tracker/schemas/settings.py
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

SETTINGS_ID = "settings_1"


class VisaSettings(BaseModel):
    # other configuration fields are opaque and kept verbatim
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str = SETTINGS_ID
    # order is meaningful: it defines progression and the awaiting step
    VISA_STEPS: List[str] = Field(default_factory=list)
    ADMIN_PASSWORD: Optional[str] = None

    def to_document(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)
