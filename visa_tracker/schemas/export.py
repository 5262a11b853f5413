# visa_tracker/schemas/export.py
from typing import List, Optional

from pydantic import BaseModel

EXPORT_TYPES = ("backup", "zip", "xlsx")


class ExportRequest(BaseModel):
    # checked by the router so an unknown type gets the usual 400 message
    type: Optional[str] = None
    ids: Optional[List[str]] = None
