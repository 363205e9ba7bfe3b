from typing import Any, List, Optional, Union
from datetime import datetime
from pydantic import BaseModel, StrictBool, StrictFloat, StrictInt, StrictStr
from app.core.constants import SettingDataType


class SettingResponse(BaseModel):
    """Response schema for a setting; ``value`` is decoded according to ``type``."""
    id: str
    name: str
    description: Optional[str] = None
    type: SettingDataType
    value: Any
    created_at: datetime
    updated_at: datetime


class SettingUpdateRequest(BaseModel):
    """Request schema for updating a setting value. The value must match the setting type."""
    value: Union[StrictBool, StrictInt, StrictFloat, StrictStr, List[StrictStr]]
    description: Optional[str] = None
