from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel

class OrmSchema(BaseModel):
    class Config:
        from_attributes = True

    def payload(self) -> Dict[str, Any]:
        """JSON-safe dict for realtime frames."""
        return self.model_dump(mode="json")

class AuditedSchema(OrmSchema):
    created_at: datetime
    updated_at: datetime | None = None
