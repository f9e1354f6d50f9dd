from datetime import datetime

from pydantic import BaseModel


class UserResponse(BaseModel):
    id: int
    username: str
    display_name: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True
