from pydantic import BaseModel, ConfigDict
from datetime import datetime


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    clerk_user_id: str
    email: str
    name: str | None
    image_url: str | None
    phone: str | None
    role: str
    created_at: datetime | None


class AdminCheckResponse(BaseModel):
    authorized: bool
    reason: str | None = None
    user: UserResponse | None = None
