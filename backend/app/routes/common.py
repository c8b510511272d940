from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.models.user import User


class UserRef(BaseModel):
    id: int
    name: Optional[str] = None
    email: str

    model_config = ConfigDict(from_attributes=True)


class ActiveToggle(BaseModel):
    is_active: bool


def user_ref(user: Optional[User]) -> Optional[UserRef]:
    if user is None:
        return None
    return UserRef.model_validate(user)
