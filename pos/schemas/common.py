from pydantic import BaseModel, ConfigDict, Field
from typing import Literal, Optional
from datetime import datetime

RoleLiteral = Literal["admin", "cashier"]

class LoginIn(BaseModel):
    username: str
    password: str

class UserOut(BaseModel):
    id: str
    username: str
    role: RoleLiteral
    active: bool = True
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, u) -> "UserOut":
        return cls(id=u.id, username=u.username, role=u.role.value, active=bool(u.active), created_at=u.created_at)

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut

class UserIn(BaseModel):
    model_config = ConfigDict(extra="forbid")
    username: str = Field(min_length=3, max_length=80)
    password: str = Field(min_length=6)
    role: RoleLiteral = "cashier"
    active: bool = True

class UserUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")
    username: Optional[str] = Field(default=None, min_length=3, max_length=80)
    role: Optional[RoleLiteral] = None
    active: Optional[bool] = None

class PasswordReset(BaseModel):
    model_config = ConfigDict(extra="forbid")
    new_password: str = Field(min_length=6)
