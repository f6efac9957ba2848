from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from ..recipes.models import CamelModel


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class SignupRequest(CamelModel):
    username: str
    password: str
    confirm_password: str | None = None

    @model_validator(mode="after")
    def _passwords_match(self) -> "SignupRequest":
        if self.confirm_password is not None and self.confirm_password != self.password:
            raise ValueError("Passwords do not match")
        return self


class UserOut(BaseModel):
    id: int
    username: str
    favorites: list[str] = Field(default_factory=list)
