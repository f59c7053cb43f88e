from datetime import date

from pydantic import Field

from villa_planning.schemas.common import ApiModel


class VillaBase(ApiModel):
    name: str = Field(min_length=1, max_length=120)
    color: str = Field(default="#93C5FD", pattern=r"^#[0-9A-Fa-f]{6}$")


class VillaCreate(VillaBase):
    pass


class VillaRead(VillaBase):
    id: int


class UserBase(ApiModel):
    first_name: str = Field(min_length=1, max_length=80)
    last_name: str = Field(min_length=1, max_length=80)
    email: str = Field(min_length=3, max_length=180)
    roles: list[str] = Field(default_factory=lambda: ["ROLE_EDUCATOR"])
    villa_id: int | None = None
    color: str | None = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")
    hired_on: date | None = None


class UserCreate(UserBase):
    pass


class UserRead(UserBase):
    id: int
    full_name: str


class UserSummary(ApiModel):
    id: int
    full_name: str
    color: str | None = None
