"""Pydantic schemas for account and user management endpoints."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ....application.dto import UserDTO
from ....domain.models import User
from ....domain.models.constants import (
    EMAIL_MAX_LENGTH,
    EMAIL_MIN_LENGTH,
    IMAGE_URL_MAX_LENGTH,
    LANG_KEY_MAX_LENGTH,
    LANG_KEY_MIN_LENGTH,
    LOGIN_MAX_LENGTH,
    LOGIN_REGEX,
    NAME_MAX_LENGTH,
)


class UserSchema(BaseModel):
    """A user, with its authorities."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = None
    login: str = Field(min_length=1, max_length=LOGIN_MAX_LENGTH, pattern=LOGIN_REGEX)
    first_name: Optional[str] = Field(default=None, alias="firstName", max_length=NAME_MAX_LENGTH)
    last_name: Optional[str] = Field(default=None, alias="lastName", max_length=NAME_MAX_LENGTH)
    email: Optional[EmailStr] = None
    image_url: Optional[str] = Field(default=None, alias="imageUrl", max_length=IMAGE_URL_MAX_LENGTH)
    activated: bool = False
    lang_key: Optional[str] = Field(
        default=None,
        alias="langKey",
        min_length=LANG_KEY_MIN_LENGTH,
        max_length=LANG_KEY_MAX_LENGTH,
    )
    created_by: Optional[str] = Field(default=None, alias="createdBy")
    created_date: Optional[datetime] = Field(default=None, alias="createdDate")
    last_modified_by: Optional[str] = Field(default=None, alias="lastModifiedBy")
    last_modified_date: Optional[datetime] = Field(default=None, alias="lastModifiedDate")
    authorities: List[str] = Field(default_factory=list)

    @field_validator("email")
    @classmethod
    def _email_length(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not EMAIL_MIN_LENGTH <= len(value) <= EMAIL_MAX_LENGTH:
            raise ValueError(f"email length must be between {EMAIL_MIN_LENGTH} and {EMAIL_MAX_LENGTH}")
        return value

    def to_dto(self) -> UserDTO:
        return UserDTO(
            id=self.id,
            login=self.login,
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            image_url=self.image_url,
            activated=self.activated,
            lang_key=self.lang_key,
            authorities=set(self.authorities),
        )

    @classmethod
    def from_user(cls, user: User) -> "UserSchema":
        return cls(
            id=user.id,
            login=user.login or "",
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            image_url=user.image_url,
            activated=user.activated,
            lang_key=user.lang_key,
            created_by=user.created_by,
            created_date=user.created_date,
            last_modified_by=user.last_modified_by,
            last_modified_date=user.last_modified_date,
            authorities=sorted(user.authorities),
        )


class ManagedUserRequest(UserSchema):
    """Registration payload: a user plus the chosen password."""

    password: Optional[str] = None


class LoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(min_length=1, max_length=LOGIN_MAX_LENGTH)
    password: str
    remember_me: bool = Field(default=False, alias="rememberMe")


class JWTTokenResponse(BaseModel):
    id_token: str


class PasswordChangeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(alias="currentPassword")
    new_password: Optional[str] = Field(default=None, alias="newPassword")


class KeyAndPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    key: str
    new_password: Optional[str] = Field(default=None, alias="newPassword")
