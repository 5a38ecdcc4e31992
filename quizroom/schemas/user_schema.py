from fastapi_users import schemas
import uuid
from pydantic import BaseModel


class UserRead(schemas.BaseUser[uuid.UUID]):
    name: str | None = None


class UserCreate(schemas.BaseUserCreate):
    name: str | None = None


class UserUpdate(schemas.BaseUserUpdate):
    name: str | None = None


class LoginRequest(BaseModel):
    email: str
    password: str
