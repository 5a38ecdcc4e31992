#  JSON body login for the front-end, alongside fastapi-users' form login
from fastapi import APIRouter
from ..security import get_jwt_strategy
from fastapi import Depends
from ..errors import Unauthenticated
from ..db import get_user_db
from ..schemas.user_schema import LoginRequest, UserRead
from fastapi_users.password import PasswordHelper

import asyncio

router = APIRouter(prefix='/auth', tags=['auth'])


@router.post("/login")
async def login(payload: LoginRequest, user_db = Depends(get_user_db)):

    user = await user_db.get_by_email(payload.email)
    if not user or not user.is_active:
        raise Unauthenticated("Invalid credentials")

    pwd_helper = PasswordHelper()
    valid, new_hash = pwd_helper.verify_and_update(payload.password, user.hashed_password)

    if not valid:
        raise Unauthenticated("Invalid credentials")

    if new_hash:
        await user_db.update(user, {"hashed_password": new_hash})

    #  JWT token
    strategy = get_jwt_strategy()
    maybe_token = strategy.write_token(user)

    if asyncio.iscoroutine(maybe_token):
        access_token = await maybe_token
    else:
        access_token = maybe_token

    user_out = UserRead.model_validate(user, from_attributes=True)

    return {"success": True, "data": {"user": user_out, "token": access_token}}
