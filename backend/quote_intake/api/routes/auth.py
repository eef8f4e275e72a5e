# backend/quote_intake/api/routes/auth.py
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body
from pydantic import ValidationError

from quote_intake.core.errors import ApiError
from quote_intake.core.security import authenticate_admin
from quote_intake.schemas.auth import LoginIn, TokenOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=TokenOut)
def login(body: Any = Body(default=None)):
    try:
        payload = LoginIn.model_validate(body if isinstance(body, dict) else {})
    except ValidationError:
        raise ApiError.validation("Invalid login payload")

    token = authenticate_admin(payload.email, payload.password)
    if not token:
        logger.warning("Failed admin login for %s", payload.email)
        raise ApiError.unauthorized("Bad credentials")

    return TokenOut(token=token)
