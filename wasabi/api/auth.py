from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse, RedirectResponse, Response

from wasabi.config import Settings
from wasabi.dependencies import SettingsDep, get_authorization_gate
from wasabi.schemas.auth import MeResponse, MessageResponse
from wasabi.services.auth_service import AuthorizationGate, LoginOutcome
from wasabi.utils.auth import (
    SESSION_COOKIE,
    SESSION_MAX_AGE,
    STATE_COOKIE,
    STATE_MAX_AGE,
    CurrentIdentity,
)
from wasabi.utils.tokens import StateTokenError

router = APIRouter(prefix="/auth", tags=["Authentication"])

Gate = Annotated[AuthorizationGate, Depends(get_authorization_gate)]


def _outcome_response(outcome: LoginOutcome, settings: Settings) -> Response:
    if outcome.redirect_url:
        response: Response = RedirectResponse(outcome.redirect_url, status_code=outcome.status_code)
    else:
        response = JSONResponse(status_code=outcome.status_code, content={"detail": outcome.detail})

    if outcome.consume_state:
        response.delete_cookie(STATE_COOKIE, path="/")

    if outcome.session_token:
        response.set_cookie(
            SESSION_COOKIE,
            outcome.session_token,
            max_age=SESSION_MAX_AGE,
            path="/",
            httponly=True,
            secure=settings.cookie_secure,
            samesite="lax",
        )
    return response


@router.get("/login")
async def login(gate: Gate, settings: SettingsDep) -> RedirectResponse:
    try:
        redirect = gate.begin_login()
    except StateTokenError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not start login",
        ) from None

    response = RedirectResponse(redirect.url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    response.set_cookie(
        STATE_COOKIE,
        redirect.state,
        max_age=STATE_MAX_AGE,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )
    return response


@router.get("/callback")
async def callback(
    request: Request,
    gate: Gate,
    settings: SettingsDep,
    code: Annotated[str | None, Query()] = None,
    state: Annotated[str | None, Query()] = None,
    error: Annotated[str | None, Query()] = None,
) -> Response:
    outcome = await gate.complete_login(
        code=code,
        state=state,
        state_cookie=request.cookies.get(STATE_COOKIE),
        error=error,
    )
    return _outcome_response(outcome, settings)


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response) -> MessageResponse:
    response.delete_cookie(SESSION_COOKIE, path="/")
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=MeResponse)
async def me(identity: CurrentIdentity) -> MeResponse:
    return MeResponse(
        user_id=identity.user_id,
        username=identity.username,
        discriminator=identity.discriminator,
        avatar=identity.avatar,
    )
