"""
Operator login.

- GET /login - Login form; shows a pending flash message once
- POST /login - Validates credentials and redirects (303)
"""

from __future__ import annotations

import html
import logging

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse

from src.adapters.auth.crypto import Argon2PasswordHasher, HashingWorkerPool
from src.adapters.sqlite_db import SQLiteUserRepo
from src.api.deps import get_hasher, get_hashing_pool, get_user_repo
from src.api.errors import log_server_error
from src.components.auth import (
    AuthErrorCode,
    Credentials,
    ValidateCredentialsInput,
    run_validate_credentials,
)

logger = logging.getLogger(__name__)

router = APIRouter()

FLASH_COOKIE = "_flash"
UNEXPECTED_FLASH = "Something went wrong"

LOGIN_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta http-equiv="content-type" content="text/html; charset=utf-8">
    <title>Login</title>
</head>
<body>
    {error_html}
    <form action="/login" method="post">
        <label>Username
            <input
                type="text"
                placeholder="Enter Username"
                name="username"
            >
        </label>
        <label>Password
            <input
                type="password"
                placeholder="Enter Password"
                name="password"
            >
        </label>
        <button type="submit">Login</button>
    </form>
</body>
</html>"""


@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request) -> HTMLResponse:
    flash = request.cookies.get(FLASH_COOKIE)
    error_html = f"<p><i>{html.escape(flash)}</i></p>" if flash else ""
    response = HTMLResponse(LOGIN_PAGE.format(error_html=error_html))
    if flash is not None:
        response.delete_cookie(FLASH_COOKIE)
    return response


@router.post("/login")
async def login(
    username: str = Form(""),
    password: str = Form(""),
    user_repo: SQLiteUserRepo = Depends(get_user_repo),
    hasher: Argon2PasswordHasher = Depends(get_hasher),
    hashing_pool: HashingWorkerPool = Depends(get_hashing_pool),
) -> RedirectResponse:
    result = await run_validate_credentials(
        ValidateCredentialsInput(Credentials(username=username, password=password)),
        user_repo=user_repo,
        hasher=hasher,
        hashing_pool=hashing_pool,
    )
    if result.error is None:
        logger.info("User %s logged in", result.user_id)
        return RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)

    if result.error.code == AuthErrorCode.INVALID_CREDENTIALS:
        flash = result.error.message
    else:
        log_server_error(result.error)
        flash = UNEXPECTED_FLASH

    response = RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)
    response.set_cookie(FLASH_COOKIE, flash, httponly=True, samesite="lax")
    return response
