"""Per-browser identity.

Every client gets an opaque user id in a cookie on first contact. All data a
request touches is scoped to that id through a ScopedRepository.
"""

import re
import secrets
import string
import time
from typing import Awaitable, Callable

from fastapi import Depends, Request, Response

from shared.stores.ScopedRepository import ScopedRepository

_USER_ID_PATTERN = re.compile(r"^user_\d+_[a-z0-9]{9}$")
_USER_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_user_id() -> str:
    """Return a fresh id of the form ``user_<epoch ms>_<9 random chars>``."""
    suffix = "".join(secrets.choice(_USER_ID_ALPHABET) for _ in range(9))
    return f"user_{int(time.time() * 1000)}_{suffix}"


async def identity_middleware(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    """Resolve the caller's identity from the session cookie, issuing one if needed."""
    cookie_name = request.app.state.helper_config.get_string_val("SESSION_COOKIE_NAME", default="docqa_session")
    user_id = request.cookies.get(cookie_name)
    issued = False
    if not user_id or not _USER_ID_PATTERN.match(user_id):
        user_id = new_user_id()
        issued = True
        request.app.state.logging.debug("Issued new identity %s", user_id)
    request.state.user_id = user_id

    response = await call_next(request)
    if issued:
        response.set_cookie(cookie_name, user_id, httponly=True, samesite="lax")
    return response


def get_user_id(request: Request) -> str:
    return request.state.user_id


def get_repository(request: Request, user_id: str = Depends(get_user_id)) -> ScopedRepository:
    """Repository bound to the calling identity."""
    return ScopedRepository(request.app.state.store, user_id)
