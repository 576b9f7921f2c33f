"""FastAPI dependencies for authentication.

- ``CurrentSubjectId``: strict, 401 when the bearer token is missing or invalid
- ``OptionalSubjectId``: lenient, None when anonymous or the token is bad
- ``CurrentUser``: strict, plus the subject's database record
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from taskboard.api.dependencies import DBSession
from taskboard.core.auth.schemas import AuthorizationResult
from taskboard.core.auth.service import authorize, require_subject
from taskboard.core.errors import UnauthorizedError
from taskboard.modules.users.models import User
from taskboard.modules.users.repos import UserRepository


# HTTP Bearer token security scheme
bearer_scheme = HTTPBearer(auto_error=False)


async def get_authorization(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> AuthorizationResult:
    """Verify the bearer token, if any, and remember the subject on the request."""
    result = authorize(credentials.credentials if credentials else None)
    if result.subject_id is not None:
        request.state.user_id = result.subject_id
    return result


async def get_subject_id(
    result: Annotated[AuthorizationResult, Depends(get_authorization)],
) -> UUID:
    """Require a valid access token.

    Raises:
        MissingTokenError: No bearer token
        InvalidTokenError: Bearer token did not verify
    """
    return require_subject(result)


async def get_optional_subject_id(
    result: Annotated[AuthorizationResult, Depends(get_authorization)],
) -> UUID | None:
    """Subject id if a valid token was supplied, None otherwise."""
    return result.subject_id


async def get_current_user(
    subject_id: Annotated[UUID, Depends(get_subject_id)],
    db: DBSession,
) -> User:
    """Get the authenticated user's record.

    Raises:
        UnauthorizedError: If the token's subject no longer exists
    """
    user = await UserRepository(db).get_by_id(subject_id)
    if user is None:
        raise UnauthorizedError(
            "User associated with token no longer exists",
            error_code="user_not_found",
        )
    return user


CurrentSubjectId = Annotated[UUID, Depends(get_subject_id)]
OptionalSubjectId = Annotated[UUID | None, Depends(get_optional_subject_id)]
CurrentUser = Annotated[User, Depends(get_current_user)]
