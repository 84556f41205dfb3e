"""API handlers for token exchange and the user profile."""

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.taskflow.auth.dependencies import get_jwt_validator, get_user_directory
from src.taskflow.auth.jwt_validator import JWTValidator
from src.taskflow.auth.middleware import profile_auth
from src.taskflow.auth.models import AuthContext
from src.taskflow.config import settings
from src.taskflow.features.users.directory import UserDirectory
from src.taskflow.features.users.schemas import UserProfileResponse, UserResponse, VerifyTokenResponse
from src.taskflow.features.users.usecases import AuthenticateUserUseCase, GetUserProfileUseCase
from src.taskflow.features.users.validators import (
    parse_json_body,
    validate_http_request,
    validate_token_field,
)
from src.taskflow.services.database import get_db_session
from src.taskflow.services.rate_limiter import default_rate_limit, public_rate_limit
from src.taskflow.shared.errors import ErrorKind, Failure, ValidationError
from src.taskflow.shared.responses import failure_response, legacy_error_response

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

INTERNAL_SERVER_ERROR_MESSAGE = "Internal server error"


def is_valid_user_id(user_id: object) -> bool:
    return isinstance(user_id, str) and len(user_id) > 0


# All methods are routed here so that non-POST requests get the
# {success, error} body instead of the router's default 405.
@router.api_route("/auth/verify", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
@public_rate_limit
async def verify_token(
    request: Request,
    validator: JWTValidator = Depends(get_jwt_validator),
    directory: UserDirectory = Depends(get_user_directory),
    session: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    """
    Exchange a provider JWT for the application user, creating it on first login.

    Request Body:
        {"token": "<jwt>"}

    Returns:
        200 `{success: true, user, isNewUser}`

    Errors use `{success: false, error: "<message>"}`:
        400 malformed body or token field, unsupported provider
        401 invalid or expired token
        404 wrong path, 405 non-POST, 415 non-JSON content type
        500 anything else
    """
    failure = validate_http_request(request)
    if failure is None:
        body, failure = parse_json_body(await request.body())
    if failure is None:
        failure = validate_token_field(body)
    if failure is not None:
        return legacy_error_response(failure.message, failure.status_code)

    use_case = AuthenticateUserUseCase(validator, directory, max_length=settings.jwt_max_length)
    try:
        result = await use_case.execute(body["token"])
    except Exception as e:
        error = Failure.from_exception(e)
        match error.kind:
            case ErrorKind.AUTH:
                return legacy_error_response(error.message, status.HTTP_401_UNAUTHORIZED)
            case ErrorKind.VALIDATION:
                return legacy_error_response(error.message, status.HTTP_400_BAD_REQUEST)
            case _:
                logger.error(f"Token verification failed: {e}", exc_info=True)
                await session.rollback()
                return legacy_error_response(
                    INTERNAL_SERVER_ERROR_MESSAGE, status.HTTP_500_INTERNAL_SERVER_ERROR
                )

    response = VerifyTokenResponse(
        user=UserResponse.from_user(result.user), is_new_user=result.is_new_user
    )
    return JSONResponse(content=response.model_dump(mode="json", by_alias=True))


@router.get("/user/profile", tags=["user"])
@default_rate_limit
async def get_user_profile(
    request: Request,
    auth: AuthContext = Depends(profile_auth),
    directory: UserDirectory = Depends(get_user_directory),
    session: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    """
    Get the authenticated user's profile.

    Returns:
        200 `{success: true, data: User}`

    Errors use `{success: false, error: {code, message}}`:
        401 AUTHENTICATION_REQUIRED, 404 USER_NOT_FOUND,
        400 VALIDATION_ERROR, 500 INTERNAL_SERVER_ERROR
    """
    user_id = getattr(request.state, "user_id", None)
    try:
        if not is_valid_user_id(user_id):
            raise ValidationError("認証状態が無効です")
        user = await GetUserProfileUseCase(directory).execute(user_id)
    except Exception as e:
        error = Failure.from_exception(e)
        if error.kind is ErrorKind.INFRASTRUCTURE:
            logger.error(f"Profile retrieval failed for user {user_id}: {e}", exc_info=True)
            await session.rollback()
        return failure_response(error)

    response = UserProfileResponse(data=UserResponse.from_user(user))
    return JSONResponse(content=response.model_dump(mode="json", by_alias=True))
