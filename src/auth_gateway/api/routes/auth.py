"""Authentication Routes

Purpose: FastAPI routes exposing the Moodle provider to the host application

Key Endpoints:
- POST /api/v1/auth/login: Begin primary authentication
- POST /api/v1/auth/post-authentication: Apply identity updates after login
- GET /api/v1/auth/requests/{action}: Request shape for an action
- POST /api/v1/auth/accounts: Account creation (unsupported)

Remote failures never reach the caller: the login endpoint answers "abstain"
and the host shows its generic invalid-login message.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException

from auth_gateway.config.settings import get_settings
from auth_gateway.core.auth.factory import get_auth_provider
from auth_gateway.core.auth.moodle import MoodlePasswordAuthProvider
from auth_gateway.core.auth.provider import UnsupportedOperationError
from auth_gateway.domain.models import (
    AuthAction,
    AuthenticationRequestShape,
    AuthenticationResponse,
    AuthStatus,
    DirectiveModel,
    LoginRequest,
    LoginResponse,
    PasswordAuthenticationRequest,
    PostAuthenticationRequest,
    PostAuthenticationResponse,
    RequestShapeResponse,
    directive_to_dict,
)
from auth_gateway.infrastructure.redis.client import get_redis_client

# Initialize router and logger
router = APIRouter(prefix="/api/v1/auth", tags=["authentication"])
logger = logging.getLogger(__name__)


@router.post("/login", response_model=LoginResponse, status_code=200)
async def login(
    request: LoginRequest,
    provider: MoodlePasswordAuthProvider = Depends(get_auth_provider),
) -> LoginResponse:
    """Begin primary authentication

    Always answers 200; the status field carries the decision.
    """
    correlation_id = str(uuid.uuid4())

    response = await provider.begin_authentication(
        [PasswordAuthenticationRequest(username=request.username, password=request.password)]
    )

    if response.is_pass:
        logger.info(
            f"Login passed for {response.username}",
            extra={"username": response.username, "correlation_id": correlation_id},
        )
        return LoginResponse(status="pass", username=response.username)

    logger.info(
        f"Login abstained: {response.failure or 'no opinion'}",
        extra={"correlation_id": correlation_id},
    )
    return LoginResponse(status="abstain")


@router.post("/post-authentication", response_model=PostAuthenticationResponse)
async def post_authentication(
    request: PostAuthenticationRequest,
    provider: MoodlePasswordAuthProvider = Depends(get_auth_provider),
) -> PostAuthenticationResponse:
    """Apply Moodle profile data to the identity that just logged in"""
    if request.status == AuthStatus.PASS.value:
        response = AuthenticationResponse.new_pass(request.username)
    else:
        response = AuthenticationResponse.new_abstain()

    identity = await provider.identity_store.load_identity(request.username)
    directives = await provider.post_authentication(identity, response)

    return PostAuthenticationResponse(
        username=request.username,
        applied=[DirectiveModel(**directive_to_dict(d)) for d in directives],
    )


@router.get("/requests/{action}", response_model=RequestShapeResponse)
async def authentication_requests(
    action: AuthAction,
    provider: MoodlePasswordAuthProvider = Depends(get_auth_provider),
) -> RequestShapeResponse:
    """Describe the fields the host must collect for an action"""
    requests = provider.get_authentication_requests(action)
    return RequestShapeResponse(
        action=action.value,
        requests=[
            AuthenticationRequestShape(type=type(r).__name__, fields=r.fields) for r in requests
        ],
    )


@router.post("/accounts")
async def create_account(
    request: LoginRequest,
    provider: MoodlePasswordAuthProvider = Depends(get_auth_provider),
) -> None:
    """Account creation is not supported by this gateway"""
    try:
        await provider.begin_primary_account_creation(
            request.username,
            None,
            [PasswordAuthenticationRequest(username=request.username, password=request.password)],
        )
    except UnsupportedOperationError as e:
        raise HTTPException(status_code=501, detail=str(e))


@router.get("/health")
async def health_check(provider: MoodlePasswordAuthProvider = Depends(get_auth_provider)):
    """Authentication system health

    Redis is checked only when one of the stores is backed by it.
    """
    settings = get_settings()
    redis_status = "not_configured"
    if "redis" in (settings.attempt_store_backend, settings.identity_store_backend):
        try:
            redis_client = await get_redis_client()
            redis_status = "healthy" if await redis_client.health_check() else "unhealthy"
        except Exception as e:
            logger.error(f"Auth health check failed: {e}")
            redis_status = "unhealthy"

    return {
        "status": "degraded" if redis_status == "unhealthy" else "healthy",
        "redis": redis_status,
        "provider": provider.__class__.__name__,
        "moodle_url": provider.moodle_url,
        "attempt_store": provider.attempt_store.__class__.__name__,
        "identity_store": provider.identity_store.__class__.__name__,
    }
