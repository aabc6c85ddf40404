"""Domain models for Moodle Auth Gateway"""

from auth_gateway.domain.models.api_auth import (
    AuthenticationRequestShape,
    DirectiveModel,
    LoginRequest,
    LoginResponse,
    PostAuthenticationRequest,
    PostAuthenticationResponse,
    RequestShapeResponse,
)
from auth_gateway.domain.models.auth import (
    AuthAction,
    AuthenticationResponse,
    AuthFailure,
    AuthStatus,
    FailureKind,
    LocalIdentity,
    PasswordAuthenticationRequest,
    PendingAttempt,
    ProfileFetchResult,
    RemoteProfile,
    TokenExchangeResult,
)
from auth_gateway.domain.models.directives import (
    BUREAUCRAT_GROUP,
    AddToGroup,
    ConfirmEmail,
    IdentityDirective,
    RemoveFromGroup,
    SetEmail,
    SetRealName,
    directive_to_dict,
)

__all__ = [
    # Auth models
    "AuthAction",
    "AuthenticationResponse",
    "AuthFailure",
    "AuthStatus",
    "FailureKind",
    "LocalIdentity",
    "PasswordAuthenticationRequest",
    "PendingAttempt",
    "ProfileFetchResult",
    "RemoteProfile",
    "TokenExchangeResult",
    # Directives
    "BUREAUCRAT_GROUP",
    "AddToGroup",
    "ConfirmEmail",
    "IdentityDirective",
    "RemoveFromGroup",
    "SetEmail",
    "SetRealName",
    "directive_to_dict",
    # API models
    "AuthenticationRequestShape",
    "DirectiveModel",
    "LoginRequest",
    "LoginResponse",
    "PostAuthenticationRequest",
    "PostAuthenticationResponse",
    "RequestShapeResponse",
]
