"""Authentication Data Models

Purpose: Define data structures for remote authentication attempts

This module provides the core data models for the gateway.

Key Components:
- PasswordAuthenticationRequest: Username/password pair submitted by the host
- RemoteProfile: Normalized Moodle user profile
- AuthFailure: Typed failure of a remote call
- TokenExchangeResult / ProfileFetchResult: Results of the two remote steps
- PendingAttempt: Token and profile held between begin and post authentication
- AuthenticationResponse: Pass or abstain decision returned to the host
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


def parse_utc_timestamp(timestamp_str: str) -> datetime:
    """Parse UTC timestamp string to datetime object"""
    if isinstance(timestamp_str, datetime):
        return timestamp_str
    return datetime.fromisoformat(timestamp_str.replace('Z', '+00:00'))


def to_json_compatible(value):
    """Convert datetime to JSON-compatible ISO format string"""
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class AuthAction(Enum):
    """Host authentication actions"""
    LOGIN = "login"
    CREATE = "create"
    LINK = "link"
    CHANGE = "change"
    REMOVE = "remove"
    UNLINK = "unlink"


class AuthStatus(Enum):
    """Provider decision for an authentication attempt"""
    PASS = "pass"
    ABSTAIN = "abstain"


class FailureKind(Enum):
    """Failure taxonomy for remote authentication"""
    TRANSPORT_ERROR = "transport_error"
    MALFORMED_RESPONSE = "malformed_response"
    REMOTE_REJECTED = "remote_rejected"
    IDENTITY_MISMATCH = "identity_mismatch"
    UNKNOWN = "unknown"
    STATE_LOST = "state_lost"


@dataclass(frozen=True)
class AuthFailure:
    """Typed failure of one authentication step

    Attributes:
        kind: Failure category
        detail: Diagnostic context (endpoint, HTTP status, raw body)
    """
    kind: FailureKind
    detail: str = ""

    def __str__(self) -> str:
        if self.detail:
            return f"{self.kind.value}: {self.detail}"
        return self.kind.value


@dataclass
class PasswordAuthenticationRequest:
    """Username and password submitted for login"""
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)

    @property
    def fields(self) -> list[str]:
        """Fields the host must collect for this request"""
        return ["username", "password"]


@dataclass(frozen=True)
class RemoteProfile:
    """Moodle user profile

    Attributes:
        full_name: Moodle full name
        email: Moodle email address
        remote_username: Moodle username
    """
    full_name: str
    email: str
    remote_username: str

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization"""
        return {
            "full_name": self.full_name,
            "email": self.email,
            "remote_username": self.remote_username,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'RemoteProfile':
        """Create from dictionary (JSON deserialization)"""
        return cls(
            full_name=data["full_name"],
            email=data["email"],
            remote_username=data["remote_username"],
        )


@dataclass
class TokenExchangeResult:
    """Result of exchanging credentials for a Moodle token"""
    token: Optional[str] = field(default=None, repr=False)
    failure: Optional[AuthFailure] = None

    @property
    def is_success(self) -> bool:
        """Check if a token was obtained"""
        return self.failure is None and bool(self.token)


@dataclass
class ProfileFetchResult:
    """Result of fetching the Moodle profile"""
    profile: Optional[RemoteProfile] = None
    failure: Optional[AuthFailure] = None

    @property
    def is_success(self) -> bool:
        """Check if a consistent profile was obtained"""
        return self.failure is None and self.profile is not None


@dataclass
class PendingAttempt:
    """Token and profile awaiting post-authentication

    Attributes:
        token: Moodle web-service token
        profile: Profile fetched with the token
        created_at: When the attempt passed
    """
    token: str = field(repr=False)
    profile: RemoteProfile
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization"""
        return {
            "token": self.token,
            "profile": self.profile.to_dict(),
            "created_at": to_json_compatible(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'PendingAttempt':
        """Create from dictionary (JSON deserialization)"""
        return cls(
            token=data["token"],
            profile=RemoteProfile.from_dict(data["profile"]),
            created_at=parse_utc_timestamp(data["created_at"]),
        )


@dataclass
class LocalIdentity:
    """Host account as seen by the gateway

    Attributes:
        username: Canonical username
        real_name: Display name, empty until first set
        email: Email address
        email_confirmed: Whether the email was confirmed
        groups: Group memberships
    """
    username: str
    real_name: str = ""
    email: str = ""
    email_confirmed: bool = False
    groups: set[str] = field(default_factory=set)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization"""
        return {
            "username": self.username,
            "real_name": self.real_name,
            "email": self.email,
            "email_confirmed": self.email_confirmed,
            "groups": sorted(self.groups),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'LocalIdentity':
        """Create from dictionary (JSON deserialization)"""
        return cls(
            username=data["username"],
            real_name=data.get("real_name", ""),
            email=data.get("email", ""),
            email_confirmed=data.get("email_confirmed", False),
            groups=set(data.get("groups", [])),
        )


@dataclass
class AuthenticationResponse:
    """Provider decision returned to the host

    Attributes:
        status: PASS or ABSTAIN
        username: Canonical username when passing
        failure: Reason for abstaining (logged, never shown to end users)
    """
    status: AuthStatus
    username: Optional[str] = None
    failure: Optional[AuthFailure] = None

    @classmethod
    def new_pass(cls, username: str) -> 'AuthenticationResponse':
        return cls(status=AuthStatus.PASS, username=username)

    @classmethod
    def new_abstain(cls, failure: Optional[AuthFailure] = None) -> 'AuthenticationResponse':
        return cls(status=AuthStatus.ABSTAIN, failure=failure)

    @property
    def is_pass(self) -> bool:
        return self.status == AuthStatus.PASS
