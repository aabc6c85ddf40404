"""Authentication API Models

Purpose: Request/response models for gateway endpoints

This module provides Pydantic models for the inbound authentication API.
Responses never carry remote-system error details; the caller only learns
whether the gateway passed or abstained.

Key Components:
- LoginRequest: Username/password input
- LoginResponse: Pass or abstain decision
- PostAuthenticationRequest / PostAuthenticationResponse: Identity update step
- RequestShapeResponse: Fields the host must collect for an action
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Request model for password login"""

    username: str = Field(
        "",
        description="Username as typed by the user",
        examples=["bob"],
    )
    password: str = Field(
        "",
        description="Password, forwarded to Moodle and never stored",
        examples=["secret"],
    )


class LoginResponse(BaseModel):
    """Provider decision for a login attempt"""

    status: Literal["pass", "abstain"]
    username: Optional[str] = Field(None, description="Canonical username when passing")


class PostAuthenticationRequest(BaseModel):
    """Host notification that a login decision was committed"""

    username: str = Field(..., min_length=1, description="Canonical username")
    status: Literal["pass", "abstain", "fail"] = Field(
        ..., description="Final status of the login attempt"
    )


class DirectiveModel(BaseModel):
    """One identity update directive"""

    type: str
    value: Optional[str] = None
    group: Optional[str] = None


class PostAuthenticationResponse(BaseModel):
    """Identity update directives applied for the user"""

    username: str
    applied: List[DirectiveModel] = Field(default_factory=list)


class AuthenticationRequestShape(BaseModel):
    """Fields the host must collect"""

    type: str
    fields: List[str]


class RequestShapeResponse(BaseModel):
    """Authentication requests supported for an action"""

    action: str
    requests: List[AuthenticationRequestShape] = Field(default_factory=list)
