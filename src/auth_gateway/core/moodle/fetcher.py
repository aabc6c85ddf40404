"""Moodle profile lookup with a web-service token."""

import logging
from typing import Any

from auth_gateway.domain.models import (
    AuthFailure,
    FailureKind,
    ProfileFetchResult,
    RemoteProfile,
)
from auth_gateway.infrastructure.moodle.client import (
    REST_ENDPOINT,
    MoodleClient,
    MoodleMalformedResponse,
    MoodleTransportError,
)

logger = logging.getLogger(__name__)

SITE_INFO_FUNCTION = "core_webservice_get_site_info"
USERS_BY_FIELD_FUNCTION = "core_user_get_users_by_field"


class ProfileFetcher:
    """Loads the Moodle user's full name, email and username.

    Two sequential calls: site info yields the Moodle user id (and lets us
    verify the token belongs to the requested user), then the user record is
    read by id.
    """

    def __init__(self, client: MoodleClient):
        self.client = client

    async def fetch(self, token: str, expected_username: str) -> ProfileFetchResult:
        """Fetch and validate the profile for the token's owner.

        Args:
            token: Moodle web-service token
            expected_username: Username the token was requested for

        Returns:
            ProfileFetchResult with the profile on success
        """
        logger.debug(f"AuthMoodle: Attempting to get info about the user: {expected_username}")

        try:
            site_info = await self._call(token, SITE_INFO_FUNCTION)
        except MoodleTransportError as e:
            return ProfileFetchResult(failure=AuthFailure(FailureKind.TRANSPORT_ERROR, str(e)))
        except MoodleMalformedResponse as e:
            return ProfileFetchResult(failure=AuthFailure(FailureKind.MALFORMED_RESPONSE, e.body))

        if isinstance(site_info, dict) and "exception" in site_info:
            return self._remote_rejected(site_info)

        if not isinstance(site_info, dict) or not site_info.get("userid"):
            logger.error("AuthMoodle: Unable to get Moodle user id")
            return ProfileFetchResult(
                failure=AuthFailure(FailureKind.IDENTITY_MISMATCH, "missing userid in site info")
            )

        remote_username = str(site_info.get("username") or "")
        if remote_username.lower() != expected_username.lower():
            logger.error(
                f"AuthMoodle: User name mismatch: expected {expected_username}, got {remote_username}"
            )
            return ProfileFetchResult(
                failure=AuthFailure(
                    FailureKind.IDENTITY_MISMATCH,
                    f"expected {expected_username}, got {remote_username}",
                )
            )

        try:
            users = await self._call(
                token,
                USERS_BY_FIELD_FUNCTION,
                field="id",
                **{"values[0]": str(site_info["userid"])},
            )
        except MoodleTransportError as e:
            return ProfileFetchResult(failure=AuthFailure(FailureKind.TRANSPORT_ERROR, str(e)))
        except MoodleMalformedResponse as e:
            return ProfileFetchResult(failure=AuthFailure(FailureKind.MALFORMED_RESPONSE, e.body))

        if isinstance(users, dict) and "exception" in users:
            return self._remote_rejected(users)

        if not users or not isinstance(users, list) or not isinstance(users[0], dict):
            logger.error(f"AuthMoodle: Unable to get Moodle user profile: {users!r}")
            return ProfileFetchResult(
                failure=AuthFailure(FailureKind.MALFORMED_RESPONSE, repr(users))
            )

        user = users[0]
        missing = [
            key
            for key in ("fullname", "email", "username")
            if not isinstance(user.get(key), str) or not user[key]
        ]
        if missing:
            logger.error(f"AuthMoodle: Moodle user profile lacks {', '.join(missing)}")
            return ProfileFetchResult(
                failure=AuthFailure(FailureKind.MALFORMED_RESPONSE, f"missing {', '.join(missing)}")
            )

        if user["username"].lower() != expected_username.lower():
            logger.error(
                f"AuthMoodle: Profile user name mismatch: expected {expected_username}, "
                f"got {user['username']}"
            )
            return ProfileFetchResult(
                failure=AuthFailure(
                    FailureKind.IDENTITY_MISMATCH,
                    f"expected {expected_username}, got {user['username']}",
                )
            )

        return ProfileFetchResult(
            profile=RemoteProfile(
                full_name=user["fullname"],
                email=user["email"],
                remote_username=user["username"],
            )
        )

    async def _call(self, token: str, function: str, **extra: str) -> Any:
        params = {
            "wstoken": token,
            "wsfunction": function,
            "moodlewsrestformat": "json",
            **extra,
        }
        body = await self.client.get(REST_ENDPOINT, params)
        return self.client.decode(REST_ENDPOINT, body)

    def _remote_rejected(self, decoded: dict) -> ProfileFetchResult:
        message = decoded["exception"]
        if decoded.get("message"):
            message = f"{message}: {decoded['message']}"
        logger.error(f"AuthMoodle: Remote exception: {message}")
        return ProfileFetchResult(failure=AuthFailure(FailureKind.REMOTE_REJECTED, message))
