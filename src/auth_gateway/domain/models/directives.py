"""Identity update directives

Pure data describing how a host identity should change after a successful
login. Each directive is idempotent: applying it to an identity that already
reflects it leaves the identity unchanged.
"""

from dataclasses import dataclass
from typing import Union

from auth_gateway.domain.models.auth import LocalIdentity

BUREAUCRAT_GROUP = "bureaucrat"


@dataclass(frozen=True)
class SetRealName:
    value: str

    def apply_to(self, identity: LocalIdentity) -> None:
        identity.real_name = self.value


@dataclass(frozen=True)
class SetEmail:
    value: str

    def apply_to(self, identity: LocalIdentity) -> None:
        identity.email = self.value


@dataclass(frozen=True)
class ConfirmEmail:

    def apply_to(self, identity: LocalIdentity) -> None:
        identity.email_confirmed = True


@dataclass(frozen=True)
class AddToGroup:
    group: str

    def apply_to(self, identity: LocalIdentity) -> None:
        identity.groups.add(self.group)


@dataclass(frozen=True)
class RemoveFromGroup:
    group: str

    def apply_to(self, identity: LocalIdentity) -> None:
        identity.groups.discard(self.group)


IdentityDirective = Union[SetRealName, SetEmail, ConfirmEmail, AddToGroup, RemoveFromGroup]


def directive_to_dict(directive: IdentityDirective) -> dict:
    """Convert a directive to a JSON-compatible dictionary"""
    data = {"type": type(directive).__name__}
    if isinstance(directive, (SetRealName, SetEmail)):
        data["value"] = directive.value
    elif isinstance(directive, (AddToGroup, RemoveFromGroup)):
        data["group"] = directive.group
    return data
