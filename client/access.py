# client/access.py
import enum
from typing import Optional, Union

from pydantic.alias_generators import to_camel

from client.types import UserProfile

PROFILE_FIELDS = ("department", "level", "semester", "phone", "address")

UNAPPROVED_MESSAGE = "You must be approved for repository access to view, upload, or manage files."
INCOMPLETE_PROFILE_MESSAGE = (
    "Ensure you complete your profile before uploading or deleting on the repository."
)


class AccessState(str, enum.Enum):
    UNAPPROVED = "unapproved"
    APPROVED_INCOMPLETE_PROFILE = "approved_incomplete_profile"
    APPROVED_COMPLETE = "approved_complete"


UserLike = Union[UserProfile, dict, None]


def _field(user: UserLike, name: str):
    if user is None:
        return None
    if isinstance(user, dict):
        # stored users may come back in either naming style
        if name in user:
            return user[name]
        return user.get(to_camel(name))
    return getattr(user, name, None)


def is_profile_complete(user: UserLike) -> bool:
    for name in PROFILE_FIELDS:
        value = _field(user, name)
        if value is None or not str(value).strip():
            return False
    return True


def evaluate(user: UserLike) -> AccessState:
    if user is None or not _field(user, "is_approved"):
        return AccessState.UNAPPROVED
    if not is_profile_complete(user):
        return AccessState.APPROVED_INCOMPLETE_PROFILE
    return AccessState.APPROVED_COMPLETE


class AccessGate:
    """Decides what the signed-in user may do with the repository.

    Approval is checked before the profile, so an unapproved user with an
    incomplete profile always sees the approval message.
    """

    def __init__(self, block_browse_on_incomplete_profile: bool = True):
        self.block_browse_on_incomplete_profile = block_browse_on_incomplete_profile

    def state(self, user: UserLike) -> AccessState:
        return evaluate(user)

    def can_browse(self, user: UserLike) -> bool:
        state = evaluate(user)
        if state == AccessState.UNAPPROVED:
            return False
        if state == AccessState.APPROVED_INCOMPLETE_PROFILE:
            return not self.block_browse_on_incomplete_profile
        return True

    def can_download(self, user: UserLike) -> bool:
        return evaluate(user) != AccessState.UNAPPROVED

    def can_modify(self, user: UserLike) -> bool:
        return evaluate(user) == AccessState.APPROVED_COMPLETE

    @staticmethod
    def block_message(state: AccessState) -> Optional[str]:
        if state == AccessState.UNAPPROVED:
            return UNAPPROVED_MESSAGE
        if state == AccessState.APPROVED_INCOMPLETE_PROFILE:
            return INCOMPLETE_PROFILE_MESSAGE
        return None
