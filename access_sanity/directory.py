"""Directory service client: users, groups and group memberships."""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .errors import UserNotFoundError
from .http_client import ConnectClient
from .pagination import all_pages

logger = logging.getLogger(__name__)

DIRECTORY_SERVICE = "commonfate.control.directory.v1alpha1.DirectoryService"


class User:
    """A directory user.  Only ``id`` and ``email`` are needed for lookups."""

    def __init__(self, id: str, email: str, name: str = ""):
        self.id = id
        self.email = email
        self.name = name

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(data.get("id", ""), data.get("email", ""), data.get("name", ""))

    def __repr__(self):
        return f"User(id={self.id!r}, email={self.email!r})"


class Group:
    def __init__(self, id: str, name: str = ""):
        self.id = id
        self.name = name

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Group":
        return cls(data.get("id", ""), data.get("name", ""))

    def __repr__(self):
        return f"Group(id={self.id!r}, name={self.name!r})"


class Membership:
    """A user's membership of a single group."""

    def __init__(self, group: Group):
        self.group = group

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Membership":
        return cls(Group.from_dict(data.get("group") or {}))


class DirectoryClient:
    """Wraps the ``DirectoryService`` RPCs used for user and group lookups."""

    def __init__(self, client: ConnectClient):
        self.client = client

    def query_users(self, page_token: Optional[str] = None) -> Tuple[List[User], Optional[str]]:
        """Fetch one page of users."""
        res = self.client.call(DIRECTORY_SERVICE, "QueryUsers", {"pageToken": page_token or ""})
        users = [User.from_dict(u) for u in res.get("users") or []]
        return users, res.get("nextPageToken") or None

    def query_groups_for_user(
        self, user_id: str, page_token: Optional[str] = None,
    ) -> Tuple[List[Membership], Optional[str]]:
        """Fetch one page of group memberships for ``user_id``."""
        res = self.client.call(DIRECTORY_SERVICE, "QueryGroupsForUser", {
            "userId": user_id,
            "pageToken": page_token or "",
        })
        memberships = [Membership.from_dict(m) for m in res.get("memberships") or []]
        return memberships, res.get("nextPageToken") or None

    def list_users(self) -> List[User]:
        """Fetch every user in the directory, following pagination."""
        users = all_pages(self.query_users)
        logger.debug("fetched %d users", len(users))
        return users

    def list_groups_for_user(self, user_id: str) -> List[Membership]:
        """Fetch every group membership for ``user_id``, following pagination."""
        return all_pages(lambda token: self.query_groups_for_user(user_id, token))


def find_user_with_email(users: Iterable[User], email: str) -> User:
    """Return the first user whose email equals ``email`` exactly.

    Raises:
        UserNotFoundError: if no user matches.
    """
    for user in users:
        if user.email == email:
            return user
    raise UserNotFoundError(email)


def find_membership(memberships: Iterable[Membership], group_id: str) -> Optional[Membership]:
    """Return the membership for ``group_id``, or None if the user is not a member."""
    for membership in memberships:
        if membership.group.id == group_id:
            return membership
    return None
