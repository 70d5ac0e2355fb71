"""Resolution of user names to numeric ownership credentials."""

import grp
import pwd
from abc import ABC, abstractmethod
from typing import Tuple

from hoist_runtime.core.exceptions import IdentityError


class IdentityResolver(ABC):
    """Maps a user name to the (uid, gid) pair used for chown calls."""

    @abstractmethod
    def ids(self, user: str) -> Tuple[int, int]:
        """Return the (uid, gid) for ``user`` or raise IdentityError."""


class PasswdIdentityResolver(IdentityResolver):
    """Looks users up in the host's passwd database.

    The gid is the user's primary group. A numeric string is accepted as a
    uid with no passwd entry, in which case the gid equals the uid.
    """

    def ids(self, user: str) -> Tuple[int, int]:
        try:
            entry = pwd.getpwnam(user)
        except KeyError:
            if user.isdigit():
                return int(user), int(user)
            raise IdentityError(f"No such user: {user}")
        try:
            grp.getgrgid(entry.pw_gid)
        except KeyError:
            raise IdentityError(f"Primary group {entry.pw_gid} of user {user} does not exist")
        return entry.pw_uid, entry.pw_gid


class StaticIdentityResolver(IdentityResolver):
    """Resolves every user to a fixed uid/gid (containers without passwd entries)."""

    def __init__(self, uid: int, gid: int):
        self.uid = uid
        self.gid = gid

    def ids(self, user: str) -> Tuple[int, int]:
        return self.uid, self.gid
