"""
Content store and user directory

The step library only talks to these two interfaces. The SQL implementations
read the CMS database through the models; tests swap in in-memory fakes.
"""

import logging
from typing import Iterable, List, Optional, Protocol

from content_steps.models import Node, NodeType, User

logger = logging.getLogger("content_steps")


class ContentStore(Protocol):
    """Read access to content items, content types and node access"""

    def find_by_title_and_status(self, title: str, status: int) -> Optional[Node]:
        """First item with the title and publication status, or None."""

    def find_by_title_and_type(self, title: str, type_id: str) -> Optional[Node]:
        """First item with the title and type id, or None."""

    def find_type_by_id(self, type_id: str) -> Optional[NodeType]:
        """Type descriptor for an id, or None."""

    def list_types(self) -> List[NodeType]:
        """All registered type descriptors."""

    def check_access(self, op: str, item: Node, user: User) -> bool:
        """True when the user may perform op on the item."""


class UserDirectory(Protocol):
    """Lookup and scenario-scoped management of accounts"""

    def find_by_name(self, name: str) -> Optional[User]:
        """Account with the given name, or None."""

    def create(
        self, name: str, password: str, mail: Optional[str] = None, permissions: Iterable[str] = ()
    ) -> User:
        """Creates an account."""

    def delete(self, user: User) -> None:
        """Removes an account and the content it authored."""


class SqlContentStore:
    """ContentStore backed by the CMS database"""

    def find_by_title_and_status(self, title: str, status: int) -> Optional[Node]:
        return Node.find_first_by_title_and_status(title, status)

    def find_by_title_and_type(self, title: str, type_id: str) -> Optional[Node]:
        return Node.find_first_by_title_and_type(title, type_id)

    def find_type_by_id(self, type_id: str) -> Optional[NodeType]:
        return NodeType.find(type_id)

    def list_types(self) -> List[NodeType]:
        return NodeType.all()

    def check_access(self, op: str, item: Node, user: User) -> bool:
        access = item.access(op, user)
        logger.debug("Access %s on %r for %r: %s", op, item, user, access)
        return access


class SqlUserDirectory:
    """UserDirectory backed by the CMS database"""

    def find_by_name(self, name: str) -> Optional[User]:
        return User.find_by_name(name)

    def create(
        self, name: str, password: str, mail: Optional[str] = None, permissions: Iterable[str] = ()
    ) -> User:
        user = User(name=name, mail=mail or f"{name}@example.com")
        user.set_password(password)
        user.grant(permissions)
        user.create()
        return user

    def delete(self, user: User) -> None:
        user.delete()
