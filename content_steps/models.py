######################################################################
# Copyright 2016, 2024 John J. Rofrano. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
######################################################################

"""
Models for the content-management database

The tables are owned by the CMS under test; these models only map the
columns the steps read (nodes, node types, users) plus the small amount of
writing the steps need (creating and removing scenario users).

Lookup contract: single-item lookups return object|None, multi-item
lookups return list. Title lookups order by id, so "first match" means the
lowest id when titles are duplicated.
"""

import logging
from typing import Iterable, List, Optional

from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import check_password_hash, generate_password_hash

from content_steps.common.errors import DatabaseError

logger = logging.getLogger("content_steps")

# SQLAlchemy handle; initialized in create_app()
db = SQLAlchemy()

NODE_NOT_PUBLISHED = 0
NODE_PUBLISHED = 1

ACCESS_OPS = ("view", "update", "delete")


class PersistentBase:
    """Create/delete helpers shared by the models"""

    def _commit(self, change, action: str):
        try:
            change(self)
            db.session.commit()
        except Exception as e:  # pragma: no cover - exercised via exception tests
            db.session.rollback()
            logger.error("Error %s record: %s", action, self)
            raise DatabaseError(e) from e

    def create(self):
        """Creates this record in the database."""
        logger.info("Creating %s", self)
        self._commit(db.session.add, "creating")

    def delete(self):
        """Removes this record from the data store."""
        logger.info("Deleting %s", self)
        self._commit(db.session.delete, "deleting")


class SerialBase(PersistentBase):
    """Records whose integer id is assigned by the database"""

    def create(self):
        self.id = None  # make sure id is None so SQLAlchemy will assign one
        super().create()


class NodeType(PersistentBase, db.Model):
    """
    Class that represents a content type (id + human readable label)
    """

    __tablename__ = "node_type"

    type = db.Column(db.String(32), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")

    def __repr__(self):
        return f"<NodeType {self.name} type=[{self.type}]>"

    @classmethod
    def find(cls, type_id: str) -> Optional["NodeType"]:
        """Finds a NodeType by its id (single object or None)."""
        logger.info("Processing node type lookup for %s ...", type_id)
        return cls.query.session.get(cls, type_id)

    @classmethod
    def all(cls) -> List["NodeType"]:
        """Returns all NodeTypes ordered by id."""
        return list(cls.query.order_by(cls.type).all())


class User(SerialBase, db.Model):
    """
    Class that represents a CMS account
    """

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(60), nullable=False, unique=True)
    mail = db.Column(db.String(254), nullable=False, default="")
    password = db.Column(db.String(255), nullable=False, default="")
    status = db.Column(db.Integer, nullable=False, default=1)
    # Comma separated permission names
    permissions = db.Column(db.Text, nullable=False, default="")
    nodes = db.relationship(
        "Node", backref="author", lazy="select", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<User {self.name} id=[{self.id}]>"

    @property
    def permission_set(self) -> set:
        """Permissions granted to this account."""
        return {p.strip() for p in (self.permissions or "").split(",") if p.strip()}

    def grant(self, permissions: Iterable[str]):
        """Adds permissions to this account (not committed)."""
        granted = self.permission_set | {p.strip() for p in permissions if p.strip()}
        self.permissions = ",".join(sorted(granted))

    def has_permission(self, permission: str) -> bool:
        """True when the account holds the given permission."""
        return permission in self.permission_set

    def set_password(self, password: str):
        """Stores a salted hash of the password."""
        self.password = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        """Verifies a plain text password against the stored hash."""
        return bool(self.password) and check_password_hash(self.password, password)

    @classmethod
    def find_by_name(cls, name: str) -> Optional["User"]:
        """Finds a User by account name (single object or None)."""
        logger.info("Processing user lookup for %s ...", name)
        return cls.query.filter(cls.name == name).first()


class Node(SerialBase, db.Model):
    """
    Class that represents a content item
    """

    __tablename__ = "node"

    id = db.Column(db.Integer, primary_key=True)
    type_id = db.Column(
        "type", db.String(32), db.ForeignKey("node_type.type"), nullable=False
    )
    title = db.Column(db.String(255), nullable=False)
    status = db.Column(db.Integer, nullable=False, default=NODE_PUBLISHED)
    author_id = db.Column("uid", db.Integer, db.ForeignKey("users.id"), nullable=True)
    node_type = db.relationship("NodeType", lazy="joined")

    def __repr__(self):
        return f"<Node {self.title} id=[{self.id}]>"

    @property
    def published(self) -> bool:
        """True when the node is visible to the public."""
        return self.status == NODE_PUBLISHED

    def access(self, op: str, account: Optional[User]) -> bool:
        """Decides whether an account may view, update or delete this node.

        Mirrors the default node access rules of the CMS: content
        administrators bypass everything, everybody else needs
        "access content" plus the per type "any" or "own" permission.
        """
        if op not in ACCESS_OPS or account is None:
            return False
        if account.has_permission("bypass node access"):
            return True
        if not account.has_permission("access content"):
            return False

        own = self.author_id is not None and self.author_id == account.id
        if op == "view":
            if self.published:
                return True
            return own and account.has_permission("view own unpublished content")

        verb = "edit" if op == "update" else "delete"
        if account.has_permission(f"{verb} any {self.type_id} content"):
            return True
        return own and account.has_permission(f"{verb} own {self.type_id} content")

    ##################################################
    # CLASS METHODS
    ##################################################

    @classmethod
    def all(cls) -> List["Node"]:
        """Returns all Nodes in the database (as a list)."""
        logger.info("Processing all Nodes")
        return list(cls.query.order_by(cls.id).all())

    @classmethod
    def find(cls, by_id) -> Optional["Node"]:
        """Finds a Node by its ID (single object or None)."""
        logger.info("Processing lookup for id %s ...", by_id)
        try:
            nid = int(by_id)
        except (TypeError, ValueError):
            return None
        return cls.query.session.get(cls, nid)

    @classmethod
    def find_first_by_title_and_status(cls, title: str, status: int) -> Optional["Node"]:
        """Returns the first Node with the given title and status, or None."""
        logger.info("Processing title query for %s with status %s ...", title, status)
        return (
            cls.query.filter(cls.title == title, cls.status == status)
            .order_by(cls.id)
            .first()
        )

    @classmethod
    def find_first_by_title_and_type(cls, title: str, type_id: str) -> Optional["Node"]:
        """Returns the first Node with the given title and type, or None."""
        logger.info("Processing title query for %s of type %s ...", title, type_id)
        return (
            cls.query.filter(cls.title == title, cls.type_id == type_id)
            .order_by(cls.id)
            .first()
        )
