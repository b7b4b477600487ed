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
Content Step Library

Translates the human readable step phrases (see features/steps) into calls
against a ContentStore, a UserDirectory and a BrowserSession. The library
keeps no state between scenarios apart from the accounts it created, which
cleanup() removes again.
"""

import logging
import secrets
import time
from typing import Dict, Iterable, List, Mapping, Optional

from content_steps.common.errors import (
    AssertionFailed,
    NotFound,
    SubmitButtonMissing,
    UnknownType,
    Unsupported,
)
from content_steps.models import NODE_PUBLISHED

logger = logging.getLogger("content_steps")

SUBMIT_BUTTON = "edit-submit"

CONTENT_PATHS = {
    "view": "node/{id}",
    "edit": "node/{id}/edit",
    "delete": "node/{id}/delete",
}

# Phrase verbs that differ from the access-control op names
ACCESS_OP_ALIASES = {"edit": "update"}


class StepLibrary:  # pylint: disable=too-many-instance-attributes
    """Step operations bound to one set of collaborators"""

    def __init__(
        self,
        store,
        users,
        session,
        base_url: str = "",
        viewport: tuple = (1024, 768),
        login_path: str = "/user/login",
    ):
        self.store = store
        self.users = users
        self.session = session
        self.base_url = base_url
        self.viewport = viewport
        self.login_path = login_path
        self._credentials: Dict[str, str] = {}
        self._created_users: List[str] = []

    ##################################################
    # Helpers
    ##################################################

    def locate_path(self, path: str) -> str:
        """Absolute URL of a site path."""
        return self.base_url.rstrip("/") + "/" + path.lstrip("/")

    def visit_path(self, path: str) -> None:
        """Visits a path on the site under test."""
        self.session.visit(self.locate_path(path))

    def resolve_type_id(self, type_label: str) -> str:
        """Converts a content type label into its id.

        The value is first tried as an id; otherwise the first type whose
        display name equals it wins.

        Raises:
            UnknownType: when neither an id nor a name matches
        """
        if self.store.find_type_by_id(type_label) is not None:
            return type_label
        for descriptor in self.store.list_types():
            if descriptor.name == type_label:
                return descriptor.type
        raise UnknownType(f"Node type '{type_label}' doesn't exist.")

    def load_node_by_title(self, title: str):
        """Loads the first published content item with the given title.

        Raises:
            NotFound: when no published item has this title
        """
        node = self.store.find_by_title_and_status(title, NODE_PUBLISHED)
        if node is None:
            raise NotFound(f"Node {title} not found.")
        return node

    def load_user(self, name: str):
        """Loads an account by name; NotFound when it does not exist."""
        user = self.users.find_by_name(name)
        if user is None:
            raise NotFound(f"User {name} not found.")
        return user

    ##################################################
    # Navigation
    ##################################################

    def visit_content_page(self, op: str, type_label: str, title: str) -> None:
        """Visits the view, edit or delete page of a content item."""
        if op not in CONTENT_PATHS:
            raise ValueError(f"Unknown content page operation '{op}'")
        type_id = self.resolve_type_id(type_label)
        node = self.store.find_by_title_and_type(title, type_id)
        if node is None:
            raise NotFound(f"No node with type '{type_id}' and title '{title}' has been found.")
        logger.info("Visiting %s page of %r", op, node)
        self.visit_path(CONTENT_PATHS[op].format(id=node.id))

    def wait_seconds(self, seconds) -> None:
        """Blocks the whole run for a number of seconds."""
        logger.info("Waiting %s seconds", seconds)
        time.sleep(int(seconds))

    def before_each_step(self) -> None:
        """Brings the browser window to desktop size when the session has one."""
        if not self.session.supports_resize():
            return
        width, height = self.viewport
        try:
            self.session.resize_viewport(width, height, "current")
        except Unsupported:
            logger.debug("Session refused to resize the viewport")

    ##################################################
    # Accounts
    ##################################################

    def create_users(self, rows: Iterable[Mapping[str, str]]) -> None:
        """Creates scenario accounts from table rows (name, mail, pass, permissions)."""
        for row in rows:
            name = row["name"]
            password = row.get("pass") or secrets.token_urlsafe(12)
            permissions = [p.strip() for p in (row.get("permissions") or "").split(",")]
            self.users.create(name, password, mail=row.get("mail"), permissions=permissions)
            self._credentials[name] = password
            self._created_users.append(name)
            logger.info("Created scenario user %s", name)

    def log_in_as(self, name: str) -> None:
        """Logs in through the login form with the scenario credentials."""
        self.load_user(name)
        if name not in self._credentials:
            raise NotFound(f"No credentials known for user {name}; create it with a users table first.")
        self.visit_path(self.login_path)
        page = self.session.page()
        page.fill_field("name", name)
        page.fill_field("pass", self._credentials[name])
        self._submit(page)
        logger.info("Logged in as %s", name)

    def log_out(self) -> None:
        """Drops the browser cookies."""
        self.session.reset()

    def cleanup(self) -> None:
        """Removes the accounts created during the scenario."""
        while self._created_users:
            name = self._created_users.pop()
            user = self.users.find_by_name(name)
            if user is not None:
                self.users.delete(user)
        self._credentials.clear()

    ##################################################
    # Content
    ##################################################

    def _submit(self, page) -> None:
        submit = page.find_button(SUBMIT_BUTTON)
        if submit is None:
            raise SubmitButtonMissing(f"No submit button at {self.session.current_url}")
        submit.click()

    def create_content_batch(self, user_name: str, type_label: str, rows: Iterable[Mapping[str, str]]) -> None:
        """Creates one content item per row through the node add form.

        Rows are processed in order; the first failing row stops the batch
        and nothing already submitted is rolled back.
        """
        type_id = self.resolve_type_id(type_label)
        rows = list(rows)
        if not rows:
            logger.info("No %s content to create", type_id)
            return

        self.log_in_as(user_name)
        for row in rows:
            self.visit_path(f"/node/add/{type_id}")
            page = self.session.page()
            for field, value in row.items():
                page.fill_field(field, value)
            self._submit(page)
            logger.info("Submitted %s content as %s", type_id, user_name)

    ##################################################
    # Assertions
    ##################################################

    def assert_access_denied(self) -> None:
        """The last response must be 403 Forbidden."""
        actual = self.session.response_status()
        if actual != 403:
            raise AssertionFailed(f"Current response status code is {actual}, but 403 expected.")

    def _access(self, user_name: str, op: str, title: str) -> bool:
        op = ACCESS_OP_ALIASES.get(op, op)
        node = self.load_node_by_title(title)
        account = self.load_user(user_name)
        return self.store.check_access(op, node, account)

    def assert_user_can_operate(self, user_name: str, op: str, title: str) -> None:
        """The user must be allowed to perform op on the content item."""
        if not self._access(user_name, op, title):
            op = ACCESS_OP_ALIASES.get(op, op)
            raise AssertionFailed(f"{user_name} can not {op} {title}.")

    def assert_user_cannot_operate(self, user_name: str, op: str, title: str) -> None:
        """The user must not be allowed to perform op on the content item."""
        if self._access(user_name, op, title):
            op = ACCESS_OP_ALIASES.get(op, op)
            raise AssertionFailed(f"{user_name} can {op} {title} but should not.")

    def find_edit_link(self, link_text: Optional[str], title: str):
        """First link on the page pointing at the edit form of a content item."""
        node = self.load_node_by_title(title)
        edit_path = f"node/{node.id}/edit"
        for link in self.session.page().find_links(link_text):
            href = link.get_attribute("href") or ""
            if edit_path in href:
                return link
        return None

    def assert_edit_link_visible(self, link_text: Optional[str], title: str) -> None:
        """A link (optionally with the given text) to edit the item must be on the page."""
        if self.find_edit_link(link_text, title) is None:
            raise AssertionFailed(f"No '{link_text}' link to edit '{title}' has been found.")

    def assert_edit_link_not_visible(self, title: str) -> None:
        """No link to edit the item may be on the page."""
        if self.find_edit_link(None, title) is not None:
            raise AssertionFailed(f"link to edit '{title}' has been found.")

    def assert_response_header(self, name: str, expected: str) -> None:
        """The last response must carry the header with exactly this value."""
        headers = self.session.response_headers()
        if name not in headers:
            raise NotFound(f"Header {name} is not present in the response.")
        if headers[name] != expected:
            raise AssertionFailed(f"Did not see {name} with value {expected}.")

    def assert_element_type(self, element, tag_name: str) -> None:
        """The element must be of the given tag."""
        if element.tag_name != tag_name:
            raise AssertionFailed(f"The element is not a '{tag_name}' field.")

    def assert_field_element_type(self, locator: str, tag_name: str) -> None:
        """The named form field must be of the given tag."""
        field = self.session.page().find_field(locator)
        if field is None:
            raise NotFound(f"Form field with id|name|label|placeholder '{locator}' not found.")
        self.assert_element_type(field, tag_name)
