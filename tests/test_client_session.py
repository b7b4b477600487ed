######################################################################
# Copyright 2016, 2024 John J. Rofrano. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# https://www.apache.org/licenses/LICENSE-2.0
######################################################################

"""
In-process client session and end-to-end step runs

The steps drive the fixture CMS in tests/cms_app.py through a
ClientSession while reading its database through the SQL store.
"""

import logging
from unittest import TestCase

from bs4 import BeautifulSoup

from content_steps.common.errors import AssertionFailed, NotFound, Unsupported
from content_steps.models import NODE_NOT_PUBLISHED, Node, NodeType, User, db
from content_steps.session import ClientSession, form_values
from content_steps.steps import StepLibrary
from content_steps.store import SqlContentStore, SqlUserDirectory
from tests.cms_app import build_cms_app

BASE_URL = "http://localhost"

EDITOR = {
    "name": "Joe Editor",
    "pass": "editor-pw",
    "permissions": "access content, create page content, edit own page content, delete own page content",
}
GUEST = {"name": "Ann Guest", "pass": "guest-pw", "permissions": "access content"}


class ClientTestCase(TestCase):
    """Fixture site, fresh tables, a library bound to a client session"""

    @classmethod
    def setUpClass(cls):
        """This runs once before the entire test suite"""
        cls.app = build_cms_app()
        cls.app.logger.setLevel(logging.CRITICAL)
        cls.ctx = cls.app.app_context()
        cls.ctx.push()

    @classmethod
    def tearDownClass(cls):
        """This runs once after the entire test suite"""
        db.session.close()
        cls.ctx.pop()

    def setUp(self):
        """This runs before each test"""
        db.session.query(Node).delete()
        db.session.query(User).delete()
        db.session.query(NodeType).delete()
        db.session.commit()
        NodeType(type="page", name="Basic page").create()
        NodeType(type="article", name="Article").create()
        self.session = ClientSession(self.app)
        self.steps = StepLibrary(
            SqlContentStore(), SqlUserDirectory(), self.session, base_url=BASE_URL
        )

    def tearDown(self):
        """This runs after each test"""
        db.session.remove()

    def create_page(self, title="My Title"):
        """Editor account plus one page authored through the UI."""
        self.steps.create_users([EDITOR, GUEST])
        self.steps.create_content_batch("Joe Editor", "Basic page", [{"Title": title}])
        return Node.find_first_by_title_and_type(title, "page")


######################################################################
#  S E S S I O N
######################################################################
class TestClientSession(ClientTestCase):
    """Navigation, response inspection and forms"""

    def test_nothing_visited(self):
        """It should refuse to inspect a response before the first visit"""
        self.assertEqual(self.session.current_url, "")
        self.assertRaises(NotFound, self.session.response_status)
        self.assertRaises(NotFound, self.session.page)

    def test_visit(self):
        """It should load a page and expose status and headers"""
        self.session.visit(f"{BASE_URL}/")
        self.assertEqual(self.session.current_url, f"{BASE_URL}/")
        self.assertEqual(self.session.response_status(), 200)
        headers = self.session.response_headers()
        self.assertEqual(headers["X-Generator"], "Fixture CMS")
        self.assertEqual(headers["x-generator"], "Fixture CMS")

    def test_follow_link(self):
        """It should follow links relative to the current page"""
        self.session.visit(f"{BASE_URL}/")
        links = self.session.page().find_links("Log in")
        self.assertEqual(len(links), 1)
        self.assertEqual(links[0].get_attribute("href"), "/user/login")
        links[0].click()
        self.assertEqual(self.session.current_url, f"{BASE_URL}/user/login")
        self.assertIsNotNone(self.session.page().find_button("edit-submit"))

    def test_no_viewport(self):
        """It should report that it cannot resize"""
        self.assertFalse(self.session.supports_resize())
        self.assertRaises(Unsupported, self.session.resize_viewport, 1024, 768)

    def test_fields(self):
        """It should find fields by id, name, label and fill them"""
        self.steps.create_users([EDITOR])
        self.steps.log_in_as("Joe Editor")
        self.session.visit(f"{BASE_URL}/node/add/page")
        page = self.session.page()
        self.assertEqual(page.find_field("Title").get_attribute("id"), "edit-title")
        self.assertEqual(page.find_field("title").tag_name, "input")
        self.assertEqual(page.find_field("Body").tag_name, "textarea")
        self.assertIsNone(page.find_field("op"))

        page.fill_field("Title", "Draft")
        page.fill_field("Body", "Some text")
        page.fill_field("edit-status", "Unpublished")
        form = page.document.find("form")
        values = form_values(form)
        self.assertEqual(values["title"], "Draft")
        self.assertEqual(values["body"], "Some text")
        self.assertEqual(values["status"], "0")

        page.find_button("Save").click()
        node = Node.find_first_by_title_and_type("Draft", "page")
        self.assertEqual(node.status, NODE_NOT_PUBLISHED)
        self.assertEqual(self.session.current_url, f"{BASE_URL}/node/{node.id}")

    def test_fill_missing(self):
        """It should fail with NotFound for unknown or hidden fields"""
        self.session.visit(f"{BASE_URL}/user/login")
        page = self.session.page()
        self.assertRaises(NotFound, page.fill_field, "Email", "x")
        self.assertRaises(NotFound, page.fill_field, "form_id", "x")

    def test_form_values(self):
        """It should send what a browser would send"""
        document = BeautifulSoup(
            """<form>
              <input name="a" value="1">
              <input type="checkbox" name="b" value="yes">
              <input type="checkbox" name="c" checked>
              <input type="radio" name="d" value="x">
              <input type="radio" name="d" value="y" checked>
              <input name="e" value="skip" disabled>
              <select name="f"><option value="p">P</option><option>Q</option></select>
              <select name="g" multiple><option selected>M</option><option selected>N</option></select>
              <input type="submit" name="op" value="Save">
              <button name="preview" value="1">Preview</button>
            </form>""",
            "html.parser",
        )
        form = document.find("form")
        values = form_values(form, form.find("button"))
        self.assertEqual(values["a"], "1")
        self.assertNotIn("b", values)
        self.assertEqual(values["c"], "on")
        self.assertEqual(values["d"], "y")
        self.assertNotIn("e", values)
        self.assertEqual(values["f"], "p")
        self.assertEqual(values.getlist("g"), ["M", "N"])
        self.assertNotIn("op", values)
        self.assertEqual(values["preview"], "1")

    def test_click_unclickable(self):
        """It should refuse to click elements that are neither links nor buttons"""
        self.session.visit(f"{BASE_URL}/user/login")
        field = self.session.page().find_field("name")
        self.assertRaises(Unsupported, field.click)

    def test_reset_logs_out(self):
        """It should forget the login cookie"""
        self.steps.create_users([EDITOR])
        self.steps.log_in_as("Joe Editor")
        self.assertEqual(len(self.session.page().find_links("Log out")), 1)
        self.steps.log_out()
        self.session.visit(f"{BASE_URL}/")
        self.assertEqual(self.session.page().find_links("Log out"), [])

    def test_wrong_password(self):
        """It should stay on the login form on bad credentials"""
        self.steps.create_users([EDITOR])
        self.steps._credentials["Joe Editor"] = "wrong"  # pylint: disable=protected-access
        self.steps.log_in_as("Joe Editor")
        self.assertEqual(self.session.current_url, f"{BASE_URL}/user/login")
        self.assertIn("Unrecognized", self.session.page().document.get_text())


######################################################################
#  S T E P S   E N D   T O   E N D
######################################################################
class TestStepsEndToEnd(ClientTestCase):
    """The step library against the fixture site"""

    def test_create_content(self):
        """It should create one node per row, authored by the user"""
        self.steps.create_users([EDITOR])
        self.steps.create_content_batch(
            "Joe Editor", "page", [{"Title": "First"}, {"Title": "Second", "Body": "text"}]
        )
        titles = [node.title for node in Node.all()]
        self.assertEqual(titles, ["First", "Second"])
        author = User.find_by_name("Joe Editor")
        self.assertTrue(all(node.author_id == author.id for node in Node.all()))

    def test_create_content_forbidden(self):
        """It should stop when the add form is not available to the user"""
        self.steps.create_users([GUEST])
        with self.assertRaises(NotFound):
            self.steps.create_content_batch("Ann Guest", "page", [{"Title": "Nope"}])
        self.assertEqual(self.session.response_status(), 403)
        self.assertEqual(Node.all(), [])

    def test_view_and_edit_link(self):
        """It should visit the page and see the edit tab"""
        node = self.create_page()
        self.steps.visit_content_page("view", "Basic page", "My Title")
        self.assertEqual(self.session.current_url, f"{BASE_URL}/node/{node.id}")
        self.steps.assert_edit_link_visible("Edit", "My Title")
        self.assertRaises(AssertionFailed, self.steps.assert_edit_link_not_visible, "My Title")

    def test_guest_denied(self):
        """It should see access denied on the edit form as a guest"""
        self.create_page()
        self.steps.log_out()
        self.steps.log_in_as("Ann Guest")
        self.steps.visit_content_page("edit", "page", "My Title")
        self.steps.assert_access_denied()
        self.steps.assert_edit_link_not_visible("My Title")

        self.steps.visit_content_page("view", "page", "My Title")
        self.assertRaises(AssertionFailed, self.steps.assert_access_denied)
        self.steps.assert_edit_link_not_visible("My Title")

    def test_access_checks(self):
        """It should answer access questions from the database"""
        self.create_page()
        self.steps.assert_user_can_operate("Joe Editor", "edit", "My Title")
        self.steps.assert_user_can_operate("Joe Editor", "delete", "My Title")
        self.steps.assert_user_can_operate("Ann Guest", "view", "My Title")
        self.steps.assert_user_cannot_operate("Ann Guest", "edit", "My Title")
        self.steps.assert_user_cannot_operate("Ann Guest", "delete", "My Title")

    def test_headers(self):
        """It should compare response headers exactly"""
        self.session.visit(f"{BASE_URL}/")
        self.steps.assert_response_header("X-Frame-Options", "SAMEORIGIN")
        self.steps.assert_response_header("Content-Type", "text/html; charset=utf-8")
        self.assertRaises(AssertionFailed, self.steps.assert_response_header, "Content-Type", "text/html")
        self.assertRaises(NotFound, self.steps.assert_response_header, "X-Powered-By", "PHP")

    def test_header_names_ignore_case(self):
        """It should match header names whatever their case"""
        self.session.visit(f"{BASE_URL}/")
        self.steps.assert_response_header("content-type", "text/html; charset=utf-8")
        self.steps.assert_response_header("X-FRAME-OPTIONS", "SAMEORIGIN")
        self.assertRaises(AssertionFailed, self.steps.assert_response_header, "x-frame-options", "sameorigin")

    def test_field_types(self):
        """It should check the tag of form fields"""
        self.create_page()
        self.steps.visit_content_page("edit", "page", "My Title")
        self.steps.assert_field_element_type("Body", "textarea")
        self.steps.assert_field_element_type("edit-status", "select")
        self.assertRaises(AssertionFailed, self.steps.assert_field_element_type, "Title", "textarea")

    def test_cleanup(self):
        """It should remove scenario users and their content"""
        self.create_page()
        self.steps.cleanup()
        self.assertIsNone(User.find_by_name("Joe Editor"))
        self.assertIsNone(User.find_by_name("Ann Guest"))
        self.assertEqual(Node.all(), [])
