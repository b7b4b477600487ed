"""
Browser sessions

A BrowserSession is what the steps drive: visit a URL, look at the current
page, read the response. Two implementations ship here:

* SeleniumSession wraps a WebDriver. It can resize its window but, like
  every WebDriver, cannot see response status codes or headers.
* ClientSession drives a WSGI application in-process with a werkzeug test
  client and answers DOM queries with BeautifulSoup. It sees status codes
  and headers but has no window to resize.
"""

import logging
from typing import List, Mapping, Optional, Protocol
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from selenium.common.exceptions import NoSuchElementException
from selenium.webdriver.common.by import By
from selenium.webdriver.support.select import Select
from werkzeug.datastructures import MultiDict
from werkzeug.test import Client

from content_steps.common.errors import NotFound, Unsupported

logger = logging.getLogger("content_steps")

NON_FIELD_INPUTS = ("submit", "image", "button", "reset", "hidden")
BUTTON_INPUTS = ("submit", "image", "button", "reset")


class Element(Protocol):
    """A DOM element as seen by the steps"""

    tag_name: str
    text: str

    def get_attribute(self, name: str) -> Optional[str]:
        """Attribute value or None."""

    def click(self) -> None:
        """Follows a link or submits a form."""


class Page(Protocol):
    """DOM queries against the current page"""

    def find_links(self, text: Optional[str] = None) -> List[Element]:
        """All links, or only those whose text equals text."""

    def find_field(self, locator: str) -> Optional[Element]:
        """Form field by id, name, label or placeholder."""

    def fill_field(self, locator: str, value: str) -> None:
        """Sets a form field value; NotFound when there is no such field."""

    def find_button(self, locator: str) -> Optional[Element]:
        """Button by id, name, value or text."""


class BrowserSession(Protocol):
    """Navigation, DOM access and response inspection"""

    current_url: str

    def visit(self, url: str) -> None:
        """Loads a page."""

    def page(self) -> Page:
        """The currently loaded page."""

    def response_status(self) -> int:
        """Status code of the last response."""

    def response_headers(self) -> Mapping[str, str]:
        """Headers of the last response."""

    def supports_resize(self) -> bool:
        """True when resize_viewport can be used."""

    def resize_viewport(self, width: int, height: int, target: str = "current") -> None:
        """Resizes a browser window."""

    def reset(self) -> None:
        """Forgets cookies, which logs the current user out."""


def _normalize(text: Optional[str]) -> str:
    """Collapse whitespace the way XPath normalize-space() does."""
    return " ".join((text or "").split())


def xpath_literal(value: str) -> str:
    """Quote a string for use inside an XPath expression."""
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'
    parts = value.split("'")
    return "concat(" + ", \"'\", ".join(f"'{part}'" for part in parts) + ")"


######################################################################
# S E L E N I U M
######################################################################
class SeleniumPage:
    """Page queries answered by a live WebDriver"""

    def __init__(self, driver):
        self.driver = driver

    def find_links(self, text: Optional[str] = None) -> list:
        if text is not None:
            return self.driver.find_elements(By.LINK_TEXT, text)
        return self.driver.find_elements(By.XPATH, "//a[@href]")

    def find_field(self, locator: str):
        for by in (By.ID, By.NAME):
            found = self.driver.find_elements(by, locator)
            if found:
                return found[0]

        literal = xpath_literal(locator)
        for label in self.driver.find_elements(By.XPATH, f"//label[normalize-space(.)={literal}]"):
            target = label.get_attribute("for")
            if target:
                found = self.driver.find_elements(By.ID, target)
                if found:
                    return found[0]

        found = self.driver.find_elements(By.XPATH, f"//*[@placeholder={literal}]")
        return found[0] if found else None

    def fill_field(self, locator: str, value: str) -> None:
        field = self.find_field(locator)
        if field is None:
            raise NotFound(f"Form field with id|name|label|placeholder '{locator}' not found.")
        if field.tag_name.lower() == "select":
            select = Select(field)
            try:
                select.select_by_value(value)
            except NoSuchElementException:
                select.select_by_visible_text(value)
            return
        field.clear()
        field.send_keys(value)

    def find_button(self, locator: str):
        literal = xpath_literal(locator)
        xpath = (
            "//input[@type='submit' or @type='image' or @type='button' or @type='reset']"
            f"[@id={literal} or @name={literal} or @value={literal} or @title={literal}]"
            f" | //button[@id={literal} or @name={literal} or @value={literal}"
            f" or @title={literal} or normalize-space(.)={literal}]"
        )
        found = self.driver.find_elements(By.XPATH, xpath)
        return found[0] if found else None


class SeleniumSession:
    """BrowserSession on top of a Selenium WebDriver"""

    def __init__(self, driver):
        self.driver = driver

    @property
    def current_url(self) -> str:
        return self.driver.current_url

    def visit(self, url: str) -> None:
        logger.info("Visiting %s", url)
        self.driver.get(url)

    def page(self) -> SeleniumPage:
        return SeleniumPage(self.driver)

    def response_status(self) -> int:
        raise Unsupported("Selenium does not expose the response status code.")

    def response_headers(self) -> Mapping[str, str]:
        raise Unsupported("Selenium does not expose the response headers.")

    def supports_resize(self) -> bool:
        return True

    def resize_viewport(self, width: int, height: int, target: str = "current") -> None:
        if target in (None, "current"):
            self.driver.set_window_size(width, height)
            return
        original = self.driver.current_window_handle
        self.driver.switch_to.window(target)
        try:
            self.driver.set_window_size(width, height)
        finally:
            self.driver.switch_to.window(original)

    def reset(self) -> None:
        self.driver.delete_all_cookies()

    def quit(self) -> None:
        """Shuts the browser down."""
        self.driver.quit()


######################################################################
# W S G I   C L I E N T
######################################################################
def _is_button(tag) -> bool:
    if tag.name == "button":
        return True
    return tag.name == "input" and (tag.get("type") or "text").lower() in BUTTON_INPUTS


def _is_submit(tag) -> bool:
    if tag.name == "button":
        return (tag.get("type") or "submit").lower() == "submit"
    return tag.name == "input" and (tag.get("type") or "").lower() in ("submit", "image")


def _is_field(tag) -> bool:
    if tag.name in ("textarea", "select"):
        return True
    return tag.name == "input" and (tag.get("type") or "text").lower() not in NON_FIELD_INPUTS


def _option_value(option) -> str:
    value = option.get("value")
    return value if value is not None else _normalize(option.get_text())


def _field_values(field) -> List[str]:
    """Values one successful form control contributes."""
    if field.name == "textarea":
        return [field.get_text()]
    if field.name == "select":
        options = field.find_all("option")
        selected = [o for o in options if o.has_attr("selected")]
        if not selected and not field.has_attr("multiple"):
            selected = options[:1]
        return [_option_value(option) for option in selected]

    ftype = (field.get("type") or "text").lower()
    if ftype in BUTTON_INPUTS or ftype == "file":
        return []
    if ftype in ("checkbox", "radio"):
        return [field.get("value", "on")] if field.has_attr("checked") else []
    return [field.get("value", "")]


def form_values(form, submitter=None) -> MultiDict:
    """Collect the values a browser would send for a form."""
    data = MultiDict()
    for field in form.find_all(["input", "textarea", "select"]):
        name = field.get("name")
        if not name or field.has_attr("disabled"):
            continue
        for value in _field_values(field):
            data.add(name, value)
    if submitter is not None and submitter.get("name"):
        data.add(submitter["name"], submitter.get("value", ""))
    return data


class ClientElement:
    """A parsed element that can follow links and submit forms"""

    def __init__(self, session: "ClientSession", tag):
        self.session = session
        self.tag = tag

    def __repr__(self):
        return f"<ClientElement {self.tag.name}>"

    @property
    def tag_name(self) -> str:
        return self.tag.name

    @property
    def text(self) -> str:
        return _normalize(self.tag.get_text(" "))

    def get_attribute(self, name: str) -> Optional[str]:
        value = self.tag.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value

    def click(self) -> None:
        if self.tag.name == "a":
            href = self.tag.get("href")
            if href is None:
                raise Unsupported("Cannot follow a link without an href.")
            self.session.visit(urljoin(self.session.current_url, href))
            return
        if _is_submit(self.tag):
            form = self.tag.find_parent("form")
            if form is None:
                raise Unsupported("Cannot submit a button outside of a form.")
            self.session.submit(form, self.tag)
            return
        raise Unsupported(f"Cannot click a <{self.tag.name}> element without a browser.")


class ClientPage:
    """Page queries answered from the parsed response body"""

    def __init__(self, session: "ClientSession", document: BeautifulSoup):
        self.session = session
        self.document = document

    def _wrap(self, tag) -> ClientElement:
        return ClientElement(self.session, tag)

    def find_links(self, text: Optional[str] = None) -> List[ClientElement]:
        links = self.document.find_all("a", href=True)
        if text is not None:
            links = [link for link in links if _normalize(link.get_text(" ")) == text]
        return [self._wrap(link) for link in links]

    def _find_field_tag(self, locator: str):
        fields = self.document.find_all(_is_field)
        for attr in ("id", "name"):
            for field in fields:
                if field.get(attr) == locator:
                    return field
        for label in self.document.find_all("label"):
            if _normalize(label.get_text(" ")) != locator:
                continue
            target = label.get("for")
            if target:
                field = self.document.find(id=target)
                if field is not None and _is_field(field):
                    return field
            nested = label.find(_is_field)
            if nested is not None:
                return nested
        for field in fields:
            if field.get("placeholder") == locator:
                return field
        return None

    def find_field(self, locator: str) -> Optional[ClientElement]:
        tag = self._find_field_tag(locator)
        return self._wrap(tag) if tag is not None else None

    def fill_field(self, locator: str, value: str) -> None:
        field = self._find_field_tag(locator)
        if field is None:
            raise NotFound(f"Form field with id|name|label|placeholder '{locator}' not found.")
        if field.name == "textarea":
            field.string = value
        elif field.name == "select":
            options = field.find_all("option")
            match = next((o for o in options if _option_value(o) == value), None)
            if match is None:
                match = next((o for o in options if _normalize(o.get_text()) == value), None)
            if match is None:
                raise NotFound(f"Option '{value}' not found in select '{locator}'.")
            if not field.has_attr("multiple"):
                for option in options:
                    del option["selected"]
            match["selected"] = "selected"
        else:
            field["value"] = value

    def find_button(self, locator: str) -> Optional[ClientElement]:
        for button in self.document.find_all(_is_button):
            candidates = (
                button.get("id"),
                button.get("name"),
                button.get("value"),
                button.get("title"),
                _normalize(button.get_text(" ")) if button.name == "button" else None,
            )
            if locator in candidates:
                return self._wrap(button)
        return None


class ClientSession:
    """BrowserSession that drives a WSGI application in-process"""

    def __init__(self, app):
        self.app = app
        self.client = Client(app)
        self._response = None
        self._document = None

    def _last(self):
        if self._response is None:
            raise NotFound("No page has been visited yet.")
        return self._response

    def _load(self, response) -> None:
        self._response = response
        self._document = None
        logger.debug("Loaded %s [%s]", response.request.url, response.status_code)

    @property
    def current_url(self) -> str:
        if self._response is None:
            return ""
        return self._response.request.url

    def visit(self, url: str) -> None:
        logger.info("Visiting %s", url)
        self._load(self.client.get(url, follow_redirects=True))

    def submit(self, form, submitter=None) -> None:
        """Sends a parsed form the way a browser would."""
        method = (form.get("method") or "get").lower()
        action = urljoin(self.current_url, form.get("action") or self.current_url)
        data = form_values(form, submitter)
        logger.info("Submitting %s %s", method.upper(), action)
        if method == "post":
            response = self.client.post(action, data=data, follow_redirects=True)
        else:
            response = self.client.get(action, query_string=data, follow_redirects=True)
        self._load(response)

    def page(self) -> ClientPage:
        if self._document is None:
            body = self._last().get_data(as_text=True)
            self._document = BeautifulSoup(body, "html.parser")
        return ClientPage(self, self._document)

    def response_status(self) -> int:
        return self._last().status_code

    def response_headers(self) -> Mapping[str, str]:
        return self._last().headers

    def supports_resize(self) -> bool:
        return False

    def resize_viewport(self, width: int, height: int, target: str = "current") -> None:
        raise Unsupported("The in-process client has no window to resize.")

    def reset(self) -> None:
        self.client = Client(self.app)
        self._response = None
        self._document = None
