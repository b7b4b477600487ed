"""Behave environment hooks for the content steps.

Before the run this module builds the Flask app that gives the steps access
to the CMS database and opens a browser session; before every scenario it
binds a fresh StepLibrary, and before every step it brings the window to
desktop size. After every scenario the accounts created by the scenario are
removed and the browser is logged out.

Two drivers are available (env DRIVER or behave -D DRIVER=...):
  selenium (default)  headless Chrome/Chromium, see below
  client              in-process WSGI client; WSGI_APP=module:attr names the app

Priority of chromedriver resolution for the selenium driver:
  1) Local chromedriver from system packages (chromium-driver)
  2) Selenium Manager (Selenium 4.10+)
  3) webdriver-manager (when USE_WDM=1)

Browser binary detection honors CHROME_BIN and common Linux paths.

BASE_URL and DATABASE_URI are taken in this order:
  1) env:      BASE_URL / DATABASE_URI
  2) behave:   -D BASE_URL=... / -D DATABASE_URI=...
  3) default:  content_steps.config
"""

from __future__ import annotations

import os
import shutil
from typing import Optional

from selenium import webdriver
from selenium.webdriver.chrome.options import Options as ChromeOptions
from werkzeug.utils import import_string

from content_steps import create_app
from content_steps.session import ClientSession, SeleniumSession
from content_steps.steps import StepLibrary
from content_steps.store import SqlContentStore, SqlUserDirectory

# Optional fallback to webdriver-manager if explicitly requested
USE_WDM = os.getenv("USE_WDM") == "1"


def _setting(context, name: str) -> Optional[str]:
    """Environment first, then behave userdata."""
    return os.getenv(name) or context.config.userdata.get(name)


def _detect_chrome_binary() -> Optional[str]:
    """Return a likely Chrome/Chromium binary path or None."""
    env_bin = os.getenv("CHROME_BIN")
    if env_bin and os.path.exists(env_bin):
        return env_bin

    # Common paths in DevContainers (Debian/Ubuntu)
    for cand in ("/usr/bin/chromium", "/usr/bin/chromium-browser", "/usr/bin/google-chrome"):
        if os.path.exists(cand):
            return cand

    for name in ("chromium", "chromium-browser", "google-chrome", "chrome"):
        path = shutil.which(name)
        if path:
            return path
    return None


def _detect_chromedriver() -> Optional[str]:
    """Return a likely chromedriver path from system packages or PATH."""
    env_drv = os.getenv("CHROMEDRIVER")
    if env_drv and os.path.exists(env_drv):
        return env_drv

    for cand in ("/usr/bin/chromedriver", "/usr/lib/chromium/chromedriver"):
        if os.path.exists(cand):
            return cand

    return shutil.which("chromedriver")


def _start_chrome():
    """Start headless Chrome with the first driver that resolves."""
    options = ChromeOptions()
    options.add_argument("--headless=new")
    options.add_argument("--no-sandbox")
    options.add_argument("--disable-dev-shm-usage")

    chrome_bin = _detect_chrome_binary()
    if chrome_bin:
        options.binary_location = chrome_bin

    driver_path = _detect_chromedriver()

    try:
        if driver_path:
            from selenium.webdriver.chrome.service import Service as ChromeService

            service = ChromeService(executable_path=driver_path)
            return webdriver.Chrome(service=service, options=options)

        if not USE_WDM:
            # Selenium Manager fetches a compatible driver itself
            return webdriver.Chrome(options=options)

        from selenium.webdriver.chrome.service import Service as ChromeService
        from webdriver_manager.chrome import ChromeDriverManager

        service = ChromeService(ChromeDriverManager().install())
        return webdriver.Chrome(service=service, options=options)

    except Exception as exc:  # pragma: no cover  (helpful runtime messaging)
        tips = [
            "Cannot start Chrome/Chromium in headless mode. Common fixes:",
            "  1) Install OS packages (recommended in DevContainers):",
            "       sudo apt-get update && sudo apt-get install -y chromium chromium-driver fonts-liberation",
            "  2) If Chromium is at a non-standard path, set:",
            "       export CHROME_BIN=/usr/bin/chromium",
            "     If chromedriver is at a non-standard path, set:",
            "       export CHROMEDRIVER=/usr/bin/chromedriver",
            "  3) If corporate network blocks Selenium Manager downloads, try:",
            "       USE_WDM=1 behave",
            "  4) To run without a browser against a WSGI app, use:",
            "       DRIVER=client WSGI_APP=package.module:app behave",
            "",
            f"Original error: {type(exc).__name__}: {exc}",
        ]
        raise RuntimeError("\n".join(tips)) from exc


def before_all(context):
    """Create the app, open the browser session and remember the base URL."""
    overrides = {}
    database_uri = _setting(context, "DATABASE_URI")
    if database_uri:
        overrides["DATABASE_URI"] = database_uri

    context.app = create_app(overrides, logger_name="behave")
    context.app_context = context.app.app_context()
    context.app_context.push()

    driver = (_setting(context, "DRIVER") or "selenium").lower()
    if driver == "client":
        wsgi_app = _setting(context, "WSGI_APP")
        if not wsgi_app:
            raise RuntimeError("DRIVER=client needs WSGI_APP=module:attr")
        context.session = ClientSession(import_string(wsgi_app))
        context.base_url = _setting(context, "BASE_URL") or "http://localhost"
    else:
        context.session = SeleniumSession(_start_chrome())
        context.base_url = _setting(context, "BASE_URL") or context.app.config["BASE_URL"]

    context.app.logger.info("Driving %s with the %s driver", context.base_url, driver)


def before_scenario(context, scenario):
    """Bind a fresh step library; skip @client scenarios without the client driver."""
    config = context.app.config
    context.steps = StepLibrary(
        SqlContentStore(),
        SqlUserDirectory(),
        context.session,
        base_url=context.base_url,
        viewport=(config["VIEWPORT_WIDTH"], config["VIEWPORT_HEIGHT"]),
        login_path=config["LOGIN_PATH"],
    )
    # Only the client driver can read response status codes and headers
    if "client" in scenario.effective_tags and not isinstance(context.session, ClientSession):
        scenario.skip("needs DRIVER=client")


def before_step(context, step):  # pylint: disable=unused-argument
    """Resize the browser window to some desktop size."""
    context.steps.before_each_step()


def after_scenario(context, scenario):  # pylint: disable=unused-argument
    """Remove scenario accounts and log the browser out."""
    steps = getattr(context, "steps", None)
    if steps:
        steps.cleanup()
        steps.log_out()


def after_all(context):
    """Shut down the browser and release the app context."""
    session = getattr(context, "session", None)
    if isinstance(session, SeleniumSession):
        session.quit()
    app_context = getattr(context, "app_context", None)
    if app_context:
        app_context.pop()
