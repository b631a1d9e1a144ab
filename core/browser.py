"""
Headless browser session management.

A ``BrowserSession`` owns at most one live Chromium instance. It is handed to
the scrapers explicitly so its lifetime is tied to one pipeline run:

    session = BrowserSession()
    session.acquire()
    try:
        context = session.new_isolated_context()
        ...
    finally:
        session.release()

or, equivalently, ``with BrowserSession() as session: ...``.
"""
from typing import Callable, List, Optional

from playwright.sync_api import Browser, BrowserContext, Playwright, sync_playwright

from core.config import config
from core.logging import get_logger

logger = get_logger("browser")

# Flags for unattended runs inside containers
LAUNCH_ARGS: List[str] = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-extensions",
    "--disable-gpu",
    "--no-zygote",
    "--ignore-certificate-errors",
]


class BrowserSession:
    """Single live headless browser with explicit acquire/release."""

    def __init__(
        self,
        headless: bool = True,
        executable_path: Optional[str] = None,
        playwright_factory: Callable = sync_playwright,
    ):
        self.headless = headless
        self.executable_path = executable_path or config.chrome_executable_path()
        self._playwright_factory = playwright_factory
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

    @property
    def browser(self) -> Optional[Browser]:
        return self._browser

    @property
    def is_live(self) -> bool:
        return self._browser is not None

    def acquire(self) -> Browser:
        """
        Launch a fresh browser, closing the previous one first.

        A failure while closing the old browser is logged and does not stop the
        new launch.
        """
        if self._browser is not None:
            self._close_context()
            try:
                self._browser.close()
                logger.info("Previous browser closed")
            except Exception as e:
                logger.error(f"Error closing previous browser: {e}")
            finally:
                self._browser = None

        if self._playwright is None:
            self._playwright = self._playwright_factory().start()

        self._browser = self._playwright.chromium.launch(
            headless=self.headless,
            executable_path=self.executable_path,
            args=LAUNCH_ARGS,
        )
        logger.info(
            "Playwright browser initialized",
            extra={"headless": self.headless, "executable_path": self.executable_path},
        )
        return self._browser

    def new_isolated_context(self) -> BrowserContext:
        """Create a cookie/storage-isolated context on the live browser."""
        if self._browser is None:
            raise RuntimeError("Browser session is not acquired")

        self._close_context()
        self._context = self._browser.new_context(ignore_https_errors=True)
        return self._context

    def release(self):
        """Close context, browser and driver. Safe after a partial acquire."""
        self._close_context()

        if self._browser is not None:
            try:
                self._browser.close()
                logger.debug("Browser closed")
            except Exception as e:
                logger.warning(f"Error closing browser: {e}")
            finally:
                self._browser = None

        if self._playwright is not None:
            try:
                self._playwright.stop()
            except Exception as e:
                logger.warning(f"Error stopping Playwright: {e}")
            finally:
                self._playwright = None

    def _close_context(self):
        if self._context is None:
            return
        try:
            self._context.close()
        except Exception as e:
            logger.warning(f"Error closing browser context: {e}")
        finally:
            self._context = None

    def __enter__(self) -> "BrowserSession":
        try:
            self.acquire()
        except Exception:
            self.release()
            raise
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
