from typing import Optional

from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.webdriver import WebDriver

from a11y_insights.platform.config import Settings, settings as default_settings


class PageLoaderService:
    """Loads pages in headless Chrome for evaluation."""

    @staticmethod
    def _create_driver(config: Settings) -> WebDriver:
        chrome_options = Options()
        if config.BROWSER_HEADLESS:
            chrome_options.add_argument("--headless=new")
        chrome_options.add_argument("--disable-gpu")
        chrome_options.add_argument("--no-sandbox")
        chrome_options.add_argument("--disable-dev-shm-usage")
        chrome_options.add_argument("--window-size=1366,900")

        driver = webdriver.Chrome(options=chrome_options)
        driver.set_page_load_timeout(config.BROWSER_PAGE_LOAD_TIMEOUT_SEC)
        return driver

    @staticmethod
    def load_page(url: str, config: Optional[Settings] = None) -> WebDriver:
        """
        Load a page and return the driver.

        The caller owns the driver and must call driver.quit().

        Raises:
            TimeoutException: page did not load within BROWSER_PAGE_LOAD_TIMEOUT_SEC
            WebDriverException: the browser failed to load the URL
        """
        config = config or default_settings
        driver = PageLoaderService._create_driver(config)

        try:
            driver.get(url)
            return driver
        except TimeoutException:
            driver.quit()
            raise TimeoutException(
                f"Page load timeout after {config.BROWSER_PAGE_LOAD_TIMEOUT_SEC} seconds for URL: {url}"
            )
        except WebDriverException as e:
            driver.quit()
            raise WebDriverException(f"WebDriver error loading URL {url}: {e.msg or e}")
