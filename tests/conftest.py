from typing import Optional

import pytest
from claude_usage.config import Settings


class MemoryStore:
    """In-memory stand-in for the keychain."""

    def __init__(self, entries: Optional[dict] = None):
        self.entries = dict(entries or {})
        self.writes = []

    def get(self, account):
        return self.entries.get(account)

    def set(self, account, value):
        self.writes.append((account, value))
        self.entries[account] = value


class FakeResponse:
    def __init__(self, status):
        self.status = status


class FakePage:
    def __init__(self, driver):
        self.driver = driver

    async def goto(self, url, wait_until=None, timeout=None):
        self.driver.events.append(("goto", url, wait_until, timeout))
        if self.driver.goto_error is not None:
            raise self.driver.goto_error
        if url.endswith("/usage"):
            if self.driver.status is None:
                return None
            return FakeResponse(self.driver.status)
        return FakeResponse(200)

    async def evaluate(self, script):
        self.driver.events.append(("evaluate",))
        if self.driver.evaluate_error is not None:
            raise self.driver.evaluate_error
        return self.driver.body


class FakeContext:
    def __init__(self, driver, kwargs):
        self.driver = driver
        self.kwargs = kwargs
        self.cookies = []

    async def add_init_script(self, script):
        self.driver.events.append(("init_script",))

    async def add_cookies(self, cookies):
        self.driver.events.append(("add_cookies",))
        self.cookies.extend(cookies)

    async def new_page(self):
        return FakePage(self.driver)

    async def storage_state(self):
        self.driver.events.append(("storage_state",))
        return self.driver.storage_state


class FakeBrowser:
    def __init__(self, driver):
        self.driver = driver

    async def new_context(self, **kwargs):
        self.driver.context = FakeContext(self.driver, kwargs)
        return self.driver.context

    async def close(self):
        self.driver.events.append(("browser_close",))
        if self.driver.close_error is not None:
            raise self.driver.close_error


class FakeChromium:
    def __init__(self, driver):
        self.driver = driver

    async def launch(self, **kwargs):
        self.driver.launch_kwargs = kwargs
        self.driver.events.append(("launch",))
        return FakeBrowser(self.driver)


class FakeDriver:
    """Scripted replacement for ``async_playwright()``."""

    def __init__(
        self, status=200, body="{}", goto_error=None, storage_state=None, evaluate_error=None, close_error=None
    ):
        self.status = status
        self.body = body
        self.goto_error = goto_error
        self.evaluate_error = evaluate_error
        self.close_error = close_error
        self.storage_state = storage_state or {"cookies": [{"name": "cf_clearance", "value": "x"}], "origins": []}
        self.events = []
        self.context = None
        self.launch_kwargs = None
        self.chromium = FakeChromium(self)

    def __call__(self):
        return self

    async def start(self):
        self.events.append(("start",))
        return self

    async def stop(self):
        self.events.append(("stop",))

    def gotos(self):
        return [e[1] for e in self.events if e[0] == "goto"]


@pytest.fixture
def settings(tmp_path):
    return Settings(project_home=str(tmp_path), _env_file=None)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def stored_credentials():
    return MemoryStore({"session-key": "sk-ant-sid01-test", "org-id": "org-123"})


@pytest.fixture
def make_driver():
    return FakeDriver
