import pytest

import faultpage


class FakeRuntime:
    """Records what the registry asks of the host instead of doing it."""

    def __init__(self, last=None):
        self.installed = None
        self.capture_threads = None
        self.restored = 0
        self.last = last
        self.pages = []
        self.exit_codes = []

    def install(self, on_exception, on_error, on_exit, *, capture_threads=True):
        self.installed = (on_exception, on_error, on_exit)
        self.capture_threads = capture_threads

    def restore(self):
        self.restored += 1

    def last_error(self):
        return self.last

    def write(self, text):
        self.pages.append(text)

    def terminate(self, code):
        self.exit_codes.append(code)

    def version(self):
        return "3.test"


@pytest.fixture
def runtime():
    return FakeRuntime()


@pytest.fixture(autouse=True)
def _release_registry():
    yield
    faultpage.unregister()
