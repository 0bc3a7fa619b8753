"""Tests for glyphmeter.session driven by a stand-in playwright page."""

# Standard Library
import asyncio

# Third Party
import playwright.async_api
import pytest

# Local
import conftest
from glyphmeter import session as session_module
from glyphmeter.errors import ElementNotFound, EngineConnectionError, PresentTimeout
from glyphmeter.models import Geometry
from glyphmeter.session import ChromiumEngine, PlaywrightSession


#============================================
class FakePage:
	"""Just enough of playwright's Page for PlaywrightSession."""

	def __init__(self, boxes=None, fonts_loaded=True, present_timeout=False):
		self.boxes = boxes or {}
		self.fonts_loaded = fonts_loaded
		self.present_timeout = present_timeout
		self.content = None
		self.font_requests = []
		self.font_checks = 0
		self.closed = False

	async def set_content(self, html, wait_until=None, timeout=None):
		self.content = html

	async def wait_for_function(self, expression, timeout=None):
		if self.present_timeout:
			raise playwright.async_api.TimeoutError(f"Timeout {timeout}ms exceeded.")

	async def evaluate(self, script, arg=None):
		if script == session_module._READ_GEOMETRY_JS:
			return {sel: self.boxes.get(sel) for sel in arg}
		if script == session_module._REQUEST_FONT_JS:
			self.font_requests.append(arg)
			return True
		if script == session_module._CHECK_FONT_JS:
			self.font_checks += 1
			return self.fonts_loaded
		raise AssertionError(f"unexpected script: {script}")

	async def close(self):
		self.closed = True


#============================================
class FakeContext:
	def __init__(self):
		self.closed = False

	async def close(self):
		self.closed = True


#============================================
def test_present_sets_document():
	page = FakePage()
	asyncio.run(PlaywrightSession(page).present("<html></html>", 1000))
	assert page.content == "<html></html>"


#============================================
def test_present_timeout_is_translated():
	page = FakePage(present_timeout=True)
	with pytest.raises(PresentTimeout):
		asyncio.run(PlaywrightSession(page).present("<html></html>", 50))


#============================================
def test_read_geometry_returns_boxes():
	page = FakePage(boxes={"#p0": [12.5, 100], "#p1": [0, 0]})
	geometry = asyncio.run(PlaywrightSession(page).read_geometry(["#p0", "#p1"]))
	assert geometry == {"#p0": Geometry(12.5, 100.0), "#p1": Geometry(0.0, 0.0)}


#============================================
def test_read_geometry_missing_selector():
	page = FakePage(boxes={"#p0": [12.5, 100]})
	with pytest.raises(ElementNotFound) as excinfo:
		asyncio.run(PlaywrightSession(page).read_geometry(["#p0", "#p7"]))
	assert "#p7" in str(excinfo.value)


#============================================
def test_font_ready_when_loaded():
	page = FakePage(fonts_loaded=True)
	ready = asyncio.run(
		PlaywrightSession(page).await_font_ready("'Lato', sans-serif", 100, 1000)
	)
	assert ready
	assert page.font_requests == ["100px 'Lato', sans-serif"]
	assert page.font_checks == 1


#============================================
def test_font_ready_gives_up_without_raising():
	page = FakePage(fonts_loaded=False)
	session = PlaywrightSession(page, poll_interval=0.005)
	ready = asyncio.run(session.await_font_ready("'Lato', sans-serif", 100, 30))
	assert ready is False
	assert page.font_checks >= 2


#============================================
def test_font_ready_zero_budget_checks_once():
	page = FakePage(fonts_loaded=False)
	ready = asyncio.run(PlaywrightSession(page).await_font_ready("Lato", 100, 0))
	assert ready is False
	assert page.font_checks == 1


#============================================
def test_close_closes_page_and_context():
	page = FakePage()
	context = FakeContext()
	asyncio.run(PlaywrightSession(page, context=context).close())
	assert page.closed
	assert context.closed


#============================================
def test_engine_requires_start():
	engine = ChromiumEngine(conftest.fast_config())
	with pytest.raises(EngineConnectionError):
		asyncio.run(engine.new_session())


#============================================
def test_engine_launch_failure(monkeypatch):
	class BrokenDriver:
		async def start(self):
			raise RuntimeError("Executable doesn't exist")

	monkeypatch.setattr(playwright.async_api, "async_playwright", lambda: BrokenDriver())
	engine = ChromiumEngine(conftest.fast_config())
	with pytest.raises(EngineConnectionError) as excinfo:
		asyncio.run(engine.start())
	assert "Executable doesn't exist" in str(excinfo.value)
