# Standard Library
import os
import sys
from typing import Callable, Dict, List, Optional, Sequence

# Third Party
import pytest

_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _REPO_ROOT not in sys.path:
	sys.path.insert(0, _REPO_ROOT)

# Local
from glyphmeter.config import MeasureConfig
from glyphmeter.errors import PresentTimeout
from glyphmeter.models import FontDescriptor, Geometry
from glyphmeter.session import RenderingSession


#============================================
def make_font(key, family=None, url=None):
	family = family or key.replace("-", " ").title()
	entry = {
		"importUrl": url or f"https://fonts.example/css2?family={family.replace(' ', '+')}",
		"cssFamily": f"'{family}', sans-serif",
	}
	return FontDescriptor(
		key=key,
		display_name=family,
		import_resource=entry["importUrl"],
		style_declaration=entry["cssFamily"],
		fields=entry,
	)


#============================================
def fast_config(**overrides):
	"""Defaults with no backoff delay so retry tests run instantly."""
	values = {"backoff_unit": 0.0, "batch_timeout": 5.0}
	values.update(overrides)
	return MeasureConfig(**values)


#============================================
def character_geometry(selector):
	"""Distinct, inked geometry for every probe; target differs from baseline."""
	if selector == "#ref-base":
		return Geometry(600.0, 117.0)
	if selector == "#ref-target":
		return Geometry(540.0, 110.0)
	index = int(selector[2:])
	return Geometry(10.0 + index * 0.5, 100.0)


#============================================
def scale_geometry(base=(600.0, 117.0), target=(540.0, 110.0)):
	"""Every baseline element gets `base`, every target slot gets `target`."""
	def geometry(selector):
		owner = selector.lstrip("#").split("-", 1)[0]
		width, height = base if owner == "base" else target
		return Geometry(width, height)
	return geometry


#============================================
class FakeSession(RenderingSession):
	"""Scriptable stand-in for a browser page.

	geometry_fn maps a selector to a Geometry. The first `fail_presents`
	present calls raise PresentTimeout.
	"""

	def __init__(
		self,
		geometry_fn: Callable[[str], Geometry] = character_geometry,
		fail_presents: int = 0,
		font_ready: bool = True,
	):
		self.geometry_fn = geometry_fn
		self.fail_presents = fail_presents
		self.font_ready = font_ready
		self.documents: List[str] = []
		self.present_calls = 0
		self.read_calls = 0
		self.font_ready_queries: List[str] = []
		self.closed = False

	async def present(self, document: str, load_timeout: int) -> None:
		self.present_calls += 1
		self.documents.append(document)
		if self.present_calls <= self.fail_presents:
			raise PresentTimeout(f"fake timeout #{self.present_calls}")

	async def read_geometry(self, selectors: Sequence[str]) -> Dict[str, Geometry]:
		self.read_calls += 1
		return {sel: self.geometry_fn(sel) for sel in selectors}

	async def await_font_ready(self, font_name: str, size: int, max_wait_ms: int) -> bool:
		self.font_ready_queries.append(f"{size}px {font_name}")
		return self.font_ready

	async def close(self) -> None:
		self.closed = True


#============================================
class SessionPool:
	"""Session factory that remembers every session it handed out."""

	def __init__(self, **session_kwargs):
		self.session_kwargs = session_kwargs
		self.sessions: List[FakeSession] = []

	async def __call__(self) -> FakeSession:
		session = FakeSession(**self.session_kwargs)
		self.sessions.append(session)
		return session


#============================================
@pytest.fixture
def fake_session():
	return FakeSession()


#============================================
@pytest.fixture
def config():
	return fast_config()
