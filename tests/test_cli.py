"""Tests for glyphmeter.cli."""

# Standard Library
import json

# Third Party
import pytest

# Local
import conftest  # noqa: F401
from glyphmeter import cli
from glyphmeter import pipeline
from glyphmeter.errors import EngineConnectionError
from glyphmeter.models import RunSummary


#============================================
@pytest.fixture
def catalog_file(tmp_path):
	path = tmp_path / "fonts.json"
	path.write_text(
		json.dumps({"lato": {"importUrl": "https://x/lato.css", "cssFamily": "'Lato', sans-serif"}}),
		encoding="utf-8",
	)
	return path


#============================================
def test_defaults_follow_mode():
	args = cli.parse_args([])
	assert args.mode == "characters"
	assert args.persistence == "per-font"
	assert args.output == "google-fonts"

	args = cli.parse_args(["--scale"])
	assert args.persistence == "aggregate"
	assert args.output == "google-fonts.json"

	args = cli.parse_args(["--scale", "--per-font", "-o", "out"])
	assert args.persistence == "per-font"
	assert args.output == "out"


#============================================
def test_build_config_from_flags():
	args = cli.parse_args(
		["--scale", "--width-only", "--multi-font-batch", "--test-size", "72", "--no-headless"]
	)
	config = cli.build_config(args)
	assert config.scale_dimensions == "width"
	assert config.multi_font_batch
	assert config.test_size == 72
	assert not config.headless
	assert config.persistence == "aggregate"


#============================================
def test_mode_flags_are_exclusive():
	with pytest.raises(SystemExit):
		cli.parse_args(["--scale", "--characters"])


#============================================
def test_missing_catalog_exits_1(tmp_path):
	with pytest.raises(SystemExit) as excinfo:
		cli.main(["-i", str(tmp_path / "missing.json")])
	assert excinfo.value.code == cli.EXIT_CATALOG_INVALID


#============================================
def test_invalid_settings_exit_1(catalog_file):
	with pytest.raises(SystemExit) as excinfo:
		cli.main(["-i", str(catalog_file), "--batch-size", "0"])
	assert excinfo.value.code == cli.EXIT_CATALOG_INVALID


#============================================
def test_engine_unavailable_exits_2(monkeypatch, catalog_file, tmp_path):
	async def no_browser(*args, **kwargs):
		raise EngineConnectionError("Could not launch Chromium")

	monkeypatch.setattr(pipeline, "run_with_chromium", no_browser)
	with pytest.raises(SystemExit) as excinfo:
		cli.main(["-i", str(catalog_file), "-o", str(tmp_path / "out")])
	assert excinfo.value.code == cli.EXIT_ENGINE_UNAVAILABLE


#============================================
def test_persistence_failure_exits_3(monkeypatch, catalog_file, tmp_path):
	async def failed_write(*args, **kwargs):
		return RunSummary(mode="characters", attempted=1, failed=1, persistence_failed=True)

	monkeypatch.setattr(pipeline, "run_with_chromium", failed_write)
	with pytest.raises(SystemExit) as excinfo:
		cli.main(["-i", str(catalog_file), "-o", str(tmp_path / "out")])
	assert excinfo.value.code == cli.EXIT_PERSISTENCE_FAILED


#============================================
def test_clean_run_returns_normally(monkeypatch, catalog_file, tmp_path):
	seen = {}

	async def fake_run(catalog, mode, config, output, verbosity):
		seen["keys"] = list(catalog)
		seen["mode"] = mode
		return RunSummary(mode=mode, attempted=1, succeeded=1)

	monkeypatch.setattr(pipeline, "run_with_chromium", fake_run)
	cli.main(["--scale", "-i", str(catalog_file), "-o", str(tmp_path / "scale.json")])
	assert seen == {"keys": ["lato"], "mode": "scale"}
