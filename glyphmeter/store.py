"""Result persistence: per-font files plus manifest, or one aggregate file.

Any file about to be overwritten is first copied to a sibling
``<stem>.backup<suffix>``, once per run, so the backup always holds the
previous run's content.
"""

import asyncio
import hashlib
import json
import re
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set

from . import console_styles as cs
from .config import MeasureConfig
from .console_styles import Verbosity, get_console
from .errors import PersistenceError
from .models import FontResult, RunSummary

console = get_console()

MANIFEST_NAME = "index.json"
MODES = ("characters", "scale")


def compute_config_hash(config: MeasureConfig) -> str:
    """Hash of the settings that change measured values.

    Stored in the manifest so outputs from different settings are not mixed.
    """
    config_str = (
        f"{config.test_size}:"
        f"{config.no_signal_epsilon}:"
        f"{config.baseline_family}:"
        f"{config.baseline_url}:"
        f"{config.scale_dimensions}:"
        f"{config.width_precision}:"
        f"{config.scale_precision}"
    )
    return hashlib.md5(config_str.encode()).hexdigest()[:8]


def safe_filename(font_key: str) -> str:
    safe_name = re.sub(r"[^a-z0-9]", "-", font_key.lower())
    safe_name = re.sub(r"-+", "-", safe_name).strip("-")
    return f"{safe_name}.json"


def backup_path_for(path: Path) -> Path:
    return path.with_name(f"{path.stem}.backup{path.suffix}")


def measurement_payload(result: FontResult, mode: str, aggregate: bool) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    if mode == "characters":
        payload["characters"] = dict(result.characters or {})
        if aggregate:
            payload["characterCount"] = result.character_count
            payload["lastMeasuredAt"] = result.last_measured_at
    else:
        scale = result.scale
        payload["widthScale"] = scale.width_scale
        if scale.height_scale is not None:
            payload["heightScale"] = scale.height_scale
        payload["scale"] = scale.width_scale
        if result.fallback:
            payload["scaleFallback"] = True
    if result.measurement_error:
        payload["measurementError"] = result.measurement_error
    return payload


def per_font_entry(result: FontResult, mode: str) -> Dict[str, Any]:
    font = result.descriptor
    entry: Dict[str, Any] = {
        "name": font.key,
        "importUrl": font.import_resource,
        "cssFamily": font.style_declaration,
    }
    entry.update(measurement_payload(result, mode, aggregate=False))
    return entry


def aggregate_entry(result: FontResult, mode: str) -> Dict[str, Any]:
    """Original catalog fields plus this run's measurements.

    Measurement fields from an earlier run of the other mode are dropped.
    """
    entry = dict(result.descriptor.fields)
    stale = ("scale", "widthScale", "heightScale", "scaleFallback")
    if mode == "scale":
        stale = ("characters", "characterCount", "lastMeasuredAt")
    for name in stale + ("measurementError",):
        entry.pop(name, None)
    entry.update(measurement_payload(result, mode, aggregate=True))
    return entry


class ResultStore(ABC):
    """Single-writer accumulator; subclasses decide when files are written."""

    def __init__(
        self,
        output: Path,
        mode: str,
        config: MeasureConfig,
        catalog_keys: Sequence[str],
        verbosity: Verbosity = Verbosity.BRIEF,
    ):
        if mode not in MODES:
            raise ValueError(f"Unknown measurement mode: {mode}")
        self.output = Path(output)
        self.mode = mode
        self.config = config
        self.catalog_keys = list(catalog_keys)
        self.verbosity = verbosity
        self.summary = RunSummary(mode=mode, config_hash=compute_config_hash(config))
        self._lock = asyncio.Lock()
        self._backed_up: Set[Path] = set()

    def backup(self, path: Path) -> Optional[Path]:
        """Copy an existing file aside before its first overwrite this run.

        Best effort: a failed backup is reported and the write goes ahead.
        """
        if path in self._backed_up:
            return None
        self._backed_up.add(path)
        if not path.exists():
            return None
        backup = backup_path_for(path)
        try:
            shutil.copyfile(path, backup)
        except OSError as e:
            cs.StatusIndicator("warning").add_message("Could not back up").add_file(
                str(path), filename_only=False
            ).with_explanation(str(e)).emit(console)
            return None
        return backup

    def write_json(self, path: Path, data: Any) -> None:
        self.backup(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.write("\n")
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Failed to write {path}: {e}") from e

    def _report_write_failure(self, error: PersistenceError) -> None:
        self.summary.persistence_failed = True
        cs.StatusIndicator("error").add_message(str(error)).emit(console)

    async def record(self, result: FontResult) -> None:
        async with self._lock:
            self.summary.attempted += 1
            if result.fallback:
                self.summary.fallbacks += 1
            self._merge(result)

    @abstractmethod
    def _merge(self, result: FontResult) -> None:
        """Persist or hold one result; called under the store lock."""

    @abstractmethod
    def finalize(self) -> RunSummary:
        """Write whatever is still pending and return the run summary."""


class PerFontStore(ResultStore):
    """One file per font, written as soon as the font completes.

    The manifest is rewritten after every font so an interrupted run still
    leaves a consistent index of what finished.
    """

    @property
    def manifest_path(self) -> Path:
        return self.output / MANIFEST_NAME

    def _merge(self, result: FontResult) -> None:
        filename = safe_filename(result.key)
        try:
            self.write_json(self.output / filename, per_font_entry(result, self.mode))
        except PersistenceError as e:
            self.summary.failed += 1
            self._report_write_failure(e)
        else:
            self.summary.succeeded += 1
            self.summary.files.append(filename)
            if self.verbosity >= Verbosity.VERBOSE:
                cs.StatusIndicator("saved").add_file(
                    str(self.output / filename), filename_only=False
                ).emit(console)
        self._write_manifest()

    def manifest(self) -> Dict[str, Any]:
        return {
            "timestamp": self.summary.timestamp,
            "totalFonts": len(self.catalog_keys),
            "successCount": self.summary.succeeded,
            "failureCount": self.summary.failed,
            "fallbackCount": self.summary.fallbacks,
            "outputDirectory": str(self.output),
            "configHash": self.summary.config_hash,
            "files": sorted(self.summary.files),
        }

    def _write_manifest(self) -> None:
        try:
            self.write_json(self.manifest_path, self.manifest())
        except PersistenceError as e:
            self._report_write_failure(e)

    def finalize(self) -> RunSummary:
        self._write_manifest()
        self.summary.files = sorted(self.summary.files)
        return self.summary


class AggregateStore(ResultStore):
    """Everything in one file at the end; a crash mid-run loses all of it."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._results: Dict[str, FontResult] = {}

    def _merge(self, result: FontResult) -> None:
        self._results[result.key] = result

    def ordered_results(self) -> List[FontResult]:
        known = set(self.catalog_keys)
        ordered = [self._results[k] for k in self.catalog_keys if k in self._results]
        extra = [r for k, r in self._results.items() if k not in known]
        return ordered + extra

    def finalize(self) -> RunSummary:
        data = {r.key: aggregate_entry(r, self.mode) for r in self.ordered_results()}
        try:
            self.write_json(self.output, data)
        except PersistenceError as e:
            self.summary.failed = len(data)
            self._report_write_failure(e)
        else:
            self.summary.succeeded = len(data)
            self.summary.files = [self.output.name]
        return self.summary


def open_store(
    output: Path,
    mode: str,
    config: MeasureConfig,
    catalog_keys: Sequence[str],
    verbosity: Verbosity = Verbosity.BRIEF,
) -> ResultStore:
    store_cls = PerFontStore if config.persistence == "per-font" else AggregateStore
    return store_cls(output, mode, config, catalog_keys, verbosity=verbosity)
