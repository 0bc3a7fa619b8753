"""Scale normalization against the baseline font.

Width and height probes are rendered for the baseline and the target(s) in
the same document, then compared:

    width_scale  = baseline_width  / target_width
    height_scale = baseline_height / target_height
"""

import asyncio
import math
from typing import Dict, List, Optional, Sequence, Union

from . import console_styles as cs
from . import markup
from .batching import is_baseline_font
from .config import MeasureConfig
from .console_styles import Verbosity, get_console
from .errors import InvalidScaleMeasurement, MeasurementError
from .models import (
    TRIVIAL_SCALE,
    FontDescriptor,
    FontResult,
    Geometry,
    Probe,
    ScaleOutcome,
    round_half_up,
    utc_timestamp,
)
from .probes import build_string_probes
from .retry import RetryController, check_signal
from .session import RenderingSession

console = get_console()

WIDTH_KEY = "width"
HEIGHT_KEY = "height"


def _ratio(baseline: float, target: float, label: str) -> float:
    if target == 0:
        raise InvalidScaleMeasurement(f"{label}: target extent is zero")
    value = baseline / target
    if not math.isfinite(value) or value <= 0:
        raise InvalidScaleMeasurement(f"{label}: ratio {value} is not a positive number")
    return value


def compute_scale(
    baseline: Geometry,
    target: Geometry,
    dimensions: str = "both",
    precision: int = 3,
) -> ScaleOutcome:
    """Ratios from (probe width, probe height) extents of baseline and target.

    Raises InvalidScaleMeasurement for zero, infinite or NaN ratios,
    including ratios that round down to zero.
    """
    width = round_half_up(_ratio(baseline.width, target.width, "width"), precision)
    height = None
    if dimensions == "both":
        height = round_half_up(_ratio(baseline.height, target.height, "height"), precision)
    outcome = ScaleOutcome(width, height)
    if not outcome.is_valid():
        raise InvalidScaleMeasurement(f"Scale rounds to an unusable value: {outcome}")
    return outcome


def _extents(geometry: Dict[str, Geometry], owner: str) -> Geometry:
    """Width of the width probe and height of the height probe."""
    return Geometry(
        geometry[markup.scale_selector(owner, WIDTH_KEY)].width,
        geometry[markup.scale_selector(owner, HEIGHT_KEY)].height,
    )


def _signal_dimensions(config: MeasureConfig):
    return ("width", "height") if config.scale_dimensions == "both" else ("width",)


async def _await_fonts_ready(
    session: RenderingSession,
    names: Sequence[str],
    config: MeasureConfig,
    verbosity: Verbosity,
) -> None:
    """Wait for every family under one shared font_load_timeout deadline.

    All families start loading as soon as the document renders, so later
    names only get whatever budget the earlier ones left over.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + config.font_load_timeout / 1000.0
    for name in names:
        remaining_ms = max(0, int((deadline - loop.time()) * 1000))
        ready = await session.await_font_ready(name, config.test_size, remaining_ms)
        if not ready and verbosity >= Verbosity.VERBOSE:
            cs.StatusIndicator("warning").add_message(
                f"{name}: font not reported ready, measuring anyway"
            ).emit(console)


async def _present_scale_document(
    session: RenderingSession,
    fonts: Sequence[FontDescriptor],
    probes: Sequence[Probe],
    config: MeasureConfig,
    verbosity: Verbosity,
) -> Dict[str, Geometry]:
    document = markup.scale_document(
        fonts,
        probes,
        size=config.test_size,
        baseline_style=config.baseline_style,
        baseline_url=config.baseline_url,
    )
    await session.present(document, config.page_timeout)

    names = [config.baseline_style] + [f.style_declaration for f in fonts]
    await _await_fonts_ready(session, names, config, verbosity)

    selectors = [markup.scale_selector("base", p.key) for p in probes]
    for index in range(len(fonts)):
        slot = markup.target_slot(index)
        selectors.extend(markup.scale_selector(slot, p.key) for p in probes)
    return await session.read_geometry(selectors)


def _scale_for_slot(
    geometry: Dict[str, Geometry], slot: str, config: MeasureConfig
) -> ScaleOutcome:
    baseline = _extents(geometry, "base")
    target = _extents(geometry, slot)
    if config.detect_no_signal:
        check_signal(baseline, target, config.no_signal_epsilon, _signal_dimensions(config))
    return compute_scale(
        baseline, target, config.scale_dimensions, config.scale_precision
    )


async def measure_scale(
    session: RenderingSession,
    font: FontDescriptor,
    config: MeasureConfig,
    probes: Optional[Sequence[Probe]] = None,
    verbosity: Verbosity = Verbosity.BRIEF,
) -> ScaleOutcome:
    """One attempt for one font; raises on any failure, including no signal."""
    probes = probes or build_string_probes()
    geometry = await _present_scale_document(session, [font], probes, config, verbosity)
    return _scale_for_slot(geometry, markup.target_slot(0), config)


async def measure_scale_batch(
    session: RenderingSession,
    fonts: Sequence[FontDescriptor],
    config: MeasureConfig,
    probes: Optional[Sequence[Probe]] = None,
    verbosity: Verbosity = Verbosity.BRIEF,
) -> Dict[str, Union[ScaleOutcome, MeasurementError]]:
    """One attempt for several fonts sharing a document.

    Document-level failures raise; per-font failures are returned in place
    of the outcome so only those fonts need re-measuring.
    """
    probes = probes or build_string_probes()
    geometry = await _present_scale_document(session, fonts, probes, config, verbosity)
    outcomes: Dict[str, Union[ScaleOutcome, MeasurementError]] = {}
    for index, font in enumerate(fonts):
        try:
            outcomes[font.key] = _scale_for_slot(
                geometry, markup.target_slot(index), config
            )
        except MeasurementError as e:
            outcomes[font.key] = e
    return outcomes


def _new_controller(config: MeasureConfig, verbosity: Verbosity) -> RetryController:
    return RetryController(
        max_retries=config.max_retries,
        backoff_unit=config.backoff_unit,
        attempt_timeout=config.batch_timeout,
        verbosity=verbosity,
    )


def _scale_result(font: FontDescriptor, scale: ScaleOutcome, attempts: int) -> FontResult:
    result = FontResult(font)
    result.scale = scale
    result.attempts = attempts
    result.last_measured_at = utc_timestamp()
    return result


def unit_scale(config: MeasureConfig) -> ScaleOutcome:
    if config.scale_dimensions == "width":
        return ScaleOutcome(1.0)
    return TRIVIAL_SCALE


def trivial_scale_result(font: FontDescriptor, config: MeasureConfig) -> FontResult:
    return _scale_result(font, unit_scale(config), attempts=0)


async def measure_font_scale(
    session: RenderingSession,
    font: FontDescriptor,
    config: MeasureConfig,
    verbosity: Verbosity = Verbosity.BRIEF,
) -> FontResult:
    """Scale for one font; falls back to 1.0 once retries are exhausted."""
    if is_baseline_font(font, config.baseline_family):
        return trivial_scale_result(font, config)

    probes = build_string_probes()
    outcome = await _new_controller(config, verbosity).run(
        font.key,
        lambda n: measure_scale(session, font, config, probes, verbosity),
        lambda error: unit_scale(config),
    )
    result = _scale_result(font, outcome.value, outcome.attempts)
    if not outcome.succeeded:
        exhausted = outcome.exhausted
        result.fallback = True
        result.measurement_error = str(exhausted)
        cs.StatusIndicator("fallback").add_message(
            f"{font.display_name}: scale set to 1.0"
        ).with_explanation(str(exhausted)).emit(console)
    elif verbosity >= Verbosity.VERBOSE:
        cs.StatusIndicator("info").add_message(
            f"{font.display_name}: scale={result.scale.width_scale}"
        ).emit(console)
    return result


async def measure_scale_group(
    session: RenderingSession,
    fonts: Sequence[FontDescriptor],
    config: MeasureConfig,
    verbosity: Verbosity = Verbosity.BRIEF,
) -> List[FontResult]:
    """Shared-document batch; fonts that fail inside it get measured alone.

    Results come back in the order of `fonts`.
    """
    probes = build_string_probes()
    outcome = await _new_controller(config, verbosity).run(
        f"scale batch of {len(fonts)}",
        lambda n: measure_scale_batch(session, fonts, config, probes, verbosity),
        lambda error: {},
    )

    results: List[FontResult] = []
    for font in fonts:
        measured = outcome.value.get(font.key)
        if isinstance(measured, ScaleOutcome):
            results.append(_scale_result(font, measured, outcome.attempts))
            continue
        if verbosity >= Verbosity.DEBUG:
            cs.StatusIndicator("retry").add_message(
                f"{font.display_name}: re-measuring on its own"
            ).with_explanation(str(measured or "batch gave up")).emit(console)
        results.append(await measure_font_scale(session, font, config, verbosity))
    return results
