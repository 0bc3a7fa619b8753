"""Per-character advance width measurement for one font."""

from typing import Dict, List, Sequence, Tuple

from . import console_styles as cs
from . import markup
from .batching import is_baseline_font, partition
from .config import WIDTH_PROBE, MeasureConfig
from .console_styles import Verbosity, get_console
from .errors import MeasurementError
from .models import FontDescriptor, FontResult, Probe, round_half_up, utc_timestamp
from .retry import RetryController, UnitOutcome, check_signal
from .session import RenderingSession

console = get_console()


async def measure_batch(
    session: RenderingSession,
    font: FontDescriptor,
    batch: Sequence[Probe],
    config: MeasureConfig,
    verbosity: Verbosity = Verbosity.BRIEF,
) -> Dict[str, float]:
    """Render one batch in a fresh document and read back its widths.

    Probes without ink (zero width or height) are left out of the result.
    """
    document = markup.character_batch_document(
        font,
        batch,
        size=config.test_size,
        baseline_style=config.baseline_style,
        baseline_url=config.baseline_url,
        reference_text=WIDTH_PROBE,
    )
    await session.present(document, config.page_timeout)

    ready = await session.await_font_ready(
        font.style_declaration, config.test_size, config.font_load_timeout
    )
    if not ready and verbosity >= Verbosity.VERBOSE:
        cs.StatusIndicator("warning").add_message(
            f"{font.display_name}: font not reported ready, measuring anyway"
        ).emit(console)

    selectors = [markup.REF_BASE, markup.REF_TARGET]
    selectors.extend(markup.probe_selector(i) for i in range(len(batch)))
    geometry = await session.read_geometry(selectors)

    if config.detect_no_signal and not is_baseline_font(font, config.baseline_family):
        check_signal(
            geometry[markup.REF_BASE],
            geometry[markup.REF_TARGET],
            config.no_signal_epsilon,
        )

    widths: Dict[str, float] = {}
    for index, probe in enumerate(batch):
        rect = geometry[markup.probe_selector(index)]
        if rect.has_extent:
            widths[probe.key] = round_half_up(rect.width, config.width_precision)
    return widths


async def measure_characters(
    session: RenderingSession,
    font: FontDescriptor,
    probes: Sequence[Probe],
    config: MeasureConfig,
    controller: RetryController,
    verbosity: Verbosity = Verbosity.BRIEF,
) -> Tuple[Dict[str, float], List[UnitOutcome]]:
    """Measure every batch in probe order, retrying each independently.

    Returns:
        Tuple of (characters, failed_batches). Raises MeasurementError when
        there was at least one batch and none succeeded.
    """
    batches = partition(probes, config.batch_size)
    characters: Dict[str, float] = {}
    failed: List[UnitOutcome] = []

    for index, batch in enumerate(batches):
        outcome = await controller.run(
            f"{font.key} batch {index + 1}/{len(batches)}",
            lambda n: measure_batch(session, font, batch, config, verbosity),
            lambda error: {},
        )
        if outcome.succeeded:
            characters.update(outcome.value)
        else:
            failed.append(outcome)

    if batches and len(failed) == len(batches):
        raise MeasurementError(str(failed[-1].exhausted))
    return characters, failed


async def measure_font_characters(
    session: RenderingSession,
    font: FontDescriptor,
    probes: Sequence[Probe],
    config: MeasureConfig,
    verbosity: Verbosity = Verbosity.BRIEF,
) -> FontResult:
    """Whole-font unit: character map, or an empty map plus measurementError."""
    batch_controller = RetryController(
        max_retries=config.max_retries,
        backoff_unit=config.backoff_unit,
        attempt_timeout=config.batch_timeout,
        verbosity=verbosity,
    )
    font_controller = RetryController(
        max_retries=config.font_attempts,
        backoff_unit=config.backoff_unit,
        verbosity=verbosity,
    )

    async def attempt(attempt_number: int):
        return await measure_characters(
            session, font, probes, config, batch_controller, verbosity
        )

    outcome = await font_controller.run(font.key, attempt, lambda error: ({}, []))
    characters, failed_batches = outcome.value

    result = FontResult(font)
    result.characters = characters
    result.last_measured_at = utc_timestamp()
    result.attempts = outcome.attempts
    if not outcome.succeeded:
        result.fallback = True
        result.measurement_error = str(outcome.exhausted.last_error or outcome.exhausted)
        cs.StatusIndicator("fallback").add_message(
            f"{font.display_name}: no characters measured"
        ).with_explanation(result.measurement_error).emit(console)
    elif failed_batches:
        cs.StatusIndicator("warning").add_message(
            f"{font.display_name}: {cs.fmt_count(len(failed_batches))} batch(es) "
            "gave up, their characters are omitted"
        ).emit(console)
    return result
