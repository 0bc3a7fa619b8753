"""Run orchestration: fonts -> sessions -> measurements -> result store."""

import asyncio
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from . import console_styles as cs
from .batching import plan_scale_batches, split_catalog
from .characters import measure_font_characters
from .config import MeasureConfig
from .console_styles import Verbosity, get_console
from .models import FontDescriptor, FontResult, Probe, RunSummary
from .probes import build_probe_set
from .scale import measure_font_scale, measure_scale_group, trivial_scale_result
from .session import ChromiumEngine, RenderingSession
from .store import ResultStore, open_store

console = get_console()

SessionFactory = Callable[[], Awaitable[RenderingSession]]


def plan_units(
    fonts: Sequence[FontDescriptor], mode: str, config: MeasureConfig
) -> Tuple[List[FontResult], List[List[FontDescriptor]]]:
    """Work units in catalog order.

    Returns:
        Tuple of (ready_results, units). Ready results need no rendering;
        each unit is measured on one session in one go.
    """
    if mode == "scale" and config.multi_font_batch:
        trivial, batches = plan_scale_batches(
            fonts, config.scale_batch_size, config.baseline_family
        )
        return [trivial_scale_result(f, config) for f in trivial], batches
    return [], [[font] for font in fonts]


async def _measure_unit(
    session: RenderingSession,
    unit: List[FontDescriptor],
    mode: str,
    probes: Sequence[Probe],
    config: MeasureConfig,
    verbosity: Verbosity,
) -> List[FontResult]:
    if mode == "characters":
        return [
            await measure_font_characters(session, font, probes, config, verbosity)
            for font in unit
        ]
    if config.multi_font_batch:
        return await measure_scale_group(session, unit, config, verbosity)
    return [await measure_font_scale(session, font, config, verbosity) for font in unit]


async def _close_quietly(session: RenderingSession) -> None:
    try:
        await session.close()
    except Exception as e:
        cs.StatusIndicator("warning").add_message(
            "Could not close rendering session"
        ).with_explanation(str(e)).emit(console)


async def run_measurement(
    catalog: Dict[str, FontDescriptor],
    mode: str,
    config: MeasureConfig,
    store: ResultStore,
    session_factory: SessionFactory,
    verbosity: Verbosity = Verbosity.BRIEF,
    probes: Optional[Sequence[Probe]] = None,
) -> RunSummary:
    """Measure every font in the catalog and persist through `store`.

    Sessions run concurrently over contiguous catalog slices; inside a
    session fonts are measured strictly one after another. Connection
    failures propagate, everything else ends up as a fallback value.
    """
    fonts = list(catalog.values())
    if mode == "characters" and probes is None:
        probes = build_probe_set()
    probes = probes or ()

    ready, units = plan_units(fonts, mode, config)
    slices = split_catalog(units, config.sessions)

    if verbosity >= Verbosity.VERBOSE:
        cs.StatusIndicator("info").add_message(
            f"Measuring {cs.fmt_count(len(fonts))} font(s) in {mode} mode on "
            f"{cs.fmt_count(len(slices))} session(s)"
        ).emit(console)

    with cs.create_progress_bar(console) as progress:
        task = progress.add_task("Measuring fonts...", total=len(fonts))

        for result in ready:
            await store.record(result)
            progress.advance(task)

        async def worker(unit_slice: List[List[FontDescriptor]]) -> None:
            session = await session_factory()
            try:
                for unit in unit_slice:
                    results = await _measure_unit(
                        session, unit, mode, probes, config, verbosity
                    )
                    for result in results:
                        await store.record(result)
                        progress.advance(task)
            finally:
                await _close_quietly(session)

        tasks = [asyncio.ensure_future(worker(s)) for s in slices]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for t in tasks:
                t.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    summary = store.finalize()
    report_summary(summary)
    return summary


def report_summary(summary: RunSummary) -> None:
    kind = "error" if summary.persistence_failed else "success"
    cs.emit("", console=console)
    cs.StatusIndicator(kind).add_message(
        f"Measurement completed ({summary.mode})"
    ).with_summary_block(
        attempted=summary.attempted,
        succeeded=summary.succeeded,
        fallbacks=summary.fallbacks,
        failed=summary.failed,
    ).emit(console)


async def run_with_chromium(
    catalog: Dict[str, FontDescriptor],
    mode: str,
    config: MeasureConfig,
    output: Path,
    verbosity: Verbosity = Verbosity.BRIEF,
) -> RunSummary:
    store = open_store(output, mode, config, list(catalog), verbosity=verbosity)
    async with ChromiumEngine(config) as engine:
        return await run_measurement(
            catalog, mode, config, store, engine.new_session, verbosity=verbosity
        )
