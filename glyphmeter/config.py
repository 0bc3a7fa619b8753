"""Configuration constants and dataclasses for web font measurement."""

from dataclasses import dataclass
from typing import Tuple


# --- Probe catalog: inclusive codepoint ranges, measured in this order ---
CHARACTER_RANGES: Tuple[Tuple[int, int], ...] = (
    (0x0020, 0x007E),  # Basic Latin (space included)
    (0x00A1, 0x00FF),  # Latin-1 Supplement
    (0x0100, 0x017F),  # Latin Extended-A
    (0x0180, 0x024F),  # Latin Extended-B
    (0x1E00, 0x1EFF),  # Latin Extended Additional
    (0x2010, 0x2027),  # General Punctuation (dashes, quotes, bullets)
    (0x2030, 0x205F),  # General Punctuation (per mille, primes, ...)
    (0x20A0, 0x20CF),  # Currency Symbols
    (0x2100, 0x214F),  # Letterlike Symbols
    (0x2190, 0x21FF),  # Arrows
    (0x2200, 0x22FF),  # Mathematical Operators
)

# --- Scale probes ---
WIDTH_PROBE = "WMWMWMWMWM"  # wide glyphs repeated
HEIGHT_PROBE = "bdfhklgjpqy"  # ascenders and descenders

# --- Baseline font for scale normalization ---
BASELINE_FAMILY = "Roboto"
BASELINE_STYLE = "'Roboto', sans-serif"
BASELINE_URL = "https://fonts.googleapis.com/css2?family=Roboto&display=swap"

# --- Persisted precision (decimal places) ---
WIDTH_PRECISION = 2
SCALE_PRECISION = 3

PERSISTENCE_MODES: Tuple[str, ...] = ("per-font", "aggregate")
SCALE_DIMENSIONS: Tuple[str, ...] = ("both", "width")


@dataclass
class MeasureConfig:
    """Tunable measurement settings; defaults were chosen empirically."""

    test_size: int = 100  # px
    batch_size: int = 500  # probes per document
    scale_batch_size: int = 20  # fonts per document in multi-font scale mode
    font_load_timeout: int = 10000  # ms, best-effort font readiness wait
    page_timeout: int = 30000  # ms, document structural readiness
    batch_timeout: float = 60.0  # s, hard limit for one attempt
    max_retries: int = 3  # total attempts per unit
    font_attempts: int = 1  # whole-font attempts in character mode
    backoff_unit: float = 1.0  # s, backoff = attempt_number * unit
    no_signal_epsilon: float = 0.1  # px
    detect_no_signal: bool = True
    font_poll_interval: float = 0.05  # s
    sessions: int = 1
    multi_font_batch: bool = False
    scale_dimensions: str = "both"
    persistence: str = "per-font"
    headless: bool = True
    baseline_family: str = BASELINE_FAMILY
    baseline_style: str = BASELINE_STYLE
    baseline_url: str = BASELINE_URL
    width_precision: int = WIDTH_PRECISION
    scale_precision: int = SCALE_PRECISION

    def __post_init__(self) -> None:
        if self.persistence not in PERSISTENCE_MODES:
            raise ValueError(f"Unknown persistence mode: {self.persistence}")
        if self.scale_dimensions not in SCALE_DIMENSIONS:
            raise ValueError(f"Unknown scale dimensions: {self.scale_dimensions}")
        if self.batch_size < 1 or self.scale_batch_size < 1:
            raise ValueError("Batch sizes must be at least 1")
        if self.max_retries < 1 or self.font_attempts < 1:
            raise ValueError("Attempt counts must be at least 1")
        if self.sessions < 1:
            raise ValueError("At least one rendering session is required")
