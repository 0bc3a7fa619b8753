"""Error kinds raised while measuring fonts."""

from typing import Iterable


class GlyphmeterError(Exception):
    pass


class CatalogValidationError(GlyphmeterError):
    """Input catalog is malformed or incomplete. Fatal."""


class EngineConnectionError(GlyphmeterError):
    """No rendering session could be obtained. Fatal."""


class PersistenceError(GlyphmeterError):
    """An output artifact could not be written."""


class MeasurementError(GlyphmeterError):
    """Recoverable failure of one unit of work (a batch or a font)."""


class PresentTimeout(MeasurementError):
    pass


class ElementNotFound(MeasurementError):
    def __init__(self, selectors: Iterable[str]):
        self.selectors = list(selectors)
        super().__init__(f"Elements not found: {', '.join(self.selectors)}")


class NoSignalMeasurement(MeasurementError):
    """Target rendered indistinguishably from the baseline font."""


class InvalidScaleMeasurement(MeasurementError):
    """Scale ratio came out zero, infinite or NaN."""


class RetriesExhausted(MeasurementError):
    def __init__(self, attempts: int, last_error: Exception = None):
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {last_error}" if last_error is not None else ""
        super().__init__(f"Gave up after {attempts} attempt(s){detail}")
