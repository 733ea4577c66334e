class MarketInsightsError(Exception):
    """Base class for errors raised by the engine."""


class SheetValidationError(MarketInsightsError, ValueError):
    """
    A raw sheet does not match the expected workbook shape:
    wrong sheet count, missing columns, non-numeric cells, bad section offsets.
    """

    def __init__(self, sheet: str, message: str, column: str = None, row: int = None):
        self.sheet = sheet
        self.column = column
        self.row = row
        where = f"sheet '{sheet}'"
        if column is not None:
            where += f", column '{column}'"
        if row is not None:
            where += f", row {row}"
        super().__init__(f"{where}: {message}")


class UnknownPeriodError(MarketInsightsError, ValueError):
    """A period name is not part of the calendar."""


class UndefinedThresholdsError(MarketInsightsError):
    """Thresholds were requested for an empty population."""
