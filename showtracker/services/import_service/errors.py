"""Exceptions raised by the import pipeline before row-level processing."""


class ImportFatalError(ValueError):
    """The input cannot be imported at all (empty file, no data rows, ...)."""


class MissingRequiredMappingError(ValueError):
    """One or more required fields have no column assigned."""

    def __init__(self, fields: list[str]):
        self.fields = fields
        super().__init__(f"Required fields not mapped: {', '.join(fields)}")
