# exceptions.py


class ExtractionError(Exception):
    """Base class for failures surfaced by the receipt extraction pipeline."""


class NoTextExtractedError(ExtractionError):
    """The document was unreadable, malformed, or the OCR model returned no text."""


class NoStructuredOutputError(ExtractionError):
    """The field extraction model returned no usable JSON output."""


class MissingRequiredFieldsError(ExtractionError):
    """A scanned proof lacked the fields needed to record a donation."""

    def __init__(self, missing_fields):
        self.missing_fields = list(missing_fields)
        super().__init__(
            f"Scan failed: Could not extract required fields ({', '.join(self.missing_fields)}). "
            "Please try a clearer image or enter details manually."
        )
