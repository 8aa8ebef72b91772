# correlate/utils/errors.py

from typing import Optional


class CorrelationError(Exception):
    """Base class for errors raised while correlating patient events."""


class MissingAnatomicalSiteError(CorrelationError):
    """The expression has no tooth procedure site, so no caries search can be built."""

    def __init__(self, expression: str):
        self.expression = expression
        super().__init__(f"Missing tooth procedure site in expression: {expression}")


class ExternalServiceError(CorrelationError):
    """The terminology server could not expand an expression constraint."""

    def __init__(self, message: str, url: Optional[str] = None,
                 status_code: Optional[int] = None, response_text: Optional[str] = None):
        self.url = url
        self.status_code = status_code
        self.response_text = response_text
        super().__init__(message)

    def __str__(self):
        parts = [self.args[0] if self.args else "Terminology service error"]
        if self.url:
            parts.append(f"url={self.url}")
        if self.status_code is not None:
            parts.append(f"status={self.status_code}")
        if self.response_text:
            parts.append(f"response={self.response_text}")
        return " | ".join(parts)


class DataAccessError(CorrelationError):
    """The patient history database is unavailable or returned malformed data."""
