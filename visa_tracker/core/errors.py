# visa_tracker/core/errors.py
from __future__ import annotations


class VisaTrackerError(Exception):
    """Base error; the gateway renders it as {"error": message}."""

    status_code = 500
    default_message = "An unexpected error occurred."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(VisaTrackerError):
    status_code = 404
    default_message = "Not found."


class ParseError(VisaTrackerError):
    status_code = 500
    default_message = "Stored data is corrupt."


class ValidationFailed(VisaTrackerError):
    status_code = 400
    default_message = "Invalid data format."


class StorageIOError(VisaTrackerError):
    status_code = 500
    default_message = "Storage error."


class UploadMissing(VisaTrackerError):
    status_code = 400
    default_message = "No file uploaded."
