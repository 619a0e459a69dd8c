from __future__ import annotations


class TruthLensError(Exception):
    """Base class for errors shown to the user instead of crashing a request."""

    code = "TRUTHLENS_ERROR"
    status = 400

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__doc__ or self.code)

    @property
    def message(self) -> str:
        return str(self)

    def as_dict(self) -> dict:
        return {"error": {"code": self.code, "message": self.message}}


class ValidationError(TruthLensError):
    """Invalid input."""

    code = "VALIDATION_ERROR"


class MissingFileError(ValidationError):
    """Please choose an image file."""

    code = "MISSING_FILE"


class InvalidTypeError(ValidationError):
    """Only image files are accepted."""

    code = "INVALID_TYPE"


class TooLargeError(ValidationError):
    """The image is larger than the 5 MB limit."""

    code = "TOO_LARGE"


class EmptyTextError(ValidationError):
    """Enter some watermark text first."""

    code = "EMPTY_TEXT"


class ReportFormError(ValidationError):
    """The report form is incomplete."""

    code = "INVALID_REPORT"


class DecodeError(TruthLensError):
    """The image could not be decoded."""

    code = "DECODE_ERROR"
    status = 422


class DownloadError(TruthLensError):
    """There is no watermarked image to download."""

    code = "DOWNLOAD_ERROR"
    status = 404
