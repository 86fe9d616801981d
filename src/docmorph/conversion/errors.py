class ConversionError(Exception):
    """Base class for every failure the conversion engine reports.

    `code` is a stable machine-readable identifier; the message is meant to be
    shown to the user verbatim.
    """

    code = "conversion_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnsupportedFormat(ConversionError):
    code = "unsupported_format"

    def __init__(self, extension: str | None) -> None:
        self.extension = extension
        if extension:
            message = f"Unsupported file format: {extension}"
        else:
            message = "Unsupported file format: file has no extension"
        super().__init__(message)


class FileTooLarge(ConversionError):
    code = "file_too_large"

    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(f"File too large. Maximum size is {limit / (1024 * 1024):g}MB")


class FormatMismatch(ConversionError):
    code = "format_mismatch"

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Expected {expected} file, got {actual}")


class UnsupportedConversion(ConversionError):
    code = "unsupported_conversion"

    def __init__(self, input_format: str, output_format: str) -> None:
        self.input_format = input_format
        self.output_format = output_format
        super().__init__(f"Conversion from {input_format} to {output_format} is not supported")


class TransformationFailure(ConversionError):
    code = "transformation_failed"
