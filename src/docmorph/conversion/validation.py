from .errors import FileTooLarge, FormatMismatch
from .formats import Format, classify
from .interfaces import InputFile

MAX_FILE_SIZE = 10 * 1024 * 1024
# Routes that produce PDF declare this tighter ceiling.
PDF_OUTPUT_MAX_FILE_SIZE = 5 * 1024 * 1024


def size_ceiling(max_size: int | None = None) -> int:
    if max_size is None:
        return MAX_FILE_SIZE
    return min(MAX_FILE_SIZE, max_size)


def validate_file(
    file: InputFile,
    expected_format: Format | None = None,
    max_size: int | None = None,
) -> None:
    """Check size and format preconditions before a file is accepted.

    Only the name and size are inspected; the content is never read here.
    Raises FileTooLarge or FormatMismatch.
    """
    limit = size_ceiling(max_size)
    if file.size > limit:
        raise FileTooLarge(file.size, limit)

    if expected_format is not None:
        actual = classify(file.name)
        if actual is not expected_format:
            raise FormatMismatch(expected_format.value, actual.value)
