"""
Domain layer for document conversion.
Provides the format classifier, validator, route table and the service that
orchestrates conversion jobs, with codecs and stores behind gateways so
front-ends (HTTP or others) can use the same core logic.
"""

from .errors import (
    ConversionError,
    FileTooLarge,
    FormatMismatch,
    TransformationFailure,
    UnsupportedConversion,
    UnsupportedFormat,
)
from .formats import Format, classify, parse_format
from .interfaces import DocxCodec, HistoryEntry, HistoryGateway, InputFile, JobStore, OutputArtifact, PdfCodec
from .routing import ROUTES, SUPPORTED_TOOLS, ConversionRouter, ConversionTool, Route
from .routines import Transformer
from .service import ConversionService, Job, JobStatus
from .validation import MAX_FILE_SIZE, PDF_OUTPUT_MAX_FILE_SIZE, validate_file
