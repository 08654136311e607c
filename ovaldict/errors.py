"""Errors raised while converting OVAL feeds"""
from typing import Optional


class ConvertError(Exception):
    """
    Base class for every conversion failure.

    Carries the pipeline phase that failed and the URL or file path involved,
    so the caller can report where the run stopped.
    """

    phase = 'convert'

    def __init__(self, message: str, location: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.location = location

    def __str__(self) -> str:
        if self.location:
            return f"{self.phase}: {self.message} ({self.location})"
        return f"{self.phase}: {self.message}"


class DirectoryError(ConvertError):
    """Failed to stat, create or remove a namespace or version directory"""
    phase = 'directory'


class FetchError(ConvertError):
    """Failed to retrieve a feed document"""
    phase = 'fetch'


class ParseError(ConvertError):
    """Feed document is not well-formed XML"""
    phase = 'parse'


class EncodeError(ConvertError):
    """Failed to serialize (or validate) an output record list"""
    phase = 'encode'


class WriteError(ConvertError):
    """Failed to create or write an output file"""
    phase = 'write'


class CloseError(ConvertError):
    """Failed to close an output file"""
    phase = 'close'


class MetadataError(ConvertError):
    """Failed to read or update the last updated ledger"""
    phase = 'metadata'
