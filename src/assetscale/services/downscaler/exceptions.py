"""Custom exceptions for Downscaler service."""


class DownscalerException(Exception):
    """Base exception for Downscaler service."""
    pass


class InvalidEventError(DownscalerException):
    """Exception raised when an inbound storage event cannot be parsed."""
    pass


class StorageError(DownscalerException):
    """Exception raised when blob storage operations fail."""
    pass


class ImageDecodeError(DownscalerException):
    """Exception raised when the downloaded object is not a decodable image."""
    pass


class ResizeError(DownscalerException):
    """Exception raised when the resize backend fails."""
    pass


class DocumentStoreError(DownscalerException):
    """Exception raised when the origin document update fails."""
    pass
