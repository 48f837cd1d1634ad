"""Smoke tests for Downscaler exceptions."""

import pytest
from assetscale.services.downscaler.exceptions import (
    DownscalerException,
    InvalidEventError,
    StorageError,
    ImageDecodeError,
    ResizeError,
    DocumentStoreError,
)


def test_downscaler_exception_hierarchy():
    """Test that all exceptions inherit from DownscalerException."""
    assert issubclass(InvalidEventError, DownscalerException)
    assert issubclass(StorageError, DownscalerException)
    assert issubclass(ImageDecodeError, DownscalerException)
    assert issubclass(ResizeError, DownscalerException)
    assert issubclass(DocumentStoreError, DownscalerException)


def test_exceptions_can_be_caught_as_base():
    """Test that specific exceptions can be caught as DownscalerException."""
    with pytest.raises(DownscalerException):
        raise ResizeError("Test error")
