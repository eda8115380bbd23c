from __future__ import annotations
from typing import Optional

from .types.enums import StatusCode


class TensorIndexError(Exception):
    status = StatusCode.INTERNAL_ERROR

    def __init__(self, message: str, **kwargs):
        super().__init__(message)
        self.message = message
        self.context = kwargs


class InvalidArgument(TensorIndexError):
    status = StatusCode.INVALID_ARGUMENT


class TagError(TensorIndexError):
    def __init__(self, message: str, tag: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.tag = tag


class TagOverflow(TagError):
    status = StatusCode.TAG_OVERFLOW

    def __init__(self, message: str, tag: Optional[str] = None,
                 max_tags: Optional[int] = None, **kwargs):
        super().__init__(message, tag=tag, **kwargs)
        self.max_tags = max_tags


class TagTooLong(TagError):
    status = StatusCode.TAG_TOO_LONG

    def __init__(self, message: str, tag: Optional[str] = None,
                 actual: Optional[int] = None, max_len: Optional[int] = None, **kwargs):
        super().__init__(message, tag=tag, **kwargs)
        self.actual = actual
        self.max_len = max_len


class BufferTooSmall(TensorIndexError):
    status = StatusCode.BUFFER_TOO_SMALL

    def __init__(self, message: str, required: Optional[int] = None,
                 provided: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.required = required
        self.provided = provided


class NullHandle(TensorIndexError):
    status = StatusCode.NULL_POINTER


class InternalError(TensorIndexError):
    status = StatusCode.INTERNAL_ERROR


class AllocationFailure(InternalError):
    def __init__(self, message: str, requested_length: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.requested_length = requested_length


class DecompositionError(InternalError):
    def __init__(self, message: str, operation: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation


def status_of(error: Optional[BaseException]) -> StatusCode:
    """Map an outcome to the status code reported across native boundaries."""
    if error is None:
        return StatusCode.SUCCESS
    if isinstance(error, TensorIndexError):
        return error.status
    return StatusCode.INTERNAL_ERROR
