from fastapi import status


class DriveError(Exception):
    """Base for errors that map onto an HTTP status and an ``{"error": ...}`` body."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthorized(DriveError):
    status_code = status.HTTP_401_UNAUTHORIZED


class ValidationFailed(DriveError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(DriveError):
    status_code = status.HTTP_404_NOT_FOUND


class UpstreamError(DriveError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class BlobStoreError(UpstreamError):
    """The object store rejected or failed an operation."""
