"""Error taxonomy shared by the services and the HTTP boundary.

Services raise these exceptions; only the application-level exception
handlers turn them into responses.
"""

from __future__ import annotations


class S3Error(Exception):
    """Base class for errors that map onto an S3 error document."""

    code = "InternalError"
    status_code = 500
    default_message = "We encountered an internal error. Please try again."

    def __init__(self, message: str | None = None, *, resource: str = "") -> None:
        self.message = message or self.default_message
        self.resource = resource
        super().__init__(self.message)


class AccessDenied(S3Error):
    code = "AccessDenied"
    status_code = 403
    default_message = "Access Denied"


class NoSuchBucket(S3Error):
    code = "NoSuchBucket"
    status_code = 404
    default_message = "The specified bucket does not exist"


class NoSuchKey(S3Error):
    code = "NoSuchKey"
    status_code = 404
    default_message = "The specified key does not exist"


class NoSuchUpload(S3Error):
    code = "NoSuchUpload"
    status_code = 404
    default_message = "The specified upload does not exist"


class MalformedXML(S3Error):
    code = "MalformedXML"
    status_code = 400
    default_message = "The XML you provided was not well-formed"


class InvalidArgument(S3Error):
    code = "InvalidArgument"
    status_code = 400
    default_message = "Invalid Argument"


class InvalidBucketName(S3Error):
    code = "InvalidBucketName"
    status_code = 400
    default_message = "The specified bucket is not valid"


class InvalidRange(S3Error):
    code = "InvalidRange"
    status_code = 416
    default_message = "The requested range is not satisfiable"

    def __init__(
        self,
        message: str | None = None,
        *,
        resource: str = "",
        object_size: int = 0,
    ) -> None:
        super().__init__(message, resource=resource)
        self.object_size = object_size


class MethodNotAllowed(S3Error):
    code = "MethodNotAllowed"
    status_code = 405
    default_message = "The specified method is not allowed against this resource"


class InternalError(S3Error):
    pass


class ServiceUnavailable(S3Error):
    code = "ServiceUnavailable"
    status_code = 503
    default_message = "Service is unable to handle request"


__all__ = [
    "AccessDenied",
    "InternalError",
    "InvalidArgument",
    "InvalidBucketName",
    "InvalidRange",
    "MalformedXML",
    "MethodNotAllowed",
    "NoSuchBucket",
    "NoSuchKey",
    "NoSuchUpload",
    "S3Error",
    "ServiceUnavailable",
]
