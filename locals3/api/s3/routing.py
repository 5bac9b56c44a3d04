"""Maps an S3 request (method, path, query) onto the operation it names."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

from locals3.common.errors import MethodNotAllowed


class Operation(str, Enum):
    LIST_BUCKETS = "ListBuckets"
    CREATE_BUCKET = "CreateBucket"
    HEAD_BUCKET = "HeadBucket"
    LIST_OBJECTS = "ListObjects"
    INITIATE_MULTIPART = "CreateMultipartUpload"
    UPLOAD_PART = "UploadPart"
    COMPLETE_MULTIPART = "CompleteMultipartUpload"
    ABORT_MULTIPART = "AbortMultipartUpload"
    PUT_OBJECT = "PutObject"
    GET_OBJECT = "GetObject"
    HEAD_OBJECT = "HeadObject"
    DELETE_OBJECT = "DeleteObject"


# Public reads are anonymous; everything else needs a credential.
ANONYMOUS_OPERATIONS = frozenset(
    {Operation.HEAD_BUCKET, Operation.GET_OBJECT, Operation.HEAD_OBJECT}
)

S3_METHODS = ["GET", "HEAD", "PUT", "POST", "DELETE", "OPTIONS", "PATCH"]


@dataclass(frozen=True)
class S3Request:
    method: str
    bucket: str = ""
    key: str = ""
    query: Mapping[str, str] = field(default_factory=dict)

    @property
    def resource(self) -> str:
        if self.key:
            return f"{self.bucket}/{self.key}"
        return self.bucket

    @property
    def upload_id(self) -> str | None:
        return self.query.get("uploadId")

    @property
    def part_number(self) -> str | None:
        return self.query.get("partNumber")


def parse_request(method: str, path: str, query: Mapping[str, str]) -> S3Request:
    """Split a decoded request path into bucket and key.

    The first non-empty segment is the bucket; the remaining segments,
    joined with ``/``, form the key.
    """
    segments = [segment for segment in path.split("/") if segment]
    bucket = segments[0] if segments else ""
    key = "/".join(segments[1:])
    return S3Request(method=method.upper(), bucket=bucket, key=key, query=dict(query))


def requires_auth(operation: Operation) -> bool:
    return operation not in ANONYMOUS_OPERATIONS


def resolve_operation(request: S3Request) -> Operation:
    """Pick the operation for ``request``, checked in priority order.

    Raises:
        MethodNotAllowed: If the method has no meaning for the resource.
    """
    method = request.method

    if not request.bucket:
        if method == "GET":
            return Operation.LIST_BUCKETS
        raise MethodNotAllowed(resource="/")

    if not request.key:
        bucket_operations = {
            "PUT": Operation.CREATE_BUCKET,
            "HEAD": Operation.HEAD_BUCKET,
            "GET": Operation.LIST_OBJECTS,
        }
        if method in bucket_operations:
            return bucket_operations[method]
        raise MethodNotAllowed(resource=request.resource)

    query = request.query
    if "uploads" in query and method == "POST":
        return Operation.INITIATE_MULTIPART
    if "uploadId" in query and "partNumber" in query and method == "PUT":
        return Operation.UPLOAD_PART
    if "uploadId" in query and method == "POST":
        return Operation.COMPLETE_MULTIPART
    if "uploadId" in query and method == "DELETE":
        return Operation.ABORT_MULTIPART

    object_operations = {
        "PUT": Operation.PUT_OBJECT,
        "GET": Operation.GET_OBJECT,
        "HEAD": Operation.HEAD_OBJECT,
        "DELETE": Operation.DELETE_OBJECT,
    }
    if method in object_operations:
        return object_operations[method]
    raise MethodNotAllowed(resource=request.resource)
