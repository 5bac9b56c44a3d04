"""S3 XML documents: rendering responses and parsing completion payloads."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from typing import Iterable, Mapping

from fastapi import Response

from locals3.app.services.bucket_service import BucketInfo, ObjectListing
from locals3.app.services.expiry_service import SweepReport
from locals3.app.services.multipart_service import CompletedUpload, MultipartUpload
from locals3.common.errors import MalformedXML

S3_NAMESPACE = "http://s3.amazonaws.com/doc/2006-03-01/"
XML_MEDIA_TYPE = "application/xml"
OWNER_ID = "locals3"
MAX_KEYS = 1000


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.000Z")


def quote_etag(etag: str) -> str:
    return f'"{etag}"'


def _sub(parent: ET.Element, tag: str, text: object | None = None) -> ET.Element:
    element = ET.SubElement(parent, tag)
    if text is not None:
        element.text = str(text)
    return element


def _document(tag: str) -> ET.Element:
    return ET.Element(tag, {"xmlns": S3_NAMESPACE})


def to_bytes(root: ET.Element) -> bytes:
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def xml_response(
    root: ET.Element,
    *,
    status_code: int = 200,
    headers: Mapping[str, str] | None = None,
) -> Response:
    return Response(
        content=to_bytes(root),
        status_code=status_code,
        headers=dict(headers or {}),
        media_type=XML_MEDIA_TYPE,
    )


def render_error(code: str, message: str, resource: str, request_id: str) -> ET.Element:
    root = ET.Element("Error")
    _sub(root, "Code", code)
    _sub(root, "Message", message)
    _sub(root, "Resource", resource)
    _sub(root, "RequestId", request_id)
    return root


def render_list_buckets(buckets: Iterable[BucketInfo]) -> ET.Element:
    root = _document("ListAllMyBucketsResult")
    owner = _sub(root, "Owner")
    _sub(owner, "ID", OWNER_ID)
    _sub(owner, "DisplayName", OWNER_ID)
    container = _sub(root, "Buckets")
    for bucket in buckets:
        entry = _sub(container, "Bucket")
        _sub(entry, "Name", bucket.name)
        _sub(entry, "CreationDate", format_timestamp(bucket.created_at))
    return root


def render_list_objects(listing: ObjectListing, *, list_type: str | None = None) -> ET.Element:
    root = _document("ListBucketResult")
    _sub(root, "Name", listing.bucket)
    _sub(root, "Prefix", listing.prefix)
    if list_type == "2":
        _sub(root, "KeyCount", len(listing.entries))
    else:
        _sub(root, "Marker", "")
    _sub(root, "MaxKeys", MAX_KEYS)
    _sub(root, "IsTruncated", "false")
    for entry in listing.entries:
        contents = _sub(root, "Contents")
        _sub(contents, "Key", entry.key)
        _sub(contents, "LastModified", format_timestamp(entry.last_modified))
        _sub(contents, "ETag", quote_etag(entry.etag))
        _sub(contents, "Size", entry.size)
        _sub(contents, "StorageClass", "STANDARD")
    return root


def render_initiate_multipart(upload: MultipartUpload) -> ET.Element:
    root = _document("InitiateMultipartUploadResult")
    _sub(root, "Bucket", upload.bucket)
    _sub(root, "Key", upload.object_key)
    _sub(root, "UploadId", upload.upload_id)
    return root


def render_complete_multipart(completed: CompletedUpload, location: str) -> ET.Element:
    root = _document("CompleteMultipartUploadResult")
    _sub(root, "Location", location)
    _sub(root, "Bucket", completed.bucket)
    _sub(root, "Key", completed.object_key)
    _sub(root, "ETag", quote_etag(completed.etag))
    return root


def render_sweep_report(report: SweepReport) -> ET.Element:
    root = ET.Element("CronResult")
    _sub(root, "Status", "Success")
    _sub(root, "ScannedFiles", report.scanned)
    _sub(root, "DeletedFiles", report.deleted)
    return root


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def parse_complete_multipart(body: bytes, *, resource: str = "") -> list[int]:
    """Return the part numbers of a CompleteMultipartUpload body, in order.

    Raises:
        MalformedXML: If the body is not XML, names no parts, or carries a
            part number that is not a positive integer.
    """
    try:
        root = ET.fromstring(body)
    except ET.ParseError as exc:
        raise MalformedXML(resource=resource) from exc

    if _local_name(root.tag) != "CompleteMultipartUpload":
        raise MalformedXML(resource=resource)

    part_numbers: list[int] = []
    for part in root:
        if _local_name(part.tag) != "Part":
            continue
        number = next(
            (child.text for child in part if _local_name(child.tag) == "PartNumber"),
            None,
        )
        try:
            part_number = int((number or "").strip())
        except ValueError as exc:
            raise MalformedXML(resource=resource) from exc
        if part_number < 1:
            raise MalformedXML(resource=resource)
        part_numbers.append(part_number)

    if not part_numbers:
        raise MalformedXML(resource=resource)
    return part_numbers
