from .base import BaseService
from .bucket_service import BucketInfo, BucketService, ObjectEntry, ObjectListing
from .bundle import ServiceBundle, get_service_bundle
from .expiry_service import ExpiryService, SweepReport, SweptFile
from .multipart_service import CompletedUpload, MultipartService, MultipartUpload
from .object_service import ObjectHead, ObjectRead, ObjectService
from .range_streamer import ByteRange, RangeStreamer, parse_range_header

__all__ = [
    "BaseService",
    "BucketInfo",
    "BucketService",
    "ByteRange",
    "CompletedUpload",
    "ExpiryService",
    "MultipartService",
    "MultipartUpload",
    "ObjectEntry",
    "ObjectHead",
    "ObjectListing",
    "ObjectRead",
    "ObjectService",
    "RangeStreamer",
    "ServiceBundle",
    "SweepReport",
    "SweptFile",
    "get_service_bundle",
    "parse_range_header",
]
