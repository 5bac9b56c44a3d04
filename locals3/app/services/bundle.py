from __future__ import annotations

from dataclasses import dataclass, field

from locals3.common.config import Settings
from locals3.infra.storage.content_types import ContentTypeResolver
from locals3.infra.storage.layout import StorageLayout

from .bucket_service import BucketService
from .expiry_service import ExpiryService
from .multipart_service import MultipartService
from .object_service import ObjectService


@dataclass
class ServiceBundle:
    """Lazily constructs application services sharing one storage layout."""

    settings: Settings
    layout: StorageLayout
    content_types: ContentTypeResolver | None = None
    _bucket: BucketService | None = field(default=None, init=False, repr=False)
    _object: ObjectService | None = field(default=None, init=False, repr=False)
    _multipart: MultipartService | None = field(default=None, init=False, repr=False)
    _expiry: ExpiryService | None = field(default=None, init=False, repr=False)

    def bucket(self) -> BucketService:
        if self._bucket is None:
            self._bucket = BucketService(self.layout)
        return self._bucket

    def object(self) -> ObjectService:
        if self._object is None:
            self._object = ObjectService(self.layout, content_types=self.content_types)
        return self._object

    def multipart(self) -> MultipartService:
        if self._multipart is None:
            self._multipart = MultipartService(
                self.layout, max_part_number=self.settings.MAX_PART_NUMBER
            )
        return self._multipart

    def expiry(self) -> ExpiryService:
        if self._expiry is None:
            self._expiry = ExpiryService(self.layout, self.settings.TEMP_BUCKETS)
        return self._expiry


def get_service_bundle(
    settings: Settings,
    *,
    layout: StorageLayout | None = None,
    content_types: ContentTypeResolver | None = None,
) -> ServiceBundle:
    return ServiceBundle(
        settings=settings,
        layout=layout or StorageLayout(settings.STORAGE_ROOT),
        content_types=content_types,
    )
