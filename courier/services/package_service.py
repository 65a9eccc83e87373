"""Package use cases that combine the repository with photo uploads."""

from __future__ import annotations

from typing import Optional

from courier.repositories.entities import PackageRepository
from courier.schemas import Package, PackageCreate, PackageUpdate
from courier.services.upload_service import StagedUpload, UploadService


class PackageService:
    def __init__(self, packages: PackageRepository, uploads: UploadService) -> None:
        self.packages = packages
        self.uploads = uploads

    def create(self, payload: PackageCreate, photo: Optional[StagedUpload] = None) -> Package:
        data = payload.to_record()
        if photo is None:
            return self.packages.create(data)
        try:
            return self.packages.create(data, photo_for=lambda tracking: self.uploads.commit(photo, tracking))
        finally:
            self.uploads.discard(photo)

    def update(self, package_id: int, payload: PackageUpdate, photo: Optional[StagedUpload] = None) -> Optional[Package]:
        patch = payload.to_patch()
        try:
            if photo is not None:
                existing = self.packages.get_by_id(package_id)
                if existing is None:
                    return None
                patch["photo"] = self.uploads.commit(photo, existing.tracking_number)
            return self.packages.update(package_id, patch)
        finally:
            self.uploads.discard(photo)

    def delete(self, package_id: int) -> bool:
        return self.packages.delete(package_id)
