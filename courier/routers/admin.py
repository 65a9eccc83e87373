from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile

from courier.domain.validation import Invalid, validate
from courier.repositories.entities import Repositories
from courier.routers.deps import (
    get_package_service,
    get_repositories,
    get_upload_service,
    require_admin,
)
from courier.schemas import PackageCreate, PackageUpdate
from courier.services.package_service import PackageService
from courier.services.upload_service import StagedUpload, UploadRejectedError, UploadService

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])
logger = logging.getLogger(__name__)

INVALID_PACKAGE = "Invalid package data"
NOT_FOUND = "Package not found"

# dashboard form field -> (group, key); group None means a top-level field
FORM_FIELDS = {
    "status": (None, "status"),
    "adminNotes": (None, "adminNotes"),
    "sender[name]": ("sender", "name"),
    "sender[address]": ("sender", "address"),
    "receiver[name]": ("receiver", "name"),
    "receiver[address]": ("receiver", "address"),
    "currentLocationAddress": ("currentLocation", "address"),
    "currentLocationLat": ("currentLocation", "lat"),
    "currentLocationLng": ("currentLocation", "lng"),
    "packageType": ("packageDetails", "type"),
    "packageWeight": ("packageDetails", "weight"),
    "packageHeight": ("packageDetails", "height"),
    "packageColor": ("packageDetails", "color"),
}
GROUP_KEYS = {
    "sender": ("name", "address"),
    "receiver": ("name", "address"),
    "currentLocation": ("address", "lat", "lng"),
    "packageDetails": ("type", "weight", "height", "color"),
}


async def package_form(request: Request) -> dict:
    """
    Fold the dashboard's flat form fields into the nested package shape.

    Fields are taken as sent, so an empty ``adminNotes`` clears the notes.
    A group appears in the result as soon as one of its fields was sent, so a
    half-filled group fails validation instead of being silently dropped.
    """
    form = await request.form()
    payload: dict = {}
    for name, (group, key) in FORM_FIELDS.items():
        value = form.get(name)
        if not isinstance(value, str):
            continue
        if group is None:
            payload[key] = value
        else:
            payload.setdefault(group, dict.fromkeys(GROUP_KEYS[group]))[key] = value
    return payload


def _parse_id(value: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise HTTPException(404, NOT_FOUND)


def _stage_photo(uploads: UploadService, photo: Optional[UploadFile]) -> Optional[StagedUpload]:
    try:
        return uploads.stage(photo)
    except UploadRejectedError as exc:
        logger.info("Rejected package photo: %s", exc.message)
        raise HTTPException(400, INVALID_PACKAGE)


def _describe(result: Invalid) -> str:
    return ", ".join(f"{e.field}: {e.message}" for e in result.errors)


@router.get("/packages")
def list_packages(repos: Repositories = Depends(get_repositories)):
    return [package.to_record() for package in repos.packages.get_all()]


@router.post("/packages", status_code=201)
def create_package(
    form: dict = Depends(package_form),
    photo: Optional[UploadFile] = File(None),
    service: PackageService = Depends(get_package_service),
    uploads: UploadService = Depends(get_upload_service),
):
    result = validate(PackageCreate, form)
    if isinstance(result, Invalid):
        logger.info("Rejected package create: %s", _describe(result))
        raise HTTPException(400, INVALID_PACKAGE)
    staged = _stage_photo(uploads, photo)
    package = service.create(result.value, staged)
    return package.to_record()


@router.put("/packages/{package_id}")
def update_package(
    package_id: str,
    form: dict = Depends(package_form),
    photo: Optional[UploadFile] = File(None),
    service: PackageService = Depends(get_package_service),
    uploads: UploadService = Depends(get_upload_service),
    repos: Repositories = Depends(get_repositories),
):
    pid = _parse_id(package_id)
    result = validate(PackageUpdate, form)
    if isinstance(result, Invalid):
        logger.info("Rejected package %s update: %s", pid, _describe(result))
        raise HTTPException(400, INVALID_PACKAGE)
    if repos.packages.get_by_id(pid) is None:
        raise HTTPException(404, NOT_FOUND)
    staged = _stage_photo(uploads, photo)
    package = service.update(pid, result.value, staged)
    if package is None:
        raise HTTPException(404, NOT_FOUND)
    return package.to_record()


@router.delete("/packages/{package_id}")
def delete_package(package_id: str, service: PackageService = Depends(get_package_service)):
    if not service.delete(_parse_id(package_id)):
        raise HTTPException(404, NOT_FOUND)
    return {"message": "Package deleted successfully"}


@router.get("/contacts")
def list_contacts(repos: Repositories = Depends(get_repositories)):
    return [contact.to_record() for contact in repos.contacts.get_all()]
