from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from courier.domain.tracking import normalize_tracking_number
from courier.domain.validation import Invalid, validate
from courier.repositories.entities import Repositories
from courier.routers.deps import get_repositories, payload_body
from courier.schemas import ContactCreate

router = APIRouter(prefix="/api", tags=["public"])
logger = logging.getLogger(__name__)

INVALID_CONTACT = "Invalid contact form data"


@router.get("/track/{tracking_number}")
def track_package(tracking_number: str, repos: Repositories = Depends(get_repositories)):
    package = repos.packages.get_by_tracking_number(normalize_tracking_number(tracking_number))
    if not package:
        raise HTTPException(404, "Package not found")
    return package.to_record()


@router.post("/contact", status_code=201)
def submit_contact(
    data: dict = Depends(payload_body(INVALID_CONTACT)),
    repos: Repositories = Depends(get_repositories),
):
    result = validate(ContactCreate, data)
    if isinstance(result, Invalid):
        logger.info("Rejected contact form: %s", ", ".join(e.field for e in result.errors))
        raise HTTPException(400, INVALID_CONTACT)
    contact = repos.contacts.create(result.value.to_record())
    return {"message": "Contact form submitted successfully", "id": contact.id}
