"""
Record and payload models.

Records mirror what is stored in the JSON collections (camelCase on disk and
on the wire). Payload models carry the boundary rules: required text fields,
status membership, coordinate ranges, e-mail shape.
"""
from __future__ import annotations

from typing import Annotated, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints
from pydantic.alias_generators import to_camel

PACKAGE_STATUSES = ("On Hold", "In Transit", "Held by Customs", "Out for Delivery", "Delivered")
DEFAULT_STATUS = "On Hold"

PackageStatus = Literal["On Hold", "In Transit", "Held by Customs", "Out for Delivery", "Delivered"]
Text = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
Latitude = Annotated[float, Field(ge=-90, le=90, allow_inf_nan=False)]
Longitude = Annotated[float, Field(ge=-180, le=180, allow_inf_nan=False)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class RecordModel(CamelModel):
    # keep keys we do not know about when a collection is rewritten
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


# ---------------------------------------------------------------- records
class Party(RecordModel):
    name: str
    address: str


class Location(RecordModel):
    address: str
    lat: float
    lng: float


class PackageDetails(RecordModel):
    type: str
    weight: str
    height: str
    color: str


class User(RecordModel):
    id: int
    username: str
    password: str


class Package(RecordModel):
    id: int
    tracking_number: str
    status: str
    sender: Party
    receiver: Party
    current_location: Location
    package_details: PackageDetails
    admin_notes: str = ""
    photo: Optional[str] = None
    created_at: str
    updated_at: str


class Contact(RecordModel):
    id: int
    first_name: str
    last_name: str
    email: str
    phone: str
    service_interest: str
    message: str
    created_at: str


# ---------------------------------------------------------------- payloads
class PartyIn(CamelModel):
    name: Text
    address: Text


class LocationIn(CamelModel):
    address: Text
    lat: Latitude
    lng: Longitude


class PackageDetailsIn(CamelModel):
    type: Text
    weight: Text
    height: Text
    color: Text


class PackageCreate(CamelModel):
    status: PackageStatus = DEFAULT_STATUS
    sender: PartyIn
    receiver: PartyIn
    current_location: LocationIn
    package_details: PackageDetailsIn
    admin_notes: str = ""


class PackageUpdate(CamelModel):
    """Every field optional; only what was sent ends up in the patch."""

    status: Optional[PackageStatus] = None
    sender: Optional[PartyIn] = None
    receiver: Optional[PartyIn] = None
    current_location: Optional[LocationIn] = None
    package_details: Optional[PackageDetailsIn] = None
    admin_notes: Optional[str] = None

    def to_patch(self) -> dict:
        return self.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)


class ContactCreate(CamelModel):
    first_name: Text
    last_name: Text
    email: EmailStr
    phone: Text
    service_interest: Text
    message: Text


class LoginRequest(BaseModel):
    username: Text
    password: str = Field(min_length=1)
