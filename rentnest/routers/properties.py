import json
from fastapi import APIRouter, Depends, status, Query, Form, UploadFile, File, Request
from rentnest.core.exceptions import ValidationError
from rentnest.models.property import PropertyType, FurnishedStatus
from rentnest.models.user import User
from rentnest.schemas.property import (
    PropertyResponse, PropertyListResponse, PropertyFilters, PropertyUpdate
)
from rentnest.services.listings import ListingStore
from rentnest.api.deps import get_listing_store, require_owner
from rentnest.utils.file_storage import read_image_uploads
from typing import Any, List, Optional

router = APIRouter(prefix="/properties", tags=["Properties"])


# ─── Helpers ──────────────────────────────────────────────────────────────────

def _parse_json_field(name: str, raw: Optional[str], expected: type) -> Any:
    """
    Decode a JSON-encoded multipart field. Returns None when the field was not
    sent so the listing service can report it as missing.
    """
    if raw is None or not raw.strip():
        return None
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        raise ValidationError(f"'{name}' must be a valid JSON string.")

    if not isinstance(parsed, expected):
        kind = "array" if expected is list else "object"
        raise ValidationError(f"'{name}' must be a JSON {kind}.")
    return parsed


def _form_fields(**fields: Any) -> dict:
    return {key: value for key, value in fields.items() if value is not None}


# ─── CREATE: JSON body, or multipart form + image uploads ─────────────────────

async def _json_body(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        raise ValidationError("Request body must be valid JSON.")
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object.")
    return body


@router.post("/", response_model=PropertyResponse, status_code=status.HTTP_201_CREATED)
async def create_property(
    request: Request,

    # ── Plain text fields ─────────────────────────────────────────────────────
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    property_type: Optional[str] = Form(None),

    # ── JSON-encoded structured fields ────────────────────────────────────────
    location: Optional[str] = Form(None),         # {"division", "district", "area", "address"}
    rent: Optional[str] = Form(None),             # {"amount", "currency", "period", "negotiable"}
    features: Optional[str] = Form(None),
    amenities: Optional[str] = Form(None),        # JSON array of strings
    contact: Optional[str] = Form(None),          # {"name", "phone", "email"}
    terms: Optional[str] = Form(None),
    photos: Optional[str] = Form(None),           # JSON array of {"url", "caption"} hosted elsewhere
    image_captions: Optional[str] = Form(None),   # JSON array, matched to images by index

    # ── Image files ───────────────────────────────────────────────────────────
    images: Optional[List[UploadFile]] = File(None),

    current_user: User = Depends(require_owner),
    listings: ListingStore = Depends(get_listing_store),
):
    """
    Create a new property listing owned by the caller.

    Accepts either a JSON body (structured fields as nested objects, photos
    given as already-hosted URLs) or multipart/form-data with the structured
    fields JSON-encoded. Uploaded images are stored in upload order and
    appended after any `photos` sent with the form.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        return await listings.create(current_user.id, await _json_body(request))

    data = _form_fields(
        title=title,
        description=description,
        property_type=property_type,
        location=_parse_json_field("location", location, dict),
        rent=_parse_json_field("rent", rent, dict),
        features=_parse_json_field("features", features, dict),
        amenities=_parse_json_field("amenities", amenities, list),
        contact=_parse_json_field("contact", contact, dict),
        terms=_parse_json_field("terms", terms, dict),
        photos=_parse_json_field("photos", photos, list),
    )
    captions = _parse_json_field("image_captions", image_captions, list) or []

    real_images = [f for f in (images or []) if f and f.filename]
    uploads = await read_image_uploads(real_images)

    return await listings.create(current_user.id, data, uploads, captions)


# ─── LIST (public) ────────────────────────────────────────────────────────────

@router.get("/", response_model=PropertyListResponse)
async def list_properties(
    property_type: Optional[PropertyType] = Query(None),
    division: Optional[str] = Query(None),
    district: Optional[str] = Query(None),
    area: Optional[str] = Query(None),
    min_rent: Optional[float] = Query(None, ge=0),
    max_rent: Optional[float] = Query(None, ge=0),
    bedrooms: Optional[int] = Query(None, ge=0),
    furnished: Optional[FurnishedStatus] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    listings: ListingStore = Depends(get_listing_store),
):
    """List available properties with filtering, newest first."""
    filters = PropertyFilters(
        property_type=property_type,
        division=division,
        district=district,
        area=area,
        min_rent=min_rent,
        max_rent=max_rent,
        bedrooms=bedrooms,
        furnished=furnished,
        search=search,
    )
    return listings.list(filters, page=page, limit=limit)


# ─── LIST (owner) ─────────────────────────────────────────────────────────────

@router.get("/my-properties", response_model=List[PropertyResponse])
async def list_my_properties(
    current_user: User = Depends(require_owner),
    listings: ListingStore = Depends(get_listing_store),
):
    """Every property the caller owns, available or not."""
    return listings.list_mine(current_user.id)


# ─── GET single property (public) ────────────────────────────────────────────

@router.get("/{property_id}", response_model=PropertyResponse)
async def get_property(
    property_id: str,
    listings: ListingStore = Depends(get_listing_store),
):
    return listings.get(property_id)


# ─── UPDATE / DELETE / TOGGLE (owner of the listing) ─────────────────────────

@router.put("/{property_id}", response_model=PropertyResponse)
async def update_property(
    property_id: str,
    payload: PropertyUpdate,
    current_user: User = Depends(require_owner),
    listings: ListingStore = Depends(get_listing_store),
):
    """Partial update; fields missing from the body keep their current value."""
    return listings.update(property_id, current_user.id, payload.model_dump(exclude_unset=True))


@router.delete("/{property_id}")
async def delete_property(
    property_id: str,
    current_user: User = Depends(require_owner),
    listings: ListingStore = Depends(get_listing_store),
):
    await listings.delete(property_id, current_user.id)
    return {"success": True, "message": "Property deleted successfully"}


@router.patch("/{property_id}/toggle-availability", response_model=PropertyResponse)
async def toggle_availability(
    property_id: str,
    current_user: User = Depends(require_owner),
    listings: ListingStore = Depends(get_listing_store),
):
    return listings.toggle_availability(property_id, current_user.id)
