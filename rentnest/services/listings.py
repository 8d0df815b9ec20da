"""
services/listings.py

Listing store: property persistence, the public query engine, and the
ownership gate shared by update / delete / toggle.
"""

from typing import List, Optional, Union
from uuid import UUID

from loguru import logger
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session, selectinload

from rentnest.core.config import settings
from rentnest.core.exceptions import Forbidden, NotFound, UpstreamFailure, ValidationError
from rentnest.models.property import Property, PropertyImage
from rentnest.schemas.property import Photo, PropertyFields, PropertyFilters, PropertyUpdate
from rentnest.services.base import commit, parse_id
from rentnest.services.query import Page, build_filter_criteria
from rentnest.utils.file_storage import PROPERTY_IMAGES_FOLDER, ImageUpload

NOT_FOUND_MESSAGE = "Property not found"


def ensure_owner(resource_owner_id: Union[str, UUID], caller_id: Union[str, UUID], action: str = "modify") -> None:
    """Ownership gate: only the user that owns a listing may change it."""
    if str(resource_owner_id) != str(caller_id):
        raise Forbidden(f"You are not authorized to {action} this property")


def _describe_errors(exc: PydanticValidationError, model=PropertyFields) -> str:
    errors = exc.errors()
    required = {name for name, field in model.model_fields.items() if field.is_required()}
    missing = []
    for err in errors:
        loc = err.get("loc") or ()
        if err["type"] == "missing" or (len(loc) == 1 and loc[0] in required and err.get("input") is None):
            missing.append(".".join(str(part) for part in loc))
    if missing:
        return f"Please provide all required fields: {', '.join(missing)}"

    first = errors[0]
    where = ".".join(str(part) for part in first.get("loc") or ()) or "input"
    return f"Invalid {where}: {first['msg']}"


def validate_property_fields(data: dict) -> PropertyFields:
    try:
        return PropertyFields.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(_describe_errors(exc)) from exc


def _apply_fields(prop: Property, fields: PropertyFields) -> None:
    prop.title = fields.title
    prop.description = fields.description
    prop.property_type = fields.property_type
    prop.is_available = fields.is_available

    prop.division = fields.location.division
    prop.district = fields.location.district
    prop.area = fields.location.area
    prop.address = fields.location.address

    prop.rent_amount = fields.rent.amount
    prop.rent_currency = fields.rent.currency
    prop.rent_period = fields.rent.period
    prop.rent_negotiable = fields.rent.negotiable

    prop.bedrooms = fields.features.bedrooms
    prop.bathrooms = fields.features.bathrooms
    prop.furnished = fields.features.furnished
    prop.size_sqft = fields.features.size_sqft
    prop.floor = fields.features.floor
    prop.balcony = fields.features.balcony
    prop.parking = fields.features.parking

    prop.amenities = list(fields.amenities)

    prop.contact_name = fields.contact.name
    prop.contact_phone = fields.contact.phone
    prop.contact_email = fields.contact.email

    prop.terms = fields.terms.model_dump(mode="json") if fields.terms else None


def _photo_rows(photos: List[Photo]) -> List[PropertyImage]:
    return [
        PropertyImage(url=photo.url, caption=photo.caption or None, display_order=idx)
        for idx, photo in enumerate(photos)
    ]


class ListingStore:
    def __init__(self, db: Session, blob_store=None):
        self.db = db
        self.blob_store = blob_store

    # ── Reads ────────────────────────────────────────────────────────────────

    def list(self, filters: Optional[PropertyFilters] = None, page: int = 1, limit: Optional[int] = None) -> dict:
        """Public listing: available properties only, newest first."""
        filters = filters or PropertyFilters()
        paging = Page.from_params(page, limit)

        query = self.db.query(Property).filter(*build_filter_criteria(filters))
        total = query.count()
        properties = (
            query.options(selectinload(Property.photos), selectinload(Property.owner))
            .order_by(Property.created_at.desc(), Property.id.desc())
            .offset(paging.offset)
            .limit(paging.limit)
            .all()
        )

        return {
            "properties": properties,
            "count": len(properties),
            "total": total,
            "total_pages": paging.total_pages(total),
            "current_page": paging.page,
        }

    def list_mine(self, owner_id: Union[str, UUID]) -> List[Property]:
        return (
            self.db.query(Property)
            .options(selectinload(Property.photos), selectinload(Property.owner))
            .filter(Property.owner_id == parse_id(owner_id))
            .order_by(Property.created_at.desc(), Property.id.desc())
            .all()
        )

    def get(self, property_id: Union[str, UUID]) -> Property:
        prop = self.db.get(
            Property,
            parse_id(property_id, NOT_FOUND_MESSAGE),
            options=[selectinload(Property.photos), selectinload(Property.owner)],
        )
        if not prop:
            raise NotFound(NOT_FOUND_MESSAGE)
        return prop

    def get_owned(self, property_id: Union[str, UUID], caller_id: Union[str, UUID], action: str = "modify") -> Property:
        # NotFound is always decided before Forbidden
        prop = self.get(property_id)
        ensure_owner(prop.owner_id, caller_id, action)
        return prop

    # ── Writes ───────────────────────────────────────────────────────────────

    async def create(
        self,
        owner_id: Union[str, UUID],
        data: dict,
        images: Optional[List[ImageUpload]] = None,
        captions: Optional[List[Optional[str]]] = None,
    ) -> Property:
        fields = validate_property_fields(data)
        images = images or []
        captions = captions or []

        if len(fields.photos) + len(images) > settings.MAX_IMAGES_PER_PROPERTY:
            raise ValidationError(f"A property can have at most {settings.MAX_IMAGES_PER_PROPERTY} photos.")

        uploaded_urls = await self._upload_images(images)
        photos = list(fields.photos) + [
            Photo(url=url, caption=captions[idx] if idx < len(captions) else None)
            for idx, url in enumerate(uploaded_urls)
        ]

        prop = Property(owner_id=parse_id(owner_id))
        _apply_fields(prop, fields)
        prop.photos = _photo_rows(photos)

        self.db.add(prop)
        try:
            commit(self.db)
        except UpstreamFailure:
            await self._discard_blobs(uploaded_urls)
            raise
        self.db.refresh(prop)

        logger.info(f"Owner {prop.owner_id} created property {prop.id} with {len(photos)} photo(s)")
        return prop

    def update(self, property_id: Union[str, UUID], caller_id: Union[str, UUID], patch: dict) -> Property:
        prop = self.get_owned(property_id, caller_id, "update")

        try:
            changes = PropertyUpdate.model_validate(patch).model_dump(exclude_unset=True)
        except PydanticValidationError as exc:
            raise ValidationError(_describe_errors(exc, PropertyUpdate)) from exc

        current = PropertyFields.model_validate(prop, from_attributes=True).model_dump()
        fields = validate_property_fields({**current, **changes})

        _apply_fields(prop, fields)
        if "photos" in changes:
            prop.photos = _photo_rows(fields.photos)

        commit(self.db)
        self.db.refresh(prop)

        logger.info(f"Property {prop.id} updated by owner ({', '.join(sorted(changes)) or 'no changes'})")
        return prop

    async def delete(self, property_id: Union[str, UUID], caller_id: Union[str, UUID]) -> None:
        prop = self.get_owned(property_id, caller_id, "delete")
        photo_urls = [photo.url for photo in prop.photos]

        self.db.delete(prop)
        commit(self.db)

        logger.info(f"Property {property_id} deleted by owner")
        await self._discard_blobs(photo_urls)

    def toggle_availability(self, property_id: Union[str, UUID], caller_id: Union[str, UUID]) -> Property:
        prop = self.get_owned(property_id, caller_id, "update")
        prop.is_available = not prop.is_available
        commit(self.db)
        self.db.refresh(prop)

        logger.info(f"Property {prop.id} marked as {'available' if prop.is_available else 'unavailable'}")
        return prop

    # ── Blob store ───────────────────────────────────────────────────────────

    async def _upload_images(self, images: List[ImageUpload]) -> List[str]:
        """Upload sequentially so photo order matches file order; all or nothing."""
        if not images:
            return []
        if self.blob_store is None:
            raise UpstreamFailure("No blob store configured")

        urls = []
        try:
            for image in images:
                blob = await self.blob_store.upload(
                    image.data,
                    PROPERTY_IMAGES_FOLDER,
                    extension=image.extension,
                    content_type=image.content_type,
                )
                urls.append(blob.url)
        except Exception as exc:
            logger.error(f"Image upload failed after {len(urls)} of {len(images)} file(s): {exc}")
            await self._discard_blobs(urls)
            raise UpstreamFailure(f"Image upload failed: {exc}") from exc
        return urls

    async def _discard_blobs(self, urls: List[str]) -> None:
        if not urls or self.blob_store is None:
            return
        for url in urls:
            try:
                await self.blob_store.delete(url)
            except Exception as exc:
                logger.warning(f"Could not remove stored image {url}: {exc}")
