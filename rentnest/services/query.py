"""
services/query.py

Compiles a ``PropertyFilters`` value into SQLAlchemy criteria and computes
pagination. Nothing here touches a session, so the rules can be checked by
compiling the criteria to SQL.
"""

import math
from dataclasses import dataclass
from typing import List

from sqlalchemy import or_
from sqlalchemy.sql.elements import ColumnElement

from rentnest.core.config import settings
from rentnest.core.exceptions import ValidationError
from rentnest.models.property import Property
from rentnest.schemas.property import PropertyFilters

LIKE_ESCAPE = "\\"


def escape_like(value: str) -> str:
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def contains_ci(column, value: str) -> ColumnElement:
    """Case-insensitive substring match; wildcards in ``value`` are literal."""
    return column.ilike(f"%{escape_like(value)}%", escape=LIKE_ESCAPE)


def build_filter_criteria(filters: PropertyFilters) -> List[ColumnElement]:
    # Public listings only ever show available properties
    criteria = [Property.is_available.is_(True)]

    if filters.property_type is not None:
        criteria.append(Property.property_type == filters.property_type)
    if filters.division:
        criteria.append(contains_ci(Property.division, filters.division))
    if filters.district:
        criteria.append(contains_ci(Property.district, filters.district))
    if filters.area:
        criteria.append(contains_ci(Property.area, filters.area))
    if filters.min_rent is not None:
        criteria.append(Property.rent_amount >= filters.min_rent)
    if filters.max_rent is not None:
        criteria.append(Property.rent_amount <= filters.max_rent)
    if filters.bedrooms is not None:
        criteria.append(Property.bedrooms == filters.bedrooms)
    if filters.furnished is not None:
        criteria.append(Property.furnished == filters.furnished)
    if filters.search:
        criteria.append(
            or_(
                contains_ci(Property.title, filters.search),
                contains_ci(Property.description, filters.search),
            )
        )

    return criteria


@dataclass(frozen=True)
class Page:
    page: int
    limit: int

    @classmethod
    def from_params(cls, page: int = 1, limit: int = None) -> "Page":
        if limit is None:
            limit = settings.DEFAULT_PAGE_SIZE
        if page < 1:
            raise ValidationError("page must be 1 or greater")
        if limit < 1:
            raise ValidationError("limit must be 1 or greater")
        return cls(page=page, limit=min(limit, settings.MAX_PAGE_SIZE))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def total_pages(self, total: int) -> int:
        return math.ceil(total / self.limit)
