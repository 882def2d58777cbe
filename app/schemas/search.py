"""
Filter codecs mapping page query strings to view filters and API parameters.

Each filter model parses the browser's query string, serializes itself back
into a shareable URL (omitting defaults) and builds the parameters sent to
the marketplace API.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from app.config import settings
from app.utils.query_params import (
    format_number,
    format_sort,
    join_csv,
    parse_csv,
    parse_flag,
    parse_optional_float,
    parse_optional_int,
    parse_sort,
    parse_tristate,
    with_query,
)


SEARCH_SORT_FIELDS = ("created_at", "price", "square_footage", "view_count")
DEFAULT_SORT = ("created_at", "desc")

SEARCH_SORT_OPTIONS = [
    ("created_at_desc", "Newest first"),
    ("price_asc", "Price: low to high"),
    ("price_desc", "Price: high to low"),
    ("square_footage_desc", "Largest first"),
    ("view_count_desc", "Most viewed"),
]

FILTER_LABELS = {
    "query": "Location",
    "min_price": "Min price",
    "max_price": "Max price",
    "listing_type": "Listing",
    "property_type": "Type",
    "min_bedrooms": "Beds",
    "min_bathrooms": "Baths",
    "min_sqft": "Min sqft",
    "max_sqft": "Max sqft",
    "amenities": "Amenities",
    "features": "Features",
    "furnished": "Furnished",
    "pet_friendly": "Pet friendly",
    "new_construction": "New construction",
    "virtual_tour_available": "Virtual tour",
}


class ActiveFilter(BaseModel):
    """A removable filter chip."""

    name: str
    label: str
    value: str
    remove_url: str


class SearchFilters(BaseModel):
    """Property search filters of the search results page."""

    query: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    listing_type: Optional[str] = None
    property_type: List[str] = Field(default_factory=list)
    min_bedrooms: Optional[int] = None
    min_bathrooms: Optional[float] = None
    min_sqft: Optional[int] = None
    max_sqft: Optional[int] = None
    amenities: List[str] = Field(default_factory=list)
    features: List[str] = Field(default_factory=list)
    furnished: Optional[bool] = None
    pet_friendly: Optional[bool] = None
    new_construction: Optional[bool] = None
    virtual_tour_available: Optional[bool] = None
    sort_by: str = DEFAULT_SORT[0]
    sort_order: str = DEFAULT_SORT[1]
    limit: int = Field(default_factory=lambda: settings.default_page_size)
    offset: int = 0

    @classmethod
    def from_query_params(cls, params: Mapping[str, str], page_size: Optional[int] = None) -> "SearchFilters":
        """
        Parse the search page query string.

        Args:
            params: Query parameters (e.g. `request.query_params`)
            page_size: Results per page, defaults to the configured size

        Returns:
            Parsed filters
        """
        limit = page_size or settings.default_page_size
        listing_type = params.get("listing_type")
        sort_by, sort_order = parse_sort(params.get("sort"), SEARCH_SORT_FIELDS, DEFAULT_SORT)
        page = parse_optional_int(params.get("page")) or 1

        return cls(
            query=(params.get("location") or "").strip() or None,
            min_price=parse_optional_float(params.get("min_price")) or None,
            max_price=parse_optional_float(params.get("max_price")) or None,
            listing_type=listing_type if listing_type in ("sale", "rent") else None,
            property_type=parse_csv(params.get("property_type")),
            min_bedrooms=parse_optional_int(params.get("bedrooms")) or None,
            min_bathrooms=parse_optional_float(params.get("bathrooms")) or None,
            min_sqft=parse_optional_int(params.get("min_sqft")) or None,
            max_sqft=parse_optional_int(params.get("max_sqft")) or None,
            amenities=parse_csv(params.get("amenities")),
            features=parse_csv(params.get("features")),
            furnished=parse_tristate(params.get("furnished")),
            pet_friendly=parse_flag(params.get("pet_friendly")),
            new_construction=parse_flag(params.get("new_construction")),
            virtual_tour_available=parse_flag(params.get("virtual_tour_available")),
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            offset=(max(page, 1) - 1) * limit,
        )

    @property
    def page(self) -> int:
        return self.offset // self.limit + 1 if self.limit else 1

    @property
    def sort(self) -> str:
        return format_sort(self.sort_by, self.sort_order)

    def to_query_params(self) -> Dict[str, str]:
        """
        Serialize into the page URL parameters, omitting defaults.

        Returns:
            Ordered mapping of URL parameters
        """
        params: Dict[str, str] = {}
        if self.query:
            params["location"] = self.query
        if self.min_price:
            params["min_price"] = format_number(self.min_price)
        if self.max_price:
            params["max_price"] = format_number(self.max_price)
        if self.listing_type:
            params["listing_type"] = self.listing_type
        if self.property_type:
            params["property_type"] = join_csv(self.property_type)
        if self.min_bedrooms:
            params["bedrooms"] = str(self.min_bedrooms)
        if self.min_bathrooms:
            params["bathrooms"] = format_number(self.min_bathrooms)
        if self.min_sqft:
            params["min_sqft"] = str(self.min_sqft)
        if self.max_sqft:
            params["max_sqft"] = str(self.max_sqft)
        if self.amenities:
            params["amenities"] = join_csv(self.amenities)
        if self.features:
            params["features"] = join_csv(self.features)
        if self.furnished is not None:
            params["furnished"] = "true" if self.furnished else "false"
        if self.pet_friendly:
            params["pet_friendly"] = "true"
        if self.new_construction:
            params["new_construction"] = "true"
        if self.virtual_tour_available:
            params["virtual_tour_available"] = "true"
        if (self.sort_by, self.sort_order) != DEFAULT_SORT:
            params["sort"] = self.sort
        if self.page > 1:
            params["page"] = str(self.page)
        return params

    def url(self, path: str = "/search") -> str:
        return with_query(path, self.to_query_params())

    def to_api_params(self) -> Dict[str, Any]:
        """
        Build the `GET /api/properties` parameters.

        Returns:
            Parameter mapping for the API client
        """
        params: Dict[str, Any] = {}
        if self.query:
            params["query"] = self.query
        if self.min_price:
            params["min_price"] = format_number(self.min_price)
        if self.max_price:
            params["max_price"] = format_number(self.max_price)
        if self.listing_type:
            params["listing_type"] = self.listing_type
        if self.property_type:
            params["property_type"] = join_csv(self.property_type)
        if self.min_bedrooms:
            params["bedrooms"] = self.min_bedrooms
        if self.min_bathrooms:
            params["bathrooms"] = format_number(self.min_bathrooms)
        if self.min_sqft:
            params["min_sqft"] = self.min_sqft
        if self.max_sqft:
            params["max_sqft"] = self.max_sqft
        if self.amenities:
            params["amenities"] = join_csv(self.amenities)
        if self.features:
            params["features"] = join_csv(self.features)
        for flag in ("furnished", "pet_friendly", "new_construction", "virtual_tour_available"):
            value = getattr(self, flag)
            if value is not None:
                params[flag] = "true" if value else "false"
        params["status"] = "active"
        params["sort_by"] = self.sort_by
        params["sort_order"] = self.sort_order
        params["limit"] = self.limit
        params["offset"] = self.offset
        return params

    def update(self, **changes: Any) -> "SearchFilters":
        """Change filters; any change sends the visitor back to page 1."""
        changes.setdefault("offset", 0)
        return self.model_copy(update=changes)

    def remove(self, name: str) -> "SearchFilters":
        """Reset a single filter to its default."""
        if name not in FILTER_LABELS:
            raise ValueError(f"Unknown filter: {name}")
        default = [] if isinstance(getattr(self, name), list) else None
        return self.update(**{name: default})

    def clear(self) -> "SearchFilters":
        """Reset every filter, keeping the page size."""
        return SearchFilters(limit=self.limit)

    def with_page(self, page: int) -> "SearchFilters":
        return self.model_copy(update={"offset": (max(page, 1) - 1) * self.limit})

    @property
    def has_active_filters(self) -> bool:
        return bool(self.active_filters())

    def active_filters(self, path: str = "/search") -> List[ActiveFilter]:
        """
        Describe the filters currently applied, each with a removal link.

        Args:
            path: Page path used for the removal links

        Returns:
            List of active filter chips
        """
        chips = []
        for name, label in FILTER_LABELS.items():
            value = getattr(self, name)
            if value is None or value == [] or (value == 0 and not isinstance(value, bool)):
                continue
            if isinstance(value, list):
                display = ", ".join(v.replace("_", " ") for v in value)
            elif isinstance(value, bool):
                display = "Yes" if value else "No"
            elif isinstance(value, float):
                display = format_number(value)
            else:
                display = str(value)
            chips.append(ActiveFilter(
                name=name,
                label=label,
                value=display,
                remove_url=self.remove(name).url(path),
            ))
        return chips


AGENT_LISTING_SORT_FIELDS = ("created_at", "price", "view_count", "inquiry_count", "title")

AGENT_LISTING_SORT_OPTIONS = [
    ("created_at_desc", "Newest first"),
    ("created_at_asc", "Oldest first"),
    ("price_desc", "Price: high to low"),
    ("price_asc", "Price: low to high"),
    ("view_count_desc", "Most viewed"),
    ("inquiry_count_desc", "Most inquiries"),
]


class AgentListingFilters(BaseModel):
    """Filters of the agent's own listings page."""

    status: List[str] = Field(default_factory=list)
    property_type: List[str] = Field(default_factory=list)
    listing_type: Optional[str] = None
    search_query: str = ""
    sort_by: str = DEFAULT_SORT[0]
    sort_order: str = DEFAULT_SORT[1]

    @classmethod
    def from_query_params(cls, params: Mapping[str, str]) -> "AgentListingFilters":
        sort_by, sort_order = parse_sort(params.get("sort"), AGENT_LISTING_SORT_FIELDS, DEFAULT_SORT)
        listing_type = params.get("listing_type")
        return cls(
            status=parse_csv(params.get("status")),
            property_type=parse_csv(params.get("property_type")),
            listing_type=listing_type if listing_type in ("sale", "rent") else None,
            search_query=(params.get("search") or "").strip(),
            sort_by=sort_by,
            sort_order=sort_order,
        )

    @property
    def sort(self) -> str:
        return format_sort(self.sort_by, self.sort_order)

    def to_query_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.status:
            params["status"] = join_csv(self.status)
        if self.property_type:
            params["property_type"] = join_csv(self.property_type)
        if self.listing_type:
            params["listing_type"] = self.listing_type
        if self.search_query:
            params["search"] = self.search_query
        if (self.sort_by, self.sort_order) != DEFAULT_SORT:
            params["sort"] = self.sort
        return params

    def url(self, path: str = "/agent/listings") -> str:
        return with_query(path, self.to_query_params())

    def to_api_params(self, agent_id: str, limit: Optional[int] = None) -> List[Tuple[str, Any]]:
        """
        Build the `GET /api/properties` parameters for the agent's listings.

        Status and property type go out as repeated parameters.

        Args:
            agent_id: Owning agent
            limit: Page size, defaults to the configured agent listings size

        Returns:
            Parameter pairs for the API client
        """
        params: List[Tuple[str, Any]] = [("agent_id", agent_id)]
        params.extend(("status", s) for s in self.status)
        params.extend(("property_type", t) for t in self.property_type)
        if self.listing_type:
            params.append(("listing_type", self.listing_type))
        if self.search_query:
            params.append(("query", self.search_query))
        params.append(("sort_by", self.sort_by))
        params.append(("sort_order", self.sort_order))
        params.append(("limit", limit or settings.agent_listings_page_size))
        params.append(("offset", 0))
        return params

    def toggle_status(self, status: str) -> "AgentListingFilters":
        statuses = [s for s in self.status if s != status]
        if status not in self.status:
            statuses.append(status)
        return self.model_copy(update={"status": statuses})

    def toggle_property_type(self, property_type: str) -> "AgentListingFilters":
        types = [t for t in self.property_type if t != property_type]
        if property_type not in self.property_type:
            types.append(property_type)
        return self.model_copy(update={"property_type": types})

    @property
    def has_active_filters(self) -> bool:
        return bool(self.status or self.property_type or self.listing_type or self.search_query)


DEFAULT_REPORT_STATUSES = ["pending"]


class ReportFilters(BaseModel):
    """Filters of the admin reported listings page."""

    status: List[str] = Field(default_factory=lambda: list(DEFAULT_REPORT_STATUSES))
    reason: Optional[str] = None

    @classmethod
    def from_query_params(cls, params: Mapping[str, str]) -> "ReportFilters":
        statuses = [s for s in parse_csv(params.get("status")) if s in ("pending", "resolved", "dismissed")]
        return cls(
            status=statuses or list(DEFAULT_REPORT_STATUSES),
            reason=(params.get("reason") or "").strip() or None,
        )

    def to_query_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.status and self.status != DEFAULT_REPORT_STATUSES:
            params["status"] = join_csv(self.status)
        if self.reason:
            params["reason"] = self.reason
        return params

    def url(self, path: str = "/admin/reports") -> str:
        return with_query(path, self.to_query_params())

    def to_api_params(self, limit: Optional[int] = None, offset: int = 0) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "status": join_csv(self.status),
            "limit": limit or settings.admin_page_size,
            "offset": offset,
            "sort_by": "created_at",
            "sort_order": "desc",
        }
        if self.reason:
            params["reason"] = self.reason
        return params


INQUIRY_TABS = {
    "all": [],
    "new": ["new"],
    "responded": ["responded"],
    "scheduled": ["scheduled"],
    "closed": ["completed", "closed"],
}


class InquiryFilters(BaseModel):
    """Filters of the agent inquiries inbox."""

    status: List[str] = Field(default_factory=list)
    property_id: Optional[str] = None

    @classmethod
    def from_query_params(cls, params: Mapping[str, str]) -> "InquiryFilters":
        tab = params.get("tab")
        if tab in INQUIRY_TABS:
            status = list(INQUIRY_TABS[tab])
        else:
            status = parse_csv(params.get("status"))
        return cls(status=status, property_id=(params.get("property_id") or None))

    @property
    def active_tab(self) -> Optional[str]:
        for tab, statuses in INQUIRY_TABS.items():
            if sorted(statuses) == sorted(self.status):
                return tab
        return None

    def to_query_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.status:
            params["status"] = join_csv(self.status)
        if self.property_id:
            params["property_id"] = self.property_id
        return params

    def url(self, path: str = "/agent/inquiries") -> str:
        return with_query(path, self.to_query_params())

    def to_api_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if self.status:
            params["status"] = join_csv(self.status)
        if self.property_id:
            params["property_id"] = self.property_id
        return params


APPROVAL_STATUSES = ("pending", "approved", "rejected")


class AgentApprovalFilters(BaseModel):
    """Filter of the admin agent approval queue."""

    status: str = "pending"

    @classmethod
    def from_query_params(cls, params: Mapping[str, str]) -> "AgentApprovalFilters":
        status = params.get("status")
        return cls(status=status if status in APPROVAL_STATUSES else "pending")

    def to_api_params(self, limit: int = 100) -> Dict[str, Any]:
        return {"approval_status": self.status, "limit": limit, "offset": 0}
