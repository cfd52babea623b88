"""Search and paging parameters for find and relationship-listing requests."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .instances import InstanceStatus, PrimitiveValue


class MatchCriteria(str, Enum):
    """How match properties combine."""
    ALL = "ALL"
    ANY = "ANY"


class SequencingOrder(str, Enum):
    """Result ordering."""
    ANY = "ANY"
    GUID = "GUID"
    CREATION_DATE_RECENT = "CREATION_DATE_RECENT"
    CREATION_DATE_OLDEST = "CREATION_DATE_OLDEST"
    LAST_UPDATE_RECENT = "LAST_UPDATE_RECENT"
    LAST_UPDATE_OLDEST = "LAST_UPDATE_OLDEST"
    PROPERTY_ASCENDING = "PROPERTY_ASCENDING"
    PROPERTY_DESCENDING = "PROPERTY_DESCENDING"


class PagingOptions(BaseModel):
    """Paging, ordering and history parameters shared by list requests."""
    from_element: int = Field(0, ge=0, description="Index of the first result to return")
    page_size: int = Field(0, ge=0, description="Maximum results; 0 means no limit")
    status_filter: Optional[List[InstanceStatus]] = Field(
        None, description="Statuses to include; only ACTIVE is supported"
    )
    as_of_time: Optional[datetime] = Field(None, description="Historical queries are not supported")
    sequencing_property: Optional[str] = None
    sequencing_order: Optional[SequencingOrder] = None


class EntitySearchRequest(PagingOptions):
    """Criteria for finding entities.

    Either ``match_properties`` (typed values per generic property) or
    ``search_criteria`` (a regular expression matched against every string
    value) narrows the results. Without an ``entity_type_guid`` every mapped
    type is searched.
    """
    entity_type_guid: Optional[str] = None
    match_properties: Dict[str, PrimitiveValue] = Field(default_factory=dict)
    match_criteria: MatchCriteria = MatchCriteria.ALL
    search_criteria: Optional[str] = None
    classifications: List[str] = Field(default_factory=list)
