from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from common.notices import Notice


class Mode(str, Enum):
    PAGINATED = "paginated"
    SEARCHING = "searching"


class ViewState(BaseModel):
    """
    Mutable view state for one authenticated directory session.

    Owned by the directory view and shared by reference with the collection
    cache and the mode controller.

    Fields
    - mode: which view feeds the display (paginated page or search filter).
    - page: page number currently shown while paginated.
    - return_page: page to restore when the search term is cleared.
    - term: active search term ("" while paginated).
    - total_pages: as reported by the most recent page fetch.
    - loading: True while a UI event is awaiting the network.
    - notice: last success/error message, if any.
    - redirect_to: set to a route name (e.g. "login") when the view must be left.
    """

    mode: Mode = Mode.PAGINATED
    page: int = Field(default=1, ge=1)
    return_page: int = Field(default=1, ge=1)
    term: str = ""
    total_pages: int = Field(default=1, ge=1)
    loading: bool = False
    notice: Optional[Notice] = None
    redirect_to: Optional[str] = None
