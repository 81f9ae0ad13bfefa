"""Parameter models for the ``page_setup`` family."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import Field, model_validator

from sheetpilot.protocol.params.base import ActionParams, Points, require_any

PageIndex = Annotated[int, Field(ge=1)]


class PageSetupParams(ActionParams):
    paper_size: Literal["letter", "legal", "tabloid", "a3", "a4", "a5"] | None = None
    scale: Annotated[int, Field(ge=10, le=400)] | None = None
    fit_to_pages_wide: Annotated[int, Field(ge=0)] | None = None
    fit_to_pages_tall: Annotated[int, Field(ge=0)] | None = None
    center_horizontally: bool | None = None
    center_vertically: bool | None = None
    print_gridlines: bool | None = None
    print_headings: bool | None = None
    black_and_white: bool | None = None

    @model_validator(mode="after")
    def consistent(self) -> "PageSetupParams":
        require_any(self, *type(self).model_fields)
        fitting = self.fit_to_pages_wide is not None or self.fit_to_pages_tall is not None
        if self.scale is not None and fitting:
            raise ValueError("scale and fitToPages* are mutually exclusive")
        return self


class PageMarginsParams(ActionParams):
    """Margins in inches."""

    top: Points | None = None
    bottom: Points | None = None
    left: Points | None = None
    right: Points | None = None
    header: Points | None = None
    footer: Points | None = None

    @model_validator(mode="after")
    def something_to_apply(self) -> "PageMarginsParams":
        require_any(self, *type(self).model_fields)
        return self


class PageOrientationParams(ActionParams):
    orientation: Literal["portrait", "landscape"]


class PrintAreaParams(ActionParams):
    pass


class HeaderFooterSection(ActionParams):
    left: str | None = None
    center: str | None = None
    right: str | None = None


class HeaderFooterParams(ActionParams):
    header: HeaderFooterSection | None = None
    footer: HeaderFooterSection | None = None
    different_first_page: bool | None = None

    @model_validator(mode="after")
    def something_to_apply(self) -> "HeaderFooterParams":
        require_any(self, "header", "footer")
        return self


class PageBreaksParams(ActionParams):
    rows: list[PageIndex] = Field(default_factory=list)
    columns: list[PageIndex] = Field(default_factory=list)
    clear_existing: bool = False

    @model_validator(mode="after")
    def something_to_apply(self) -> "PageBreaksParams":
        if not (self.rows or self.columns or self.clear_existing):
            raise ValueError("give rows, columns or clearExisting")
        return self


PARAMS_MAP: dict[str, type[ActionParams]] = {
    "setPageSetup": PageSetupParams,
    "setPageMargins": PageMarginsParams,
    "setPageOrientation": PageOrientationParams,
    "setPrintArea": PrintAreaParams,
    "setHeaderFooter": HeaderFooterParams,
    "setPageBreaks": PageBreaksParams,
}
