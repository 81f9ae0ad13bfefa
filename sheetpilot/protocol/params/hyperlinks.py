"""Parameter models for the ``hyperlinks`` family."""

from __future__ import annotations

import re

from pydantic import field_validator, model_validator

from sheetpilot.protocol.params.base import ActionParams, EmptyParams, RangeAddress, require_any

_SCHEME_RE = re.compile(r"^(https?|mailto|ftp|file):", re.IGNORECASE)


class _LinkParams(ActionParams):
    address: str | None = None
    document_reference: RangeAddress | None = None
    text_to_display: str | None = None
    screen_tip: str | None = None

    @field_validator("address")
    @classmethod
    def known_scheme(cls, v: str | None) -> str | None:
        if v is not None and not _SCHEME_RE.match(v):
            raise ValueError("address must be an http(s), mailto, ftp or file URL")
        return v


class AddHyperlinkParams(_LinkParams):
    @model_validator(mode="after")
    def one_destination(self) -> "AddHyperlinkParams":
        if (self.address is None) == (self.document_reference is None):
            raise ValueError("give exactly one of address or documentReference")
        return self


class EditHyperlinkParams(_LinkParams):
    @model_validator(mode="after")
    def something_to_apply(self) -> "EditHyperlinkParams":
        require_any(self, "address", "document_reference", "text_to_display", "screen_tip")
        if self.address is not None and self.document_reference is not None:
            raise ValueError("give at most one of address or documentReference")
        return self


PARAMS_MAP: dict[str, type[ActionParams]] = {
    "addHyperlink": AddHyperlinkParams,
    "removeHyperlink": EmptyParams,
    "editHyperlink": EditHyperlinkParams,
}
