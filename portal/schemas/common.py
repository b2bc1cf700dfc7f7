"""Reusable field types and request base classes."""

from __future__ import annotations

from typing import Annotated, Any, ClassVar

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    StringConstraints,
    model_validator,
)

from portal.core.passwords import MAX_PASSWORD_BYTES, password_fits


def _blank_to_none(value: Any) -> Any:
    """Treat whitespace-only optional text as absent."""
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _reject_nul(value: str) -> str:
    """Passwords may not carry NUL bytes; bcrypt would silently truncate at them."""
    if "\x00" in value:
        raise ValueError("must not contain NUL characters")
    return value


def _fit_bcrypt_window(value: str) -> str:
    if not password_fits(value):
        raise ValueError(f"must be at most {MAX_PASSWORD_BYTES} bytes in UTF-8")
    return value


def _require_at_sign(value: str) -> str:
    """Minimal structural email check; delivery is never attempted."""
    local, _, domain = value.partition("@")
    if not local or not domain:
        raise ValueError("must be a valid email address")
    return value


NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=300)]
ShortName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
OptionalText = Annotated[str | None, BeforeValidator(_blank_to_none)]
OptionalShortName = Annotated[
    Annotated[str, StringConstraints(max_length=100)] | None,
    BeforeValidator(_blank_to_none),
]
UrlStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=2048)]
HexColor = Annotated[str, StringConstraints(pattern=r"^#[0-9A-Fa-f]{6}$")]
EmailStr = Annotated[
    str,
    StringConstraints(strip_whitespace=True, to_lower=True, min_length=3, max_length=320),
    AfterValidator(_require_at_sign),
]
PasswordStr = Annotated[
    str,
    StringConstraints(min_length=8, max_length=MAX_PASSWORD_BYTES),
    AfterValidator(_reject_nul),
    AfterValidator(_fit_bcrypt_window),
]


class PartialUpdate(BaseModel):
    """Update payload where omitted fields stay untouched and required columns reject null."""

    model_config = ConfigDict(extra="forbid")

    non_nullable_fields: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="after")
    def reject_null_for_required_columns(self) -> PartialUpdate:
        """Refuse explicit nulls for columns that cannot be empty."""
        for name in sorted(self.model_fields_set & self.non_nullable_fields):
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict[str, Any]:
        """Only the fields the client actually sent."""
        return self.model_dump(exclude_unset=True)
