"""Input records for certificate rendering.

Callers hand us ORM documents, API payloads or plain dicts. Everything is
normalized here once so the renderer only ever sees a CertificateRecord and a
plain template dict.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

DEFAULT_PAGE_WIDTH = 1200.0
DEFAULT_PAGE_HEIGHT = 900.0
LOCALES = ("ar", "en")

_ARABIC_INDIC_DIGITS = str.maketrans("0123456789", "٠١٢٣٤٥٦٧٨٩")
_MONTHS = {
    "ar": [
        "يناير", "فبراير", "مارس", "أبريل", "مايو", "يونيو",
        "يوليو", "أغسطس", "سبتمبر", "أكتوبر", "نوفمبر", "ديسمبر",
    ],
    "en": [
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    ],
}


class CertificateGenerationError(RuntimeError):
    """Fatal certificate rendering failure (bad input or unserializable document)."""

    def __init__(self, message: str, invalid_input: bool = False) -> None:
        super().__init__(message)
        self.invalid_input = invalid_input


class BilingualText(BaseModel):
    ar: str = ""
    en: str = ""

    @field_validator("ar", "en", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class CertificateRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    certificate_number: str = Field("", alias="certificateNumber")
    student_name: Optional[Union[str, BilingualText]] = Field(None, alias="studentName")
    course_name: Optional[Union[str, BilingualText]] = Field(None, alias="courseName")
    issued_at: Optional[datetime] = Field(None, alias="issuedAt")
    template_id: Optional[str] = Field(None, alias="templateId")

    @field_validator("certificate_number", mode="before")
    @classmethod
    def _number_as_str(cls, value: Any) -> Any:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    @field_validator("template_id", mode="before")
    @classmethod
    def _template_id_as_str(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)


def _as_plain_mapping(obj: Any) -> dict:
    if isinstance(obj, Mapping):
        return dict(obj)
    if isinstance(obj, BaseModel):
        return obj.model_dump(by_alias=True)
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return dict(to_dict())
    if hasattr(obj, "__dict__"):
        return {k: v for k, v in vars(obj).items() if not k.startswith("_")}
    raise TypeError(f"Unsupported record type: {type(obj).__name__}")


def coerce_certificate(obj: Any) -> CertificateRecord:
    if obj is None:
        raise CertificateGenerationError("Certificate data is required", invalid_input=True)
    if isinstance(obj, CertificateRecord):
        return obj
    try:
        data = _as_plain_mapping(obj)
        if "issued_at" not in data and "issuedAt" not in data and "createdAt" in data:
            data["issuedAt"] = data["createdAt"]
        return CertificateRecord.model_validate(data)
    except (TypeError, ValidationError) as exc:
        raise CertificateGenerationError(
            f"Invalid certificate data: {exc}", invalid_input=True
        ) from exc


def _dimension(value: Any, default: float) -> float:
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) and number > 0 else default


def coerce_template(obj: Any) -> dict:
    """Plain template dict; explicit None placeholder entries are kept as None."""
    if obj is None:
        raise CertificateGenerationError("Certificate template is required", invalid_input=True)
    try:
        data = _as_plain_mapping(obj)
    except TypeError as exc:
        raise CertificateGenerationError(
            f"Invalid certificate template: {exc}", invalid_input=True
        ) from exc

    placeholders = data.get("placeholders")
    if placeholders is None:
        placeholders = {}
    elif not isinstance(placeholders, Mapping):
        try:
            placeholders = _as_plain_mapping(placeholders)
        except TypeError:
            placeholders = {}

    orientation = data.get("orientation")
    background = data.get("backgroundImage", data.get("background_image"))
    return {
        "width": _dimension(data.get("width"), DEFAULT_PAGE_WIDTH),
        "height": _dimension(data.get("height"), DEFAULT_PAGE_HEIGHT),
        "orientation": orientation if orientation in ("portrait", "landscape") else None,
        "backgroundImage": background if isinstance(background, str) and background.strip() else None,
        "placeholders": dict(placeholders),
    }


def get_bilingual_text(value: Any, locale: str, default_ar: str, default_en: str) -> str:
    """Pick the locale's text, then the other locale's, then the locale's default."""
    default = default_ar if locale == "ar" else default_en
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        value = BilingualText.model_validate(value)
    if not isinstance(value, BilingualText):
        return default
    other = "en" if locale == "ar" else "ar"
    primary = getattr(value, locale, "") if locale in LOCALES else ""
    return primary or getattr(value, other, "") or default


def format_issued_date(issued_at: Optional[datetime], locale: str) -> str:
    if issued_at is None:
        return ""
    month_names = _MONTHS.get(locale, _MONTHS["en"])
    month = month_names[issued_at.month - 1]
    if locale == "ar":
        return f"{issued_at.day} {month} {issued_at.year}".translate(_ARABIC_INDIC_DIGITS)
    return f"{month} {issued_at.day}, {issued_at.year}"
