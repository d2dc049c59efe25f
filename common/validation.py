"""Validation primitives for plugin APIs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, TypeVar

import pydantic
from pydantic import BaseModel
from werkzeug.datastructures import FileStorage


class ValidationError(ValueError):
    """Raised when validation fails."""

    def __init__(self, message: str, *, details: Any | None = None):
        super().__init__(message)
        self.details = details


class SchemaModel(BaseModel):
    """Strict base model for request/response validation."""

    model_config = pydantic.ConfigDict(extra="forbid", str_strip_whitespace=True)


TModel = TypeVar("TModel", bound=SchemaModel)


def parse_model(model: type[TModel], payload: Mapping[str, Any] | None) -> TModel:
    payload = payload or {}
    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as exc:
        details = [
            {"loc": [str(part) for part in error["loc"]], "msg": error["msg"]}
            for error in exc.errors()
        ]
        raise ValidationError("Invalid request payload", details={"errors": details}) from exc


@dataclass(slots=True)
class FileLimit:
    max_files: int
    max_size: int

    @classmethod
    def from_settings(
        cls,
        settings: Mapping[str, Any] | None,
        *,
        default_max_files: int,
        default_max_mb: float,
    ) -> "FileLimit":
        """Build a limit from ``config.yml`` settings, falling back to defaults."""

        max_files = default_max_files
        max_mb = default_max_mb

        if settings:
            try:
                max_files = int(settings.get("max_files", default_max_files))
            except (TypeError, ValueError):
                max_files = default_max_files

            try:
                max_mb = float(settings.get("max_mb", default_max_mb))
            except (TypeError, ValueError):
                max_mb = default_max_mb

        max_files = max(max_files, 1)
        max_mb = max(max_mb, 0.01)
        return cls(max_files=max_files, max_size=int(max_mb * 1024 * 1024))


def enforce_limits(files: Iterable[FileStorage], limit: FileLimit) -> None:
    files = list(files)
    if not files:
        raise ValidationError("At least one file is required")
    if len(files) > limit.max_files:
        raise ValidationError("Too many files uploaded")
    for file in files:
        file.seek(0, 2)
        size = file.tell()
        file.seek(0)
        if size > limit.max_size:
            raise ValidationError("File exceeds allowed size")


def _decode_text(sample: bytes) -> str | None:
    try:
        return sample.decode("utf-8-sig")
    except UnicodeDecodeError:
        return None


def _looks_like_json(sample: bytes) -> bool:
    text = _decode_text(sample)
    if text is None:
        return False
    return text.lstrip()[:1] in {"{", "["}


_SNIFFERS = {
    "application/json": _looks_like_json,
}


def validate_mime(files: Iterable[FileStorage], allowed: set[str]) -> None:
    for file in files:
        stream = file.stream
        try:
            current = stream.tell()
        except (AttributeError, OSError):
            current = None
        try:
            stream.seek(0)
        except (AttributeError, OSError):
            pass

        sample = stream.read(1024)
        if isinstance(sample, str):
            sample = sample.encode("utf-8", "ignore")

        try:
            stream.seek(current if current is not None else 0)
        except (AttributeError, OSError):
            pass

        if not any(_SNIFFERS[mime](sample or b"") for mime in allowed if mime in _SNIFFERS):
            raise ValidationError("Unsupported or invalid file contents")


def read_text(file: FileStorage) -> str:
    """Return the uploaded file decoded as UTF-8."""

    file.seek(0)
    data = file.read()
    text = _decode_text(data)
    if text is None:
        raise ValidationError("File must be UTF-8 encoded")
    return text


__all__ = [
    "ValidationError",
    "SchemaModel",
    "parse_model",
    "FileLimit",
    "enforce_limits",
    "validate_mime",
    "read_text",
]
