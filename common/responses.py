"""Standardized JSON response helpers."""

from __future__ import annotations

from typing import Any, Mapping

from flask import Response, jsonify

from .errors import AppError


def ok(data: Any, *, status: int = 200) -> Response:
    """Return a success envelope."""

    response = jsonify({"success": True, "data": data})
    response.status_code = status
    return response


def fail(error: AppError | Mapping[str, Any], *, status: int | None = None) -> Response:
    """Return a standardized failure envelope."""

    if isinstance(error, AppError):
        response = jsonify({"success": False, "error": error.to_dict()})
        response.status_code = status or error.status_code
        return response

    response = jsonify({"success": False, "error": dict(error)})
    response.status_code = status or 400
    return response


def attachment(body: str, *, filename: str, mimetype: str) -> Response:
    """Return ``body`` as a downloadable text file."""

    response = Response(body, mimetype=mimetype)
    response.headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response


__all__ = ["ok", "fail", "attachment"]
