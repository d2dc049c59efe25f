"""API routes for the Formula Calculators plugin."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

from flask import Blueprint, Response, current_app, request

from common.data_store import resolve_data_path
from common.errors import (
    AppError,
    ConflictAppError,
    NotFoundAppError,
    ValidationAppError,
    ensure_app_error,
)
from common.logging import get_logger
from common.responses import attachment, fail, ok
from common.validation import (
    FileLimit,
    SchemaModel,
    ValidationError,
    enforce_limits,
    parse_model,
    read_text,
    validate_mime,
)

from ..core import (
    CalculatorImportError,
    CalculatorNotFoundError,
    CalculatorStore,
    DuplicateCalculatorError,
    UnsupportedFormatError,
    calculator_from_data,
    calculator_metadata,
    convert_to_format,
    generate_documentation,
    notation_templates,
    output_notation,
    run_pass,
    to_display_notation,
    to_document,
    validate_formula,
)
from ..core.session import coerce_input_value

logger = get_logger("formulaforge.calculators")

_EXAMPLES_PATH = Path(__file__).resolve().parent.parent / "data" / "examples.json"
_EXPORT_MIMETYPES = {
    "json": "application/json",
    "yaml": "application/x-yaml",
    "csv": "text/csv",
    "markdown": "text/markdown",
}


class CalculatePayload(SchemaModel):
    values: dict[str, float | int | str | None] = {}


class FormulaValidatePayload(SchemaModel):
    formula: str
    inputs: list[str] = []
    known_ids: list[str] = []


class NotationPayload(SchemaModel):
    formula: str
    symbols: dict[str, str] = {}
    output_symbol: str = "y"


class ImportPayload(SchemaModel):
    document: str


api_bp = Blueprint("calculators", __name__, url_prefix="/api/calculators")


def _settings() -> dict[str, Any]:
    return current_app.config.get("PLUGIN_SETTINGS", {}).get("calculators", {}) or {}


def _repo_root() -> Path:
    return Path(current_app.root_path).resolve().parent


def _store() -> CalculatorStore:
    store = current_app.extensions.get("calculator_store")
    if store is not None:
        return store
    settings = _settings()
    path = resolve_data_path(
        current_app.config,
        settings,
        base_dir=_repo_root(),
        default="calculators.json",
    )
    store = CalculatorStore(path)
    store.load()
    if not store.list() and settings.get("seed_examples", False) and _EXAMPLES_PATH.exists():
        store.import_documents(_EXAMPLES_PATH.read_text(encoding="utf-8"))
        logger.info("Seeded calculator store with bundled examples")
    current_app.extensions["calculator_store"] = store
    return store


def _handle(callable_: Callable[[], Any]) -> Response:
    try:
        result = callable_()
        if isinstance(result, Response):
            return result
        if isinstance(result, tuple):
            payload, status = result
            return ok(payload, status=status)
        return ok(result)
    except AppError as exc:
        return fail(exc)
    except ValidationError as exc:
        return fail(
            ValidationAppError(
                message=str(exc),
                code="calculators.invalid_request",
                details=getattr(exc, "details", None),
            )
        )
    except CalculatorImportError as exc:
        return fail(ValidationAppError(message=str(exc), code="calculators.invalid_calculator"))
    except DuplicateCalculatorError as exc:
        return fail(ConflictAppError(message=str(exc), code="calculators.duplicate"))
    except CalculatorNotFoundError as exc:
        return fail(NotFoundAppError(message=str(exc), code="calculators.not_found"))
    except Exception as exc:
        logger.exception("Unexpected calculators error")
        error = ensure_app_error(exc, fallback_code="calculators.internal")
        return fail(error, status=error.status_code)


def _json_body() -> dict[str, Any]:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationAppError(message="Request body must be a JSON object", code="calculators.invalid_request")
    return payload


def _detail(calculator) -> dict[str, Any]:
    document = to_document(calculator)
    document["notation"] = {output.id: output_notation(calculator, output) for output in calculator.outputs}
    return document


@api_bp.get("/")
def index() -> Response:
    def _list() -> dict[str, Any]:
        store = _store()
        query = request.args.get("q", "")
        category = request.args.get("category")
        calculators = store.search(query)
        if category:
            calculators = [item for item in calculators if item.category == category]
        return {
            "calculators": [calculator_metadata(item) for item in calculators],
            "count": len(calculators),
        }

    return _handle(_list)


@api_bp.get("/categories")
def categories() -> Response:
    return _handle(lambda: {"categories": _store().categories()})


@api_bp.post("/")
def create() -> Response:
    def _create():
        calculator = calculator_from_data(_json_body())
        stored = _store().add(calculator)
        return _detail(stored), 201

    return _handle(_create)


@api_bp.get("/<calculator_id>")
def detail(calculator_id: str) -> Response:
    return _handle(lambda: _detail(_store().get(calculator_id)))


@api_bp.put("/<calculator_id>")
def update(calculator_id: str) -> Response:
    def _update():
        payload = dict(_json_body())
        payload["id"] = calculator_id
        calculator = calculator_from_data(payload)
        return _detail(_store().update(calculator))

    return _handle(_update)


@api_bp.delete("/<calculator_id>")
def delete(calculator_id: str) -> Response:
    def _delete():
        _store().delete(calculator_id)
        return {"deleted": calculator_id}

    return _handle(_delete)


def _uploaded_document() -> str:
    files = request.files.getlist("file")
    if files:
        upload = _settings().get("upload")
        limit = FileLimit.from_settings(upload, default_max_files=1, default_max_mb=1)
        enforce_limits(files, limit)
        validate_mime(files, {"application/json"})
        return read_text(files[0])
    payload = parse_model(ImportPayload, request.get_json(silent=True) or {})
    return payload.document


@api_bp.post("/import")
def import_documents() -> Response:
    def _import():
        text = _uploaded_document()
        try:
            imported = _store().import_documents(text)
        except CalculatorImportError as exc:
            raise ValidationAppError(message=str(exc), code="calculators.import_failed") from exc
        return {"imported": [calculator_metadata(item) for item in imported]}, 201

    return _handle(_import)


@api_bp.get("/export")
def export_all() -> Response:
    return _handle(
        lambda: attachment(_store().export_all(), filename="calculators.json", mimetype="application/json")
    )


@api_bp.get("/<calculator_id>/export")
def export_one(calculator_id: str) -> Response:
    def _export():
        calculator = _store().get(calculator_id)
        fmt = request.args.get("format", "json").lower()
        if fmt == "markdown":
            body = generate_documentation(calculator)
            extension = "md"
        else:
            try:
                body = convert_to_format(calculator, fmt)
            except UnsupportedFormatError as exc:
                raise ValidationAppError(message=str(exc), code="calculators.unsupported_format") from exc
            extension = fmt
        return attachment(
            body,
            filename=f"{calculator.id}.{extension}",
            mimetype=_EXPORT_MIMETYPES[fmt],
        )

    return _handle(_export)


@api_bp.post("/<calculator_id>/calculate")
def calculate(calculator_id: str) -> Response:
    def _calculate():
        calculator = _store().get(calculator_id)
        payload = parse_model(CalculatePayload, request.get_json(silent=True) or {})
        unknown = sorted(set(payload.values) - set(calculator.input_ids))
        if unknown:
            raise ValidationAppError(
                message=f"Unknown inputs: {', '.join(unknown)}",
                code="calculators.invalid_request",
            )
        values = {
            item.id: coerce_input_value(item, payload.values.get(item.id)) for item in calculator.inputs
        }
        return run_pass(calculator, values).to_dict()

    return _handle(_calculate)


@api_bp.get("/<calculator_id>/notation")
def notation(calculator_id: str) -> Response:
    def _notation():
        calculator = _store().get(calculator_id)
        return {
            "notation": [
                {"id": output.id, "label": output.label, "notation": output_notation(calculator, output)}
                for output in calculator.outputs
            ]
        }

    return _handle(_notation)


@api_bp.post("/formula/validate")
def formula_validate() -> Response:
    def _validate():
        payload = parse_model(FormulaValidatePayload, request.get_json(silent=True) or {})
        result = validate_formula(payload.formula, payload.inputs, known_ids=payload.known_ids)
        return {"is_valid": result.is_valid, "errors": list(result.errors), "warnings": list(result.warnings)}

    return _handle(_validate)


@api_bp.post("/formula/notation")
def formula_notation() -> Response:
    def _convert():
        payload = parse_model(NotationPayload, request.get_json(silent=True) or {})
        result = to_display_notation(payload.formula, payload.symbols, payload.output_symbol)
        return {"notation": result.notation, "ok": result.ok, "errors": list(result.errors)}

    return _handle(_convert)


@api_bp.get("/notation/templates")
def templates() -> Response:
    return _handle(lambda: {"templates": notation_templates()})


blueprints = [api_bp]


__all__ = [
    "blueprints",
    "calculate",
    "categories",
    "create",
    "delete",
    "detail",
    "export_all",
    "export_one",
    "formula_notation",
    "formula_validate",
    "import_documents",
    "index",
    "notation",
    "templates",
    "update",
]
