import io
import json

from app import create_app


def _client(**settings):
    app = create_app("TestingConfig")
    if settings:
        app.config["PLUGIN_SETTINGS"]["calculators"] = {
            **app.config["PLUGIN_SETTINGS"].get("calculators", {}),
            **settings,
        }
    return app.test_client()


def _area_document(**overrides):
    document = {
        "title": "Rectangle Area",
        "description": "Width times height",
        "category": "Geometry",
        "inputs": [
            {"id": "w", "label": "Width", "symbol": "w", "min": 0},
            {"id": "h", "label": "Height", "symbol": "h", "min": 0},
        ],
        "outputs": [{"id": "area", "label": "Area", "symbol": "A", "formula": "w * h"}],
    }
    document.update(overrides)
    return document


def test_index_lists_seeded_examples():
    client = _client()
    response = client.get("/api/calculators/")
    assert response.status_code == 200
    payload = response.get_json()
    assert payload["success"] is True
    ids = [item["id"] for item in payload["data"]["calculators"]]
    assert "ohms-law" in ids
    assert payload["data"]["count"] == len(ids)


def test_index_filters_by_query_and_category():
    client = _client()
    by_query = client.get("/api/calculators/?q=mass").get_json()["data"]
    assert [item["id"] for item in by_query["calculators"]] == ["body-mass-index"]
    by_category = client.get("/api/calculators/?category=Electronics").get_json()["data"]
    assert {item["id"] for item in by_category["calculators"]} == {"ohms-law", "lc-resonance"}


def test_categories_endpoint():
    payload = _client().get("/api/calculators/categories").get_json()
    assert payload["data"]["categories"] == ["Electronics", "Health"]


def test_empty_store_without_seeding():
    client = _client(seed_examples=False)
    payload = client.get("/api/calculators/").get_json()
    assert payload["data"] == {"calculators": [], "count": 0}


def test_calculate_endpoint_runs_outputs_in_order():
    client = _client()
    response = client.post(
        "/api/calculators/ohms-law/calculate",
        json={"values": {"voltage": 12, "current": "2"}},
    )
    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["errors"] == {}
    assert data["results"] == {"resistance": 6, "power": 24}


def test_calculate_endpoint_rounds_results():
    client = _client()
    response = client.post(
        "/api/calculators/body-mass-index/calculate",
        json={"values": {"weight": 70, "height": 1.75}},
    )
    assert response.get_json()["data"]["results"] == {"bmi": 22.8571}


def test_calculate_endpoint_reports_input_errors():
    client = _client()
    response = client.post(
        "/api/calculators/body-mass-index/calculate",
        json={"values": {"weight": 70, "height": 9}},
    )
    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["results"] == {}
    assert data["errors"] == {"height": "Value must be at most 3"}


def test_calculate_endpoint_rejects_unknown_inputs():
    client = _client()
    response = client.post(
        "/api/calculators/ohms-law/calculate",
        json={"values": {"voltage": 1, "resistance": 4}},
    )
    assert response.status_code == 400
    error = response.get_json()["error"]
    assert error["code"] == "calculators.invalid_request"
    assert "resistance" in error["message"]


def test_calculate_endpoint_rejects_extra_payload_fields():
    client = _client()
    response = client.post("/api/calculators/ohms-law/calculate", json={"values": {}, "extra": 1})
    assert response.status_code == 400
    assert response.get_json()["error"]["details"]["errors"][0]["loc"] == ["extra"]


def test_missing_calculator_is_not_found():
    client = _client()
    response = client.get("/api/calculators/missing")
    assert response.status_code == 404
    assert response.get_json()["error"]["code"] == "calculators.not_found"


def test_create_update_delete_cycle():
    client = _client(seed_examples=False)
    created = client.post("/api/calculators/", json=_area_document())
    assert created.status_code == 201
    detail = created.get_json()["data"]
    assert detail["id"] == "rectangle-area"
    assert detail["notation"] == {"area": "A = w \\cdot h"}
    assert detail["created_at"]

    duplicate = client.post("/api/calculators/", json=_area_document())
    assert duplicate.status_code == 409
    assert duplicate.get_json()["error"]["code"] == "calculators.duplicate"

    updated = client.put("/api/calculators/rectangle-area", json=_area_document(title="Area"))
    assert updated.status_code == 200
    body = updated.get_json()["data"]
    assert body["id"] == "rectangle-area"
    assert body["title"] == "Area"
    assert body["created_at"] == detail["created_at"]

    deleted = client.delete("/api/calculators/rectangle-area")
    assert deleted.get_json()["data"] == {"deleted": "rectangle-area"}
    assert client.get("/api/calculators/rectangle-area").status_code == 404


def test_create_rejects_invalid_definition():
    client = _client(seed_examples=False)
    document = _area_document(
        outputs=[{"id": "area", "label": "Area", "symbol": "A", "formula": "w * depth"}]
    )
    response = client.post("/api/calculators/", json=document)
    assert response.status_code == 400
    error = response.get_json()["error"]
    assert error["code"] == "calculators.invalid_calculator"
    assert "Undefined variables: depth" in error["message"]


def test_create_requires_json_object():
    client = _client(seed_examples=False)
    response = client.post("/api/calculators/", data="nope", content_type="text/plain")
    assert response.status_code == 400


def test_import_from_json_payload():
    client = _client(seed_examples=False)
    response = client.post(
        "/api/calculators/import",
        json={"document": json.dumps([_area_document(), _area_document(title="Square", id="square")])},
    )
    assert response.status_code == 201
    imported = response.get_json()["data"]["imported"]
    assert [item["id"] for item in imported] == ["rectangle-area", "square"]


def test_import_from_uploaded_file():
    client = _client(seed_examples=False)
    upload = io.BytesIO(json.dumps(_area_document()).encode("utf-8"))
    response = client.post(
        "/api/calculators/import",
        data={"file": (upload, "area.json")},
        content_type="multipart/form-data",
    )
    assert response.status_code == 201
    assert client.get("/api/calculators/rectangle-area").status_code == 200


def test_import_rejects_non_json_upload():
    client = _client(seed_examples=False)
    upload = io.BytesIO(b"title,description\n")
    response = client.post(
        "/api/calculators/import",
        data={"file": (upload, "area.csv")},
        content_type="multipart/form-data",
    )
    assert response.status_code == 400
    assert response.get_json()["error"]["code"] == "calculators.invalid_request"


def test_import_failure_adds_nothing():
    client = _client(seed_examples=False)
    bad = _area_document(title="")
    response = client.post(
        "/api/calculators/import",
        json={"document": json.dumps([_area_document(), bad])},
    )
    assert response.status_code == 400
    assert response.get_json()["error"]["code"] == "calculators.import_failed"
    assert client.get("/api/calculators/").get_json()["data"]["count"] == 0


def test_export_single_calculator_formats():
    client = _client()
    response = client.get("/api/calculators/ohms-law/export")
    assert response.status_code == 200
    assert response.mimetype == "application/json"
    assert 'filename="ohms-law.json"' in response.headers["Content-Disposition"]
    assert json.loads(response.get_data(as_text=True))["outputs"][0]["formula_display"] == "R = \\frac{V}{I}"

    csv_response = client.get("/api/calculators/ohms-law/export?format=csv")
    assert csv_response.mimetype == "text/csv"
    assert csv_response.get_data(as_text=True).startswith("Type,Label,Symbol")

    markdown = client.get("/api/calculators/ohms-law/export?format=markdown")
    assert markdown.get_data(as_text=True).startswith("# Ohm's Law")

    unsupported = client.get("/api/calculators/ohms-law/export?format=xml")
    assert unsupported.status_code == 400
    assert unsupported.get_json()["error"]["code"] == "calculators.unsupported_format"


def test_export_all_returns_array():
    client = _client()
    response = client.get("/api/calculators/export")
    assert response.status_code == 200
    documents = json.loads(response.get_data(as_text=True))
    assert {item["id"] for item in documents} == {"ohms-law", "body-mass-index", "lc-resonance"}


def test_notation_endpoint_uses_prior_output_symbols():
    client = _client()
    payload = client.get("/api/calculators/lc-resonance/notation").get_json()
    notation = {item["id"]: item["notation"] for item in payload["data"]["notation"]}
    assert notation["frequency"] == "f = ω / (2 \\cdot pi)"
    assert notation["omega"] == "ω = 1 / \\sqrt{L \\cdot C}"


def test_formula_validate_endpoint():
    client = _client()
    response = client.post(
        "/api/calculators/formula/validate",
        json={"formula": "a + voltage2", "inputs": ["a"]},
    )
    data = response.get_json()["data"]
    assert data["is_valid"] is False
    assert data["errors"] == ["Undefined variables: voltage2"]


def test_formula_notation_endpoint():
    client = _client()
    response = client.post(
        "/api/calculators/formula/notation",
        json={"formula": "voltage/current", "symbols": {"voltage": "V", "current": "I"}, "output_symbol": "R"},
    )
    assert response.get_json()["data"] == {"notation": "R = \\frac{V}{I}", "ok": True, "errors": []}


def test_notation_templates_endpoint():
    payload = _client().get("/api/calculators/notation/templates").get_json()
    assert len(payload["data"]["templates"]) == 12


def test_create_rejects_overly_long_formula():
    client = _client(seed_examples=False)
    formula = "+".join(["w"] * 1000)
    document = _area_document(outputs=[{"id": "area", "label": "Area", "symbol": "A", "formula": formula}])
    response = client.post("/api/calculators/", json=document)
    assert response.status_code == 400
    error = response.get_json()["error"]
    assert error["code"] == "calculators.invalid_calculator"
    assert "nested too deeply" in error["message"]


def test_internal_key_error_is_not_reported_as_missing(monkeypatch):
    import plugins.calculators.api as calculators_api

    def _broken_metadata(calculator):
        raise KeyError("category")

    monkeypatch.setattr(calculators_api, "calculator_metadata", _broken_metadata)
    response = _client().get("/api/calculators/")
    assert response.status_code == 500
    assert response.get_json()["error"]["code"] == "calculators.internal"
