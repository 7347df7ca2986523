"""
Tests for the HTTP layer: upload, dataset, mapping and chart routes.
"""

import uuid

import pytest
from fastapi.testclient import TestClient

from core.storage import get_session
from main import app


CSV_BYTES = (
    b"region,product,units,day\n"
    b"North,A,3,2023-01-02\n"
    b"South,B,5,2023-01-01\n"
    b"North,B,,2023-01-03\n"
    b'"East, Far",A,7,2023-01-04\n'
)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def headers():
    return {"X-Session-Id": f"test-{uuid.uuid4()}"}


@pytest.fixture
def sales(client, headers):
    resp = client.post("/api/datasets/sample/sales", headers=headers)
    assert resp.status_code == 200
    return resp.json()


class TestSessionAndHealth:
    """Tests for session handling."""

    def test_health(self, client):
        assert client.get("/health").json() == {"ok": True}

    def test_missing_session_header(self, client):
        resp = client.get("/api/summary")
        assert resp.status_code == 400

    def test_no_dataset_loaded(self, client, headers):
        resp = client.get("/api/schema", headers=headers)
        assert resp.status_code == 400


class TestUpload:
    """Tests for file upload."""

    def test_csv_upload(self, client, headers):
        resp = client.post("/upload", headers=headers, files={"file": ("data.csv", CSV_BYTES, "text/csv")})
        assert resp.status_code == 200
        body = resp.json()
        assert body["ok"] is True
        assert body["dataset"] == "data"
        assert body["rows"] == 4
        assert body["columns"] == ["region", "product", "units", "day"]

        schema = client.get("/api/schema", headers=headers).json()
        assert schema["fields"]["units"]["kind"] == "numeric"
        assert schema["fields"]["day"]["kind"] == "date"

    def test_duplicate_upload(self, client, headers):
        files = {"file": ("data.csv", CSV_BYTES, "text/csv")}
        assert client.post("/upload", headers=headers, files=files).status_code == 200
        resp = client.post("/upload", headers=headers, files=files)
        assert resp.status_code == 409
        assert resp.json()["duplicate"] is True

    def test_rejected_upload_keeps_pending_load(self, client, headers):
        """A duplicate upload arriving mid-load does not discard the earlier load."""
        files = {"file": ("data.csv", CSV_BYTES, "text/csv")}
        assert client.post("/upload", headers=headers, files=files).status_code == 200

        store = get_session(headers["X-Session-Id"])
        pending = store.begin_load()
        assert client.post("/upload", headers=headers, files=files).status_code == 409
        bad = {"file": ("notes.txt", b"hello", "text/plain")}
        assert client.post("/upload", headers=headers, files=bad).status_code == 400

        assert store.commit_load(pending, "later", [{"a": 1}])
        assert store.current == "later"

    def test_json_upload(self, client, headers):
        content = b'{"data": [{"k": "a", "v": "1"}, {"k": "b", "v": 2}]}'
        resp = client.post("/upload", headers=headers, files={"file": ("rows.json", content, "application/json")})
        assert resp.status_code == 200
        assert resp.json()["rows"] == 2

    def test_unsupported_format(self, client, headers):
        resp = client.post("/upload", headers=headers, files={"file": ("notes.txt", b"hello", "text/plain")})
        assert resp.status_code == 400

    def test_remove_incomplete_rows(self, client, headers):
        resp = client.post(
            "/upload?remove_incomplete_rows=true&null_threshold=0.25",
            headers=headers,
            files={"file": ("data.csv", CSV_BYTES, "text/csv")},
        )
        assert resp.json()["rows"] == 3

    def test_invalid_threshold(self, client, headers):
        resp = client.post(
            "/upload?null_threshold=2",
            headers=headers,
            files={"file": ("data.csv", CSV_BYTES, "text/csv")},
        )
        assert resp.status_code == 400


class TestDatasetRoutes:
    """Tests for dataset listing, switching and preview."""

    def test_sample_load(self, sales):
        assert sales["dataset"] == "sales"
        assert sales["rows"] == 100

    def test_unknown_sample_loads_sales(self, client, headers):
        resp = client.post("/api/datasets/sample/nope", headers=headers)
        assert resp.json()["dataset"] == "sales"

    def test_list_and_switch(self, client, headers, sales):
        client.post("/api/datasets/sample/stocks", headers=headers)
        listing = client.get("/api/datasets", headers=headers).json()
        assert listing["current"] == "stocks"
        assert [d["name"] for d in listing["datasets"]] == ["sales", "stocks"]

        resp = client.put("/api/datasets/current/sales", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["summary"]["total_records"] == 100

    def test_switch_unknown(self, client, headers, sales):
        resp = client.put("/api/datasets/current/missing", headers=headers)
        assert resp.status_code == 404

    def test_preview_pagination(self, client, headers, sales):
        resp = client.get("/api/datasets/sales/preview?offset=95&limit=10", headers=headers)
        body = resp.json()
        assert len(body["rows"]) == 5
        assert body["has_more"] is False
        assert body["next_offset"] is None
        assert isinstance(body["rows"][0]["date"], str)

        body = client.get("/api/datasets/sales/preview?limit=500", headers=headers).json()
        assert body["limit"] == 100
        assert len(body["rows"]) == 100
        assert body["has_more"] is False

    def test_preview_unknown(self, client, headers):
        resp = client.get("/api/datasets/missing/preview", headers=headers)
        assert resp.status_code == 404

    def test_field_values(self, client, headers, sales):
        body = client.get("/api/fields/region/values", headers=headers).json()
        assert body["values"] == sorted(body["values"])
        assert set(body["values"]) <= {"North", "South", "East", "West"}


class TestFilterRoutes:
    """Tests for filters and summary."""

    def test_apply_and_clear(self, client, headers, sales):
        resp = client.post("/api/filters", headers=headers, json={"filters": {"region": ["North"]}})
        summary = resp.json()["summary"]
        assert summary["has_filters"] is True
        assert summary["selected_records"] < summary["total_records"]

        resp = client.delete("/api/filters", headers=headers)
        summary = resp.json()["summary"]
        assert summary["selected_records"] == summary["total_records"] == 100

    def test_export(self, client, headers, sales):
        resp = client.get("/api/export.csv", headers=headers)
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        lines = resp.text.splitlines()
        assert lines[0].startswith("id,date,sales")
        assert len(lines) == 101


class TestChartRoutes:
    """Tests for mapping suggestion, validation and chart building."""

    def test_suggested_mapping(self, client, headers, sales):
        body = client.get("/api/mapping/bar", headers=headers).json()
        assert body["x"] == "category"

    def test_validate(self, client, headers, sales):
        resp = client.post("/api/mapping/pie/validate", headers=headers, json={"label": "region"})
        body = resp.json()
        assert body["is_valid"] is False
        assert body["errors"] == ["Value field is required for pie chart"]
        assert body["suggestions"]["label"] == "category"

    def test_unknown_chart_type(self, client, headers, sales):
        assert client.get("/api/mapping/radar", headers=headers).status_code == 400
        assert client.post("/api/charts/radar", headers=headers).status_code == 400

    def test_bar_chart_with_default_mapping(self, client, headers, sales):
        resp = client.post("/api/charts/bar", headers=headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["chart_type"] == "bar"
        assert sum(r["percentage"] for r in body["data"]) == pytest.approx(100.0)

    def test_scatter_chart(self, client, headers, sales):
        resp = client.post(
            "/api/charts/scatter",
            headers=headers,
            json={"mapping": {"x": "sales", "y": "profit"}},
        )
        body = resp.json()
        assert body["regression"]["n"] == 100
        assert isinstance(body["data"][0]["date"], str)

    def test_heatmap_chart(self, client, headers, sales):
        resp = client.post(
            "/api/charts/heatmap",
            headers=headers,
            json={"mapping": {"x": "region", "y": "quarter", "value": "sales"}},
        )
        assert len(resp.json()["data"]) == 16

    def test_invalid_mapping(self, client, headers, sales):
        resp = client.post(
            "/api/charts/bar",
            headers=headers,
            json={"mapping": {"x": "nope", "y": "sales"}},
        )
        assert resp.status_code == 422
        assert "Field 'nope' does not exist in dataset" in resp.json()["detail"]["errors"]
