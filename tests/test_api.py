"""Integration tests for the CSV Data Studio API.

Tests:
- Upload, update and data retrieval
- Cross-dataset validation with suggestions
- CSV and workbook export
- Session deletion and stats
"""

import pytest

from api.settings import Settings, get_settings


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def upload(client, csv_files):
    """Upload files and return the session id."""
    def _upload(strings=None, classifications=None):
        response = client.post("/api/csv/upload", files=csv_files(strings, classifications))
        assert response.status_code == 200, response.text
        return response.json()["session_id"]
    return _upload


# ============================================================================
# UPLOAD TESTS
# ============================================================================


class TestUpload:
    """Tests for POST /api/csv/upload."""

    def test_upload_both_files(self, client, csv_files, sample_csv, store):
        response = client.post(
            "/api/csv/upload",
            files=csv_files(sample_csv["valid_strings"], sample_csv["classifications"]),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["files"]["strings"]["row_count"] == 2
        assert data["files"]["classifications"]["row_count"] == 3
        assert data["files"]["strings"]["structure"]["is_valid"] is True
        assert data["files"]["classifications"]["headers"] == ["Topic", "SubTopic", "Industry", "Classification"]
        assert len(store) == 1

    def test_no_files(self, client):
        response = client.post("/api/csv/upload")

        assert response.status_code == 400
        assert "No files uploaded" in response.json()["detail"]

    def test_wrong_extension(self, client, sample_csv):
        response = client.post(
            "/api/csv/upload",
            files={"strings": ("strings.txt", sample_csv["valid_strings"].encode(), "text/plain")},
        )

        assert response.status_code == 400
        assert ".csv" in response.json()["detail"]

    def test_missing_headers(self, client, csv_files):
        response = client.post(
            "/api/csv/upload",
            files=csv_files(classifications="Topic,SubTopic\nA,B\n"),
        )

        assert response.status_code == 400
        assert "Missing: Industry, Classification" in response.json()["detail"]

    def test_file_too_large(self, client, csv_files, sample_csv):
        client.app.dependency_overrides[get_settings] = lambda: Settings(max_upload_mb=0.00001)

        response = client.post("/api/csv/upload", files=csv_files(strings=sample_csv["valid_strings"]))

        assert response.status_code == 413

    def test_upload_into_existing_session(self, client, csv_files, sample_csv, upload):
        session_id = upload(strings=sample_csv["valid_strings"])

        response = client.post(
            "/api/csv/upload",
            files=csv_files(classifications=sample_csv["classifications"]),
            data={"session_id": session_id},
        )

        assert response.status_code == 200
        assert response.json()["session_id"] == session_id
        assert client.get(f"/api/csv/data/{session_id}/classifications").status_code == 200

    def test_upload_into_unknown_session(self, client, csv_files, sample_csv):
        response = client.post(
            "/api/csv/upload",
            files=csv_files(classifications=sample_csv["classifications"]),
            data={"session_id": "missing"},
        )

        assert response.status_code == 404


# ============================================================================
# VALIDATION TESTS
# ============================================================================


class TestValidate:
    """Tests for POST /api/csv/validate."""

    def test_valid_data(self, client, sample_csv, upload):
        session_id = upload(sample_csv["valid_strings"], sample_csv["classifications"])

        response = client.post("/api/csv/validate", json={"session_id": session_id})

        assert response.status_code == 200
        data = response.json()
        assert data["is_valid"] is True
        assert data["errors"] == []
        assert data["suggestions"] == []
        assert data["stats"] == {"fact_count": 2, "reference_count": 3, "invalid_count": 0, "index_size": 3}

    def test_invalid_combination_gets_suggestions(self, client, sample_csv, upload):
        session_id = upload(sample_csv["invalid_strings"], sample_csv["classifications"])

        data = client.post("/api/csv/validate", json={"session_id": session_id}).json()

        assert data["is_valid"] is False
        assert data["errors"][0]["type"] == "invalid_combination"
        assert data["errors"][0]["row"] == 1
        suggestion = data["suggestions"][0]
        assert suggestion["row"] == 1
        assert suggestion["invalid"]["Topic"] == "Compliancee"
        assert suggestion["suggestions"][0] == {
            "combination": {"Topic": "Compliance", "Subtopic": "Audit Findings", "Industry": "General"},
            "score": 8,
        }

    def test_requires_both_files(self, client, sample_csv, upload):
        session_id = upload(strings=sample_csv["valid_strings"])

        response = client.post("/api/csv/validate", json={"session_id": session_id})

        assert response.status_code == 400
        assert "Both strings and classifications" in response.json()["detail"]

    def test_unknown_session(self, client):
        response = client.post("/api/csv/validate", json={"session_id": "missing"})

        assert response.status_code == 404

    def test_fixing_rows_makes_data_valid(self, client, sample_csv, upload):
        session_id = upload(sample_csv["invalid_strings"], sample_csv["classifications"])
        rows = client.get(f"/api/csv/data/{session_id}/strings").json()["data"]
        rows[0]["Topic"] = "Compliance"

        update = client.put(
            "/api/csv/update",
            json={"session_id": session_id, "file_type": "strings", "data": rows},
        )
        data = client.post("/api/csv/validate", json={"session_id": session_id}).json()

        assert update.status_code == 200
        assert update.json()["row_count"] == 1
        assert data["is_valid"] is True

    def test_validate_row(self, client):
        response = client.post(
            "/api/csv/validate/row",
            json={"file_type": "strings", "row_data": {"Tier": "9", "Topic": "A"}, "row_number": 2},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["is_valid"] is False
        assert [e["column"] for e in data["errors"]] == ["Industry", "Subtopic"]
        assert [w["type"] for w in data["warnings"]] == ["invalid_tier"]

    def test_validate_row_unknown_file_type(self, client):
        response = client.post("/api/csv/validate/row", json={"file_type": "other", "row_data": {}})

        assert response.status_code == 400


# ============================================================================
# DATA / UPDATE TESTS
# ============================================================================


class TestData:
    """Tests for GET /api/csv/data and PUT /api/csv/update."""

    def test_get_data(self, client, sample_csv, upload):
        session_id = upload(classifications=sample_csv["classifications"])

        data = client.get(f"/api/csv/data/{session_id}/classifications").json()

        assert data["success"] is True
        assert data["original_file_name"] == "classifications.csv"
        assert data["row_count"] == 3
        assert data["data"][2]["Topic"] == "Security"

    def test_get_missing_dataset(self, client, sample_csv, upload):
        session_id = upload(classifications=sample_csv["classifications"])

        response = client.get(f"/api/csv/data/{session_id}/strings")

        assert response.status_code == 404

    def test_get_unknown_file_type(self, client, sample_csv, upload):
        session_id = upload(classifications=sample_csv["classifications"])

        response = client.get(f"/api/csv/data/{session_id}/other")

        assert response.status_code == 400

    def test_update_sanitizes_rows(self, client, sample_csv, upload):
        session_id = upload(classifications=sample_csv["classifications"])
        rows = [{"Topic": " <b>Ops</b> ", "SubTopic": "Runbooks", "Industry": "General", "Classification": None}]

        client.put("/api/csv/update", json={"session_id": session_id, "file_type": "classifications", "data": rows})
        data = client.get(f"/api/csv/data/{session_id}/classifications").json()

        assert data["data"] == [
            {"Topic": "bOps/b", "SubTopic": "Runbooks", "Industry": "General", "Classification": ""},
        ]
        assert data["last_modified"] is not None

    def test_update_unknown_session(self, client):
        response = client.put(
            "/api/csv/update",
            json={"session_id": "missing", "file_type": "strings", "data": []},
        )

        assert response.status_code == 404


# ============================================================================
# EXPORT TESTS
# ============================================================================


class TestExport:
    """Tests for CSV and workbook downloads."""

    def test_export_csv(self, client, sample_csv, upload):
        session_id = upload(classifications=sample_csv["classifications"])

        response = client.get(f"/api/csv/export/{session_id}/classifications")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "filename=classifications_" in response.headers["content-disposition"]
        lines = response.text.splitlines()
        assert lines[0] == sample_csv["classifications_header"]
        assert lines[1] == "Compliance,Audit Findings,General,Standard"

    def test_export_workbook(self, client, sample_csv, upload):
        session_id = upload(sample_csv["valid_strings"], sample_csv["classifications"])

        response = client.get(f"/api/csv/export/{session_id}")

        assert response.status_code == 200
        assert response.headers["content-type"] == (
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
        assert response.content[:2] == b"PK"

    def test_export_unknown_session(self, client):
        assert client.get("/api/csv/export/missing/strings").status_code == 404
        assert client.get("/api/csv/export/missing").status_code == 404


# ============================================================================
# SESSION / MISC TESTS
# ============================================================================


class TestSessions:
    """Tests for session deletion, stats and config."""

    def test_delete_session(self, client, sample_csv, upload):
        session_id = upload(classifications=sample_csv["classifications"])

        first = client.delete(f"/api/csv/session/{session_id}").json()
        second = client.delete(f"/api/csv/session/{session_id}").json()

        assert first == {"success": True, "message": "Session deleted successfully"}
        assert second == {"success": False, "message": "Session not found"}

    def test_stats(self, client, sample_csv, upload):
        session_id = upload(classifications=sample_csv["classifications"])

        stats = client.get("/api/csv/sessions/stats").json()

        assert stats["total_sessions"] == 1
        assert stats["sessions"][session_id]["counts"] == {"classifications": 3}

    def test_files_config(self, client):
        config = client.get("/api/csv/config/files").json()

        assert config["strings"]["column_order"][:4] == ["Tier", "Industry", "Topic", "Subtopic"]
        assert config["classifications"]["columns"][1]["name"] == "SubTopic"

    def test_empty_row(self, client):
        assert client.get("/api/csv/empty-row/strings").json()["Tier"] == ""

    def test_health(self, client):
        data = client.get("/health").json()

        assert data["status"] == "healthy"
