from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from rm_sync.connectors.rm_connector import RMNetworkError
from rm_sync.models import RMProjectMapping, RMSyncedEntry
from rm_sync.schemas.mapping import MappingCreate
from rm_sync.schemas.rm import RMProject
from rm_sync.services.exceptions import MappingConflictError
from rm_sync.services.mapping import create_mappings

HEADERS = {"X-User-Id": "user-1"}

RM_PROJECTS = [
    RMProject(id=2001, name="Website Redesign", code="WEB"),
    RMProject(id=2002, name="Mobile App Build"),
    RMProject(id=2003, name="Internal"),
]


@pytest.fixture
def rm_projects():
    fetch = AsyncMock(return_value=list(RM_PROJECTS))
    with patch("rm_sync.api.v1.endpoints.mappings.fetch_rm_projects", fetch):
        yield fetch


def new_mapping(project_id="P2", rm_project_id=1002, name="Project Two"):
    return {"project_id": project_id, "rm_project_id": rm_project_id, "rm_project_name": name}


class TestMappingEndpoints:
    def test_create_and_list(self, client: TestClient, connection):
        response = client.post("/api/v1/mappings/", json=new_mapping(), headers=HEADERS)

        assert response.status_code == 201
        created = response.json()
        assert created["project_id"] == "P2"
        assert created["is_active"] is True

        listed = client.get("/api/v1/mappings/", headers=HEADERS).json()
        assert [m["id"] for m in listed] == [created["id"]]

    def test_already_mapped_project_is_conflict(self, client: TestClient, mapping):
        response = client.post("/api/v1/mappings/", json=new_mapping(project_id="P1"), headers=HEADERS)
        assert response.status_code == 409
        assert response.json()["detail"] == "This project is already mapped to an RM project"

        response = client.post("/api/v1/mappings/", json=new_mapping(rm_project_id=1001), headers=HEADERS)
        assert response.status_code == 409
        assert response.json()["detail"] == "This RM project is already mapped to another project"

    def test_invalid_rm_project_id_is_rejected(self, client: TestClient, connection):
        response = client.post("/api/v1/mappings/", json=new_mapping(rm_project_id=0), headers=HEADERS)
        assert response.status_code == 422

    def test_bulk_create(self, client: TestClient, db, connection):
        body = [new_mapping("P2", 1002), new_mapping("P3", 1003, "Project Three")]

        response = client.post("/api/v1/mappings/bulk", json=body, headers=HEADERS)

        assert response.status_code == 201
        data = response.json()
        assert data["created"] == 2
        assert [m["project_id"] for m in data["mappings"]] == ["P2", "P3"]
        assert db.query(RMProjectMapping).count() == 2

    def test_bulk_is_all_or_nothing(self, client: TestClient, db, mapping):
        body = [new_mapping("P2", 1002), new_mapping("P1", 1003, "Project Three")]

        response = client.post("/api/v1/mappings/bulk", json=body, headers=HEADERS)

        assert response.status_code == 409
        assert response.json()["detail"] == "1 project(s) already mapped"
        assert db.query(RMProjectMapping).count() == 1

    def test_bulk_requires_mappings(self, client: TestClient, connection):
        response = client.post("/api/v1/mappings/bulk", json=[], headers=HEADERS)
        assert response.status_code == 400

    def test_delete_removes_synced_records(self, client: TestClient, db, mapping):
        db.add(RMSyncedEntry(
            mapping_id=mapping.id, remote_entry_id=9001, aggregation_date=date(2026, 10, 12),
            last_synced_hash="0" * 64, sync_version=1, last_synced_at=datetime.now(timezone.utc),
        ))
        db.commit()

        response = client.delete(f"/api/v1/mappings/{mapping.id}", headers=HEADERS)

        assert response.status_code == 204
        assert db.query(RMProjectMapping).count() == 0
        assert db.query(RMSyncedEntry).count() == 0

    def test_delete_unknown_mapping_is_not_found(self, client: TestClient, mapping):
        response = client.delete(f"/api/v1/mappings/{mapping.id + 1}", headers=HEADERS)
        assert response.status_code == 404

    def test_other_users_mappings_are_invisible(self, client: TestClient, mapping):
        other = {"X-User-Id": "user-2"}
        assert client.get("/api/v1/mappings/", headers=other).status_code == 404
        assert client.delete(f"/api/v1/mappings/{mapping.id}", headers=other).status_code == 404


class TestSuggestionEndpoint:
    def test_suggests_unmapped_projects(self, client: TestClient, connection, rm_projects):
        body = {"projects": [
            {"id": "L1", "name": "website redesign"},
            {"id": "L2", "name": "App Build"},
            {"id": "L3", "name": "Zzyzx"},
        ]}

        response = client.post("/api/v1/mappings/suggestions", json=body, headers=HEADERS)

        assert response.status_code == 200
        data = {s["local_project_id"]: s for s in response.json()}
        assert set(data) == {"L1", "L2"}
        assert (data["L1"]["rm_project_id"], data["L1"]["score"], data["L1"]["reason"]) == (2001, 1.0, "exact")
        assert (data["L2"]["rm_project_id"], data["L2"]["reason"]) == (2002, "word_match")

    def test_auto_map_only_keeps_confident_matches(self, client: TestClient, connection, rm_projects):
        body = {"projects": [{"id": "L1", "name": "web"}, {"id": "L2", "name": "App Build"}], "auto_map_only": True}

        response = client.post("/api/v1/mappings/suggestions", json=body, headers=HEADERS)

        assert [(s["local_project_id"], s["reason"]) for s in response.json()] == [("L1", "code_match")]

    def test_mapped_projects_are_left_out(self, client: TestClient, db, connection, rm_projects):
        db.add(RMProjectMapping(connection_id=connection.id, project_id="L9", rm_project_id=2001, rm_project_name="Website Redesign"))
        db.commit()
        body = {"projects": [{"id": "L9", "name": "Whatever"}, {"id": "L1", "name": "Website Redesign"}]}

        response = client.post("/api/v1/mappings/suggestions", json=body, headers=HEADERS)

        assert response.json() == []

    def test_nothing_to_suggest_skips_rm(self, client: TestClient, mapping, rm_projects):
        body = {"projects": [{"id": "P1", "name": "Project One"}]}

        response = client.post("/api/v1/mappings/suggestions", json=body, headers=HEADERS)

        assert response.json() == []
        rm_projects.assert_not_awaited()

    def test_rm_failure_is_bad_gateway(self, client: TestClient, connection, rm_projects):
        rm_projects.side_effect = RMNetworkError("RM request error")
        body = {"projects": [{"id": "L1", "name": "Website"}]}

        response = client.post("/api/v1/mappings/suggestions", json=body, headers=HEADERS)

        assert response.status_code == 502


class TestCreateMappings:
    def test_repeated_project_in_request_is_conflict(self, db, connection):
        with pytest.raises(MappingConflictError, match="more than once"):
            create_mappings(db, connection.id, [
                MappingCreate(project_id="P2", rm_project_id=1002, rm_project_name="Two"),
                MappingCreate(project_id="P2", rm_project_id=1003, rm_project_name="Three"),
            ])

        assert db.query(RMProjectMapping).count() == 0

    def test_empty_code_is_stored_as_null(self, db, connection):
        [m] = create_mappings(db, connection.id, [
            MappingCreate(project_id="P2", rm_project_id=1002, rm_project_name="Two", rm_project_code=""),
        ])
        assert m.rm_project_code is None
