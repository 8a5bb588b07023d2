"""
HTTP surface tests: routing, tenant context and error rendering.
"""

import uuid

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from conftest import question, section, slot
from contract_assembly.api.v1.dependencies import get_lifecycle
from contract_assembly.core.security import get_tenant_id
from contract_assembly.main import app
from contract_assembly.services.lifecycle import ContractLifecycle


@pytest.fixture
def client(db, audit):
    app.dependency_overrides[get_lifecycle] = lambda: ContractLifecycle(db, audit=audit)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def headers(tenant_id):
    return {"X-Tenant-Id": str(tenant_id)}


@pytest.fixture
def template(builder):
    limited, limited_v1 = builder.clause("Limited liability")
    template, _ = builder.template(
        structure=[section("Liability", slots=[slot("liability", limited)])],
        questions=[question("price", "currency", required=True)],
    )
    return template, limited_v1


def create(client, headers, template_id):
    response = client.post(
        "/api/v1/contracts/", json={"template_id": str(template_id), "title": "Via HTTP"}, headers=headers
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestTenantContext:
    def test_missing_header(self, client):
        response = client.get("/api/v1/contracts/")
        assert response.status_code == 401

    def test_malformed_header(self, client):
        response = client.get("/api/v1/contracts/", headers={"X-Tenant-Id": "acme"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_header_is_parsed(self):
        tenant = uuid.uuid4()
        assert await get_tenant_id(str(tenant)) == tenant
        with pytest.raises(HTTPException):
            await get_tenant_id(None)


class TestContractRoutes:
    def test_full_flow(self, client, headers, template):
        tmpl, limited_v1 = template
        body = create(client, headers, tmpl.id)
        assert body["status"] == "draft"
        assert body["revision"] == 1

        contract_url = f"/api/v1/contracts/{body['id']}"
        response = client.patch(
            contract_url,
            json={"answers": {"price": 99.5}, "selected_slots": {"liability": str(limited_v1.id)}},
            headers=headers,
        )
        assert response.status_code == 200, response.text
        assert response.json()["answers"] == {"price": 99.5}

        response = client.post(f"{contract_url}/validate", headers=headers)
        assert response.json() == {"validation_state": "valid", "conflicts": []}

        response = client.post(f"{contract_url}/complete", headers=headers)
        assert response.status_code == 200
        assert response.json()["status"] == "completed"

        response = client.get(f"{contract_url}/export", headers=headers)
        assert response.status_code == 200
        assert response.json()["clause_version_ids"] == [str(limited_v1.id)]

        response = client.get(f"{contract_url}/version-info", headers=headers)
        assert response.json()["has_newer_version"] is False

        response = client.get("/api/v1/contracts/", params={"status": "completed"}, headers=headers)
        assert response.json()["total"] == 1

    def test_precondition_error_body(self, client, headers, template):
        tmpl, _ = template
        body = create(client, headers, tmpl.id)

        response = client.post(f"/api/v1/contracts/{body['id']}/complete", headers=headers)

        assert response.status_code == 409
        assert response.json() == {
            "code": "PRECONDITION_FAILED",
            "message": "Contract instance is incomplete",
            "details": {"unanswered_questions": ["price"], "unfilled_slots": ["liability"]},
        }

    def test_invalid_answer_is_422(self, client, headers, template):
        tmpl, _ = template
        body = create(client, headers, tmpl.id)

        response = client.patch(
            f"/api/v1/contracts/{body['id']}", json={"answers": {"price": "free"}}, headers=headers
        )

        assert response.status_code == 422
        assert response.json()["code"] == "INVALID_SELECTION"

    def test_edit_after_completion_is_409(self, client, headers, template):
        tmpl, limited_v1 = template
        body = create(client, headers, tmpl.id)
        url = f"/api/v1/contracts/{body['id']}"
        client.patch(
            url,
            json={"answers": {"price": 1}, "selected_slots": {"liability": str(limited_v1.id)}},
            headers=headers,
        )
        client.post(f"{url}/complete", headers=headers)

        response = client.patch(url, json={"answers": {"price": 2}}, headers=headers)

        assert response.status_code == 409
        assert response.json()["code"] == "IMMUTABILITY_VIOLATION"

    def test_unknown_instance_is_404(self, client, headers):
        response = client.get(f"/api/v1/contracts/{uuid.uuid4()}", headers=headers)
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    def test_upgrade_without_body_targets_current(self, client, headers, template):
        tmpl, _ = template
        body = create(client, headers, tmpl.id)

        response = client.post(f"/api/v1/contracts/{body['id']}/upgrade", headers=headers)

        assert response.status_code == 200, response.text
        report = response.json()["report"]
        assert report["from_template_version_id"] == report["to_template_version_id"]


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}
