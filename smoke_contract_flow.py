#!/usr/bin/env python3
"""
Smoke test against a running API: seed a small catalog, then drive one
contract instance from draft to export over HTTP.

The catalog is written straight to DATABASE_URL (the API has no authoring
endpoints), so run this with the same environment as the server.
"""

import sys
import time
import uuid

import requests

from contract_assembly.db.base import Base
from contract_assembly.db.session import SessionLocal, engine
from contract_assembly.services import catalog

BASE_URL = "http://localhost/api/v1"


def seed_catalog(tenant_id):
    """Publish three clauses and a purchase template that uses them."""
    Base.metadata.create_all(engine)
    db = SessionLocal()
    try:
        insurance = catalog.create_clause(db, tenant_id=tenant_id, title="Insurance cover")
        limited = catalog.create_clause(db, tenant_id=tenant_id, title="Limited liability")
        unlimited = catalog.create_clause(db, tenant_id=tenant_id, title="Unlimited liability")
        versions = {
            "insurance": catalog.add_clause_version(db, insurance, content="The seller maintains insurance."),
            "limited": catalog.add_clause_version(db, limited, content="Liability is limited to the price."),
            "unlimited": catalog.add_clause_version(
                db,
                unlimited,
                content="Liability is unlimited.",
                rules=[
                    {
                        "kind": "requires",
                        "target_clause_id": insurance.id,
                        "message": "Unlimited liability needs insurance cover",
                    }
                ],
            ),
        }
        for version in versions.values():
            catalog.publish_version(db, version)

        template = catalog.create_template(db, tenant_id=tenant_id, title="Purchase agreement")
        template_version = catalog.add_template_version(
            db,
            template,
            structure=[
                {
                    "title": "Liability",
                    "slots": [
                        {
                            "id": "liability",
                            "clause_id": limited.id,
                            "alternative_clause_ids": [unlimited.id],
                        }
                    ],
                }
            ],
            questions=[{"id": "price", "type": "currency", "label": "Purchase price", "required": True}],
        )
        catalog.publish_version(db, template_version)
        db.commit()
        return template.id, {name: v.id for name, v in versions.items()}
    finally:
        db.close()


def check(response, expected_status, label):
    marker = "✓" if response.status_code == expected_status else "❌"
    print(f"{marker} {label}: HTTP {response.status_code}")
    if response.status_code != expected_status:
        print(response.text)
        sys.exit(1)
    return response.json()


def run_flow():
    tenant_id = uuid.uuid4()
    headers = {"X-Tenant-Id": str(tenant_id)}
    template_id, versions = seed_catalog(tenant_id)
    print(f"🌱 Seeded catalog for tenant {tenant_id}\n")

    start_time = time.time()
    body = check(
        requests.post(
            f"{BASE_URL}/contracts/",
            json={"template_id": str(template_id), "title": "Smoke test purchase"},
            headers=headers,
            timeout=30,
        ),
        201,
        "create",
    )
    url = f"{BASE_URL}/contracts/{body['id']}"

    body = check(
        requests.patch(
            url,
            json={"answers": {"price": 12500}, "selected_slots": {"liability": str(versions["unlimited"])}},
            headers=headers,
            timeout=30,
        ),
        200,
        "choose unlimited liability",
    )
    print(f"   validation_state: {body['validation_state']}")

    error = check(requests.post(f"{url}/complete", headers=headers, timeout=30), 422, "complete is blocked")
    for conflict in error["details"]["conflicts"]:
        print(f"   ⚠️  {conflict['message']} -> {conflict['suggestion']}")

    check(
        requests.patch(
            url,
            json={"selected_slots": {"liability": str(versions["limited"])}},
            headers=headers,
            timeout=30,
        ),
        200,
        "switch to limited liability",
    )
    check(requests.post(f"{url}/complete", headers=headers, timeout=30), 200, "complete")
    snapshot = check(requests.get(f"{url}/export", headers=headers, timeout=30), 200, "export")

    print(f"\n✅ Done in {time.time() - start_time:.2f}s")
    print(f"   Pinned clause versions: {len(snapshot['clause_version_ids'])}")


if __name__ == "__main__":
    print("=" * 80)
    print("CONTRACT LIFECYCLE SMOKE TEST")
    print("=" * 80)
    print()

    try:
        run_flow()
    except requests.exceptions.ConnectionError as e:
        print(f"❌ API not reachable at {BASE_URL}: {e}")
        sys.exit(1)
