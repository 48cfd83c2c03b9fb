"""Integration tests for the audit log endpoints."""


class TestAuditRouter:
    async def test_bootstrap_is_audited(self, client, auth_headers, create_company):
        company_id = await create_company()
        resp = await client.get(f"/companies/{company_id}/audit", headers=auth_headers("owner"))
        assert resp.status_code == 200
        records = resp.json()
        assert {r["table_name"] for r in records} == {"companies", "role_assignments", "subscriptions"}
        assert all(r["record_hash"] and r["signature"] for r in records)

    async def test_newest_first_and_filter(self, client, auth_headers, create_company, join_company):
        company_id = await create_company()
        await join_company(company_id, "fin", "finance")
        resp = await client.get(
            f"/companies/{company_id}/audit",
            params={"table_name": "role_assignments"},
            headers=auth_headers("owner"),
        )
        records = resp.json()
        assert len(records) == 2
        assert records[0]["new_data"]["principal_id"] == "fin"
        assert records[0]["sequence"] > records[1]["sequence"]

    async def test_paging_limits(self, client, auth_headers, create_company):
        company_id = await create_company()
        resp = await client.get(
            f"/companies/{company_id}/audit", params={"limit": 1},
            headers=auth_headers("owner"),
        )
        assert len(resp.json()) == 1
        resp = await client.get(
            f"/companies/{company_id}/audit", params={"limit": 500},
            headers=auth_headers("owner"),
        )
        assert resp.status_code == 200
        assert len(resp.json()) == 3
        resp = await client.get(
            f"/companies/{company_id}/audit", params={"limit": 0},
            headers=auth_headers("owner"),
        )
        assert resp.status_code == 422

    async def test_non_admin_forbidden(self, client, auth_headers, create_company, join_company):
        company_id = await create_company()
        await join_company(company_id, "fin", "finance")
        resp = await client.get(f"/companies/{company_id}/audit", headers=auth_headers("fin"))
        assert resp.status_code == 403

    async def test_verify_chain(self, client, auth_headers, create_company):
        company_id = await create_company()
        resp = await client.get(
            f"/companies/{company_id}/audit/verify", headers=auth_headers("owner"),
        )
        assert resp.status_code == 200
        assert resp.json() == {"valid": True, "records_checked": 3, "break_at": None}
