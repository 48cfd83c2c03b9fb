"""Integration tests for the authorization decision endpoint."""


class TestAuthorizeRouter:
    async def test_admin_allowed_without_masking(self, client, auth_headers, create_company):
        company_id = await create_company()
        resp = await client.post("/authorize", json={
            "company_id": company_id, "capability": "records.delete",
        }, headers=auth_headers("owner"))
        assert resp.status_code == 200
        data = resp.json()
        assert data["allowed"] is True
        assert data["code"] == "ALLOW"
        assert data["masked_fields"] == []

    async def test_readonly_reads_with_masked_financials(
        self, client, auth_headers, create_company, join_company,
    ):
        company_id = await create_company()
        await join_company(company_id, "reader", "readonly")
        resp = await client.post("/authorize", json={
            "company_id": company_id, "capability": "records.read",
        }, headers=auth_headers("reader"))
        data = resp.json()
        assert data["allowed"] is True
        assert set(data["masked_fields"]) == {"profit", "product_cost", "tax_amount"}

    async def test_readonly_cannot_write(self, client, auth_headers, create_company, join_company):
        company_id = await create_company()
        await join_company(company_id, "reader", "readonly")
        resp = await client.post("/authorize", json={
            "company_id": company_id, "capability": "records.write",
        }, headers=auth_headers("reader"))
        assert resp.status_code == 200
        data = resp.json()
        assert data["allowed"] is False
        assert data["code"] == "ROLE_FORBIDDEN"
        assert data["masked_fields"] == []

    async def test_outsider_denied(self, client, auth_headers, create_company):
        company_id = await create_company()
        resp = await client.post("/authorize", json={
            "company_id": company_id, "capability": "company.read",
        }, headers=auth_headers("stranger"))
        assert resp.json()["code"] == "NOT_MEMBER"

    async def test_last_admin_target(self, client, auth_headers, create_company):
        company_id = await create_company()
        resp = await client.post("/authorize", json={
            "company_id": company_id,
            "capability": "roles.manage",
            "target_principal_id": "owner",
            "target_role": "readonly",
        }, headers=auth_headers("owner"))
        data = resp.json()
        assert data["allowed"] is False
        assert data["code"] == "LAST_ADMIN"

    async def test_suspended_company(self, client, auth_headers, billing_headers, create_company):
        company_id = await create_company()
        await client.post(
            f"/billing/companies/{company_id}/subscription",
            json={"status": "suspended"}, headers=billing_headers,
        )
        records = await client.post("/authorize", json={
            "company_id": company_id, "capability": "records.read",
        }, headers=auth_headers("owner"))
        assert records.json()["code"] == "SUBSCRIPTION_INACTIVE"
        status = await client.post("/authorize", json={
            "company_id": company_id, "capability": "subscription.read",
        }, headers=auth_headers("owner"))
        assert status.json()["allowed"] is True

    async def test_unknown_capability(self, client, auth_headers):
        resp = await client.post("/authorize", json={
            "company_id": "c-1", "capability": "records.launder",
        }, headers=auth_headers("owner"))
        assert resp.status_code == 422
