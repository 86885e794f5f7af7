"""
Tests for segment API endpoints.
"""

from uuid import uuid4

import pytest
from fastapi import status
from httpx import AsyncClient

BIG_SPENDERS = {"and": [{"field": "spend", "op": ">=", "value": 500}]}


async def _create_segment(client: AsyncClient, headers: dict, name: str = "Big spenders", rules=None) -> dict:
    response = await client.post(
        "/api/segments",
        json={"name": name, "rules_json": rules or BIG_SPENDERS},
        headers=headers,
    )
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()


class TestSegmentCreate:
    @pytest.mark.asyncio
    async def test_preview_counts_without_saving(
        self,
        async_client: AsyncClient,
        auth_headers: dict,
        make_customer,
    ) -> None:
        await make_customer(name="Rich", spend=900)
        await make_customer(name="Modest", spend=20)

        response = await async_client.post(
            "/api/segments/preview",
            json={"rules_json": BIG_SPENDERS},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"count": 1}
        listing = await async_client.get("/api/segments", headers=auth_headers)
        assert listing.json()["pagination"]["total"] == 0

    @pytest.mark.asyncio
    async def test_create_populates_members(
        self,
        async_client: AsyncClient,
        auth_headers: dict,
        make_customer,
    ) -> None:
        rich = await make_customer(name="Rich", spend=900)
        await make_customer(name="Modest", spend=20)

        segment = await _create_segment(async_client, auth_headers)

        assert segment["customer_count"] == 1
        assert segment["customer_ids"] == [str(rich.id)]
        assert segment["created_by"] == "operator@gmail.com"
        assert segment["last_populated_at"] is not None

    @pytest.mark.asyncio
    async def test_blank_name_is_rejected(self, async_client: AsyncClient, auth_headers: dict) -> None:
        response = await async_client.post(
            "/api/segments",
            json={"name": "   ", "rules_json": BIG_SPENDERS},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"]["message"] == "Segment name is required"

    @pytest.mark.asyncio
    async def test_invalid_rules_are_rejected(self, async_client: AsyncClient, auth_headers: dict) -> None:
        response = await async_client.post(
            "/api/segments/preview",
            json={"rules_json": {"and": [{"field": "height", "op": ">", "value": 2}]}},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"]["code"] == "INVALID_SEGMENT_RULES"


class TestSegmentMembership:
    @pytest.mark.asyncio
    async def test_populate_picks_up_new_customers(
        self,
        async_client: AsyncClient,
        auth_headers: dict,
        make_customer,
    ) -> None:
        segment = await _create_segment(async_client, auth_headers)
        assert segment["customer_count"] == 0
        await make_customer(name="Late Arrival", spend=700)

        response = await async_client.post(f"/api/segments/{segment['id']}/populate", headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["customer_count"] == 1

    @pytest.mark.asyncio
    async def test_customers_are_paged_by_offset(
        self,
        async_client: AsyncClient,
        auth_headers: dict,
        make_customer,
    ) -> None:
        for index in range(3):
            await make_customer(name=f"Member {index}", spend=600 + index)
        segment = await _create_segment(async_client, auth_headers)

        response = await async_client.get(
            f"/api/segments/{segment['id']}/customers",
            params={"limit": 2, "offset": 1},
            headers=auth_headers,
        )

        body = response.json()
        assert len(body["customers"]) == 2
        assert body["pagination"] == {"limit": 2, "offset": 1, "total": 3, "has_more": False}
        assert body["segment"]["name"] == "Big spenders"

    @pytest.mark.asyncio
    async def test_deleted_customer_leaves_segment(
        self,
        async_client: AsyncClient,
        auth_headers: dict,
        make_customer,
    ) -> None:
        leaving = await make_customer(name="Leaving Member", spend=800)
        await make_customer(name="Staying Member", spend=900)
        segment = await _create_segment(async_client, auth_headers)
        assert segment["customer_count"] == 2

        deleted = await async_client.delete(f"/api/customers/{leaving.id}", headers=auth_headers)
        assert deleted.status_code == status.HTTP_204_NO_CONTENT

        fetched = await async_client.get(f"/api/segments/{segment['id']}", headers=auth_headers)
        assert fetched.json()["customer_count"] == 1
        members = await async_client.get(f"/api/segments/{segment['id']}/customers", headers=auth_headers)
        body = members.json()
        assert body["pagination"]["total"] == 1
        assert [customer["name"] for customer in body["customers"]] == ["Staying Member"]

    @pytest.mark.asyncio
    async def test_download_csv(
        self,
        async_client: AsyncClient,
        auth_headers: dict,
        make_customer,
    ) -> None:
        await make_customer(name="Rich Person", email="rich@example.com", spend=1500)
        segment = await _create_segment(async_client, auth_headers, name="VIP list!")

        response = await async_client.get(
            f"/api/segments/{segment['id']}/customers/download",
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.headers["content-type"].startswith("text/csv")
        assert 'filename="VIP_list_customers_' in response.headers["content-disposition"]
        lines = response.text.strip().splitlines()
        assert lines[0] == "Name,Email,Phone,Spend,Tier,Visits,Last Active,ID"
        assert lines[1].startswith('"Rich Person","rich@example.com","","1500","Silver"')


class TestSegmentManagement:
    @pytest.mark.asyncio
    async def test_update_rules_repopulates(
        self,
        async_client: AsyncClient,
        auth_headers: dict,
        make_customer,
    ) -> None:
        await make_customer(name="Modest", spend=20)
        segment = await _create_segment(async_client, auth_headers)

        response = await async_client.put(
            f"/api/segments/{segment['id']}",
            json={"rules_json": {"and": [{"field": "spend", "op": "<", "value": 100}]}},
            headers=auth_headers,
        )

        assert response.json()["customer_count"] == 1
        assert response.json()["name"] == "Big spenders"

    @pytest.mark.asyncio
    async def test_stats(self, async_client: AsyncClient, auth_headers: dict, make_customer) -> None:
        await make_customer(name="Rich", spend=900)
        await _create_segment(async_client, auth_headers)
        await _create_segment(
            async_client,
            auth_headers,
            name="Nobody",
            rules={"and": [{"field": "visits", "op": ">", "value": 99}]},
        )

        response = await async_client.get("/api/segments/stats", headers=auth_headers)

        assert response.json() == {"total_segments": 2, "total_customers": 1, "active_segments": 1}

    @pytest.mark.asyncio
    async def test_search(self, async_client: AsyncClient, auth_headers: dict) -> None:
        await _create_segment(async_client, auth_headers, name="Big spenders")
        await _create_segment(async_client, auth_headers, name="Lapsed")

        response = await async_client.get("/api/segments", params={"search": "laps"}, headers=auth_headers)

        assert [row["name"] for row in response.json()["data"]] == ["Lapsed"]

    @pytest.mark.asyncio
    async def test_delete_detaches_campaigns(
        self,
        async_client: AsyncClient,
        auth_headers: dict,
    ) -> None:
        segment = await _create_segment(async_client, auth_headers)
        campaign = await async_client.post(
            "/api/campaigns",
            json={"segment_id": segment["id"], "subject": "Hello", "message": "Hi {name}"},
            headers=auth_headers,
        )
        campaign_id = campaign.json()["id"]

        response = await async_client.delete(f"/api/segments/{segment['id']}", headers=auth_headers)

        assert response.status_code == status.HTTP_204_NO_CONTENT
        fetched = await async_client.get(f"/api/campaigns/{campaign_id}", headers=auth_headers)
        assert fetched.json()["segment_id"] is None
        assert fetched.json()["segment_name"] == "Unknown Segment"

    @pytest.mark.asyncio
    async def test_missing_segment_is_404(self, async_client: AsyncClient, auth_headers: dict) -> None:
        response = await async_client.get(f"/api/segments/{uuid4()}", headers=auth_headers)

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"]["code"] == "SEGMENT_NOT_FOUND"
