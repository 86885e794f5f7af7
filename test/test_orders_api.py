"""
Tests for order API endpoints.
"""

from uuid import uuid4

import pytest
from fastapi import status
from httpx import AsyncClient

ITEMS = [
    {"sku": "MUG-1", "name": "Mug", "qty": 2, "price": 12.5},
    {"sku": "TEE-1", "name": "T-shirt", "qty": 1, "price": 20},
]


async def _create(client: AsyncClient, headers: dict, customer_id, **overrides) -> dict:
    payload = {
        "customer_id": str(customer_id),
        "date": "2024-01-05T10:30:00Z",
        "items": ITEMS,
        **overrides,
    }
    response = await client.post("/api/orders", json=payload, headers=headers)
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()


class TestOrderCrud:
    @pytest.mark.asyncio
    async def test_create_computes_amount_and_refreshes_spend(
        self,
        async_client: AsyncClient,
        auth_headers: dict,
        make_customer,
    ) -> None:
        customer = await make_customer(name="Ada Buyer")

        order = await _create(async_client, auth_headers, customer.id, amount=1.0)

        assert order["amount"] == 45.0
        assert order["customer_name"] == "Ada Buyer"
        fetched = await async_client.get(f"/api/customers/{customer.id}", headers=auth_headers)
        assert fetched.json()["spend"] == 45.0

    @pytest.mark.asyncio
    async def test_create_reports_all_validation_errors(
        self,
        async_client: AsyncClient,
        auth_headers: dict,
    ) -> None:
        response = await async_client.post(
            "/api/orders",
            json={"items": [{"sku": "", "name": "", "qty": 0, "price": 1}]},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        detail = response.json()["detail"]
        assert detail["code"] == "ORDER_VALIDATION_ERROR"
        assert detail["details"]["errors"] == [
            "Please select a customer",
            "Order date is required",
            "Item 1: Product name is required",
            "Item 1: SKU is required",
            "Item 1: Quantity must be greater than 0",
        ]

    @pytest.mark.asyncio
    async def test_unknown_customer_is_404(self, async_client: AsyncClient, auth_headers: dict) -> None:
        response = await async_client.post(
            "/api/orders",
            json={"customer_id": str(uuid4()), "date": "2024-01-05T10:30:00Z", "items": ITEMS},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"]["code"] == "CUSTOMER_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_moving_order_refreshes_both_customers(
        self,
        async_client: AsyncClient,
        auth_headers: dict,
        make_customer,
    ) -> None:
        old_owner = await make_customer(name="Old Owner")
        new_owner = await make_customer(name="New Owner")
        order = await _create(async_client, auth_headers, old_owner.id)

        response = await async_client.put(
            f"/api/orders/{order['id']}",
            json={"customer_id": str(new_owner.id), "date": "2024-02-01T09:00:00Z", "items": ITEMS[:1]},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["amount"] == 25.0
        old = await async_client.get(f"/api/customers/{old_owner.id}", headers=auth_headers)
        new = await async_client.get(f"/api/customers/{new_owner.id}", headers=auth_headers)
        assert old.json()["spend"] == 0.0
        assert new.json()["spend"] == 25.0

    @pytest.mark.asyncio
    async def test_delete(self, async_client: AsyncClient, auth_headers: dict, make_customer) -> None:
        customer = await make_customer(name="Buyer")
        order = await _create(async_client, auth_headers, customer.id)

        response = await async_client.delete(f"/api/orders/{order['id']}", headers=auth_headers)

        assert response.status_code == status.HTTP_204_NO_CONTENT
        missing = await async_client.get(f"/api/orders/{order['id']}", headers=auth_headers)
        assert missing.status_code == status.HTTP_404_NOT_FOUND


class TestOrderItems:
    @pytest.mark.asyncio
    async def test_add_update_remove_item(
        self,
        async_client: AsyncClient,
        auth_headers: dict,
        make_customer,
    ) -> None:
        customer = await make_customer(name="Buyer")
        order = await _create(async_client, auth_headers, customer.id)
        base = f"/api/orders/{order['id']}/items"

        added = await async_client.post(
            base,
            json={"sku": "CAP-1", "name": "Cap", "qty": 1, "price": 5},
            headers=auth_headers,
        )
        assert added.json()["amount"] == 50.0

        patched = await async_client.patch(f"{base}/2", json={"qty": 3}, headers=auth_headers)
        assert patched.json()["items"][2]["qty"] == 3
        assert patched.json()["amount"] == 60.0

        removed = await async_client.delete(f"{base}/0", headers=auth_headers)
        assert [item["sku"] for item in removed.json()["items"]] == ["TEE-1", "CAP-1"]
        assert removed.json()["amount"] == 35.0

    @pytest.mark.asyncio
    async def test_item_index_out_of_range(
        self,
        async_client: AsyncClient,
        auth_headers: dict,
        make_customer,
    ) -> None:
        customer = await make_customer(name="Buyer")
        order = await _create(async_client, auth_headers, customer.id)

        response = await async_client.patch(
            f"/api/orders/{order['id']}/items/9",
            json={"qty": 2},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"]["code"] == "ORDER_ITEM_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_last_item_cannot_be_removed(
        self,
        async_client: AsyncClient,
        auth_headers: dict,
        make_customer,
    ) -> None:
        customer = await make_customer(name="Buyer")
        order = await _create(async_client, auth_headers, customer.id, items=ITEMS[:1])

        response = await async_client.delete(f"/api/orders/{order['id']}/items/0", headers=auth_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"]["message"] == "Order must have at least one item"


class TestOrderList:
    @pytest.mark.asyncio
    async def test_search_and_sort(
        self,
        async_client: AsyncClient,
        auth_headers: dict,
        make_customer,
    ) -> None:
        ada = await make_customer(name="Ada")
        bob = await make_customer(name="Bob")
        await _create(async_client, auth_headers, ada.id, items=ITEMS[:1])
        await _create(
            async_client,
            auth_headers,
            bob.id,
            date="2024-03-01T12:00:00Z",
            items=[{"sku": "LAMP-9", "name": "Desk lamp", "qty": 1, "price": 80}],
        )

        by_item = await async_client.get("/api/orders", params={"search": "lamp"}, headers=auth_headers)
        assert [row["customer_name"] for row in by_item.json()["data"]] == ["Bob"]

        by_date = await async_client.get(
            "/api/orders",
            params={"search": "Jan 5, 2024"},
            headers=auth_headers,
        )
        assert [row["customer_name"] for row in by_date.json()["data"]] == ["Ada"]

        by_amount = await async_client.get(
            "/api/orders",
            params={"sort_by": "amount", "order": "asc"},
            headers=auth_headers,
        )
        assert [row["amount"] for row in by_amount.json()["data"]] == [25.0, 80.0]

        for_customer = await async_client.get(
            "/api/orders",
            params={"customer_id": str(ada.id)},
            headers=auth_headers,
        )
        assert for_customer.json()["pagination"]["total"] == 1
