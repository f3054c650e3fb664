"""
Tests for Customers API
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.models.customer import Customer
from app.models.order import Order


class TestCustomerList:
    """Tests for listing customers."""

    @pytest.mark.asyncio
    async def test_requires_authentication(self, client: AsyncClient):
        response = await client.get("/api/customers")

        assert response.status_code == 401
        assert response.headers["content-type"].startswith("application/problem+json")
        assert response.json()["code"] == "AUTH_001"

    @pytest.mark.asyncio
    async def test_pagination(self, authenticated_client: AsyncClient, make_customers):
        await make_customers(*[{} for _ in range(5)])

        response = await authenticated_client.get("/api/customers", params={"page": 2, "limit": 2})

        assert response.status_code == 200
        data = response.json()
        assert data["current_page"] == 2
        assert data["total_pages"] == 3
        assert data["total_customers"] == 5
        assert len(data["customers"]) == 2

    @pytest.mark.asyncio
    async def test_search_and_sort(self, authenticated_client: AsyncClient, make_customers):
        await make_customers(
            {"name": "Grace Hopper", "total_spend": 10.0},
            {"name": "Grace Kelly", "total_spend": 99.0},
            {"name": "Alan Turing", "total_spend": 50.0},
        )

        response = await authenticated_client.get(
            "/api/customers", params={"search": "grace", "sort": "-total_spend"}
        )

        assert response.status_code == 200
        names = [customer["name"] for customer in response.json()["customers"]]
        assert names == ["Grace Kelly", "Grace Hopper"]

    @pytest.mark.asyncio
    async def test_invalid_sort_rejected(self, authenticated_client: AsyncClient):
        response = await authenticated_client.get("/api/customers", params={"sort": "password"})
        assert response.status_code == 400


class TestCustomerCrud:
    """Tests for single customer endpoints."""

    @pytest.mark.asyncio
    async def test_create_customer(self, authenticated_client: AsyncClient):
        response = await authenticated_client.post(
            "/api/customers",
            json={"name": "Ada Lovelace", "email": "ada@example.com", "tags": ["vip"]},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "ada@example.com"
        assert data["total_spend"] == 0
        assert data["tags"] == ["vip"]

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self, authenticated_client: AsyncClient, make_customers):
        await make_customers({"email": "taken@example.com"})

        response = await authenticated_client.post(
            "/api/customers", json={"name": "Someone", "email": "taken@example.com"}
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_invalid_email_rejected(self, authenticated_client: AsyncClient):
        response = await authenticated_client.post(
            "/api/customers", json={"name": "Someone", "email": "not-an-email"}
        )

        assert response.status_code == 422
        assert response.json()["code"] == "VAL_001"

    @pytest.mark.asyncio
    async def test_get_update_delete(self, authenticated_client: AsyncClient, make_customers):
        (customer,) = await make_customers({"name": "Before"})

        response = await authenticated_client.get(f"/api/customers/{customer.id}")
        assert response.status_code == 200
        assert response.json()["name"] == "Before"

        response = await authenticated_client.put(f"/api/customers/{customer.id}", json={"name": "After"})
        assert response.status_code == 200
        assert response.json()["name"] == "After"

        response = await authenticated_client.delete(f"/api/customers/{customer.id}")
        assert response.status_code == 204

        response = await authenticated_client.get(f"/api/customers/{customer.id}")
        assert response.status_code == 404


class TestBulkImport:
    """Tests for bulk customer import."""

    @pytest.mark.asyncio
    async def test_bulk_import(self, authenticated_client: AsyncClient, test_db):
        payload = [
            {"name": "One", "email": "one@example.com"},
            {"name": "Two", "email": "two@example.com", "visits": 3},
        ]

        response = await authenticated_client.post("/api/customers/bulk", json=payload)

        assert response.status_code == 202
        assert len(response.json()["customer_ids"]) == 2
        result = await test_db.execute(select(Customer))
        assert len(result.scalars().all()) == 2

    @pytest.mark.asyncio
    async def test_bulk_rejects_non_array(self, authenticated_client: AsyncClient):
        response = await authenticated_client.post(
            "/api/customers/bulk", json={"name": "One", "email": "one@example.com"}
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_bulk_invalid_item_rejects_batch(self, authenticated_client: AsyncClient, test_db):
        payload = [
            {"name": "One", "email": "one@example.com"},
            {"name": "", "email": "bad@example.com"},
        ]

        response = await authenticated_client.post("/api/customers/bulk", json=payload)

        assert response.status_code == 400
        assert "bad@example.com" in response.json()["detail"]
        result = await test_db.execute(select(Customer))
        assert result.scalars().all() == []


class TestOrders:
    """Tests for order ingestion."""

    @pytest.mark.asyncio
    async def test_order_updates_customer_stats(self, authenticated_client: AsyncClient, make_customers, test_db):
        (customer,) = await make_customers({"total_spend": 100.0, "visits": 2, "last_visit": None})

        response = await authenticated_client.post(
            "/api/orders",
            json={
                "customer_id": customer.id,
                "order_number": "ORD-1001",
                "amount": 250.0,
                "items": [{"name": "Coffee beans", "quantity": 2, "price": 125.0}],
            },
        )

        assert response.status_code == 201
        await test_db.refresh(customer)
        assert customer.total_spend == 350.0
        assert customer.visits == 3
        assert customer.last_visit is not None

    @pytest.mark.asyncio
    async def test_duplicate_order_number(self, authenticated_client: AsyncClient, make_customers, test_db):
        (customer,) = await make_customers({})
        test_db.add(Order(customer_id=customer.id, order_number="ORD-1", amount=10.0))
        await test_db.commit()

        response = await authenticated_client.post(
            "/api/orders", json={"customer_id": customer.id, "order_number": "ORD-1", "amount": 5.0}
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_order_for_unknown_customer(self, authenticated_client: AsyncClient):
        response = await authenticated_client.post(
            "/api/orders", json={"customer_id": 999, "order_number": "ORD-2", "amount": 5.0}
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_list_and_get_orders(self, authenticated_client: AsyncClient, make_customers):
        (customer,) = await make_customers({})
        created = await authenticated_client.post(
            "/api/orders", json={"customer_id": customer.id, "order_number": "ORD-3", "amount": 5.0}
        )
        order_id = created.json()["id"]

        response = await authenticated_client.get("/api/orders", params={"customer_id": customer.id})
        assert response.status_code == 200
        assert response.json()["total"] == 1

        response = await authenticated_client.get(f"/api/orders/{order_id}")
        assert response.status_code == 200
        assert response.json()["order_number"] == "ORD-3"
