"""Tests for the storefront httpx client."""

import asyncio
import json
from decimal import Decimal

import httpx
import pytest

from fakes import address, cart, ok, session
from tillflow import order as O
from tillflow import payment as Pay
from tillflow import reconciliation as R
from tillflow._errors import OrderBackendError

BASE_URL = "https://api.test/api/v1"

CART_BODY = {
    "data": {
        "cart": {
            "items": [
                {
                    "_id": "ci-1",
                    "product": {"_id": "p-1", "name": "Tomato", "gst": 5},
                    "quantity": 2,
                    "price": 40,
                },
            ]
        }
    }
}

PROFILE_BODY = {
    "data": {
        "customer": {
            "addresses": [
                {"_id": "a-1", "street": "1 Main", "city": "Pune", "state": "MH", "postalCode": "411001", "country": "India"},
            ]
        }
    }
}


def _run_with(handler, action):
    """Run ``action(api)`` against a mock transport."""

    async def main():
        async with httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler)) as client:
            return await action(O.StorefrontApi(client))

    return asyncio.run(main())


class TestReads:
    def test_get_cart(self):
        def handler(req: httpx.Request) -> httpx.Response:
            assert req.method == "GET"
            assert req.url.path == "/api/v1/cart"
            return httpx.Response(200, json=CART_BODY)

        snapshot = _run_with(handler, lambda api: api.get_cart())

        assert len(snapshot) == 1
        assert snapshot.lines[0].unit_price == Decimal("40")
        assert O.resolve_product(snapshot.lines[0]) == "p-1"

    def test_cart_without_items(self):
        snapshot = _run_with(lambda req: httpx.Response(200, json={"data": {}}), lambda api: api.get_cart())

        assert snapshot.is_empty

    def test_get_addresses(self):
        def handler(req: httpx.Request) -> httpx.Response:
            assert req.url.path == "/api/v1/customers/profile"
            return httpx.Response(200, json=PROFILE_BODY)

        addresses = _run_with(handler, lambda api: api.get_addresses())

        assert [a.id for a in addresses] == ["a-1"]


class TestCreateOrder:
    def _request(self):
        return ok(O.assemble(cart(), address(), "9876543210", Pay.CashOnDelivery()))

    def test_posts_payload_and_returns_id(self):
        seen = {}

        def handler(req: httpx.Request) -> httpx.Response:
            seen["method"] = req.method
            seen["path"] = req.url.path
            seen["body"] = json.loads(req.content)
            return httpx.Response(201, json={"data": {"order": {"_id": "order-77"}}})

        order_id = _run_with(handler, lambda api: api.create_order(self._request()))

        assert order_id == "order-77"
        assert seen["method"] == "POST"
        assert seen["path"] == "/api/v1/orders"
        assert seen["body"]["clearCart"] is True
        assert seen["body"]["paymentMethod"] == "cash_on_delivery"

    def test_backend_message_is_verbatim(self):
        def handler(req: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"success": False, "message": "Insufficient stock for Tomato"})

        with pytest.raises(OrderBackendError) as info:
            _run_with(handler, lambda api: api.create_order(self._request()))

        assert info.value.status == 400
        assert info.value.message == "Insufficient stock for Tomato"

    def test_non_json_error_body(self):
        def handler(req: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="<html>Bad gateway</html>")

        with pytest.raises(OrderBackendError) as info:
            _run_with(handler, lambda api: api.create_order(self._request()))

        assert info.value.message == "Request failed with status 502"


class TestReconcilerOverHttp:
    def _place(self, handler):
        async def action(api):
            router = Pay.routes().build()
            reconciler = O.OrderReconciler(router, api, R.MemoryStore(), cart_state=O.CartState(cart()))
            return await reconciler.place(
                cart(), "addr-1", Pay.CashOnDelivery(), addresses=[address()], session=session()
            )

        return _run_with(handler, action)

    def test_rejection_reaches_result(self):
        result = self._place(lambda req: httpx.Response(422, json={"message": "Pincode not serviceable"}))

        assert isinstance(result, O.OrderCreationFailed)
        assert result.kind is O.OrderFailureKind.BACKEND_REJECTED
        assert result.message == "Pincode not serviceable"

    def test_transport_failure_is_network(self):
        def handler(req: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=req)

        result = self._place(handler)

        assert result.kind is O.OrderFailureKind.NETWORK

    def test_confirmed(self):
        result = self._place(lambda req: httpx.Response(201, json={"data": {"order": {"_id": "order-1"}}}))

        assert result == O.Confirmed(order_id="order-1", breakdown=result.breakdown)
