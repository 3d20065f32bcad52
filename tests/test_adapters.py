"""Tests for the UPI, gateway and mock adapters."""

import asyncio
from urllib.parse import parse_qs, urlsplit

import pytest

from fakes import (
    FIXED_NOW,
    GATEWAY_SUCCESS,
    FakeHostedCheckout,
    FakeSdk,
    FakeUpiDispatch,
    FakeVerifier,
    ScriptedAdapter,
    fixed_clock,
    request,
)
from tillflow import payment as Pay
from tillflow._errors import GatewayFault


def _instant_mock(rate: float = 1.0, seed: int = 7) -> Pay.MockAdapter:
    """Mock adapter without delay."""
    settings = Pay.MockSettings().with_delay(seconds=0).with_success_rate(rate).with_seed(seed)
    return Pay.MockAdapter(settings, clock=fixed_clock)


def _upi(response, fallback=None):
    dispatch = FakeUpiDispatch(response)
    adapter = Pay.UpiAdapter(dispatch, fallback or ScriptedAdapter(), clock=fixed_clock)
    return adapter, dispatch


class TestUpiAdapter:
    def test_success_uses_txn_id(self):
        adapter, _ = _upi({"Status": "SUCCESS", "TxnId": "UPI123"})

        outcome = asyncio.run(adapter.execute(request(Pay.UpiApp("phonepe"))))

        assert isinstance(outcome, Pay.Succeeded)
        assert outcome.transaction_id == "UPI123"
        assert outcome.timestamp == FIXED_NOW

    def test_success_without_txn_id_uses_reference(self):
        adapter, dispatch = _upi({"Status": "success"})

        outcome = asyncio.run(adapter.execute(request(Pay.UpiApp("phonepe"))))

        assert outcome.transaction_id == dispatch.intents[0].transaction_ref
        assert outcome.transaction_id.startswith("TFord_test_")

    def test_failure_surfaces_error_message(self):
        adapter, _ = _upi({"Status": "FAILURE", "ErrorMessage": "Insufficient balance"})

        outcome = asyncio.run(adapter.execute(request(Pay.UpiApp("paytm"))))

        assert outcome == Pay.Failed(Pay.FailureKind.DECLINED, "Insufficient balance")

    def test_cancelled(self):
        adapter, _ = _upi({"Status": "Cancelled"})

        outcome = asyncio.run(adapter.execute(request(Pay.UpiApp("paytm"))))

        assert isinstance(outcome, Pay.Cancelled)

    def test_unknown_status(self):
        adapter, _ = _upi({"Status": "PENDING"})

        outcome = asyncio.run(adapter.execute(request(Pay.UpiApp("paytm"))))

        assert outcome.kind is Pay.FailureKind.UNKNOWN_STATUS

    @pytest.mark.parametrize("response", [{}, None, {"TxnId": "x"}])
    def test_missing_status(self, response):
        adapter, _ = _upi(response)

        outcome = asyncio.run(adapter.execute(request(Pay.UpiApp("paytm"))))

        assert outcome.kind is Pay.FailureKind.INVALID_RESPONSE

    def test_intent_for_app(self):
        adapter, dispatch = _upi({"Status": "success"})

        asyncio.run(adapter.execute(request(Pay.UpiApp("phonepe"), amount="284.5")))

        intent = dispatch.intents[0]
        assert intent.app == "phonepe"
        assert intent.vpa == "merchant@upi"
        assert intent.amount == "284.50"
        assert intent.as_payload()["payeeName"] == "Storefront"

    def test_intent_for_custom_vpa(self):
        adapter, dispatch = _upi({"Status": "success"})

        asyncio.run(adapter.execute(request(Pay.UpiCustomId(" asha@okaxis "))))

        intent = dispatch.intents[0]
        assert intent.vpa == "asha@okaxis"
        assert intent.app == "google_pay"

    def test_unknown_app_is_rejected(self):
        adapter, dispatch = _upi({"Status": "success"})

        outcome = asyncio.run(adapter.execute(request(Pay.UpiApp("no_such_app"))))

        assert outcome.kind is Pay.FailureKind.VALIDATION
        assert "no_such_app" in outcome.message
        assert dispatch.intents == []

    def test_catalog_follows_settings(self):
        dispatch = FakeUpiDispatch({"Status": "success"})
        settings = Pay.UpiSettings().with_apps("bhim", "paytm")
        adapter = Pay.UpiAdapter(dispatch, ScriptedAdapter(), settings, clock=fixed_clock)

        rejected = asyncio.run(adapter.execute(request(Pay.UpiApp("phonepe"))))
        accepted = asyncio.run(adapter.execute(request(Pay.UpiApp("paytm"))))

        assert adapter.apps == ("bhim", "paytm")
        assert rejected.kind is Pay.FailureKind.VALIDATION
        assert isinstance(accepted, Pay.Succeeded)
        assert [i.app for i in dispatch.intents] == ["paytm"]

    def test_unknown_app_never_reaches_fallback(self):
        fallback = ScriptedAdapter()
        adapter = Pay.UpiAdapter(None, fallback)

        outcome = asyncio.run(adapter.execute(request(Pay.UpiApp("no_such_app"))))

        assert outcome.kind is Pay.FailureKind.VALIDATION
        assert fallback.calls == 0

    def test_missing_dispatch_falls_back(self):
        mock = _instant_mock()
        adapter = Pay.UpiAdapter(None, mock)

        outcome = asyncio.run(adapter.execute(request(Pay.UpiApp("paytm"))))

        assert isinstance(outcome, Pay.Succeeded)
        assert outcome.transaction_id.startswith("MOCK_TXN_")
        assert mock.call_count == 1


class TestGatewayNative:
    def _adapter(self, sdk, *, verifier=None, browser=None):
        web = Pay.GatewayWebAdapter(browser, clock=fixed_clock)
        return Pay.GatewayNativeAdapter(sdk, web, verifier=verifier, clock=fixed_clock)

    def test_success(self):
        sdk = FakeSdk(GATEWAY_SUCCESS)

        outcome = asyncio.run(self._adapter(sdk).execute(request(Pay.GatewayNative(), amount="284.5")))

        assert isinstance(outcome, Pay.Succeeded)
        assert outcome.transaction_id == "pay_123"
        options = sdk.options[0]
        assert options["amount"] == 28450
        assert options["currency"] == "INR"
        assert options["order_id"] == "ord_test"
        assert options["prefill"] == {
            "name": "Asha Rao",
            "email": "asha@example.com",
            "contact": "9000000000",
        }

    @pytest.mark.parametrize("missing", ["payment_id", "order_id", "signature"])
    def test_incomplete_response(self, missing):
        response = {k: v for k, v in GATEWAY_SUCCESS.items() if k != missing}

        outcome = asyncio.run(self._adapter(FakeSdk(response)).execute(request(Pay.GatewayNative())))

        assert outcome.kind is Pay.FailureKind.INVALID_RESPONSE
        assert missing in outcome.message

    def test_dismissal_is_cancellation(self):
        sdk = FakeSdk(dismiss=True)

        outcome = asyncio.run(self._adapter(sdk).execute(request(Pay.GatewayNative())))

        assert isinstance(outcome, Pay.Cancelled)
        assert sdk.cancelled

    def test_success_reported_after_dismissal_is_confirmed(self):
        sdk = FakeSdk(GATEWAY_SUCCESS, dismiss=True)

        outcome = asyncio.run(self._adapter(sdk).execute(request(Pay.GatewayNative())))

        assert isinstance(outcome, Pay.Succeeded)
        assert outcome.transaction_id == "pay_123"

    def test_fault_reported_after_dismissal_propagates(self):
        adapter = self._adapter(FakeSdk(GATEWAY_SUCCESS, dismiss=True, raises=GatewayFault("NETWORK_ERROR")))

        with pytest.raises(GatewayFault):
            asyncio.run(adapter.execute(request(Pay.GatewayNative())))

    def test_rejected_signature(self):
        verifier = FakeVerifier(False)

        outcome = asyncio.run(
            self._adapter(FakeSdk(GATEWAY_SUCCESS), verifier=verifier).execute(request(Pay.GatewayNative()))
        )

        assert outcome.kind is Pay.FailureKind.VERIFICATION
        assert verifier.checked == [("pay_123", "ord_test", "sig_abc")]

    def test_sdk_fault_propagates_to_router(self):
        adapter = self._adapter(FakeSdk(raises=GatewayFault("NETWORK_ERROR")))

        with pytest.raises(GatewayFault):
            asyncio.run(adapter.execute(request(Pay.GatewayNative())))

    def test_missing_sdk_falls_back_to_web(self):
        browser = FakeHostedCheckout(GATEWAY_SUCCESS)
        adapter = self._adapter(None, browser=browser)

        outcome = asyncio.run(adapter.execute(request(Pay.GatewayNative())))

        assert not adapter.available
        assert isinstance(outcome, Pay.Succeeded)
        assert len(browser.urls) == 1


class TestGatewayWeb:
    def test_checkout_url_carries_options(self):
        browser = FakeHostedCheckout(GATEWAY_SUCCESS)
        adapter = Pay.GatewayWebAdapter(browser, Pay.GatewaySettings().with_key("key_live"))

        asyncio.run(adapter.execute(request(Pay.GatewayWeb(), amount="250")))

        query = parse_qs(urlsplit(browser.urls[0]).query)
        assert query["amount"] == ["25000"]
        assert query["key"] == ["key_live"]
        assert query["prefill[email]"] == ["asha@example.com"]

    def test_cancelled_redirect(self):
        adapter = Pay.GatewayWebAdapter(FakeHostedCheckout({"status": "cancelled"}))

        outcome = asyncio.run(adapter.execute(request(Pay.GatewayWeb())))

        assert isinstance(outcome, Pay.Cancelled)

    def test_failed_redirect(self):
        adapter = Pay.GatewayWebAdapter(
            FakeHostedCheckout({"status": "failed", "error_description": "Bank declined"})
        )

        outcome = asyncio.run(adapter.execute(request(Pay.GatewayWeb())))

        assert outcome == Pay.Failed(Pay.FailureKind.DECLINED, "Bank declined")

    def test_without_browser(self):
        outcome = asyncio.run(Pay.GatewayWebAdapter(None).execute(request(Pay.GatewayWeb())))

        assert outcome.kind is Pay.FailureKind.UNAVAILABLE


class TestMockAdapter:
    def test_always_succeeds_at_full_rate(self):
        outcome = asyncio.run(_instant_mock(1.0).execute(request(Pay.UpiApp("paytm"))))

        assert isinstance(outcome, Pay.Succeeded)

    def test_always_fails_at_zero_rate(self):
        outcome = asyncio.run(_instant_mock(0.0).execute(request(Pay.UpiApp("paytm"))))

        assert outcome.kind is Pay.FailureKind.SIMULATED

    def test_seeded_runs_repeat(self):
        async def run(adapter):
            return [await adapter.execute(request(Pay.UpiApp("paytm"))) for _ in range(10)]

        first = asyncio.run(run(_instant_mock(0.5, seed=42)))
        second = asyncio.run(run(_instant_mock(0.5, seed=42)))

        assert first == second

    def test_success_rate_bounds(self):
        with pytest.raises(ValueError):
            Pay.MockSettings(success_rate=1.5)
