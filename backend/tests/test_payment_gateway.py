"""
Tests for the Stripe gateway helpers. The stripe SDK calls are monkeypatched;
nothing here touches the network.
"""

import json
from types import SimpleNamespace

import pytest
import stripe

from conftest import TEST_WEBHOOK_SECRET, make_event, sign_payload
from eventreg.core.errors import ConfigurationError, GatewayError, SignatureError, ValidationError
from eventreg.services.payment_gateway import (
    PaymentGateway,
    build_metadata,
    get_payment_gateway,
    normalize_currency,
    to_minor_units,
    verify_webhook_signature,
)


class TestMinorUnits:
    @pytest.mark.parametrize(
        "amount, expected",
        [(25.5, 2550), (50, 5000), (0.01, 1), (19.99, 1999), (1.005, 100)],
    )
    def test_converts_to_cents(self, amount, expected):
        assert to_minor_units(amount) == expected

    @pytest.mark.parametrize(
        "amount",
        [0, -1, "10", None, True, float("nan"), float("inf"), 0.001, 1e307, 10 ** 400, -(10 ** 400), 1_000_000],
    )
    def test_rejects(self, amount):
        with pytest.raises(ValidationError) as exc_info:
            to_minor_units(amount)
        assert exc_info.value.code == "INVALID_AMOUNT"

    def test_largest_chargeable_amount(self):
        assert to_minor_units(999_999.99) == 99_999_999


class TestCurrency:
    def test_lowercases(self):
        assert normalize_currency("EUR") == "eur"

    def test_defaults_to_setting(self, override_env):
        override_env(DEFAULT_CURRENCY="gbp")
        assert normalize_currency(None) == "gbp"

    @pytest.mark.parametrize("currency", ["", "eu", "euro", "12a", 978])
    def test_rejects(self, currency):
        with pytest.raises(ValidationError) as exc_info:
            normalize_currency(currency)
        assert exc_info.value.code == "INVALID_CURRENCY"


def test_build_metadata_stringifies_and_adds_registration_id():
    assert build_metadata({"ticketType": "standard", "seats": 2, "skip": None}, 5) == {
        "ticketType": "standard",
        "seats": "2",
        "registrationId": "5",
    }
    assert build_metadata(None, None) == {}


class TestGatewayCache:
    def test_reused_while_key_unchanged(self):
        assert get_payment_gateway() is get_payment_gateway()

    def test_rebuilt_when_key_changes(self, override_env):
        first = get_payment_gateway()
        override_env(STRIPE_SECRET_KEY="sk_test_rotated")
        second = get_payment_gateway()
        assert second is not first
        assert second.api_key == "sk_test_rotated"

    def test_missing_key(self, override_env):
        override_env(STRIPE_SECRET_KEY="")
        with pytest.raises(ConfigurationError):
            get_payment_gateway()


class TestCreatePaymentIntent:
    @pytest.mark.asyncio
    async def test_calls_stripe_with_request_key(self, monkeypatch):
        calls = []

        def fake_create(**kwargs):
            calls.append(kwargs)
            return SimpleNamespace(id="pi_123", client_secret="pi_123_secret_xyz")

        monkeypatch.setattr(stripe.PaymentIntent, "create", fake_create)

        result = await PaymentGateway("sk_test_abc").create_payment_intent(
            25.5, "USD", metadata={"source": "web"}, registration_id=3
        )

        assert result.payment_intent_id == "pi_123"
        assert result.client_secret == "pi_123_secret_xyz"
        assert calls == [
            {
                "api_key": "sk_test_abc",
                "amount": 2550,
                "currency": "usd",
                "metadata": {"source": "web", "registrationId": "3"},
                "automatic_payment_methods": {"enabled": True},
            }
        ]

    @pytest.mark.asyncio
    async def test_invalid_request_maps_to_400(self, monkeypatch):
        def fake_create(**kwargs):
            raise stripe.InvalidRequestError("Amount must be at least $0.50 usd", "amount")

        monkeypatch.setattr(stripe.PaymentIntent, "create", fake_create)

        with pytest.raises(GatewayError) as exc_info:
            await PaymentGateway("sk_test_abc").create_payment_intent(0.1, "usd")
        assert exc_info.value.status_code == 400
        assert exc_info.value.code == "INVALID_PAYMENT_REQUEST"

    @pytest.mark.asyncio
    async def test_rejected_credentials_map_to_configuration_error(self, monkeypatch):
        def fake_create(**kwargs):
            raise stripe.AuthenticationError("Invalid API Key provided")

        monkeypatch.setattr(stripe.PaymentIntent, "create", fake_create)

        with pytest.raises(ConfigurationError):
            await PaymentGateway("sk_test_revoked").create_payment_intent(10, "usd")

    @pytest.mark.asyncio
    async def test_network_failure_maps_to_502(self, monkeypatch):
        def fake_create(**kwargs):
            raise stripe.APIConnectionError("Connection reset")

        monkeypatch.setattr(stripe.PaymentIntent, "create", fake_create)

        with pytest.raises(GatewayError) as exc_info:
            await PaymentGateway("sk_test_abc").create_payment_intent(10, "usd")
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_invalid_amount_skips_stripe(self, monkeypatch):
        def fake_create(**kwargs):
            raise AssertionError("stripe must not be called")

        monkeypatch.setattr(stripe.PaymentIntent, "create", fake_create)

        with pytest.raises(ValidationError):
            await PaymentGateway("sk_test_abc").create_payment_intent(0, "usd")


@pytest.mark.asyncio
async def test_link_registration_modifies_metadata(monkeypatch):
    calls = []

    def fake_modify(intent_id, **kwargs):
        calls.append((intent_id, kwargs))
        return SimpleNamespace(id=intent_id)

    monkeypatch.setattr(stripe.PaymentIntent, "modify", fake_modify)

    await PaymentGateway("sk_test_abc").link_registration("pi_9", 4)
    assert calls == [("pi_9", {"api_key": "sk_test_abc", "metadata": {"registrationId": "4"}})]


@pytest.mark.asyncio
async def test_retrieve_payment_intent(monkeypatch):
    def fake_retrieve(intent_id, **kwargs):
        assert kwargs == {"api_key": "sk_test_abc"}
        return SimpleNamespace(
            id=intent_id,
            status="succeeded",
            amount=5000,
            currency="usd",
            metadata={"registrationId": "4"},
        )

    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", fake_retrieve)

    info = await PaymentGateway("sk_test_abc").retrieve_payment_intent("pi_9")
    assert info.id == "pi_9"
    assert info.status == "succeeded"
    assert info.amount == 5000
    assert info.metadata == {"registrationId": "4"}


class TestVerifyWebhookSignature:
    def test_valid_signature_returns_event(self):
        payload = make_event("payment_intent.succeeded", {"registrationId": "1"})
        event = verify_webhook_signature(payload.encode(), sign_payload(payload), TEST_WEBHOOK_SECRET)
        assert event == json.loads(payload)

    def test_wrong_secret(self):
        payload = make_event("payment_intent.succeeded")
        with pytest.raises(SignatureError):
            verify_webhook_signature(payload.encode(), sign_payload(payload, "whsec_other"), TEST_WEBHOOK_SECRET)

    def test_malformed_header(self):
        payload = make_event("payment_intent.succeeded")
        with pytest.raises(SignatureError):
            verify_webhook_signature(payload.encode(), "garbage", TEST_WEBHOOK_SECRET)

    def test_signed_non_json_payload(self):
        payload = "not json"
        with pytest.raises(SignatureError):
            verify_webhook_signature(payload.encode(), sign_payload(payload), TEST_WEBHOOK_SECRET)
