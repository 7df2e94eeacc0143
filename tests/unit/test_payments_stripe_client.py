import pytest
import stripe

from salonbook.payments import stripe_client, get_gateway, DemoGateway
from salonbook.payments.stripe_client import PaymentOrder
from salonbook.errors import PaymentInitError, PaymentVerificationError

ORDER = PaymentOrder(order_id="pi_1", provider_key="secret", amount_minor=11800, currency="inr")


def _intent(**overrides):
    data = {"id": "pi_1", "status": "succeeded", "amount": 11800, "currency": "inr", "client_secret": "pi_1_secret"}
    data.update(overrides)
    return data


def test_create_order_maps_payment_intent(monkeypatch):
    captured = {}

    def _create(**kwargs):
        captured.update(kwargs)
        return _intent(status="requires_payment_method")
    monkeypatch.setattr(stripe.PaymentIntent, "create", _create)
    order = stripe_client.create_order(11800, "inr", {"customer_id": "u1"})
    assert order.order_id == "pi_1"
    assert order.provider_key == "pi_1_secret"
    assert captured["amount"] == 11800
    assert captured["metadata"] == {"customer_id": "u1"}


def test_create_order_wraps_sdk_errors(monkeypatch):
    def _boom(**kwargs):
        raise stripe.APIConnectionError("down")
    monkeypatch.setattr(stripe.PaymentIntent, "create", _boom)
    with pytest.raises(PaymentInitError):
        stripe_client.create_order(11800, "inr")


def test_create_order_rejects_zero_amount():
    with pytest.raises(PaymentInitError):
        stripe_client.create_order(0, "inr")


def test_verify_payment_success(monkeypatch):
    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", lambda intent_id: _intent())
    v = stripe_client.verify_payment({"payment_intent_id": "pi_1"}, ORDER)
    assert v.verified
    assert v.reference == "pi_1"


@pytest.mark.parametrize("response,intent,reason", [
    ({"payment_intent_id": "pi_other"}, _intent(), "order_mismatch"),
    ({}, _intent(), "order_mismatch"),
    ({"payment_intent_id": "pi_1"}, _intent(status="processing"), "not_succeeded"),
    ({"payment_intent_id": "pi_1"}, _intent(amount=100), "amount_mismatch"),
    ({"payment_intent_id": "pi_1"}, _intent(currency="eur"), "currency_mismatch"),
])
def test_verify_payment_rejections(monkeypatch, response, intent, reason):
    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", lambda intent_id: intent)
    v = stripe_client.verify_payment(response, ORDER)
    assert not v.verified
    assert v.reason == reason


def test_verify_payment_gateway_down(monkeypatch):
    def _boom(intent_id):
        raise stripe.APIConnectionError("down")
    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", _boom)
    with pytest.raises(PaymentVerificationError):
        stripe_client.verify_payment({"payment_intent_id": "pi_1"}, ORDER)


def test_cancel_order_is_best_effort(monkeypatch):
    def _boom(order_id):
        raise stripe.InvalidRequestError("already canceled", param=None)
    monkeypatch.setattr(stripe.PaymentIntent, "cancel", _boom)
    assert stripe_client.cancel_order("pi_1") is False


def test_gateway_selection(monkeypatch):
    from salonbook import config
    monkeypatch.setattr(config, "PAYMENT_DEMO_MODE", False)
    assert get_gateway() is stripe_client
    monkeypatch.setattr(config, "PAYMENT_DEMO_MODE", True)
    assert isinstance(get_gateway(), DemoGateway)


def test_demo_gateway_simulates_success():
    gateway = DemoGateway(delay_seconds=0)
    order = gateway.create_order(11800, "inr")
    assert order.order_id.startswith("demo_")
    assert gateway.verify_payment({}, order).verified
