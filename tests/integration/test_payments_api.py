def test_public_settings(client, store):
    r = client.get("/api/v1/payments/settings")
    assert r.status_code == 200
    body = r.json()
    assert body["commission_rate"] == "0.05"
    assert body["stripe_enabled"] is True
    assert body["paystack_currency"] == "GHS"

def test_create_stripe_intent(client, store, providers):
    event = store.seed_event(vote_price="5.00")
    r = client.post(
        "/api/v1/payments/stripe/create-intent",
        json={"contestant_id": f"cand-{event['id']}", "amount": 5},
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["client_secret"].endswith("_secret")
    assert body["amount"] == "5.00"
    assert body["platform_fee"] == "0.25"
    assert r.headers["Cache-Control"] == "no-store"

def test_create_stripe_intent_ineligible(client, store, providers):
    event = store.seed_event(status="ended")
    r = client.post(
        "/api/v1/payments/stripe/create-intent",
        json={"contestant_id": f"cand-{event['id']}", "amount": "5.00"},
    )
    assert r.status_code == 400
    assert r.json()["code"] == "EventNotActive"
    assert store.payments == {}

def test_create_stripe_intent_bad_amount(client, providers):
    r = client.post("/api/v1/payments/stripe/create-intent", json={"contestant_id": "c1", "amount": -3})
    assert r.status_code == 400
    assert r.json()["code"] == "ValidationError"

def test_create_stripe_intent_unknown_contestant(client, providers):
    r = client.post("/api/v1/payments/stripe/create-intent", json={"contestant_id": "nope", "amount": "5.00"})
    assert r.status_code == 404
    assert r.json()["code"] == "ContestantNotFound"

def test_create_stripe_intent_provider_down(client, store, providers):
    import stripe

    event = store.seed_event()
    providers.fail_create = stripe.APIConnectionError("réseau indisponible")
    r = client.post(
        "/api/v1/payments/stripe/create-intent",
        json={"contestant_id": f"cand-{event['id']}", "amount": "5.00"},
    )
    assert r.status_code == 502
    assert r.json()["code"] == "ProviderError"

def test_paystack_initialize(client, store, providers):
    event = store.seed_event()
    r = client.post(
        "/api/v1/payments/paystack/initialize",
        json={"contestant_id": f"cand-{event['id']}", "amount": "5.00", "mobile_money_network": "vodafone"},
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["authorization_url"].startswith("https://checkout.paystack.test/")
    assert body["reference"] == body["payment_id"]

def test_verify_and_cancel(client, store, providers):
    event = store.seed_event()
    payment = store.seed_payment(event["id"], payment_intent_id="pi_1")

    r = client.get(f"/api/v1/payments/verify/{payment['id']}")
    assert r.status_code == 200
    assert r.json()["verified"] is False

    r = client.post(f"/api/v1/payments/cancel/{payment['id']}")
    assert r.status_code == 200
    assert r.json()["canceled"] is True

    r = client.post(f"/api/v1/payments/cancel/{payment['id']}")
    assert r.status_code == 404

def test_history(client, store):
    event = store.seed_event()
    store.seed_payment(event["id"], status="completed")
    r = client.get("/api/v1/payments/history?page=1&limit=5")
    assert r.status_code == 200
    assert r.json()["summary"]["total_spent"] == "5.00"

def test_requires_authentication(app, client):
    from voteapp.utils.security import get_current_user

    app.dependency_overrides.pop(get_current_user, None)
    r = client.get("/api/v1/payments/history")
    assert r.status_code == 401
