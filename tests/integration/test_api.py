"""Integration tests for the HTTP API.

All tests use the FastAPI TestClient with the provider and the downloader
replaced by fakes so that no network access occurs. Tests cover:

- ``POST /api/images``: credit-gated generation.
- ``GET /api/images``: public listing.
- ``GET /api/images/mine`` and ``/latest``: owner listings.
- ``POST /api/images/{id}/hide`` and ``/show``: visibility toggle.
- ``DELETE /api/images/{id}``: deletion.
- ``GET /api/credits``, ``POST /api/checkout``, ``POST /api/checkout/webhook``.
- ``GET /api/prompts/random`` and ``GET /health``.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import WEBHOOK_SECRET, auth, completed_event, run, sign
from main import create_app


def _generate(client, user_id: str = "alice", prompt: str = "a red fox"):
    return client.post("/api/images", json={"prompt": prompt}, headers=auth(user_id))


# ---------------------------------------------------------------------------
# Generation.
# ---------------------------------------------------------------------------


class TestCreateImage:
    """Test POST /api/images."""

    def test_generation_spends_one_credit(self, test_client, ledger, fake_generator):
        """balance=3 -> 200, balance 2, one visible record in both listings."""
        run(ledger.credit("alice", 3))

        resp = _generate(test_client)

        assert resp.status_code == 200
        image = resp.json()
        assert image["prompt"] == "a red fox"
        assert image["owner_id"] == "alice"
        assert image["hidden"] is False
        assert "blob_key" not in image
        assert fake_generator.prompts == ["a red fox"]

        assert test_client.get("/api/credits", headers=auth("alice")).json() == {"credits": 2}
        public = test_client.get("/api/images").json()["images"]
        mine = test_client.get("/api/images/mine", headers=auth("alice")).json()["images"]
        assert [i["id"] for i in public] == [image["id"]]
        assert [i["id"] for i in mine] == [image["id"]]

    def test_stored_blob_is_served(self, test_client, ledger):
        run(ledger.credit("alice", 1))
        image = _generate(test_client).json()

        path = image["url"].replace("http://testserver", "")
        resp = test_client.get(path)
        assert resp.status_code == 200
        assert resp.content.startswith(b"\x89PNG")

    def test_no_credits(self, test_client, fake_generator):
        """balance=0 -> 402, no provider call, no record."""
        resp = _generate(test_client)

        assert resp.status_code == 402
        assert "credits" in resp.json()["detail"]
        assert fake_generator.prompts == []
        assert test_client.get("/api/images/mine", headers=auth("alice")).json()["images"] == []
        assert test_client.get("/api/credits", headers=auth("alice")).json() == {"credits": 0}

    def test_empty_prompt(self, test_client, ledger):
        run(ledger.credit("alice", 1))
        resp = _generate(test_client, prompt="   ")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Prompt cannot be empty"

    @pytest.mark.parametrize("body", [{"prompt": None}, {}])
    def test_null_or_missing_prompt(self, test_client, ledger, fake_generator, body):
        run(ledger.credit("alice", 1))
        resp = test_client.post("/api/images", json=body, headers=auth("alice"))
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Prompt cannot be empty"
        assert fake_generator.prompts == []

    def test_provider_failure(self, test_client, ledger, fake_generator):
        run(ledger.credit("alice", 1))
        fake_generator.fail = True

        resp = _generate(test_client)

        assert resp.status_code == 502
        assert resp.json()["detail"] == "Error generating image"
        assert run(ledger.get_balance("alice")) == 1

    def test_requires_sign_in(self, test_client):
        resp = test_client.post("/api/images", json={"prompt": "fox"})
        assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Listings.
# ---------------------------------------------------------------------------


class TestListings:
    """Test GET /api/images, /mine and /latest."""

    def test_public_listing_is_anonymous(self, test_client):
        resp = test_client.get("/api/images")
        assert resp.status_code == 200
        assert resp.json() == {"images": []}

    def test_public_listing_limit(self, test_client, ledger):
        run(ledger.credit("alice", 3))
        for prompt in ("one", "two", "three"):
            _generate(test_client, prompt=prompt)

        images = test_client.get("/api/images", params={"limit": 2}).json()["images"]
        assert [i["prompt"] for i in images] == ["three", "two"]

    def test_invalid_limit(self, test_client):
        assert test_client.get("/api/images", params={"limit": 0}).status_code == 422

    def test_owner_listing_only_has_own_images(self, test_client, ledger):
        run(ledger.credit("alice", 1))
        run(ledger.credit("bob", 1))
        _generate(test_client, "alice", "fox")
        _generate(test_client, "bob", "owl")

        mine = test_client.get("/api/images/mine", headers=auth("bob")).json()["images"]
        assert [i["prompt"] for i in mine] == ["owl"]

    def test_latest(self, test_client, ledger):
        assert test_client.get("/api/images/latest", headers=auth("alice")).status_code == 404
        run(ledger.credit("alice", 2))
        _generate(test_client, prompt="first")
        _generate(test_client, prompt="second")

        resp = test_client.get("/api/images/latest", headers=auth("alice"))
        assert resp.json()["prompt"] == "second"

    def test_owner_listing_requires_sign_in(self, test_client):
        assert test_client.get("/api/images/mine").status_code == 401


# ---------------------------------------------------------------------------
# Visibility and deletion.
# ---------------------------------------------------------------------------


class TestVisibility:
    """Test POST /api/images/{id}/hide and /show."""

    def test_hide_then_show(self, test_client, ledger):
        run(ledger.credit("alice", 1))
        image_id = _generate(test_client).json()["id"]

        hidden = test_client.post(f"/api/images/{image_id}/hide", headers=auth("alice"))
        assert hidden.status_code == 200
        assert hidden.json()["hidden"] is True
        assert test_client.get("/api/images").json()["images"] == []
        mine = test_client.get("/api/images/mine", headers=auth("alice")).json()["images"]
        assert [i["id"] for i in mine] == [image_id]

        shown = test_client.post(f"/api/images/{image_id}/show", headers=auth("alice"))
        assert shown.json()["hidden"] is False
        assert [i["id"] for i in test_client.get("/api/images").json()["images"]] == [image_id]

    def test_non_owner_forbidden(self, test_client, ledger):
        run(ledger.credit("alice", 1))
        image_id = _generate(test_client).json()["id"]
        resp = test_client.post(f"/api/images/{image_id}/hide", headers=auth("mallory"))
        assert resp.status_code == 403

    def test_unknown_image(self, test_client):
        resp = test_client.post("/api/images/missing/hide", headers=auth("alice"))
        assert resp.status_code == 404


class TestDelete:
    """Test DELETE /api/images/{id}."""

    def test_delete_removes_image_and_blob(self, test_client, ledger):
        run(ledger.credit("alice", 1))
        image = _generate(test_client).json()
        blob_path = image["url"].replace("http://testserver", "")

        resp = test_client.delete(f"/api/images/{image['id']}", headers=auth("alice"))

        assert resp.status_code == 200
        assert resp.json() == {"id": image["id"], "deleted": True}
        assert test_client.get("/api/images/mine", headers=auth("alice")).json()["images"] == []
        assert test_client.get(blob_path).status_code == 404

    def test_delete_nonexistent(self, test_client):
        resp = test_client.delete("/api/images/does-not-exist", headers=auth("alice"))
        assert resp.status_code == 404

    def test_delete_by_non_owner(self, test_client, ledger):
        run(ledger.credit("alice", 1))
        image_id = _generate(test_client).json()["id"]
        assert test_client.delete(f"/api/images/{image_id}", headers=auth("mallory")).status_code == 403

    def test_delete_requires_sign_in(self, test_client):
        assert test_client.delete("/api/images/x").status_code == 401


# ---------------------------------------------------------------------------
# Credits, checkout and prompts.
# ---------------------------------------------------------------------------


class TestCreditsAndCheckout:
    def test_credits_require_sign_in(self, test_client):
        assert test_client.get("/api/credits").status_code == 401

    def test_checkout_without_stripe_configured(self, test_client):
        resp = test_client.post("/api/checkout", headers=auth("alice"))
        assert resp.status_code == 503

    def test_webhook_without_stripe_configured(self, test_client):
        resp = test_client.post("/api/checkout/webhook", content=b"{}", headers={"Stripe-Signature": "t=1,v1=x"})
        assert resp.status_code == 503


class TestPromptsAndHealth:
    def test_random_prompt(self, test_client):
        resp = test_client.get("/api/prompts/random")
        assert resp.status_code == 200
        data = resp.json()
        assert data["id"] is not None
        assert data["text"]

    def test_health(self, test_client):
        data = test_client.get("/health").json()
        assert data["ok"] is True
        assert data["db_initialized"] is True
        assert data["payments_enabled"] is False


def _with_stripe(settings):
    return settings.model_copy(
        update={
            "stripe_secret_key": "sk_test",
            "stripe_credit_price": "price_123",
            "stripe_webhook_secret": WEBHOOK_SECRET,
        }
    )


class TestPaymentWebhook:
    """Test POST /api/checkout/webhook with Stripe configured."""

    def test_paid_checkout_credits_once(self, test_settings):
        settings = _with_stripe(test_settings)
        payload = completed_event(user_id="alice")

        with TestClient(create_app(settings)) as client:
            first = client.post("/api/checkout/webhook", content=payload, headers={"Stripe-Signature": sign(payload)})
            second = client.post("/api/checkout/webhook", content=payload, headers={"Stripe-Signature": sign(payload)})
            balance = client.get("/api/credits", headers=auth("alice")).json()

        assert first.json() == {"received": True, "credited": True}
        assert second.json() == {"received": True, "credited": False}
        assert balance == {"credits": 100}

    def test_bad_signature(self, test_settings):
        settings = _with_stripe(test_settings)
        payload = completed_event()
        with TestClient(create_app(settings)) as client:
            resp = client.post(
                "/api/checkout/webhook", content=payload, headers={"Stripe-Signature": sign(payload, "whsec_wrong")}
            )
        assert resp.status_code == 400

    def test_event_without_session_id_is_acknowledged(self, test_settings):
        payload = completed_event(session_id=None, user_id="alice")
        with TestClient(create_app(_with_stripe(test_settings))) as client:
            resp = client.post("/api/checkout/webhook", content=payload, headers={"Stripe-Signature": sign(payload)})
            balance = client.get("/api/credits", headers=auth("alice")).json()

        assert resp.status_code == 200
        assert resp.json() == {"received": True, "credited": False}
        assert balance == {"credits": 0}
