import pytest

from postithere.db import SUBMITTED_FORMS_COLLECTION
from postithere.models import Form


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def owner(users):
    user = users.register("owner@example.com", "secret1")
    users.add_form_to_user(user.id, Form(formId="1", name="Contact us"))
    return user


@pytest.fixture
def owner_headers(owner, tokens):
    return _bearer(tokens.issue(owner.id))


# -----------------------------
# Listing submissions
# -----------------------------


def test_listing_requires_auth(client, owner):
    resp = client.get("/forms/1")
    assert resp.status_code == 401
    assert resp.content == b""


def test_listing_rejects_invalid_token(client, owner):
    resp = client.get("/forms/1", headers=_bearer("haofsi7yfa8ohfoahfa3784hfoa"))
    assert resp.status_code == 401


def test_listing_without_submissions_is_empty(client, owner_headers):
    resp = client.get("/forms/1", headers=owner_headers)
    assert resp.status_code == 200, resp.text
    assert resp.json() == []


def test_listing_returns_submissions(client, form_store, owner_headers):
    stored = form_store.submit("1", "origin", {"left": "right"})

    resp = client.get("/forms/1", headers=owner_headers)
    assert resp.status_code == 200, resp.text
    assert resp.json() == [stored.to_json()]


def test_listing_unknown_form_is_not_found(client, owner_headers):
    resp = client.get("/forms/unknown", headers=owner_headers)
    assert resp.status_code == 404
    assert resp.text == "The form with the formId unknown was not found"


def test_listing_someone_elses_form_looks_missing(client, users, tokens, owner):
    intruder = users.register("intruder@example.com", "secret1")
    resp = client.get("/forms/1", headers=_bearer(tokens.issue(intruder.id)))
    assert resp.status_code == 404
    assert resp.text == "The form with the formId 1 was not found"


# -----------------------------
# Submitting
# -----------------------------


def test_submit_via_get(client, owner):
    resp = client.get("/forms/1/submit", params={"somekey": "somevalue"})
    assert resp.status_code == 201, resp.text

    body = resp.json()
    assert body["formId"] == "1"
    assert body["parameters"] == {"somekey": "somevalue"}
    assert body["origin"] is None
    assert body["timestamp"]


def test_submit_via_post(client, owner):
    resp = client.post("/forms/1/submit", data={"somekey": "somevalue"})
    assert resp.status_code == 201, resp.text
    assert resp.json()["parameters"] == {"somekey": "somevalue"}


def test_submit_records_origin(client, owner):
    resp = client.get(
        "/forms/1/submit",
        params={"k": "v"},
        headers={"Origin": "https://landing.example.com"},
    )
    assert resp.status_code == 201
    assert resp.json()["origin"] == "https://landing.example.com"


def test_submit_excludes_form_id_parameter(client, owner):
    resp = client.get("/forms/1/submit", params={"formId": "other", "k": "v"})
    assert resp.status_code == 201
    assert resp.json()["parameters"] == {"k": "v"}


def test_submit_without_parameters(client, owner):
    resp = client.post("/forms/1/submit")
    assert resp.status_code == 201
    assert resp.json()["parameters"] == {}


def test_submit_rejects_json_body(client, owner, db):
    resp = client.post("/forms/1/submit", json={"somekey": "somevalue"})
    assert resp.status_code == 415
    assert "application/json" in resp.text
    assert db[SUBMITTED_FORMS_COLLECTION].count_documents({}) == 0


def test_submit_accepts_multipart_body(client, owner):
    resp = client.post("/forms/1/submit", files={"somekey": (None, "somevalue")})
    assert resp.status_code == 201, resp.text
    assert resp.json()["parameters"] == {"somekey": "somevalue"}


def test_submit_to_unknown_form(client):
    resp = client.get("/forms/nope/submit", params={"k": "v"})
    assert resp.status_code == 404
    assert resp.text == "The form with the formId nope was not found"


def test_submit_with_repeated_key(client, owner):
    resp = client.get("/forms/1/submit?k=a&k=b")
    assert resp.status_code == 400
    assert resp.text == "Parameter 'k' must have a single value"


def test_submitted_data_is_listed_for_the_owner(client, owner_headers):
    client.get("/forms/1/submit", params={"a": "1"})
    client.post("/forms/1/submit", data={"b": "2"})

    resp = client.get("/forms/1", headers=owner_headers)
    assert resp.status_code == 200
    assert [s["parameters"] for s in resp.json()] == [{"a": "1"}, {"b": "2"}]
