import asyncio

import pytest

from conftest import JSON, create_campground, get_campground_json


def _post_review(client, campground_id: str, rating: str = "4", body: str = "Quiet at night", **kwargs):
    return client.post(
        f"/campgrounds/{campground_id}/reviews", data={"rating": rating, "body": body}, **kwargs
    )


@pytest.fixture
def campground_id(alice) -> str:
    return create_campground(alice)


@pytest.fixture
def review_id(bob, campground_id) -> str:
    assert _post_review(bob, campground_id).status_code == 303
    return get_campground_json(bob, campground_id)["reviews"][0]["id"]


# --- create ------------------------------------------------------------------
def test_create_review(bob, campground_id) -> None:
    response = _post_review(bob, campground_id)
    assert response.status_code == 303
    assert response.headers["location"] == f"/campgrounds/{campground_id}"

    page = bob.get(f"/campgrounds/{campground_id}").text
    assert "Created new review!" in page
    assert "Quiet at night" in page

    reviews = get_campground_json(bob, campground_id)["reviews"]
    assert [(r["rating"], r["author"]) for r in reviews] == [(4, "bob")]


def test_anonymous_review_redirects_to_login(anon, alice, campground_id) -> None:
    response = _post_review(anon, campground_id)
    assert response.status_code == 303
    assert response.headers["location"] == "/login"
    assert _post_review(anon, campground_id, headers=JSON).status_code == 401
    assert get_campground_json(alice, campground_id)["reviews"] == []


def test_review_on_missing_campground_is_404(bob, store) -> None:
    response = _post_review(bob, "no-such-campground")
    assert response.status_code == 404
    assert "Cannot find that campground!" in response.text
    assert asyncio.run(store.list_reviews("no-such-campground")) == []


@pytest.mark.parametrize(
    ("rating", "body", "error"),
    [
        ("0", "fine", "rating: must be greater than or equal to 1"),
        ("6", "fine", "rating: must be less than or equal to 5"),
        ("four", "fine", "rating: must be a number"),
        ("2.5", "fine", "rating: must be a whole number"),
        ("3", "", "body: is required"),
    ],
)
def test_invalid_review_is_rejected(bob, campground_id, rating: str, body: str, error: str) -> None:
    response = _post_review(bob, campground_id, rating=rating, body=body, headers=JSON)
    assert response.status_code == 400
    assert error in response.json()["errors"]
    assert get_campground_json(bob, campground_id)["reviews"] == []


# --- delete ------------------------------------------------------------------
def test_author_deletes_review(bob, campground_id, review_id) -> None:
    response = bob.delete(f"/campgrounds/{campground_id}/reviews/{review_id}")
    assert response.status_code == 303
    assert response.headers["location"] == f"/campgrounds/{campground_id}"
    assert "Successfully deleted review" in bob.get(f"/campgrounds/{campground_id}").text
    assert get_campground_json(bob, campground_id)["reviews"] == []


def test_campground_owner_cannot_delete_others_review(alice, campground_id, review_id) -> None:
    response = alice.delete(f"/campgrounds/{campground_id}/reviews/{review_id}")
    assert response.status_code == 303
    assert "You do not have permission to do that!" in alice.get(f"/campgrounds/{campground_id}").text

    response = alice.delete(f"/campgrounds/{campground_id}/reviews/{review_id}", headers=JSON)
    assert response.status_code == 403
    assert len(get_campground_json(alice, campground_id)["reviews"]) == 1


def test_review_is_only_addressable_through_its_campground(alice, bob, campground_id, review_id, store) -> None:
    other_id = create_campground(bob, title="Other Place")

    response = bob.delete(f"/campgrounds/{other_id}/reviews/{review_id}")
    assert response.status_code == 404
    assert "Cannot find that review!" in response.text
    assert asyncio.run(store.get_review(review_id)) is not None


def test_delete_unknown_review_is_404(bob, campground_id) -> None:
    assert bob.delete(f"/campgrounds/{campground_id}/reviews/missing").status_code == 404


def test_anonymous_delete_review_redirects(anon, bob, campground_id, review_id) -> None:
    response = anon.delete(f"/campgrounds/{campground_id}/reviews/{review_id}")
    assert response.status_code == 303
    assert response.headers["location"] == "/login"
    assert len(get_campground_json(bob, campground_id)["reviews"]) == 1


def test_review_delete_via_form_override(bob, campground_id, review_id) -> None:
    response = bob.post(f"/campgrounds/{campground_id}/reviews/{review_id}?_method=DELETE")
    assert response.status_code == 303
    assert get_campground_json(bob, campground_id)["reviews"] == []
