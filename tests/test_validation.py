import pytest

from utils.validation import Field, SchemaError, Violation, validate
from webapp.schemas import CAMPGROUND_SCHEMA, REGISTER_SCHEMA, REVIEW_SCHEMA


def _fields(exc: SchemaError) -> set:
    return {v.field for v in exc.violations}


# --- campground --------------------------------------------------------------
def test_campground_payload_is_coerced() -> None:
    clean = validate(CAMPGROUND_SCHEMA, {"title": "  Pine Ridge ", "location": "Bend", "price": "25.5"})
    assert clean == {"title": "Pine Ridge", "location": "Bend", "price": 25.5, "description": ""}


def test_unknown_fields_are_dropped() -> None:
    clean = validate(CAMPGROUND_SCHEMA, {"title": "t", "location": "l", "price": "0", "owner_id": "x"})
    assert "owner_id" not in clean


@pytest.mark.parametrize(
    ("payload", "bad_field"),
    [
        ({"title": "", "location": "Bend", "price": "10"}, "title"),
        ({"title": "   ", "location": "Bend", "price": "10"}, "title"),
        ({"title": "Pine", "location": "Bend", "price": "-1"}, "price"),
        ({"title": "Pine", "location": "Bend", "price": "cheap"}, "price"),
        ({"title": "Pine", "location": "Bend", "price": "nan"}, "price"),
        ({"title": "Pine", "location": "", "price": "10"}, "location"),
    ],
)
def test_campground_violations(payload: dict, bad_field: str) -> None:
    with pytest.raises(SchemaError) as exc_info:
        validate(CAMPGROUND_SCHEMA, payload)
    assert _fields(exc_info.value) == {bad_field}


def test_all_violations_are_reported_together() -> None:
    with pytest.raises(SchemaError) as exc_info:
        validate(CAMPGROUND_SCHEMA, {"price": "-3"})
    assert _fields(exc_info.value) == {"title", "location", "price"}


# --- review ------------------------------------------------------------------
@pytest.mark.parametrize("rating", ["1", "5", 3])
def test_review_rating_in_range(rating) -> None:
    clean = validate(REVIEW_SCHEMA, {"rating": rating, "body": "Great spot"})
    assert clean["rating"] == int(rating)


@pytest.mark.parametrize("rating", ["0", "6", "4.5", "", True])
def test_review_rating_rejected(rating) -> None:
    with pytest.raises(SchemaError) as exc_info:
        validate(REVIEW_SCHEMA, {"rating": rating, "body": "Great spot"})
    assert _fields(exc_info.value) == {"rating"}


def test_review_body_required() -> None:
    with pytest.raises(SchemaError) as exc_info:
        validate(REVIEW_SCHEMA, {"rating": "4"})
    assert exc_info.value.violations == [Violation("body", "is required")]


# --- registration ------------------------------------------------------------
def test_password_is_not_stripped() -> None:
    clean = validate(REGISTER_SCHEMA, {"username": "alice", "email": "a@example.com", "password": " pass word "})
    assert clean["password"] == " pass word "


def test_bad_email_rejected() -> None:
    with pytest.raises(SchemaError) as exc_info:
        validate(REGISTER_SCHEMA, {"username": "alice", "email": "nope", "password": "secret123"})
    assert _fields(exc_info.value) == {"email"}


def test_optional_field_gets_default() -> None:
    schema = {"note": Field("string", required=False, default="n/a")}
    assert validate(schema, {}) == {"note": "n/a"}
