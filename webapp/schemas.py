"""Payload schemas for submitted forms"""
from models.review import MAX_RATING, MIN_RATING
from utils.validation import Field

CAMPGROUND_SCHEMA = {
    "title": Field("string", max_length=200),
    "location": Field("string", max_length=200),
    "price": Field("number", min=0),
    "description": Field("string", required=False, default="", max_length=5000),
}

REVIEW_SCHEMA = {
    "rating": Field("integer", min=MIN_RATING, max=MAX_RATING),
    "body": Field("string", max_length=2000),
}

REGISTER_SCHEMA = {
    "username": Field("string", min_length=3, max_length=40),
    "email": Field("email", max_length=200),
    "password": Field("secret", min_length=6, max_length=128),
}

LOGIN_SCHEMA = {
    "username": Field("string"),
    "password": Field("secret"),
}
