from __future__ import annotations

import pytest

from src.punch_engine.punch_engine.session.error_payload import (
    FieldErrorList,
    FieldErrorMap,
    SingleMessage,
    Unknown,
    decode_error_payload,
    error_message,
)


def message_for(body, status=400):
    return error_message(decode_error_payload(body, status))


def test_error_list_wins_over_everything():
    body = {
        "errors": [{"message": "Already punched in"}, {"message": "Try tomorrow"}],
        "detail": "ignored",
        "message": "ignored",
    }

    assert isinstance(decode_error_payload(body, 400), FieldErrorList)
    assert message_for(body) == "Already punched in, Try tomorrow"


def test_error_map_prefers_non_field_errors():
    body = {"errors": {"email": ["bad email"], "non_field_errors": ["Invalid credentials", "Locked"]}}

    assert isinstance(decode_error_payload(body, 400), FieldErrorMap)
    assert message_for(body) == "Invalid credentials, Locked"


def test_error_map_falls_back_to_first_field():
    assert message_for({"errors": {"password": ["too short", "too common"]}}) == "too short, too common"


@pytest.mark.parametrize(
    "body, expected",
    [
        ({"detail": "Token expired", "message": "x"}, "Token expired"),
        ({"message": "Punch window closed", "error": "x"}, "Punch window closed"),
        ({"error": "Bad request"}, "Bad request"),
        ({"email": ["Enter a valid email."]}, "Enter a valid email."),
        ({"password": ["This field is required."]}, "This field is required."),
        ({"non_field_errors": ["Unable to log in."]}, "Unable to log in."),
    ],
)
def test_singular_fields_in_order(body, expected):
    payload = decode_error_payload(body, 400)

    assert isinstance(payload, SingleMessage)
    assert error_message(payload) == expected


@pytest.mark.parametrize("body", [None, {}, {"errors": []}, "<html>502</html>", ["x"]])
def test_unknown_shapes_use_status(body):
    payload = decode_error_payload(body, 502)

    assert payload == Unknown(502)
    assert error_message(payload) == "Request failed with status 502"
