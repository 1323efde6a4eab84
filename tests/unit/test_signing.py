from __future__ import annotations

import pytest

from dynowire.errors import CredentialsError, ValidationError
from dynowire.messages import Request
from dynowire.signing import resolve_credentials, sign
from dynowire.testkit import fake_credentials


def _request(**kwargs: object) -> Request:
    defaults: dict[str, object] = {
        "headers": {"x-amz-target": "DynamoDB_20111205.GetItem", "Content-Type": "application/x-amz-json-1.0"},
        "body": '{"TableName":"t"}',
        "host": "dynamodb.us-east-1.amazonaws.com",
        "region": "us-east-1",
    }
    defaults.update(kwargs)
    return Request(**defaults)  # type: ignore[arg-type]


def _header(request: Request, name: str) -> str | None:
    for key, value in request.headers.items():
        if key.lower() == name:
            return value
    return None


def test_sign_adds_sigv4_headers() -> None:
    signed = sign(_request(), fake_credentials())

    auth = _header(signed, "authorization")
    assert auth is not None
    assert auth.startswith("AWS4-HMAC-SHA256 Credential=AKIDEXAMPLE/")
    assert "/us-east-1/dynamodb/aws4_request" in auth
    assert "x-amz-target" in auth
    assert _header(signed, "x-amz-date")
    assert signed.target == "DynamoDB_20111205.GetItem"
    assert signed.body == '{"TableName":"t"}'


def test_sign_replaces_a_stale_signature() -> None:
    stale = _request(headers={"x-amz-target": "DynamoDB_20111205.GetItem", "Authorization": "old", "X-Amz-Date": "x"})
    signed = sign(stale, fake_credentials())

    assert _header(signed, "authorization") != "old"
    assert len([k for k in signed.headers if k.lower() == "authorization"]) == 1


def test_sign_with_session_token() -> None:
    signed = sign(_request(), fake_credentials(token="tok"))
    assert _header(signed, "x-amz-security-token") == "tok"


def test_sign_region_argument_overrides_request_region() -> None:
    signed = sign(_request(region=None), fake_credentials(), region="eu-west-1")
    assert "/eu-west-1/dynamodb/aws4_request" in (_header(signed, "authorization") or "")


def test_sign_requires_credentials_region_and_encoded_body() -> None:
    with pytest.raises(CredentialsError):
        sign(_request(), None)
    with pytest.raises(ValidationError, match="region"):
        sign(_request(region=None), fake_credentials())
    with pytest.raises(ValidationError, match="encoded"):
        sign(_request(body={"table_name": "t"}), fake_credentials())


def test_resolve_credentials_uses_the_session() -> None:
    creds = fake_credentials()

    class Session:
        def get_credentials(self) -> object:
            return creds

    assert resolve_credentials(Session()) is creds
