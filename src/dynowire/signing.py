from __future__ import annotations

from dataclasses import replace
from typing import Any

import boto3
from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials

from .errors import CredentialsError, ValidationError
from .messages import Request

SERVICE_NAME = "dynamodb"


def resolve_credentials(session: Any | None = None) -> Credentials | None:
    sess = session or boto3.session.Session()
    return sess.get_credentials()


def sign(
    request: Request,
    credentials: Credentials | None,
    *,
    region: str | None = None,
    service: str = SERVICE_NAME,
) -> Request:
    if credentials is None:
        raise CredentialsError("no AWS credentials available to sign the request")

    region = region or request.region
    if not region:
        raise ValidationError("region is required to sign a request")
    if not isinstance(request.body, (str, bytes)):
        raise ValidationError("request body must be encoded before signing")

    # drop a stale signature from a previous attempt
    headers = {
        k: v
        for k, v in request.headers.items()
        if k.lower() not in {"authorization", "x-amz-date", "x-amz-security-token"}
    }
    aws_request = AWSRequest(method=request.method, url=request.url, data=request.body, headers=headers)
    SigV4Auth(credentials, service, region).add_auth(aws_request)
    return replace(request, headers=dict(aws_request.headers.items()))
