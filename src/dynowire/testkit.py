from __future__ import annotations

from botocore.credentials import Credentials

from .mocks import ANY, FakeDynamoDBService


async def no_sleep(_: float) -> None:
    return None


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("seconds must be >= 0")
        self.delays.append(seconds)


def fake_credentials(
    access_key: str = "AKIDEXAMPLE",
    secret_key: str = "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
    token: str | None = None,
) -> Credentials:
    return Credentials(access_key, secret_key, token)


__all__ = [
    "ANY",
    "FakeDynamoDBService",
    "RecordingSleep",
    "fake_credentials",
    "no_sleep",
]
