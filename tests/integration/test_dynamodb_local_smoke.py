from __future__ import annotations

import asyncio
import os
import uuid

import pytest

from dynowire import ClientConfig, DynamoClient
from dynowire.testkit import fake_credentials

pytestmark = pytest.mark.skipif(
    not os.environ.get("DYNAMODB_ENDPOINT"), reason="DYNAMODB_ENDPOINT is not set"
)


def test_dynamodb_local_smoke_put_get_delete() -> None:
    table_name = f"dynowire_smoke_{uuid.uuid4().hex[:12]}"
    config = ClientConfig.from_env(max_retries=3)
    creds = fake_credentials(
        os.environ.get("AWS_ACCESS_KEY_ID", "dummy"),
        os.environ.get("AWS_SECRET_ACCESS_KEY", "dummy"),
    )

    async def scenario() -> None:
        async with DynamoClient(config, credentials=creds) as client:
            await client.create_table(table_name, hash_key=("pk", "S"), range_key=("sk", "S"))
            try:
                await client.put_item(table_name, {"pk": "A", "sk": "B", "value": 1})
                item = await client.get_item(table_name, "A", "B", consistent_read=True)
                assert item is not None
                assert item["value"] == 1
                await client.delete_item(table_name, "A", "B")
                assert await client.get_item(table_name, "A", "B", consistent_read=True) is None
            finally:
                await client.delete_table(table_name)

    asyncio.run(scenario())
