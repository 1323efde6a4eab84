from __future__ import annotations

import asyncio
import os
import uuid

from dynowire import BatchPut, ClientConfig, DynamoClient
from dynowire.testkit import fake_credentials


def _config() -> ClientConfig:
    return ClientConfig.from_env(
        {
            "DYNAMODB_ENDPOINT": os.environ.get("DYNAMODB_ENDPOINT", "http://localhost:8000"),
            "AWS_REGION": os.environ.get("AWS_REGION", "us-east-1"),
        },
        max_retries=5,
    )


async def main() -> None:
    table_name = f"dynowire_example_{uuid.uuid4().hex[:12]}"
    creds = fake_credentials(
        os.environ.get("AWS_ACCESS_KEY_ID", "dummy"),
        os.environ.get("AWS_SECRET_ACCESS_KEY", "dummy"),
    )

    async with DynamoClient(_config(), credentials=creds) as client:
        await client.create_table(table_name, hash_key=("pk", "S"), range_key=("sk", "S"))
        try:
            await client.put_item(table_name, {"pk": "A", "sk": "001", "value": 1})
            print("get:", await client.get_item(table_name, "A", "001"))

            results = await client.batch_write(
                [BatchPut(table_name, {"pk": "B", "sk": f"{i:03d}", "value": i}) for i in range(60)]
            )
            print("batch_write:", [(len(r.batch.entries), r.response.cycles if r.response else 0) for r in results])

            got = await client.batch_get(table_name, [("B", f"{i:03d}") for i in range(60)])
            print("batch_get items:", len(got.items))
        finally:
            await client.delete_table(table_name)


if __name__ == "__main__":
    asyncio.run(main())
