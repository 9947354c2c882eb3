import asyncio
import json

from eventbus.management import list_queue_infos


async def main() -> None:
    for info in await list_queue_infos():
        print(json.dumps(info.model_dump()))


if __name__ == "__main__":
    asyncio.run(main())
