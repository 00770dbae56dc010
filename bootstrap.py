# Seed the Urls table with a few pages to summarize
import asyncio
from app.config import pipeline_config
from app.db import SessionLocal, init_models
from app.models import Record
from app.services.records import ensure_table
from app.settings import settings_cache

SAMPLE_URLS = [
    "https://en.wikipedia.org/wiki/Automatic_summarization",
    "https://en.wikipedia.org/wiki/Python_(programming_language)",
    "https://en.wikipedia.org/wiki/Hypertext_Transfer_Protocol",
    "https://en.wikipedia.org/wiki/Rate_limiting",
    "https://en.wikipedia.org/wiki/JSON",
]

async def main():
    await init_models()
    await settings_cache.load()
    async with SessionLocal() as db:
        table = await ensure_table(
            db,
            pipeline_config.table_name,
            [pipeline_config.source_field, pipeline_config.destination_field],
        )
        for url in SAMPLE_URLS:
            db.add(Record(table_id=table.id, fields={pipeline_config.source_field: url}))
        await db.commit()
    print(f"Bootstrap complete: {len(SAMPLE_URLS)} records in {table.name}")
if __name__ == "__main__":
    asyncio.run(main())
