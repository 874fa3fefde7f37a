"""Print lead counts per category and a few sample rows."""
import asyncio
import os
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
load_dotenv(".env.local")

from leadnexus.config import Settings
from leadnexus.dependencies import Container
from leadnexus.models import LeadCategory


async def main():
    container = Container(Settings.from_env())
    store = container.lead_store

    try:
        _, total = await store.list(page=1, page_size=1)
        print(f"\n=== Leads ({store.name}) ===")
        print(f"  total: {total}")
        for category in LeadCategory:
            leads, count = await store.list(category, page=1, page_size=3)
            print(f"  {category.value}: {count}")
            for lead in leads:
                print(f"    - {lead.name} <{lead.email}> {lead.source_url}")
    finally:
        await container.aclose()


if __name__ == "__main__":
    asyncio.run(main())
