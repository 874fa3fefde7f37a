"""
Seed the lead store with sample influencers, journalists and publishers,
plus a few random relationships between them.

Does nothing when the store already has leads.

Usage: python scripts/seed.py [--per-category 5] [--relationships 10]
"""

import argparse
import asyncio
import os
import random
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
load_dotenv(".env.local")

from leadnexus.config import Settings
from leadnexus.dependencies import Container
from leadnexus.errors import DuplicateEmailError
from leadnexus.models import LeadCategory, LeadCreate
from leadnexus.services.leads import LeadService

FIRST_NAMES = ["Ava", "Noah", "Maya", "Liam", "Zara", "Ethan", "Priya", "Lucas", "Chloe", "Omar", "Ines", "Kenji"]
LAST_NAMES = ["Patel", "Nguyen", "Okafor", "Schmidt", "Rossi", "Haddad", "Kowalski", "Silva", "Tanaka", "Moreau"]
CITIES = ["Austin", "London", "Berlin", "Toronto", "Lagos", "Singapore", "Lisbon", "Sydney"]
OUTLETS = ["The Guardian", "Reuters", "Bloomberg", "TechCrunch", "The Wall Street Journal"]

SOURCE_DOMAINS = {
    LeadCategory.INFLUENCER: ["instagram.com", "tiktok.com", "youtube.com", "twitter.com"],
    LeadCategory.JOURNALIST: ["linkedin.com", "muckrack.com", "twitter.com", "medium.com"],
    LeadCategory.PUBLISHER: ["linkedin.com", "crunchbase.com", "twitter.com"],
}

RELATIONSHIP_TYPES = ["collaborated_with", "mentioned_by", "partnered_with", "interviewed_by", "featured_in"]


def sample_bio(category: LeadCategory, name: str) -> str:
    if category == LeadCategory.INFLUENCER:
        niche = random.choice(["lifestyle", "tech", "fashion", "fitness", "travel", "food"])
        return (
            f"{name} is a {niche} influencer with {random.randint(10_000, 1_000_000):,} followers. "
            f"Known for {random.choice(['authentic content', 'engaging stories', 'creative campaigns'])}, "
            f"based in {random.choice(CITIES)}."
        )
    if category == LeadCategory.JOURNALIST:
        beat = random.choice(["technology", "business", "politics", "culture", "science"])
        return (
            f"{name} is a {random.choice(['senior', 'investigative', 'freelance', 'staff'])} journalist "
            f"covering {beat}. With {random.randint(5, 20)} years of experience, "
            f"they have written for {random.choice(OUTLETS)}."
        )
    role = random.choice(["Editor-in-Chief", "Managing Editor", "Publisher", "Content Director"])
    return (
        f"{name} is the {role} of {random.choice(LAST_NAMES)} Media, reaching "
        f"{random.randint(100_000, 10_000_000):,} monthly readers. "
        f"Focus: {random.choice(['audience development', 'editorial planning', 'content partnerships'])}."
    )


def sample_lead(category: LeadCategory) -> LeadCreate:
    first, last = random.choice(FIRST_NAMES), random.choice(LAST_NAMES)
    name = f"{first} {last}"
    handle = f"{first}{last}{random.randint(1, 999)}".lower()
    return LeadCreate(
        category=category,
        name=name,
        email=f"{handle}@example.com",
        bio=sample_bio(category, name),
        source_url=f"https://{random.choice(SOURCE_DOMAINS[category])}/{handle}",
    )


async def create_sample_leads(service: LeadService, per_category: int, attempts: int = 3) -> list:
    """Create sample leads, drawing a fresh sample when an email is already taken."""
    created = []
    for category in LeadCategory:
        print(f"\nCreating {category.value}s...")
        for _ in range(per_category):
            for _ in range(attempts):
                try:
                    lead = await service.create_lead(sample_lead(category))
                except DuplicateEmailError:
                    continue
                created.append(lead)
                print(f"   + {category.value}: {lead.name}")
                break
            else:
                print(f"   ! Skipped a {category.value}: no free email after {attempts} tries")
    return created


async def seed(per_category: int, relationships: int) -> None:
    container = Container(Settings.from_env())
    service = LeadService(container.lead_store, container.embedder, container.memory)

    try:
        _, existing = await service.list_leads(page=1, page_size=1)
        if existing > 0:
            print("Database already contains data. Skipping seed.")
            print(f"   Found {existing} existing leads.")
            return

        created = await create_sample_leads(service, per_category)

        print("\nCreating lead relationships...")
        made = 0
        for _ in range(relationships if len(created) > 1 else 0):
            lead1, lead2 = random.sample(created, 2)
            relationship_type = random.choice(RELATIONSHIP_TYPES)
            await service.add_relationship(lead1.id, lead2.id, relationship_type)
            made += 1
            print(f"   + {lead1.category.value} {relationship_type} {lead2.category.value}")

        print("\n" + "=" * 60)
        print("Seeding completed")
        print(f"   - {len(created)} leads created")
        print(f"   - {made} relationships created")
        print("=" * 60)
    finally:
        await container.aclose()


def main():
    parser = argparse.ArgumentParser(description="Seed sample leads")
    parser.add_argument("--per-category", type=int, default=5)
    parser.add_argument("--relationships", type=int, default=10)
    args = parser.parse_args()
    asyncio.run(seed(args.per_category, args.relationships))


if __name__ == "__main__":
    main()
