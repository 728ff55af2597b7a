"""
Seed demo species, profiles and comments into the configured store.

Prints a session token per seeded profile so the protected pages and API
routes can be exercised locally, e.g.:

    curl -H "Authorization: Bearer <token>" http://localhost:8000/api/users
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from species_catalog.auth import create_session_token
from species_catalog.db import DbClient, ProfileRecord, SpeciesRecord, SqlDbClient
from species_catalog.dependencies import get_db_client


logger = logging.getLogger(__name__)

DEMO_PROFILES = [
    ProfileRecord(
        id="00000000-0000-0000-0000-000000000001",
        display_name="Alice",
        email="alice@example.com",
        biography="Field botanist.",
    ),
    ProfileRecord(
        id="00000000-0000-0000-0000-000000000002",
        display_name="Bob",
        email="bob@example.com",
        biography="Amateur herpetologist.",
    ),
]

DEMO_SPECIES = [
    SpeciesRecord(
        scientific_name="Ailuropoda melanoleuca",
        common_name="Giant panda",
        kingdom="Animalia",
        total_population=1864,
        description="A bear native to south central China, feeding almost entirely on bamboo.",
    ),
    SpeciesRecord(
        scientific_name="Sequoiadendron giganteum",
        common_name="Giant sequoia",
        kingdom="Plantae",
        description="The most massive single-trunk tree species, native to the Sierra Nevada.",
    ),
    SpeciesRecord(
        scientific_name="Amanita muscaria",
        common_name="Fly agaric",
        kingdom="Fungi",
        description="A red-capped, white-spotted mushroom of temperate and boreal forests.",
    ),
]


def seed(db: DbClient, *, with_comments: bool = True) -> list[SpeciesRecord]:
    for profile in DEMO_PROFILES:
        db.save_profile(profile)

    created = []
    for species in DEMO_SPECIES:
        record = db.create_species(
            SpeciesRecord(**{k: v for k, v in species.as_dict().items() if k != "id"})
        )
        created.append(record)
        logger.info("Seeded species %s (%s)", record.id, record.scientific_name)

    if with_comments and created:
        alice, bob = DEMO_PROFILES
        first = created[0]
        db.create_comment(first.id, alice.id, alice.display_name, "Saw one at the Chengdu base.")
        db.create_comment(first.id, bob.id, bob.display_name, "Population numbers look outdated.")
    return created


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--database-url",
        help="SQLAlchemy URL to seed; defaults to the configured DATABASE_URL.",
    )
    parser.add_argument(
        "--no-comments",
        action="store_true",
        help="Seed species and profiles only.",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    db = SqlDbClient(args.database_url) if args.database_url else get_db_client()
    seed(db, with_comments=not args.no_comments)

    for profile in DEMO_PROFILES:
        print(f"{profile.display_name}: {create_session_token(profile.id)}")


if __name__ == "__main__":
    main()
