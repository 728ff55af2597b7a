import unittest
from datetime import datetime, timedelta, timezone

from species_catalog.db import (
    Base,
    DataAccessError,
    InMemoryDbClient,
    ProfileRecord,
    SpeciesRecord,
    SqlDbClient,
)


class DbClientContract:
    """Behaviour shared by every DbClient implementation."""

    def make_db(self):
        raise NotImplementedError

    def setUp(self):
        self.db = self.make_db()
        self.panda = self.db.create_species(
            SpeciesRecord(scientific_name="Ailuropoda melanoleuca", kingdom="Animalia")
        )
        self.oak = self.db.create_species(
            SpeciesRecord(scientific_name="Quercus robur", kingdom="Plantae")
        )

    def test_create_and_get_species(self):
        fetched = self.db.get_species(self.panda.id)
        self.assertIsNotNone(fetched)
        self.assertEqual(fetched.scientific_name, "Ailuropoda melanoleuca")
        self.assertIsNone(fetched.total_population)
        self.assertIsNone(self.db.get_species(9999))

    def test_list_species_sorted_by_scientific_name(self):
        self.db.create_species(SpeciesRecord(scientific_name="Abies alba", kingdom="Plantae"))
        names = [s.scientific_name for s in self.db.list_species()]
        self.assertEqual(
            names, ["Abies alba", "Ailuropoda melanoleuca", "Quercus robur"]
        )

    def test_delete_species_and_its_comments(self):
        for text in ("one", "two", "three"):
            self.db.create_comment(self.panda.id, "u1", "Alice", text)
        self.db.create_comment(self.oak.id, "u1", "Alice", "keep me")

        self.assertEqual(self.db.delete_species(self.panda.id), 1)
        self.assertEqual(self.db.delete_comments_for_species(self.panda.id), 3)

        self.assertIsNone(self.db.get_species(self.panda.id))
        self.assertEqual(self.db.list_comments(self.panda.id), [])
        self.assertEqual(len(self.db.list_comments(self.oak.id)), 1)

    def test_delete_missing_species_deletes_nothing(self):
        self.assertEqual(self.db.delete_species(9999), 0)

    def test_list_comments_ordering(self):
        first = self.db.create_comment(self.panda.id, "u1", "Alice", "first")
        second = self.db.create_comment(self.panda.id, "u2", "Bob", "second")

        ascending = [c.id for c in self.db.list_comments(self.panda.id)]
        descending = [c.id for c in self.db.list_comments(self.panda.id, ascending=False)]
        self.assertEqual(ascending, [first.id, second.id])
        self.assertEqual(descending, [second.id, first.id])

    def test_comment_timestamps_are_timezone_aware(self):
        comment = self.db.create_comment(self.panda.id, "u1", "Alice", "hi")
        fetched = self.db.list_comments(self.panda.id)[0]
        self.assertEqual(fetched.id, comment.id)
        self.assertIsNotNone(fetched.created_at.tzinfo)
        self.assertLess(
            abs(fetched.created_at - datetime.now(timezone.utc)), timedelta(minutes=1)
        )

    def test_delete_comment_requires_matching_author_and_species(self):
        comment = self.db.create_comment(self.panda.id, "u1", "Alice", "mine")

        self.assertEqual(
            self.db.delete_comment(comment.id, species_id=self.panda.id, author="u2"), 0
        )
        self.assertEqual(
            self.db.delete_comment(comment.id, species_id=self.oak.id, author="u1"), 0
        )
        self.assertEqual(len(self.db.list_comments(self.panda.id)), 1)

        self.assertEqual(
            self.db.delete_comment(comment.id, species_id=self.panda.id, author="u1"), 1
        )
        self.assertEqual(self.db.list_comments(self.panda.id), [])

    def test_profiles_listed_by_id_descending(self):
        for profile_id, name in (("a", "Ann"), ("c", "Cid"), ("b", "Bea")):
            self.db.save_profile(
                ProfileRecord(id=profile_id, display_name=name, email=f"{profile_id}@x.test")
            )
        self.assertEqual([p.id for p in self.db.list_profiles()], ["c", "b", "a"])

    def test_save_profile_updates_existing(self):
        self.db.save_profile(ProfileRecord(id="a", display_name="Ann", email="a@x.test"))
        self.db.save_profile(
            ProfileRecord(id="a", display_name="Annie", email="a@x.test", biography="hi")
        )
        profile = self.db.get_profile("a")
        self.assertEqual(profile.display_name, "Annie")
        self.assertEqual(profile.biography, "hi")
        self.assertIsNone(self.db.get_profile("missing"))


class InMemoryDbClientTests(DbClientContract, unittest.TestCase):
    def make_db(self):
        return InMemoryDbClient()

    def test_reset_clears_everything(self):
        self.db.create_comment(self.panda.id, "u1", "Alice", "hi")
        self.db.reset()
        self.assertEqual(self.db.list_species(), [])
        self.assertEqual(self.db.comments, {})
        self.assertEqual(self.db.create_species(
            SpeciesRecord(scientific_name="Abies alba", kingdom="Plantae")
        ).id, 1)


class SqlDbClientTests(DbClientContract, unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the SQL client logic.
    """

    def make_db(self):
        return SqlDbClient("sqlite+pysqlite:///:memory:")

    def test_backend_failures_raise_data_access_error(self):
        Base.metadata.drop_all(self.db.engine)
        with self.assertRaises(DataAccessError) as ctx:
            self.db.list_species()
        self.assertIn("species", ctx.exception.message)

    def test_requires_database_url(self):
        with self.assertRaises(ValueError):
            SqlDbClient("")


if __name__ == "__main__":
    unittest.main()
