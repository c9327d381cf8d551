import unittest

from catalog_sync.core.errors import ItemMalformed
from catalog_sync.core.models import Candidate
from catalog_sync.transform.normalizers import (
    RecordProjector,
    display_installs,
    format_size,
    genre_slug,
    slugify,
)

from sync_fakes import MB, remote


class FixedRng:
    def __init__(self, percent):
        self.percent = percent

    def randint(self, a, b):
        return self.percent


class TestFormatSize(unittest.TestCase):
    def test_zero_or_missing_is_unknown(self):
        self.assertEqual(format_size(0), "Unknown")
        self.assertEqual(format_size(None), "Unknown")

    def test_megabytes_are_truncated(self):
        self.assertEqual(format_size(5 * MB), "5MB")
        self.assertEqual(format_size(int(87.9 * MB)), "87MB")
        self.assertEqual(format_size(int(999.5 * MB)), "999MB")

    def test_gigabytes_have_one_decimal(self):
        self.assertEqual(format_size(1000 * MB), "1GB")
        self.assertEqual(format_size(1536 * MB), "1.5GB")
        self.assertEqual(format_size(2000 * MB), "2GB")

    def test_half_tenths_round_up(self):
        self.assertEqual(format_size(1250 * MB), "1.3GB")
        self.assertEqual(format_size(1350 * MB), "1.4GB")


class TestSlugify(unittest.TestCase):
    def test_subtitle_is_dropped(self):
        self.assertEqual(slugify("Clash of Clans: Builder Base"), "clash-of-clans")
        self.assertEqual(slugify("Subway Surfers, Endless Run"), "subway-surfers")

    def test_marks_and_io(self):
        self.assertEqual(slugify("Candy Crush Saga™"), "candy-crush-saga")
        self.assertEqual(slugify("Agar.io"), "agar-io")

    def test_spaced_dash_is_kept_and_collapsed(self):
        self.assertEqual(slugify("TikTok - Videos"), "tiktok-videos")

    def test_bare_hyphen_cuts(self):
        self.assertEqual(slugify("Spider-Man Unlimited"), "spider")

    def test_genre_slug(self):
        self.assertEqual(genre_slug("GAME_ACTION"), "game-action")


class TestDisplayInstalls(unittest.TestCase):
    def test_thousands(self):
        self.assertEqual(display_installs("1,000,000+", FixedRng(30)), "300K+")

    def test_millions_with_decimal(self):
        self.assertEqual(display_installs("10,000,000+", FixedRng(35)), "3.5M+")

    def test_half_tenths_round_up(self):
        self.assertEqual(display_installs("3,125,000+", FixedRng(40)), "1.3M+")

    def test_small_numbers(self):
        self.assertEqual(display_installs("100+", FixedRng(30)), "30+")

    def test_invalid_raises(self):
        with self.assertRaises(ItemMalformed):
            display_installs("lots", FixedRng(30))


class TestRecordProjector(unittest.TestCase):
    def test_insert_doc_carries_flags_and_derived_fields(self):
        projector = RecordProjector(rng=FixedRng(40))
        doc = projector.insert_doc(
            Candidate("com.example.a", {"download_obb": True}),
            remote("com.example.a", installs="1,000+", title="Example: The Game"),
            "12MB",
            [{"text": "nice", "username": "Abcd1", "date": "2025-01-01"}],
            "2026-10-02T12:00:00+00:00",
        )
        self.assertEqual(doc["slug"], "example")
        self.assertEqual(doc["installs_display"], "400+")
        self.assertEqual(doc["size"], "12MB")
        self.assertEqual(doc["genre_slug"], "game-action")
        self.assertEqual(doc["developer_slug"], "dev-studio")
        self.assertTrue(doc["download_obb"])
        self.assertTrue(doc["available_on_store"])
        self.assertEqual(len(doc["comments"]), 1)

    def test_update_fields_without_comments_leave_them_out(self):
        fields = RecordProjector().update_fields(remote("a"), "3MB", None, "t")
        self.assertNotIn("comments", fields)
        self.assertEqual(fields["size"], "3MB")
        self.assertEqual(fields["version"], "2.0")


if __name__ == "__main__":
    unittest.main()
