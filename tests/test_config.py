"""
Tests for configuration validation using Pydantic models.
"""

import os
import shutil
import tempfile
import unittest

from catalog_sync.config_models import config_to_job, load_and_validate_config, validate_config


def base_config(**overrides):
    raw = {
        "job": {"id": "catalog", "name": "Store catalog"},
        "metadata": {"base_url": "https://meta.example.com/apps"},
    }
    raw.update(overrides)
    return raw


class TestConfigValidation(unittest.TestCase):
    def test_minimal_config_uses_defaults(self):
        config = validate_config(base_config())

        self.assertEqual(config.batch.size, 2)
        self.assertEqual(config.enrichment.max_retries, 5)
        self.assertEqual(config.schedule.runs_per_period, 33)
        self.assertEqual(config.schedule.window_days, [(1, 3), (24, 26)])
        self.assertEqual(config.audit, {"type": "sqlite"})

    def test_invalid_base_url(self):
        with self.assertRaises(ValueError) as ctx:
            validate_config(base_config(metadata={"base_url": "ftp://meta"}))
        self.assertIn("metadata.base_url", str(ctx.exception))

    def test_template_needs_placeholder(self):
        with self.assertRaises(ValueError) as ctx:
            validate_config(base_config(enrichment={"size_url_template": "https://dl.example.com/file"}))
        self.assertIn("{id}", str(ctx.exception))

    def test_pacing_bounds(self):
        with self.assertRaises(ValueError):
            validate_config(base_config(batch={"pacing_min_s": 5, "pacing_max_s": 1}))

    def test_window_days(self):
        with self.assertRaises(ValueError):
            validate_config(base_config(schedule={"window_days": [[20, 40]]}))

    def test_unknown_audit_type(self):
        with self.assertRaises(ValueError) as ctx:
            validate_config(base_config(audit={"type": "kafka"}))
        self.assertIn("Unknown audit type", str(ctx.exception))

    def test_google_sheets_audit_needs_sheet_id(self):
        with self.assertRaises(ValueError):
            validate_config(base_config(audit={"type": "google_sheets"}))

    def test_missing_job(self):
        raw = base_config()
        del raw["job"]
        with self.assertRaises(ValueError) as ctx:
            validate_config(raw)
        self.assertIn("job", str(ctx.exception))


class TestConfigToJob(unittest.TestCase):
    def test_mapping(self):
        config = validate_config(
            base_config(
                storage={"db_path": "data/c.db", "progress_path": "data/p.json"},
                enrichment={"max_retries": 3, "retry_delay_s": 0.5,
                            "comments_url_template": "https://meta.example.com/comments/{id}"},
                batch={"size": 4, "pacing_min_s": 0, "pacing_max_s": 0.5},
                schedule={"enabled": True, "interval_minutes": 30, "window_days": [[5, 6]],
                          "runs_per_period": 10, "run_budget_minutes": 20},
                audit={"type": "jsonl", "path": "data/log.jsonl"},
            )
        )

        job = config_to_job(config)

        self.assertEqual(job.id, "catalog")
        self.assertEqual(job.db_path, "data/c.db")
        self.assertEqual(job.progress_path, "data/p.json")
        self.assertEqual(job.batch_size, 4)
        self.assertEqual(job.pacing_max_s, 0.5)
        self.assertEqual(job.size.max_retries, 3)
        self.assertEqual(job.size.retry_delay_s, 0.5)
        self.assertEqual(job.comments_url_template, "https://meta.example.com/comments/{id}")
        self.assertEqual(job.schedule.window_days, ((5, 6),))
        self.assertEqual(job.schedule.runs_per_period, 10)
        self.assertEqual(job.schedule.run_budget_minutes, 20)
        self.assertEqual(job.audit_config, {"type": "jsonl", "path": "data/log.jsonl"})


class TestLoadConfig(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def test_load_yaml(self):
        path = os.path.join(self.tmp_dir, "job.yaml")
        with open(path, "w", encoding="utf-8") as f:
            f.write(
                "job:\n  id: demo\n  name: Demo\n"
                "metadata:\n  base_url: http://localhost:3000/apps\n"
                "batch:\n  size: 3\n"
            )
        config = load_and_validate_config(path)
        self.assertEqual(config.job.id, "demo")
        self.assertEqual(config.batch.size, 3)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            load_and_validate_config(os.path.join(self.tmp_dir, "nope.yaml"))

    def test_bad_yaml(self):
        path = os.path.join(self.tmp_dir, "bad.yaml")
        with open(path, "w", encoding="utf-8") as f:
            f.write("job: [unclosed\n")
        with self.assertRaises(ValueError):
            load_and_validate_config(path)

    def test_example_config_is_valid(self):
        root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        config = load_and_validate_config(os.path.join(root, "configs", "sync.example.yaml"))
        self.assertTrue(config.job.id)


if __name__ == "__main__":
    unittest.main()
