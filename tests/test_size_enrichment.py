import unittest
from unittest.mock import Mock

import requests

from catalog_sync.core.errors import EnrichmentPermanent, EnrichmentTransient, HttpStatusError
from catalog_sync.core.models import Decision, StoredRecord
from catalog_sync.enrich.size import SizeEnricher, classify_probe_error, resolve_size
from catalog_sync.http.policies import FailureKind, fixed_policy

from sync_fakes import MB


class TestClassifyProbeError(unittest.TestCase):
    def test_classification(self):
        self.assertEqual(classify_probe_error(HttpStatusError(404)), FailureKind.PERMANENT)
        self.assertEqual(classify_probe_error(HttpStatusError(403)), FailureKind.PERMANENT)
        self.assertEqual(classify_probe_error(HttpStatusError(405)), FailureKind.TRANSIENT)
        self.assertEqual(classify_probe_error(requests.Timeout()), FailureKind.TRANSIENT)
        self.assertEqual(classify_probe_error(HttpStatusError(500)), FailureKind.UNKNOWN)
        self.assertEqual(classify_probe_error(ValueError("x")), FailureKind.UNKNOWN)


class TestSizeEnricher(unittest.TestCase):
    def setUp(self):
        self.provider = Mock()
        self.sleep = Mock()
        self.enricher = SizeEnricher(self.provider, fixed_policy(max_retries=5, delay_s=2.0), sleep=self.sleep)

    def test_success_is_formatted(self):
        self.provider.probe.return_value = 42 * MB
        self.assertEqual(self.enricher.fetch_size("a"), "42MB")
        self.sleep.assert_not_called()

    def test_permanent_is_not_retried(self):
        self.provider.probe.side_effect = HttpStatusError(404)
        with self.assertRaises(EnrichmentPermanent) as ctx:
            self.enricher.fetch_size("a")
        self.assertEqual(ctx.exception.status_code, 404)
        self.assertEqual(self.provider.probe.call_count, 1)
        self.sleep.assert_not_called()

    def test_transient_is_retried_at_most_n_times(self):
        self.provider.probe.side_effect = HttpStatusError(405)
        with self.assertRaises(EnrichmentTransient) as ctx:
            self.enricher.fetch_size("a")
        self.assertEqual(ctx.exception.status_code, 405)
        self.assertEqual(self.provider.probe.call_count, 6)
        self.assertEqual(self.sleep.call_count, 5)
        self.sleep.assert_called_with(2.0)

    def test_timeout_then_success(self):
        self.provider.probe.side_effect = [requests.Timeout(), requests.Timeout(), 3 * MB]
        self.assertEqual(self.enricher.fetch_size("a"), "3MB")
        self.assertEqual(self.provider.probe.call_count, 3)
        self.assertEqual(self.sleep.call_count, 2)

    def test_timeouts_exhausted(self):
        self.provider.probe.side_effect = requests.Timeout()
        with self.assertRaises(EnrichmentTransient) as ctx:
            self.enricher.fetch_size("a")
        self.assertIsNone(ctx.exception.status_code)
        self.assertIn("timeout", str(ctx.exception))

    def test_unknown_error_propagates_immediately(self):
        self.provider.probe.side_effect = HttpStatusError(500)
        with self.assertRaises(HttpStatusError):
            self.enricher.fetch_size("a")
        self.assertEqual(self.provider.probe.call_count, 1)

    def test_custom_retry_count(self):
        enricher = SizeEnricher(self.provider, fixed_policy(max_retries=2, delay_s=0.5), sleep=self.sleep)
        self.provider.probe.side_effect = HttpStatusError(405)
        with self.assertRaises(EnrichmentTransient):
            enricher.fetch_size("a")
        self.assertEqual(self.provider.probe.call_count, 3)


class TestResolveSize(unittest.TestCase):
    def test_success_wins(self):
        self.assertEqual(resolve_size(Decision.INSERT, None, "9MB", None), "9MB")

    def test_failed_insert_is_skipped(self):
        err = EnrichmentPermanent("a", "status 404", 404)
        self.assertIsNone(resolve_size(Decision.INSERT, None, None, err))

    def test_failed_update_keeps_previous_size(self):
        existing = StoredRecord(external_id="a", version="1", size="55MB")
        err = EnrichmentTransient("a", "exhausted", 405)
        self.assertEqual(resolve_size(Decision.UPDATE, existing, None, err), "55MB")

    def test_failed_update_without_previous_size(self):
        existing = StoredRecord(external_id="a", version="1", size="")
        self.assertEqual(resolve_size(Decision.UPDATE, existing, None, RuntimeError()), "Unknown")


if __name__ == "__main__":
    unittest.main()
