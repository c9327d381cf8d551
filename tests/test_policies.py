import random
import unittest
from unittest.mock import Mock

from catalog_sync.http.policies import (
    FailureKind,
    PacingDelay,
    RetriesExhausted,
    RetryPolicy,
    call_with_retry,
    fixed_policy,
)


class TestRetryPolicy(unittest.TestCase):
    def test_fixed_policy_delay_is_constant(self):
        policy = fixed_policy(max_retries=3, delay_s=2.0)
        self.assertEqual(policy.max_attempts, 4)
        self.assertEqual([policy.delay_for(i) for i in range(3)], [2.0, 2.0, 2.0])

    def test_exponential_policy(self):
        policy = RetryPolicy(max_retries=3, base_delay_s=1.0, backoff_factor=2.0, jitter_s=0.0)
        self.assertEqual([policy.delay_for(i) for i in range(3)], [1.0, 2.0, 4.0])


class TestCallWithRetry(unittest.TestCase):
    def test_on_retry_is_reported(self):
        fn = Mock(side_effect=[TimeoutError(), "ok"])
        on_retry = Mock()
        result = call_with_retry(
            fn,
            fixed_policy(2, 0.0),
            lambda e: FailureKind.TRANSIENT,
            sleep=Mock(),
            on_retry=on_retry,
        )
        self.assertEqual(result, "ok")
        on_retry.assert_called_once()
        self.assertEqual(on_retry.call_args.args[0], 1)

    def test_exhausted_keeps_last_error(self):
        err = TimeoutError("slow")
        with self.assertRaises(RetriesExhausted) as ctx:
            call_with_retry(Mock(side_effect=err), fixed_policy(1, 0.0), lambda e: FailureKind.TRANSIENT, sleep=Mock())
        self.assertIs(ctx.exception.last_exc, err)
        self.assertEqual(ctx.exception.attempts, 2)

    def test_permanent_reraises_original(self):
        fn = Mock(side_effect=KeyError("x"))
        with self.assertRaises(KeyError):
            call_with_retry(fn, fixed_policy(5, 0.0), lambda e: FailureKind.PERMANENT, sleep=Mock())
        self.assertEqual(fn.call_count, 1)


class TestPacingDelay(unittest.TestCase):
    def test_delay_within_bounds(self):
        sleep = Mock()
        pacing = PacingDelay(1.0, 3.0, sleep=sleep, rng=random.Random(3))
        for _ in range(20):
            delay = pacing.sleep()
            self.assertGreaterEqual(delay, 1.0)
            self.assertLessEqual(delay, 3.0)
        self.assertEqual(sleep.call_count, 20)

    def test_zero_pacing_does_not_sleep(self):
        sleep = Mock()
        PacingDelay(0.0, 0.0, sleep=sleep).sleep()
        sleep.assert_not_called()

    def test_invalid_bounds(self):
        with self.assertRaises(ValueError):
            PacingDelay(3.0, 1.0)


if __name__ == "__main__":
    unittest.main()
