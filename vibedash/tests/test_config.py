import os
import unittest
from unittest.mock import patch

from vibedash import config
from vibedash.observability import otel


class ConfigHelperTests(unittest.TestCase):
    def test_env_bool(self) -> None:
        with patch.dict(os.environ, {"VIBEDASH_TEST_FLAG": " Yes "}):
            self.assertTrue(config._env_bool("VIBEDASH_TEST_FLAG"))
        with patch.dict(os.environ, {"VIBEDASH_TEST_FLAG": "off"}):
            self.assertFalse(config._env_bool("VIBEDASH_TEST_FLAG", True))
        self.assertTrue(config._env_bool("VIBEDASH_TEST_FLAG_UNSET", True))

    def test_env_int_falls_back_on_invalid_values(self) -> None:
        with patch.dict(os.environ, {"VIBEDASH_TEST_INT": "250"}):
            self.assertEqual(config._env_int("VIBEDASH_TEST_INT", 100), 250)
        with patch.dict(os.environ, {"VIBEDASH_TEST_INT": "lots"}):
            self.assertEqual(config._env_int("VIBEDASH_TEST_INT", 100), 100)

    def test_defaults(self) -> None:
        self.assertGreaterEqual(config.INGEST_BATCH_SIZE, 1)
        self.assertTrue(config.MCP_TOOL_PREFIX)


class ObservabilityDisabledTests(unittest.TestCase):
    def test_helpers_are_noops_when_disabled(self) -> None:
        with patch.object(otel, "_enabled", False), patch.object(otel, "_prom_enabled", False):
            with otel.start_span("vibedash.test", {"project": "api"}) as span:
                self.assertIsNone(span)
            otel.record_ingestion("success", 12.5, project="api")
            otel.record_parser_failure("line", project="api", count=3)
            otel.record_line_categories({"user_text": 2, "other": 0}, project="api")

    def test_signal_endpoint(self) -> None:
        self.assertEqual(otel._signal_endpoint("http://collector:4318", "/v1/traces"), "http://collector:4318/v1/traces")
        self.assertEqual(otel._signal_endpoint("http://collector:4318/v1/", "/v1/metrics"), "http://collector:4318/v1/metrics")
        self.assertEqual(otel._signal_endpoint("", "/v1/traces"), "")


if __name__ == "__main__":
    unittest.main()
