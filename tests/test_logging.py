"""
Tests for log formatting and sensitive data filtering.
"""

import json
import logging

from hybridchat.core.logging_config import JSONFormatter, filter_sensitive_data, truncate_large_data


class TestFilterSensitiveData:
    def test_masks_credentials(self):
        data = {
            "x-goog-api-key": "secret-value",
            "api_key": "k",
            "apiKey": "k",
            "Authorization": "Bearer t",
            "access_token": "t",
        }
        assert all(v == "***FILTERED***" for v in filter_sensitive_data(data).values())

    def test_keeps_usage_counters(self):
        data = {"prompt_tokens": 3, "completion_tokens": 4, "total_tokens": 7}
        assert filter_sensitive_data(data) == data

    def test_nested(self):
        data = {"headers": [{"x-goog-api-key": "abc", "content-type": "application/json"}]}
        filtered = filter_sensitive_data(data)
        assert filtered["headers"][0]["x-goog-api-key"] == "***FILTERED***"
        assert filtered["headers"][0]["content-type"] == "application/json"


class TestTruncate:
    def test_short_text_untouched(self):
        assert truncate_large_data("abc", max_length=5) == "abc"

    def test_long_text_truncated(self):
        result = truncate_large_data("x" * 20, max_length=5)
        assert result.startswith("xxxxx... (truncated")
        assert "20" in result


class TestJSONFormatter:
    def test_extra_fields_filtered(self):
        record = logging.LogRecord("hybridchat", logging.INFO, __file__, 1, "stream done", None, None)
        record.extra_fields = {"model": "gemini-2.5-flash", "api_key": "k", "total_tokens": 7}

        payload = json.loads(JSONFormatter().format(record))

        assert payload["message"] == "stream done"
        assert payload["level"] == "INFO"
        assert payload["model"] == "gemini-2.5-flash"
        assert payload["api_key"] == "***FILTERED***"
        assert payload["total_tokens"] == 7
