"""Tests for the global configuration module."""

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from oprouter._config import (
    OPROUTER,
    ApiConfig,
    ConfigEntry,
    ConfigEnvVarError,
    ConfigValidationError,
    ConversationConfig,
    EnvVars,
    LoggingConfig,
    OpRouterConfig,
    RateLimitConfig,
    RetryConfig,
    load_env_file,
)

API_KEY = "sk-or-v1-0123456789abcdef0123"


class TestDefaults(unittest.TestCase):
    """Tests for hardcoded defaults."""

    def test_api_defaults(self):
        api = ApiConfig()
        self.assertIsNone(api.api_key)
        self.assertEqual(api.default_model, "x-ai/grok-4-fast:free")
        self.assertEqual(api.base_url, "https://openrouter.ai/api/v1")
        self.assertEqual(api.connect_timeout, 30.0)
        self.assertEqual(api.read_timeout, 300.0)
        self.assertFalse(api.has_api_key())

    def test_rate_limit_defaults(self):
        rate_limit = RateLimitConfig()
        self.assertEqual(rate_limit.max_concurrent_requests, 5)
        self.assertEqual(rate_limit.max_requests_per_minute, 60)
        self.assertEqual(rate_limit.period_seconds, 60.0)

    def test_retry_defaults(self):
        retry = RetryConfig()
        self.assertEqual(retry.max_retries, 5)
        self.assertEqual(retry.base_delay, 1.0)
        self.assertEqual(retry.max_delay, 60.0)
        self.assertEqual(retry.backoff_multiplier, 2.0)

    def test_logging_and_conversation_defaults(self):
        self.assertEqual(LoggingConfig().log_level, "INFO")
        self.assertEqual(LoggingConfig().log_file, "oprouter.log")
        self.assertTrue(LoggingConfig().enable_logging)
        self.assertEqual(ConversationConfig().history_limit, 100)

    def test_defaults_are_valid(self):
        self.assertIsInstance(OpRouterConfig().validate(), OpRouterConfig)


class TestEnvVars(unittest.TestCase):
    """Tests for EnvVars lookups and conversions."""

    @patch.dict(os.environ, {"MAX_RETRIES": "7"})
    def test_converts_int(self):
        self.assertEqual(EnvVars.get("MAX_RETRIES", type_hint=int), 7)

    @patch.dict(os.environ, {"ENABLE_LOGGING": "false"})
    def test_converts_bool(self):
        self.assertFalse(EnvVars.get("ENABLE_LOGGING", type_hint=bool))

    @patch.dict(os.environ, {"MAX_RETRIES": "many"})
    def test_invalid_value_raises_env_var_error(self):
        with self.assertRaises(ConfigEnvVarError) as ctx:
            EnvVars.get("MAX_RETRIES", type_hint=int)
        self.assertEqual(ctx.exception.env_var, "MAX_RETRIES")
        self.assertEqual(ctx.exception.value, "many")
        self.assertIn("expected int", str(ctx.exception))

    @patch.dict(os.environ, {"DEFAULT_MODEL": ""})
    def test_empty_value_is_ignored(self):
        self.assertIsNone(EnvVars.get("DEFAULT_MODEL"))

    @patch.dict(os.environ, {"DEFAULT_MODEL": "from-env"})
    def test_process_env_beats_file_values(self):
        value, origin = EnvVars.lookup("DEFAULT_MODEL", {"DEFAULT_MODEL": "from-file"})
        self.assertEqual((value, origin), ("from-env", "env"))

    def test_file_values_used_when_env_missing(self):
        with patch.dict(os.environ, {}, clear=True):
            value, origin = EnvVars.lookup("DEFAULT_MODEL", {"DEFAULT_MODEL": "from-file"})
        self.assertEqual((value, origin), ("from-file", "dotenv"))


class TestLoadEnvFile(unittest.TestCase):
    """Tests for load_env_file()."""

    def test_missing_file_returns_empty(self):
        self.assertEqual(load_env_file("/nonexistent/path/.env"), {})

    def test_none_disables_loading(self):
        self.assertEqual(load_env_file(None), {})

    def test_reads_values(self):
        with tempfile.TemporaryDirectory() as tmp:
            env_path = Path(tmp) / ".env"
            env_path.write_text(
                "# comment\n"
                f"OPENROUTER_API_KEY={API_KEY}\n"
                "MAX_RETRIES=2\n"
                "EMPTY_ONE\n",
                encoding="utf-8",
            )
            values = load_env_file(env_path)

        self.assertEqual(values["OPENROUTER_API_KEY"], API_KEY)
        self.assertEqual(values["MAX_RETRIES"], "2")
        self.assertNotIn("EMPTY_ONE", values)


class TestWithEnvVars(unittest.TestCase):
    """Tests for OpRouterConfig.with_env_vars() precedence and tracking."""

    @patch.dict(os.environ, {"MAX_RETRIES": "3", "READ_TIMEOUT": "120.5"})
    def test_env_vars_override_defaults(self):
        config = OpRouterConfig().with_env_vars(file_values={})
        self.assertEqual(config.retry.max_retries, 3)
        self.assertEqual(config.api.read_timeout, 120.5)
        self.assertEqual(config.rate_limit.max_concurrent_requests, 5)

    def test_dotenv_values_override_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            config = OpRouterConfig().with_env_vars(
                file_values={"OPENROUTER_API_KEY": API_KEY, "CONVERSATION_HISTORY_LIMIT": "10"}
            )
        self.assertEqual(config.api.api_key, API_KEY)
        self.assertEqual(config.conversation.history_limit, 10)

    @patch.dict(os.environ, {"MAX_CONCURRENT_REQUESTS": "9"})
    def test_env_beats_dotenv(self):
        config = OpRouterConfig().with_env_vars(file_values={"MAX_CONCURRENT_REQUESTS": "2"})
        self.assertEqual(config.rate_limit.max_concurrent_requests, 9)

    def test_sources_are_tracked(self):
        with patch.dict(os.environ, {"MAX_RETRIES": "4"}, clear=True):
            config = OpRouterConfig().with_env_vars(file_values={"DEFAULT_MODEL": "openai/gpt-4o-mini"})

        sources = {
            section: {entry.name: entry.source for entry in entries}
            for section, entries in config.explain_data().items()
        }
        self.assertEqual(sources["retry"]["max_retries"], "env:MAX_RETRIES")
        self.assertEqual(sources["api"]["default_model"], "dotenv:DEFAULT_MODEL")
        self.assertEqual(sources["api"]["base_url"], "default")

    def test_file_values_must_be_passed_by_keyword(self):
        """A positional dotenv mapping would bypass source tracking, so it is rejected."""
        with self.assertRaises(TypeError):
            OpRouterConfig().with_env_vars({"DEFAULT_MODEL": "openai/gpt-4o-mini"})


class TestWithOverrides(unittest.TestCase):
    """Tests for OverridableConfig.with_overrides()."""

    def test_returns_new_instance(self):
        original = RetryConfig()
        modified = original.with_overrides({"max_retries": 2})
        self.assertIsNot(original, modified)
        self.assertEqual(original.max_retries, 5)
        self.assertEqual(modified.max_retries, 2)

    def test_empty_overrides_return_same_instance(self):
        original = RetryConfig()
        self.assertIs(original.with_overrides({}), original)

    def test_none_values_are_filtered(self):
        modified = ApiConfig(api_key=API_KEY).with_overrides({"api_key": None})
        self.assertEqual(modified.api_key, API_KEY)

    def test_allow_none_fields(self):
        modified = ApiConfig(api_key=API_KEY).with_overrides({"api_key": None}, allow_none_fields={"api_key"})
        self.assertIsNone(modified.api_key)

    def test_unknown_field_raises(self):
        with self.assertRaises(ValueError) as ctx:
            RetryConfig().with_overrides({"max_retires": 3})
        self.assertIn("max_retires", str(ctx.exception))

    def test_section_overrides_tracked_as_configure(self):
        config = OpRouterConfig().with_section_overrides(retry={"max_retries": 2})
        retry_entries = {entry.name: entry for entry in config.explain_data()["retry"]}
        self.assertEqual(retry_entries["max_retries"].source, "configure")
        self.assertEqual(retry_entries["base_delay"].source, "default")


class TestValidation(unittest.TestCase):
    """Tests for section validation."""

    def test_invalid_values(self):
        cases = [
            (ApiConfig(api_key=""), "api_key"),
            (ApiConfig(default_model=""), "default_model"),
            (ApiConfig(base_url="openrouter.ai"), "base_url"),
            (ApiConfig(read_timeout=0), "read_timeout"),
            (RateLimitConfig(max_concurrent_requests=0), "max_concurrent_requests"),
            (RateLimitConfig(max_requests_per_minute=-1), "max_requests_per_minute"),
            (RetryConfig(max_retries=0), "max_retries"),
            (RetryConfig(backoff_multiplier=0.5), "backoff_multiplier"),
            (RetryConfig(jitter_max=-1.0), "jitter_max"),
            (LoggingConfig(log_level="LOUD"), "log_level"),
            (LoggingConfig(log_file=""), "log_file"),
            (ConversationConfig(history_limit=-1), "history_limit"),
        ]
        for section, field_name in cases:
            with self.subTest(field=field_name):
                with self.assertRaises(ConfigValidationError) as ctx:
                    section.validate()
                self.assertEqual(ctx.exception.field, field_name)

    def test_error_message_names_section(self):
        with self.assertRaises(ConfigValidationError) as ctx:
            RetryConfig(max_retries=0).validate()
        self.assertTrue(str(ctx.exception).startswith("[retry] Invalid value for 'max_retries': 0."))

    def test_logging_file_not_required_when_disabled(self):
        LoggingConfig(log_file="", enable_logging=False).validate()

    def test_history_limit_zero_is_valid(self):
        ConversationConfig(history_limit=0).validate()


class TestOPROUTERSingleton(unittest.TestCase):
    """Tests for OPROUTER.configure(), reset() and explain()."""

    def setUp(self):
        OPROUTER.reset()

    def tearDown(self):
        OPROUTER.reset()

    def test_configure_without_env(self):
        config = OPROUTER.configure(
            api={"api_key": API_KEY},
            retry={"max_retries": 2},
            allow_env_override=False,
        )
        self.assertIs(config, OPROUTER.config)
        self.assertEqual(OPROUTER.config.api.api_key, API_KEY)
        self.assertEqual(OPROUTER.config.retry.max_retries, 2)
        self.assertEqual(OPROUTER.config.retry.base_delay, 1.0)

    @patch.dict(os.environ, {"MAX_RETRIES": "8", "BASE_DELAY": "0.25"})
    def test_configure_beats_env(self):
        OPROUTER.configure(retry={"max_retries": 2}, env_file=None)
        self.assertEqual(OPROUTER.config.retry.max_retries, 2)
        self.assertEqual(OPROUTER.config.retry.base_delay, 0.25)

    @patch.dict(os.environ, {"MAX_RETRIES": "8"})
    def test_allow_env_override_false_ignores_env(self):
        OPROUTER.configure(allow_env_override=False)
        self.assertEqual(OPROUTER.config.retry.max_retries, 5)

    def test_configure_reads_given_env_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            env_path = Path(tmp) / "custom.env"
            env_path.write_text("DEFAULT_MODEL=openai/gpt-4o-mini\n", encoding="utf-8")
            with patch.dict(os.environ, {}, clear=True):
                OPROUTER.configure(env_file=env_path)
        self.assertEqual(OPROUTER.config.api.default_model, "openai/gpt-4o-mini")

    def test_configure_rejects_invalid_values(self):
        with self.assertRaises(ConfigValidationError):
            OPROUTER.configure(rate_limit={"max_concurrent_requests": 0}, allow_env_override=False)

    def test_configure_rejects_unknown_fields(self):
        with self.assertRaises(ValueError):
            OPROUTER.configure(retry={"retries": 2}, allow_env_override=False)

    def test_reset_restores_defaults(self):
        OPROUTER.configure(retry={"max_retries": 2}, allow_env_override=False)
        with patch.dict(os.environ, {}, clear=True):
            OPROUTER.reset()
        self.assertEqual(OPROUTER.config.retry.max_retries, 5)

    def test_explain_masks_api_key(self):
        OPROUTER.configure(api={"api_key": API_KEY}, allow_env_override=False)
        lines: list[str] = []

        OPROUTER.explain(output=lines.append)

        text = "\n".join(lines)
        self.assertEqual(lines[0], "OPROUTER Configuration:")
        self.assertIn("[api]", text)
        self.assertIn("[conversation]", text)
        self.assertNotIn(API_KEY, text)
        self.assertIn("sk-o********0123", text)
        api_key_line = next(line for line in lines if line.strip().startswith("api_key"))
        self.assertTrue(api_key_line.endswith("✎ configure"))


class TestConfigEntry(unittest.TestCase):
    """Tests for ConfigEntry.formatted_value."""

    def test_masks_api_key(self):
        entry = ConfigEntry("api_key", "sk-or-v1-super-secret-key", "env:OPENROUTER_API_KEY")
        self.assertEqual(entry.formatted_value, "sk-o********-key")

    def test_none_value(self):
        self.assertEqual(ConfigEntry("api_key", None, "default").formatted_value, "None")

    def test_truncates_long_values(self):
        entry = ConfigEntry("base_url", "https://" + "x" * 80, "configure")
        self.assertEqual(len(entry.formatted_value), 50)
        self.assertTrue(entry.formatted_value.endswith("..."))


if __name__ == "__main__":
    unittest.main()
