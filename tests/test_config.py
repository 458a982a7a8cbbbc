import logging
import os
from types import SimpleNamespace

import pytest
import yaml

from weddingsite.config import ConfigError, Settings, load_dotenv, load_settings, split_addresses
from weddingsite.log import RequestLogger, configure_logging, resolve_level
from weddingsite.web import CorrelationIds


class TestFromEnv:
    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.comments_table == "photo_comments"
        assert settings.subscriptions_table == "photo_subscriptions"
        assert settings.default_page_size == 20
        assert settings.max_page_size == 100
        assert settings.use_recaptcha is False
        assert settings.contact_recipients == []

    def test_reads_environment(self):
        settings = Settings.from_env({
            "MY_AWS_REGION": "eu-south-1",
            "AWS_REGION": "us-east-1",
            "COMMENTS_TABLE": "comments-prod",
            "DEFAULT_PAGE_SIZE": "10",
            "DEFAULT_ORDER": "ASC",
            "USE_RECAPTCHA": "True",
            "RECAPTCHA_TIMEOUT": "1.5",
            "SMTP_SECURE": "true",
            "TO_EMAIL": "a@example.com, b@example.com,,",
            "PUBLIC_SITE": "https://site.example.com/",
            "LOG_LEVEL": "debug",
        })
        assert settings.aws_region == "eu-south-1"
        assert settings.comments_table == "comments-prod"
        assert settings.default_page_size == 10
        assert settings.default_order == "asc"
        assert settings.use_recaptcha is True
        assert settings.recaptcha_timeout == 1.5
        assert settings.smtp_secure is True
        assert settings.contact_recipients == ["a@example.com", "b@example.com"]
        assert settings.public_site == "https://site.example.com"
        assert settings.log_level == "DEBUG"

    def test_falls_back_to_aws_region(self):
        assert Settings.from_env({"AWS_REGION": "us-east-1"}).aws_region == "us-east-1"

    def test_empty_values_use_defaults(self):
        assert Settings.from_env({"DEFAULT_PAGE_SIZE": ""}).default_page_size == 20

    @pytest.mark.parametrize("name", ["DEFAULT_PAGE_SIZE", "SMTP_PORT", "RECAPTCHA_TIMEOUT"])
    def test_bad_numbers(self, name):
        with pytest.raises(ConfigError, match=name):
            Settings.from_env({name: "lots"})


class TestOverrides:
    def test_yaml_file_overrides_environment(self, tmp_path):
        path = tmp_path / "wedding.yaml"
        with open(path, "w") as f:
            yaml.dump({"default_page_size": 5, "owner_emails": "x@example.com, y@example.com"}, f)

        settings = load_settings({"DEFAULT_PAGE_SIZE": "10", "WEDDING_CONFIG_FILE": str(path)})
        assert settings.default_page_size == 5
        assert settings.owner_emails == ["x@example.com", "y@example.com"]

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "wedding.yaml"
        path.write_text("use_recaptcha: true\n")
        assert load_settings({}, config_path=path).use_recaptcha is True

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_settings({}, config_path=path) == Settings.from_env({})

    def test_unknown_key(self):
        with pytest.raises(ConfigError, match="page_sise"):
            Settings().with_overrides({"page_sise": 3})


class TestDotenv:
    def test_existing_values_win(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text('# comment\nSMTP_HOST="smtp.example.com"\nLOG_LEVEL=DEBUG\n\n')
        monkeypatch.setenv("SMTP_HOST", "")
        monkeypatch.delenv("SMTP_HOST")
        monkeypatch.setenv("LOG_LEVEL", "WARNING")

        load_dotenv(env_file)

        assert os.environ["SMTP_HOST"] == "smtp.example.com"
        assert os.environ["LOG_LEVEL"] == "WARNING"

    def test_missing_file(self, tmp_path):
        load_dotenv(tmp_path / "nope.env")


def test_split_addresses():
    assert split_addresses(None) == []
    assert split_addresses(" a@example.com ,b@example.com ") == ["a@example.com", "b@example.com"]


class TestLogging:
    def test_single_line_folds_tracebacks(self):
        logger = configure_logging("DEBUG", single_line=True)
        record = logging.LogRecord("weddingsite.x", logging.ERROR, __file__, 1, "line one\nline two", None, None)
        formatted = logger.handlers[0].formatter.format(record)
        assert "\n" not in formatted
        assert "line one --> line two" in formatted
        configure_logging("INFO", single_line=False)

    def test_request_logger_tags_messages(self):
        logger = logging.getLogger("weddingsite.tests")
        adapter = RequestLogger(logger, CorrelationIds("lambda-1", "gw-1"))
        msg, _ = adapter.process("hello", {})
        assert msg == "awsRequestId:lambda-1 | apiRequestId:gw-1 | hello"

    def test_request_logger_without_ids(self):
        adapter = RequestLogger(logging.getLogger("weddingsite.tests"), SimpleNamespace(request_id=None, api_request_id=None))
        assert adapter.process("hello", {}) == ("hello", {})

    @pytest.mark.parametrize("name, level", [
        ("silly", logging.DEBUG),
        ("verbose", logging.DEBUG),
        ("debug", logging.DEBUG),
        ("http", logging.INFO),
        ("warn", logging.WARNING),
        ("ERROR", logging.ERROR),
    ])
    def test_level_names(self, name, level):
        assert resolve_level(name) == (level, True)
        assert configure_logging(name, single_line=False).level == level
        configure_logging("INFO", single_line=False)

    def test_unknown_level_falls_back_to_info_with_warning(self):
        records = []

        class Recorder(logging.Handler):
            def emit(self, record):
                records.append(record)

        recorder = Recorder()
        package_logger = logging.getLogger("weddingsite")
        package_logger.addHandler(recorder)
        try:
            logger = configure_logging("loud", single_line=False)
        finally:
            package_logger.removeHandler(recorder)
            configure_logging("INFO", single_line=False)

        assert logger.level == logging.INFO
        assert resolve_level("loud") == (logging.INFO, False)
        assert [r.levelno for r in records] == [logging.WARNING]
        assert "loud" in records[0].getMessage()

    def test_level_read_from_environment(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "silly")
        assert configure_logging().level == logging.DEBUG
        configure_logging("INFO", single_line=False)
