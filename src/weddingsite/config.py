"""Configuration handling and validation.

Settings are read once per process from the environment, optionally
overridden by a YAML file, and passed to every handler explicitly.

Environment variables:
    MY_AWS_REGION / AWS_REGION     : region for DynamoDB, SNS and Lambda clients
    COMMENTS_TABLE                 : comments table (default "photo_comments")
    COMMENTS_INDEX_NAME            : commentId secondary index
    SUBSCRIPTIONS_TABLE            : subscriptions table
    DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, DEFAULT_ORDER
    AUTHOR_NAME_REGEX, CONTENT_MAX_LENGTH
    USE_RECAPTCHA, RECAPTCHA_SECRET_KEY, RECAPTCHA_VERIFY_URL,
    RECAPTCHA_TIMEOUT, CAPTCHA_VALIDATOR_FUNCTION_NAME
    SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASS, SMTP_SECURE, MAIL_FROM_NAME
    COMMENT_SNS_TOPIC_ARN, EMAIL_SNS_TOPIC_ARN
    TO_EMAIL, OWNER_EMAILS         : comma separated address lists
    PUBLIC_SITE, API_DOMAIN
    LOG_LEVEL, LOG_SINGLE_LINE
    WEDDING_CONFIG_FILE            : optional YAML file with overrides
"""

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

DEFAULT_AUTHOR_NAME_REGEX = r"^[a-zA-ZÀ-ÿ0-9' -]+$"
RECAPTCHA_VERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"


class ConfigError(ValueError):
    """Raised when a configuration value cannot be parsed."""


@dataclass(frozen=True)
class Settings:
    aws_region: str = "eu-west-1"

    comments_table: str = "photo_comments"
    comments_index: str = "commentId-index"
    subscriptions_table: str = "photo_subscriptions"

    default_page_size: int = 20
    max_page_size: int = 100
    default_order: str = "desc"

    author_name_regex: str = DEFAULT_AUTHOR_NAME_REGEX
    content_max_length: int = 2000

    use_recaptcha: bool = False
    recaptcha_secret_key: Optional[str] = None
    recaptcha_verify_url: str = RECAPTCHA_VERIFY_URL
    recaptcha_timeout: float = 3.5
    captcha_validator_function_name: Optional[str] = None

    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_pass: Optional[str] = None
    smtp_secure: bool = False
    mail_from_name: str = "Wedding Site"

    comment_topic_arn: Optional[str] = None
    email_topic_arn: Optional[str] = None
    contact_recipients: List[str] = field(default_factory=list)
    owner_emails: List[str] = field(default_factory=list)

    public_site: str = "https://matrimonio.chiaraesimone.it"
    api_domain: str = "https://matrimonio.api.chiaraesimone.it"

    log_level: str = "INFO"
    log_single_line: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        defaults = cls()

        def get(name: str, default):
            value = env.get(name)
            return default if value is None or value == "" else value

        return cls(
            aws_region=get("MY_AWS_REGION", get("AWS_REGION", defaults.aws_region)),
            comments_table=get("COMMENTS_TABLE", defaults.comments_table),
            comments_index=get("COMMENTS_INDEX_NAME", defaults.comments_index),
            subscriptions_table=get("SUBSCRIPTIONS_TABLE", defaults.subscriptions_table),
            default_page_size=_parse_int("DEFAULT_PAGE_SIZE", get("DEFAULT_PAGE_SIZE", defaults.default_page_size)),
            max_page_size=_parse_int("MAX_PAGE_SIZE", get("MAX_PAGE_SIZE", defaults.max_page_size)),
            default_order=str(get("DEFAULT_ORDER", defaults.default_order)).lower(),
            author_name_regex=get("AUTHOR_NAME_REGEX", defaults.author_name_regex),
            content_max_length=_parse_int("CONTENT_MAX_LENGTH", get("CONTENT_MAX_LENGTH", defaults.content_max_length)),
            use_recaptcha=_parse_bool(get("USE_RECAPTCHA", "false")),
            recaptcha_secret_key=get("RECAPTCHA_SECRET_KEY", None),
            recaptcha_verify_url=get("RECAPTCHA_VERIFY_URL", defaults.recaptcha_verify_url),
            recaptcha_timeout=_parse_float("RECAPTCHA_TIMEOUT", get("RECAPTCHA_TIMEOUT", defaults.recaptcha_timeout)),
            captcha_validator_function_name=get("CAPTCHA_VALIDATOR_FUNCTION_NAME", None),
            smtp_host=get("SMTP_HOST", None),
            smtp_port=_parse_int("SMTP_PORT", get("SMTP_PORT", defaults.smtp_port)),
            smtp_user=get("SMTP_USER", None),
            smtp_pass=get("SMTP_PASS", None),
            smtp_secure=_parse_bool(get("SMTP_SECURE", "false")),
            mail_from_name=get("MAIL_FROM_NAME", defaults.mail_from_name),
            comment_topic_arn=get("COMMENT_SNS_TOPIC_ARN", None),
            email_topic_arn=get("EMAIL_SNS_TOPIC_ARN", None),
            contact_recipients=split_addresses(get("TO_EMAIL", "")),
            owner_emails=split_addresses(get("OWNER_EMAILS", "")),
            public_site=str(get("PUBLIC_SITE", defaults.public_site)).rstrip("/"),
            api_domain=str(get("API_DOMAIN", defaults.api_domain)).rstrip("/"),
            log_level=str(get("LOG_LEVEL", defaults.log_level)).upper(),
            log_single_line=_parse_bool(get("LOG_SINGLE_LINE", "false")),
        )

    def with_overrides(self, overrides: Mapping[str, Any]) -> "Settings":
        """Return a copy with the given field values replaced.

        Unknown keys raise ConfigError so typos in an overrides file are
        caught at start-up rather than silently ignored.
        """
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        values = dict(overrides)
        for key in ("contact_recipients", "owner_emails"):
            if isinstance(values.get(key), str):
                values[key] = split_addresses(values[key])
        return replace(self, **values)


def split_addresses(raw: Optional[str]) -> List[str]:
    """Split a comma separated address list, dropping blanks."""
    if not raw:
        return []
    return [part.strip() for part in str(raw).split(",") if part.strip()]


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


def _parse_int(name: str, value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None


def _parse_float(name: str, value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}") from None


def load_config_file(config_path: Path) -> Dict[str, Any]:
    """Load configuration overrides from a YAML file."""
    with open(config_path, "r") as f:
        return yaml.safe_load(f) or {}


def load_dotenv(env_path: Optional[Path] = None) -> None:
    """Load a .env file into the environment if it exists.

    Values already present in the environment win.
    """
    if env_path is None:
        env_path = Path(__file__).resolve().parent.parent.parent / ".env"
    if not env_path.exists():
        return
    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            key, _, value = line.partition("=")
            value = value.strip().strip('"').strip("'")
            os.environ.setdefault(key.strip(), value)


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    config_path: Optional[Path] = None,
) -> Settings:
    """Build the process-wide settings.

    Args:
        environ: Environment mapping; defaults to os.environ.
        config_path: YAML overrides file; defaults to $WEDDING_CONFIG_FILE.

    Returns:
        Settings with environment values and file overrides applied.
    """
    env = os.environ if environ is None else environ
    settings = Settings.from_env(env)

    if config_path is None and env.get("WEDDING_CONFIG_FILE"):
        config_path = Path(env["WEDDING_CONFIG_FILE"])
    if config_path is not None:
        settings = settings.with_overrides(load_config_file(config_path))

    return settings
