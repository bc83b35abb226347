"""
This module encapsulates the reading and processing of the config file
/etc/ant-support.yaml and provides callers with a mechanism to access the
various properties specified therein.  Values from the environment (DB_HOST,
DATABASE_URL, CORS_ORIGINS, ...) take precedence over the file.
"""

import os

import yaml

# Check for system config first, then fall back to development config
if os.name == "nt":  # Windows
    CONFIG_PATH = r"C:\ProgramData\AntSupport\ant-support.yaml"
else:  # Unix-like (Linux, macOS, BSD)
    CONFIG_PATH = "/etc/ant-support.yaml"

DEV_CONFIG_PATHS = ("ant-support-dev.yaml", "ant-support-dev.yaml.example")

_config = None


class ConfigError(Exception):
    """Raised when the configuration file cannot be parsed."""


def _resolve_config_path():
    """Return the first config file that exists, or None."""
    env_path = os.getenv("ANT_SUPPORT_CONFIG")
    if env_path:
        return env_path
    if os.path.exists(CONFIG_PATH):
        return CONFIG_PATH
    for candidate in DEV_CONFIG_PATHS:
        if os.path.exists(candidate):
            return candidate
    return None


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _apply_defaults(config):
    """Fill in every key the application reads."""
    if not "api" in config.keys():
        config["api"] = {}
    if not "host" in config["api"].keys():
        config["api"]["host"] = "0.0.0.0"  # nosec B104
    if not "port" in config["api"].keys():
        config["api"]["port"] = 3000
    if not "fail_fast" in config["api"].keys():
        config["api"]["fail_fast"] = True

    # Database settings
    if not "database" in config.keys():
        config["database"] = {}
    if not "url" in config["database"].keys():
        config["database"]["url"] = None
    if not "host" in config["database"].keys():
        config["database"]["host"] = "localhost"
    if not "port" in config["database"].keys():
        config["database"]["port"] = 5432
    if not "name" in config["database"].keys():
        config["database"]["name"] = "ant_support"
    if not "user" in config["database"].keys():
        config["database"]["user"] = "postgres"
    if not "password" in config["database"].keys():
        config["database"][
            "password"
        ] = ""  # nosec B105 - empty default, not a hardcoded password
    if not "ssl" in config["database"].keys():
        config["database"]["ssl"] = False
    if not "debug_sql" in config["database"].keys():
        config["database"]["debug_sql"] = False
    if not "pool" in config["database"].keys():
        config["database"]["pool"] = {}
    if not "size" in config["database"]["pool"].keys():
        config["database"]["pool"]["size"] = 10
    if not "max_overflow" in config["database"]["pool"].keys():
        config["database"]["pool"]["max_overflow"] = 10
    if not "timeout" in config["database"]["pool"].keys():
        config["database"]["pool"]["timeout"] = 10
    if not "recycle" in config["database"]["pool"].keys():
        config["database"]["pool"]["recycle"] = 1800

    # CORS settings
    if not "cors" in config.keys():
        config["cors"] = {}
    if not "origins" in config["cors"].keys():
        config["cors"]["origins"] = [
            "http://localhost:8080",
            "http://127.0.0.1:8080",
        ]

    # Logging settings
    if not "logging" in config.keys():
        config["logging"] = {}
    if not "level" in config["logging"].keys():
        config["logging"]["level"] = "INFO|WARNING|ERROR|CRITICAL"
    if not "format" in config["logging"].keys():
        config["logging"][
            "format"
        ] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Session housekeeping
    if not "sessions" in config.keys():
        config["sessions"] = {}
    if not "retention_days" in config["sessions"].keys():
        config["sessions"]["retention_days"] = 90
    return config


def _apply_environment(config):
    """Overlay DB_*, DATABASE_URL, PORT, HOST and CORS_ORIGINS from the environment."""
    database = config["database"]
    if os.getenv("DATABASE_URL"):
        database["url"] = os.getenv("DATABASE_URL")
    if os.getenv("DB_HOST"):
        database["host"] = os.getenv("DB_HOST")
    if os.getenv("DB_PORT"):
        database["port"] = int(os.getenv("DB_PORT"))
    if os.getenv("DB_NAME"):
        database["name"] = os.getenv("DB_NAME")
    if os.getenv("DB_USER"):
        database["user"] = os.getenv("DB_USER")
    if os.getenv("DB_PASSWORD") is not None:
        database["password"] = os.getenv("DB_PASSWORD")
    if os.getenv("DB_SSL") is not None:
        database["ssl"] = _as_bool(os.getenv("DB_SSL"))
    if os.getenv("DEBUG_SQL") is not None:
        database["debug_sql"] = _as_bool(os.getenv("DEBUG_SQL"))

    if os.getenv("HOST"):
        config["api"]["host"] = os.getenv("HOST")
    if os.getenv("PORT"):
        config["api"]["port"] = int(os.getenv("PORT"))
    if os.getenv("ANT_SUPPORT_FAIL_FAST") is not None:
        config["api"]["fail_fast"] = _as_bool(os.getenv("ANT_SUPPORT_FAIL_FAST"))

    cors_env = os.getenv("CORS_ORIGINS")
    if cors_env:
        config["cors"]["origins"] = [
            origin.strip() for origin in cors_env.split(",") if origin.strip()
        ]
    return config


def load_config(path=None):
    """
    Read the YAML file (if any), fill in defaults and apply environment
    overrides.  Raises ConfigError when the file is not valid YAML.
    """
    path = path or _resolve_config_path()
    config = {}
    if path:
        try:
            with open(path, "r", encoding="utf-8") as file:
                config = yaml.safe_load(file) or {}
        except yaml.YAMLError as exc:
            if hasattr(exc, "problem_mark"):
                mark = exc.problem_mark
                raise ConfigError(
                    f"Error in {path} at line {mark.line + 1}, column {mark.column + 1}"
                ) from exc
            raise ConfigError(f"Error reading {path}: {exc}") from exc
    return _apply_environment(_apply_defaults(config))


def get_config():
    """
    This function allows a caller to retrieve the config object.
    """
    global _config  # pylint: disable=global-statement
    if _config is None:
        _config = load_config()
    return _config


def reset_config():
    """Forget the cached configuration so the next get_config() reloads it."""
    global _config  # pylint: disable=global-statement
    _config = None


def get_database_config():
    """
    Get the database connection settings.
    """
    return get_config()["database"]


def get_cors_origins():
    """
    Get the list of allowed CORS origins.
    """
    return list(get_config()["cors"]["origins"])


def is_fail_fast():
    """
    Whether the server must refuse to start without a working database.
    """
    return get_config()["api"]["fail_fast"]


def get_session_retention_days():
    """
    Get the default number of days diagnostic sessions are kept.
    """
    return get_config()["sessions"]["retention_days"]


def get_log_levels():
    """
    Get the pipe-separated logging levels configuration.
    """
    return get_config()["logging"]["level"]


def get_log_format():
    """
    Get the logging format string.
    """
    return get_config()["logging"]["format"]


def get_log_file():
    """
    Get the log file path if specified.
    """
    return get_config()["logging"].get("file")
