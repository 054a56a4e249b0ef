"""
db/configuration.py
-------------------
Resolves and holds the database connection parameters.

A ``ConnectionConfig`` is an immutable value holding four strings: the driver
module name, the URL (DSN or database path), the login and the password. It
can be built directly and handed to an accessor, or obtained through the
process-wide singleton entry points:

    ConnectionConfig.get_instance()                   # ./djapi_connect
    ConnectionConfig.get_instance("conf/db.connect")  # named file
    ConnectionConfig.get_instance_from_values("psycopg2", "dbname=app", "bob", "s3cret")
    ConnectionConfig.get_instance_from_properties({"Driver": "sqlite3", "Url": "app.db"})

The first entry point called fixes the singleton for the lifetime of the
process; arguments passed to later calls are ignored.

The connection file holds ``key=value`` lines with the keys ``Url``,
``Login``, ``Driver`` and ``Password``:

    Driver=psycopg2
    Url=host=localhost dbname=bot_budget
    Login=botbudget_user
    Password=change-me

Values are taken verbatim after the first ``=`` (leading blanks dropped):
``Password=abc #1`` is the password ``abc #1`` and quotes stay part of the
value. Whole-line ``#`` comments and blank lines are ignored.
"""

import importlib
import os
import threading
from dataclasses import dataclass, field
from types import ModuleType
from typing import ClassVar, Mapping, Optional

from dotenv.parser import parse_stream

from djapi.config import DEFAULT_CONNECT_PATH
from djapi.errors import ConfigLoadFailure, ConnectionFailure
from djapi.utils.logger import TRACE, get_logger

logger = get_logger(__name__)

PROPERTY_KEYS = ("Driver", "Url", "Login", "Password")


@dataclass(frozen=True)
class ConnectionConfig:
    """
    Connection parameters for one database.

    Attributes:
        driver: Importable name of a DB-API 2.0 driver module (e.g. ``sqlite3``).
        url: First positional argument of the driver's ``connect()``.
        login: Passed as ``user=`` when not empty.
        password: Passed as ``password=`` when not empty.
        source_path: The file the values were read from (or would have been).
        load_error: Why reading ``source_path`` failed, if it did.
    """
    driver: str = ""
    url: str = ""
    login: str = ""
    password: str = field(default="", repr=False)
    source_path: str = DEFAULT_CONNECT_PATH
    load_error: Optional[ConfigLoadFailure] = field(default=None, repr=False, compare=False)

    _instance: ClassVar[Optional["ConnectionConfig"]] = None
    _lock: ClassVar[threading.Lock] = threading.Lock()

    # ── Builders ──────────────────────────────────────────

    @classmethod
    def from_properties(cls, properties: Mapping[str, Optional[str]], **extra) -> "ConnectionConfig":
        """
        Build a configuration from a key/value bag.

        Missing keys and keys without a value resolve to an empty string.
        """
        values = {key.lower(): properties.get(key) or "" for key in PROPERTY_KEYS}
        return cls(**values, **extra)

    @classmethod
    def from_file(cls, path: Optional[str] = None) -> "ConnectionConfig":
        """
        Build a configuration from a ``key=value`` file.

        Never raises: when the file cannot be read every field stays empty,
        a warning is logged and the failure is kept on ``load_error``.

        Args:
            path: Location of the file. Defaults to ``djapi_connect``.
        """
        path = path or DEFAULT_CONNECT_PATH
        try:
            if not os.path.isfile(path):
                raise FileNotFoundError(f"No such file: {path}")
            properties = _read_properties(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(
                f"File not found: {path} If default path was used be sure "
                f"to create the {DEFAULT_CONNECT_PATH} file"
            )
            logger.debug(f"Returned error: {e}")
            return cls(
                source_path=path,
                load_error=ConfigLoadFailure(f"Unable to read configuration file {path}", e),
            )
        logger.debug(f"Configuration loaded from {path}")
        return cls.from_properties(properties, source_path=path)

    # ── Process-wide singleton ────────────────────────────

    @classmethod
    def _get_or_create(cls, factory) -> "ConnectionConfig":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = factory()
        return cls._instance

    @classmethod
    def get_instance(cls, path: Optional[str] = None) -> "ConnectionConfig":
        """
        Return the process-wide configuration, reading it from ``path``
        (or the default file) if it does not exist yet.
        """
        return cls._get_or_create(lambda: cls.from_file(path))

    @classmethod
    def get_instance_from_values(
        cls, driver: str, url: str, login: str, password: str
    ) -> "ConnectionConfig":
        """
        Return the process-wide configuration, building it from explicit
        values if it does not exist yet. Keeps credentials off the disk.
        """
        return cls._get_or_create(
            lambda: cls(driver=driver, url=url, login=login, password=password)
        )

    @classmethod
    def get_instance_from_properties(
        cls, properties: Mapping[str, Optional[str]]
    ) -> "ConnectionConfig":
        """
        Return the process-wide configuration, building it from a property
        bag (keys ``Url``, ``Login``, ``Driver``, ``Password``) if it does not
        exist yet.
        """
        return cls._get_or_create(lambda: cls.from_properties(properties))

    # ── Connection ────────────────────────────────────────

    def import_driver(self) -> ModuleType:
        """
        Import the driver module.

        Raises:
            ConnectionFailure: If the module cannot be imported or does not
                expose a ``connect`` callable.
        """
        try:
            if not self.driver:
                raise ImportError("No driver configured")
            module = importlib.import_module(self.driver)
        except ImportError as e:
            raise ConnectionFailure(
                f"Unable to load the following driver module: {self.driver}", e
            ) from e
        if not callable(getattr(module, "connect", None)):
            raise ConnectionFailure(f"Driver module {self.driver} has no connect() function")
        return module

    def load_driver(self) -> Optional[ModuleType]:
        """Like ``import_driver()`` but logs the failure and returns None."""
        try:
            return self.import_driver()
        except ConnectionFailure as e:
            _log_failure(e)
            return None

    def open(self, driver: Optional[ModuleType] = None):
        """
        Open a new connection with the stored URL, login and password.

        Args:
            driver: An already loaded driver module. Imported from ``driver``
                when omitted.

        Returns:
            A DB-API connection in autocommit mode.

        Raises:
            ConnectionFailure: If the driver cannot be loaded or refuses
                the connection.
        """
        driver = driver or self.import_driver()
        kwargs = {}
        if self.login:
            kwargs["user"] = self.login
        if self.password:
            kwargs["password"] = self.password
        try:
            conn = driver.connect(self.url, **kwargs)
        except Exception as e:
            raise ConnectionFailure(f"Unable to set the connection @Url: {self.url}", e) from e
        _enable_autocommit(conn)
        logger.log(TRACE, f"Connection set up on {self.url}")
        return conn

    def connect(self, driver: Optional[ModuleType] = None):
        """
        Open a new connection, never raising.

        Returns:
            A DB-API connection in autocommit mode, or None on failure
            (the failure is logged).
        """
        try:
            return self.open(driver)
        except ConnectionFailure as e:
            _log_failure(e)
            return None


def _log_failure(error: ConnectionFailure) -> None:
    logger.error(error.message)
    if error.cause is not None:
        logger.log(TRACE, f"Returned error: {error.cause}")


def _enable_autocommit(conn) -> None:
    """Switch the connection to autocommit, the way the driver allows it."""
    try:
        if hasattr(conn, "autocommit"):
            conn.autocommit = True
        elif hasattr(conn, "isolation_level"):
            conn.isolation_level = None
    except Exception as e:
        logger.warning(f"Unable to enable autocommit: {e}")


def _read_properties(path: str) -> dict[str, Optional[str]]:
    """
    Read ``key=value`` lines. dotenv finds the keys and skips comment lines;
    the value is the raw text after the first ``=``, so inline ``#`` and
    quotes are kept as written.
    """
    properties: dict[str, Optional[str]] = {}
    with open(path, encoding="utf-8") as stream:
        for binding in parse_stream(stream):
            if binding.key is None:
                continue
            _, sep, raw = binding.original.string.partition("=")
            properties[binding.key] = raw.rstrip("\r\n").lstrip() if sep else None
    return properties
