import os
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from functools import wraps
from typing import Any

import pandas as pd
from verticadb.strategy import get_available_dialects, get_strategy_class
from verticadb.strategy import is_supported_dialect

__all__ = [
    'DatabaseOptions',
    'pandas_data_loader',
    'iterdict_data_loader',
    'use_iterdict_data_loader',
]


def use_iterdict_data_loader(func):
    """Temporarily use default dict loader over user-specified loader"""

    @wraps(func)
    def inner(cn, *args, **kwargs):
        original_data_loader = cn.options.data_loader
        cn.options.data_loader = iterdict_data_loader
        try:
            return func(cn, *args, **kwargs)
        finally:
            cn.options.data_loader = original_data_loader

    return inner


def iterdict_data_loader(data, columns, **kwargs) -> list[dict]:
    """Minimal data loader.

    Accepts additional keyword arguments for compatibility with other data
    loaders, but doesn't use them.
    """
    if not data:
        return []
    return list(data)


def pandas_data_loader(data, columns, **kwargs) -> pd.DataFrame:
    """Standard pandas DataFrame loader.

    Always returns a DataFrame, never None, with columns preserved for empty results.
    """
    if not data:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame.from_records(list(data), columns=columns)


def _scriptname() -> str | None:
    if not sys.argv or not sys.argv[0]:
        return None
    return os.path.splitext(os.path.basename(sys.argv[0]))[0] or None


@dataclass
class DatabaseOptions:
    """Options

    supported driver names: `vertica`

    Connection pooling options:
    - use_pool: Whether to use connection pooling (default: False)
    - pool_max_connections: Maximum connections in pool (default: 5)
    - pool_max_idle_time: Maximum seconds a connection can be idle (default: 300)
    - pool_wait_timeout: Maximum seconds to wait for a connection (default: 30)

    Timestamp options:
    - convert_timezones: Reinterpret naive timestamps read from the database
      as `database_timezone` and convert them to `application_timezone`
      (default: False). A timezone of None means the local zone.

    Identifier options:
    - identifier_input / identifier_output: 'upper', 'lower' or None. Vertica
      is case sensitive so both default to None (names pass through as is).
    """
    drivername: str = 'vertica'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 5433
    timeout: int = 0
    appname: str = None
    data_loader: Callable[..., Any] | None = None
    convert_timezones: bool = False
    database_timezone: str | None = None
    application_timezone: str | None = None
    identifier_input: str | None = None
    identifier_output: str | None = None
    connect_args: dict[str, Any] = field(default_factory=dict)
    # Connection pooling parameters
    use_pool: bool = False
    pool_max_connections: int = 5
    pool_max_idle_time: int = 300
    pool_wait_timeout: int = 30

    def __post_init__(self):
        if not is_supported_dialect(self.drivername):
            available = get_available_dialects()
            raise ValueError(f'drivername must be one of: {available}')
        self.appname = self.appname or _scriptname() or 'python_console'
        for name in ('identifier_input', 'identifier_output'):
            if getattr(self, name) not in {None, 'upper', 'lower'}:
                raise ValueError(f"{name} must be 'upper', 'lower' or None")
        strategy_cls = get_strategy_class(self.drivername)
        strategy_cls.validate_options(self)
        if self.data_loader is None:
            self.data_loader = iterdict_data_loader

    def __str__(self) -> str:
        # Pool registry key, excludes the password
        return (f'{self.drivername}://{self.username}@{self.hostname}:{self.port}'
                f'/{self.database}?appname={self.appname}&timeout={self.timeout}'
                f'&use_pool={self.use_pool}')
