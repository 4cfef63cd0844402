"""
Dialect strategies: the capability set the generic layers are composed with.

Importing this package registers every bundled strategy.
"""
from functools import lru_cache

from verticadb.strategy.base import _STRATEGY_REGISTRY
from verticadb.strategy.base import DatabaseStrategy as DatabaseStrategy
from verticadb.strategy.base import register_strategy as register_strategy
from verticadb.strategy.vertica import VerticaStrategy as VerticaStrategy


def get_strategy_class(dialect: str) -> type[DatabaseStrategy]:
    """Registered strategy class for a dialect name.

    Raises
        ValueError: the dialect has no registered strategy
    """
    try:
        return _STRATEGY_REGISTRY[dialect]
    except KeyError:
        raise ValueError(f'Unsupported dialect: {dialect}. '
                         f'Available: {get_available_dialects()}') from None


@lru_cache(maxsize=8)
def get_strategy(dialect: str) -> DatabaseStrategy:
    """Shared strategy instance for a dialect name (strategies are stateless)."""
    return get_strategy_class(dialect)()


def get_available_dialects() -> list[str]:
    return list(_STRATEGY_REGISTRY)


def is_supported_dialect(dialect: str) -> bool:
    return dialect in _STRATEGY_REGISTRY
