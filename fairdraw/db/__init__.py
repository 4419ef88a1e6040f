from .engine import DEFAULT_SQLITE_URL, get_sessionmaker, make_engine
from .utils import resolve_sqlite_url

__all__ = ["DEFAULT_SQLITE_URL", "get_sessionmaker", "make_engine", "resolve_sqlite_url"]
