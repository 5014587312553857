from .config import ServiceConfig, load_config
from .session_store import InMemorySessionStore

__all__ = ["ServiceConfig", "load_config", "InMemorySessionStore"]
