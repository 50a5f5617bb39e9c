# Overview: Python terminal client: HTTP API wrapper, session object, lookup cache, sale state machine.

from .api_client import TerminalApiClient
from .cache import ReadThroughCache
from .lifecycle import SaleLifecycle, LifecycleError
from .session import TerminalSession

__all__ = ["TerminalApiClient", "ReadThroughCache", "SaleLifecycle", "LifecycleError", "TerminalSession"]
