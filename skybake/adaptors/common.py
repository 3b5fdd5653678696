"""Lazy import for modules to avoid import error when not used."""
import functools
import importlib
from typing import Any, Callable, Optional, Tuple


class LazyImport:
    """Lazy importer for optional modules, imported on first attribute access.

    The OpenStack SDK pulls in a large dependency tree and is an optional
    extra, so callers that only build requests or use another compute client
    must not pay for (or fail on) its import.
    """

    def __init__(self,
                 module_name: str,
                 import_error_message: Optional[str] = None,
                 set_loggers: Optional[Callable[[], None]] = None):
        self._module_name = module_name
        self._module = None
        self._import_error_message = import_error_message
        self._set_loggers = set_loggers

    def load_module(self):
        if self._module is None:
            try:
                module = importlib.import_module(self._module_name)
            except ImportError as e:
                if self._import_error_message is None:
                    raise
                raise ImportError(self._import_error_message) from e
            self._module = module
            if self._set_loggers is not None:
                self._set_loggers()
        return self._module

    def __getattr__(self, name: str) -> Any:
        # Only called for names not set in __init__.
        return getattr(self.load_module(), name)


def load_lazy_modules(modules: Tuple[LazyImport, ...]):
    """Load lazy modules before entering a function to error out quickly."""

    def decorator(func):

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            for m in modules:
                m.load_module()
            return func(*args, **kwargs)

        return wrapper

    return decorator
