"""CLI package for interacting with the sensor forecast service."""

from importlib import import_module
from types import ModuleType


def __getattr__(name: str) -> ModuleType:
    if name == "app":
        return import_module("cli.app")
    raise AttributeError(name)

# ``cli.app`` must resolve to the module, not the Typer instance it defines:
# tests patch ``cli.app.ApiClient`` and ``cli.app.time``.

__all__ = []
