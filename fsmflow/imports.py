"""Dynamic symbol loading from dotted paths."""

from __future__ import annotations

import importlib
from typing import Any

from .errors import (
    import_invalid_format,
    import_module_not_found,
    import_symbol_not_found,
)


def load_symbol(dotted: str) -> Any:
    """
    Load a symbol from 'package.module:SymbolName'.

    A path ending in ':' followed by nothing is rejected; to use a whole
    module as the callbacks source, name it as 'package:module'.

    Raises:
        ImportError_: If the format is invalid, module can't be imported,
                      or symbol doesn't exist in the module.
    """
    module_path, sep, symbol_name = dotted.partition(":")
    module_path = module_path.strip()
    symbol_name = symbol_name.strip()

    if not sep or not module_path or not symbol_name:
        raise import_invalid_format(dotted)

    try:
        module = importlib.import_module(module_path)
    except Exception:
        raise import_module_not_found(module_path, dotted) from None

    try:
        return getattr(module, symbol_name)
    except AttributeError:
        pass

    # Fall back to a submodule, e.g. 'myapp.fsm:callbacks'.
    try:
        return importlib.import_module(f"{module_path}.{symbol_name}")
    except ImportError:
        raise import_symbol_not_found(module_path, symbol_name, dotted) from None
