from __future__ import annotations

import importlib
import importlib.util
import types

#: Extra of ``rulenet`` that installs each optional backend.
EXTRAS = {
    "networkx": "graph",
    "polars": "polars",
    "pyarrow": "arrow",
}


def import_optional_dependency(name: str, extra: str = "") -> types.ModuleType:
    """Import a rendering or interop backend, raising ``ImportError`` with an install hint.

    *extra* is appended to the message, e.g. the function that needed it.
    """
    package_name = name.split(".")[0]
    if importlib.util.find_spec(name) is None:
        hint = f"pip install {package_name}"
        if package_name in EXTRAS:
            hint += f" (or pip install 'rulenet[{EXTRAS[package_name]}]')"
        msg = f"Missing optional dependency '{package_name}'. Use {hint}."
        if extra:
            msg += f" {extra}"
        raise ImportError(msg)
    return importlib.import_module(name)
