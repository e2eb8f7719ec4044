"""Program loaders.

A loader turns a program path into a code object ready to run inside an
interpreter state. ``source`` compiles a Python source file, ``bytecode``
reads a compiled ``.pyc`` file. Any other name is imported as
``module:attribute`` (or ``module.attribute``) and must resolve to a callable
taking the path and returning a code object.
"""

from __future__ import annotations

import importlib
import importlib.util
import marshal
from collections.abc import Callable
from pathlib import Path
from types import CodeType
from typing import Any

from frozendict import frozendict

from mqnode.errors import LoadError, UsageError

Loader = Callable[[str], CodeType]

_PYC_HEADER_SIZE = 16


def load_source(path: str) -> CodeType:
    try:
        source = Path(path).read_bytes()
    except OSError as exc:
        raise LoadError(path, exc.strerror or str(exc)) from exc
    try:
        return compile(source, path, "exec", dont_inherit=True)
    except (SyntaxError, ValueError) as exc:
        raise LoadError(path, f"{type(exc).__name__}: {exc}") from exc


def load_bytecode(path: str) -> CodeType:
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise LoadError(path, exc.strerror or str(exc)) from exc
    if data[:4] != importlib.util.MAGIC_NUMBER:
        raise LoadError(path, "bad magic number in compiled file")
    try:
        code = marshal.loads(data[_PYC_HEADER_SIZE:])
    except (EOFError, ValueError, TypeError) as exc:
        raise LoadError(path, f"corrupt compiled file: {exc}") from exc
    if not isinstance(code, CodeType):
        raise LoadError(path, "compiled file does not contain a code object")
    return code


BUILTIN_LOADERS: frozendict[str, Loader] = frozendict(
    {
        "source": load_source,
        "bytecode": load_bytecode,
    }
)


def resolve_loader(name: str) -> Loader:
    """Resolve a loader name once, at process start."""
    if name in BUILTIN_LOADERS:
        return BUILTIN_LOADERS[name]
    try:
        obj = _import_symbol(name)
    except (ImportError, AttributeError, ValueError) as exc:
        raise UsageError(f"can not resolve loader {name!r}: {exc}") from exc
    if not callable(obj):
        raise UsageError(f"loader {name!r} is not callable")
    return _checked(name, obj)


def _checked(name: str, func: Callable[[str], Any]) -> Loader:
    def load(path: str) -> CodeType:
        try:
            code = func(path)
        except LoadError:
            raise
        except Exception as exc:
            raise LoadError(path, f"{type(exc).__name__}: {exc}") from exc
        if not isinstance(code, CodeType):
            raise LoadError(path, f"loader {name!r} returned {type(code).__name__}, not code")
        return code

    load.__name__ = getattr(func, "__name__", "load")
    return load


def _import_symbol(path: str) -> Any:
    if ":" in path:
        module_name, attr_path = path.split(":", 1)
        current: Any = importlib.import_module(module_name)
        for attr in attr_path.split("."):
            current = getattr(current, attr)
        return current
    parts = path.split(".")
    if len(parts) < 2:
        raise ValueError(f"'{path}' is not a fully-qualified symbol. Use module:attribute format.")
    module = importlib.import_module(".".join(parts[:-1]))
    return getattr(module, parts[-1])


__all__ = [
    "BUILTIN_LOADERS",
    "Loader",
    "load_bytecode",
    "load_source",
    "resolve_loader",
]
