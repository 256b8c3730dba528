"""API description input -- load a dumped AST and sanitize it.

This sub-package is responsible for the first half of the apitree pipeline:
turning a raw API description tree (JSON or YAML, local file or remote URL)
into a frozen :class:`~apitree.models.ApiSpec` that the compiler can consume.

Typical usage::

    from apitree.parser import load_ast, sanitize_ast

    raw = load_ast("api.json")
    spec = sanitize_ast(raw)

Sub-modules:

* :mod:`~apitree.parser.loader` -- I/O layer (URL, file, stdin) plus format
  detection.
* :mod:`~apitree.parser.sanitizer` -- fragment merging, verb-keyed methods
  and path-keyed resource flattening.
"""

from apitree.parser.loader import load_ast
from apitree.parser.sanitizer import sanitize_ast

__all__ = ["load_ast", "sanitize_ast"]
