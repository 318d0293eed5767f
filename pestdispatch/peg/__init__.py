# pestdispatch/peg/__init__.py
"""pest expression submodule for pestdispatch.

This package provides:
- AST nodes for the pest expression language (the part inside `rule = { ... }`)
- An expression parser for rule bodies

It is intentionally independent from the dispatch pipeline.
"""

from .ast import (
    Literal, Insensitive, Range, Ref, And, Not, Repeat, RepeatRange, Push,
    Seq, Choice, Node, iter_refs,
)
from .parser import parse_pest_expr
