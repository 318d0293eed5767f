# pestdispatch/peg/ast.py
from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Union

# ---- pest expression AST node definitions ----

@dataclass(frozen=True)
class Literal:
    text: str  # unescaped text

@dataclass(frozen=True)
class Insensitive:
    text: str  # ^"..." (ASCII case-insensitive)

@dataclass(frozen=True)
class Range:
    lo: str  # single char, inclusive
    hi: str

@dataclass(frozen=True)
class Ref:
    name: str

@dataclass(frozen=True)
class And:
    node: "Node"  # positive lookahead (&)

@dataclass(frozen=True)
class Not:
    node: "Node"  # negative lookahead (!)

@dataclass(frozen=True)
class Repeat:
    node: "Node"
    kind: str  # '?', '*', '+'

@dataclass(frozen=True)
class RepeatRange:
    node: "Node"
    min: int
    max: Optional[int]  # None = unbounded ({n,})

@dataclass(frozen=True)
class Push:
    node: "Node"

@dataclass(frozen=True)
class Seq:
    items: List["Node"]

@dataclass(frozen=True)
class Choice:
    alts: List["Node"]

Node = Union[Literal, Insensitive, Range, Ref, And, Not, Repeat, RepeatRange, Push, Seq, Choice]


def iter_refs(node: Node):
    """Yield every Ref name in *node* (pre-order)."""
    if isinstance(node, Ref):
        yield node.name
    elif isinstance(node, (And, Not, Repeat, RepeatRange, Push)):
        yield from iter_refs(node.node)
    elif isinstance(node, Seq):
        for it in node.items:
            yield from iter_refs(it)
    elif isinstance(node, Choice):
        for it in node.alts:
            yield from iter_refs(it)
