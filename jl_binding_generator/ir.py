"""
Declaration graph and the typed binding representation the passes operate on
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterator, Optional, Union


class DeclKind(Enum):
    """What a declaration node was parsed from"""
    MACRO = "macro"
    FUNCTION = "function"
    VARIADIC_FUNCTION = "variadic_function"
    OTHER = "other"


class NodeState(Enum):
    ACTIVE = "active"
    SKIP = "skip"


# -- macro values ------------------------------------------------------------

@dataclass(frozen=True)
class Identifier:
    name: str


@dataclass(frozen=True)
class Literal:
    """A literal already translated to Julia syntax"""
    text: str


@dataclass(frozen=True)
class Call:
    target: str
    args: tuple = ()


@dataclass(frozen=True)
class MacroCall:
    """Julia macro invocation, rendered as `@name(args...)`"""
    name: str
    args: tuple = ()


MacroValue = Union[Identifier, Literal, Call, MacroCall]


# -- bindings ----------------------------------------------------------------

@dataclass(frozen=True)
class ConstBinding:
    """`const name = value`, used for macros and typedef aliases"""
    name: str
    value: MacroValue


@dataclass(frozen=True)
class Argument:
    name: str
    type: str


@dataclass(frozen=True)
class NativeCall:
    """The raw foreign call into the vendor library"""
    library: str
    symbol: str
    arguments: tuple[Argument, ...]
    rettype: str
    gc_safe: bool = False


@dataclass(frozen=True)
class FunctionBinding:
    """A Julia function forwarding to a native call

    A non-empty prologue makes it a context-guarded call: those statements run
    before the native call.
    """
    name: str
    call: NativeCall
    prologue: tuple[str, ...] = ()

    @property
    def is_context_guarded(self) -> bool:
        return bool(self.prologue)


@dataclass(frozen=True)
class CheckedBinding:
    """Error-checked wrapper around a function binding; always the outermost"""
    function: FunctionBinding


@dataclass(frozen=True)
class StructField:
    name: str
    type: str


@dataclass(frozen=True)
class StructBinding:
    name: str
    fields: tuple[StructField, ...] = ()
    mutable: bool = False


@dataclass(frozen=True)
class EnumBinding:
    name: str
    underlying_type: str
    members: tuple[tuple[str, int], ...]


@dataclass(frozen=True)
class CommentBinding:
    """Something the emitter can only describe, not translate"""
    text: str


Binding = Union[ConstBinding, FunctionBinding, CheckedBinding, StructBinding,
                EnumBinding, CommentBinding]


@dataclass(frozen=True)
class DeclNode:
    """One parsed symbol of a module

    `binding` is None once a pass cleared it; the node stays in the graph so
    indices remain stable.
    """
    id: str
    kind: DeclKind
    source_path: str
    binding: Optional[Binding] = None
    state: NodeState = NodeState.ACTIVE

    @property
    def is_skipped(self) -> bool:
        return self.state is NodeState.SKIP

    @property
    def is_function(self) -> bool:
        return self.kind is DeclKind.FUNCTION

    @property
    def is_macro(self) -> bool:
        return self.kind is DeclKind.MACRO

    def skipped(self) -> "DeclNode":
        """Return an inert copy of this node"""
        return replace(self, state=NodeState.SKIP)

    def with_binding(self, binding: Optional[Binding]) -> "DeclNode":
        return replace(self, binding=binding)


@dataclass
class DeclGraph:
    """Ordered arena of declaration nodes for one module"""
    nodes: list[DeclNode] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[DeclNode]:
        return iter(self.nodes)

    def __getitem__(self, index: int) -> DeclNode:
        return self.nodes[index]

    def add(self, node: DeclNode) -> int:
        """Append a node and return its index"""
        self.nodes.append(node)
        return len(self.nodes) - 1

    def replace(self, index: int, node: DeclNode) -> None:
        """Swap in a rebuilt node at a stable index"""
        current = self.nodes[index]
        if current.is_skipped and not node.is_skipped:
            raise ValueError(f"Cannot re-activate skipped declaration '{current.id}'")
        if current.binding is None and node.binding is not None:
            raise ValueError(f"Cannot restore cleared declaration '{current.id}'")
        self.nodes[index] = node

    def skip(self, index: int) -> None:
        self.nodes[index] = self.nodes[index].skipped()

    def active(self) -> Iterator[tuple[int, DeclNode]]:
        """Yield (index, node) for nodes that still contribute output"""
        for i, node in enumerate(self.nodes):
            if not node.is_skipped and node.binding is not None:
                yield i, node

    def find(self, id: str, kind: DeclKind = None) -> Optional[DeclNode]:
        for node in self.nodes:
            if node.id == id and (kind is None or node.kind is kind):
                return node
        return None
