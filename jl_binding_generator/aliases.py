"""
Removal of duplicate and aliased declarations

Vendors version functions when their behavior changes (`cuFoo_v2`) and ship
macros mapping the old name onto the new one, so that freshly compiled code
picks up the new version. Bindings targeting several SDK versions don't want
those aliases. Headers also sometimes define a macro with exactly the name of
a function, either by mistake or to reserve the identifier:

    #define cuStreamGetCaptureInfo_v2 __CUDA_API_PTSZ(cuStreamGetCaptureInfo_v2)
"""

import logging
from typing import Optional

from .constants import STRUCT_SIZE_SUFFIX, TRANSPARENT_WRAPPERS
from .ir import Call, ConstBinding, DeclGraph, DeclKind, Identifier, MacroCall


logger = logging.getLogger(__name__)


def family_prefix(name: str) -> Optional[str]:
    """Leading lowercase run of an identifier, e.g. `cu` for `cuFooBar`

    Returns None for empty names, names not starting with a lowercase letter,
    and names without any uppercase letter.
    """
    if not name or not name[0].islower():
        return None
    for i in range(1, len(name)):
        if name[i].isupper():
            return name[:i]
    return None


def remove_shadowing_macros(graph: DeclGraph) -> DeclGraph:
    """Skip macro definitions that share their name with a function"""
    macro_definitions = {}
    for i, node in enumerate(graph):
        if node.kind is DeclKind.MACRO:
            macro_definitions[node.id] = i

    for node in graph:
        if node.kind is DeclKind.FUNCTION and node.id in macro_definitions:
            j = macro_definitions[node.id]
            if not graph[j].is_skipped:
                logger.info("Removing macro definition for %s", node.id)
                graph.skip(j)

    return graph


def rewrite_struct_size(value):
    """`FOO_STRUCT_SIZE(x)` computes a size, so emit it as a macro call"""
    if isinstance(value, Call) and value.target.endswith(STRUCT_SIZE_SUFFIX):
        return MacroCall(value.target, value.args)
    return value


def unwrap_transparent(value):
    """Strip calling-convention markers that keep the wrapped name"""
    if (isinstance(value, Call) and value.target in TRANSPARENT_WRAPPERS
            and len(value.args) == 1):
        return value.args[0]
    return value


def remove_function_aliases(graph: DeclGraph) -> DeclGraph:
    """Clear macros that merely rename a function within the same family"""
    for i, node in enumerate(graph):
        if node.kind is not DeclKind.MACRO or node.is_skipped:
            continue
        binding = node.binding
        if not isinstance(binding, ConstBinding):
            continue

        value = rewrite_struct_size(binding.value)
        if value is not binding.value:
            binding = ConstBinding(binding.name, value)
            graph.replace(i, node.with_binding(binding))

        rhs = unwrap_transparent(value)
        if not isinstance(rhs, Identifier):
            continue

        lhs_prefix = family_prefix(binding.name)
        if lhs_prefix is None:
            continue
        if lhs_prefix == family_prefix(rhs.name):
            logger.debug("Removing function alias: %s = %s", binding.name, rhs.name)
            graph.replace(i, node.with_binding(None))

    return graph


def prune_aliases(graph: DeclGraph) -> DeclGraph:
    """Run both alias passes over a freshly parsed graph"""
    remove_shadowing_macros(graph)
    remove_function_aliases(graph)
    return graph
