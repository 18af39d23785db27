"""
Module-level rewriting of a pruned declaration graph
"""

import logging
import re

from .annotator import annotate_function
from .config import ModuleOptions
from .ir import DeclGraph, DeclKind, FunctionBinding
from .overrides import apply_argtypes, resolve_function_options


logger = logging.getLogger(__name__)


def matches_target(path: str, targets) -> bool:
    """Whether a source path matches a substring or a compiled pattern"""
    for target in targets:
        if isinstance(target, re.Pattern):
            if target.search(path):
                return True
        elif target in path:
            return True
    return False


def filter_targets(graph: DeclGraph, targets) -> DeclGraph:
    """Skip declarations that don't originate from the module's own headers

    Vendor SDKs keep most headers in a single directory, so include paths
    alone don't separate one library from another.
    """
    skipped = 0
    for i, node in enumerate(graph):
        if not node.is_skipped and not matches_target(node.source_path, targets):
            graph.skip(i)
            skipped += 1
    logger.debug("Skipped %d declaration(s) outside the target headers", skipped)
    return graph


def apply_ignorelist(graph: DeclGraph, options: ModuleOptions) -> DeclGraph:
    """Skip declarations whose name is on the output ignore list"""
    if not options.output_ignorelist:
        return graph
    for i, node in enumerate(graph):
        if not node.is_skipped and options.is_ignored(node.id):
            logger.info("Ignoring %s", node.id)
            graph.skip(i)
    return graph


def rewrite(graph: DeclGraph, options: ModuleOptions) -> DeclGraph:
    """Apply type overrides and call annotations to every function"""
    for i, node in enumerate(graph):
        if node.kind is not DeclKind.FUNCTION or node.is_skipped:
            continue
        if not isinstance(node.binding, FunctionBinding):
            continue

        binding = node.binding
        resolved = resolve_function_options(binding.call.symbol, options)
        call = apply_argtypes(binding.call, resolved, options.argtype_index_base)
        binding = FunctionBinding(binding.name, call, binding.prologue)

        binding = annotate_function(binding, resolved.options.needs_context,
                                    options.checked_rettypes)
        graph.replace(i, node.with_binding(binding))

    return graph
