"""
Annotation of function bindings with runtime safety wrappers
"""

from dataclasses import replace
from typing import Union

from .constants import CONTEXT_HOOK
from .ir import CheckedBinding, FunctionBinding
from .type_expr import parse_type


def is_checked_rettype(rettype: str, checked_rettypes) -> bool:
    """Only plain type names can be checked, never `Ptr{...}` and friends"""
    try:
        expr = parse_type(rettype)
    except ValueError:
        return False
    return expr.is_name and expr.head in checked_rettypes


def annotate_function(binding: FunctionBinding, needs_context: bool,
                      checked_rettypes) -> Union[FunctionBinding, CheckedBinding]:
    """Mark the call GC-safe, guard it with the context hook and check its result

    The checked wrapper is applied last so it encloses everything else.
    """
    call = replace(binding.call, gc_safe=True)
    binding = replace(binding, call=call)

    if needs_context:
        binding = replace(binding, prologue=(f"{CONTEXT_HOOK}()",) + binding.prologue)

    if is_checked_rettype(call.rettype, checked_rettypes):
        return CheckedBinding(binding)
    return binding
