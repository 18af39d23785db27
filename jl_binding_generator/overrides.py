"""
Per-function argument type overrides

C headers can't tell a pointer to one element from a pointer to an array, nor
host memory from device memory, so module option files declare better types
for specific arguments:

    [api.cublasSgemm_v2.argtypes]
    8 = "CuPtr{Cfloat}"

Families of functions differing only in a type code (`cublas[SDHCZ]gemm`) can
share one entry keyed by a template name with the code replaced by `𝕏`, using
`T` and `S` as placeholders for the element and scalar type.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional

from .config import ConfigurationError, FunctionOptions, ModuleOptions
from .constants import (
    INT64_REPLACEMENTS, INT64_SUFFIX, TEMPLATE_PLACEHOLDER, TEMPLATE_TYPE_CODES,
)
from .ir import Argument, NativeCall
from .type_expr import parse_type, substitute


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedOptions:
    """The options entry that applies to one function"""
    key: Optional[str]
    options: FunctionOptions
    template_types: Optional[dict[str, str]] = None


def template_keys(name: str) -> list[tuple[str, dict[str, str]]]:
    """All template names obtained by replacing one type code in `name`

    Every occurrence of every code is tried, so a code letter appearing
    outside the type position also produces a (usually unconfigured) key.
    """
    keys = []
    for code, (t, s) in TEMPLATE_TYPE_CODES:
        start = name.find(code)
        while start != -1:
            template = name[:start] + TEMPLATE_PLACEHOLDER + name[start + 1:]
            keys.append((template, {"T": t, "S": s}))
            start = name.find(code, start + 1)
    return keys


def candidate_keys(name: str) -> list[tuple[str, Optional[dict[str, str]]]]:
    """Option keys to try for a function, in priority order"""
    names = [name]

    # _64 variants take Int64 arguments but otherwise share their signature
    if name.endswith(INT64_SUFFIX):
        names.append(name[:-len(INT64_SUFFIX)])

    candidates = [(n, None) for n in names]
    for n in names:
        candidates.extend(template_keys(n))
    return candidates


def resolve_function_options(name: str, options: ModuleOptions) -> ResolvedOptions:
    """Find the options entry for a function

    The exact name is always checked first, so a specific function can
    override what its template says.
    """
    for key, template_types in candidate_keys(name):
        if key in options.api:
            logger.debug("Using options '%s' for %s", key, name)
            return ResolvedOptions(key, options.api[key], template_types)
    return ResolvedOptions(None, FunctionOptions())


def _argument_index(fn: str, key: str, count: int, base: int) -> int:
    try:
        index = int(key)
    except ValueError:
        raise ConfigurationError(f"invalid argtypes for {fn}: index '{key}' is not an integer")
    if not base <= index < count + base:
        raise ConfigurationError(f"invalid argtypes for {fn}: index {key} is out of bounds "
                                 f"({count} argument(s))")
    return index - base


def resolve_argument_type(fn: str, typ: str, resolved: ResolvedOptions) -> str:
    """Parse an override and apply template and 64-bit substitutions"""
    expr = parse_type(typ)

    # _64 aliases use Int64 instead of Int32/Cint
    if fn.endswith(INT64_SUFFIX):
        expr = substitute(expr, INT64_REPLACEMENTS)

    if resolved.template_types is not None:
        expr = substitute(expr, resolved.template_types)

    return str(expr)


def apply_argtypes(call: NativeCall, resolved: ResolvedOptions, index_base: int = 0) -> NativeCall:
    """Return the call with its argument types rewritten"""
    argtypes = resolved.options.argtypes
    if not argtypes:
        return call

    arguments = list(call.arguments)
    for key, typ in argtypes.items():
        i = _argument_index(call.symbol, key, len(arguments), index_base)
        try:
            new_type = resolve_argument_type(call.symbol, typ, resolved)
        except ConfigurationError as e:
            raise ConfigurationError(f"invalid argtypes for {call.symbol} at index {key}: {e}")
        arguments[i] = Argument(arguments[i].name, new_type)

    return replace(call, arguments=tuple(arguments))
