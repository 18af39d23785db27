"""
Type mapping logic for converting C types to Julia types
"""

from typing import Optional

from clang.cindex import TypeKind
from .constants import COMPLEX_TYPE_MAP, JULIA_TYPE_MAP, JULIA_TYPEDEF_MAP


_TAG_PREFIXES = ("struct ", "union ", "enum ")
_QUALIFIERS = ("const ", "volatile ", "restrict ")


def strip_tag(spelling: str) -> str:
    """Drop qualifiers and a leading struct/union/enum keyword"""
    changed = True
    while changed:
        changed = False
        for prefix in _QUALIFIERS + _TAG_PREFIXES:
            if spelling.startswith(prefix):
                spelling = spelling[len(prefix):]
                changed = True
    return spelling


def is_anonymous(spelling: str) -> bool:
    return not spelling or "unnamed" in spelling or "anonymous" in spelling or "::" in spelling


class TypeMapper:
    """Maps C/libclang types to Julia type expressions"""

    def __init__(self):
        self.type_map = JULIA_TYPE_MAP.copy()
        self.typedef_map = JULIA_TYPEDEF_MAP.copy()

    def map_type(self, ctype, is_argument: bool = False) -> Optional[str]:
        """Map C type to Julia type

        Args:
            ctype: The libclang type to map
            is_argument: True for function parameters, where arrays decay to pointers

        Returns None for types that cannot be expressed (e.g. va_list).
        """
        spelling = ctype.spelling or ""
        if "__va_list" in spelling or strip_tag(spelling) == "va_list":
            return None

        kind = ctype.kind

        if kind == TypeKind.POINTER:
            pointee = ctype.get_pointee()
            # C strings
            if pointee.kind in (TypeKind.CHAR_S, TypeKind.CHAR_U):
                return "Cstring"
            # Function pointers are opaque to the binding
            if pointee.kind in (TypeKind.FUNCTIONPROTO, TypeKind.FUNCTIONNOPROTO):
                return "Ptr{Cvoid}"
            inner = self.map_type(pointee)
            if inner is None:
                return None
            return f"Ptr{{{inner}}}"

        if kind in (TypeKind.CONSTANTARRAY, TypeKind.INCOMPLETEARRAY):
            element = self.map_type(ctype.get_array_element_type())
            if element is None:
                return None
            if kind == TypeKind.INCOMPLETEARRAY or is_argument:
                return f"Ptr{{{element}}}"
            return f"NTuple{{{ctype.get_array_size()}, {element}}}"

        if kind in self.type_map:
            return self.type_map[kind]

        if kind == TypeKind.TYPEDEF:
            # Keep the typedef name, the generated file declares it as a const
            name = ctype.get_declaration().spelling or strip_tag(spelling)
            return self.typedef_map.get(name, name)

        if kind == TypeKind.ELABORATED:
            if strip_tag(spelling) in self.typedef_map:
                return self.typedef_map[strip_tag(spelling)]
            named_type = ctype.get_named_type()
            if named_type.kind != TypeKind.INVALID:
                return self.map_type(named_type, is_argument)
            return strip_tag(spelling) or "Cvoid"

        if kind == TypeKind.ENUM:
            name = strip_tag(spelling)
            if is_anonymous(name):
                return "Cuint"
            return name

        if kind == TypeKind.RECORD:
            name = strip_tag(spelling)
            if is_anonymous(name):
                return "Cvoid"
            return name

        if kind in (TypeKind.FUNCTIONPROTO, TypeKind.FUNCTIONNOPROTO):
            return "Cvoid"

        if kind == TypeKind.COMPLEX:
            element = self.map_type(ctype.element_type)
            return COMPLEX_TYPE_MAP.get(element)

        # Fallback: resolve through the canonical type, otherwise unmappable
        # (long double, vector and atomic types have no Julia counterpart)
        canonical = ctype.get_canonical()
        if canonical.kind != kind and canonical.kind != TypeKind.INVALID:
            return self.map_type(canonical, is_argument)
        return None
