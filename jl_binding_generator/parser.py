"""
Header parsing: turns libclang translation units into a declaration graph
"""

import logging
import os
import re
import subprocess
import sys
from functools import lru_cache
from pathlib import Path
from typing import Optional

import clang.cindex
from clang.cindex import CursorKind, TokenKind, TypeKind

from .ir import (
    Argument, Call, CommentBinding, ConstBinding, DeclGraph, DeclKind, DeclNode,
    EnumBinding, FunctionBinding, Identifier, Literal, NativeCall, StructBinding,
    StructField,
)
from .type_mapper import TypeMapper, is_anonymous, strip_tag


logger = logging.getLogger(__name__)


class HeaderParseError(RuntimeError):
    """A header could not be parsed; fatal for the affected module"""


_INT_RE = re.compile(r"^(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)([uUlL]*)$")
_FLOAT_RE = re.compile(r"^((?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?)([fFlL]?)$")

_INT_SUFFIX_TYPES = {
    "u": "Cuint",
    "l": "Clong",
    "ul": "Culong",
    "lu": "Culong",
    "ll": "Clonglong",
    "ull": "Culonglong",
    "llu": "Culonglong",
}


def translate_literal(text: str) -> Optional[str]:
    """Translate a C literal token into Julia syntax, or None if unsupported"""
    match = _INT_RE.match(text)
    if match:
        digits, suffix = match.groups()
        if len(digits) > 1 and digits[0] == "0" and digits[1] not in "xX":
            digits = "0o" + digits[1:]
        suffix = suffix.lower()
        if not suffix:
            return digits
        if suffix not in _INT_SUFFIX_TYPES:
            return None
        return f"{_INT_SUFFIX_TYPES[suffix]}({digits})"

    match = _FLOAT_RE.match(text)
    if match:
        number, suffix = match.groups()
        if suffix in ("f", "F"):
            return f"Float32({number})"
        return number

    if len(text) >= 2 and text[0] == text[-1] == '"':
        return text.replace("$", "\\$")
    if len(text) >= 3 and text[0] == text[-1] == "'":
        return f"Cchar({text})"
    return None


def _translate_operand(token) -> Optional[object]:
    if token.kind == TokenKind.IDENTIFIER:
        return Identifier(token.spelling)
    if token.kind == TokenKind.LITERAL:
        text = translate_literal(token.spelling)
        return Literal(text) if text is not None else None
    return None


def is_function_like_macro(tokens) -> bool:
    """True when a macro definition's tokens start with `NAME(`

    A function-like macro has its opening parenthesis immediately after the
    name; `#define X (1)` has whitespace in between and is object-like.
    """
    if len(tokens) < 2 or tokens[1].spelling != "(":
        return False
    return tokens[1].extent.start.offset == tokens[0].extent.end.offset


def translate_macro_body(tokens) -> Optional[object]:
    """Translate the body tokens of an object-like macro into a macro value

    Handles single identifiers and literals (optionally negated and
    parenthesized) and calls whose arguments are single identifiers or
    literals. Anything else yields None.
    """
    spellings = [t.spelling for t in tokens]

    # strip redundant outer parentheses
    while len(tokens) >= 3 and spellings[0] == "(" and spellings[-1] == ")":
        tokens, spellings = tokens[1:-1], spellings[1:-1]

    if len(tokens) == 1:
        return _translate_operand(tokens[0])

    if len(tokens) == 2 and spellings[0] == "-" and tokens[1].kind == TokenKind.LITERAL:
        value = _translate_operand(tokens[1])
        return Literal(f"-{value.text}") if value is not None else None

    if (len(tokens) >= 3 and tokens[0].kind == TokenKind.IDENTIFIER
            and spellings[1] == "(" and spellings[-1] == ")"):
        inner = tokens[2:-1]
        args = []
        expect_operand = True
        for token in inner:
            if expect_operand:
                operand = _translate_operand(token)
                if operand is None:
                    return None
                args.append(operand)
            elif token.spelling != ",":
                return None
            expect_operand = not expect_operand
        if inner and expect_operand:
            return None  # trailing comma
        return Call(spellings[0], tuple(args))

    return None


@lru_cache(maxsize=None)
def default_parser_args() -> tuple[str, ...]:
    """Default clang arguments, shared by every module of a run"""
    args = ["-x", "c"]

    # Add system include paths so clang can find standard headers
    try:
        result = subprocess.run(
            ["clang", "-E", "-v", "-"],
            input=b"",
            capture_output=True,
            text=False,
            timeout=2
        )
        stderr = result.stderr.decode("utf-8", errors="ignore")
        in_includes = False
        for line in stderr.split("\n"):
            if "#include <...> search starts here:" in line:
                in_includes = True
                continue
            if in_includes:
                if line.startswith("End of search list"):
                    break
                path = line.strip()
                if path and path.startswith("/"):
                    args.append(f"-I{path}")
    except (OSError, subprocess.SubprocessError):
        # Best effort: fall back to common locations
        for path in ["/usr/local/include", "/usr/include"]:
            args.append(f"-I{path}")

    return tuple(args)


def build_parser_args(include_dirs=(), defines=()) -> list[str]:
    """Default flags followed by include-dir and define flags"""
    args = list(default_parser_args())
    for include_dir in include_dirs:
        args.append(f"-I{include_dir}")
    for name, value in defines:
        if value is None:
            args.extend(["-D", name])
        else:
            args.extend(["-D", f"{name}={value}"])
    return args


class HeaderParser:
    """Builds a declaration graph from C headers using libclang"""

    def __init__(self, type_mapper: TypeMapper = None):
        self.type_mapper = type_mapper or TypeMapper()
        self.index = clang.cindex.Index.create()
        self.typedefed = set()  # hashes of declarations named through a typedef

    def prescan_typedefs(self, cursor):
        """Record which top-level declarations a typedef gives a name to"""
        self.typedefed.clear()
        for child in cursor.get_children():
            if child.kind == CursorKind.TYPEDEF_DECL:
                declaration = child.underlying_typedef_type.get_declaration()
                if declaration.kind != CursorKind.NO_DECL_FOUND:
                    self.typedefed.add(declaration.hash)

    def parse(self, headers, args, library_name: str) -> DeclGraph:
        """Parse headers into one graph

        Declarations reachable from several headers are recorded once; a
        forward declaration is upgraded in place when its definition shows up.
        """
        graph = DeclGraph()
        seen = {}  # (kind, id) -> node index

        for header in headers:
            if not Path(header).exists():
                raise FileNotFoundError(f"Header file not found: {header}")

            print(f"Processing: {header}")
            tu = self._parse_translation_unit(header, args)
            self.prescan_typedefs(tu.cursor)
            for cursor in tu.cursor.get_children():
                for node in self._build_nodes(cursor, library_name):
                    category = DeclKind.FUNCTION if node.kind is DeclKind.VARIADIC_FUNCTION else node.kind
                    key = (category, node.id)
                    if key not in seen:
                        seen[key] = graph.add(node)
                    elif self._is_upgrade(graph[seen[key]], node):
                        graph.replace(seen[key], node)

        logger.debug("Parsed %d declarations from %d header(s)", len(graph), len(headers))
        return graph

    def _parse_translation_unit(self, header: str, args):
        parse_options = clang.cindex.TranslationUnit.PARSE_DETAILED_PROCESSING_RECORD
        try:
            tu = self.index.parse(header, args=list(args), options=parse_options)
        except clang.cindex.TranslationUnitLoadError as e:
            raise HeaderParseError(f"Could not parse {header}: {e}")

        # Check for parse errors (non-fatal errors don't stop processing)
        error_messages = []
        has_fatal_errors = False
        for diag in tu.diagnostics:
            if diag.severity >= clang.cindex.Diagnostic.Error:
                print(f"Error in {header}: {diag.spelling}", file=sys.stderr)
                error_messages.append(diag.spelling)
            if diag.severity >= clang.cindex.Diagnostic.Fatal:
                has_fatal_errors = True

        if has_fatal_errors:
            raise HeaderParseError(f"Fatal parsing errors in {header}. Errors: {'; '.join(error_messages)}. "
                                   "Check include directories and defines.")
        return tu

    @staticmethod
    def _is_upgrade(existing: DeclNode, new: DeclNode) -> bool:
        """A complete struct replaces an earlier opaque declaration"""
        return (isinstance(existing.binding, StructBinding) and existing.binding.mutable
                and isinstance(new.binding, StructBinding) and not new.binding.mutable)

    def _build_nodes(self, cursor, library_name: str) -> list[DeclNode]:
        if not cursor.location.file:
            return []  # builtin macros and compiler-provided declarations
        source_path = os.path.normpath(cursor.location.file.name)

        if cursor.kind == CursorKind.FUNCTION_DECL:
            return [self._function_node(cursor, source_path, library_name)]
        if cursor.kind == CursorKind.MACRO_DEFINITION:
            node = self._macro_node(cursor, source_path)
            return [node] if node else []
        if cursor.kind == CursorKind.TYPEDEF_DECL:
            return self._typedef_nodes(cursor, source_path)
        if cursor.kind in (CursorKind.STRUCT_DECL, CursorKind.UNION_DECL):
            if is_anonymous(cursor.spelling):
                return []  # emitted under its typedef name
            node = self._record_node(cursor, cursor.spelling, source_path)
            return [node] if node else []
        if cursor.kind == CursorKind.ENUM_DECL and cursor.is_definition():
            if is_anonymous(cursor.spelling):
                if cursor.hash in self.typedefed:
                    return []  # emitted under its typedef name
                return self._anonymous_enum_nodes(cursor, source_path)
            return [self._enum_node(cursor, cursor.spelling, source_path)]
        return []

    def _function_node(self, cursor, source_path: str, library_name: str) -> DeclNode:
        name = cursor.spelling

        # Variadic functions can't be wrapped with a fixed signature
        if cursor.type.kind == TypeKind.FUNCTIONPROTO and cursor.type.is_function_variadic():
            return DeclNode(name, DeclKind.VARIADIC_FUNCTION, source_path,
                            CommentBinding(f"variadic function {name} is not wrapped"))

        rettype = self.type_mapper.map_type(cursor.result_type)
        arguments = []
        for i, arg in enumerate(cursor.get_arguments()):
            arg_type = self.type_mapper.map_type(arg.type, is_argument=True)
            arguments.append(Argument(arg.spelling or f"arg{i + 1}", arg_type))

        # Skip functions with unmappable types (like va_list)
        if rettype is None or any(arg.type is None for arg in arguments):
            return DeclNode(name, DeclKind.OTHER, source_path,
                            CommentBinding(f"{name} has a signature that cannot be expressed"))

        call = NativeCall(library_name, name, tuple(arguments), rettype)
        return DeclNode(name, DeclKind.FUNCTION, source_path, FunctionBinding(name, call))

    def _macro_node(self, cursor, source_path: str) -> Optional[DeclNode]:
        name = cursor.spelling
        tokens = list(cursor.get_tokens())
        if is_function_like_macro(tokens):
            return None
        tokens = tokens[1:]
        if not tokens:
            return DeclNode(name, DeclKind.MACRO, source_path, None)
        value = translate_macro_body(tokens)
        if value is None:
            body = " ".join(t.spelling for t in tokens)
            return DeclNode(name, DeclKind.MACRO, source_path,
                            CommentBinding(f"Skipping MacroDefinition: {name} {body}"))
        return DeclNode(name, DeclKind.MACRO, source_path, ConstBinding(name, value))

    def _typedef_nodes(self, cursor, source_path: str) -> list[DeclNode]:
        name = cursor.spelling
        if name in self.type_mapper.typedef_map:
            return []

        underlying = cursor.underlying_typedef_type
        declaration = underlying.get_declaration()

        # typedef struct { ... } Foo;  and  typedef enum { ... } Foo;
        if is_anonymous(declaration.spelling) or declaration.spelling == name:
            if declaration.kind in (CursorKind.STRUCT_DECL, CursorKind.UNION_DECL):
                node = self._record_node(declaration, name, source_path)
                return [node] if node else []
            if declaration.kind == CursorKind.ENUM_DECL and declaration.is_definition():
                return [self._enum_node(declaration, name, source_path)]

        target = self.type_mapper.map_type(underlying)
        if target is None or target == name:
            return []
        return [DeclNode(name, DeclKind.OTHER, source_path, ConstBinding(name, Literal(target)))]

    def _record_node(self, cursor, name: str, source_path: str) -> Optional[DeclNode]:
        name = strip_tag(name)
        if not cursor.is_definition():
            return DeclNode(name, DeclKind.OTHER, source_path, StructBinding(name, mutable=True))

        if cursor.kind == CursorKind.UNION_DECL:
            size = cursor.type.get_size()
            fields = (StructField("data", f"NTuple{{{max(size, 0)}, UInt8}}"),)
            return DeclNode(name, DeclKind.OTHER, source_path, StructBinding(name, fields))

        fields = []
        for child in cursor.get_children():
            if child.kind != CursorKind.FIELD_DECL or not child.spelling:
                continue
            field_type = self.type_mapper.map_type(child.type)
            if field_type is None or is_anonymous(field_type):
                # nested anonymous aggregates are kept as raw bytes
                field_type = f"NTuple{{{max(child.type.get_size(), 0)}, UInt8}}"
            fields.append(StructField(child.spelling, field_type))
        return DeclNode(name, DeclKind.OTHER, source_path, StructBinding(name, tuple(fields)))

    def _enum_node(self, cursor, name: str, source_path: str) -> DeclNode:
        name = strip_tag(name)
        underlying = self.type_mapper.map_type(cursor.enum_type) or "Cuint"
        members = tuple((child.spelling, child.enum_value) for child in cursor.get_children()
                        if child.kind == CursorKind.ENUM_CONSTANT_DECL)
        return DeclNode(name, DeclKind.OTHER, source_path, EnumBinding(name, underlying, members))

    def _anonymous_enum_nodes(self, cursor, source_path: str) -> list[DeclNode]:
        return [DeclNode(child.spelling, DeclKind.OTHER, source_path,
                         ConstBinding(child.spelling, Literal(str(child.enum_value))))
                for child in cursor.get_children()
                if child.kind == CursorKind.ENUM_CONSTANT_DECL]
