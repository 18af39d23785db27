"""
Constants and mappings for Julia bindings generation
"""

from clang.cindex import TypeKind


# Mapping from C/libclang types to Julia types
JULIA_TYPE_MAP = {
    TypeKind.VOID: "Cvoid",
    TypeKind.BOOL: "Bool",
    TypeKind.CHAR_S: "Cchar",
    TypeKind.CHAR_U: "Cchar",
    TypeKind.UCHAR: "Cuchar",
    TypeKind.SCHAR: "Int8",
    TypeKind.SHORT: "Cshort",
    TypeKind.USHORT: "Cushort",
    TypeKind.INT: "Cint",
    TypeKind.UINT: "Cuint",
    TypeKind.LONG: "Clong",
    TypeKind.ULONG: "Culong",
    TypeKind.LONGLONG: "Clonglong",
    TypeKind.ULONGLONG: "Culonglong",
    TypeKind.FLOAT: "Cfloat",
    TypeKind.DOUBLE: "Cdouble",
    TypeKind.WCHAR: "Cwchar_t",
    TypeKind.INT128: "Int128",
    TypeKind.UINT128: "UInt128",
}

# Element type -> Julia complex type for C99 _Complex
COMPLEX_TYPE_MAP = {
    "Cfloat": "ComplexF32",
    "Cdouble": "ComplexF64",
}

# Well-known typedefs that Julia ships its own names for
JULIA_TYPEDEF_MAP = {
    "size_t": "Csize_t",
    "ssize_t": "Cssize_t",
    "ptrdiff_t": "Cptrdiff_t",
    "intptr_t": "Cintptr_t",
    "uintptr_t": "Cuintptr_t",
    "wchar_t": "Cwchar_t",
    "int8_t": "Int8",
    "int16_t": "Int16",
    "int32_t": "Int32",
    "int64_t": "Int64",
    "uint8_t": "UInt8",
    "uint16_t": "UInt16",
    "uint32_t": "UInt32",
    "uint64_t": "UInt64",
}

# Header comment prepended to every generated file
AUTOGENERATED_NOTICE = (
    "# This file is automatically generated. Do not edit!\n"
    "# To re-generate, run jl-bindgen with the module name\n"
)

# Zero-argument hook called before native calls that need an initialized runtime
CONTEXT_HOOK = "initialize_context"

# Macro wrapping functions whose return value must be checked
CHECKED_MACRO = "@checked"

CCALL_MACRO = "@ccall"
GCSAFE_CCALL_MACRO = "@gcsafe_ccall"

# Calling-convention markers that wrap a function name without renaming it
TRANSPARENT_WRAPPERS = ("__CUDA_API_PTDS", "__CUDA_API_PTSZ")

# Macros whose call target ends with this are size computations, not calls
STRUCT_SIZE_SUFFIX = "STRUCT_SIZE"

# Functions with this suffix take 64-bit integers instead of 32-bit ones
INT64_SUFFIX = "_64"
INT64_REPLACEMENTS = {"Cint": "Int64", "Int32": "Int64"}

# Placeholder standing in for a type code in template function names
TEMPLATE_PLACEHOLDER = "\U0001D54F"  # 𝕏

# Type code -> (T, S) substitutions, in lookup order
TEMPLATE_TYPE_CODES = (
    ("S", ("Cfloat", "Cfloat")),
    ("D", ("Cdouble", "Cdouble")),
    ("H", ("Float16", "Float16")),
    ("C", ("cuComplex", "Cfloat")),
    ("Z", ("cuDoubleComplex", "Cdouble")),
)

# Default family selector meaning "every configured module"
ALL_MODULES = "all"
