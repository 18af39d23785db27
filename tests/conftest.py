"""
Pytest configuration and fixtures
"""

import pytest

from jl_binding_generator.config import FunctionOptions, ModuleOptions
from jl_binding_generator.ir import (
    Argument, ConstBinding, DeclGraph, DeclKind, DeclNode, FunctionBinding, Identifier, NativeCall,
)


def function_node(name, argtypes=("Cint",), rettype="Cint", library="libvendor", path="/inc/vendor.h"):
    """Build an unannotated function node"""
    arguments = tuple(Argument(f"arg{i + 1}", t) for i, t in enumerate(argtypes))
    call = NativeCall(library, name, arguments, rettype)
    return DeclNode(name, DeclKind.FUNCTION, path, FunctionBinding(name, call))


def macro_node(name, value, path="/inc/vendor.h"):
    if isinstance(value, str):
        value = Identifier(value)
    return DeclNode(name, DeclKind.MACRO, path, ConstBinding(name, value))


def make_options(api=None, checked=(), **kwargs):
    api = {name: entry if isinstance(entry, FunctionOptions) else FunctionOptions(**entry)
           for name, entry in (api or {}).items()}
    return ModuleOptions(output_file_path="/tmp/out.jl", library_name="libvendor",
                         checked_rettypes=frozenset(checked), api=api, **kwargs)


@pytest.fixture
def graph():
    """An empty declaration graph"""
    return DeclGraph()


@pytest.fixture
def vendor_headers(tmp_path):
    """Create a two-header vendor library"""
    include_dir = tmp_path / "include"
    include_dir.mkdir()

    types_header = include_dir / "vendor_types.h"
    types_header.write_text("""
#ifndef VENDOR_TYPES_H
#define VENDOR_TYPES_H

typedef enum vdStatus_enum {
    VD_SUCCESS = 0,
    VD_ERROR_INVALID_VALUE = 1,
    VD_ERROR_NOT_INITIALIZED = 3
} vdStatus_t;

typedef struct vdHandle_st *vdHandle_t;

typedef struct {
    float x;
    float y;
} vdComplex;

#define VD_VERSION 1200
#define VD_FLAG_MASK 0xFFu

#endif
""")

    main_header = include_dir / "vendor.h"
    main_header.write_text("""
#ifndef VENDOR_H
#define VENDOR_H

#include "vendor_types.h"

#define vdGetCount vdGetCount_v2

int vdGetCount_v2(int *count);
vdStatus_t vdInit(unsigned int flags);
vdStatus_t vdCreate(vdHandle_t *handle);
vdStatus_t vdSaxpy(vdHandle_t handle, int n, const float *alpha, const float *x, float *y);
vdStatus_t vdDaxpy(vdHandle_t handle, int n, const double *alpha, const double *x, double *y);
int vdPrintf(const char *fmt, ...);

#endif
""")

    return {
        'main': str(main_header),
        'types': str(types_header),
        'include_dir': str(include_dir),
    }


@pytest.fixture
def vendor_config(tmp_path, vendor_headers):
    """Registry and options files wrapping the vendor headers"""
    config_dir = tmp_path / "res"
    config_dir.mkdir()

    (config_dir / "vendor.toml").write_text("""
[general]
library_name = "libvendor"
output_file_path = "../out/libvendor.jl"

[api]
checked_rettypes = ["vdStatus_t"]

[api.vdGetCount_v2]
needs_context = false

[api."vd𝕏axpy".argtypes]
2 = "Ref{T}"
3 = "CuPtr{T}"
4 = "CuPtr{T}"
""", encoding="utf-8")

    registry = tmp_path / "bindings.xml"
    registry.write_text(f"""
<bindings config_dir="res">
    <module name="vendor">
        <include file="{vendor_headers['main']}"/>
        <include file="{vendor_headers['types']}"/>
        <include_directory path="{vendor_headers['include_dir']}"/>
    </module>
</bindings>
""")

    return {
        'registry': str(registry),
        'options': str(config_dir / "vendor.toml"),
        'output': str(tmp_path / "out" / "libvendor.jl"),
    }
