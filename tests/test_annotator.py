"""
Tests for call annotation and the module rewrite phase
"""

import re

import pytest

from jl_binding_generator.annotator import annotate_function, is_checked_rettype
from jl_binding_generator.config import ConfigurationError
from jl_binding_generator.ir import CheckedBinding, DeclKind, DeclNode, CommentBinding, FunctionBinding
from jl_binding_generator.rewriter import apply_ignorelist, filter_targets, matches_target, rewrite

from conftest import function_node, macro_node, make_options


class TestAnnotateFunction:
    """Test the per-function annotations"""

    def test_context_hook_is_first_statement(self):
        binding = function_node("cuInit").binding

        result = annotate_function(binding, needs_context=True, checked_rettypes=set())

        assert result.prologue[0] == "initialize_context()"

    def test_no_context_hook_when_disabled(self):
        binding = function_node("cuGetErrorName").binding

        result = annotate_function(binding, needs_context=False, checked_rettypes=set())

        assert result.prologue == ()
        assert not result.is_context_guarded

    def test_every_call_is_gc_safe(self):
        binding = function_node("cuInit").binding

        plain = annotate_function(binding, needs_context=False, checked_rettypes=set())
        checked = annotate_function(binding, needs_context=False, checked_rettypes={"Cint"})

        assert plain.call.gc_safe
        assert checked.function.call.gc_safe

    def test_checked_rettype_wraps_outermost(self):
        binding = function_node("cuInit", rettype="CUresult").binding

        result = annotate_function(binding, needs_context=True, checked_rettypes={"CUresult"})

        assert isinstance(result, CheckedBinding)
        assert result.function.prologue == ("initialize_context()",)
        assert result.function.call.gc_safe

    def test_unchecked_rettype_is_not_wrapped(self):
        binding = function_node("cuDriverGetVersion", rettype="Cint").binding

        result = annotate_function(binding, needs_context=True, checked_rettypes={"CUresult"})

        assert isinstance(result, FunctionBinding)

    def test_only_plain_names_are_checked(self):
        assert is_checked_rettype("CUresult", {"CUresult"})
        assert not is_checked_rettype("Ptr{CUresult}", {"CUresult"})
        assert not is_checked_rettype("Cvoid", {"CUresult"})


class TestTargetFilter:
    """Test the module-boundary filter"""

    def test_substring_and_pattern_targets(self):
        targets = ("cutensor.h", re.compile(r"cublas.*\.h"))

        assert matches_target("/sdk/include/cutensor.h", targets)
        assert matches_target("/sdk/include/cublas_api.h", targets)
        assert not matches_target("/sdk/include/cuda.h", targets)

    def test_non_target_declarations_are_skipped(self, graph):
        graph.add(function_node("cublasCreate", path="/sdk/include/cublas_api.h"))
        graph.add(function_node("cuInit", path="/sdk/include/cuda.h"))

        filter_targets(graph, (re.compile(r"cublas.*\.h"),))

        assert not graph[0].is_skipped
        assert graph[1].is_skipped

    def test_ignorelist_skips_matching_names(self, graph):
        graph.add(function_node("cuProfilerInitialize"))
        graph.add(function_node("cuInit"))

        apply_ignorelist(graph, make_options(output_ignorelist=(re.compile(r"cuProfiler.*"),)))

        assert graph[0].is_skipped
        assert not graph[1].is_skipped


class TestRewrite:
    """Test the combined override and annotation phase"""

    def test_rewrite_applies_everything(self, graph):
        graph.add(function_node("vdSaxpy", ("Cint", "Ptr{Cfloat}"), rettype="vdStatus_t"))
        graph.add(function_node("vdGetVersion", (), rettype="Cint"))
        options = make_options(
            api={"vd𝕏axpy": {"argtypes": {"1": "CuPtr{T}"}},
                 "vdGetVersion": {"needs_context": False}},
            checked=["vdStatus_t"],
        )

        rewrite(graph, options)

        saxpy = graph[0].binding
        assert isinstance(saxpy, CheckedBinding)
        assert saxpy.function.call.arguments[1].type == "CuPtr{Cfloat}"
        assert saxpy.function.prologue == ("initialize_context()",)

        version = graph[1].binding
        assert isinstance(version, FunctionBinding)
        assert version.prologue == ()
        assert version.call.gc_safe

    def test_skipped_and_non_function_nodes_are_untouched(self, graph):
        graph.add(function_node("cuInit", rettype="CUresult"))
        graph.skip(0)
        graph.add(macro_node("cuFoo", "nvFoo"))
        graph.add(DeclNode("vdPrintf", DeclKind.VARIADIC_FUNCTION, "/inc/vendor.h",
                           CommentBinding("variadic function vdPrintf is not wrapped")))

        rewrite(graph, make_options(checked=["CUresult"]))

        assert graph[0].is_skipped
        assert isinstance(graph[0].binding, FunctionBinding)
        assert not graph[0].binding.call.gc_safe
        assert isinstance(graph[2].binding, CommentBinding)

    def test_bad_override_aborts(self, graph):
        graph.add(function_node("foo", ("Cint",)))

        with pytest.raises(ConfigurationError):
            rewrite(graph, make_options(api={"foo": {"argtypes": {"3": "Cint"}}}))

    def test_one_based_override_indices(self, graph):
        graph.add(function_node("vdSaxpy", ("Cint", "Ptr{Cfloat}", "Ptr{Cfloat}")))
        options = make_options(api={"vdSaxpy": {"argtypes": {"2": "CuPtr{Cfloat}"}}},
                               argtype_index_base=1)

        rewrite(graph, options)

        call = graph[0].binding.call
        assert [a.type for a in call.arguments] == ["Cint", "CuPtr{Cfloat}", "Ptr{Cfloat}"]
