"""
Unit tests for CodeGenerator and OutputBuilder
"""

from jl_binding_generator.code_generators import CodeGenerator, OutputBuilder
from jl_binding_generator.constants import AUTOGENERATED_NOTICE
from jl_binding_generator.ir import (
    Argument, Call, CheckedBinding, CommentBinding, ConstBinding, DeclGraph, DeclKind, DeclNode,
    EnumBinding, FunctionBinding, Identifier, Literal, MacroCall, NativeCall, StructBinding, StructField,
)


class TestCodeGenerator:
    """Test the CodeGenerator class"""

    def setup_method(self):
        """Set up test fixtures"""
        self.generator = CodeGenerator()

    def test_generate_plain_function(self):
        call = NativeCall("libcuda", "cuDriverGetVersion", (Argument("driverVersion", "Ptr{Cint}"),), "Cint")

        result = self.generator.generate(FunctionBinding("cuDriverGetVersion", call))

        assert result == (
            "function cuDriverGetVersion(driverVersion)\n"
            "    @ccall libcuda.cuDriverGetVersion(driverVersion::Ptr{Cint})::Cint\n"
            "end\n"
        )

    def test_generate_checked_context_guarded_function(self):
        call = NativeCall("libcuda", "cuInit", (Argument("Flags", "Cuint"),), "CUresult", gc_safe=True)
        binding = CheckedBinding(FunctionBinding("cuInit", call, ("initialize_context()",)))

        result = self.generator.generate(binding)

        assert result == (
            "@checked function cuInit(Flags)\n"
            "    initialize_context()\n"
            "    @gcsafe_ccall libcuda.cuInit(Flags::Cuint)::CUresult\n"
            "end\n"
        )

    def test_function_without_arguments(self):
        call = NativeCall("libnvml", "nvmlInit_v2", (), "nvmlReturn_t", gc_safe=True)

        result = self.generator.generate(FunctionBinding("nvmlInit_v2", call))

        assert "function nvmlInit_v2()\n" in result
        assert "@gcsafe_ccall libnvml.nvmlInit_v2()::nvmlReturn_t" in result

    def test_keywords_are_escaped(self):
        call = NativeCall("libx", "xSeek", (Argument("end", "Cint"),), "Cvoid")

        result = self.generator.generate(FunctionBinding("xSeek", call))

        assert 'function xSeek(var"end")' in result
        assert 'var"end"::Cint' in result

    def test_generate_constants(self):
        assert self.generator.generate(ConstBinding("CUDA_VERSION", Literal("12040"))) == "const CUDA_VERSION = 12040\n"
        assert self.generator.generate(ConstBinding("cuFoo", Identifier("nvFoo"))) == "const cuFoo = nvFoo\n"
        assert (self.generator.generate(ConstBinding("X", Call("WRAP", (Identifier("y"), Literal("1")))))
                == "const X = WRAP(y, 1)\n")
        assert (self.generator.generate(ConstBinding("nvmlProcessInfo_v2",
                                                     MacroCall("NVML_STRUCT_SIZE", (Identifier("nvmlProcessInfo_t"),))))
                == "const nvmlProcessInfo_v2 = @NVML_STRUCT_SIZE(nvmlProcessInfo_t)\n")

    def test_generate_structs(self):
        opaque = self.generator.generate(StructBinding("CUctx_st", mutable=True))
        complete = self.generator.generate(StructBinding("float2", (StructField("x", "Cfloat"),
                                                                    StructField("y", "Cfloat"))))

        assert opaque == "mutable struct CUctx_st end\n"
        assert complete == "struct float2\n    x::Cfloat\n    y::Cfloat\nend\n"

    def test_generate_enum(self):
        binding = EnumBinding("cudaError_enum", "Cuint", (("CUDA_SUCCESS", 0), ("CUDA_ERROR_INVALID_VALUE", 1)))

        result = self.generator.generate(binding)

        assert result.startswith("@cenum cudaError_enum::Cuint begin\n")
        assert "    CUDA_ERROR_INVALID_VALUE = 1\n" in result
        assert result.endswith("end\n")

    def test_generate_comment(self):
        assert self.generator.generate(CommentBinding("variadic function f is not wrapped")) == \
            "# variadic function f is not wrapped\n"


class TestOutputBuilder:
    """Test the OutputBuilder class"""

    def test_only_active_nodes_are_emitted(self):
        graph = DeclGraph()
        graph.add(DeclNode("A", DeclKind.MACRO, "/inc/a.h", ConstBinding("A", Literal("1"))))
        graph.add(DeclNode("B", DeclKind.MACRO, "/inc/a.h", None))
        graph.add(DeclNode("C", DeclKind.MACRO, "/inc/a.h", ConstBinding("C", Literal("3"))))
        graph.skip(2)

        output = OutputBuilder.build(graph)

        assert output == "const A = 1\n"

    def test_prologue_and_epilogue(self):
        graph = DeclGraph()
        graph.add(DeclNode("A", DeclKind.MACRO, "/inc/a.h", ConstBinding("A", Literal("1"))))

        output = OutputBuilder.build(graph, prologue="using CEnum\n\n", epilogue="# end")

        assert output.startswith("using CEnum\n")
        assert output.index("const A = 1") > output.index("using CEnum")
        assert output.endswith("# end\n")

    def test_add_notice(self):
        text = OutputBuilder.add_notice("const A = 1\n")

        lines = text.split("\n")
        assert lines[0] == "# This file is automatically generated. Do not edit!"
        assert lines[1].startswith("# To re-generate")
        assert lines[2] == ""
        assert lines[3] == "const A = 1"
        assert text.startswith(AUTOGENERATED_NOTICE)
