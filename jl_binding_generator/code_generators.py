"""
Code generation functions for Julia bindings
"""

from .constants import AUTOGENERATED_NOTICE, CCALL_MACRO, CHECKED_MACRO, GCSAFE_CCALL_MACRO
from .ir import (
    Call, CheckedBinding, CommentBinding, ConstBinding, DeclGraph, EnumBinding,
    FunctionBinding, Identifier, Literal, MacroCall, StructBinding,
)


JULIA_KEYWORDS = {
    'abstract', 'baremodule', 'begin', 'break', 'catch', 'const', 'continue',
    'do', 'else', 'elseif', 'end', 'export', 'false', 'finally', 'for',
    'function', 'global', 'if', 'import', 'let', 'local', 'macro', 'module',
    'mutable', 'primitive', 'quote', 'return', 'struct', 'true', 'try',
    'using', 'while',
}

INDENT = "    "


class CodeGenerator:
    """Renders bindings as Julia source"""

    @staticmethod
    def _escape_keyword(name: str) -> str:
        """Escape Julia keywords with the var"..." syntax"""
        if name in JULIA_KEYWORDS:
            return f'var"{name}"'
        return name

    def generate_value(self, value) -> str:
        if isinstance(value, Identifier):
            return self._escape_keyword(value.name)
        if isinstance(value, Literal):
            return value.text
        if isinstance(value, Call):
            args = ", ".join(self.generate_value(a) for a in value.args)
            return f"{value.target}({args})"
        if isinstance(value, MacroCall):
            args = ", ".join(self.generate_value(a) for a in value.args)
            return f"@{value.name}({args})"
        raise TypeError(f"Unsupported macro value: {value!r}")

    def generate_const(self, binding: ConstBinding) -> str:
        return f"const {binding.name} = {self.generate_value(binding.value)}\n"

    def generate_function(self, binding: FunctionBinding) -> str:
        """Generate a Julia function forwarding to `@ccall`"""
        call = binding.call
        params = ", ".join(self._escape_keyword(a.name) for a in call.arguments)
        typed_args = ", ".join(f"{self._escape_keyword(a.name)}::{a.type}" for a in call.arguments)
        macro = GCSAFE_CCALL_MACRO if call.gc_safe else CCALL_MACRO

        lines = [f"function {binding.name}({params})"]
        lines.extend(f"{INDENT}{statement}" for statement in binding.prologue)
        lines.append(f"{INDENT}{macro} {call.library}.{call.symbol}({typed_args})::{call.rettype}")
        lines.append("end")
        return "\n".join(lines) + "\n"

    def generate_checked(self, binding: CheckedBinding) -> str:
        return f"{CHECKED_MACRO} {self.generate_function(binding.function)}"

    def generate_struct(self, binding: StructBinding) -> str:
        keyword = "mutable struct" if binding.mutable else "struct"
        if not binding.fields:
            return f"{keyword} {binding.name} end\n"
        fields = "\n".join(f"{INDENT}{self._escape_keyword(f.name)}::{f.type}" for f in binding.fields)
        return f"{keyword} {binding.name}\n{fields}\nend\n"

    def generate_enum(self, binding: EnumBinding) -> str:
        if not binding.members:
            return f"const {binding.name} = {binding.underlying_type}\n"
        values = "\n".join(f"{INDENT}{name} = {value}" for name, value in binding.members)
        return f"@cenum {binding.name}::{binding.underlying_type} begin\n{values}\nend\n"

    def generate(self, binding) -> str:
        """Render any binding"""
        if isinstance(binding, CheckedBinding):
            return self.generate_checked(binding)
        if isinstance(binding, FunctionBinding):
            return self.generate_function(binding)
        if isinstance(binding, ConstBinding):
            return self.generate_const(binding)
        if isinstance(binding, StructBinding):
            return self.generate_struct(binding)
        if isinstance(binding, EnumBinding):
            return self.generate_enum(binding)
        if isinstance(binding, CommentBinding):
            return f"# {binding.text}\n"
        raise TypeError(f"Unsupported binding: {binding!r}")


class OutputBuilder:
    """Builds the final Julia output file"""

    @staticmethod
    def build(graph: DeclGraph, code_generator: CodeGenerator = None,
              prologue: str = "", epilogue: str = "") -> str:
        """Render every active declaration, in graph order"""
        code_generator = code_generator or CodeGenerator()
        parts = []

        if prologue:
            parts.append(prologue.rstrip("\n") + "\n")

        for _, node in graph.active():
            parts.append(code_generator.generate(node.binding))

        if epilogue:
            parts.append(epilogue.rstrip("\n") + "\n")

        return "\n".join(parts)

    @staticmethod
    def add_notice(text: str) -> str:
        """Prepend the autogenerated notice and a blank line"""
        return f"{AUTOGENERATED_NOTICE}\n{text}"
