"""
Per-language element extraction over tree-sitter syntax trees.

Each language has a :class:`LanguageExtractor` whose ``visit_<node_type>``
handlers describe what a top-level node of that kind contributes.  Only
the root's direct children are visited; handlers never descend into
function bodies, so nested declarations are ignored.

"Exported" follows each language's convention:
  - JavaScript / TypeScript: wrapped in an ``export`` statement
  - Java: ``public`` modifier; Rust: ``pub`` visibility
  - Go: identifier starts with an uppercase letter
  - Python: identifier does not start with an underscore
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .parser import (
        ClassRecord, FunctionRecord, ImportRecord, InterfaceRecord, VariableRecord,
    )

# ---------------------------------------------------------------------------
# Node helpers
# ---------------------------------------------------------------------------

def _text(node) -> str:
    """Decode a tree-sitter Node's text as UTF-8."""
    if node is None or not node.text:
        return ""
    return node.text.decode("utf-8", errors="replace")


def _line(node) -> int:
    return node.start_point[0] + 1


def _end_line(node) -> int:
    return node.end_point[0] + 1


def _has_token(node, token: str) -> bool:
    """Return True if *node* has a direct child of type *token*."""
    return any(child.type == token for child in node.children)


def _unquote(raw: str) -> str:
    return raw.strip().strip("\"'`<>")


# ---------------------------------------------------------------------------
# Visitor base
# ---------------------------------------------------------------------------

class NodeVisitor:
    """
    Dispatch on tree-sitter node kinds, in the manner of :class:`ast.NodeVisitor`.

    Kinds without a ``visit_<type>`` handler are ignored.
    """

    def visit(self, node):
        handler = getattr(self, "visit_" + node.type, None)
        if handler is None:
            return self.generic_visit(node)
        return handler(node)

    def generic_visit(self, node):
        return None


@dataclass
class Extraction:
    """Elements collected from one syntax tree."""
    functions: list["FunctionRecord"] = field(default_factory=list)
    classes: list["ClassRecord"] = field(default_factory=list)
    variables: list["VariableRecord"] = field(default_factory=list)
    interfaces: list["InterfaceRecord"] = field(default_factory=list)
    imports: list["ImportRecord"] = field(default_factory=list)


class LanguageExtractor(NodeVisitor):
    """Collects top-level declarations from the root node of a tree."""

    language = ""

    def __init__(self) -> None:
        self._out = Extraction()

    def extract(self, root) -> Extraction:
        """Walk the direct children of *root* and return everything found."""
        self._out = Extraction()
        for child in root.named_children:
            self.visit(child)
        self.finish()
        return self._out

    def finish(self) -> None:
        """Hook run after the walk; used to attach detached methods."""

    def extract_functions(self, root) -> list["FunctionRecord"]:
        return self.extract(root).functions

    def extract_classes(self, root) -> list["ClassRecord"]:
        return self.extract(root).classes

    def extract_variables(self, root) -> list["VariableRecord"]:
        return self.extract(root).variables

    def extract_interfaces(self, root) -> list["InterfaceRecord"]:
        return self.extract(root).interfaces

    def extract_imports(self, root) -> list["ImportRecord"]:
        return self.extract(root).imports

    # Shared record builders -------------------------------------------------

    def _function(self, node, name: str, params: list[str], *, kind: str = "function",
                  is_async: bool = False, is_exported: bool = False,
                  line: Optional[int] = None) -> "FunctionRecord":
        from .parser import FunctionRecord
        return FunctionRecord(
            name=name,
            line=line if line is not None else _line(node),
            end_line=_end_line(node),
            params=params,
            is_async=is_async,
            is_exported=is_exported,
            kind=kind,
        )

    def _class(self, node, name: str, methods: list["FunctionRecord"],
               is_exported: bool) -> "ClassRecord":
        from .parser import ClassRecord
        return ClassRecord(
            name=name,
            line=_line(node),
            end_line=_end_line(node),
            is_exported=is_exported,
            methods=methods,
        )

    def _variable(self, node, name: str, kind: str, is_exported: bool) -> "VariableRecord":
        from .parser import VariableRecord
        return VariableRecord(name=name, line=_line(node), is_exported=is_exported, kind=kind)

    def _interface(self, node, name: str, kind: str, properties: list[str],
                   is_exported: bool) -> "InterfaceRecord":
        from .parser import InterfaceRecord
        return InterfaceRecord(
            name=name,
            line=_line(node),
            end_line=_end_line(node),
            is_exported=is_exported,
            kind=kind,
            properties=properties,
        )

    def _import(self, node, source: str, specifiers: list[str],
                is_type_only: bool = False) -> "ImportRecord":
        from .parser import ImportRecord
        return ImportRecord(
            source=source,
            specifiers=specifiers,
            line=_line(node),
            is_type_only=is_type_only,
        )


class _ReceiverMethodsMixin:
    """
    For languages that declare methods outside the type body (Go, Rust).

    Methods are parked under their receiver type name and attached to the
    matching class in :meth:`finish`; methods on types declared elsewhere
    stay in the function list with kind ``method``.
    """

    def _park_method(self, type_name: str, method) -> None:
        self._detached.setdefault(type_name, []).append(method)

    def finish(self) -> None:
        by_name = {cls.name: cls for cls in self._out.classes}
        for type_name, methods in self._detached.items():
            owner = by_name.get(type_name)
            if owner is not None:
                owner.methods.extend(methods)
            else:
                self._out.functions.extend(methods)
        self._detached = {}


# ---------------------------------------------------------------------------
# JavaScript / TypeScript
# ---------------------------------------------------------------------------

_REFERENCE_RE = re.compile(r'^///\s*<reference\s+(path|types|lib)\s*=\s*["\']([^"\']+)["\']')


class EcmaScriptExtractor(LanguageExtractor):
    """JavaScript, JSX, TypeScript and TSX share one set of rules."""

    language = "javascript"

    def __init__(self) -> None:
        super().__init__()
        self._exported = False

    def visit_export_statement(self, node):
        declaration = node.child_by_field_name("declaration")
        if declaration is None:
            return
        self._exported = True
        try:
            self.visit(declaration)
        finally:
            self._exported = False

    # functions -------------------------------------------------------------

    def visit_function_declaration(self, node):
        name = node.child_by_field_name("name")
        if name is None:
            return
        self._out.functions.append(self._function(
            node,
            _text(name),
            self._params(node.child_by_field_name("parameters")),
            is_async=_has_token(node, "async"),
            is_exported=self._exported,
        ))

    visit_generator_function_declaration = visit_function_declaration

    def visit_lexical_declaration(self, node):
        kind_node = node.child_by_field_name("kind")
        kind = _text(kind_node) if kind_node is not None else _text(node.children[0])
        self._declarators(node, kind)

    def visit_variable_declaration(self, node):
        self._declarators(node, "var")

    def _declarators(self, node, kind: str) -> None:
        for declarator in node.named_children:
            if declarator.type != "variable_declarator":
                continue
            name = declarator.child_by_field_name("name")
            if name is None or name.type != "identifier":
                continue
            value = declarator.child_by_field_name("value")
            if value is not None and value.type == "arrow_function":
                self._out.functions.append(self._function(
                    value,
                    _text(name),
                    self._arrow_params(value),
                    kind="arrow",
                    is_async=_has_token(value, "async"),
                    is_exported=self._exported,
                    line=_line(declarator),
                ))
                continue
            self._out.variables.append(
                self._variable(declarator, _text(name), kind, self._exported)
            )
            source = self._require_source(value)
            if source:
                self._out.imports.append(self._import(declarator, source, [_text(name)]))

    @staticmethod
    def _require_source(value) -> Optional[str]:
        """Return the module of a ``require('x')`` call, or None."""
        if value is None or value.type != "call_expression":
            return None
        func = value.child_by_field_name("function")
        args = value.child_by_field_name("arguments")
        if func is None or _text(func) != "require" or args is None:
            return None
        strings = [a for a in args.named_children if a.type == "string"]
        return _unquote(_text(strings[0])) if len(strings) == 1 else None

    # classes ---------------------------------------------------------------

    def visit_class_declaration(self, node):
        name = node.child_by_field_name("name")
        if name is None:
            return
        body = node.child_by_field_name("body")
        methods = []
        if body is not None:
            for member in body.named_children:
                if member.type != "method_definition":
                    continue
                method_name = member.child_by_field_name("name")
                if method_name is None:
                    continue
                methods.append(self._function(
                    member,
                    _text(method_name),
                    self._params(member.child_by_field_name("parameters")),
                    kind="method",
                    is_async=_has_token(member, "async"),
                ))
        self._out.classes.append(self._class(node, _text(name), methods, self._exported))

    visit_abstract_class_declaration = visit_class_declaration

    # interfaces ------------------------------------------------------------

    def visit_interface_declaration(self, node):
        name = node.child_by_field_name("name")
        if name is None:
            return
        self._out.interfaces.append(self._interface(
            node, _text(name), "interface",
            self._members(node.child_by_field_name("body")),
            self._exported,
        ))

    def visit_type_alias_declaration(self, node):
        name = node.child_by_field_name("name")
        if name is None:
            return
        value = node.child_by_field_name("value")
        properties = self._members(value) if value is not None and value.type == "object_type" else []
        self._out.interfaces.append(
            self._interface(node, _text(name), "type", properties, self._exported)
        )

    @staticmethod
    def _members(body) -> list[str]:
        if body is None:
            return []
        names = []
        for member in body.named_children:
            if member.type in ("property_signature", "method_signature"):
                name = member.child_by_field_name("name")
                if name is not None:
                    names.append(_text(name))
        return names

    # imports ---------------------------------------------------------------

    def visit_import_statement(self, node):
        source = node.child_by_field_name("source")
        if source is None:
            return
        specifiers: list[str] = []
        is_type_only = any(
            child.type == "type" and _text(child) == "type" for child in node.children
        )
        clause = next(
            (c for c in node.named_children if c.type in ("import_clause", "named_imports")),
            None,
        )
        if clause is not None:
            parts = [clause] if clause.type == "named_imports" else clause.named_children
            for part in parts:
                if part.type == "identifier":
                    specifiers.insert(0, _text(part))
                elif part.type == "named_imports":
                    for spec in part.named_children:
                        if spec.type != "import_specifier":
                            continue
                        alias = spec.child_by_field_name("alias")
                        spec_name = spec.child_by_field_name("name")
                        specifiers.append(_text(alias or spec_name or spec))
                elif part.type == "namespace_import":
                    ident = next((c for c in part.named_children if c.type == "identifier"), None)
                    specifiers.append(_text(ident or part))
        self._out.imports.append(
            self._import(node, _unquote(_text(source)), specifiers, is_type_only)
        )

    def visit_comment(self, node):
        match = _REFERENCE_RE.match(_text(node))
        if match:
            self._out.imports.append(
                self._import(node, match.group(2), [], is_type_only=match.group(1) != "path")
            )

    # parameters ------------------------------------------------------------

    @staticmethod
    def _params(params_node) -> list[str]:
        if params_node is None:
            return []
        params: list[str] = []
        for child in params_node.named_children:
            if child.type in ("required_parameter", "optional_parameter"):
                pattern = child.child_by_field_name("pattern")
                if pattern is not None:
                    params.append(_text(pattern))
            elif child.type == "identifier":
                params.append(_text(child))
            elif child.type == "rest_pattern":
                inner = child.named_children[0] if child.named_children else None
                params.append("..." + _text(inner))
            elif child.type == "assignment_pattern":
                left = child.child_by_field_name("left")
                if left is not None:
                    params.append(_text(left))
        return params

    def _arrow_params(self, arrow) -> list[str]:
        single = arrow.child_by_field_name("parameter")
        if single is not None:
            return [_text(single)]
        return self._params(arrow.child_by_field_name("parameters"))


class TypeScriptExtractor(EcmaScriptExtractor):
    language = "typescript"


# ---------------------------------------------------------------------------
# Python
# ---------------------------------------------------------------------------

_SKIP_PARAMS = {"self", "cls"}
_PROTOCOL_BASES = {"Protocol", "TypedDict"}


def _python_public(name: str) -> bool:
    return not name.startswith("_") or (name.startswith("__") and name.endswith("__"))


class PythonExtractor(LanguageExtractor):

    language = "python"

    def __init__(self) -> None:
        super().__init__()
        self._type_only = False

    def visit_decorated_definition(self, node):
        definition = node.child_by_field_name("definition")
        if definition is not None:
            self.visit(definition)

    def visit_function_definition(self, node):
        name = _text(node.child_by_field_name("name"))
        if not name:
            return
        self._out.functions.append(self._function(
            node, name,
            self._params(node.child_by_field_name("parameters")),
            is_async=_has_token(node, "async"),
            is_exported=not name.startswith("_"),
        ))

    def visit_class_definition(self, node):
        name = _text(node.child_by_field_name("name"))
        if not name:
            return
        body = node.child_by_field_name("body")
        members = list(body.named_children) if body is not None else []

        bases = node.child_by_field_name("superclasses")
        base_names = {
            _text(b).rsplit(".", 1)[-1]
            for b in (bases.named_children if bases is not None else [])
        }
        if base_names & _PROTOCOL_BASES:
            self._out.interfaces.append(self._interface(
                node, name, "protocol", self._protocol_members(members),
                not name.startswith("_"),
            ))
            return

        methods = []
        for member in members:
            if member.type == "decorated_definition":
                member = member.child_by_field_name("definition")
            if member is None or member.type != "function_definition":
                continue
            method_name = _text(member.child_by_field_name("name"))
            if not method_name:
                continue
            methods.append(self._function(
                member, method_name,
                self._params(member.child_by_field_name("parameters")),
                kind="method",
                is_async=_has_token(member, "async"),
                is_exported=_python_public(method_name),
            ))
        self._out.classes.append(self._class(node, name, methods, not name.startswith("_")))

    @staticmethod
    def _protocol_members(members) -> list[str]:
        names = []
        for member in members:
            if member.type == "decorated_definition":
                member = member.child_by_field_name("definition")
            if member is None:
                continue
            if member.type == "function_definition":
                names.append(_text(member.child_by_field_name("name")))
            elif member.type == "expression_statement":
                for sub in member.named_children:
                    left = sub.child_by_field_name("left") if sub.type == "assignment" else None
                    if left is not None and left.type == "identifier":
                        names.append(_text(left))
        return names

    def visit_expression_statement(self, node):
        for assignment in node.named_children:
            if assignment.type != "assignment":
                continue
            left = assignment.child_by_field_name("left")
            if left is None or left.type != "identifier":
                continue
            name = _text(left)
            right = assignment.child_by_field_name("right")
            if right is not None and right.type == "lambda":
                self._out.functions.append(self._function(
                    assignment, name,
                    self._params(right.child_by_field_name("parameters")),
                    kind="arrow",
                    is_exported=not name.startswith("_"),
                ))
                continue
            kind = "constant" if name.isupper() else "variable"
            self._out.variables.append(
                self._variable(assignment, name, kind, not name.startswith("_"))
            )

    def visit_type_alias_statement(self, node):
        left = node.child_by_field_name("left")
        name = _text(left).split("[", 1)[0].strip()
        if name:
            self._out.interfaces.append(
                self._interface(node, name, "type", [], not name.startswith("_"))
            )

    def visit_import_statement(self, node):
        for child in node.named_children:
            if child.type == "aliased_import":
                module = _text(child.child_by_field_name("name"))
                bound = _text(child.child_by_field_name("alias"))
            else:
                module = _text(child)
                bound = module.split(".", 1)[0]
            if module:
                self._out.imports.append(self._import(node, module, [bound], self._type_only))

    def visit_import_from_statement(self, node):
        module = _text(node.child_by_field_name("module_name"))
        specifiers = []
        for child in node.children_by_field_name("name"):
            if child.type == "aliased_import":
                specifiers.append(_text(child.child_by_field_name("alias")))
            else:
                specifiers.append(_text(child))
        if any(c.type == "wildcard_import" for c in node.named_children):
            specifiers.append("*")
        if module:
            self._out.imports.append(self._import(node, module, specifiers, self._type_only))

    def visit_future_import_statement(self, node):
        names = [_text(c) for c in node.children_by_field_name("name")]
        self._out.imports.append(self._import(node, "__future__", names))

    def visit_if_statement(self, node):
        # Imports under ``if TYPE_CHECKING:`` are type-only.
        condition = _text(node.child_by_field_name("condition"))
        if condition not in ("TYPE_CHECKING", "typing.TYPE_CHECKING"):
            return
        block = node.child_by_field_name("consequence")
        if block is None:
            return
        self._type_only = True
        try:
            for stmt in block.named_children:
                if stmt.type in ("import_statement", "import_from_statement"):
                    self.visit(stmt)
        finally:
            self._type_only = False

    @staticmethod
    def _params(params_node) -> list[str]:
        if params_node is None:
            return []
        params: list[str] = []
        for child in params_node.named_children:
            if child.type == "identifier":
                name = _text(child)
            elif child.type in ("default_parameter", "typed_default_parameter"):
                name = _text(child.child_by_field_name("name"))
            elif child.type == "typed_parameter":
                name = _text(child.named_children[0]) if child.named_children else ""
            elif child.type in ("list_splat_pattern", "dictionary_splat_pattern"):
                name = _text(child)
            else:
                continue
            if name and name not in _SKIP_PARAMS:
                params.append(name)
        return params


# ---------------------------------------------------------------------------
# Go
# ---------------------------------------------------------------------------

def _go_exported(name: str) -> bool:
    return bool(name) and name[0].isupper()


class GoExtractor(_ReceiverMethodsMixin, LanguageExtractor):

    language = "go"

    def __init__(self) -> None:
        super().__init__()
        self._detached: dict[str, list] = {}

    def visit_function_declaration(self, node):
        name = _text(node.child_by_field_name("name"))
        if name:
            self._out.functions.append(self._function(
                node, name,
                self._params(node.child_by_field_name("parameters")),
                is_exported=_go_exported(name),
            ))

    def visit_method_declaration(self, node):
        name = _text(node.child_by_field_name("name"))
        if not name:
            return
        method = self._function(
            node, name,
            self._params(node.child_by_field_name("parameters")),
            kind="method",
            is_exported=_go_exported(name),
        )
        self._park_method(self._receiver_type(node.child_by_field_name("receiver")), method)

    @staticmethod
    def _receiver_type(receiver) -> str:
        if receiver is None:
            return ""
        for decl in receiver.named_children:
            type_node = decl.child_by_field_name("type")
            while type_node is not None and type_node.type in ("pointer_type", "generic_type"):
                inner = type_node.child_by_field_name("type")
                type_node = inner if inner is not None else (
                    type_node.named_children[0] if type_node.named_children else None
                )
            if type_node is not None:
                return _text(type_node)
        return ""

    def visit_type_declaration(self, node):
        for spec in node.named_children:
            if spec.type not in ("type_spec", "type_alias"):
                continue
            name = _text(spec.child_by_field_name("name"))
            if not name:
                continue
            type_node = spec.child_by_field_name("type")
            type_kind = type_node.type if type_node is not None else ""
            if spec.type == "type_spec" and type_kind == "struct_type":
                self._out.classes.append(self._class(spec, name, [], _go_exported(name)))
            elif spec.type == "type_spec" and type_kind == "interface_type":
                methods = [
                    _text(m.child_by_field_name("name"))
                    for m in type_node.named_children
                    if m.type in ("method_elem", "method_spec")
                ]
                self._out.interfaces.append(
                    self._interface(spec, name, "interface", methods, _go_exported(name))
                )
            else:
                self._out.interfaces.append(
                    self._interface(spec, name, "type", [], _go_exported(name))
                )

    def visit_var_declaration(self, node):
        self._specs(node, "var")

    def visit_const_declaration(self, node):
        self._specs(node, "const")

    def _specs(self, node, kind: str) -> None:
        specs = []
        for child in node.named_children:
            if child.type in ("var_spec", "const_spec"):
                specs.append(child)
            elif child.type == "var_spec_list":
                specs.extend(c for c in child.named_children if c.type == "var_spec")
        for spec in specs:
            names = spec.children_by_field_name("name")
            value = spec.child_by_field_name("value")
            values = value.named_children if value is not None else []
            for idx, name_node in enumerate(names):
                name = _text(name_node)
                literal = values[idx] if idx < len(values) else None
                if literal is not None and literal.type == "func_literal":
                    self._out.functions.append(self._function(
                        literal, name,
                        self._params(literal.child_by_field_name("parameters")),
                        kind="arrow",
                        is_exported=_go_exported(name),
                        line=_line(spec),
                    ))
                else:
                    self._out.variables.append(
                        self._variable(spec, name, kind, _go_exported(name))
                    )

    def visit_import_declaration(self, node):
        specs = []
        for child in node.named_children:
            if child.type == "import_spec":
                specs.append(child)
            elif child.type == "import_spec_list":
                specs.extend(c for c in child.named_children if c.type == "import_spec")
        for spec in specs:
            path = _unquote(_text(spec.child_by_field_name("path")))
            alias = _text(spec.child_by_field_name("name"))
            bound = alias or path.rsplit("/", 1)[-1]
            self._out.imports.append(self._import(spec, path, [bound]))

    @staticmethod
    def _params(params_node) -> list[str]:
        if params_node is None:
            return []
        params: list[str] = []
        for decl in params_node.named_children:
            if decl.type == "parameter_declaration":
                params.extend(_text(n) for n in decl.children_by_field_name("name"))
            elif decl.type == "variadic_parameter_declaration":
                name = decl.child_by_field_name("name")
                if name is not None:
                    params.append("..." + _text(name))
        return params


# ---------------------------------------------------------------------------
# Java
# ---------------------------------------------------------------------------

def _java_modifiers(node) -> set[str]:
    for child in node.children:
        if child.type == "modifiers":
            return {_text(m) for m in child.children}
    return set()


class JavaExtractor(LanguageExtractor):

    language = "java"

    def visit_class_declaration(self, node):
        name = _text(node.child_by_field_name("name"))
        if not name:
            return
        body = node.child_by_field_name("body")
        members = list(body.named_children) if body is not None else []
        for member in list(members):
            if member.type == "enum_body_declarations":
                members.extend(member.named_children)
        methods = []
        for member in members:
            if member.type not in ("method_declaration", "constructor_declaration"):
                continue
            methods.append(self._function(
                member,
                _text(member.child_by_field_name("name")),
                self._params(member.child_by_field_name("parameters")),
                kind="method",
                is_exported="public" in _java_modifiers(member),
            ))
        self._out.classes.append(
            self._class(node, name, methods, "public" in _java_modifiers(node))
        )

    visit_enum_declaration = visit_class_declaration
    visit_record_declaration = visit_class_declaration

    def visit_interface_declaration(self, node):
        name = _text(node.child_by_field_name("name"))
        if not name:
            return
        body = node.child_by_field_name("body")
        properties = []
        for member in (body.named_children if body is not None else []):
            if member.type == "method_declaration":
                properties.append(_text(member.child_by_field_name("name")))
            elif member.type == "constant_declaration":
                for decl in member.children_by_field_name("declarator"):
                    properties.append(_text(decl.child_by_field_name("name")))
        self._out.interfaces.append(self._interface(
            node, name, "interface", properties, "public" in _java_modifiers(node),
        ))

    def visit_import_declaration(self, node):
        target = next(
            (c for c in node.named_children if c.type in ("scoped_identifier", "identifier")),
            None,
        )
        if target is None:
            return
        source = _text(target)
        wildcard = any(c.type == "asterisk" for c in node.named_children)
        specifier = "*" if wildcard else source.rsplit(".", 1)[-1]
        self._out.imports.append(self._import(node, source, [specifier]))

    @staticmethod
    def _params(params_node) -> list[str]:
        if params_node is None:
            return []
        params: list[str] = []
        for child in params_node.named_children:
            if child.type == "formal_parameter":
                params.append(_text(child.child_by_field_name("name")))
            elif child.type == "spread_parameter":
                decl = next(
                    (c for c in child.named_children if c.type == "variable_declarator"), None
                )
                if decl is not None:
                    params.append("..." + _text(decl.child_by_field_name("name")))
        return params


# ---------------------------------------------------------------------------
# Rust
# ---------------------------------------------------------------------------

def _rust_pub(node) -> bool:
    return _has_token(node, "visibility_modifier")


def _rust_async(node) -> bool:
    return any(
        child.type == "function_modifiers" and "async" in _text(child).split()
        for child in node.children
    )


class RustExtractor(_ReceiverMethodsMixin, LanguageExtractor):

    language = "rust"

    def __init__(self) -> None:
        super().__init__()
        self._detached: dict[str, list] = {}

    def visit_function_item(self, node):
        name = _text(node.child_by_field_name("name"))
        if name:
            self._out.functions.append(self._function(
                node, name,
                self._params(node.child_by_field_name("parameters")),
                is_async=_rust_async(node),
                is_exported=_rust_pub(node),
            ))

    def visit_struct_item(self, node):
        name = _text(node.child_by_field_name("name"))
        if name:
            self._out.classes.append(self._class(node, name, [], _rust_pub(node)))

    visit_enum_item = visit_struct_item

    def visit_impl_item(self, node):
        type_node = node.child_by_field_name("type")
        if type_node is not None and type_node.type == "generic_type":
            type_node = type_node.child_by_field_name("type")
        type_name = _text(type_node)
        body = node.child_by_field_name("body")
        for member in (body.named_children if body is not None else []):
            if member.type != "function_item":
                continue
            self._park_method(type_name, self._function(
                member,
                _text(member.child_by_field_name("name")),
                self._params(member.child_by_field_name("parameters")),
                kind="method",
                is_async=_rust_async(member),
                is_exported=_rust_pub(member),
            ))

    def visit_trait_item(self, node):
        name = _text(node.child_by_field_name("name"))
        if not name:
            return
        body = node.child_by_field_name("body")
        properties = [
            _text(m.child_by_field_name("name"))
            for m in (body.named_children if body is not None else [])
            if m.type in ("function_signature_item", "function_item", "associated_type")
        ]
        self._out.interfaces.append(
            self._interface(node, name, "trait", properties, _rust_pub(node))
        )

    def visit_type_item(self, node):
        name = _text(node.child_by_field_name("name"))
        if name:
            self._out.interfaces.append(self._interface(node, name, "type", [], _rust_pub(node)))

    def visit_const_item(self, node):
        name = _text(node.child_by_field_name("name"))
        if name:
            self._out.variables.append(self._variable(node, name, "const", _rust_pub(node)))

    def visit_static_item(self, node):
        name = _text(node.child_by_field_name("name"))
        if name:
            self._out.variables.append(self._variable(node, name, "static", _rust_pub(node)))

    def visit_use_declaration(self, node):
        argument = node.child_by_field_name("argument")
        if argument is None:
            return
        specifiers: list[str] = []
        source = _text(argument)
        if argument.type == "scoped_use_list":
            source = _text(argument.child_by_field_name("path"))
            use_list = argument.child_by_field_name("list")
            for item in (use_list.named_children if use_list is not None else []):
                specifiers.append(_text(item))
        elif argument.type == "use_as_clause":
            source = _text(argument.child_by_field_name("path"))
            specifiers.append(_text(argument.child_by_field_name("alias")))
        else:
            specifiers.append(source.rsplit("::", 1)[-1])
        self._out.imports.append(self._import(node, source, specifiers))

    @staticmethod
    def _params(params_node) -> list[str]:
        if params_node is None:
            return []
        return [
            _text(child.child_by_field_name("pattern"))
            for child in params_node.named_children
            if child.type == "parameter"
        ]


# ---------------------------------------------------------------------------
# Dispatch table
# ---------------------------------------------------------------------------

EXTRACTORS: dict[str, type[LanguageExtractor]] = {
    "javascript": EcmaScriptExtractor,
    "jsx": EcmaScriptExtractor,
    "typescript": TypeScriptExtractor,
    "tsx": TypeScriptExtractor,
    "python": PythonExtractor,
    "go": GoExtractor,
    "java": JavaExtractor,
    "rust": RustExtractor,
}


def get_extractor(language: str) -> Optional[LanguageExtractor]:
    """Return a fresh extractor for *language*, or None if unsupported."""
    cls = EXTRACTORS.get(language)
    return cls() if cls is not None else None
