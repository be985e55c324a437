"""
Unit tests for code_wiki.wiki.extractors

Each language is exercised against real syntax parsed by its tree-sitter
grammar; tests are skipped when that grammar is not installed.
"""

from __future__ import annotations

import textwrap

import pytest


def _extract(language: str, module: str, source: str):
    pytest.importorskip(module)
    from code_wiki.wiki.extractors import get_extractor
    from code_wiki.wiki.grammars import GrammarRegistry

    parser = GrammarRegistry().parser(language)
    assert parser is not None
    tree = parser.parse(textwrap.dedent(source).encode("utf-8"))
    return get_extractor(language).extract(tree.root_node)


def _by_name(items):
    return {item.name: item for item in items}


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

class TestDispatch:
    def test_unknown_language(self):
        from code_wiki.wiki.extractors import get_extractor
        assert get_extractor("cobol") is None

    def test_fresh_instance_per_call(self):
        from code_wiki.wiki.extractors import get_extractor
        assert get_extractor("python") is not get_extractor("python")

    def test_every_language_has_an_extractor(self):
        from code_wiki.wiki.extractors import EXTRACTORS
        from code_wiki.wiki.grammars import SUPPORTED_LANGUAGES
        assert SUPPORTED_LANGUAGES <= set(EXTRACTORS)


# ---------------------------------------------------------------------------
# TypeScript
# ---------------------------------------------------------------------------

TS_SOURCE = """\
    /// <reference types="node" />
    import { readFile } from 'fs';
    import type { Config } from './config';
    import * as path from 'path';
    import Default, { a as b } from './mod';

    export interface Invoice {
      id: string;
      total(): number;
    }

    export type Amount = number;

    export function computeTotal(a: number, b: number): number {
      return a + b;
    }

    export const formatPrice = async (price: number) => `${price}`;

    const TAX_RATE = 0.2;

    function helper() {
      function nested() {}
    }

    export class InvoiceService {
      constructor(private repo: string) {}
      async load(id: string) { return id; }
    }
"""


class TestTypeScript:
    @pytest.fixture()
    def out(self):
        return _extract("typescript", "tree_sitter_typescript", TS_SOURCE)

    def test_functions(self, out):
        funcs = _by_name(out.functions)
        assert set(funcs) == {"computeTotal", "formatPrice", "helper"}
        assert funcs["computeTotal"].params == ["a", "b"]
        assert funcs["computeTotal"].is_exported is True
        assert funcs["computeTotal"].kind == "function"
        assert funcs["helper"].is_exported is False

    def test_arrow_function(self, out):
        arrow = _by_name(out.functions)["formatPrice"]
        assert arrow.kind == "arrow"
        assert arrow.is_async is True
        assert arrow.params == ["price"]
        assert arrow.line == 18

    def test_class_with_methods(self, out):
        cls = _by_name(out.classes)["InvoiceService"]
        assert cls.is_exported is True
        methods = _by_name(cls.methods)
        assert set(methods) == {"constructor", "load"}
        assert methods["load"].is_async is True
        assert methods["load"].kind == "method"
        assert methods["constructor"].params == ["repo"]

    def test_variables(self, out):
        var = _by_name(out.variables)["TAX_RATE"]
        assert var.kind == "const"
        assert var.is_exported is False

    def test_interfaces_and_types(self, out):
        items = _by_name(out.interfaces)
        assert items["Invoice"].kind == "interface"
        assert items["Invoice"].properties == ["id", "total"]
        assert items["Amount"].kind == "type"

    def test_imports(self, out):
        by_source = {imp.source: imp for imp in out.imports}
        assert by_source["fs"].specifiers == ["readFile"]
        assert by_source["./config"].is_type_only is True
        assert by_source["path"].specifiers == ["path"]
        assert by_source["./mod"].specifiers == ["Default", "b"]
        assert by_source["node"].is_type_only is True


class TestJavaScript:
    def test_require_and_class(self):
        out = _extract("javascript", "tree_sitter_javascript", """\
            const fs = require('fs');

            class Greeter {
              constructor(name) {
                this.name = name;
              }

              greet() {
                return `Hello, ${this.name}`;
              }
            }

            const add = (x, y) => x + y;
            const square = n => n * n;
        """)
        assert out.imports[0].source == "fs"
        assert out.imports[0].specifiers == ["fs"]
        assert [m.name for m in out.classes[0].methods] == ["constructor", "greet"]
        funcs = _by_name(out.functions)
        assert funcs["add"].params == ["x", "y"]
        assert funcs["square"].params == ["n"]


# ---------------------------------------------------------------------------
# Python
# ---------------------------------------------------------------------------

PY_SOURCE = """\
    from __future__ import annotations

    import os.path
    import numpy as np
    from typing import TYPE_CHECKING, Protocol

    if TYPE_CHECKING:
        from .store import WikiStore

    MAX_ITEMS = 10
    _cache = {}
    double = lambda x: x * 2


    class Repository(Protocol):
        name: str

        def load(self, key): ...


    class Invoice:
        @property
        def total(self):
            return 0

        async def refresh(self, force=False, *args, **kwargs):
            pass

        def _private(self):
            pass


    @decorator
    async def compute_total(a: int, b: int = 0) -> int:
        return a + b


    def _helper():
        def nested():
            pass
"""


class TestPython:
    @pytest.fixture()
    def out(self):
        return _extract("python", "tree_sitter_python", PY_SOURCE)

    def test_functions(self, out):
        funcs = _by_name(out.functions)
        assert set(funcs) == {"double", "compute_total", "_helper"}
        assert funcs["compute_total"].is_async is True
        assert funcs["compute_total"].params == ["a", "b"]
        assert funcs["compute_total"].is_exported is True
        assert funcs["_helper"].is_exported is False
        assert funcs["double"].kind == "arrow"
        assert funcs["double"].params == ["x"]

    def test_class_methods_skip_self(self, out):
        cls = _by_name(out.classes)["Invoice"]
        methods = _by_name(cls.methods)
        assert set(methods) == {"total", "refresh", "_private"}
        assert methods["refresh"].params == ["force", "*args", "**kwargs"]
        assert methods["refresh"].is_async is True
        assert methods["_private"].is_exported is False

    def test_protocol_is_interface(self, out):
        assert "Repository" not in _by_name(out.classes)
        proto = _by_name(out.interfaces)["Repository"]
        assert proto.kind == "protocol"
        assert "load" in proto.properties

    def test_variables(self, out):
        variables = _by_name(out.variables)
        assert variables["MAX_ITEMS"].kind == "constant"
        assert variables["_cache"].kind == "variable"
        assert variables["_cache"].is_exported is False

    def test_imports(self, out):
        by_source = {imp.source: imp for imp in out.imports}
        assert by_source["__future__"].specifiers == ["annotations"]
        assert by_source["os.path"].specifiers == ["os"]
        assert by_source["numpy"].specifiers == ["np"]
        assert by_source["typing"].specifiers == ["TYPE_CHECKING", "Protocol"]
        assert by_source[".store"].is_type_only is True
        assert by_source["typing"].is_type_only is False


# ---------------------------------------------------------------------------
# Go
# ---------------------------------------------------------------------------

class TestGo:
    @pytest.fixture()
    def out(self):
        return _extract("go", "tree_sitter_go", """\
            package billing

            import (
                "fmt"
                str "strings"
            )

            const Rate = 2

            type Invoice struct {
                Total int
            }

            type Store interface {
                Load(id string) Invoice
            }

            func (i *Invoice) Add(amount int) {}

            func (o Order) Ship() {}

            func ComputeTotal(a int, b int) int {
                return a + b
            }

            func helper() {}
        """)

    def test_functions(self, out):
        funcs = _by_name(out.functions)
        assert funcs["ComputeTotal"].params == ["a", "b"]
        assert funcs["ComputeTotal"].is_exported is True
        assert funcs["helper"].is_exported is False

    def test_methods_attach_to_receiver(self, out):
        cls = _by_name(out.classes)["Invoice"]
        assert [m.name for m in cls.methods] == ["Add"]
        assert cls.methods[0].params == ["amount"]

    def test_method_on_foreign_type_stays_function(self, out):
        ship = _by_name(out.functions)["Ship"]
        assert ship.kind == "method"

    def test_interface(self, out):
        store = _by_name(out.interfaces)["Store"]
        assert store.properties == ["Load"]

    def test_imports_and_consts(self, out):
        by_source = {imp.source: imp for imp in out.imports}
        assert by_source["fmt"].specifiers == ["fmt"]
        assert by_source["strings"].specifiers == ["str"]
        assert _by_name(out.variables)["Rate"].kind == "const"


# ---------------------------------------------------------------------------
# Java
# ---------------------------------------------------------------------------

class TestJava:
    def test_class_interface_import(self):
        out = _extract("java", "tree_sitter_java", """\
            package billing;

            import java.util.List;

            public class Invoice {
                public Invoice(int total) {}
                public int computeTotal(int a, int b) { return a + b; }
                private void helper() {}
            }

            interface Store {
                Invoice load(String id);
            }
        """)
        cls = _by_name(out.classes)["Invoice"]
        assert cls.is_exported is True
        methods = _by_name(cls.methods)
        assert methods["computeTotal"].params == ["a", "b"]
        assert methods["computeTotal"].is_exported is True
        assert methods["helper"].is_exported is False
        store = _by_name(out.interfaces)["Store"]
        assert store.properties == ["load"]
        assert store.is_exported is False
        assert out.imports[0].source == "java.util.List"
        assert out.imports[0].specifiers == ["List"]


# ---------------------------------------------------------------------------
# Rust
# ---------------------------------------------------------------------------

class TestRust:
    def test_items(self):
        out = _extract("rust", "tree_sitter_rust", """\
            use std::collections::HashMap;

            pub struct Invoice {
                total: u32,
            }

            impl Invoice {
                pub fn add(&mut self, amount: u32) {}
            }

            pub async fn compute_total(a: u32, b: u32) -> u32 {
                a + b
            }

            pub trait Store {
                fn load(&self, id: &str) -> Invoice;
            }

            const RATE: u32 = 2;
        """)
        funcs = _by_name(out.functions)
        assert funcs["compute_total"].is_async is True
        assert funcs["compute_total"].is_exported is True
        assert funcs["compute_total"].params == ["a", "b"]
        cls = _by_name(out.classes)["Invoice"]
        assert [m.name for m in cls.methods] == ["add"]
        assert cls.methods[0].params == ["amount"]
        assert _by_name(out.interfaces)["Store"].kind == "trait"
        assert _by_name(out.variables)["RATE"].kind == "const"
        assert out.imports[0].source == "std::collections::HashMap"
        assert out.imports[0].specifiers == ["HashMap"]
