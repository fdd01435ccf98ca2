"""Tests for pass 2: safe/unsafe counting and foreign call attribution."""

import pytest

from rustgeiger.ast_extractors import UnsafeUsageVisitor, find_foreign_definitions, find_unsafe_usage
from rustgeiger.metrics import GLOBAL_SCOPE, Count

FILE_CONTENT = '''use std::io::Write;

pub unsafe fn f() {
    unimplemented!()
}

pub fn g() {
    std::io::stdout().write_all(unsafe {
        std::str::from_utf8_unchecked(b"binarystring")
    }.as_bytes()).unwrap();
}

#[no_mangle]
pub fn h() {
    unimplemented!()
}

#[export_name = "exported_g"]
pub fn g() {
    unimplemented!()
}

#[cfg(test)]
mod tests {
    use super::*;

    #[test]
    fn test_1() {
        unsafe {
            println!("Inside unsafe");
        }
    }
}
'''


def _scan(parse_rust, code, include_tests=True, include_native_fns=False, package_id=None):
    root, source = parse_rust(code)
    definitions = find_foreign_definitions(root, "/test/lib.rs", include_native_fns, source)
    return find_unsafe_usage(root, "/test/lib.rs", definitions, package_id, include_tests, source)


class TestCounters:
    """Safe/unsafe counting per category."""

    @pytest.mark.parametrize(
        "include_tests, functions, exprs",
        [
            (True, Count(safe=2, unsafe=3), Count(safe=6, unsafe=3)),
            (False, Count(safe=1, unsafe=3), Count(safe=6, unsafe=2)),
        ],
    )
    def test_reference_file(self, parse_rust, include_tests, functions, exprs):
        metrics = _scan(parse_rust, FILE_CONTENT, include_tests=include_tests)

        assert metrics.counters.functions == functions
        assert metrics.counters.exprs == exprs
        assert metrics.counters.item_impls == Count()
        assert metrics.counters.item_traits == Count()
        assert metrics.counters.methods == Count()
        assert metrics.forbids_unsafe is False
        assert metrics.foreign_calls == {}

    def test_nested_unsafe_block_does_not_reset_scope(self, parse_rust):
        code = '''unsafe fn outer() {
    unsafe {
        a();
    }
    b();
}

fn after() {
    c();
}
'''
        metrics = _scan(parse_rust, code)
        # a() and b() are unsafe, c() is back in a safe scope
        assert metrics.counters.exprs == Count(safe=1, unsafe=2)
        assert metrics.counters.functions == Count(safe=1, unsafe=1)

    def test_linkage_override_does_not_leak_into_body(self, parse_rust):
        code = '''#[no_mangle]
pub fn exported() {
    a();
}

pub fn plain() {
    b();
}
'''
        metrics = _scan(parse_rust, code)
        assert metrics.counters.functions == Count(safe=1, unsafe=1)
        assert metrics.counters.exprs == Count(safe=2, unsafe=0)

    def test_call_arguments_are_leaves(self, parse_rust):
        metrics = _scan(parse_rust, "fn f() {\n    g(x, 1, \"s\");\n}\n")
        assert metrics.counters.exprs == Count(safe=1, unsafe=0)

    def test_method_call_counts_once(self, parse_rust):
        metrics = _scan(parse_rust, "fn f() {\n    v.len();\n}\n")
        assert metrics.counters.exprs == Count(safe=1, unsafe=0)

    def test_compound_expressions(self, parse_rust):
        code = '''fn f(v: &[u8]) -> usize {
    let n = v[0] as usize + 1;
    if n > 2 {
        return n;
    }
    n
}
'''
        metrics = _scan(parse_rust, code)
        # binary (+), cast, index, binary (>), if, return
        assert metrics.counters.exprs == Count(safe=6, unsafe=0)

    def test_impl_trait_and_methods(self, parse_rust):
        code = '''struct S;

unsafe trait Marker {}

trait Plain {
    fn default_method(&self) {
        unsafe { helper() };
    }
}

unsafe impl Marker for S {}

impl S {
    pub unsafe fn raw(&self) {}
    pub fn safe(&self) {}
}
'''
        metrics = _scan(parse_rust, code)
        counters = metrics.counters
        assert counters.item_traits == Count(safe=1, unsafe=1)
        assert counters.item_impls == Count(safe=1, unsafe=1)
        assert counters.methods == Count(safe=1, unsafe=1)
        # trait default methods are neither functions nor methods
        assert counters.functions == Count()
        assert counters.exprs == Count(safe=0, unsafe=1)

    def test_item_macros_are_not_expressions(self, parse_rust):
        code = '''macro_rules! noop {
    () => {};
}

lazy_static! {
    static ref X: u8 = 1;
}

fn f() {
    noop!();
}
'''
        metrics = _scan(parse_rust, code)
        assert metrics.counters.exprs == Count(safe=1, unsafe=0)

    @pytest.mark.parametrize("attribute", ["#[test]", "#[tokio::test]"])
    def test_test_functions_toggle(self, parse_rust, attribute):
        code = f"{attribute}\nfn check() {{\n    unsafe {{ poke(); }}\n}}\n"
        assert _scan(parse_rust, code, include_tests=True).counters.exprs == Count(safe=0, unsafe=1)
        excluded = _scan(parse_rust, code, include_tests=False).counters
        assert excluded.exprs == Count()
        assert excluded.functions == Count()

    def test_cfg_not_test_module_is_scanned(self, parse_rust):
        code = "#[cfg(not(test))]\nmod real {\n    fn f() {}\n}\n"
        metrics = _scan(parse_rust, code, include_tests=False)
        assert metrics.counters.functions == Count(safe=1, unsafe=0)


class TestNestingBalance:
    """The unsafe depth returns to zero once a tree has been walked."""

    @pytest.mark.parametrize(
        "code",
        [
            "unsafe fn outer() {\n    unsafe {\n        unsafe { a(); }\n    }\n    b();\n}\n",
            "#[no_mangle]\npub extern \"C\" fn exported() {\n    unsafe { a(); }\n}\n",
            "struct S;\n\nimpl S {\n    unsafe fn raw(&self) {\n        unsafe { self.a(); }\n    }\n}\n",
            "unsafe fn first() {}\n\nfn second() {\n    unsafe fn inner() {}\n}\n",
        ],
        ids=["unsafe-fn-with-blocks", "linkage-override", "unsafe-method", "nested-fn"],
    )
    def test_depth_returns_to_zero(self, parse_rust, code):
        root, source = parse_rust(code)
        visitor = UnsafeUsageVisitor("lib.rs", {}, None, True, source)
        visitor.visit(root)
        assert visitor.unsafe_depth == 0
        assert visitor.current_function is None

    def test_state_restored_between_items(self, parse_rust):
        code = "unsafe fn raw() {\n    unsafe { a(); }\n}\n\nstatic X: u32 = b();\n"
        root, source = parse_rust(code)
        visitor = UnsafeUsageVisitor("lib.rs", {}, None, True, source)
        metrics = visitor.visit(root)
        # b() runs outside every fn and unsafe scope
        assert metrics.counters.exprs == Count(safe=1, unsafe=1)


class TestForbidsUnsafe:
    """Root-level #![forbid(unsafe_code)] detection."""

    @pytest.mark.parametrize(
        "header, expected",
        [
            ("#![forbid(unsafe_code)]\n", True),
            ("#![forbid(missing_docs, unsafe_code)]\n", True),
            ("#![deny(unsafe_code)]\n", False),
            ("#![allow(unused)]\n", False),
            ("", False),
        ],
    )
    def test_forbid_attribute(self, parse_rust, header, expected):
        metrics = _scan(parse_rust, header + "fn f() {}\n")
        assert metrics.forbids_unsafe is expected


class TestForeignCalls:
    """Calls to foreign definitions found in the same file."""

    CODE = '''use libc::size_t;

extern "C" {
    fn snappy_compress(input: *const u8,
                       input_length: size_t,
                       compressed: *mut u8,
                       compressed_length: size_t) -> i32;
    fn snappy_max_compressed_length(source_length: size_t) -> size_t;
}

static LIMIT: usize = unsafe { snappy_max_compressed_length(16) };

fn g(input: &[u8], out: &mut [u8]) -> i32 {
    unsafe {
        snappy_compress(input.as_ptr(), input.len(), out.as_mut_ptr(), out.len())
    }
}
'''

    def test_call_attributed_to_enclosing_fn(self, parse_rust, registry_pkg):
        metrics = _scan(parse_rust, self.CODE, package_id=registry_pkg)

        by_name = {definition.name: calls for definition, calls in metrics.foreign_calls.items()}
        assert set(by_name) == {"snappy_compress", "snappy_max_compressed_length"}

        (call,) = by_name["snappy_compress"]
        assert call.calling_function == "g"
        assert call.package_id == registry_pkg
        assert call.file == "/test/lib.rs"
        assert (call.line, call.column) == (15, 8)
        assert call.definition.has_pointer_argument is True
        assert call.definition.args == ("*const u8", "size_t", "*mut u8", "size_t")

    def test_call_outside_fn_uses_global_scope(self, parse_rust):
        metrics = _scan(parse_rust, self.CODE)
        by_name = {definition.name: calls for definition, calls in metrics.foreign_calls.items()}
        (call,) = by_name["snappy_max_compressed_length"]
        assert call.calling_function == GLOBAL_SCOPE
        assert call.definition.has_pointer_argument is False

    def test_path_and_method_calls_are_not_matched(self, parse_rust):
        code = self.CODE + '''
fn h(x: &Codec) {
    ffi::snappy_compress();
    x.snappy_compress();
}
'''
        metrics = _scan(parse_rust, code)
        total = sum(len(calls) for calls in metrics.foreign_calls.values())
        assert total == 2

    def test_no_definitions_no_calls(self, parse_rust):
        root, source = parse_rust("fn f() {\n    snappy_compress();\n}\n")
        metrics = find_unsafe_usage(root, "lib.rs", {}, None, True, source)
        assert metrics.foreign_calls == {}
