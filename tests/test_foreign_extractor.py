"""Tests for pass 1: foreign-boundary definition discovery."""

import pytest

from rustgeiger.ast_extractors.foreign_impl import find_foreign_definitions, parameter_types

EXTERN_SOURCE = '''use std::io::Write;
use libc::{c_int, size_t};

#[link(name = "snappy")]
extern "C" {
    fn snappy_compress(input: *const u8,
                        input_length: size_t,
                        compressed: *mut u8,
                        compressed_length: *mut size_t) -> c_int;
    fn snappy_uncompress(compressed: *const u8,
                            compressed_length: size_t,
                            uncompressed: *mut u8,
                            uncompressed_length: *mut size_t) -> c_int;
    fn snappy_max_compressed_length(source_length: size_t) -> size_t;
    fn snappy_uncompressed_length(compressed: *const u8,
                                    compressed_length: size_t,
                                    result: *mut size_t) -> c_int;
    fn snappy_validate_compressed_buffer(compressed: *const u8,
                                            compressed_length: size_t) -> c_int;
}

#[link(name = "test_rust_lib")]
extern "Rust" {
    fn sys_tcp_stream_connect(ip: &[u8], port: u16, timeout: Option<u64>) -> Result<Handle, ()>;
}

#[no_mangle]
pub extern "C" fn hello_from_rust() {
    println!("Hello from Rust!");
}

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
    #[link(name = "snappy")]
    extern "C" {
        fn foo(asd: size_t) -> size_t;
    }

    #[test]
    #[no_mangle]
    pub extern "C" fn bar() {
        println!("Hello from Rust!");
    }

    #[test]
    fn test_1() {
        unsafe {
            println!("Inside unsafe");
        }
    }
}
'''

FOREIGN_ONLY = {
    "snappy_compress": (6, 7, True),
    "snappy_uncompress": (10, 7, True),
    "snappy_max_compressed_length": (14, 7, False),
    "snappy_uncompressed_length": (15, 7, True),
    "snappy_validate_compressed_buffer": (18, 7, True),
    "foo": (59, 11, False),
}

NATIVE_EXPORTS = {
    "hello_from_rust": (28, 18, False),
    "bar": (64, 22, False),
}


class TestForeignDefinitions:
    """Definitions found in extern blocks and extern fns."""

    @pytest.mark.parametrize(
        "include_native_fns, expected",
        [
            (False, FOREIGN_ONLY),
            (True, {**FOREIGN_ONLY, **NATIVE_EXPORTS}),
        ],
    )
    def test_definitions_and_positions(self, parse_rust, include_native_fns, expected):
        root, source = parse_rust(EXTERN_SOURCE)
        result = find_foreign_definitions(root, "/test/extern.rs", include_native_fns, source)

        assert set(result) == set(expected)
        for name, (line, column, has_pointer) in expected.items():
            definition = result[name]
            assert definition.name == name
            assert definition.file == "/test/extern.rs"
            assert (definition.line, definition.column) == (line, column), name
            assert definition.has_pointer_argument is has_pointer, name

    def test_native_abi_block_is_skipped(self, parse_rust):
        root, source = parse_rust(EXTERN_SOURCE)
        result = find_foreign_definitions(root, "lib.rs", True, source)
        assert "sys_tcp_stream_connect" not in result

    def test_argument_types_in_order(self, parse_rust):
        root, source = parse_rust(EXTERN_SOURCE)
        result = find_foreign_definitions(root, "lib.rs", False, source)
        assert result["snappy_compress"].args == ("*const u8", "size_t", "*mut u8", "*mut size_t")
        assert result["snappy_max_compressed_length"].args == ("size_t",)

    def test_bare_extern_defaults_to_c_abi(self, parse_rust):
        code = '''extern {
    fn abs(x: i32) -> i32;
}

extern fn callback(v: *const u8) {}
'''
        root, source = parse_rust(code)
        result = find_foreign_definitions(root, "lib.rs", True, source)
        assert set(result) == {"abs", "callback"}
        assert result["callback"].has_pointer_argument is True

    def test_explicit_rust_abi_fn_is_skipped(self, parse_rust):
        code = 'pub extern "Rust" fn native() {}\npub extern "system" fn win() {}\n'
        root, source = parse_rust(code)
        result = find_foreign_definitions(root, "lib.rs", True, source)
        assert set(result) == {"win"}

    def test_trait_signatures_are_not_foreign(self, parse_rust):
        code = '''trait Codec {
    fn encode(&self, input: *const u8) -> usize;
}

extern "C" fn outer() {
    trait Inner {
        fn inner(&self);
    }
}
'''
        root, source = parse_rust(code)
        result = find_foreign_definitions(root, "lib.rs", True, source)
        assert set(result) == {"outer"}

    def test_extern_methods_are_not_recorded(self, parse_rust):
        code = '''struct S;

impl S {
    pub extern "C" fn method(&self) {}
}
'''
        root, source = parse_rust(code)
        assert find_foreign_definitions(root, "lib.rs", True, source) == {}

    def test_last_declaration_wins(self, parse_rust):
        code = '''extern "C" {
    fn dup(a: i32);
}

extern "C" {
    fn dup(a: *mut i32, b: i32);
}
'''
        root, source = parse_rust(code)
        result = find_foreign_definitions(root, "lib.rs", False, source)
        assert result["dup"].line == 6
        assert result["dup"].args == ("*mut i32", "i32")
        assert result["dup"].has_pointer_argument is True

    def test_unicode_columns_are_characters(self, parse_rust):
        code = 'extern "C" { /* é */ fn wide(x: i32); }\n'
        root, source = parse_rust(code)
        result = find_foreign_definitions(root, "lib.rs", False, source)
        assert result["wide"].column == code.index("wide")


class TestParameterTypes:
    """Every parameter keeps a type snippet, whatever its shape."""

    def _params(self, parse_rust, signature):
        root, _ = parse_rust(f'extern "C" {{\n    {signature};\n}}\n')
        foreign_block = root.children[0]
        declarations = foreign_block.child_by_field_name("body")
        fn_node = [c for c in declarations.children if c.type == "function_signature_item"][0]
        return parameter_types(fn_node.child_by_field_name("parameters"))

    def test_shapes(self, parse_rust):
        types = self._params(
            parse_rust,
            "fn shapes(a: [u8; 4], b: [u8], c: extern \"C\" fn(i32) -> i32, d: (i32, u8), "
            "e: &mut u8, f: *mut *const u8, g: Option<Box<u8>>, h: impl Copy, i: dyn Send)",
        )
        assert types == [
            ("array", "[u8; 4]"),
            ("slice", "[u8]"),
            ("bare_fn", 'extern "C" fn(i32) -> i32'),
            ("tuple", "(i32, u8)"),
            ("reference", "&mut u8"),
            ("ptr", "*mut *const u8"),
            ("path", "Option<Box<u8>>"),
            ("impl_trait", "impl Copy"),
            ("trait_object", "dyn Send"),
        ]

    def test_variadic_is_kept_verbatim(self, parse_rust):
        types = self._params(parse_rust, "fn printf(format: *const c_char, ...) -> c_int")
        assert types[0] == ("ptr", "*const c_char")
        assert len(types) == 2
        assert types[1][0] == "verbatim"
        assert "..." in types[1][1]

    def test_receiver_is_excluded(self, parse_rust):
        root, _ = parse_rust("trait T {\n    fn m(&self, x: u32);\n}\n")
        trait_node = root.children[0]
        body = trait_node.child_by_field_name("body")
        fn_node = [c for c in body.children if c.type == "function_signature_item"][0]
        assert parameter_types(fn_node.child_by_field_name("parameters")) == [("path", "u32")]
