"""Shared tree-sitter helpers for the Rust extraction passes.

Tree-sitter node type reference (tree-sitter-rust):
- source_file: compilation unit root
- function_item: fn with a body (free function, method or trait default method)
- function_signature_item: fn without body (extern block entries, trait methods)
- foreign_mod_item: extern "ABI" { ... } blocks (NOT extern_block)
- extern_modifier: `extern` plus optional ABI string literal
- function_modifiers: async / const / unsafe / extern modifiers of a fn
- impl_item / trait_item / mod_item: impl blocks, traits, modules
- attribute_item / inner_attribute_item: #[...] and #![...]; outer attributes
  are preceding siblings of the item they decorate, not children
"""

from typing import Any

NATIVE_ABI = "Rust"
DEFAULT_FOREIGN_ABI = "C"

_COMMENT_TYPES = frozenset({"line_comment", "block_comment"})


def get_child_by_type(node: Any, node_type: str) -> Any | None:
    """Get first child of given type."""
    for child in node.children:
        if child.type == node_type:
            return child
    return None


def get_children_by_type(node: Any, node_type: str) -> list[Any]:
    """Get all children of given type."""
    return [child for child in node.children if child.type == node_type]


def get_text(node: Any) -> str:
    """Safely decode node text."""
    if node is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def node_position(node: Any, source: bytes | None = None) -> tuple[int, int]:
    """Return (1-based line, 0-based character column) of a node's start."""
    line = node.start_point[0] + 1
    if source is None:
        return line, node.start_point[1]
    line_start = source.rfind(b"\n", 0, node.start_byte) + 1
    column = len(source[line_start:node.start_byte].decode("utf-8", errors="replace"))
    return line, column


def has_unsafe_keyword(node: Any) -> bool:
    """Check for the `unsafe` keyword on an item signature.

    Functions carry it inside function_modifiers; impl and trait items carry
    it as a direct child.
    """
    if get_child_by_type(node, "unsafe") is not None:
        return True
    modifiers = get_child_by_type(node, "function_modifiers")
    if modifiers is None:
        return False
    return get_child_by_type(modifiers, "unsafe") is not None


def extern_abi(node: Any) -> str | None:
    """ABI tag of a function or foreign block, or None when it has no `extern`.

    A bare `extern` without a string literal means the C ABI.
    """
    extern_modifier = get_child_by_type(node, "extern_modifier")
    if extern_modifier is None:
        modifiers = get_child_by_type(node, "function_modifiers")
        if modifiers is not None:
            extern_modifier = get_child_by_type(modifiers, "extern_modifier")
    if extern_modifier is None:
        return None
    abi_node = get_child_by_type(extern_modifier, "string_literal")
    if abi_node is None:
        return DEFAULT_FOREIGN_ABI
    return get_text(abi_node).strip('"')


def item_name(node: Any) -> str:
    """Name identifier of an item (fn, mod, trait)."""
    name_node = node.child_by_field_name("name")
    if name_node is None:
        name_node = get_child_by_type(node, "identifier")
    return get_text(name_node)


def outer_attributes(node: Any) -> list[str]:
    """Bodies of the #[...] attributes decorating an item, in source order."""
    attrs = []
    sibling = node.prev_sibling
    while sibling is not None and (sibling.type == "attribute_item" or sibling.type in _COMMENT_TYPES):
        if sibling.type == "attribute_item":
            attrs.append(_attribute_body(sibling))
        sibling = sibling.prev_sibling
    attrs.reverse()
    return attrs


def inner_attributes(root: Any) -> list[str]:
    """Bodies of the #![...] attributes at the root of a file."""
    return [_attribute_body(child) for child in root.children if child.type == "inner_attribute_item"]


def _attribute_body(attr_item: Any) -> str:
    attribute = get_child_by_type(attr_item, "attribute")
    if attribute is not None:
        return get_text(attribute).strip()
    text = get_text(attr_item).strip()
    return text[text.find("[") + 1:text.rfind("]")].strip()


def split_attribute(body: str) -> tuple[str, str]:
    """Split an attribute body into (path, arguments).

    `unsafe(no_mangle)` wrappers are unwrapped to the inner attribute.
    """
    cut = len(body)
    for marker in ("(", "=", "[", "{"):
        idx = body.find(marker)
        if idx != -1 and idx < cut:
            cut = idx
    path = body[:cut].strip().replace(" ", "")
    args = body[cut:].strip()
    if path == "unsafe" and args.startswith("(") and args.endswith(")"):
        return split_attribute(args[1:-1].strip())
    return path, args


def attribute_words(args: str) -> list[str]:
    """Identifier-like words inside attribute arguments."""
    words = []
    current = []
    for ch in args:
        if ch.isalnum() or ch == "_":
            current.append(ch)
        elif current:
            words.append("".join(current))
            current = []
    if current:
        words.append("".join(current))
    return words


def has_linkage_override(node: Any) -> bool:
    """#[no_mangle] or #[export_name = "..."] on an item."""
    for body in outer_attributes(node):
        path, _ = split_attribute(body)
        if path in ("no_mangle", "export_name"):
            return True
    return False


def is_test_fn(node: Any) -> bool:
    """#[test] or a namespaced test attribute such as #[tokio::test]."""
    for body in outer_attributes(node):
        path, _ = split_attribute(body)
        if path.split("::")[-1] == "test":
            return True
    return False


def is_test_mod(node: Any) -> bool:
    """A module gated behind #[cfg(test)]."""
    for body in outer_attributes(node):
        path, args = split_attribute(body)
        if path != "cfg":
            continue
        words = attribute_words(args)
        if "test" in words and "not" not in words:
            return True
    return False


def file_forbids_unsafe(root: Any) -> bool:
    """#![forbid(unsafe_code)] at the root of the file."""
    for body in inner_attributes(root):
        path, args = split_attribute(body)
        if path == "forbid" and "unsafe_code" in attribute_words(args):
            return True
    return False


def associated_container(node: Any) -> str | None:
    """'impl_item' or 'trait_item' when node sits directly in their body, else None."""
    parent = node.parent
    if parent is None or parent.type != "declaration_list":
        return None
    owner = parent.parent
    if owner is not None and owner.type in ("impl_item", "trait_item"):
        return owner.type
    return None
