"""Pass 1: discover foreign-boundary function declarations in one file.

Records functions declared inside `extern "ABI" { ... }` blocks (implemented
outside Rust) and, optionally, Rust functions exposed through a foreign ABI
(`extern "C" fn ...`). Anything whose effective ABI is "Rust" is skipped.
"""

from typing import Any

from rustgeiger.metrics import ForeignBoundaryDefinition
from rustgeiger.utils.logging import logger

from .base import (
    DEFAULT_FOREIGN_ABI,
    NATIVE_ABI,
    associated_container,
    extern_abi,
    get_text,
    node_position,
)

# tree-sitter-rust type node kinds -> type shape
TYPE_SHAPES = {
    "array_type": "array",
    "function_type": "bare_fn",
    "tuple_type": "tuple",
    "unit_type": "tuple",
    "parenthesized_type": "group",
    "abstract_type": "impl_trait",
    "_": "infer",
    "macro_invocation": "macro",
    "never_type": "never",
    "empty_type": "never",
    "type_identifier": "path",
    "scoped_type_identifier": "path",
    "generic_type": "path",
    "primitive_type": "path",
    "pointer_type": "ptr",
    "reference_type": "reference",
    "dynamic_type": "trait_object",
    "bounded_type": "trait_object",
}

VERBATIM = "verbatim"

# marks the end of a node that pushed an ABI tag
_POP_ABI = object()


def classify_type(type_node: Any) -> str:
    """Shape of a parameter type node; unknown kinds are captured verbatim."""
    shape = TYPE_SHAPES.get(type_node.type)
    if shape is None:
        logger.debug(f"Unrecognized type syntax '{type_node.type}', capturing verbatim")
        return VERBATIM
    if shape == "array" and not any(child.type == ";" for child in type_node.children):
        return "slice"
    return shape


def parameter_types(params_node: Any | None) -> list[tuple[str, str]]:
    """(shape, source text) of each non-receiver parameter, in order."""
    if params_node is None:
        return []
    types = []
    for child in params_node.named_children:
        if child.type in ("self_parameter", "attribute_item") or child.type.endswith("comment"):
            continue
        if child.type == "parameter":
            type_node = child.child_by_field_name("type")
            if type_node is None:
                types.append((VERBATIM, get_text(child)))
            else:
                types.append((classify_type(type_node), get_text(type_node)))
        elif child.type == "variadic_parameter":
            types.append((VERBATIM, get_text(child)))
        else:
            # anonymous parameter: a bare type
            types.append((classify_type(child), get_text(child)))
    return types


class ForeignBoundaryExtractor:
    """Collects foreign-boundary definitions from one syntax tree."""

    def __init__(self, file_path: str, include_native_fns: bool = False, source: bytes | None = None):
        self.file_path = file_path
        self.include_native_fns = include_native_fns
        self.source = source
        self.definitions: dict[str, ForeignBoundaryDefinition] = {}
        self._abi_stack: list[str] = []

    @property
    def effective_abi(self) -> str:
        return self._abi_stack[-1] if self._abi_stack else NATIVE_ABI

    def extract(self, root_node: Any) -> dict[str, ForeignBoundaryDefinition]:
        self.definitions = {}
        self._abi_stack = []
        # explicit work stack: deep expression chains must not exhaust the Python stack
        work: list[Any] = [root_node]
        while work:
            node = work.pop()
            if node is _POP_ABI:
                self._abi_stack.pop()
            else:
                self._visit(node, work)
        return self.definitions

    def _record(self, node: Any) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return
        types = parameter_types(node.child_by_field_name("parameters"))
        line, column = node_position(name_node, self.source)
        name = get_text(name_node)
        # last write wins for duplicate names
        self.definitions[name] = ForeignBoundaryDefinition(
            file=self.file_path,
            line=line,
            column=column,
            name=name,
            has_pointer_argument=any(shape == "ptr" for shape, _ in types),
            args=tuple(text for _, text in types),
        )

    def _enter_scoped(self, node: Any, abi: str, work: list[Any]) -> None:
        self._abi_stack.append(abi)
        work.append(_POP_ABI)
        work.extend(reversed(node.children))

    def _visit(self, node: Any, work: list[Any]) -> None:
        node_type = node.type

        if node_type == "foreign_mod_item":
            self._enter_scoped(node, extern_abi(node) or DEFAULT_FOREIGN_ABI, work)
            return

        if node_type == "function_item":
            abi = extern_abi(node)
            if (
                self.include_native_fns
                and abi is not None
                and abi != NATIVE_ABI
                and associated_container(node) is None
            ):
                self._record(node)
            # function bodies are native code unless the fn itself says otherwise
            self._enter_scoped(node, abi or NATIVE_ABI, work)
            return

        if node_type in ("trait_item", "impl_item"):
            self._enter_scoped(node, NATIVE_ABI, work)
            return

        if node_type == "function_signature_item":
            if self.effective_abi != NATIVE_ABI:
                self._record(node)
            return

        work.extend(reversed(node.children))


def find_foreign_definitions(
    root_node: Any,
    file_path: str,
    include_native_fns: bool = False,
    source: bytes | None = None,
) -> dict[str, ForeignBoundaryDefinition]:
    """Map symbol name -> ForeignBoundaryDefinition for one file."""
    extractor = ForeignBoundaryExtractor(file_path, include_native_fns, source)
    definitions = extractor.extract(root_node)
    logger.debug(f"Foreign definitions: {file_path} -> {len(definitions)}")
    return definitions
