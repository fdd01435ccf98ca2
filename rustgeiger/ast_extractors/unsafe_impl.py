"""Pass 2: count safe vs unsafe constructs and attribute foreign calls.

The visitor keeps a nesting counter of unsafe scopes. Inside an unsafe fn
that also contains an `unsafe { }` block the counter is 2; leaving the inner
block must not drop the visitor back into a safe scope.
"""

from typing import Any

from rustgeiger.metrics import (
    GLOBAL_SCOPE,
    ForeignBoundaryDefinition,
    ForeignCallSite,
    UnitMetrics,
)
from rustgeiger.package_id import PackageId

from .base import (
    associated_container,
    file_forbids_unsafe,
    get_child_by_type,
    has_linkage_override,
    has_unsafe_keyword,
    is_test_fn,
    is_test_mod,
    item_name,
    node_position,
)

# Leaf sub-terms: `f(x)` counts as one expression, not three.
UNCOUNTED_EXPRESSIONS = frozenset({
    "identifier",
    "scoped_identifier",
    "generic_function",
    "self",
    "metavariable",
    "string_literal",
    "raw_string_literal",
    "char_literal",
    "boolean_literal",
    "integer_literal",
    "float_literal",
    "negative_literal",
})

COUNTED_EXPRESSIONS = frozenset({
    "array_expression",
    "assignment_expression",
    "async_block",
    "await_expression",
    "binary_expression",
    "block",
    "break_expression",
    "closure_expression",
    "compound_assignment_expr",
    "const_block",
    "continue_expression",
    "field_expression",
    "for_expression",
    "gen_block",
    "if_expression",
    "index_expression",
    "let_condition",
    "loop_expression",
    "macro_invocation",
    "match_expression",
    "parenthesized_expression",
    "range_expression",
    "reference_expression",
    "return_expression",
    "struct_expression",
    "try_block",
    "try_expression",
    "tuple_expression",
    "type_cast_expression",
    "unary_expression",
    "unit_expression",
    "while_expression",
    "yield_expression",
})

# A block directly under these is part of the construct, not an expression of its own
_BLOCK_OWNERS = frozenset({
    "function_item",
    "unsafe_block",
    "async_block",
    "const_block",
    "gen_block",
    "try_block",
    "loop_expression",
    "while_expression",
    "for_expression",
    "if_expression",
})

# Subtrees that never contain expressions worth counting
_SKIPPED_SUBTREES = frozenset({
    "attribute_item",
    "inner_attribute_item",
    "macro_definition",
    "use_declaration",
    "line_comment",
    "block_comment",
})


def _is_item_macro(node: Any) -> bool:
    """Macro invocations in item position (e.g. `lazy_static! { .. }`) are not expressions."""
    parent = node.parent
    if parent is None or parent.type in ("source_file", "declaration_list"):
        return True
    if parent.type in ("block", "expression_statement"):
        tree = get_child_by_type(node, "token_tree")
        if tree is not None and tree.child_count and tree.children[0].type == "{":
            return True
    return False


# Work-stack entries: (_VISIT, node) walks a node, (_LEAVE, (unsafe_scope, function))
# restores the scope state saved when a fn or unsafe block was entered.
_VISIT = 0
_LEAVE = 1


class UnsafeUsageVisitor:
    """Walks one syntax tree and produces its UnitMetrics.

    The walk uses an explicit work stack instead of recursion, so long
    expression chains never hit the interpreter's recursion limit.
    """

    def __init__(
        self,
        file_path: str,
        foreign_definitions: dict[str, ForeignBoundaryDefinition] | None = None,
        package_id: PackageId | None = None,
        include_tests: bool = True,
        source: bytes | None = None,
    ):
        self.file_path = file_path
        self.foreign_definitions = foreign_definitions or {}
        self.package_id = package_id
        self.include_tests = include_tests
        self.source = source

        self.metrics = UnitMetrics()
        # number of unsafe scopes the visitor is currently nested in
        self.unsafe_depth = 0
        self.current_function: str | None = None
        self._stack: list[tuple[int, Any]] = []

    def enter_unsafe_scope(self) -> None:
        self.unsafe_depth += 1

    def exit_unsafe_scope(self) -> None:
        self.unsafe_depth -= 1

    @property
    def in_unsafe_scope(self) -> bool:
        return self.unsafe_depth > 0

    def visit(self, root_node: Any) -> UnitMetrics:
        self.metrics.forbids_unsafe = file_forbids_unsafe(root_node)
        self._stack = []
        self._push_children(root_node)
        while self._stack:
            action, payload = self._stack.pop()
            if action == _LEAVE:
                self._leave(*payload)
            else:
                self._visit(payload)
        return self.metrics

    def _push_children(self, node: Any) -> None:
        self._push_all(node.children)

    def _push_all(self, nodes: list[Any]) -> None:
        # reversed so that nodes are visited in source order
        self._stack.extend((_VISIT, node) for node in reversed(nodes))

    def _enter_scope(self, unsafe_scope: bool, function: str | None) -> None:
        """Apply a scope change and schedule its undo after the current subtree."""
        self._stack.append((_LEAVE, (unsafe_scope, self.current_function)))
        if unsafe_scope:
            self.enter_unsafe_scope()
        self.current_function = function

    def _leave(self, unsafe_scope: bool, previous_function: str | None) -> None:
        self.current_function = previous_function
        if unsafe_scope:
            self.exit_unsafe_scope()

    def _visit(self, node: Any) -> None:
        node_type = node.type

        if node_type in _SKIPPED_SUBTREES:
            return
        if node_type == "mod_item":
            self._visit_mod(node)
        elif node_type == "function_item":
            self._visit_fn(node)
        elif node_type == "impl_item":
            self.metrics.counters.item_impls.count(has_unsafe_keyword(node))
            self._push_children(node)
        elif node_type == "trait_item":
            self.metrics.counters.item_traits.count(has_unsafe_keyword(node))
            self._push_children(node)
        elif node_type == "unsafe_block":
            self._enter_scope(True, self.current_function)
            self._push_children(node)
        elif node_type == "call_expression":
            self._visit_call(node)
        elif node_type == "macro_invocation":
            # token trees are unparsed; nothing inside them is counted
            if not _is_item_macro(node):
                self.metrics.counters.exprs.count(self.in_unsafe_scope)
        elif node_type in UNCOUNTED_EXPRESSIONS:
            return
        elif node_type == "block":
            if node.parent is not None and node.parent.type not in _BLOCK_OWNERS:
                self.metrics.counters.exprs.count(self.in_unsafe_scope)
            self._push_children(node)
        elif node_type in COUNTED_EXPRESSIONS:
            self.metrics.counters.exprs.count(self.in_unsafe_scope)
            self._push_children(node)
        else:
            self._push_children(node)

    def _visit_mod(self, node: Any) -> None:
        if not self.include_tests and is_test_mod(node):
            return
        self._push_children(node)

    def _visit_fn(self, node: Any) -> None:
        container = associated_container(node)
        if container is None and not self.include_tests and is_test_fn(node):
            return

        unsafe_keyword = has_unsafe_keyword(node)
        if container == "impl_item":
            self.metrics.counters.methods.count(unsafe_keyword or has_linkage_override(node))
        elif container is None:
            self.metrics.counters.functions.count(unsafe_keyword or has_linkage_override(node))
        # trait default methods are not counted; their bodies still are

        # a linkage override alone does not make the body an unsafe scope
        self._enter_scope(unsafe_keyword, item_name(node))
        self._push_children(node)

    def _visit_call(self, node: Any) -> None:
        self.metrics.counters.exprs.count(self.in_unsafe_scope)

        function = node.child_by_field_name("function")
        if function is not None and function.type == "identifier":
            self._record_foreign_call(function)

        targets = []
        for child in node.children:
            if child == function:
                child = self._callee_target(child)
                if child is None:
                    continue
            targets.append(child)
        self._push_all(targets)

    def _callee_target(self, function: Any) -> Any | None:
        # `recv.method(..)` is one method-call expression: skip the field access itself
        if function.type == "generic_function":
            inner = function.child_by_field_name("function")
            if inner is not None and inner.type == "field_expression":
                function = inner
        if function.type == "field_expression":
            return function.child_by_field_name("value")
        return function

    def _record_foreign_call(self, ident: Any) -> None:
        name = ident.text.decode("utf-8", errors="replace")
        definition = self.foreign_definitions.get(name)
        if definition is None:
            return
        line, column = node_position(ident, self.source)
        self.metrics.foreign_calls.setdefault(definition, []).append(
            ForeignCallSite(
                definition=definition,
                file=self.file_path,
                line=line,
                column=column,
                calling_function=self.current_function or GLOBAL_SCOPE,
                package_id=self.package_id,
            )
        )


def find_unsafe_usage(
    root_node: Any,
    file_path: str,
    foreign_definitions: dict[str, ForeignBoundaryDefinition] | None = None,
    package_id: PackageId | None = None,
    include_tests: bool = True,
    source: bytes | None = None,
) -> UnitMetrics:
    """Run pass 2 over one tree."""
    visitor = UnsafeUsageVisitor(file_path, foreign_definitions, package_id, include_tests, source)
    return visitor.visit(root_node)
