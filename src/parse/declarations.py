"""Tree-sitter based extraction of angular module and provider declarations.

Source files are never executed. The syntax tree is walked in evaluation
order and only the call shapes of the module API are recognized::

    angular.module(name, [deps])            # declaration
    angular.module(name)                    # reference to an existing module
    <module>.factory(name, ctor)            # provider-like registrations
    var app = angular.module(...); app.service(name, ctor)
    (function (app) { app.service(name, ctor) })(angular.module(...))

Everything else in the file is ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from tree_sitter import Language, Node, Parser
from tree_sitter_javascript import language as get_javascript_language

ConstructorForm = Literal["array", "function", "unresolved"]

# Registrations whose constructor dependencies are validated and recorded.
VALIDATED_KINDS = ("provider", "factory", "service", "controller", "directive")
# Registrations that are recognized but never validated.
PASSIVE_KINDS = ("value", "constant", "decorator", "animation", "filter")
# Recognized only so that the call chain can continue.
CHAIN_KINDS = ("config", "run")

MODULE_API = frozenset(VALIDATED_KINDS + PASSIVE_KINDS + CHAIN_KINDS)

_FUNCTION_TYPES = frozenset(
    {
        "function",
        "function_expression",
        "arrow_function",
        "generator_function",
        "method_definition",
    }
)
_FUNCTION_DECLARATION_TYPES = frozenset(
    {"function_declaration", "generator_function_declaration"}
)
_BINDABLE_TYPES = frozenset({"array", "object", "string", "template_string"})
_GET_MEMBER = "$get"

_PARSER: Parser | None = None


def _get_parser() -> Parser:
    """Initialize and return the Tree-sitter parser with JavaScript language."""
    global _PARSER
    if _PARSER is None:
        lang = Language(get_javascript_language())
        _PARSER = Parser(lang)

    return _PARSER


@dataclass(frozen=True)
class ConstructorSpec:
    """Shape of a registered constructor.

    ``array`` is the minify-ready ``["dep", ..., fn]`` form, ``function`` a
    plain function with ``param_count`` parameters. A function is minify-ready
    only when it takes no parameters.
    """

    form: ConstructorForm
    injects: tuple[str, ...] = ()
    param_count: int = 0

    @property
    def minify_ready(self) -> bool:
        if self.form == "array":
            return True
        return self.form == "function" and self.param_count == 0


@dataclass(frozen=True)
class ModuleEvent:
    name: str
    dependencies: tuple[str, ...] | None
    line: int


@dataclass(frozen=True)
class ProviderEvent:
    kind: str
    name: str
    constructor: ConstructorSpec | None
    line: int
    passive: bool = False
    missing_get: bool = False


DeclarationEvent = ModuleEvent | ProviderEvent


def _node_text(source_bytes: bytes, node: Node) -> str:
    return source_bytes[node.start_byte : node.end_byte].decode("utf8", errors="ignore")


def _unwrap(node: Node | None) -> Node | None:
    while node is not None and node.type == "parenthesized_expression":
        inner = [child for child in node.named_children if child.type != "comment"]
        node = inner[0] if inner else None
    return node


def _arguments(call: Node) -> list[Node]:
    args = call.child_by_field_name("arguments")
    if args is None or args.type != "arguments":
        return []
    return [child for child in args.named_children if child.type != "comment"]


def _elements(array: Node) -> list[Node]:
    return [child for child in array.named_children if child.type != "comment"]


def _property_name(source_bytes: bytes, member: Node) -> str | None:
    prop = member.child_by_field_name("property")
    if prop is None:
        return None
    return _node_text(source_bytes, prop)


def _count_parameters(function: Node) -> int:
    """Count parameters the way ``Function.length`` does."""
    if function.child_by_field_name("parameter") is not None:
        return 1

    params = function.child_by_field_name("parameters")
    if params is None:
        return 0

    count = 0
    for child in params.named_children:
        if child.type == "comment":
            continue
        if child.type in ("assignment_pattern", "rest_pattern"):
            break
        count += 1
    return count


def _collect_bindings(source_bytes: bytes, root: Node) -> dict[str, Node]:
    """Index named functions and literal-valued variables of a file."""
    bindings: dict[str, Node] = {}
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type in _FUNCTION_DECLARATION_TYPES:
            name_node = node.child_by_field_name("name")
            if name_node is not None:
                bindings.setdefault(_node_text(source_bytes, name_node), node)
        elif node.type == "variable_declarator":
            name_node = node.child_by_field_name("name")
            value = _unwrap(node.child_by_field_name("value"))
            if (
                name_node is not None
                and name_node.type == "identifier"
                and value is not None
                and (value.type in _FUNCTION_TYPES or value.type in _BINDABLE_TYPES)
            ):
                bindings.setdefault(_node_text(source_bytes, name_node), value)
        stack.extend(reversed(node.named_children))
    return bindings


class _DeclarationWalker:
    """Walks a syntax tree in evaluation order and records declarations."""

    def __init__(
        self, source_bytes: bytes, root: Node, module_aliases: set[str]
    ) -> None:
        self.source_bytes = source_bytes
        self.bindings = _collect_bindings(source_bytes, root)
        self.module_aliases = module_aliases
        self.events: list[DeclarationEvent] = []

    def _text(self, node: Node) -> str:
        return _node_text(self.source_bytes, node)

    def _resolve(self, node: Node | None) -> Node | None:
        node = _unwrap(node)
        if node is not None and node.type == "identifier":
            return self.bindings.get(self._text(node), node)
        return node

    def _literal(self, node: Node | None) -> str | None:
        node = self._resolve(node)
        if node is None:
            return None
        if node.type == "string":
            return self._text(node)[1:-1]
        if node.type == "template_string" and not any(
            child.type == "template_substitution" for child in node.named_children
        ):
            return self._text(node)[1:-1]
        return None

    def _is_angular_module(self, callee: Node | None) -> bool:
        callee = _unwrap(callee)
        if callee is None or callee.type != "member_expression":
            return False
        obj = _unwrap(callee.child_by_field_name("object"))
        return (
            obj is not None
            and obj.type == "identifier"
            and self._text(obj) == "angular"
            and _property_name(self.source_bytes, callee) == "module"
        )

    def _is_module_ref(self, node: Node | None) -> bool:
        node = _unwrap(node)
        if node is None:
            return False
        if node.type == "identifier":
            return self._text(node) in self.module_aliases
        if node.type != "call_expression":
            return False

        callee = _unwrap(node.child_by_field_name("function"))
        if self._is_angular_module(callee):
            return True
        return (
            callee is not None
            and callee.type == "member_expression"
            and _property_name(self.source_bytes, callee) in MODULE_API
            and self._is_module_ref(callee.child_by_field_name("object"))
        )

    def visit(self, node: Node | None) -> None:
        if node is None:
            return

        if node.type == "call_expression":
            self._visit_call(node)
        elif node.type == "variable_declarator":
            value = node.child_by_field_name("value")
            self.visit(value)
            self._bind_alias(node.child_by_field_name("name"), value)
        elif node.type == "assignment_expression":
            value = node.child_by_field_name("right")
            self.visit(value)
            self._bind_alias(node.child_by_field_name("left"), value)
        elif node.type in _FUNCTION_TYPES or node.type in _FUNCTION_DECLARATION_TYPES:
            # Bodies only run when invoked; IIFEs are handled in _visit_call.
            return
        else:
            for child in node.named_children:
                self.visit(child)

    def _bind_alias(self, target: Node | None, value: Node | None) -> None:
        if target is None or target.type != "identifier":
            return
        name = self._text(target)
        if self._is_module_ref(value):
            self.module_aliases.add(name)
        else:
            self.module_aliases.discard(name)

    def _parameter_names(self, function: Node) -> list[str | None]:
        single = function.child_by_field_name("parameter")
        if single is not None:
            return [self._text(single)]

        params = function.child_by_field_name("parameters")
        if params is None:
            return []
        return [
            self._text(child) if child.type == "identifier" else None
            for child in params.named_children
            if child.type != "comment"
        ]

    def _invoke(self, function: Node, args: list[Node]) -> None:
        """Visit an immediately invoked function body.

        Parameters receiving a module reference are module aliases inside the
        body; every parameter shadows an outer alias of the same name until
        the body is done.
        """
        passes_module = [self._is_module_ref(arg) for arg in args]
        bound: dict[str, bool] = {}
        for index, name in enumerate(self._parameter_names(function)):
            if name is None or name in bound:
                continue
            bound[name] = name in self.module_aliases
            if index < len(passes_module) and passes_module[index]:
                self.module_aliases.add(name)
            else:
                self.module_aliases.discard(name)

        body = function.child_by_field_name("body")
        if body is not None:
            self.visit(body)

        for name, was_alias in bound.items():
            if was_alias:
                self.module_aliases.add(name)
            else:
                self.module_aliases.discard(name)

    def _visit_call(self, call: Node) -> None:
        callee = _unwrap(call.child_by_field_name("function"))
        args = call.child_by_field_name("arguments")

        if self._is_angular_module(callee):
            self.visit(args)
            self._emit_module(call)
            return

        if callee is not None and callee.type == "member_expression":
            prop = _property_name(self.source_bytes, callee)
            receiver = callee.child_by_field_name("object")
            if prop in MODULE_API and self._is_module_ref(receiver):
                self.visit(receiver)
                self._emit_registration(prop, call)
                return

            target = _unwrap(receiver)
            if prop in ("call", "apply") and target is not None and target.type in _FUNCTION_TYPES:
                self.visit(args)
                # call(thisArg, a, b) passes a, b; apply's array is not unpacked.
                passed = _arguments(call)[1:] if prop == "call" else []
                self._invoke(target, passed)
                return

        if callee is not None and callee.type in _FUNCTION_TYPES:
            self.visit(args)
            self._invoke(callee, _arguments(call))
            return

        self.visit(callee)
        self.visit(args)

    def _emit_module(self, call: Node) -> None:
        args = _arguments(call)
        name = self._literal(args[0]) if args else None
        if name is None:
            return

        dependencies: tuple[str, ...] | None = None
        if len(args) > 1:
            deps_node = self._resolve(args[1])
            if deps_node is not None and deps_node.type == "array":
                dependencies = tuple(
                    dep
                    for dep in (self._literal(el) for el in _elements(deps_node))
                    if dep is not None
                )

        self.events.append(
            ModuleEvent(name=name, dependencies=dependencies, line=call.start_point[0] + 1)
        )

    def _emit_registration(self, kind: str, call: Node) -> None:
        if kind in CHAIN_KINDS:
            return

        args = _arguments(call)
        line = call.start_point[0] + 1
        name = self._literal(args[0]) if args else None

        if kind in PASSIVE_KINDS:
            self.events.append(
                ProviderEvent(
                    kind=kind, name=name or "", constructor=None, line=line, passive=True
                )
            )
            return

        if name is None:
            return

        constructor = self._resolve(args[1]) if len(args) > 1 else None
        if kind != "provider":
            self.events.append(
                ProviderEvent(
                    kind=kind,
                    name=name,
                    constructor=self._constructor_spec(constructor),
                    line=line,
                )
            )
            return

        self._emit_provider(name, constructor, line)

    def _emit_provider(self, name: str, constructor: Node | None, line: int) -> None:
        provider_body = constructor
        if constructor is not None and constructor.type == "array":
            self.events.append(
                ProviderEvent(
                    kind="provider",
                    name=f"{name}Provider",
                    constructor=self._constructor_spec(constructor),
                    line=line,
                )
            )
            elements = _elements(constructor)
            provider_body = self._resolve(elements[-1]) if elements else None

        get_node = self._find_get(provider_body)
        if get_node is None:
            self.events.append(
                ProviderEvent(
                    kind="provider",
                    name=name,
                    constructor=None,
                    line=line,
                    missing_get=True,
                )
            )
            return

        self.events.append(
            ProviderEvent(
                kind="provider",
                name=name,
                constructor=self._constructor_spec(self._resolve(get_node)),
                line=line,
            )
        )

    def _constructor_spec(self, node: Node | None) -> ConstructorSpec:
        if node is None:
            return ConstructorSpec(form="unresolved")

        if node.type == "array":
            elements = _elements(node)
            injects = tuple(
                inject
                for inject in (self._literal(el) for el in elements[:-1])
                if inject is not None
            )
            return ConstructorSpec(form="array", injects=injects)

        if node.type in _FUNCTION_TYPES or node.type in _FUNCTION_DECLARATION_TYPES:
            return ConstructorSpec(form="function", param_count=_count_parameters(node))

        return ConstructorSpec(form="unresolved")

    def _object_member(self, obj: Node, member: str) -> Node | None:
        for child in obj.named_children:
            if child.type == "pair":
                key = child.child_by_field_name("key")
                if key is not None and self._text(key).strip("'\"") == member:
                    return child.child_by_field_name("value")
            elif child.type == "method_definition":
                key = child.child_by_field_name("name")
                if key is not None and self._text(key) == member:
                    return child
        return None

    def _find_get(self, provider: Node | None) -> Node | None:
        """Locate the ``$get`` member of a provider definition."""
        if provider is None:
            return None
        if provider.type == "object":
            return self._object_member(provider, _GET_MEMBER)
        if provider.type not in _FUNCTION_TYPES and provider.type not in _FUNCTION_DECLARATION_TYPES:
            return None

        body = _unwrap(provider.child_by_field_name("body"))
        if body is None:
            return None
        if body.type == "object":
            return self._object_member(body, _GET_MEMBER)

        stack = [body]
        while stack:
            node = stack.pop()
            if node.type == "assignment_expression":
                left = node.child_by_field_name("left")
                if (
                    left is not None
                    and left.type == "member_expression"
                    and _property_name(self.source_bytes, left) == _GET_MEMBER
                    and self._text(left.child_by_field_name("object")) == "this"
                ):
                    return node.child_by_field_name("right")
            elif node.type == "return_statement":
                returned = [
                    _unwrap(child)
                    for child in node.named_children
                    if child.type != "comment"
                ]
                if returned and returned[0] is not None and returned[0].type == "object":
                    found = self._object_member(returned[0], _GET_MEMBER)
                    if found is not None:
                        return found
            if node.type in _FUNCTION_TYPES or node.type in _FUNCTION_DECLARATION_TYPES:
                continue
            stack.extend(reversed(node.named_children))
        return None


def extract_declarations(
    source_bytes: bytes, module_aliases: set[str] | None = None
) -> list[DeclarationEvent]:
    """Extract module and provider declarations from JavaScript source.

    Args:
        source_bytes: Raw file contents
        module_aliases: Variable names bound to a module by files scanned
            earlier. Updated in place with the bindings this file leaves
            behind, so a build can share one set across all its files.

    Returns:
        Declaration events in evaluation order. Files that are not valid
        UTF-8, contain syntax errors, or are too deeply nested to walk yield
        no events.
    """
    try:
        source_bytes.decode("utf-8")
    except UnicodeDecodeError:
        return []

    tree = _get_parser().parse(source_bytes)
    if tree.root_node.has_error:
        return []

    aliases = set(module_aliases) if module_aliases is not None else set()
    walker = _DeclarationWalker(source_bytes, tree.root_node, aliases)
    try:
        walker.visit(tree.root_node)
    except RecursionError:
        return []

    if module_aliases is not None:
        module_aliases.clear()
        module_aliases.update(aliases)
    return walker.events


__all__ = [
    "CHAIN_KINDS",
    "MODULE_API",
    "PASSIVE_KINDS",
    "VALIDATED_KINDS",
    "ConstructorSpec",
    "DeclarationEvent",
    "ModuleEvent",
    "ProviderEvent",
    "extract_declarations",
]
