"""Code chunker — tree-sitter structural splits with whole-file fallback.

Each supported language has one query with a single ``@chunk`` capture over
function, class and method declarations (plus named arrow-function bindings
in JavaScript/TypeScript). Captures nested inside a captured function are
dropped; methods inside a class are kept next to the class itself.
"""

from __future__ import annotations

import logging

from tree_sitter import Node, Query, QueryCursor
from tree_sitter_language_pack import get_parser

from codebrain.db.models import CodeChunk

logger = logging.getLogger(__name__)

FALLBACK_CHUNK_NAME = "file_content"

# File extension → tree-sitter-language-pack grammar name.
EXTENSION_LANGUAGES: dict[str, str] = {
    ".py": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".go": "go",
    ".java": "java",
    ".rs": "rust",
    ".rb": "ruby",
}

_JS_QUERY = """
[
  (function_declaration) @chunk
  (generator_function_declaration) @chunk
  (class_declaration) @chunk
  (method_definition) @chunk
  (lexical_declaration (variable_declarator value: (arrow_function))) @chunk
]
"""

_TS_QUERY = """
[
  (function_declaration) @chunk
  (generator_function_declaration) @chunk
  (class_declaration) @chunk
  (abstract_class_declaration) @chunk
  (interface_declaration) @chunk
  (method_definition) @chunk
  (lexical_declaration (variable_declarator value: (arrow_function))) @chunk
]
"""

_QUERIES: dict[str, str] = {
    "python": """
[
  (function_definition) @chunk
  (class_definition) @chunk
]
""",
    "javascript": _JS_QUERY,
    "typescript": _TS_QUERY,
    "tsx": _TS_QUERY,
    "go": """
[
  (function_declaration) @chunk
  (method_declaration) @chunk
  (type_declaration) @chunk
]
""",
    "java": """
[
  (class_declaration) @chunk
  (interface_declaration) @chunk
  (enum_declaration) @chunk
  (method_declaration) @chunk
  (constructor_declaration) @chunk
]
""",
    "rust": """
[
  (function_item) @chunk
  (struct_item) @chunk
  (enum_item) @chunk
  (trait_item) @chunk
  (impl_item) @chunk
]
""",
    "ruby": """
[
  (method) @chunk
  (singleton_method) @chunk
  (class) @chunk
  (module) @chunk
]
""",
}

_CLASS_TYPES = frozenset(
    {
        "class_definition",
        "class_declaration",
        "abstract_class_declaration",
        "interface_declaration",
        "enum_declaration",
        "type_declaration",
        "struct_item",
        "enum_item",
        "trait_item",
        "impl_item",
        "class",
        "module",
    }
)

_FUNCTION_TYPES = frozenset(
    {
        "function_definition",
        "function_declaration",
        "generator_function_declaration",
        "method_definition",
        "method_declaration",
        "constructor_declaration",
        "function_item",
        "method",
        "singleton_method",
    }
)

# Node types that are methods regardless of where they sit.
_ALWAYS_METHOD = frozenset({"method_definition", "method_declaration", "constructor_declaration"})

_ARROW_TYPES = frozenset({"lexical_declaration"})


def language_for(path: str) -> str | None:
    """Return the grammar name for *path*'s extension, or None if unsupported."""
    dot = path.rfind(".")
    if dot == -1:
        return None
    return EXTENSION_LANGUAGES.get(path[dot:].lower())


def whole_file_chunk(content: str) -> CodeChunk:
    """The synthetic chunk used when no structure could be extracted."""
    return CodeChunk(
        name=FALLBACK_CHUNK_NAME,
        chunk_type="block",
        content=content,
        start_line=1,
        end_line=max(1, len(content.split("\n"))),
    )


def chunk_code(content: str, language: str | None) -> list[CodeChunk]:
    """Split source *content* into structural chunks.

    Args:
        content: Full source text.
        language: Grammar name (see ``EXTENSION_LANGUAGES``); ``None`` or an
            unknown language yields the whole-file chunk.

    Returns:
        Chunks ordered by position. Never empty for non-blank content.
    """
    if not content.strip():
        return []

    query_src = _QUERIES.get(language or "")
    if query_src is None:
        return [whole_file_chunk(content)]

    try:
        parser = get_parser(language)
        source = content.encode("utf-8")
        tree = parser.parse(source)
        query = Query(parser.language, query_src)
        captures = QueryCursor(query).captures(tree.root_node)
    except (LookupError, ValueError) as exc:
        logger.warning("tree-sitter unavailable for %s: %s", language, exc)
        return [whole_file_chunk(content)]

    nodes = sorted(captures.get("chunk", []), key=lambda n: (n.start_byte, -n.end_byte))
    function_spans = {
        (n.start_byte, n.end_byte)
        for n in nodes
        if n.type in _FUNCTION_TYPES or n.type in _ARROW_TYPES
    }
    chunks = [
        _node_to_chunk(node, source)
        for node in nodes
        if not _inside_captured_function(node, function_spans)
    ]
    return chunks or [whole_file_chunk(content)]


# ------------------------------------------------------------------
# Node helpers
# ------------------------------------------------------------------


def _inside_captured_function(node: Node, function_spans: set[tuple[int, int]]) -> bool:
    """True if an ancestor of *node* is itself a captured function-like node."""
    parent = node.parent
    while parent is not None:
        if (
            parent.type in _FUNCTION_TYPES or parent.type in _ARROW_TYPES
        ) and (parent.start_byte, parent.end_byte) in function_spans:
            return True
        parent = parent.parent
    return False


def _has_class_ancestor(node: Node) -> bool:
    parent = node.parent
    while parent is not None:
        if parent.type in _CLASS_TYPES:
            return True
        parent = parent.parent
    return False


def _chunk_type(node: Node) -> str:
    if node.type in _ARROW_TYPES:
        return "arrow"
    if node.type in _CLASS_TYPES:
        return "class"
    if node.type in _ALWAYS_METHOD:
        return "method"
    if node.type in _FUNCTION_TYPES and _has_class_ancestor(node):
        return "method"
    return "function"


def _node_text(node: Node | None, source: bytes) -> str:
    if node is None:
        return ""
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def _chunk_name(node: Node, source: bytes) -> str:
    name_node = node.child_by_field_name("name")
    if name_node is None and node.type == "impl_item":
        name_node = node.child_by_field_name("type")
    if name_node is None and node.type in _ARROW_TYPES:
        # const handler = () => ... : the declarator's name field
        declarator = node.named_children[0] if node.named_children else None
        if declarator is not None:
            name_node = declarator.child_by_field_name("name")
    if name_node is None and node.type == "type_declaration" and node.named_children:
        # Go: type Foo struct {...} keeps the name on the type_spec child
        name_node = node.named_children[0].child_by_field_name("name")
    if name_node is None and node.named_children:
        name_node = node.named_children[0]
    name = _node_text(name_node, source).strip()
    return name or "anonymous"


def _node_to_chunk(node: Node, source: bytes) -> CodeChunk:
    return CodeChunk(
        name=_chunk_name(node, source),
        chunk_type=_chunk_type(node),
        content=_node_text(node, source),
        start_line=node.start_point[0] + 1,
        end_line=node.end_point[0] + 1,
    )
