"""
Document layer: persistent tree, ordered walk, compile and print.

This is the narrow evaluator interface the resolver consumes: compile source
text to a tree, look up and fill paths, and walk nodes in dispatch order.
"""

from resolvespine.document.compiler import TemplateDocument, build_template, compile_source
from resolvespine.document.document import (
    DO_KEY,
    IMPORTS_KEY,
    PARAMS_KEY,
    PRIORITY_KEY,
    PROVIDER_KEY,
    REF_KEY,
    RETURNS_KEY,
    Document,
    Node,
    is_call_marker,
    is_pending_call,
)
from resolvespine.document.paths import ROOT, Path, format_path, parse_path
from resolvespine.document.printer import OutputFormat, print_document, to_native_string

__all__ = [
    "DO_KEY",
    "PROVIDER_KEY",
    "PARAMS_KEY",
    "RETURNS_KEY",
    "PRIORITY_KEY",
    "IMPORTS_KEY",
    "REF_KEY",
    "Document",
    "Node",
    "Path",
    "ROOT",
    "OutputFormat",
    "TemplateDocument",
    "build_template",
    "compile_source",
    "format_path",
    "is_call_marker",
    "is_pending_call",
    "parse_path",
    "print_document",
    "to_native_string",
]
