"""Document tree: node model, assembly, sentence segmentation, reconnection.

Only the node model is re-exported here; import the assembler,
segmenter and reconnector from their modules.
"""

from medstruct.tree.nodes import (
    DocumentNode,
    NodeKind,
    RefType,
    body,
    division,
    heading,
    list_item,
    list_node,
    note,
    paragraph,
    reference,
    sentence,
    text_run,
)

__all__ = [
    "DocumentNode",
    "NodeKind",
    "RefType",
    "body",
    "division",
    "heading",
    "list_item",
    "list_node",
    "note",
    "paragraph",
    "reference",
    "sentence",
    "text_run",
]
