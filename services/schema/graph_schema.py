# services/schema/graph_schema.py
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, List, Mapping, Union

from pydantic import BaseModel, Field


class NodeType(str, Enum):
    ENTRY = "entry"
    AUTHOR = "author"
    TAG = "tag"


class EdgeType(str, Enum):
    # Entry -> entry relations
    SAME_AUTHOR = "same_author"
    SHARED_TAG = "shared_tag"
    SIMILAR_TO = "similar_to"
    # Entry -> facet node, only when facet nodes are materialized
    AUTHORED_BY = "authored_by"
    HAS_TAG = "has_tag"


class GraphNode(BaseModel):
    id: str = Field(..., description="Entry id, or author-/tag- prefixed facet id")
    type: NodeType
    label: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class GraphEdge(BaseModel):
    source: str
    target: str
    type: EdgeType
    weight: float = Field(..., description="Shared count, or similarity score for similar_to")
    metadata: Dict[str, Any] = Field(default_factory=dict)


class LibraryGraph(BaseModel):
    """Per-request graph payload: ordered nodes and the edges between them."""
    nodes: List[GraphNode] = Field(default_factory=list)
    edges: List[GraphEdge] = Field(default_factory=list)


# Wire names of the display toggles, mapped to the dataclass fields
FILTER_OPTION_ALIASES = {
    "showAuthors": "show_authors",
    "showTags": "show_tags",
    "showSameAuthorEdges": "show_same_author_edges",
    "showSimilarEdges": "show_similar_edges",
}


@dataclass(frozen=True)
class GraphFilterOptions:
    """
    Display toggles for filter_graph_by_type. All default to True.

    Values are coerced by truthiness; only the set of keys is checked.
    """
    show_authors: bool = True
    show_tags: bool = True
    show_same_author_edges: bool = True
    show_similar_edges: bool = True

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "GraphFilterOptions":
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in options.items():
            name = FILTER_OPTION_ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown graph filter option: {key}")
            values[name] = bool(value)
        return cls(**values)

    @classmethod
    def from_query(cls, params: Mapping[str, Any]) -> "GraphFilterOptions":
        """Only the literal string 'false' turns a toggle off; absence means on."""
        return cls(**{
            name: params.get(wire_name) != "false"
            for wire_name, name in FILTER_OPTION_ALIASES.items()
        })


FilterOptionsInput = Union[GraphFilterOptions, Mapping[str, Any], None]
