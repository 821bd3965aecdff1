# services/graph_service.py
import logging
import math
import os
import re
from collections import defaultdict
from itertools import combinations
from typing import Dict, List, Optional, Sequence, Tuple

import networkx as nx
from sqlalchemy.orm import Session

from database.models.library_models import Entry, EntrySimilarity, Tag
from services.library_repository import LibraryRepository
from services.schema.graph_schema import (
    EdgeType,
    FilterOptionsInput,
    GraphEdge,
    GraphFilterOptions,
    GraphNode,
    LibraryGraph,
    NodeType,
)
from utils.sanitization import author_display_name, author_key, truncate_label

logger = logging.getLogger(__name__)

DEFAULT_GRAPH_LIMIT = 200
MAX_GRAPH_LIMIT = 500

FALLBACK_SIMILARITY_THRESHOLD = 0.75


def parse_similarity_threshold(raw: Optional[str]) -> float:
    """Scores are in [0, 1]; a relation is drawn when score >= threshold."""
    if raw is None or not raw.strip():
        return FALLBACK_SIMILARITY_THRESHOLD
    try:
        value = float(raw)
    except ValueError:
        value = math.nan

    if math.isnan(value) or not 0 <= value <= 1:
        logger.warning(
            "⚠️ Ignoring GRAPH_SIMILARITY_THRESHOLD=%r, using %s", raw, FALLBACK_SIMILARITY_THRESHOLD
        )
        return FALLBACK_SIMILARITY_THRESHOLD
    return value


DEFAULT_SIMILARITY_THRESHOLD = parse_similarity_threshold(os.getenv("GRAPH_SIMILARITY_THRESHOLD"))


def parse_graph_limit(raw: Optional[str]) -> int:
    """
    Lenient query-string parsing: anything unusable falls back to the
    default, and the result never exceeds MAX_GRAPH_LIMIT.
    """
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return DEFAULT_GRAPH_LIMIT

    if math.isnan(value) or value < 1:
        return DEFAULT_GRAPH_LIMIT

    return int(min(value, MAX_GRAPH_LIMIT))


def author_node_id(key: str) -> str:
    return "author-" + re.sub(r"\s+", "-", key)


def tag_node_id(tag_id: str) -> str:
    return f"tag-{tag_id}"


def _entry_authors(entry: Entry) -> Dict[str, str]:
    """Normalized key -> display name, first spelling wins, duplicates dropped."""
    authors: Dict[str, str] = {}
    raw_authors = entry.authors if isinstance(entry.authors, list) else []
    for raw in raw_authors:
        name = author_display_name(raw)
        if not name:
            continue
        authors.setdefault(author_key(name), name)
    return authors


def _entry_metadata(entry: Entry, authors: Dict[str, str], annotation_count: int) -> Dict:
    metadata = {
        "entryType": entry.entry_type,
        "authors": list(authors.values()),
        "annotationCount": annotation_count,
    }
    if entry.year:
        metadata["year"] = entry.year
    return metadata


class _GraphAssembler:
    """
    Accumulates nodes and typed edges on a networkx MultiGraph.

    The edge key is the edge type, so adding the same relation twice between
    a pair updates it instead of duplicating it.
    """

    def __init__(self):
        self.G = nx.MultiGraph()
        self._seq = 0

    def add_node(self, node_id: str, node_type: NodeType, label: str, metadata: Optional[Dict] = None):
        if node_id in self.G:
            return
        self.G.add_node(node_id, type=node_type, label=label, metadata=metadata or {})

    def add_edge(self, source: str, target: str, edge_type: EdgeType, weight: float, metadata: Optional[Dict] = None):
        existing = self.G.get_edge_data(source, target, key=edge_type)
        seq = existing["seq"] if existing else self._seq
        if not existing:
            self._seq += 1
        self.G.add_edge(
            source,
            target,
            key=edge_type,
            endpoints=(source, target),
            weight=weight,
            metadata=metadata or {},
            seq=seq,
        )

    def to_library_graph(self) -> LibraryGraph:
        nodes = [
            GraphNode(id=node_id, type=data["type"], label=data["label"], metadata=data["metadata"])
            for node_id, data in self.G.nodes(data=True)
        ]
        ordered_edges = sorted(self.G.edges(keys=True, data=True), key=lambda e: e[3]["seq"])
        edges = [
            GraphEdge(
                source=data["endpoints"][0],
                target=data["endpoints"][1],
                type=key,
                weight=data["weight"],
                metadata=data["metadata"],
            )
            for _, _, key, data in ordered_edges
        ]
        return LibraryGraph(nodes=nodes, edges=edges)


def _pair_groups(groups: Dict[str, List[str]], order: Dict[str, int]) -> List[Tuple[Tuple[str, str], List[str]]]:
    """
    Turns {group key: [entry ids]} into [((earlier, later), [group keys])],
    sorted by the build position of the pair.
    """
    shared: Dict[Tuple[str, str], List[str]] = defaultdict(list)
    for group_key, entry_ids in groups.items():
        for a, b in combinations(entry_ids, 2):
            pair = (a, b) if order[a] < order[b] else (b, a)
            shared[pair].append(group_key)
    return sorted(shared.items(), key=lambda item: (order[item[0][0]], order[item[0][1]]))


def _assemble(
    entries: Sequence[Entry],
    tags_by_entry: Dict[str, List[Tag]],
    annotation_counts: Dict[str, int],
    similarities: Sequence[EntrySimilarity],
    threshold: float,
    materialize_facets: bool,
) -> LibraryGraph:
    assembler = _GraphAssembler()
    order: Dict[str, int] = {}
    authors_by_entry: Dict[str, Dict[str, str]] = {}

    # -----------------------------
    # Entry nodes (build order = store order)
    # -----------------------------
    for idx, entry in enumerate(entries):
        order[entry.id] = idx
        authors = _entry_authors(entry)
        authors_by_entry[entry.id] = authors
        assembler.add_node(
            entry.id,
            NodeType.ENTRY,
            truncate_label(entry.title),
            _entry_metadata(entry, authors, annotation_counts.get(entry.id, 0)),
        )

    # -----------------------------
    # Facet nodes: authors and tags
    # -----------------------------
    if materialize_facets:
        for entry in entries:
            for key, name in authors_by_entry[entry.id].items():
                node_id = author_node_id(key)
                assembler.add_node(node_id, NodeType.AUTHOR, name)
                assembler.add_edge(entry.id, node_id, EdgeType.AUTHORED_BY, 1)

        for entry in entries:
            for tag in tags_by_entry.get(entry.id, []):
                node_id = tag_node_id(tag.id)
                assembler.add_node(node_id, NodeType.TAG, tag.name, {"color": tag.color} if tag.color else {})
                assembler.add_edge(entry.id, node_id, EdgeType.HAS_TAG, 1)

    # -----------------------------
    # Same-author edges
    # -----------------------------
    author_groups: Dict[str, List[str]] = defaultdict(list)
    author_names: Dict[str, str] = {}
    for entry in entries:
        for key, name in authors_by_entry[entry.id].items():
            author_groups[key].append(entry.id)
            author_names.setdefault(key, name)

    for (a, b), keys in _pair_groups(author_groups, order):
        assembler.add_edge(
            a, b, EdgeType.SAME_AUTHOR, len(keys),
            {"authors": [author_names[k] for k in keys]},
        )

    # -----------------------------
    # Shared-tag edges, weighted by number of shared tags
    # -----------------------------
    tag_groups: Dict[str, List[str]] = defaultdict(list)
    tag_names: Dict[str, str] = {}
    for entry in entries:
        for tag in tags_by_entry.get(entry.id, []):
            if entry.id not in tag_groups[tag.id]:
                tag_groups[tag.id].append(entry.id)
            tag_names[tag.id] = tag.name

    for (a, b), tag_ids in _pair_groups(tag_groups, order):
        assembler.add_edge(
            a, b, EdgeType.SHARED_TAG, len(tag_ids),
            {"tags": sorted(tag_names[t] for t in tag_ids)},
        )

    # -----------------------------
    # Similar edges from precomputed scores
    # -----------------------------
    best_scores: Dict[Tuple[str, str], float] = {}
    for row in similarities:
        a, b = row.entry_id, row.related_entry_id
        if a == b or a not in order or b not in order:
            continue
        if row.score is None or row.score < threshold:
            continue
        pair = (a, b) if order[a] < order[b] else (b, a)
        best_scores[pair] = max(best_scores.get(pair, row.score), row.score)

    for (a, b), score in sorted(best_scores.items(), key=lambda item: (order[item[0][0]], order[item[0][1]])):
        assembler.add_edge(a, b, EdgeType.SIMILAR_TO, round(score, 4))

    graph = assembler.to_library_graph()
    logger.info(
        "🕸️ Library Graph: %d nodes, %d edges, %d components",
        assembler.G.number_of_nodes(),
        assembler.G.number_of_edges(),
        nx.number_connected_components(assembler.G),
    )
    return graph


def _load_and_assemble(
    repo: LibraryRepository,
    entries: Sequence[Entry],
    user_id: str,
    threshold: float,
    materialize_facets: bool,
) -> LibraryGraph:
    entry_ids = [e.id for e in entries]
    return _assemble(
        entries,
        repo.tags_by_entry(entry_ids, user_id),
        repo.annotation_counts(entry_ids),
        repo.similarities_between(entry_ids, min_score=threshold),
        threshold,
        materialize_facets,
    )


def build_library_graph(
    db: Session,
    user_id: str,
    limit: int = DEFAULT_GRAPH_LIMIT,
    similarity_threshold: Optional[float] = None,
) -> LibraryGraph:
    """
    Build the relationship graph over a user's most recent entries.

    Only entry nodes are produced; authors and tags travel as metadata on the
    same_author / shared_tag edges. Store errors propagate to the caller.
    """
    if limit < 1:
        raise ValueError("limit must be a positive integer")
    limit = min(int(limit), MAX_GRAPH_LIMIT)
    threshold = DEFAULT_SIMILARITY_THRESHOLD if similarity_threshold is None else similarity_threshold

    repo = LibraryRepository(db)
    entries = repo.list_entries(user_id, limit)
    if not entries:
        logger.info("Library graph for user %s is empty", user_id)
        return LibraryGraph()

    return _load_and_assemble(repo, entries, user_id, threshold, materialize_facets=False)


def build_project_graph(
    db: Session,
    project_id: str,
    user_id: str,
    similarity_threshold: Optional[float] = None,
) -> LibraryGraph:
    """
    Graph over the entries of one project, with author and tag nodes
    materialized and linked to their entries.
    """
    threshold = DEFAULT_SIMILARITY_THRESHOLD if similarity_threshold is None else similarity_threshold

    repo = LibraryRepository(db)
    entries = repo.list_project_entries(project_id, user_id)
    if not entries:
        return LibraryGraph()

    return _load_and_assemble(repo, entries, user_id, threshold, materialize_facets=True)


def filter_graph_by_type(graph: LibraryGraph, options: FilterOptionsInput = None) -> LibraryGraph:
    """
    Return a reduced copy of the graph according to the display toggles.
    The input graph is left untouched and edges never dangle.
    """
    if isinstance(options, GraphFilterOptions):
        opts = options
    else:
        opts = GraphFilterOptions.from_mapping(options or {})

    hidden_nodes = set()
    hidden_edges = set()

    if not opts.show_authors:
        hidden_nodes.add(NodeType.AUTHOR)
        hidden_edges.add(EdgeType.SAME_AUTHOR)
    if not opts.show_tags:
        hidden_nodes.add(NodeType.TAG)
        hidden_edges.add(EdgeType.SHARED_TAG)
    if not opts.show_same_author_edges:
        hidden_edges.add(EdgeType.SAME_AUTHOR)
    if not opts.show_similar_edges:
        hidden_edges.add(EdgeType.SIMILAR_TO)

    nodes = [n.model_copy(deep=True) for n in graph.nodes if n.type not in hidden_nodes]
    node_ids = {n.id for n in nodes}
    edges = [
        e.model_copy(deep=True) for e in graph.edges
        if e.type not in hidden_edges and e.source in node_ids and e.target in node_ids
    ]

    return LibraryGraph(nodes=nodes, edges=edges)
