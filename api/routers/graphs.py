# File: api/routers/graphs.py
from typing import Optional
from fastapi import APIRouter, HTTPException, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from api.dependencies.auth import get_db, require_light_or_pro_tier
from database.models.auth_models import User
from services.graph_service import (
    build_library_graph,
    build_project_graph,
    filter_graph_by_type,
    parse_graph_limit,
)
from services.schema.graph_schema import GraphFilterOptions, LibraryGraph
from utils.project_query import find_project

import logging

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/entries/graph", response_model=LibraryGraph)
def get_library_graph(
    request: Request,
    limit: Optional[str] = None,
    current_user: User = Depends(require_light_or_pro_tier),
    db: Session = Depends(get_db),
):
    effective_limit = parse_graph_limit(limit)
    options = GraphFilterOptions.from_query(request.query_params)

    try:
        graph = build_library_graph(db, current_user.id, effective_limit)
    except SQLAlchemyError as e:
        logger.error(f"Library graph build failed for user {current_user.id}: {type(e).__name__}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to build library graph")

    return filter_graph_by_type(graph, options)


@router.get("/projects/{project_id}/graph", response_model=LibraryGraph)
def get_project_graph(
    project_id: str,
    request: Request,
    current_user: User = Depends(require_light_or_pro_tier),
    db: Session = Depends(get_db),
):
    if not project_id or not project_id.strip():
        raise HTTPException(status_code=400, detail="Project ID is required")

    options = GraphFilterOptions.from_query(request.query_params)

    try:
        project = find_project(db, project_id.strip(), current_user.id)
        if project is None:
            raise HTTPException(status_code=404, detail="Project not found")

        graph = build_project_graph(db, project.id, current_user.id)
    except SQLAlchemyError as e:
        logger.error(f"Project graph build failed for {project_id}: {type(e).__name__}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to build project graph")

    return filter_graph_by_type(graph, options)
