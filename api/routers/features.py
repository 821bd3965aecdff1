# File: api/routers/features.py
from typing import Dict, Optional
from fastapi import APIRouter, Depends

from api.dependencies.auth import get_optional_user
from database.models.auth_models import User
from services.feature_flags import build_flag_context, get_all_feature_flags

router = APIRouter()


@router.get("/features", response_model=Dict[str, bool])
def get_features(current_user: Optional[User] = Depends(get_optional_user)):
    """Feature flags for the caller; anonymous callers are evaluated as free tier."""
    return get_all_feature_flags(build_flag_context(current_user))
