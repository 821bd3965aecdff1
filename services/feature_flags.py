# services/feature_flags.py
import os
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from database.models.auth_models import SubscriptionTier

# Rollout defaults; read-only at runtime
DEFAULT_FLAGS: Mapping[str, bool] = MappingProxyType({
    "research-companion": True,
    "voice-input": True,
    "veritas-score": True,
    "mindmap-visualization": True,
    "excel-export": True,
    "pdf-export": True,
    "ai-metadata-extraction": True,
    "whisper-transcription": True,
    "custom-citation-styles": True,
    "project-sharing": True,
    "multimodal-embeddings": False,
    "auto-context-generation": False,
    "ai-annotation-generation": False,
    "topic-clustering": False,
    "camera-capture": False,
    "offline-mode": False,
})

_LIGHT_OR_PRO = (SubscriptionTier.LIGHT.value, SubscriptionTier.PRO.value)
_PRO_ONLY = (SubscriptionTier.PRO.value,)

# Flags absent here are available on every tier
TIER_REQUIREMENTS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "mindmap-visualization": _LIGHT_OR_PRO,
    "project-sharing": _LIGHT_OR_PRO,
    "excel-export": _LIGHT_OR_PRO,
    "pdf-export": _LIGHT_OR_PRO,
    "research-companion": _PRO_ONLY,
    "custom-citation-styles": _PRO_ONLY,
    "voice-input": _PRO_ONLY,
    "whisper-transcription": _PRO_ONLY,
    "veritas-score": _PRO_ONLY,
})


@dataclass(frozen=True)
class FeatureFlagContext:
    """Built once per request and passed down explicitly."""
    user_id: Optional[str] = None
    subscription_tier: str = SubscriptionTier.FREE.value
    environment: str = "local"


def build_flag_context(user=None) -> FeatureFlagContext:
    return FeatureFlagContext(
        user_id=getattr(user, "id", None),
        subscription_tier=getattr(user, "subscription_tier", None) or SubscriptionTier.FREE.value,
        environment=os.getenv("APP_ENV", "local"),
    )


def is_feature_enabled(feature_name: str, context: Optional[FeatureFlagContext] = None) -> bool:
    if not DEFAULT_FLAGS.get(feature_name, False):
        return False

    required = TIER_REQUIREMENTS.get(feature_name)
    if not required:
        return True

    tier = context.subscription_tier if context else SubscriptionTier.FREE.value
    return tier in required


def get_all_feature_flags(context: Optional[FeatureFlagContext] = None) -> Dict[str, bool]:
    return {name: is_feature_enabled(name, context) for name in DEFAULT_FLAGS}
