from .client import STREAK_API_BASE, CrmApiError, CrmError, StreakClient, build_auth_header
from .mappers import CrmVocabulary, VocabularyError, build_request, load_vocabulary

__all__ = [
    "STREAK_API_BASE",
    "CrmApiError",
    "CrmError",
    "CrmVocabulary",
    "StreakClient",
    "VocabularyError",
    "build_auth_header",
    "build_request",
    "load_vocabulary",
]
