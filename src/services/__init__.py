from __future__ import annotations

from src.services.library_service import LibraryService
from src.services.reconciliation_service import BatchReconciliation, GameDraft, ReconciliationEngine
from src.services.recommendation_service import RecommendationService

__all__: list[str] = [
    "BatchReconciliation",
    "GameDraft",
    "LibraryService",
    "ReconciliationEngine",
    "RecommendationService",
]
