"""Transaction screening domain."""

from .config import ScreeningConfig, default_config
from .ingestion import IngestionService, new_event_id, new_processing_id
from .models import (
    JobEvent,
    JobEventData,
    ProcessingResponse,
    Recommendation,
    RiskAnalysis,
    RiskFlag,
    RiskLevel,
    SubmissionStatus,
    Transaction,
    TransactionStatus,
    TransactionStatusResponse,
)
from .queries import TransactionQueryService
from .rules import ALL_CHECKS
from .rules_engine import RiskEngine, classify_risk_level, recommend
from .scorer import TransactionScorer

__all__ = [
    "ALL_CHECKS",
    "IngestionService",
    "JobEvent",
    "JobEventData",
    "ProcessingResponse",
    "Recommendation",
    "RiskAnalysis",
    "RiskEngine",
    "RiskFlag",
    "RiskLevel",
    "ScreeningConfig",
    "SubmissionStatus",
    "Transaction",
    "TransactionQueryService",
    "TransactionScorer",
    "TransactionStatus",
    "TransactionStatusResponse",
    "classify_risk_level",
    "default_config",
    "new_event_id",
    "new_processing_id",
    "recommend",
]
