from enum import Enum


class RelationshipType(str, Enum):
    SENIOR = "senior"   # Rater is more senior than the subject
    PEER = "peer"       # Equal colleague
    JUNIOR = "junior"   # Rater reports to / is junior to the subject


class InsightRelationship(str, Enum):
    SENIOR = "senior"
    PEER = "peer"
    JUNIOR = "junior"
    AGGREGATE = "aggregate"


class ConfidenceLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AnalysisStage(str, Enum):
    IDLE = "idle"
    CACHE_CHECK = "cache_check"
    PREPARING = "preparing"
    PROCESSING_GROUP = "processing_group"
    PROCESSING_AGGREGATE = "processing_aggregate"
    SAVING = "saving"
    COMPLETE = "complete"
    ERROR = "error"


class AnalysisStatus(str, Enum):
    COLLECTING = "collecting"   # Below minimum review count
    READY = "ready"             # Enough reviews, never analyzed
    ANALYZING = "analyzing"
    FAILED = "failed"
    AVAILABLE = "available"     # Snapshot exists (may be stale)


# Reporting order for per-relationship processing
RELATIONSHIP_ORDER = [RelationshipType.SENIOR, RelationshipType.PEER, RelationshipType.JUNIOR]
