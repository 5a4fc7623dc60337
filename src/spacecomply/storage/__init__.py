"""
Assessment storage.

SQLite-backed persistence of assessments, per-requirement statuses and
score history.

Example:
    from spacecomply.storage import AssessmentStore

    store = AssessmentStore(data_dir="./data")
    assessment = store.create_assessment("nis2", "HQ", profile, requirement_ids)
"""

from spacecomply.storage.assessment_store import (
    AssessmentNotFoundError,
    AssessmentStore,
    RequirementNotApplicableError,
    StorageError,
)
from spacecomply.storage.models import (
    Assessment,
    RequirementStatusRecord,
    ScoreSnapshot,
)

__all__ = [
    "AssessmentStore",
    "StorageError",
    "AssessmentNotFoundError",
    "RequirementNotApplicableError",
    "Assessment",
    "RequirementStatusRecord",
    "ScoreSnapshot",
]
