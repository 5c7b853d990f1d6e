"""SonarQube analysis — client, fetcher and snapshot models."""

from pipeline_report.sonar.client import SonarClient
from pipeline_report.sonar.fetcher import SonarCredentials, fetch_snapshot
from pipeline_report.sonar.models import (
    AnalysisSnapshot,
    Capped,
    CoverageFile,
    GateCondition,
    Hotspot,
    Issue,
    QualityGateStatus,
    capped,
)
from pipeline_report.sonar.ratings import get_rating

__all__ = [
    "AnalysisSnapshot",
    "Capped",
    "CoverageFile",
    "GateCondition",
    "Hotspot",
    "Issue",
    "QualityGateStatus",
    "SonarClient",
    "SonarCredentials",
    "capped",
    "fetch_snapshot",
    "get_rating",
]
