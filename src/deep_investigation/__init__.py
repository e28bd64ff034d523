"""
Recursive deep-investigation pipeline
=====================================
Expands a research query into a tree of LLM-planned web searches, folds the
findings into a deduplicated set of insights and sources, and synthesizes a
markdown report.
"""

from deep_investigation.config import load_dotenv_files
from deep_investigation.investigation import (
    InvestigationEngine,
    conduct_investigation,
    generate_analysis_report,
)
from deep_investigation.models import InvestigationOutcome, InvestigationProgress
from deep_investigation.progress import OutputManager, ProgressReporter

__version__ = "0.1.0"
