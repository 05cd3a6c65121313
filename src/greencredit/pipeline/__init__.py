from .orchestrator import PipelineOrchestrator
from .staleness import WATCHED_FIELDS, StalenessController
from .state import Phase, PipelineState, RunMode, StageError
