from .oracle import OpenAIOracle, PromptSpec
from .stages import AssessmentStages
