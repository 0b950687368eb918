"""Application pipeline – ordered stage chains."""
from filevault.application.pipeline.pipeline import Pipeline
from filevault.application.pipeline.stage import Handler, Next, Stage

__all__ = ["Handler", "Next", "Pipeline", "Stage"]
