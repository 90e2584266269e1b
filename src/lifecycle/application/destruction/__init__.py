from src.lifecycle.application.destruction.pipeline import DestructionPipeline
from src.lifecycle.application.destruction.steps import DestructionContext, DestructionStep

__all__ = ["DestructionContext", "DestructionPipeline", "DestructionStep"]
