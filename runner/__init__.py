"""
Command runner: registration, the invocation pipeline and delivery.
"""

from .commands import CommandRegistry, signature, tokenize
from .delivery import Delivery, Scheduler, TopicService, topic_key
from .pipeline import PipelineOrchestrator
from .service import NetGetService
from .source_get import OutputCapture, SourceFetcher, SourceResult

__all__ = [
    "CommandRegistry",
    "signature",
    "tokenize",
    "Delivery",
    "Scheduler",
    "TopicService",
    "topic_key",
    "PipelineOrchestrator",
    "NetGetService",
    "OutputCapture",
    "SourceFetcher",
    "SourceResult",
]
