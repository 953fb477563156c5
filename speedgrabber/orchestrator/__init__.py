"""Orchestrator package - coordinates scan and upload workflows."""
from .aggregator import Aggregator, ScanState
from .core import SpeedGrabber
from .destinations import DestinationMapper
from .models import RoundSummary, UnitOutcome
from .scheduler import UploadScheduler
from .walker import DirectoryWalker, walk_subtree

__all__ = [
    "Aggregator",
    "DestinationMapper",
    "DirectoryWalker",
    "RoundSummary",
    "ScanState",
    "SpeedGrabber",
    "UnitOutcome",
    "UploadScheduler",
    "walk_subtree",
]
