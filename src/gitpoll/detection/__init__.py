"""Change detection between commits of a polled repository."""

from gitpoll.detection.aggregator import ChangeAggregator
from gitpoll.detection.ancestry import AncestryWalker
from gitpoll.detection.diff import DiffEngine
from gitpoll.detection.filters import PathFilter
from gitpoll.detection.snapshot import snapshot_working_tree

__all__ = [
    "AncestryWalker",
    "ChangeAggregator",
    "DiffEngine",
    "PathFilter",
    "snapshot_working_tree",
]
