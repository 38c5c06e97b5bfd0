"""Live indexing: program-log listener and its restart supervisor."""

from stablind.indexing.listener import EventListener, ListenerState
from stablind.indexing.supervisor import run_indexer

__all__ = ["EventListener", "ListenerState", "run_indexer"]
