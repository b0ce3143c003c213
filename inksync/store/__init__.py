"""Block stores the transcript tree is written to."""

from .base import BaseBlockStore
from .memory import InMemoryBlockStore
from .logseq import LogseqBlockStore

__all__ = ["BaseBlockStore", "InMemoryBlockStore", "LogseqBlockStore"]
