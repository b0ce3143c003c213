"""
Transcript search for InkSync.

Bag-of-words search over transcript blocks. Query tokens match partially, so
typing "proj" already finds "project".
"""

import re
from typing import List, Sequence, Set, Tuple

from .models import Block


_PUNCTUATION_RE = re.compile(r"[^\w\s-]")


def tokenize(text: str) -> Set[str]:
    """
    Split text into lowercase search tokens.

    Hyphens inside words are kept ("5444-005" stays one token); tokens shorter
    than two characters are dropped.
    """
    if not text:
        return set()
    cleaned = _PUNCTUATION_RE.sub(" ", text.lower())
    return {word for word in cleaned.split() if len(word) >= 2}


def search_blocks(blocks: Sequence[Block], query: str) -> List[Block]:
    """
    Rank blocks by how many query tokens they match.

    A query token matches when it is a substring of any token of the block.
    Blocks matching no token are dropped; an empty query returns the blocks
    unchanged.
    """
    query_tokens = sorted(tokenize(query))
    if not query_tokens:
        return list(blocks)

    scored: List[Tuple[int, int, Block]] = []
    for position, block in enumerate(blocks):
        block_tokens = tokenize(block.content)
        score = sum(
            1 for query_token in query_tokens
            if any(query_token in block_token for block_token in block_tokens)
        )
        if score > 0:
            scored.append((-score, position, block))

    scored.sort(key=lambda item: (item[0], item[1]))
    return [block for _, _, block in scored]
