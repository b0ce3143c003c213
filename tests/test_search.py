"""
Unit tests for transcript search.
"""

import unittest

from inksync.models import Block
from inksync.search import search_blocks, tokenize


class TestTranscriptSearch(unittest.TestCase):
    """Test tokenizing and ranking transcript blocks."""

    def setUp(self):
        """Set up test fixtures."""
        self.blocks = [
            Block(id="1", content="Kickoff lunch"),
            Block(id="2", content="Project kickoff with Bob"),
            Block(id="3", content="Groceries"),
        ]

    def test_tokenize(self):
        self.assertEqual(tokenize("Call Bob re: part 5444-005!"), {"call", "bob", "re", "part", "5444-005"})
        self.assertEqual(tokenize("a I"), set())
        self.assertEqual(tokenize(""), set())

    def test_ranked_by_matched_tokens(self):
        results = search_blocks(self.blocks, "kickoff project")
        self.assertEqual([block.id for block in results], ["2", "1"])

    def test_partial_tokens_match(self):
        results = search_blocks(self.blocks, "groc")
        self.assertEqual([block.id for block in results], ["3"])

    def test_ties_keep_input_order(self):
        results = search_blocks(self.blocks, "kickoff")
        self.assertEqual([block.id for block in results], ["1", "2"])

    def test_empty_query_returns_everything(self):
        self.assertEqual(search_blocks(self.blocks, "  "), self.blocks)

    def test_exported_from_package(self):
        import inksync

        self.assertIs(inksync.search_blocks, search_blocks)
        self.assertIs(inksync.tokenize, tokenize)
        self.assertIn("search_blocks", inksync.__all__)


if __name__ == '__main__':
    unittest.main()
