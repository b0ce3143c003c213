"""
Unit tests for block reconciliation.
"""

import unittest

from inksync.models import ActionType, Block, BlockProperties, RecognizedLine, Stroke, YBounds
from inksync.sync import BlockReconciler, SyncContext


def make_stroke(start_time, top, bottom, block_id=None):
    stroke = Stroke.from_points(start_time, [(0.0, top), (10.0, bottom)])
    stroke.block_id = block_id
    return stroke


def make_line(text, top, bottom, indent_level=0, canonical=None):
    return RecognizedLine(
        text=text,
        indent_level=indent_level,
        y_bounds=YBounds(min_y=top, max_y=bottom),
        canonical=canonical,
    )


def make_block(block_id, stroke_ids=(), canonical=None, content=None, parent_id=None, y_bounds=None, merged_lines=1):
    return Block(
        id=block_id,
        parent_id=parent_id,
        content=content if content is not None else (canonical or ""),
        properties=BlockProperties(
            y_bounds=y_bounds,
            canonical_transcript=canonical,
            stroke_ids=set(stroke_ids),
            merged_lines=merged_lines,
        ),
    )


class TestBlockReconciler(unittest.TestCase):
    """Test the decision made for every block and line of a pass."""

    def setUp(self):
        """Set up test fixtures."""
        self.reconciler = BlockReconciler()

    def reconcile(self, blocks, lines, strokes, transcribed_stroke_ids=None):
        context = SyncContext.prepare(
            lines,
            strokes,
            section_root_id="root",
            transcribed_stroke_ids=transcribed_stroke_ids,
        )
        return self.reconciler.reconcile(blocks, context), context

    def test_partial_pass_preserves_untouched_block(self):
        """Test a block whose ink was not part of the pass is kept."""
        block = make_block("b1", stroke_ids={"s100", "s101"}, canonical="old line")
        strokes = [
            make_stroke(100, 10, 20, block_id="b1"),
            make_stroke(101, 12, 18, block_id="b1"),
            make_stroke(200, 50, 60),
            make_stroke(201, 52, 58),
        ]

        actions, _ = self.reconcile(
            [block],
            [make_line("new line", 50, 60)],
            strokes,
            transcribed_stroke_ids=["s200", "s201"],
        )

        self.assertEqual([a.action_type for a in actions], [ActionType.PRESERVE, ActionType.CREATE])
        self.assertEqual(actions[0].block_id, "b1")
        self.assertEqual(actions[1].line_index, 0)

    def test_erased_ink_deletes_block(self):
        block = make_block("b1", stroke_ids={"s100", "s101"}, canonical="old line")
        strokes = [make_stroke(200, 50, 60)]

        actions, _ = self.reconcile([block], [make_line("new line", 50, 60)], strokes)

        self.assertEqual(actions[0].action_type, ActionType.DELETE)
        self.assertEqual(actions[0].block_id, "b1")

    def test_erased_header_kept_while_child_ink_remains(self):
        """Test a block whose ink is gone is not deleted out from under a surviving child."""
        header = make_block("h", stroke_ids={"s1"}, canonical="Meeting Notes")
        child = make_block("c", stroke_ids={"s2"}, canonical="Call Bob", parent_id="h")
        strokes = [make_stroke(2, 30, 40, block_id="c")]

        actions, _ = self.reconcile([header, child], [make_line("Call Bob", 30, 40)], strokes)

        self.assertEqual(
            [(action.action_type, action.block_id) for action in actions],
            [(ActionType.PRESERVE, "h"), (ActionType.SKIP, "c")],
        )

    def test_surviving_grandchild_keeps_whole_chain(self):
        blocks = [
            make_block("h", stroke_ids={"s1"}, canonical="Meeting Notes"),
            make_block("c", stroke_ids={"s2"}, canonical="Action items", parent_id="h"),
            make_block("g", stroke_ids={"s3"}, canonical="Call Bob", parent_id="c"),
        ]
        strokes = [make_stroke(3, 50, 60, block_id="g")]

        actions, _ = self.reconcile(blocks, [], strokes)

        self.assertEqual(
            [action.action_type for action in actions],
            [ActionType.PRESERVE, ActionType.PRESERVE, ActionType.PRESERVE],
        )
        self.assertEqual(actions[0].reason, "children still present")

    def test_erased_subtree_deleted_entirely(self):
        blocks = [
            make_block("h", stroke_ids={"s1"}, canonical="Meeting Notes"),
            make_block("c", stroke_ids={"s2"}, canonical="Call Bob", parent_id="h"),
        ]

        actions, _ = self.reconcile(blocks, [], [])

        self.assertEqual([action.action_type for action in actions], [ActionType.DELETE, ActionType.DELETE])

    def test_block_without_ink_reference_preserved(self):
        """Test a hand-written block with neither strokes nor bounds is never deleted."""
        actions, _ = self.reconcile([make_block("typed", canonical=None, content="typed by hand")], [], [])

        self.assertEqual(len(actions), 1)
        self.assertEqual(actions[0].action_type, ActionType.PRESERVE)

    def test_unchanged_canonical_skips(self):
        block = make_block("b1", stroke_ids={"s1"}, canonical="hello")
        actions, _ = self.reconcile([block], [make_line("hello", 10, 20)], [make_stroke(1, 10, 20)])

        self.assertEqual(len(actions), 1)
        self.assertEqual(actions[0].action_type, ActionType.SKIP)
        self.assertEqual(actions[0].line_index, 0)

    def test_user_edit_with_same_canonical_skips(self):
        """Test edited text does not count as a change when the recognizer output is the same."""
        block = make_block("b1", stroke_ids={"s1"}, canonical="helo", content="Hello!")
        line = make_line("Hello!", 10, 20, canonical="helo")

        actions, _ = self.reconcile([block], [line], [make_stroke(1, 10, 20)])

        self.assertEqual(actions[0].action_type, ActionType.SKIP)

    def test_changed_canonical_updates(self):
        block = make_block("b1", stroke_ids={"s1"}, canonical="helo", content="TODO helo")
        actions, _ = self.reconcile([block], [make_line("hello", 10, 20)], [make_stroke(1, 10, 20)])

        self.assertEqual(actions[0].action_type, ActionType.UPDATE)
        self.assertEqual(actions[0].block_id, "b1")
        self.assertEqual(actions[0].previous_content, "TODO helo")

    def test_owned_strokes_count_as_ink(self):
        """Test stroke ownership identifies a block that never recorded its ids."""
        block = make_block("b1", canonical="hello")
        actions, _ = self.reconcile([block], [make_line("hello", 10, 20)], [make_stroke(1, 10, 20, block_id="b1")])

        self.assertEqual([a.action_type for a in actions], [ActionType.SKIP])

    def test_block_spanning_two_lines_splits(self):
        """Test the first line keeps the block and the second becomes a sibling."""
        block = make_block("b1", stroke_ids={"s1", "s2", "s3", "s4"}, canonical="one two", parent_id="p1")
        strokes = [
            make_stroke(1, 10, 20), make_stroke(2, 12, 18),
            make_stroke(3, 40, 50), make_stroke(4, 42, 48),
        ]

        actions, _ = self.reconcile([block], [make_line("two", 40, 50), make_line("one", 10, 20)], strokes)

        self.assertEqual([a.action_type for a in actions], [ActionType.UPDATE, ActionType.CREATE])
        self.assertEqual(actions[0].line_index, 0)
        self.assertEqual(actions[1].line_index, 1)
        self.assertTrue(actions[1].inherit_parent)
        self.assertEqual(actions[1].parent_id, "p1")

    def test_legacy_block_matched_by_bounds(self):
        """Test blocks written before stroke ids were recorded fall back to bounds."""
        block = make_block("legacy", canonical="hello", y_bounds=YBounds(min_y=10, max_y=20))
        actions, _ = self.reconcile([block], [make_line("hello", 12, 18)], [])

        self.assertEqual(actions[0].action_type, ActionType.SKIP)
        self.assertEqual(actions[0].block_id, "legacy")

    def test_line_claimed_only_once(self):
        """Test a line consumed by one block is not offered to the next."""
        bounds = YBounds(min_y=10, max_y=20)
        first = make_block("first", canonical="hello", y_bounds=bounds)
        second = make_block("second", canonical="hello", y_bounds=bounds)

        actions, _ = self.reconcile([first, second], [make_line("hello", 10, 20)], [])

        self.assertEqual([a.action_type for a in actions], [ActionType.SKIP, ActionType.PRESERVE])

    def test_merged_block_absorbs_its_lines(self):
        """Test a block merged in the editor is not split again."""
        block = make_block("m", stroke_ids={"s1", "s2", "s3", "s4"}, canonical="first second", merged_lines=2)
        strokes = [
            make_stroke(1, 10, 20), make_stroke(2, 12, 18),
            make_stroke(3, 40, 50), make_stroke(4, 42, 48),
        ]
        lines = [make_line("first", 10, 20), make_line("second", 40, 50)]

        actions, _ = self.reconcile([block], lines, strokes)

        self.assertEqual(len(actions), 1)
        self.assertEqual(actions[0].action_type, ActionType.SKIP)
        self.assertEqual(actions[0].line_indices, [0, 1])

        lines[1] = make_line("secnd", 40, 50)
        actions, _ = self.reconcile([block], lines, strokes)
        self.assertEqual(actions[0].action_type, ActionType.UPDATE)
        self.assertEqual(actions[0].extra_line_indices, [1])

    def test_new_lines_created_in_page_order(self):
        lines = [make_line("bottom", 60, 70), make_line("top", 10, 20), make_line("middle", 30, 40)]
        actions, context = self.reconcile([], lines, [])

        self.assertEqual([a.line_index for a in actions], [0, 1, 2])
        self.assertEqual([context.lines[a.line_index].text for a in actions], ["top", "middle", "bottom"])


if __name__ == '__main__':
    unittest.main()
