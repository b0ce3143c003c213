"""
Unit tests for hierarchical block building.
"""

import unittest

from inksync.errors import PartialBuildError
from inksync.models import ActionType, Block, BlockAction, BlockProperties, RecognizedLine, Stroke, YBounds
from inksync.store import InMemoryBlockStore
from inksync.sync import BlockReconciler, HierarchicalBlockBuilder, SyncContext, preserve_task_marker


def make_stroke(start_time, top, bottom):
    return Stroke.from_points(start_time, [(0.0, top), (10.0, bottom)])


def make_line(text, top, bottom, indent_level=0):
    return RecognizedLine(text=text, indent_level=indent_level, y_bounds=YBounds(min_y=top, max_y=bottom))


class TestHierarchicalBlockBuilder(unittest.TestCase):
    """Test turning reconciler actions into a block tree."""

    def setUp(self):
        """Set up test fixtures."""
        self.store = InMemoryBlockStore()
        self.store.ensure_page("page")
        self.root = self.store.create_block("page", "## Transcribed Content", {})
        self.builder = HierarchicalBlockBuilder(self.store)
        self.strokes = [make_stroke(1, 10, 20), make_stroke(2, 30, 40), make_stroke(3, 50, 60)]

    def build(self, lines, existing=(), strokes=None):
        context = SyncContext.prepare(lines, self.strokes if strokes is None else strokes, section_root_id=self.root)
        actions = BlockReconciler().reconcile(list(existing), context)
        report = self.builder.build(actions, context)
        return report, context

    def meeting_lines(self):
        return [
            make_line("Meeting Notes", 10, 20, indent_level=0),
            make_line("Action items", 30, 40, indent_level=1),
            make_line("Follow up", 50, 60, indent_level=2),
        ]

    def assert_meeting_tree(self, context, lines):
        notes, items, follow_up = (context.block_for(line) for line in lines)

        self.assertEqual(self.store.children_of(self.root), [notes])
        self.assertEqual(self.store.children_of(notes), [items])
        self.assertEqual(self.store.children_of(items), [follow_up])
        self.assertEqual(self.store.blocks[follow_up]["content"], "Follow up")

    def test_nested_lines_in_page_order(self):
        lines = self.meeting_lines()
        report, context = self.build(lines)

        self.assertEqual(report.stats["created"], 3)
        self.assertEqual(report.completed_levels, [0, 1, 2])
        self.assert_meeting_tree(context, lines)

    def test_same_tree_for_any_input_order(self):
        """Test the children end up under the right parents however the lines arrive."""
        notes, items, follow_up = self.meeting_lines()
        report, context = self.build([follow_up, notes, items])

        self.assertEqual(report.stats["created"], 3)
        self.assert_meeting_tree(context, [notes, items, follow_up])

    def test_parents_created_before_children(self):
        self.build(list(reversed(self.meeting_lines())))

        created = [call[2] for call in self.store.calls[1:] if call[0] == "create"]
        self.assertEqual(created, ["Meeting Notes", "Action items", "Follow up"])

    def test_interleaved_levels(self):
        """Test each child attaches to the nearest preceding shallower line."""
        lines = [
            make_line("A", 0, 5, indent_level=0),
            make_line("a1", 20, 25, indent_level=1),
            make_line("B", 40, 45, indent_level=0),
            make_line("b1", 60, 65, indent_level=1),
        ]
        _, context = self.build(lines, strokes=[])
        a, a1, b, b1 = (context.block_for(line) for line in lines)

        self.assertEqual(self.store.children_of(self.root), [a, b])
        self.assertEqual(self.store.children_of(a), [a1])
        self.assertEqual(self.store.children_of(b), [b1])

    def test_block_properties_and_stroke_ownership(self):
        lines = self.meeting_lines()
        _, context = self.build(lines)
        notes = context.block_for(lines[0])

        properties = self.store.blocks[notes]["properties"]
        self.assertEqual(properties["stroke-ids"], "s1")
        self.assertEqual(properties["canonical-transcript"], "Meeting Notes")
        self.assertEqual(properties["stroke-y-bounds"], "10-20")
        self.assertEqual(self.strokes[0].block_id, notes)
        self.assertEqual(self.strokes[2].block_id, context.block_for(lines[2]))

    def test_new_child_under_unchanged_parent(self):
        """Test a skipped block still serves as parent for new lines."""
        _, context = self.build([make_line("Meeting Notes", 10, 20)])
        notes = context.block_for(context.lines[0])
        existing = [Block.from_store(record, self.root) for record in self.store.get_block_tree("page")[1:]]

        lines = [make_line("Meeting Notes", 10, 20), make_line("Action items", 30, 40, indent_level=1)]
        report, context = self.build(lines, existing=existing)

        self.assertEqual(report.skipped, [notes])
        self.assertEqual(self.store.children_of(notes), [context.block_for(lines[1])])

    def test_update_keeps_task_marker(self):
        block_id = self.store.create_block(self.root, "TODO call Bob", {"stroke-ids": "s1", "canonical-transcript": "call Bob"})
        existing = [Block.from_store(self.store.get_block_tree("page")[1], self.root)]

        report, _ = self.build([make_line("call Rob", 10, 20)], existing=existing, strokes=self.strokes[:1])

        self.assertEqual(report.updated, [block_id])
        self.assertEqual(self.store.blocks[block_id]["content"], "TODO call Rob")
        self.assertEqual(self.store.blocks[block_id]["properties"]["canonical-transcript"], "call Rob")

    def test_deletes_run_last(self):
        stale = self.store.create_block(self.root, "erased", {"stroke-ids": "s99"})
        existing = [Block.from_store(self.store.get_block_tree("page")[1], self.root)]

        report, _ = self.build([make_line("fresh", 10, 20)], existing=existing, strokes=self.strokes[:1])

        kinds = [call[0] for call in self.store.calls[2:]]
        self.assertEqual(kinds, ["create", "delete"])
        self.assertEqual(report.deleted, [stale])
        self.assertNotIn(stale, self.store.blocks)

    def test_erased_subtree_deleted_children_first(self):
        """Test deleting a nested tree never targets a block already removed with its parent."""
        lines = self.meeting_lines()
        _, context = self.build(lines)
        notes, items, follow_up = (context.block_for(line) for line in lines)
        existing = [Block.from_store(record, self.root) for record in self.store.get_block_tree("page")[1:]]

        report, _ = self.build([], existing=existing, strokes=[])

        self.assertEqual(report.deleted, [follow_up, items, notes])
        self.assertEqual(self.store.children_of(self.root), [])

    def test_failed_level_reports_progress(self):
        """Test a store failure stops the build and keeps completed levels."""
        # Root creation was the first write; allow one more
        self.store.fail_writes_after = 2
        lines = self.meeting_lines()

        with self.assertRaises(PartialBuildError) as raised:
            self.build(lines)

        error = raised.exception
        self.assertEqual(error.completed_levels, [0])
        self.assertEqual(error.failed_level, 1)
        self.assertEqual(len(error.report.created), 1)
        self.assertEqual(self.strokes[0].block_id, error.report.created[0])
        self.assertIsNone(self.strokes[1].block_id)

    def test_section_root_required(self):
        context = SyncContext.prepare([make_line("x", 0, 5)], [])
        actions = [BlockAction(action_type=ActionType.CREATE, line_index=0)]

        with self.assertRaises(ValueError):
            self.builder.build(actions, context)

    def test_merged_payload(self):
        """Test an action covering several lines writes their joined text."""
        context = SyncContext.prepare(
            [make_line("first", 10, 20), make_line("second", 30, 40)],
            self.strokes,
            section_root_id=self.root,
        )
        action = BlockAction(action_type=ActionType.CREATE, line_index=0, extra_line_indices=[1])

        report = self.builder.build([action], context)

        properties = BlockProperties.from_store(self.store.blocks[report.created[0]]["properties"])
        self.assertEqual(self.store.blocks[report.created[0]]["content"], "first second")
        self.assertEqual(properties.merged_lines, 2)
        self.assertEqual(properties.stroke_ids, {"s1", "s2"})
        self.assertEqual(properties.y_bounds, YBounds(min_y=10, max_y=40))


class TestTaskMarkers(unittest.TestCase):
    """Test preservation of Logseq task markers."""

    def test_marker_carried_over(self):
        self.assertEqual(preserve_task_marker("DONE buy milk", "buy oat milk"), "DONE buy oat milk")

    def test_new_marker_wins(self):
        self.assertEqual(preserve_task_marker("TODO call", "DOING call"), "DOING call")

    def test_no_previous_content(self):
        self.assertEqual(preserve_task_marker(None, "call"), "call")
        self.assertEqual(preserve_task_marker("TODOS list", "list"), "list")


if __name__ == '__main__':
    unittest.main()
