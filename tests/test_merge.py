from __future__ import annotations

import logging
import sys
import unittest
from pathlib import Path
from unittest import mock

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = TESTS_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from dynprops import PropertyDescriptor, merge, merge_resolved, parse_with_value

ALL_RENDERERS = {"common", "vector", "latex"}


def _decls(*pairs):
    return [parse_with_value(key, value) for key, value in pairs]


def _paths(resolved):
    return [(d.group, d.name_path, d.value) for d in resolved]


class MergeScenarioTests(unittest.TestCase):
    def test_missing_renderer_means_common(self) -> None:
        resolved = merge(
            _decls(("_common:label:string:font", "Arial"), ("_:label:string:font", "Helvetica")),
            ALL_RENDERERS,
        )
        self.assertEqual(len(resolved), 1)
        self.assertEqual(resolved[0].value, "Helvetica")
        self.assertEqual(resolved[0].renderer, "common")

    def test_later_declaration_wins_regardless_of_renderer(self) -> None:
        resolved = merge(
            _decls(("_latex:label:string:font", "Helvetica"), ("_common:label:string:font", "Arial")),
            ALL_RENDERERS,
        )
        self.assertEqual(len(resolved), 1)
        self.assertEqual(resolved[0].value, "Arial")

    def test_clear_removes_descendants(self) -> None:
        resolved = merge(
            _decls(
                ("_common:donkey:string:thing.subthing.flavor", "vanilla"),
                ("_latex:donkey:string:thing.subthing.crunchiness", "high"),
                ("_vector:donkey:string:thing.subthing:!clear", "biscuit"),
            ),
            ALL_RENDERERS,
        )
        self.assertEqual(_paths(resolved), [("donkey", "thing.subthing", "biscuit")])


class MergeRuleTests(unittest.TestCase):
    def test_incompatible_renderers_are_dropped(self) -> None:
        source = _decls(
            ("_common::string:font", "Arial"),
            ("_svg::string:stroke", "red"),
            ("_latex::string:draw", "black"),
            ("_svg::string:font", "Courier"),
        )
        for renderers in ({"common"}, {"latex"}, {"common", "latex"}, set()):
            resolved = merge(source, renderers)
            self.assertTrue(all(d.renderer in renderers for d in resolved), renderers)
        self.assertEqual(_paths(merge(source, {"common", "latex"})), [
            ("", "font", "Arial"),
            ("", "draw", "black"),
        ])

    def test_overwrite_keeps_position(self) -> None:
        resolved = merge(
            _decls(
                ("_::string:font", "Arial"),
                ("_::integer:size", 10),
                ("_::string:font", "Helvetica"),
            ),
            {"common"},
        )
        self.assertEqual(_paths(resolved), [("", "font", "Helvetica"), ("", "size", 10)])

    def test_parents_and_children_coexist(self) -> None:
        resolved = merge(
            _decls(("_::string:border", "solid"), ("_::integer:border.width", 2)),
            {"common"},
        )
        self.assertEqual(_paths(resolved), [("", "border", "solid"), ("", "border.width", 2)])

    def test_clear_spares_other_groups_ancestors_and_siblings(self) -> None:
        resolved = merge(
            _decls(
                ("_:node:string:thing", "parent"),
                ("_:node:string:thing.sub.a", "child"),
                ("_:node:string:thing.other", "sibling"),
                ("_:edge:string:thing.sub.a", "other group"),
                ("_:node:string:thing.subway", "prefix but not descendant"),
                ("_:node:string:thing.sub:!clear", "reset"),
            ),
            {"common"},
        )
        self.assertEqual(_paths(resolved), [
            ("node", "thing", "parent"),
            ("node", "thing.other", "sibling"),
            ("edge", "thing.sub.a", "other group"),
            ("node", "thing.subway", "prefix but not descendant"),
            ("node", "thing.sub", "reset"),
        ])

    def test_clear_replaces_exact_match_at_end(self) -> None:
        resolved = merge(
            _decls(
                ("_::string:font", "Arial"),
                ("_::integer:size", 10),
                ("_::string:font:!clear", "Helvetica"),
            ),
            {"common"},
        )
        self.assertEqual(_paths(resolved), [("", "size", 10), ("", "font", "Helvetica")])

    def test_children_declared_after_clear_survive(self) -> None:
        resolved = merge(
            _decls(
                ("_::string:font.family", "Arial"),
                ("_::string:font:!clear", None),
                ("_::integer:font.size", 12),
            ),
            {"common"},
        )
        self.assertEqual(_paths(resolved), [("", "font", None), ("", "font.size", 12)])

    def test_no_earlier_descendant_survives_a_clear(self) -> None:
        source = _decls(
            ("_::string:a.b.c", "1"),
            ("_::string:a.b", "2"),
            ("_::string:a.x", "3"),
            ("_::string:a:!clear", "4"),
            ("_::string:a.y", "5"),
            ("_::string:a.b.c:!clear", "6"),
        )
        resolved = list(merge(source, {"common"}))
        for position, descriptor in enumerate(resolved):
            if not descriptor.clear_children:
                continue
            for earlier in resolved[:position]:
                prefix = earlier.name_path_array[: len(descriptor.name_path_array)]
                self.assertFalse(
                    earlier.group == descriptor.group and prefix == descriptor.name_path_array,
                    (earlier.to_key(), descriptor.to_key()),
                )

    def test_merge_is_idempotent(self) -> None:
        source = _decls(
            ("_common:donkey:string:thing.subthing.flavor", "vanilla"),
            ("_latex::string:font", "Helvetica"),
            ("_vector:donkey:string:thing.subthing:!clear", "biscuit"),
            ("_common::string:font", "Arial"),
            ("_svg::string:stroke", "red"),
            ("_common:donkey:string:thing.subthing.colour", "white"),
            ("_latex::string:font:!clear", "Times"),
        )
        once = merge(source, ALL_RENDERERS)
        self.assertEqual(merge(once, ALL_RENDERERS), once)

    def test_inputs_are_not_mutated(self) -> None:
        source = tuple(_decls(("_::string:a", "1"), ("_::string:a:!clear", "2")))
        snapshot = [(d.to_key(), d.value) for d in source]
        merge(source, {"common"})
        self.assertEqual([(d.to_key(), d.value) for d in source], snapshot)

    def test_merge_onto_existing_result(self) -> None:
        base = merge(_decls(("_::string:font", "Arial"), ("_::integer:size", 10)), {"common"})
        resolved = merge(
            [PropertyDescriptor.create("font", "Helvetica"), PropertyDescriptor.create("size", 11, renderer="svg")],
            {"common"},
            base,
        )
        self.assertEqual(_paths(resolved), [("", "font", "Helvetica"), ("", "size", 10)])
        self.assertEqual(_paths(base), [("", "font", "Arial"), ("", "size", 10)])

    def test_merge_resolved_skips_filtering(self) -> None:
        resolved = merge_resolved(_decls(("_svg::string:stroke", "red")))
        self.assertEqual(_paths(resolved), [("", "stroke", "red")])

    def test_dropped_declarations_are_only_rendered_for_debug_logging(self) -> None:
        decls = _decls(("_svg::string:stroke", "red"), ("_::string:font", "Arial"))
        merge_logger = logging.getLogger("dynprops.merge")
        self.addCleanup(merge_logger.setLevel, merge_logger.level)

        merge_logger.setLevel(logging.INFO)
        with mock.patch.object(PropertyDescriptor, "to_key", side_effect=AssertionError("rendered")):
            self.assertEqual(_paths(merge(decls, {"common"})), [("", "font", "Arial")])

        with self.assertLogs("dynprops.merge", level="DEBUG") as logs:
            merge(decls, {"common"})
        self.assertIn("_svg::string:stroke", logs.output[0])


if __name__ == "__main__":
    unittest.main()
