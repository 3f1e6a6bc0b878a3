"""
Tests for node grouping and the model dict round trip.
"""

import unittest

from scholargraph.core.grouping import (
    DEFAULT_FALLBACK,
    NOTES_GROUP,
    UNCATEGORIZED,
    Grouper,
    assign_group,
    badge_group,
)
from scholargraph.core.models import Badge, Link, Node, NodeKind


class TestAssignGroup(unittest.TestCase):
    def test_notes_always_personal(self):
        badges = [Badge(type="SCI", partition="Q1")]
        self.assertEqual(assign_group(NodeKind.NOTE, badges, "Quantum notes"), NOTES_GROUP)

    def test_badge_with_partition_wins(self):
        badges = [Badge(type="EI"), Badge(type="SCI", partition="Q1")]
        self.assertEqual(assign_group(NodeKind.PAPER, badges, "Quantum kernels"), "SCI Q1")

    def test_quartile_type_counts_as_partition(self):
        badges = [Badge(type="CNKI"), Badge(type="Q2")]
        self.assertEqual(badge_group(badges), "Q2")

    def test_first_badge_when_none_partitioned(self):
        badges = [Badge(type="PubMed"), Badge(type="EI")]
        self.assertEqual(assign_group(NodeKind.PAPER, badges, "anything"), "PubMed")

    def test_keyword_table_first_match(self):
        self.assertEqual(
            assign_group(NodeKind.PAPER, [], "Hierarchical Transformer for Quantum Physics"),
            "Ensemble Learning",
        )
        self.assertEqual(assign_group(NodeKind.CONCEPT, [], "Clinical LLM triage"), "Healthcare")
        self.assertEqual(assign_group(NodeKind.CONCEPT, None, "Policy Gradient basics"), "Reinforcement Learning")

    def test_fallback(self):
        self.assertEqual(assign_group(NodeKind.PAPER, [], "Graph theory"), DEFAULT_FALLBACK)
        self.assertEqual(assign_group(NodeKind.PAPER, [], "Graph theory", fallback="Misc"), "Misc")

    def test_empty_table_is_uncategorized(self):
        self.assertEqual(assign_group(NodeKind.PAPER, [], "Quantum", keyword_groups=()), UNCATEGORIZED)

    def test_deterministic(self):
        args = (NodeKind.PAPER, [Badge(type="SSCI")], "Boosting trees")
        self.assertEqual(assign_group(*args), assign_group(*args))


class TestGrouper(unittest.TestCase):
    def test_defaults_without_config(self):
        grouper = Grouper({})
        self.assertEqual(grouper(NodeKind.PAPER, [], "quantum walk"), "Quantum AI")

    def test_config_table_and_fallback(self):
        grouper = Grouper({
            "grouping": {
                "fallback": "Other",
                "keywords": [
                    {"group": "Vision", "keywords": ["image", "vision"]},
                    {"keywords": ["ignored"]},
                ],
            }
        })
        self.assertEqual(grouper(NodeKind.PAPER, [], "Vision Transformers"), "Vision")
        self.assertEqual(grouper(NodeKind.PAPER, [], "Quantum"), "Other")

    def test_explicitly_empty_table(self):
        grouper = Grouper({"grouping": {"keywords": []}})
        self.assertEqual(grouper(NodeKind.CONCEPT, [], "Quantum"), UNCATEGORIZED)


class TestModels(unittest.TestCase):
    def test_node_kind_parse(self):
        self.assertIs(NodeKind.parse("paper"), NodeKind.PAPER)
        self.assertIs(NodeKind.parse(NodeKind.NOTE), NodeKind.NOTE)
        with self.assertRaises(ValueError):
            NodeKind.parse("Dataset")

    def test_node_dict_uses_camel_case(self):
        node = Node(
            id="p1", label="Paper", kind=NodeKind.PAPER, year=2019,
            badges=[Badge(type="SCI", partition="Q1", impact_factor=4.2)],
            starred=True, added_date="2024-01-02",
        )
        data = node.to_dict()
        self.assertEqual(data["type"], "Paper")
        self.assertEqual(data["addedDate"], "2024-01-02")
        self.assertTrue(data["isStarred"])
        self.assertEqual(data["badges"], [{"type": "SCI", "partition": "Q1", "if": 4.2}])
        self.assertEqual(Node.from_dict(data), node)

    def test_badge_from_plain_string(self):
        self.assertEqual(Badge.from_dict("EI"), Badge(type="EI"))

    def test_badge_matches_type_or_partition(self):
        badge = Badge(type="SCI", partition="Q1")
        self.assertTrue(badge.matches("Q1"))
        self.assertTrue(badge.matches("SCI"))
        self.assertFalse(badge.matches("Q2"))

    def test_link_helpers(self):
        link = Link(source="a", target="b", label="Extends")
        self.assertEqual(link.key, ("a", "b"))
        self.assertTrue(link.touches("b"))
        self.assertEqual(link.other_end("a"), "b")
        self.assertEqual(link.other_end("b"), "a")
        self.assertEqual(Link.from_dict(link.to_dict()), link)


if __name__ == '__main__':
    unittest.main()
