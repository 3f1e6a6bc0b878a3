"""
Tests for the AI collaborator over the mock provider profile.
"""

import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from scholargraph.collaborator import CONTENT_PREVIEW_CHARS, Collaborator
from scholargraph.core.exceptions import CollaboratorFailure
from scholargraph.core.models import Node, NodeKind
from scholargraph.llm.schemas import GraphSuggestions, LinkProposals, ParsedDocument, RelevantNodes


def mock_config(responses=None, **extra):
    cfg = {"models": {"graph": {"provider": "mock", "model": "mock-model", "responses": responses or []}}}
    cfg.update(extra)
    return cfg


class TestCollaborator(unittest.TestCase):
    def setUp(self):
        self.nodes = [
            Node(id="A", label="Boosting", kind=NodeKind.PAPER, content="x" * 300),
            Node(id="B", label="My note", kind=NodeKind.NOTE),
        ]

    def _collaborator(self, responses):
        collaborator = Collaborator(mock_config(responses))
        return collaborator, collaborator.client.provider

    def test_generate_links(self):
        collaborator, provider = self._collaborator([
            {"links": [{"source": "A", "target": "B", "label": "Extends", "reason": "same topic"}]}
        ])
        links = collaborator.generate_links(self.nodes)
        self.assertEqual([(l.source, l.target, l.label) for l in links], [("A", "B", "Extends")])
        self.assertFalse(links[0].is_suggestion)
        self.assertIs(provider.calls[0]["schema"], LinkProposals)

    def test_prompt_truncates_content(self):
        collaborator, provider = self._collaborator([])
        collaborator.generate_links(self.nodes)
        user = provider.calls[0]["user"]
        payload = json.loads(user.split("Nodes: ", 1)[1])
        self.assertEqual(len(payload[0]["content"]), CONTENT_PREVIEW_CHARS)
        self.assertNotIn("content", payload[1])

    def test_generate_suggestions_marks_overlay_items(self):
        collaborator, provider = self._collaborator([json.dumps({
            "recommendedNodes": [{
                "id": "S1", "label": "Gradient Boosting Revisited", "type": "paper", "year": 2022,
                "badges": [{"type": "SCI", "partition": "Q1", "if": 3.5}], "reason": "extends A",
            }],
            "suggestedLinks": [{"source": "A", "target": "S1", "label": "Evolved To"}],
        })])
        nodes, links = collaborator.generate_suggestions(self.nodes)
        self.assertEqual(len(nodes), 1)
        node = nodes[0]
        self.assertTrue(node.is_suggestion)
        self.assertIs(node.kind, NodeKind.PAPER)
        self.assertEqual(node.reason, "extends A")
        self.assertEqual(node.badges[0].impact_factor, 3.5)
        self.assertTrue(links[0].is_suggestion)
        self.assertIs(provider.calls[0]["schema"], GraphSuggestions)

    def test_unknown_kind_defaults_to_paper(self):
        collaborator, _ = self._collaborator([
            {"nodes": [{"id": "S1", "label": "Dataset", "type": "Dataset"}]}
        ])
        nodes, _ = collaborator.generate_suggestions(self.nodes)
        self.assertIs(nodes[0].kind, NodeKind.PAPER)

    def test_semantic_search_drops_unknown_ids(self):
        collaborator, provider = self._collaborator([{"nodeIds": ["B", "ghost", "A"]}])
        self.assertEqual(collaborator.semantic_search("notes", self.nodes), ["B", "A"])
        self.assertIs(provider.calls[0]["schema"], RelevantNodes)
        self.assertIn('"notes"', provider.calls[0]["user"])

    def test_semantic_search_empty_result(self):
        collaborator, _ = self._collaborator([{"node_ids": []}])
        self.assertEqual(collaborator.semantic_search("nothing", self.nodes), [])

    def test_chat_returns_text(self):
        collaborator, provider = self._collaborator(["Boosting combines weak learners."])
        answer = collaborator.chat("What is boosting?", self.nodes)
        self.assertEqual(answer, "Boosting combines weak learners.")
        self.assertIn("What is boosting?", provider.calls[0]["user"])
        self.assertIn("English", provider.calls[0]["system"])

    def test_language_from_config(self):
        collaborator = Collaborator(mock_config(language="Chinese"))
        self.assertIn("Chinese", collaborator.system)

    def test_file_operations_send_attachments(self):
        with tempfile.TemporaryDirectory() as tmp:
            doc = Path(tmp) / "paper.pdf"
            doc.write_bytes(b"%PDF-1.4 test")
            image = Path(tmp) / "board.png"
            image.write_bytes(b"\x89PNG")

            collaborator, provider = self._collaborator([
                {"summary": "About boosting", "elements": [{"type": "Formula", "label": "Loss", "content": "L"}]},
                "Whiteboard: boosting",
            ])
            parsed = collaborator.parse_document(doc)
            text = collaborator.analyze_image(image)

        self.assertIsInstance(parsed, ParsedDocument)
        self.assertEqual(parsed.elements[0].label, "Loss")
        self.assertEqual(text, "Whiteboard: boosting")
        doc_att = provider.calls[0]["attachments"][0]
        self.assertEqual((doc_att.name, doc_att.mime_type, doc_att.data), ("paper.pdf", "application/pdf", b"%PDF-1.4 test"))
        self.assertEqual(provider.calls[1]["attachments"][0].mime_type, "image/png")

    def test_provider_error_becomes_collaborator_failure(self):
        collaborator, _ = self._collaborator([RuntimeError("quota exceeded")])
        with self.assertRaises(CollaboratorFailure) as ctx:
            collaborator.generate_links(self.nodes)
        self.assertEqual(ctx.exception.operation, "Connect")
        self.assertIn("failed, try again", str(ctx.exception))
        self.assertIsInstance(ctx.exception.__cause__, RuntimeError)

    def test_invalid_payload_becomes_collaborator_failure(self):
        collaborator, _ = self._collaborator([{"links": "not a list"}])
        with self.assertRaises(CollaboratorFailure):
            collaborator.generate_links(self.nodes)

    def test_missing_api_key_is_setup_failure(self):
        cfg = {"models": {"graph": {"provider": "gemini", "model": "gemini-2.5-flash"}},
               "gemini": {"api_key_env": "SCHOLARGRAPH_TEST_MISSING_KEY"}}
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("SCHOLARGRAPH_TEST_MISSING_KEY", None)
            collaborator = Collaborator(cfg)
            with self.assertRaises(CollaboratorFailure) as ctx:
                collaborator.chat("hi", self.nodes)
        self.assertEqual(ctx.exception.operation, "LLM setup")


if __name__ == '__main__':
    unittest.main()
