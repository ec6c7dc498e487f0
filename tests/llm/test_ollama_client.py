import json
import unittest
from types import SimpleNamespace
from unittest.mock import patch

import requests

from scoped_commit.llm.ollama_client import LLMError, OllamaClient, strip_thinking_tags


class DummyResponse(SimpleNamespace):
    def json(self):
        return json.loads(self.text)


def ok(body):
    return DummyResponse(status_code=200, text=json.dumps(body))


class TestOllamaClient(unittest.TestCase):
    def test_generate_success(self) -> None:
        captured = {}

        def fake_post(url, *_args, **kwargs):
            captured["url"] = url
            captured.update(kwargs)
            return ok({"response": "Hello"})

        with patch("requests.post", fake_post):
            client = OllamaClient("http://localhost", 11434, "llama3", request_timeout=5)
            self.assertEqual(client.generate("prompt"), "Hello")

        self.assertEqual(captured["url"], "http://localhost:11434/api/generate")
        self.assertEqual(captured["timeout"], 5)
        self.assertEqual(captured["json"], {"model": "llama3", "prompt": "prompt", "stream": False})

    def test_payload_with_system_format_and_options(self) -> None:
        captured = {}

        def fake_post(url, *_args, **kwargs):
            captured.update(kwargs["json"])
            return ok({"response": "{}"})

        with patch("requests.post", fake_post):
            client = OllamaClient("http://h", 1, "m", max_tokens=200, temperature=0.2, top_p=0.9)
            client.generate("diff", system="be terse", json_format=True)

        self.assertEqual(captured["system"], "be terse")
        self.assertEqual(captured["format"], "json")
        self.assertEqual(captured["options"], {"num_predict": 200, "temperature": 0.2, "top_p": 0.9})

    def test_chat_style_reply(self) -> None:
        with patch("requests.post", lambda url, **kw: ok({"message": {"content": "Hi"}})):
            self.assertEqual(OllamaClient("http://h", 1, "m").generate("p"), "Hi")

    def test_thinking_blocks_are_removed(self) -> None:
        reply = {"response": "<think>let me see</think>\nfeat: add x"}
        with patch("requests.post", lambda url, **kw: ok(reply)):
            self.assertEqual(OllamaClient("http://h", 1, "m").generate("p"), "feat: add x")

    def test_generate_error_status(self) -> None:
        def fake_post(url, *_args, **kwargs):
            return DummyResponse(status_code=500, text="Internal error")

        with patch("requests.post", fake_post):
            with self.assertRaises(LLMError) as ctx:
                OllamaClient("http://localhost", 11434, "model").generate("prompt")
        self.assertIn("500", str(ctx.exception))

    def test_generate_invalid_json(self) -> None:
        def fake_post(url, *_args, **kwargs):
            return DummyResponse(status_code=200, text="not json")

        with patch("requests.post", fake_post):
            with self.assertRaises(LLMError):
                OllamaClient("http://localhost", 11434, "model").generate("prompt")

    def test_connection_error(self) -> None:
        def fake_post(url, *_args, **kwargs):
            raise requests.ConnectionError("refused")

        with patch("requests.post", fake_post):
            with self.assertRaises(LLMError):
                OllamaClient("http://localhost", 11434, "model").generate("prompt")

    def test_unexpected_structure(self) -> None:
        with patch("requests.post", lambda url, **kw: ok({"done": True})):
            with self.assertRaises(LLMError):
                OllamaClient("http://h", 1, "m").generate("p")

    def test_from_config(self) -> None:
        client = OllamaClient.from_config(
            {"base_url": "http://h", "port": 11434, "model": "m", "request_timeout": 30, "temperature": 0.1}
        )
        self.assertEqual(client.request_timeout, 30.0)
        self.assertEqual(client.temperature, 0.1)
        self.assertIsNone(client.max_tokens)


class TestStripThinkingTags(unittest.TestCase):
    def test_variants_and_case(self) -> None:
        text = "<THINKING>a</THINKING><reasoning>\nb\n</reasoning> answer <thought>c</thought>"
        self.assertEqual(strip_thinking_tags(text), "answer")

    def test_plain_text_untouched(self) -> None:
        self.assertEqual(strip_thinking_tags("  feat: x  "), "feat: x")


if __name__ == "__main__":
    unittest.main()
