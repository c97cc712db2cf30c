"""Tests for delegated extraction through a language model."""

import unittest
from unittest.mock import Mock, patch

import requests

from config.llm_config import LLMConfig
from models.extracted_fields import ExtractionStrategy, ExtractionMethod
from services.field_extractor import FieldExtractionEngine, FALLBACK_CONFIDENCE
from services.llm_client import OllamaClient
from services.llm_extractor import DelegatedExtractor, find_json_object, coerce_amount
from conftest import FakeLLMClient, SAMPLE_RECEIPT_TEXT


def _response(payload=None, status_error=None):
    response = Mock()
    response.json.return_value = payload
    if status_error:
        response.raise_for_status.side_effect = status_error
    return response


class TestOllamaClient(unittest.TestCase):
    """Test the HTTP client against a mocked requests module."""

    def setUp(self):
        self.config = LLMConfig.from_dict({'base_url': 'http://llm.local:11434', 'model': 'gemma2:2b'})
        self.client = OllamaClient(self.config)

    @patch('services.llm_client.requests.get')
    def test_health_check_ok(self, mock_get):
        """Test that the listed model makes the service healthy."""
        mock_get.return_value = _response({'models': [{'name': 'gemma2:2b'}]})

        self.assertTrue(self.client.health_check())
        mock_get.assert_called_once_with('http://llm.local:11434/api/tags', timeout=self.config.health_timeout)

    @patch('services.llm_client.requests.get')
    def test_health_check_accepts_other_tag(self, mock_get):
        mock_get.return_value = _response({'models': [{'name': 'gemma2:latest'}]})
        self.assertTrue(self.client.health_check())

    @patch('services.llm_client.requests.get')
    def test_health_check_model_missing(self, mock_get):
        mock_get.return_value = _response({'models': [{'name': 'llama3:8b'}]})
        self.assertFalse(self.client.health_check())

    @patch('services.llm_client.requests.get')
    def test_health_check_timeout(self, mock_get):
        """Test that an unreachable service reports unhealthy instead of raising."""
        mock_get.side_effect = requests.Timeout("timed out")
        self.assertFalse(self.client.health_check())

    @patch('services.llm_client.requests.post')
    def test_extract_returns_response_text(self, mock_post):
        mock_post.return_value = _response({'response': '{"vendor": "Target"}'})

        self.assertEqual(self.client.extract("prompt"), '{"vendor": "Target"}')
        payload = mock_post.call_args.kwargs['json']
        self.assertEqual(payload['model'], 'gemma2:2b')
        self.assertFalse(payload['stream'])
        self.assertEqual(payload['options']['num_predict'], 500)
        self.assertEqual(mock_post.call_args.kwargs['timeout'], self.config.request_timeout)

    @patch('services.llm_client.requests.post')
    def test_extract_http_error_returns_none(self, mock_post):
        mock_post.return_value = _response(status_error=requests.HTTPError("500 Server Error"))
        self.assertIsNone(self.client.extract("prompt"))

    @patch('services.llm_client.requests.post')
    def test_extract_timeout_returns_none(self, mock_post):
        mock_post.side_effect = requests.Timeout("timed out")
        self.assertIsNone(self.client.extract("prompt"))

    @patch('services.llm_client.requests.post')
    def test_extract_invalid_json_returns_none(self, mock_post):
        response = _response()
        response.json.side_effect = ValueError("no json")
        mock_post.return_value = response
        self.assertIsNone(self.client.extract("prompt"))


class TestDelegatedExtractor(unittest.TestCase):
    """Test prompt building and reply parsing."""

    def test_prompt_truncates_long_text(self):
        extractor = DelegatedExtractor(FakeLLMClient(), max_prompt_chars=100)
        prompt = extractor.build_prompt("A" * 250)

        self.assertIn("A" * 100 + "...", prompt)
        self.assertNotIn("A" * 101, prompt)
        self.assertIn('"vendor"', prompt)

    def test_json_reply_parsed(self):
        """Test a reply with prose around a JSON object."""
        client = FakeLLMClient(response='Here you go:\n{"vendor": "Target", "date": "01/15/2024", "amount": "$23.456"}\nDone')
        fields = DelegatedExtractor(client).extract(SAMPLE_RECEIPT_TEXT)

        self.assertEqual(fields.vendor, "Target")
        self.assertEqual(fields.date, "2024-01-15")
        self.assertEqual(fields.amount, 23.46)
        self.assertEqual(fields.confidence, 0.9)
        self.assertEqual(fields.method, ExtractionMethod.DELEGATED)
        self.assertEqual(len(client.prompts), 1)

    def test_regex_fallback_for_malformed_json(self):
        extractor = DelegatedExtractor(FakeLLMClient())
        parsed = extractor.parse_response('{"vendor": "Costco", "amount": 87.10,}')

        self.assertEqual(parsed, {'vendor': 'Costco', 'amount': '87.10'})

    def test_null_fields_left_unset(self):
        client = FakeLLMClient(response='{"vendor": null, "date": null, "amount": 12.5}')
        fields = DelegatedExtractor(client).extract("text")

        self.assertIsNone(fields.vendor)
        self.assertIsNone(fields.date)
        self.assertEqual(fields.amount, 12.5)

    def test_unusable_reply_returns_none(self):
        extractor = DelegatedExtractor(FakeLLMClient(response="I cannot read this receipt."))
        self.assertIsNone(extractor.extract("text"))

    def test_all_null_object_is_still_a_result(self):
        """Test that a decoded object with only nulls is kept, not discarded."""
        extractor = DelegatedExtractor(FakeLLMClient(response='{"vendor": null, "date": null, "amount": null}'))

        self.assertEqual(extractor.parse_response('{"vendor": null, "amount": null}'), {})
        fields = extractor.extract("text")
        self.assertIsNone(fields.vendor)
        self.assertIsNone(fields.date)
        self.assertIsNone(fields.amount)
        self.assertEqual(fields.method, ExtractionMethod.DELEGATED)

    def test_find_json_object_ignores_braces_in_strings(self):
        text = 'x {"vendor": "A {weird} name", "amount": 1} y'
        self.assertEqual(find_json_object(text), '{"vendor": "A {weird} name", "amount": 1}')

    def test_coerce_amount(self):
        self.assertEqual(coerce_amount("1,204.5"), 1204.5)
        self.assertIsNone(coerce_amount("-3"))
        self.assertIsNone(coerce_amount("free"))

    def test_coerce_amount_out_of_decimal_range(self):
        """Test that huge amounts are dropped instead of raising."""
        self.assertIsNone(coerce_amount(1e30))
        self.assertIsNone(coerce_amount("9" * 40))
        self.assertEqual(coerce_amount(1e3), 1000.0)


class TestFieldExtractionEngine(unittest.TestCase):
    """Test strategy selection and fallback."""

    def test_heuristic_when_no_delegated_extractor(self):
        engine = FieldExtractionEngine()
        self.assertEqual(engine.select_strategy(), ExtractionStrategy.HEURISTIC)

    def test_unhealthy_service_selects_heuristic(self):
        engine = FieldExtractionEngine(delegated=DelegatedExtractor(FakeLLMClient(healthy=False)))
        self.assertEqual(engine.select_strategy(), ExtractionStrategy.HEURISTIC)

    def test_healthy_service_selects_delegated(self):
        engine = FieldExtractionEngine(delegated=DelegatedExtractor(FakeLLMClient(healthy=True)))
        self.assertEqual(engine.select_strategy(), ExtractionStrategy.DELEGATED)

    def test_failed_delegation_falls_back_with_low_confidence(self):
        """Test that a failed model call switches the document to heuristics."""
        engine = FieldExtractionEngine(delegated=DelegatedExtractor(FakeLLMClient(healthy=True, response=None)))

        fields = engine.extract(SAMPLE_RECEIPT_TEXT, ExtractionStrategy.DELEGATED)

        self.assertEqual(fields.method, ExtractionMethod.HEURISTIC_FALLBACK)
        self.assertEqual(fields.confidence, FALLBACK_CONFIDENCE)
        self.assertEqual(fields.vendor, "Walmart")

    def test_all_null_delegated_reply_is_not_replaced_by_heuristics(self):
        client = FakeLLMClient(healthy=True, response='{"vendor": null, "date": null, "amount": null}')
        engine = FieldExtractionEngine(delegated=DelegatedExtractor(client))

        fields = engine.extract(SAMPLE_RECEIPT_TEXT, ExtractionStrategy.DELEGATED)

        self.assertEqual(fields.method, ExtractionMethod.DELEGATED)
        self.assertIsNone(fields.vendor)
        self.assertIsNone(fields.amount)


if __name__ == '__main__':
    unittest.main()
